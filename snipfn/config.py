# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import json
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Mapping

ENGINES = ("local", "cargo")


@dataclass(frozen=True)
class EvalConfig:
	"""
	Settings for one evaluation context.

	`tmpdir` is where the analysis crate lives; `None` means "allocate a fresh
	temporary directory per inference". `display_final_expression` controls
	whether a snippet's trailing expression is echoed; output inference always
	runs with it disabled (`for_analysis`).
	"""

	tmpdir: Path | None = None
	display_final_expression: bool = True
	crate_name: str = "snipfn_analysis"
	edition: str = "2021"
	dependencies: dict[str, str] = field(default_factory=dict)
	engine: str = "local"  # "local" | "cargo"
	cargo: str = "cargo"
	offline: bool = True
	timeout: float | None = None
	keep_workspace: bool = False

	def __post_init__(self) -> None:
		if self.engine not in ENGINES:
			raise ValueError(f"unknown analysis engine '{self.engine}' (expected one of: {', '.join(ENGINES)})")

	def for_analysis(self) -> "EvalConfig":
		"""Copy used by ephemeral analysis passes: nobody sees the final value."""
		return replace(self, display_final_expression=False)


_SCALAR_KEYS: dict[str, tuple[type, ...]] = {
	"tmpdir": (str,),
	"display_final_expression": (bool,),
	"crate_name": (str,),
	"edition": (str,),
	"engine": (str,),
	"cargo": (str,),
	"offline": (bool,),
	"timeout": (int, float),
	"keep_workspace": (bool,),
}
_NULLABLE_KEYS = frozenset({"tmpdir", "timeout"})


def _describe_types(key: str, expected: tuple[type, ...]) -> str:
	names = {str: "a string", bool: "a boolean", int: "a number", float: "a number"}
	text = " or ".join(dict.fromkeys(names[t] for t in expected))
	return f"{text} or null" if key in _NULLABLE_KEYS else text


def config_from_dict(data: Mapping[str, Any]) -> EvalConfig:
	known = {f.name for f in fields(EvalConfig)}
	unknown = sorted(set(data) - known)
	if unknown:
		raise ValueError(f"unknown config key(s): {', '.join(unknown)}")
	for key, expected in _SCALAR_KEYS.items():
		if key not in data:
			continue
		value = data[key]
		if value is None and key in _NULLABLE_KEYS:
			continue
		if not isinstance(value, expected) or (isinstance(value, bool) and bool not in expected):
			raise ValueError(f"config key '{key}' must be {_describe_types(key, expected)}")
	kwargs = dict(data)
	if kwargs.get("tmpdir") is not None:
		kwargs["tmpdir"] = Path(kwargs["tmpdir"])
	deps = kwargs.get("dependencies")
	if deps is not None:
		if not isinstance(deps, dict) or not all(isinstance(v, str) for v in deps.values()):
			raise ValueError("config key 'dependencies' must map crate names to version strings")
		kwargs["dependencies"] = dict(deps)
	return EvalConfig(**kwargs)


def load_config(path: Path) -> EvalConfig:
	"""Load an `EvalConfig` from a JSON object; unknown keys are rejected."""
	obj = json.loads(path.read_text(encoding="utf-8"))
	if not isinstance(obj, dict):
		raise ValueError(f"{path}: config must be a JSON object")
	return config_from_dict(obj)


__all__ = ["ENGINES", "EvalConfig", "config_from_dict", "load_config"]
