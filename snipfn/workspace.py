# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Disposable analysis workspace.

Each inference gets its own crate directory: a `Cargo.toml` describing a
`cdylib` crate, a `.cargo/config.toml` and an empty `src/`. The type engine
writes `src/lib.rs` and runs there. The directory is removed when the
workspace is closed unless the configuration asks to keep it.
"""

from __future__ import annotations

import json
import logging
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path

from snipfn.config import EvalConfig
from snipfn.errors import WorkspaceError
from snipfn.variables import Environment

logger = logging.getLogger(__name__)


def _toml_str(value: str) -> str:
	# JSON string escapes are valid TOML basic strings.
	return json.dumps(value)


def render_manifest(env: Environment, config: EvalConfig) -> str:
	lines = [
		"[package]",
		f"name = {_toml_str(config.crate_name)}",
		'version = "0.0.0"',
		f"edition = {_toml_str(config.edition)}",
		"publish = false",
		"",
		"[lib]",
		'path = "src/lib.rs"',
		'crate-type = ["cdylib"]',
		"",
		"[dependencies]",
	]
	for crate, version in sorted(config.dependencies.items()):
		lines.append(f"{crate} = {_toml_str(version)}")
	lines.append("")
	lines.append("[package.metadata.snipfn]")
	bindings = ", ".join(_toml_str(f"{name}: {state.type_name}") for name, state in env.items())
	lines.append(f"bindings = [{bindings}]")
	return "\n".join(lines) + "\n"


def write_manifest(path: Path, env: Environment, config: EvalConfig) -> None:
	"""Write the crate manifest and cargo config for `env` into `path`."""
	try:
		(path / "src").mkdir(parents=True, exist_ok=True)
		(path / ".cargo").mkdir(exist_ok=True)
		(path / "Cargo.toml").write_text(render_manifest(env, config), encoding="utf-8")
		(path / ".cargo" / "config.toml").write_text(
			f"[net]\noffline = {'true' if config.offline else 'false'}\n\n[build]\ntarget-dir = \"target\"\n",
			encoding="utf-8",
		)
	except OSError as err:
		raise WorkspaceError(f"cannot write manifest in {path}: {err.strerror or err}") from err


@dataclass
class AnalysisWorkspace:
	path: Path
	keep: bool = False

	@classmethod
	def create(cls, config: EvalConfig) -> "AnalysisWorkspace":
		"""
		Allocate a fresh directory (inside `config.tmpdir` when set, resolved
		against the current directory if relative).
		"""
		parent = None
		if config.tmpdir is not None:
			parent = config.tmpdir if config.tmpdir.is_absolute() else Path.cwd() / config.tmpdir
		try:
			if parent is not None:
				parent.mkdir(parents=True, exist_ok=True)
			path = Path(tempfile.mkdtemp(prefix="snipfn-", dir=str(parent) if parent is not None else None))
		except OSError as err:
			raise WorkspaceError(f"cannot create analysis workspace: {err.strerror or err}") from err
		logger.debug("created analysis workspace %s", path)
		return cls(path=path, keep=config.keep_workspace)

	def close(self) -> None:
		if self.keep:
			logger.debug("keeping analysis workspace %s", self.path)
			return
		shutil.rmtree(self.path, ignore_errors=True)

	def __enter__(self) -> "AnalysisWorkspace":
		return self

	def __exit__(self, *exc: object) -> None:
		self.close()


__all__ = ["AnalysisWorkspace", "render_manifest", "write_manifest"]
