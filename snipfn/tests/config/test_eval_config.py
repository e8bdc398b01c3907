# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import json
from pathlib import Path

import pytest

from snipfn.analysis import CargoTypeAnalyzer, LocalTypeAnalyzer, create_analyzer
from snipfn.config import EvalConfig, config_from_dict, load_config


def test_defaults() -> None:
	cfg = EvalConfig()
	assert cfg.tmpdir is None
	assert cfg.display_final_expression is True
	assert cfg.engine == "local"
	assert cfg.for_analysis().display_final_expression is False
	assert cfg.display_final_expression is True


def test_load_config(tmp_path: Path) -> None:
	path = tmp_path / "snipfn.json"
	path.write_text(
		json.dumps({"tmpdir": "work", "engine": "cargo", "dependencies": {"serde": "1.0"}, "timeout": 5}),
		encoding="utf-8",
	)
	cfg = load_config(path)
	assert cfg.tmpdir == Path("work")
	assert cfg.engine == "cargo"
	assert cfg.dependencies == {"serde": "1.0"}
	assert cfg.timeout == 5


def test_unknown_keys_are_rejected() -> None:
	with pytest.raises(ValueError, match="unknown config key"):
		config_from_dict({"engine": "local", "colour": "blue"})


def test_bad_values_are_rejected(tmp_path: Path) -> None:
	with pytest.raises(ValueError, match="unknown analysis engine"):
		EvalConfig(engine="rust-analyzer")
	with pytest.raises(ValueError, match="dependencies"):
		config_from_dict({"dependencies": {"serde": 1}})
	path = tmp_path / "list.json"
	path.write_text("[]", encoding="utf-8")
	with pytest.raises(ValueError, match="JSON object"):
		load_config(path)


def test_create_analyzer() -> None:
	assert isinstance(create_analyzer(EvalConfig()), LocalTypeAnalyzer)
	assert isinstance(create_analyzer(EvalConfig(engine="cargo")), CargoTypeAnalyzer)


@pytest.mark.parametrize(
	"data, message",
	[
		({"timeout": "5"}, "'timeout' must be a number or null"),
		({"timeout": True}, "'timeout' must be a number or null"),
		({"offline": "no"}, "'offline' must be a boolean"),
		({"keep_workspace": 1}, "'keep_workspace' must be a boolean"),
		({"engine": 3}, "'engine' must be a string"),
		({"tmpdir": 7}, "'tmpdir' must be a string or null"),
	],
)
def test_scalar_value_types_are_checked(data: dict, message: str) -> None:
	with pytest.raises(ValueError, match=message):
		config_from_dict(data)


def test_nullable_scalars_accept_null() -> None:
	cfg = config_from_dict({"tmpdir": None, "timeout": None})
	assert cfg.tmpdir is None
	assert cfg.timeout is None
	assert config_from_dict({"timeout": 2.5}).timeout == 2.5
