# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import json
from pathlib import Path

import pytest

from snipfn.cli import main, parse_scope_entry
from snipfn.variables import FunctionArg


def _config(tmp_path: Path) -> Path:
	path = tmp_path / "snipfn.json"
	path.write_text(json.dumps({"tmpdir": str(tmp_path / "ws")}), encoding="utf-8")
	return path


def test_parse_scope_entry() -> None:
	assert parse_scope_entry("a:i32") == FunctionArg("a", "i32")
	assert parse_scope_entry("mut v: Vec<std::string::String>") == FunctionArg(
		"v", "Vec<std::string::String>", mutable=True
	)
	with pytest.raises(ValueError):
		parse_scope_entry("no type")


def test_outputs_command(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	code = main(["--config", str(_config(tmp_path)), "outputs", "let b = 2; a + b", "--scope", "a:i32"])
	assert code == 0
	assert capsys.readouterr().out == "b: i32\n"


def test_outputs_command_json(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	code = main(["--config", str(_config(tmp_path)), "outputs", "let x = true;", "--scope", "x: i32", "--json"])
	assert code == 0
	assert json.loads(capsys.readouterr().out) == {"ok": True, "outputs": [{"name": "x", "type": "bool"}]}


def test_outputs_error_exit_code(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	code = main(["--config", str(_config(tmp_path)), "outputs", "let b = nope;"])
	assert code == 1
	err = capsys.readouterr().err
	assert err.startswith("error: ")
	assert "cannot find value `nope`" in err


def test_outputs_error_json(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	code = main(["--config", str(_config(tmp_path)), "outputs", "let b = ;", "--json"])
	assert code == 1
	payload = json.loads(capsys.readouterr().out)
	assert payload["ok"] is False
	assert payload["error"]["kind"] == "ParseError"
	assert payload["error"]["diagnostics"][0]["phase"] == "parser"


def test_render_command(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	functions = tmp_path / "functions.json"
	functions.write_text(
		json.dumps(
			[
				{"name": "add", "body": "let b = 2; a + b", "scope": ["a: i32"]},
				{"name": "bump", "body": "a += 1", "scope": [{"name": "a", "type": "i32", "mutable": True}]},
			]
		),
		encoding="utf-8",
	)
	code = main(["--config", str(_config(tmp_path)), "render", str(functions)])
	assert code == 0
	out = capsys.readouterr().out
	assert 'pub extern "C" fn add(a: i32) -> (i32,) {' in out
	assert 'pub extern "C" fn bump(mut a: i32) -> () {' in out


def test_bad_config_is_usage_error(tmp_path: Path) -> None:
	path = tmp_path / "bad.json"
	path.write_text(json.dumps({"colour": "blue"}), encoding="utf-8")
	with pytest.raises(SystemExit) as excinfo:
		main(["--config", str(path), "outputs", "let b = 1;"])
	assert excinfo.value.code == 2
