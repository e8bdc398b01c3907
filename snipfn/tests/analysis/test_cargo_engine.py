# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Any

import pytest

from snipfn.analysis import AnalysisRequest, CargoTypeAnalyzer, build_analysis_source
from snipfn.analysis.cargo import parse_check_output, probe_type_from_label
from snipfn.apply import apply_block
from snipfn.config import EvalConfig
from snipfn.errors import AnalysisError
from snipfn.parser import parse_snippet
from snipfn.variables import Environment, FunctionArg


def _request() -> AnalysisRequest:
	scope = [FunctionArg("a", "i32")]
	env = Environment()
	env.load_scope(scope)
	applied = apply_block(env, parse_snippet('let b = 2; let s = String::from("x");'))
	return build_analysis_source(applied, scope)


def _message(line: int, label: str, *, code: str = "E0308", text: str = "mismatched types") -> str:
	record: dict[str, Any] = {
		"reason": "compiler-message",
		"package_id": "snipfn_analysis 0.0.0",
		"message": {
			"message": text,
			"code": {"code": code, "explanation": None},
			"level": "error",
			"spans": [
				{
					"file_name": "src/lib.rs",
					"line_start": line,
					"line_end": line,
					"column_start": 17,
					"column_end": 18,
					"is_primary": True,
					"label": label,
				}
			],
			"children": [],
			"rendered": f"error[{code}]: {text}",
		},
	}
	return json.dumps(record)


def test_probe_labels() -> None:
	assert probe_type_from_label("expected `()`, found `i32`") == "i32"
	assert probe_type_from_label("expected `()`, found struct `String`") == "String"
	assert probe_type_from_label("expected `()`, found `Vec<{integer}>`") == "Vec<i32>"
	assert probe_type_from_label("expected `()`, found integer") == "i32"
	assert probe_type_from_label("expected `()`, found floating-point number") == "f64"
	assert probe_type_from_label("expected due to this") is None


def test_parse_check_output_maps_probe_lines() -> None:
	req = _request()
	assert req.probes == ["a", "b", "s"]
	stdout = "\n".join(
		[
			'{"reason":"compiler-artifact","package_id":"x"}',
			_message(req.probe_lines["a"], "expected `()`, found `i32`"),
			_message(req.probe_lines["b"], "expected `()`, found integer"),
			_message(req.probe_lines["s"], "expected `()`, found struct `String`"),
			"not json at all",
			'{"reason":"build-finished","success":false}',
		]
	)
	assert parse_check_output(stdout, req) == {"a": "i32", "b": "i32", "s": "String"}


def test_probe_without_diagnostic_is_unit() -> None:
	req = _request()
	stdout = _message(req.probe_lines["a"], "expected `()`, found `i32`")
	resolved = parse_check_output(stdout, req)
	assert resolved["b"] == "()"


def test_other_errors_become_analysis_error_with_diagnostics() -> None:
	req = _request()
	stdout = _message(4, "not found in this scope", code="E0425", text="cannot find value `q` in this scope")
	with pytest.raises(AnalysisError) as excinfo:
		parse_check_output(stdout, req)
	diag = excinfo.value.diagnostics[0]
	assert diag.code == "E0425"
	assert diag.span.line == 4
	assert diag.phase == "analysis"


def test_analyze_runs_cargo_in_workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
	req = _request()
	calls: list[dict[str, Any]] = []

	def fake_run(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
		calls.append({"cmd": cmd, **kwargs})
		out = "\n".join(_message(req.probe_lines[n], "expected `()`, found `u8`") for n in req.probes)
		return subprocess.CompletedProcess(cmd, 101, stdout=out, stderr="")

	monkeypatch.setattr(subprocess, "run", fake_run)
	engine = CargoTypeAnalyzer(EvalConfig(engine="cargo", cargo="/opt/cargo", timeout=30.0))
	resolved = engine.analyze(tmp_path, req)
	assert resolved == {"a": "u8", "b": "u8", "s": "u8"}
	assert (tmp_path / "src" / "lib.rs").read_text(encoding="utf-8") == req.source
	assert calls[0]["cmd"] == ["/opt/cargo", "check", "--message-format=json", "--quiet", "--offline"]
	assert calls[0]["cwd"] == str(tmp_path)
	assert calls[0]["timeout"] == 30.0


def test_missing_cargo_is_analysis_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
	def fake_run(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
		raise FileNotFoundError(cmd[0])

	monkeypatch.setattr(subprocess, "run", fake_run)
	with pytest.raises(AnalysisError, match="not found"):
		CargoTypeAnalyzer(EvalConfig(engine="cargo")).analyze(tmp_path, _request())


def test_timeout_is_analysis_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
	def fake_run(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
		raise subprocess.TimeoutExpired(cmd, kwargs.get("timeout"))

	monkeypatch.setattr(subprocess, "run", fake_run)
	with pytest.raises(AnalysisError, match="timed out"):
		CargoTypeAnalyzer(EvalConfig(engine="cargo", timeout=1.0)).analyze(tmp_path, _request())


def test_manifest_failure_without_messages(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
	def fake_run(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
		return subprocess.CompletedProcess(cmd, 101, stdout="", stderr="error: failed to parse manifest")

	monkeypatch.setattr(subprocess, "run", fake_run)
	with pytest.raises(AnalysisError) as excinfo:
		CargoTypeAnalyzer(EvalConfig(engine="cargo")).analyze(tmp_path, _request())
	assert "failed to parse manifest" in excinfo.value.diagnostics[0].message
