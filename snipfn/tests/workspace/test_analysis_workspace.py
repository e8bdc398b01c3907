# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from pathlib import Path

import pytest

from snipfn.config import EvalConfig
from snipfn.errors import WorkspaceError
from snipfn.variables import Environment, FunctionArg
from snipfn.workspace import AnalysisWorkspace, render_manifest, write_manifest


def _env() -> Environment:
	env = Environment()
	env.load_scope([FunctionArg("a", "i32"), FunctionArg("name", "String")])
	return env


def test_workspace_is_created_inside_tmpdir_and_removed(tmp_path: Path) -> None:
	ws = AnalysisWorkspace.create(EvalConfig(tmpdir=tmp_path / "scratch"))
	assert ws.path.is_dir()
	assert ws.path.parent == tmp_path / "scratch"
	ws.close()
	assert not ws.path.exists()


def test_relative_tmpdir_is_resolved_against_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
	monkeypatch.chdir(tmp_path)
	with AnalysisWorkspace.create(EvalConfig(tmpdir=Path("rel"))) as ws:
		assert ws.path.is_absolute()
		assert ws.path.parent == tmp_path / "rel"


def test_keep_workspace(tmp_path: Path) -> None:
	with AnalysisWorkspace.create(EvalConfig(tmpdir=tmp_path, keep_workspace=True)) as ws:
		pass
	assert ws.path.is_dir()


def test_unusable_tmpdir_is_workspace_error(tmp_path: Path) -> None:
	blocker = tmp_path / "file"
	blocker.write_text("x", encoding="utf-8")
	with pytest.raises(WorkspaceError):
		AnalysisWorkspace.create(EvalConfig(tmpdir=blocker))


def test_write_manifest(tmp_path: Path) -> None:
	cfg = EvalConfig(crate_name="probe", dependencies={"regex": "1"}, offline=False)
	write_manifest(tmp_path, _env(), cfg)
	manifest = (tmp_path / "Cargo.toml").read_text(encoding="utf-8")
	assert 'name = "probe"' in manifest
	assert 'edition = "2021"' in manifest
	assert 'crate-type = ["cdylib"]' in manifest
	assert 'regex = "1"' in manifest
	assert 'bindings = ["a: i32", "name: String"]' in manifest
	assert (tmp_path / "src").is_dir()
	assert "offline = false" in (tmp_path / ".cargo" / "config.toml").read_text(encoding="utf-8")


def test_manifest_without_dependencies_has_empty_table() -> None:
	text = render_manifest(Environment(), EvalConfig())
	assert "[dependencies]\n\n[package.metadata.snipfn]\nbindings = []\n" in text


def test_write_manifest_failure_is_workspace_error(tmp_path: Path) -> None:
	missing = tmp_path / "file"
	missing.write_text("x", encoding="utf-8")
	with pytest.raises(WorkspaceError, match="cannot write manifest"):
		write_manifest(missing, _env(), EvalConfig())
