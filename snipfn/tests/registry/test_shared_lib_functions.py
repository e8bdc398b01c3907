# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from pathlib import Path

import pytest

from snipfn import FunctionArg, ParsedFunction, SharedLibFunctions
from snipfn.config import EvalConfig
from snipfn.errors import ApplicationError, RegistryError


@pytest.fixture
def registry(tmp_path: Path) -> SharedLibFunctions:
	return SharedLibFunctions(config=EvalConfig(tmpdir=tmp_path))


def test_register_and_render_single_function(registry: SharedLibFunctions) -> None:
	fn = registry.register("add", "let b = 2; a + b", [FunctionArg("a", "i32")])
	assert fn == ParsedFunction(
		name="add",
		body="let b = 2; a + b",
		inputs=(FunctionArg("a", "i32"),),
		outputs=(FunctionArg("b", "i32"),),
	)
	assert registry.render() == (
		"#[no_mangle]\n"
		'pub extern "C" fn add(a: i32) -> (i32,) {\n'
		"    let b = 2; a + b;\n"
		"    (b,)\n"
		"}\n"
	)


def test_render_multiple_outputs_and_mutable_inputs(registry: SharedLibFunctions) -> None:
	registry.add_fn(
		"split",
		'let n = v.len(); let s = String::from("x");',
		[FunctionArg("v", "Vec<u8>", mutable=True), FunctionArg("k", "u32")],
	)
	lines = registry.code().split("\n")
	assert lines[1] == 'pub extern "C" fn split(mut v: Vec<u8>, k: u32) -> (usize, String,) {'
	assert lines[2] == '    let n = v.len(); let s = String::from("x");'
	assert lines[3] == "    (n, s,)"


def test_two_registrations_render_in_order_with_empty_aggregate(registry: SharedLibFunctions) -> None:
	registry.register("first", "let b = 2; a + b", [FunctionArg("a", "i32")])
	registry.register("bump", "a += 1", [FunctionArg("a", "i32", mutable=True)])
	text = registry.render()
	assert text.count("#[no_mangle]") == 2
	assert text.index("fn first(") < text.index("fn bump(")
	assert 'pub extern "C" fn bump(mut a: i32) -> () {\n    a += 1;\n    ()\n}\n' in text
	assert [f.name for f in registry] == ["first", "bump"]
	assert len(registry) == 2


def test_failed_registration_leaves_registry_unchanged(registry: SharedLibFunctions) -> None:
	registry.register("ok", "let b = 1;", [])
	with pytest.raises(ApplicationError):
		registry.register("broken", "let c = nowhere;", [])
	assert [f.name for f in registry.functions] == ["ok"]


def test_duplicate_and_invalid_names_are_rejected(registry: SharedLibFunctions) -> None:
	registry.register("ok", "let b = 1;", [])
	with pytest.raises(RegistryError, match="already registered"):
		registry.register("ok", "let c = 1;", [])
	with pytest.raises(RegistryError, match="not a valid function name"):
		registry.register("1bad", "let c = 1;", [])
	with pytest.raises(RegistryError, match="reserved keyword"):
		registry.register("fn", "let c = 1;", [])
	assert len(registry) == 1


def test_functions_view_is_read_only(registry: SharedLibFunctions) -> None:
	registry.register("ok", "let b = 1;", [])
	view = registry.functions
	assert isinstance(view, tuple)
	with pytest.raises(AttributeError):
		view[0].name = "other"  # type: ignore[misc]


def test_trailing_line_comment_keeps_terminator_out_of_comment(registry: SharedLibFunctions) -> None:
	fn = registry.register("add", "let b = 2; a + b // sum", [FunctionArg("a", "i32")])
	text = fn.render()
	assert "// sum;" not in text
	assert text.split("\n")[2:5] == ["    let b = 2; a + b // sum", "    ;", "    (b,)"]


def test_every_body_line_is_indented(registry: SharedLibFunctions) -> None:
	fn = registry.register("two", "let b = 2;\nlet c = b + 1;", [])
	assert fn.render().split("\n")[2:5] == ["    let b = 2;", "    let c = b + 1;", "    (b, c,)"]


def test_undefined_function_call_is_rejected(registry: SharedLibFunctions) -> None:
	with pytest.raises(ApplicationError, match="cannot find function `undefined_fn`"):
		registry.register("f", "let y: i32 = undefined_fn(1);", [])
	assert len(registry) == 0
