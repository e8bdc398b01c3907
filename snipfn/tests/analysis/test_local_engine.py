# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from pathlib import Path

import pytest

from snipfn.analysis import AnalysisRequest, LocalTypeAnalyzer, build_analysis_source
from snipfn.apply import apply_block
from snipfn.errors import AnalysisError
from snipfn.parser import parse_snippet
from snipfn.variables import Environment, FunctionArg


def _request(snippet: str, scope: list[FunctionArg]) -> AnalysisRequest:
	env = Environment()
	env.load_scope(scope)
	applied = apply_block(env, parse_snippet(snippet))
	return build_analysis_source(applied, scope)


def _types(snippet: str, *scope: tuple[str, str]) -> dict[str, str]:
	args = [FunctionArg(n, t) for n, t in scope]
	return LocalTypeAnalyzer().analyze(Path("."), _request(snippet, args))


def test_analysis_source_layout() -> None:
	"""Body is the instrumented block followed by one probe per live binding."""
	req = _request("let b = 2; a + b", [FunctionArg("a", "i32")])
	lines = req.source.split("\n")
	assert lines[0].startswith("#![allow(")
	assert lines[2] == "pub fn __snipfn_analysis(a: i32) {"
	assert lines[3:8] == [
		"    let b = 2;",
		"    a + b;",
		"    let _: () = a;",
		"    let _: () = b;",
		"}",
	]
	assert req.probes == ["a", "b"]
	assert req.probe_lines == {"a": 6, "b": 7}


def test_moved_bindings_are_not_probed() -> None:
	req = _request("let t = s;", [FunctionArg("s", "String")])
	assert req.probes == ["t"]
	assert "let _: () = s;" not in req.source


def test_integer_literal_takes_type_from_arithmetic() -> None:
	assert _types("let b = 2; a + b", ("a", "u64")) == {"a": "u64", "b": "u64"}


def test_unconstrained_literals_fall_back() -> None:
	assert _types("let i = 7; let f = 2.5; let c = 'x'; let t = true;") == {
		"i": "i32",
		"f": "f64",
		"c": "char",
		"t": "bool",
	}


def test_std_constructors_and_macros() -> None:
	types = _types(
		'let s = String::from("x"); let v = vec![1u8, 2]; let o = Some(3); '
		'let m = format!("{}", 1); let e: Vec<i64> = Vec::new(); let arr = [0u16; 4];'
	)
	assert types == {
		"s": "String",
		"v": "Vec<u8>",
		"o": "Option<i32>",
		"m": "String",
		"e": "Vec<i64>",
		"arr": "[u16; 4]",
	}


def test_methods_references_and_tuples() -> None:
	types = _types(
		"let n = s.len(); let r = &s; let t = (n, 1.0f32); let first = t.0; let up = s.to_uppercase();",
		("s", "String"),
	)
	assert types["n"] == "usize"
	assert types["r"] == "&String"
	assert types["t"] == "(usize, f32)"
	assert types["first"] == "usize"
	assert types["up"] == "String"


def test_vec_element_from_push_and_loop_accumulator() -> None:
	types = _types("let mut v = Vec::new(); let mut total = 0; for i in 0..10u64 { v.push(i); total += i; }")
	assert types == {"v": "Vec<u64>", "total": "u64"}


def test_if_expression_unifies_branches() -> None:
	assert _types("let x = if flag { 1 } else { 2i8 };", ("flag", "bool"))["x"] == "i8"


def test_cast_and_comparison() -> None:
	types = _types("let w = a as i64; let big = a > 3;", ("a", "i32"))
	assert types["w"] == "i64"
	assert types["big"] == "bool"


def test_unknown_call_stays_unresolved() -> None:
	types = _types("let x = helpers::compute(1);")
	assert "x" not in types


def test_definite_mismatch_is_analysis_error() -> None:
	with pytest.raises(AnalysisError, match="mismatched types"):
		_types("let x: i32 = true;")
