# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from snipfn.parser import parse_snippet, render_block


def _roundtrip(text: str) -> str:
	return render_block(parse_snippet(text))


def test_render_keeps_needed_parentheses_only() -> None:
	assert _roundtrip("let x = (1 + 2) * 3;") == "let x = (1 + 2) * 3;"
	assert _roundtrip("let y = 1 + (2 * 3);") == "let y = 1 + 2 * 3;"
	assert _roundtrip("let z = -(a + b);") == "let z = -(a + b);"


def test_render_literals_macros_and_tail() -> None:
	text = _roundtrip('let v = vec![1u8, 2]; println!("{}", v[0]); v.len()')
	assert text.split("\n") == [
		"let v = vec![1u8, 2];",
		'println!("{}", v[0]);',
		"v.len()",
	]


def test_render_nested_blocks_indent() -> None:
	text = _roundtrip("if a { let b = 1; } else { c = 2; }")
	assert text == "if a {\n    let b = 1;\n} else {\n    c = 2;\n}"


def test_render_tuple_and_unit() -> None:
	assert _roundtrip("let t = (1,); let u = ();") == "let t = (1,);\nlet u = ();"
