# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Snippet parser collaborator.

`parse_snippet` / `parse_type` wrap the lark front-end and convert every
front-end failure into `ParseError` with a pinned span, so callers never see
raw lark exceptions.
"""

from __future__ import annotations

from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, UnexpectedToken

from snipfn.core.diagnostics import Diagnostic
from snipfn.core.span import Span
from snipfn.errors import ParseError

from . import ast
from .parser import SnippetSyntaxError, parse_block, parse_type_expr
from .render import render_block, render_expr, render_stmt


def _describe(err: UnexpectedInput) -> str:
	if isinstance(err, UnexpectedEOF):
		return "unexpected end of snippet"
	if isinstance(err, UnexpectedToken):
		tok = err.token
		if tok.type == "$END":
			return "unexpected end of snippet"
		return f"unexpected token `{tok}`"
	if isinstance(err, UnexpectedCharacters):
		return f"unexpected character {err.char!r}"
	return "invalid syntax"


def _parse_error(what: str, message: str, span: Span) -> ParseError:
	diag = Diagnostic(message=message, phase="parser", span=span)
	return ParseError(f"cannot parse {what}: {message}", span=span, diagnostics=[diag])


def _input_span(err: UnexpectedInput) -> Span:
	span = Span(line=getattr(err, "line", None), column=getattr(err, "column", None))
	if span.line is not None and span.line < 0:
		return Span()
	return span


def parse_snippet(text: str) -> ast.Block:
	"""Parse snippet text into a `Block` (statements plus optional tail)."""
	try:
		return parse_block(text)
	except SnippetSyntaxError as err:
		raise _parse_error("snippet", str(err), err.loc) from err
	except UnexpectedInput as err:
		raise _parse_error("snippet", _describe(err), _input_span(err)) from err


def parse_type(text: str) -> ast.TypeExpr:
	"""Parse a type spelling such as `Vec<(i32, &str)>`."""
	try:
		return parse_type_expr(text)
	except SnippetSyntaxError as err:
		raise _parse_error(f"type `{text}`", str(err), err.loc) from err
	except UnexpectedInput as err:
		raise _parse_error(f"type `{text}`", _describe(err), _input_span(err)) from err


__all__ = [
	"ast",
	"parse_snippet",
	"parse_type",
	"render_block",
	"render_expr",
	"render_stmt",
]
