# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Render snippet AST back to Rust source.

Used to produce the analysis source from an instrumented block. Parentheses
are inserted only where operator precedence requires them, so rendering a
freshly parsed block reproduces the statements modulo whitespace.
"""

from __future__ import annotations

from typing import List

from .ast import (
	ArrayExpr,
	ArrayRepeat,
	AssignStmt,
	AugAssignStmt,
	Binary,
	Block,
	BlockExpr,
	BlockStmt,
	Borrow,
	BreakStmt,
	Call,
	Cast,
	ContinueStmt,
	Expr,
	ExprStmt,
	Field,
	ForExpr,
	IdentPat,
	IfExpr,
	Index,
	LetStmt,
	Literal,
	LoopExpr,
	MacroCall,
	MethodCall,
	Name,
	Path,
	Pattern,
	Range,
	Stmt,
	TupleExpr,
	TuplePat,
	Unary,
	WhileExpr,
	WildPat,
)

INDENT = "    "

_BINARY_PREC = {
	"||": 1,
	"&&": 2,
	"==": 3, "!=": 3, "<": 3, ">": 3, "<=": 3, ">=": 3,
	"|": 4,
	"^": 5,
	"&": 6,
	"+": 7, "-": 7,
	"*": 8, "/": 8, "%": 8,
}
_UNARY_PREC = 9
_CAST_PREC = 10
_POSTFIX_PREC = 11
_BLOCK_MACROS = {"vec"}


def _prec(expr: Expr) -> int:
	if isinstance(expr, Range):
		return 0
	if isinstance(expr, Binary):
		return _BINARY_PREC[expr.op]
	if isinstance(expr, (Unary, Borrow)):
		return _UNARY_PREC
	if isinstance(expr, Cast):
		return _CAST_PREC
	return _POSTFIX_PREC


def render_pattern(pat: Pattern) -> str:
	if isinstance(pat, IdentPat):
		return f"mut {pat.name}" if pat.mutable else pat.name
	if isinstance(pat, WildPat):
		return "_"
	if isinstance(pat, TuplePat):
		if len(pat.items) == 1:
			return f"({render_pattern(pat.items[0])},)"
		return "(" + ", ".join(render_pattern(p) for p in pat.items) + ")"
	raise TypeError(f"unknown pattern {pat!r}")


def _args(args: List[Expr]) -> str:
	return ", ".join(render_expr(a) for a in args)


def render_expr(expr: Expr, min_prec: int = 0, indent: str = "") -> str:
	text = _render_expr(expr, indent)
	if _prec(expr) < min_prec:
		return f"({text})"
	return text


def _render_expr(expr: Expr, indent: str) -> str:
	if isinstance(expr, Literal):
		return expr.text
	if isinstance(expr, Name):
		return expr.ident
	if isinstance(expr, Path):
		return expr.text
	if isinstance(expr, Call):
		return f"{render_expr(expr.callee)}({_args(expr.args)})"
	if isinstance(expr, MethodCall):
		recv = render_expr(expr.receiver, _POSTFIX_PREC)
		return f"{recv}.{expr.method}({_args(expr.args)})"
	if isinstance(expr, MacroCall):
		if expr.repeat:
			value, count = expr.args
			return f"{expr.name}![{render_expr(value)}; {render_expr(count)}]"
		if expr.name in _BLOCK_MACROS:
			return f"{expr.name}![{_args(expr.args)}]"
		return f"{expr.name}!({_args(expr.args)})"
	if isinstance(expr, Field):
		return f"{render_expr(expr.value, _POSTFIX_PREC)}.{expr.name}"
	if isinstance(expr, Index):
		return f"{render_expr(expr.value, _POSTFIX_PREC)}[{render_expr(expr.index)}]"
	if isinstance(expr, Unary):
		return f"{expr.op}{render_expr(expr.operand, _UNARY_PREC)}"
	if isinstance(expr, Borrow):
		prefix = "&mut " if expr.mutable else "&"
		return f"{prefix}{render_expr(expr.operand, _UNARY_PREC)}"
	if isinstance(expr, Binary):
		prec = _BINARY_PREC[expr.op]
		# comparisons do not chain
		left_min = prec + 1 if prec == 3 else prec
		left = render_expr(expr.left, left_min)
		right = render_expr(expr.right, prec + 1)
		return f"{left} {expr.op} {right}"
	if isinstance(expr, Cast):
		return f"{render_expr(expr.value, _CAST_PREC)} as {expr.target}"
	if isinstance(expr, Range):
		op = "..=" if expr.inclusive else ".."
		return f"{render_expr(expr.start, 1)}{op}{render_expr(expr.end, 1)}"
	if isinstance(expr, TupleExpr):
		if len(expr.items) == 1:
			return f"({render_expr(expr.items[0])},)"
		return f"({_args(expr.items)})"
	if isinstance(expr, ArrayExpr):
		return f"[{_args(expr.items)}]"
	if isinstance(expr, ArrayRepeat):
		return f"[{render_expr(expr.value)}; {render_expr(expr.count)}]"
	if isinstance(expr, BlockExpr):
		return _render_braced(expr.block, indent)
	if isinstance(expr, IfExpr):
		text = f"if {render_expr(expr.condition)} {_render_braced(expr.then_block, indent)}"
		if isinstance(expr.else_branch, Block):
			text += f" else {_render_braced(expr.else_branch, indent)}"
		elif expr.else_branch is not None:
			text += f" else {_render_expr(expr.else_branch, indent)}"
		return text
	if isinstance(expr, WhileExpr):
		return f"while {render_expr(expr.condition)} {_render_braced(expr.body, indent)}"
	if isinstance(expr, LoopExpr):
		return f"loop {_render_braced(expr.body, indent)}"
	if isinstance(expr, ForExpr):
		head = f"for {render_pattern(expr.pattern)} in {render_expr(expr.iterable)}"
		return f"{head} {_render_braced(expr.body, indent)}"
	raise TypeError(f"unknown expression {expr!r}")


def _render_braced(block: Block, indent: str) -> str:
	inner = render_block(block, indent + INDENT)
	if not inner:
		return "{}"
	return "{\n" + inner + "\n" + indent + "}"


def render_stmt(stmt: Stmt, indent: str = "") -> str:
	if isinstance(stmt, LetStmt):
		text = f"let {render_pattern(stmt.pattern)}"
		if stmt.type_expr is not None:
			text += f": {stmt.type_expr.render()}"
		if stmt.value is not None:
			text += f" = {render_expr(stmt.value, indent=indent)}"
		return text + ";"
	if isinstance(stmt, AssignStmt):
		return f"{render_expr(stmt.target)} = {render_expr(stmt.value, indent=indent)};"
	if isinstance(stmt, AugAssignStmt):
		return f"{render_expr(stmt.target)} {stmt.op} {render_expr(stmt.value, indent=indent)};"
	if isinstance(stmt, ExprStmt):
		return f"{render_expr(stmt.value)};"
	if isinstance(stmt, BlockStmt):
		return render_expr(stmt.value, indent=indent)
	if isinstance(stmt, BreakStmt):
		return "break;"
	if isinstance(stmt, ContinueStmt):
		return "continue;"
	raise TypeError(f"unknown statement {stmt!r}")


def render_block(block: Block, indent: str = "") -> str:
	"""Render statements (and tail) one per line, each prefixed by `indent`."""
	lines = [indent + render_stmt(s, indent) for s in block.statements]
	if block.tail is not None:
		lines.append(indent + render_expr(block.tail, indent=indent))
	return "\n".join(lines)


__all__ = ["render_block", "render_expr", "render_pattern", "render_stmt"]
