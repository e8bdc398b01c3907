# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Snippet AST.

Nodes are plain dataclasses; `loc` is excluded from equality so two parses of
the same text compare equal regardless of whitespace. The applier never
mutates nodes in place: instrumentation builds new `Block`s.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Union

from snipfn.core.span import Span


def _loc() -> Span:
	return field(default_factory=Span, compare=False, repr=False)


# ---- types ----


@dataclass
class TypeExpr:
	"""
	Surface type.

	`name` is the path (`i32`, `Vec`, `std::string::String`) or one of the
	structural markers `&`, `&mut`, `()` (tuple), `[]` (slice), `[;]` (array,
	with `length`).
	"""

	name: str
	args: List["TypeExpr"] = field(default_factory=list)
	length: Optional[str] = None

	def render(self) -> str:
		if self.name == "&":
			return f"&{self.args[0].render()}"
		if self.name == "&mut":
			return f"&mut {self.args[0].render()}"
		if self.name == "()":
			if len(self.args) == 1:
				return f"({self.args[0].render()},)"
			return "(" + ", ".join(a.render() for a in self.args) + ")"
		if self.name == "[]":
			return f"[{self.args[0].render()}]"
		if self.name == "[;]":
			return f"[{self.args[0].render()}; {self.length}]"
		if self.args:
			return f"{self.name}<" + ", ".join(a.render() for a in self.args) + ">"
		return self.name


# ---- patterns ----


@dataclass
class IdentPat:
	name: str
	mutable: bool = False
	loc: Span = _loc()


@dataclass
class WildPat:
	loc: Span = _loc()


@dataclass
class TuplePat:
	items: List["Pattern"]
	loc: Span = _loc()


Pattern = Union[IdentPat, WildPat, TuplePat]


def pattern_names(pat: Pattern) -> list[IdentPat]:
	"""Identifier patterns bound by `pat`, left to right."""
	if isinstance(pat, IdentPat):
		return [pat]
	if isinstance(pat, TuplePat):
		out: list[IdentPat] = []
		for item in pat.items:
			out.extend(pattern_names(item))
		return out
	return []


# ---- expressions ----


class Expr:
	loc: Span


@dataclass
class Literal(Expr):
	"""
	Literal token.

	`kind` is one of `int`, `float`, `str`, `char`, `bool`; `text` is the exact
	source spelling (suffix included) so rendering is lossless.
	"""

	kind: str
	text: str
	suffix: Optional[str] = None
	loc: Span = _loc()


@dataclass
class Name(Expr):
	ident: str
	loc: Span = _loc()


@dataclass
class Path(Expr):
	"""Multi-segment path such as `i32::MAX` or `String::from`."""

	segments: List[str]
	loc: Span = _loc()

	@property
	def text(self) -> str:
		return "::".join(self.segments)


@dataclass
class Call(Expr):
	callee: Union[Name, Path]
	args: List[Expr]
	loc: Span = _loc()


@dataclass
class MethodCall(Expr):
	receiver: Expr
	method: str
	args: List[Expr]
	loc: Span = _loc()


@dataclass
class MacroCall(Expr):
	"""`name!(args)` / `name![args]`; `repeat` marks `name![value; count]`."""

	name: str
	args: List[Expr]
	repeat: bool = False
	loc: Span = _loc()


@dataclass
class Field(Expr):
	value: Expr
	name: str
	loc: Span = _loc()


@dataclass
class Index(Expr):
	value: Expr
	index: Expr
	loc: Span = _loc()


@dataclass
class Unary(Expr):
	op: str  # "-", "!", "*"
	operand: Expr
	loc: Span = _loc()


@dataclass
class Borrow(Expr):
	operand: Expr
	mutable: bool = False
	loc: Span = _loc()


@dataclass
class Binary(Expr):
	op: str
	left: Expr
	right: Expr
	loc: Span = _loc()


@dataclass
class Cast(Expr):
	value: Expr
	target: str
	loc: Span = _loc()


@dataclass
class Range(Expr):
	start: Expr
	end: Expr
	inclusive: bool = False
	loc: Span = _loc()


@dataclass
class TupleExpr(Expr):
	"""Tuple literal; an empty item list is the unit value `()`."""

	items: List[Expr]
	loc: Span = _loc()


@dataclass
class ArrayExpr(Expr):
	items: List[Expr]
	loc: Span = _loc()


@dataclass
class ArrayRepeat(Expr):
	value: Expr
	count: Expr
	loc: Span = _loc()


@dataclass
class Block:
	statements: List["Stmt"]
	tail: Optional[Expr] = None
	loc: Span = _loc()


@dataclass
class BlockExpr(Expr):
	block: Block
	loc: Span = _loc()


@dataclass
class IfExpr(Expr):
	condition: Expr
	then_block: Block
	else_branch: Optional[Union[Block, "IfExpr"]] = None
	loc: Span = _loc()


@dataclass
class WhileExpr(Expr):
	condition: Expr
	body: Block
	loc: Span = _loc()


@dataclass
class LoopExpr(Expr):
	body: Block
	loc: Span = _loc()


@dataclass
class ForExpr(Expr):
	pattern: Pattern
	iterable: Expr
	body: Block
	loc: Span = _loc()


BlockLike = Union[BlockExpr, IfExpr, WhileExpr, LoopExpr, ForExpr]


# ---- statements ----


class Stmt:
	loc: Span


@dataclass
class LetStmt(Stmt):
	pattern: Pattern
	type_expr: Optional[TypeExpr] = None
	value: Optional[Expr] = None
	loc: Span = _loc()


@dataclass
class AssignStmt(Stmt):
	target: Expr
	value: Expr
	loc: Span = _loc()


@dataclass
class AugAssignStmt(Stmt):
	"""`target op= value`; an in-place mutation, never a new binding."""

	target: Expr
	op: str
	value: Expr
	loc: Span = _loc()


@dataclass
class ExprStmt(Stmt):
	value: Expr
	loc: Span = _loc()


@dataclass
class BlockStmt(Stmt):
	"""A block-like expression used as a statement (no trailing `;` needed)."""

	value: BlockLike
	loc: Span = _loc()


@dataclass
class BreakStmt(Stmt):
	loc: Span = _loc()


@dataclass
class ContinueStmt(Stmt):
	loc: Span = _loc()
