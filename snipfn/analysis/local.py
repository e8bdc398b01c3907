# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Built-in type engine.

A small unification-based inference over the snippet AST, covering the
statement subset the parser accepts plus a table of common std constructors,
macros and methods. It answers the same question the external engine does
("what is the concrete type of each probed binding?") without a Rust
toolchain:

  * integer/float literals start as kinded type variables and fall back to
    `i32` / `f64` when nothing constrains them, as rustc does;
  * arithmetic, comparisons, assignments and annotations unify their operands;
  * anything outside the tables (user functions, traits, closures) yields an
    unconstrained variable, and a binding whose type stays unconstrained is
    left out of the result.

Definite mismatches between concrete types are reported as `AnalysisError`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path as FsPath
from typing import Dict, List, Optional, Tuple, Union

from snipfn.core.diagnostics import Diagnostic
from snipfn.core.span import Span
from snipfn.errors import AnalysisError, ParseError
from snipfn.parser import parse_type
from snipfn.parser.ast import (
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
	TypeExpr,
	Unary,
	WhileExpr,
)

from .source import AnalysisRequest

INT_TYPES = frozenset(
	{"i8", "i16", "i32", "i64", "i128", "isize", "u8", "u16", "u32", "u64", "u128", "usize"}
)
FLOAT_TYPES = frozenset({"f32", "f64"})
_COMPARISON_OPS = frozenset({"==", "!=", "<", ">", "<=", ">="})
_REF_NAMES = ("&", "&mut")


class TVar:
	"""Inference variable; `kind` is None, "int" or "float"."""

	__slots__ = ("id", "kind", "ref")

	def __init__(self, ident: int, kind: Optional[str] = None) -> None:
		self.id = ident
		self.kind = kind
		self.ref: Optional["Ty"] = None

	def __repr__(self) -> str:
		return f"?{self.id}{'/' + self.kind if self.kind else ''}"


@dataclass(frozen=True)
class TCon:
	"""Concrete type constructor, using the same markers as `TypeExpr`."""

	name: str
	args: Tuple["Ty", ...] = ()
	length: Optional[str] = None


Ty = Union[TVar, TCon]

UNIT = TCon("()")
BOOL = TCon("bool")
CHAR = TCon("char")
USIZE = TCon("usize")
STRING = TCon("String")
STR = TCon("str")
STR_REF = TCon("&", (STR,))


def _int_text(text: str) -> str:
	for suffix in sorted(INT_TYPES, key=len, reverse=True):
		if text.endswith(suffix):
			text = text[: -len(suffix)]
			break
	return text.replace("_", "")


class _Inference:
	def __init__(self) -> None:
		self._next = 0
		self._vars: List[TVar] = []
		self.frames: List[Dict[str, Ty]] = [{}]

	# ---- type variables ----

	def fresh(self, kind: Optional[str] = None) -> TVar:
		self._next += 1
		var = TVar(self._next, kind)
		self._vars.append(var)
		return var

	def resolve(self, t: Ty) -> Ty:
		while isinstance(t, TVar) and t.ref is not None:
			t = t.ref
		return t

	def _occurs(self, var: TVar, t: Ty) -> bool:
		t = self.resolve(t)
		if t is var:
			return True
		if isinstance(t, TCon):
			return any(self._occurs(var, a) for a in t.args)
		return False

	def _bind(self, var: TVar, t: TCon) -> bool:
		if var.kind == "int" and t.name not in INT_TYPES:
			return False
		if var.kind == "float" and t.name not in FLOAT_TYPES:
			return False
		if self._occurs(var, t):
			return False
		var.ref = t
		return True

	def unify(self, a: Ty, b: Ty) -> bool:
		a = self.resolve(a)
		b = self.resolve(b)
		if a is b:
			return True
		if isinstance(a, TVar) and isinstance(b, TVar):
			if a.kind and b.kind and a.kind != b.kind:
				return False
			b.kind = b.kind or a.kind
			a.ref = b
			return True
		if isinstance(a, TVar):
			return self._bind(a, b)  # type: ignore[arg-type]
		if isinstance(b, TVar):
			return self._bind(b, a)
		if a.name != b.name or len(a.args) != len(b.args):
			return False
		if a.length is not None and b.length is not None and a.length != b.length:
			return False
		return all(self.unify(x, y) for x, y in zip(a.args, b.args))

	def default_literals(self) -> None:
		for var in self._vars:
			if var.ref is None and var.kind == "int":
				var.ref = TCon("i32")
			elif var.ref is None and var.kind == "float":
				var.ref = TCon("f64")

	# ---- rendering ----

	def render(self, t: Ty, partial: bool = False) -> Optional[str]:
		"""
		Rust spelling of `t`; None while any part is unresolved (unless
		`partial`, which spells holes as `{integer}`/`{float}`/`_`).
		"""
		t = self.resolve(t)
		if isinstance(t, TVar):
			if not partial:
				return None
			return {"int": "{integer}", "float": "{float}"}.get(t.kind or "", "_")
		args: List[str] = []
		for a in t.args:
			text = self.render(a, partial)
			if text is None:
				return None
			args.append(text)
		if t.name == "&":
			return f"&{args[0]}"
		if t.name == "&mut":
			return f"&mut {args[0]}"
		if t.name == "()":
			return f"({args[0]},)" if len(args) == 1 else "(" + ", ".join(args) + ")"
		if t.name == "[]":
			return f"[{args[0]}]"
		if t.name == "[;]":
			return f"[{args[0]}; {t.length}]"
		if args:
			return f"{t.name}<{', '.join(args)}>"
		return t.name

	# ---- type conversion ----

	def from_type_expr(self, te: TypeExpr) -> Ty:
		if te.name == "_":
			return self.fresh()
		length = _int_text(te.length) if te.length is not None else None
		return TCon(te.name, tuple(self.from_type_expr(a) for a in te.args), length)

	def from_type_string(self, text: str) -> Ty:
		try:
			return self.from_type_expr(parse_type(text))
		except ParseError:
			# Spellings outside the grammar (`dyn Trait`, lifetimes) stay opaque.
			return TCon(text)

	def deref(self, t: Ty) -> Ty:
		t = self.resolve(t)
		while isinstance(t, TCon) and t.name in _REF_NAMES:
			t = self.resolve(t.args[0])
		return t

	def strip_one(self, t: Ty) -> Ty:
		t = self.resolve(t)
		if isinstance(t, TCon) and (t.name in _REF_NAMES or t.name in ("Box", "Rc", "Arc")) and t.args:
			return t.args[0]
		return self.fresh()

	def is_numeric(self, t: Ty) -> bool:
		t = self.resolve(t)
		if isinstance(t, TVar):
			return t.kind is not None
		return t.name in INT_TYPES or t.name in FLOAT_TYPES

	def elem(self, t: Ty) -> Optional[Ty]:
		"""Element type of vectors, arrays and slices (through references)."""
		t = self.deref(t)
		if isinstance(t, TCon) and t.name in ("Vec", "VecDeque", "[;]", "[]") and t.args:
			return t.args[0]
		return None

	# ---- diagnostics ----

	def require(self, expected: Ty, found: Ty, span: Span) -> None:
		if self.unify(expected, found):
			return
		exp = self.render(expected, partial=True) or "_"
		got = self.render(found, partial=True) or "_"
		if "&" in exp or "&" in got:
			# Deref/unsize coercions (`&String` -> `&str`) are not modelled.
			return
		message = f"mismatched types: expected `{exp}`, found `{got}`"
		diag = Diagnostic(message=message, code="E-MISMATCH", phase="analysis", span=span)
		raise AnalysisError(message, span=span, diagnostics=[diag])

	# ---- scopes ----

	def lookup(self, name: str) -> Ty:
		for frame in reversed(self.frames):
			if name in frame:
				return frame[name]
		return self.fresh()

	def declare(self, name: str, t: Ty) -> None:
		self.frames[-1][name] = t

	def bind_pattern(self, pat: Pattern, t: Ty) -> None:
		if isinstance(pat, IdentPat):
			self.declare(pat.name, t)
			return
		if not isinstance(pat, TuplePat):
			return
		r = self.resolve(t)
		if isinstance(r, TCon) and r.name == "()" and len(r.args) == len(pat.items):
			parts = list(r.args)
		else:
			parts = [self.fresh() for _ in pat.items]
			self.unify(t, TCon("()", tuple(parts)))
		for item, part in zip(pat.items, parts):
			self.bind_pattern(item, part)

	# ---- statements ----

	def block(self, block: Block) -> Ty:
		self.frames.append({})
		try:
			return self.block_body(block)
		finally:
			self.frames.pop()

	def block_body(self, block: Block) -> Ty:
		for stmt in block.statements:
			self.stmt(stmt)
		if block.tail is not None:
			return self.expr(block.tail)
		return UNIT

	def stmt(self, stmt: Stmt) -> None:
		if isinstance(stmt, LetStmt):
			value_t = self.expr(stmt.value) if stmt.value is not None else self.fresh()
			if stmt.type_expr is not None:
				ann = self.from_type_expr(stmt.type_expr)
				if stmt.value is not None:
					self.require(ann, value_t, stmt.loc)
				value_t = ann
			self.bind_pattern(stmt.pattern, value_t)
		elif isinstance(stmt, AssignStmt):
			value_t = self.expr(stmt.value)
			self.require(self.expr(stmt.target), value_t, stmt.loc)
		elif isinstance(stmt, AugAssignStmt):
			value_t = self.expr(stmt.value)
			target_t = self.expr(stmt.target)
			if self.deref(target_t) == STRING:
				return
			if self.is_numeric(target_t) or self.is_numeric(self.deref(value_t)):
				self.require(target_t, self.deref(value_t), stmt.loc)
		elif isinstance(stmt, (ExprStmt, BlockStmt)):
			self.expr(stmt.value)
		elif isinstance(stmt, (BreakStmt, ContinueStmt)):
			return
		else:
			raise TypeError(f"unknown statement {stmt!r}")

	# ---- expressions ----

	def expr(self, e: Expr) -> Ty:
		if isinstance(e, Literal):
			return self._literal(e)
		if isinstance(e, Name):
			if e.ident == "None" and not any(e.ident in f for f in self.frames):
				return TCon("Option", (self.fresh(),))
			return self.lookup(e.ident)
		if isinstance(e, Path):
			return self._path(e)
		if isinstance(e, Call):
			return self._call(e)
		if isinstance(e, MethodCall):
			return self._method(e)
		if isinstance(e, MacroCall):
			return self._macro(e)
		if isinstance(e, Field):
			base = self.deref(self.expr(e.value))
			if isinstance(base, TCon) and base.name == "()" and e.name.isdigit():
				idx = int(e.name)
				if idx < len(base.args):
					return base.args[idx]
			return self.fresh()
		if isinstance(e, Index):
			return self._index(e)
		if isinstance(e, Unary):
			operand = self.expr(e.operand)
			if e.op == "*":
				return self.strip_one(operand)
			if e.op == "!" and self.deref(operand) == BOOL:
				return BOOL
			return self.deref(operand)
		if isinstance(e, Borrow):
			return TCon("&mut" if e.mutable else "&", (self.expr(e.operand),))
		if isinstance(e, Binary):
			return self._binary(e)
		if isinstance(e, Cast):
			self.expr(e.value)
			return TCon(e.target)
		if isinstance(e, Range):
			start = self.expr(e.start)
			self.unify(start, self.expr(e.end))
			name = "std::ops::RangeInclusive" if e.inclusive else "std::ops::Range"
			return TCon(name, (start,))
		if isinstance(e, TupleExpr):
			return TCon("()", tuple(self.expr(i) for i in e.items))
		if isinstance(e, ArrayExpr):
			item = self.fresh()
			for i in e.items:
				self.require(item, self.expr(i), i.loc)
			return TCon("[;]", (item,), str(len(e.items)))
		if isinstance(e, ArrayRepeat):
			item = self.expr(e.value)
			self.unify(self.expr(e.count), USIZE)
			if isinstance(e.count, Literal) and e.count.kind == "int":
				return TCon("[;]", (item,), _int_text(e.count.text))
			return self.fresh()
		if isinstance(e, BlockExpr):
			return self.block(e.block)
		if isinstance(e, IfExpr):
			self.require(BOOL, self.expr(e.condition), e.condition.loc)
			then_t = self.block(e.then_block)
			if e.else_branch is None:
				return UNIT
			else_t = self.block(e.else_branch) if isinstance(e.else_branch, Block) else self.expr(e.else_branch)
			self.unify(then_t, else_t)
			return then_t
		if isinstance(e, WhileExpr):
			self.require(BOOL, self.expr(e.condition), e.condition.loc)
			self.block(e.body)
			return UNIT
		if isinstance(e, LoopExpr):
			self.block(e.body)
			return UNIT
		if isinstance(e, ForExpr):
			item = self._iter_item(self.expr(e.iterable))
			self.frames.append({})
			try:
				self.bind_pattern(e.pattern, item)
				self.block_body(e.body)
			finally:
				self.frames.pop()
			return UNIT
		raise TypeError(f"unknown expression {e!r}")

	def _literal(self, e: Literal) -> Ty:
		if e.kind == "int":
			return TCon(e.suffix) if e.suffix else self.fresh("int")
		if e.kind == "float":
			return TCon(e.suffix) if e.suffix else self.fresh("float")
		if e.kind == "bool":
			return BOOL
		if e.kind == "char":
			return CHAR
		return STR_REF

	def _path(self, e: Path) -> Ty:
		segs = e.segments
		if "consts" in segs:
			owner = segs[segs.index("consts") - 1]
			if owner in FLOAT_TYPES:
				return TCon(owner)
		owner = segs[-2]
		if owner in INT_TYPES or owner in FLOAT_TYPES:
			if segs[-1] == "BITS":
				return TCon("u32")
			return TCon(owner)
		return self.fresh()

	def _call(self, e: Call) -> Ty:
		args = [self.expr(a) for a in e.args]
		segs = [e.callee.ident] if isinstance(e.callee, Name) else list(e.callee.segments)
		last = segs[-1]
		owner = segs[-2] if len(segs) >= 2 else None
		first = args[0] if args else self.fresh()
		if segs == ["Some"]:
			return TCon("Option", (first,))
		if segs == ["Ok"]:
			return TCon("Result", (first, self.fresh()))
		if segs == ["Err"]:
			return TCon("Result", (self.fresh(), first))
		if last == "drop" and (owner is None or owner == "mem"):
			return UNIT
		if owner == "String" and last in ("new", "from", "with_capacity"):
			return STRING
		if owner in ("Vec", "VecDeque") and last in ("new", "with_capacity"):
			return TCon(owner, (self.fresh(),))
		if owner in ("HashMap", "BTreeMap") and last in ("new", "with_capacity"):
			return TCon(owner, (self.fresh(), self.fresh()))
		if owner in ("HashSet", "BTreeSet") and last in ("new", "with_capacity"):
			return TCon(owner, (self.fresh(),))
		if owner in ("Box", "Rc", "Arc") and last == "new":
			return TCon(owner, (first,))
		if owner is not None and (owner in INT_TYPES or owner in FLOAT_TYPES) and last == "from":
			return TCon(owner)
		return self.fresh()

	def _macro(self, e: MacroCall) -> Ty:
		args = [self.expr(a) for a in e.args]
		if e.name == "vec":
			if e.repeat:
				self.unify(args[1], USIZE)
				return TCon("Vec", (args[0],))
			item = self.fresh()
			for arg, node in zip(args, e.args):
				self.require(item, arg, node.loc)
			return TCon("Vec", (item,))
		if e.name == "format":
			return STRING
		if e.name in ("print", "println", "eprint", "eprintln", "assert", "assert_eq", "assert_ne"):
			return UNIT
		if e.name == "dbg" and len(args) == 1:
			return args[0]
		if e.name == "matches":
			return BOOL
		if e.name in ("concat", "stringify", "env", "file", "module_path"):
			return STR_REF
		if e.name in ("line", "column"):
			return TCon("u32")
		return self.fresh()

	def _method(self, e: MethodCall) -> Ty:
		recv = self.expr(e.receiver)
		args = [self.expr(a) for a in e.args]
		base = self.deref(recv)
		m = e.method
		if m in ("len", "count", "capacity"):
			return USIZE
		if m in _BOOL_METHODS:
			return BOOL
		if m == "to_string" or (m in ("to_uppercase", "to_lowercase", "repeat", "replace") and base != CHAR):
			return STRING
		if m in ("trim", "trim_start", "trim_end", "as_str"):
			return STR_REF
		if m == "as_bytes":
			return TCon("&", (TCon("[]", (TCon("u8"),)),))
		if m in _UNIT_METHODS:
			if m == "push" and args:
				item = self.elem(recv)
				if item is not None:
					self.unify(item, args[0])
			return UNIT
		if m == "clone":
			one = self.resolve(recv)
			if isinstance(one, TCon) and one.name == "&":
				inner = self.resolve(one.args[0])
				if isinstance(inner, TCon) and inner.name in ("str", "[]"):
					return one
				return inner
			return one
		if m == "to_owned":
			if base == STR:
				return STRING
			if isinstance(base, TCon) and base.name == "[]":
				return TCon("Vec", base.args)
			return base
		if m == "to_vec":
			item = self.elem(recv)
			return TCon("Vec", (item if item is not None else self.fresh(),))
		if m in ("unwrap", "expect", "unwrap_or", "unwrap_or_default", "unwrap_or_else"):
			if isinstance(base, TCon) and base.name in ("Option", "Result") and base.args:
				if m == "unwrap_or" and args:
					self.unify(base.args[0], args[0])
				return base.args[0]
			return self.fresh()
		if m in ("get", "first", "last"):
			item = self.elem(recv)
			if item is None and isinstance(base, TCon) and base.name in ("HashMap", "BTreeMap") and len(base.args) == 2:
				item = base.args[1]
			return TCon("Option", (TCon("&", (item if item is not None else self.fresh(),)),))
		if m == "pop":
			item = self.elem(recv)
			return TCon("Option", (item if item is not None else self.fresh(),))
		if m in _SELF_METHODS and self.is_numeric(base):
			if m in _SELF_BINARY_METHODS and args:
				self.unify(base, self.deref(args[0]))
			return base
		return self.fresh()

	def _index(self, e: Index) -> Ty:
		base = self.deref(self.expr(e.value))
		idx = self.expr(e.index)
		ranged = isinstance(e.index, Range)
		is_map = isinstance(base, TCon) and base.name in ("HashMap", "BTreeMap")
		if not ranged and not is_map:
			self.unify(idx, USIZE)
		if isinstance(base, TCon):
			if base.name in ("Vec", "VecDeque", "[;]", "[]") and base.args:
				return TCon("[]", base.args) if ranged else base.args[0]
			if base.name in ("String", "str") and ranged:
				return STR
			if base.name in ("HashMap", "BTreeMap") and len(base.args) == 2:
				return base.args[1]
		return self.fresh()

	def _binary(self, e: Binary) -> Ty:
		left = self.expr(e.left)
		right = self.expr(e.right)
		if e.op in ("&&", "||"):
			self.require(BOOL, left, e.left.loc)
			self.require(BOOL, right, e.right.loc)
			return BOOL
		lt = self.deref(left)
		rt = self.deref(right)
		if e.op in _COMPARISON_OPS:
			self.unify(lt, rt)
			return BOOL
		if lt == STRING:
			return STRING
		if self.is_numeric(lt) or self.is_numeric(rt) or lt == BOOL:
			self.require(lt, rt, e.loc)
			return lt
		return self.fresh()

	def _iter_item(self, t: Ty) -> Ty:
		r = self.resolve(t)
		if isinstance(r, TCon):
			if r.name in ("std::ops::Range", "std::ops::RangeInclusive") and r.args:
				return r.args[0]
			if r.name in ("Vec", "VecDeque", "HashSet", "BTreeSet", "[;]") and r.args:
				return r.args[0]
			if r.name in ("HashMap", "BTreeMap") and len(r.args) == 2:
				return TCon("()", r.args)
			if r.name in _REF_NAMES:
				item = self.elem(r)
				if item is not None:
					return TCon(r.name, (item,))
		return self.fresh()


_BOOL_METHODS = frozenset(
	{
		"is_empty", "contains", "contains_key", "starts_with", "ends_with",
		"is_some", "is_none", "is_ok", "is_err", "is_positive", "is_negative",
		"is_nan", "is_ascii", "is_alphabetic", "is_numeric", "is_alphanumeric",
		"is_whitespace", "is_ascii_digit", "eq", "ne",
	}
)
_UNIT_METHODS = frozenset(
	{
		"push", "push_str", "clear", "sort", "sort_unstable", "reverse",
		"extend", "truncate", "dedup", "retain", "push_back", "push_front",
	}
)
_SELF_BINARY_METHODS = frozenset(
	{
		"min", "max", "wrapping_add", "wrapping_sub", "wrapping_mul",
		"saturating_add", "saturating_sub", "saturating_mul", "rem_euclid",
		"div_euclid", "powf", "abs_diff", "atan2", "hypot",
	}
)
_SELF_METHODS = _SELF_BINARY_METHODS | frozenset(
	{
		"abs", "pow", "signum", "clamp", "sqrt", "cbrt", "sin", "cos", "tan",
		"floor", "ceil", "round", "trunc", "fract", "exp", "ln", "log10", "log2",
		"powi", "recip", "to_degrees", "to_radians",
	}
)

_UNRESOLVED = re.compile(r"\{integer\}|\{float\}")


class LocalTypeAnalyzer:
	"""Type engine that runs in-process over `AnalysisRequest.block`."""

	name = "local"

	def analyze(self, workspace: FsPath, request: AnalysisRequest) -> Dict[str, str]:
		inf = _Inference()
		for arg in request.scope:
			inf.declare(arg.name, inf.from_type_string(arg.type_name))
		inf.block_body(request.block)
		inf.default_literals()
		resolved: Dict[str, str] = {}
		for name in request.probes:
			text = inf.render(inf.lookup(name))
			if text is not None and not _UNRESOLVED.search(text):
				resolved[name] = text
		return resolved


__all__ = ["LocalTypeAnalyzer", "TCon", "TVar"]
