# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Snippet application: run a parsed block against a binding environment.

`apply_block` is pure. It copies the environment, walks the block in order and
returns the updated copy together with an instrumented block:

  * `let` introduces `NEW` bindings (shadowing overwrites the old descriptor);
  * by-value uses of non-Copy bindings flip them to `MOVED`;
  * plain assignment to a `MOVED` binding restores it (`AVAILABLE` for the
    untouched scope binding, `NEW` for anything the snippet introduced);
  * names introduced inside nested blocks are dropped when the block ends,
    while moves/restorations of outer bindings persist;
  * the trailing expression is either discarded or echoed, depending on
    `display_final_expression`.

This is not a borrow checker: it only tracks enough state to
decide which bindings survive the snippet.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Mapping, Optional, Set, Tuple

from snipfn.core.diagnostics import Diagnostic
from snipfn.core.span import Span
from snipfn.errors import ApplicationError
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
	TypeExpr,
	Unary,
	WhileExpr,
	pattern_names,
)
from snipfn.variables import UNKNOWN_TYPE, Environment, MoveState, VariableState

COPY_PRIMITIVES = frozenset(
	{
		"i8", "i16", "i32", "i64", "i128", "isize",
		"u8", "u16", "u32", "u64", "u128", "usize",
		"f32", "f64", "bool", "char", "()", "!",
	}
)

# Macros that only borrow their arguments.
BORROWING_MACROS = frozenset(
	{
		"print", "println", "eprint", "eprintln", "format", "write", "writeln",
		"panic", "assert", "assert_eq", "assert_ne", "debug_assert",
		"debug_assert_eq", "debug_assert_ne", "format_args", "unreachable", "todo",
	}
)

# Methods taking `self` by value.
CONSUMING_METHODS = frozenset(
	{"into", "unwrap", "expect", "unwrap_or", "unwrap_or_default", "unwrap_or_else", "ok", "err"}
)

_COMPARISON_OPS = frozenset({"==", "!=", "<", ">", "<=", ">="})

# Bare names that resolve to values without a binding.
PRELUDE_VALUES = frozenset({"None"})

# Bare callees that resolve to prelude functions and constructors.
PRELUDE_FUNCTIONS = frozenset({"drop", "Some", "Ok", "Err"})


@dataclass(frozen=True)
class AppliedBlock:
	"""Result of applying a block: the updated environment and instrumented block."""

	env: Environment
	block: Block


def split_top_level(text: str, sep: str = ",") -> List[str]:
	"""Split on `sep` outside of `<>`, `()` and `[]` nesting."""
	parts: List[str] = []
	depth = 0
	buf: List[str] = []
	for ch in text:
		if ch in "<([":
			depth += 1
		elif ch in ">)]":
			depth -= 1
		if ch == sep and depth == 0:
			parts.append("".join(buf).strip())
			buf = []
			continue
		buf.append(ch)
	tail = "".join(buf).strip()
	if tail:
		parts.append(tail)
	return parts


@lru_cache(maxsize=512)
def is_copy_type(type_name: str) -> bool:
	"""
	Best-effort `Copy` classification of a type spelling.

	Unknown types (`_`) count as Copy so a binding is never marked moved before
	its type is known.
	"""
	t = type_name.strip()
	if t == UNKNOWN_TYPE or t in COPY_PRIMITIVES:
		return True
	if t.startswith("&mut "):
		return False
	if t.startswith("&"):
		return True
	if t.startswith("(") and t.endswith(")"):
		return all(is_copy_type(p) for p in split_top_level(t[1:-1]))
	if t.startswith("[") and t.endswith("]"):
		parts = split_top_level(t[1:-1], ";")
		return len(parts) == 2 and is_copy_type(parts[0])
	if t.startswith("Option<") and t.endswith(">"):
		return is_copy_type(t[len("Option<"):-1])
	return False


def _literal_type(expr: Optional[Expr], env: Environment) -> str:
	"""
	Type guess used before the analysis engine has run. Only cases that are
	unambiguous from syntax are answered; everything else is `_`.
	"""
	if isinstance(expr, Literal):
		if expr.kind in ("int", "float"):
			return expr.suffix or UNKNOWN_TYPE
		return {"bool": "bool", "char": "char", "str": "&str"}[expr.kind]
	if isinstance(expr, Name):
		state = env.get(expr.ident)
		return state.type_name if state is not None else UNKNOWN_TYPE
	if isinstance(expr, MacroCall):
		if expr.name == "format":
			return "String"
		if expr.name == "vec":
			return f"Vec<{UNKNOWN_TYPE}>"
	if isinstance(expr, Call) and isinstance(expr.callee, Path):
		if expr.callee.segments in (["String", "from"], ["String", "new"]):
			return "String"
		if expr.callee.segments[0] == "Vec" and expr.callee.segments[-1] in ("new", "with_capacity"):
			return f"Vec<{UNKNOWN_TYPE}>"
	if isinstance(expr, MethodCall) and expr.method in ("to_string", "to_owned") and not expr.args:
		if expr.method == "to_string" or _literal_type(expr.receiver, env) == "&str":
			return "String"
	if isinstance(expr, Borrow) and not expr.mutable:
		inner = _literal_type(expr.operand, env)
		return f"&{inner}" if inner != UNKNOWN_TYPE else UNKNOWN_TYPE
	if isinstance(expr, Cast):
		return expr.target
	return UNKNOWN_TYPE


def _pattern_types(pattern: Pattern, type_expr: Optional[TypeExpr]) -> Dict[int, str]:
	"""Map id(IdentPat) -> annotated type, distributing tuple annotations."""
	if type_expr is None:
		return {}
	if isinstance(pattern, IdentPat):
		return {id(pattern): type_expr.render()}
	out: Dict[int, str] = {}
	items = getattr(pattern, "items", None)
	if items is not None and type_expr.name == "()" and len(type_expr.args) == len(items):
		for item, arg in zip(items, type_expr.args):
			out.update(_pattern_types(item, arg))
	return out


class _Frame:
	"""Names declared in one block, with what they shadowed."""

	def __init__(self) -> None:
		self.saved: List[Tuple[str, Optional[VariableState], bool]] = []
		self.declared: Set[str] = set()


class _Applier:
	def __init__(
		self,
		env: Environment,
		display_final_expression: bool,
		type_hints: Mapping[str, str],
	) -> None:
		self.env = env
		self.display_final_expression = display_final_expression
		self.type_hints = dict(type_hints)
		self.frames: List[_Frame] = []
		# Names whose *current* binding was introduced by the snippet.
		self.introduced: Set[str] = set()
		self.final_decls: Set[int] = set()

	# ---- errors ----

	def _error(self, message: str, span: Span, code: str) -> ApplicationError:
		diag = Diagnostic(message=message, code=code, phase="apply", span=span)
		return ApplicationError(message, span=span, diagnostics=[diag])

	# ---- scopes ----

	def _push(self) -> None:
		self.frames.append(_Frame())

	def _pop(self) -> None:
		frame = self.frames.pop()
		for name, prev, was_introduced in reversed(frame.saved):
			if prev is None:
				self.env.remove(name)
			else:
				self.env.restore(name, prev)
			if was_introduced:
				self.introduced.add(name)
			else:
				self.introduced.discard(name)

	@property
	def top_level(self) -> bool:
		return len(self.frames) == 1

	def _bind(self, pat: IdentPat, type_name: str) -> None:
		frame = self.frames[-1]
		if pat.name not in frame.declared:
			frame.declared.add(pat.name)
			frame.saved.append((pat.name, self.env.get(pat.name), pat.name in self.introduced))
		self.env.declare(
			pat.name,
			VariableState(
				type_name=type_name,
				is_mut=pat.mutable,
				move_state=MoveState.NEW,
				definition_span=pat.loc,
			),
			reorder=self.top_level,
		)
		self.introduced.add(pat.name)

	def _bind_pattern(self, pattern: Pattern, annotated: Dict[int, str], guess: str) -> None:
		names = pattern_names(pattern)
		for ident in names:
			type_name = annotated.get(id(ident))
			if type_name is None and self.top_level and id(ident) in self.final_decls:
				type_name = self.type_hints.get(ident.name)
			if type_name is None:
				type_name = guess if isinstance(pattern, IdentPat) else UNKNOWN_TYPE
			self._bind(ident, type_name)

	# ---- entry ----

	def run(self, block: Block) -> Block:
		last_decl: Dict[str, int] = {}
		for stmt in block.statements:
			if isinstance(stmt, LetStmt):
				for ident in pattern_names(stmt.pattern):
					last_decl[ident.name] = id(ident)
		self.final_decls = set(last_decl.values())
		self._push()
		for stmt in block.statements:
			self._stmt(stmt)
		statements = list(block.statements)
		if block.tail is not None:
			echo = self.display_final_expression
			self._expr(block.tail, moving=not echo)
			if echo:
				fmt = Literal(kind="str", text='"{:?}"', loc=block.tail.loc)
				shown = MacroCall(name="println", args=[fmt, block.tail], loc=block.tail.loc)
				statements.append(ExprStmt(value=shown, loc=block.tail.loc))
			else:
				statements.append(ExprStmt(value=block.tail, loc=block.tail.loc))
		# The outermost frame is the snippet itself: its bindings stay.
		self.frames.pop()
		return Block(statements=statements, tail=None, loc=block.loc)

	# ---- statements ----

	def _stmt(self, stmt: Stmt) -> None:
		if isinstance(stmt, LetStmt):
			if stmt.value is not None:
				self._expr(stmt.value, moving=True)
			guess = stmt.type_expr.render() if stmt.type_expr is not None else _literal_type(stmt.value, self.env)
			self._bind_pattern(stmt.pattern, _pattern_types(stmt.pattern, stmt.type_expr), guess)
		elif isinstance(stmt, AssignStmt):
			self._expr(stmt.value, moving=True)
			self._assign_target(stmt.target)
		elif isinstance(stmt, AugAssignStmt):
			self._expr(stmt.value, moving=True)
			self._place(stmt.target)
		elif isinstance(stmt, ExprStmt):
			self._expr(stmt.value, moving=True)
		elif isinstance(stmt, BlockStmt):
			self._expr(stmt.value, moving=True)
		elif isinstance(stmt, (BreakStmt, ContinueStmt)):
			return
		else:
			raise TypeError(f"unknown statement {stmt!r}")

	def _assign_target(self, target: Expr) -> None:
		if not isinstance(target, Name):
			self._place(target)
			return
		state = self._lookup(target)
		if state.move_state is not MoveState.MOVED:
			return
		self.env.set_move_state(target.ident, self._restored_state(target.ident))

	def _restored_state(self, name: str) -> MoveState:
		if name not in self.introduced and self.env.existed_in_baseline(name):
			return MoveState.AVAILABLE
		return MoveState.NEW

	def _place(self, target: Expr) -> None:
		"""Check the root of an in-place mutation target (`x`, `x.f`, `x[i]`, `*x`)."""
		if isinstance(target, Name):
			state = self._lookup(target)
			if state.move_state is MoveState.MOVED:
				raise self._error(f"assignment through moved value `{target.ident}`", target.loc, "E-MOVED")
			return
		if isinstance(target, (Field, Index)):
			if isinstance(target, Index):
				self._expr(target.index, moving=True)
			self._place(target.value)
			return
		if isinstance(target, Unary) and target.op == "*":
			self._expr(target.operand, moving=False)
			return
		self._expr(target, moving=False)

	# ---- expressions ----

	def _lookup(self, name: Name) -> VariableState:
		state = self.env.get(name.ident)
		if state is None:
			raise self._error(
				f"cannot find value `{name.ident}` in this scope", name.loc, "E-UNDEFINED"
			)
		return state

	def _use_name(self, name: Name, moving: bool) -> None:
		if name.ident in PRELUDE_VALUES and name.ident not in self.env:
			return
		state = self._lookup(name)
		if state.move_state is MoveState.MOVED:
			raise self._error(f"use of moved value `{name.ident}`", name.loc, "E-MOVED")
		if moving and not is_copy_type(state.type_name):
			self.env.set_move_state(name.ident, MoveState.MOVED)

	def _callee(self, callee: Expr) -> None:
		"""Single-segment callees must be prelude functions or live bindings."""
		if not isinstance(callee, Name):
			return
		if callee.ident in self.env:
			self._use_name(callee, moving=False)
		elif callee.ident not in PRELUDE_FUNCTIONS:
			raise self._error(
				f"cannot find function `{callee.ident}` in this scope", callee.loc, "E-UNDEFINED"
			)

	def _exprs(self, exprs: List[Expr], moving: bool) -> None:
		for e in exprs:
			self._expr(e, moving=moving)

	def _expr(self, expr: Expr, moving: bool) -> None:
		if isinstance(expr, Name):
			self._use_name(expr, moving)
		elif isinstance(expr, (Literal, Path)):
			return
		elif isinstance(expr, Call):
			self._callee(expr.callee)
			self._exprs(expr.args, moving=True)
		elif isinstance(expr, MethodCall):
			consuming = expr.method in CONSUMING_METHODS or expr.method.startswith("into_")
			self._expr(expr.receiver, moving=consuming)
			self._exprs(expr.args, moving=True)
		elif isinstance(expr, MacroCall):
			self._exprs(expr.args, moving=expr.name not in BORROWING_MACROS)
		elif isinstance(expr, Field):
			self._expr(expr.value, moving=False)
		elif isinstance(expr, Index):
			self._expr(expr.value, moving=False)
			self._expr(expr.index, moving=True)
		elif isinstance(expr, Unary):
			self._expr(expr.operand, moving=expr.op != "*")
		elif isinstance(expr, Borrow):
			self._expr(expr.operand, moving=False)
		elif isinstance(expr, Binary):
			by_value = expr.op not in _COMPARISON_OPS
			self._expr(expr.left, moving=by_value)
			self._expr(expr.right, moving=by_value)
		elif isinstance(expr, Cast):
			self._expr(expr.value, moving=True)
		elif isinstance(expr, Range):
			self._expr(expr.start, moving=True)
			self._expr(expr.end, moving=True)
		elif isinstance(expr, (TupleExpr, ArrayExpr)):
			self._exprs(expr.items, moving=True)
		elif isinstance(expr, ArrayRepeat):
			self._expr(expr.value, moving=True)
			self._expr(expr.count, moving=True)
		elif isinstance(expr, BlockExpr):
			self._block(expr.block, moving)
		elif isinstance(expr, IfExpr):
			self._expr(expr.condition, moving=True)
			self._block(expr.then_block, moving)
			if isinstance(expr.else_branch, Block):
				self._block(expr.else_branch, moving)
			elif expr.else_branch is not None:
				self._expr(expr.else_branch, moving)
		elif isinstance(expr, WhileExpr):
			self._expr(expr.condition, moving=True)
			self._block(expr.body, moving=True)
		elif isinstance(expr, LoopExpr):
			self._block(expr.body, moving=True)
		elif isinstance(expr, ForExpr):
			self._expr(expr.iterable, moving=True)
			self._push()
			self._bind_pattern(expr.pattern, {}, UNKNOWN_TYPE)
			self._block_body(expr.body, moving=True)
			self._pop()
		else:
			raise TypeError(f"unknown expression {expr!r}")

	def _block(self, block: Block, moving: bool) -> None:
		self._push()
		self._block_body(block, moving)
		self._pop()

	def _block_body(self, block: Block, moving: bool) -> None:
		for stmt in block.statements:
			self._stmt(stmt)
		if block.tail is not None:
			self._expr(block.tail, moving=moving)


def apply_block(
	env: Environment,
	block: Block,
	*,
	display_final_expression: bool = False,
	type_hints: Optional[Mapping[str, str]] = None,
) -> AppliedBlock:
	"""
	Apply `block` to a copy of `env`.

	`type_hints` carries types resolved by a previous analysis pass for
	top-level bindings; it only affects `Copy` decisions and declared types.
	Raises `ApplicationError` on undefined names and uses of moved values.
	"""
	applier = _Applier(env.copy(), display_final_expression, type_hints or {})
	instrumented = applier.run(block)
	return AppliedBlock(env=applier.env, block=instrumented)


__all__ = [
	"AppliedBlock",
	"BORROWING_MACROS",
	"CONSUMING_METHODS",
	"apply_block",
	"is_copy_type",
	"split_top_level",
]
