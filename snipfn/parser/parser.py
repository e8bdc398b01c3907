# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Lark front-end for snippets.

`parse_block` turns snippet text into a `Block`; `parse_type_expr` parses a
type spelling such as `Vec<(i32, &str)>` (used for caller-provided scope
types). Errors are raised as raw lark `UnexpectedInput` or `SnippetSyntaxError`;
`snipfn.parser` converts both into `ParseError`.
"""

from __future__ import annotations

from pathlib import Path as FsPath
from typing import Callable, Dict, List, Optional

from lark import Lark, Token, Tree

from snipfn.core.span import Span

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
	TypeExpr,
	Unary,
	WhileExpr,
	WildPat,
)

_GRAMMAR_PATH = FsPath(__file__).with_name("grammar.lark")
_GRAMMAR_SRC = _GRAMMAR_PATH.read_text()

_INT_SUFFIXES = (
	"u128", "usize", "u16", "u32", "u64", "u8",
	"i128", "isize", "i16", "i32", "i64", "i8",
)
_FLOAT_SUFFIXES = ("f32", "f64")


class SnippetSyntaxError(ValueError):
	"""
	Structural error found while building the AST (the grammar accepted the
	text but it is not a valid snippet, e.g. `1 = x;`).
	"""

	def __init__(self, message: str, *, loc: Span) -> None:
		super().__init__(message)
		self.loc = loc


_PARSER = Lark(
	_GRAMMAR_SRC,
	parser="lalr",
	lexer="contextual",
	start="start",
	propagate_positions=True,
	maybe_placeholders=False,
)

_TYPE_PARSER = Lark(
	_GRAMMAR_SRC,
	parser="lalr",
	lexer="contextual",
	start="type_expr",
	propagate_positions=True,
	maybe_placeholders=False,
)


def parse_block(source: str) -> Block:
	tree = _PARSER.parse(source)
	body = next(c for c in tree.children if isinstance(c, Tree))
	return _build_block_body(body)


def parse_type_expr(source: str) -> TypeExpr:
	tree = _TYPE_PARSER.parse(source)
	return _build_type(tree)


def _loc(node: Tree | Token) -> Span:
	if isinstance(node, Token):
		return Span.from_loc(node)
	return Span.from_loc(node.meta)


def _name(node: Tree | Token) -> str:
	if isinstance(node, Tree):
		data = node.data
		if isinstance(data, Token):
			return data.value
		return data
	if isinstance(node, Token):
		return node.type
	return str(node)


def _trees(tree: Tree) -> List[Tree]:
	return [c for c in tree.children if isinstance(c, Tree)]


def _tokens(tree: Tree, kind: Optional[str] = None) -> List[Token]:
	return [c for c in tree.children if isinstance(c, Token) and (kind is None or c.type == kind)]


# ---- statements ----


def _build_block_body(tree: Tree) -> Block:
	statements: List[Stmt] = []
	tail: Optional[Expr] = None
	for child in tree.children:
		if _name(child) == "tail":
			tail = _build_expr(child.children[0])
			continue
		statements.append(_build_stmt(child))
	return Block(statements=statements, tail=tail, loc=_loc(tree))


def _build_block(tree: Tree) -> Block:
	body = next(c for c in tree.children if isinstance(c, Tree) and _name(c) == "block_body")
	block = _build_block_body(body)
	block.loc = _loc(tree)
	return block


def _build_stmt(tree: Tree) -> Stmt:
	kind = _name(tree)
	builder = _STMT_BUILDERS.get(kind)
	if builder is None:
		raise SnippetSyntaxError(f"unsupported statement `{kind}`", loc=_loc(tree))
	return builder(tree)


def _build_let_stmt(tree: Tree) -> LetStmt:
	children = _trees(tree)
	pattern = _build_pattern(children[0])
	type_expr = None
	value = None
	for child in children[1:]:
		if _name(child) == "type_spec":
			type_expr = _build_type(child.children[0])
		elif _name(child) == "let_init":
			value = _build_expr(child.children[0])
	return LetStmt(pattern=pattern, type_expr=type_expr, value=value, loc=_loc(tree))


def _build_assign_stmt(tree: Tree) -> AssignStmt:
	target_node, value_node = tree.children
	target = _build_expr(target_node)
	_check_place(target)
	return AssignStmt(target=target, value=_build_expr(value_node), loc=_loc(tree))


def _build_aug_assign_stmt(tree: Tree) -> AugAssignStmt:
	target_node, op_tok, value_node = tree.children
	target = _build_expr(target_node)
	_check_place(target)
	return AugAssignStmt(
		target=target,
		op=str(op_tok),
		value=_build_expr(value_node),
		loc=_loc(tree),
	)


def _check_place(expr: Expr) -> None:
	"""Only names, fields, indices and derefs can be assigned to."""
	if isinstance(expr, Name):
		return
	if isinstance(expr, (Field, Index)):
		_check_place(expr.value)
		return
	if isinstance(expr, Unary) and expr.op == "*":
		return
	raise SnippetSyntaxError("invalid left-hand side of assignment", loc=expr.loc)


def _build_expr_stmt(tree: Tree) -> ExprStmt:
	return ExprStmt(value=_build_expr(tree.children[0]), loc=_loc(tree))


def _build_block_stmt(tree: Tree) -> BlockStmt:
	value = _build_expr(_trees(tree)[0])
	return BlockStmt(value=value, loc=_loc(tree))  # type: ignore[arg-type]


_STMT_BUILDERS: Dict[str, Callable[[Tree], Stmt]] = {
	"let_stmt": _build_let_stmt,
	"assign_stmt": _build_assign_stmt,
	"aug_assign_stmt": _build_aug_assign_stmt,
	"expr_stmt": _build_expr_stmt,
	"block_stmt": _build_block_stmt,
	"break_stmt": lambda t: BreakStmt(loc=_loc(t)),
	"continue_stmt": lambda t: ContinueStmt(loc=_loc(t)),
}


# ---- patterns / types ----


def _build_pattern(tree: Tree) -> Pattern:
	kind = _name(tree)
	if kind == "ident_pat":
		mutable = bool(_tokens(tree, "MUT"))
		name_tok = _tokens(tree, "NAME")[0]
		return IdentPat(name=str(name_tok), mutable=mutable, loc=_loc(tree))
	if kind == "wild_pat":
		return WildPat(loc=_loc(tree))
	if kind == "tuple_pat":
		return TuplePat(items=[_build_pattern(c) for c in _trees(tree)], loc=_loc(tree))
	raise SnippetSyntaxError(f"unsupported pattern `{kind}`", loc=_loc(tree))


def _build_type(node: Tree | Token) -> TypeExpr:
	kind = _name(node)
	if kind == "ref_type":
		mutable = bool(_tokens(node, "MUT"))
		inner = _build_type(_trees(node)[0])
		return TypeExpr(name="&mut" if mutable else "&", args=[inner])
	if kind == "path_type":
		segments = [str(t) for t in _tokens(node, "NAME")]
		args: List[TypeExpr] = []
		for child in _trees(node):
			if _name(child) == "type_args":
				args = [_build_type(c) for c in _trees(child)]
		return TypeExpr(name="::".join(segments), args=args)
	if kind == "tuple_type":
		return TypeExpr(name="()", args=[_build_type(c) for c in _trees(node)])
	if kind == "slice_type":
		return TypeExpr(name="[]", args=[_build_type(_trees(node)[0])])
	if kind == "array_type":
		length = _tokens(node, "INT")[0]
		return TypeExpr(name="[;]", args=[_build_type(_trees(node)[0])], length=str(length))
	if kind == "infer_type":
		return TypeExpr(name="_")
	raise SnippetSyntaxError(f"unsupported type `{kind}`", loc=_loc(node))


# ---- expressions ----


def _build_expr(node: Tree | Token) -> Expr:
	if isinstance(node, Token):
		raise SnippetSyntaxError(f"unexpected token `{node}`", loc=_loc(node))
	kind = _name(node)
	builder = _EXPR_BUILDERS.get(kind)
	if builder is None:
		raise SnippetSyntaxError(f"unsupported expression `{kind}`", loc=_loc(node))
	return builder(node)


def _split_suffix(text: str, suffixes: tuple[str, ...]) -> Optional[str]:
	if text.startswith("0x") and suffixes is _FLOAT_SUFFIXES:
		return None
	for suffix in suffixes:
		if text.endswith(suffix):
			return suffix
	return None


def _build_literal(kind: str) -> Callable[[Tree], Literal]:
	suffixes = {"int": _INT_SUFFIXES, "float": _FLOAT_SUFFIXES}.get(kind, ())

	def build(tree: Tree) -> Literal:
		tok = tree.children[0]
		text = str(tok)
		return Literal(kind=kind, text=text, suffix=_split_suffix(text, suffixes), loc=_loc(tree))

	return build


def _path_of(tree: Tree) -> Name | Path:
	segments = [str(t) for t in _tokens(tree, "NAME")]
	if len(segments) == 1:
		return Name(ident=segments[0], loc=_loc(tree))
	return Path(segments=segments, loc=_loc(tree))


def _args_of(tree: Tree) -> List[Expr]:
	return [_build_expr(c) for c in tree.children if isinstance(c, Tree)]


def _build_call(tree: Tree) -> Call:
	path_node, args_node = tree.children
	return Call(callee=_path_of(path_node), args=_args_of(args_node), loc=_loc(tree))


def _build_method_call(tree: Tree) -> MethodCall:
	receiver_node, method_tok, args_node = tree.children
	return MethodCall(
		receiver=_build_expr(receiver_node),
		method=str(method_tok),
		args=_args_of(args_node),
		loc=_loc(tree),
	)


def _build_macro_call(tree: Tree) -> MacroCall:
	name_tok = _tokens(tree, "NAME")[0]
	body = _trees(tree)[0]
	return MacroCall(
		name=str(name_tok),
		args=_args_of(body),
		repeat=_name(body) == "macro_repeat",
		loc=_loc(tree),
	)


def _build_field(tree: Tree) -> Field:
	value_node, name_tok = tree.children
	return Field(value=_build_expr(value_node), name=str(name_tok), loc=_loc(tree))


def _build_index(tree: Tree) -> Index:
	value_node, index_node = tree.children
	return Index(value=_build_expr(value_node), index=_build_expr(index_node), loc=_loc(tree))


def _build_unary(tree: Tree) -> Unary:
	op_tok, operand = tree.children
	return Unary(op=str(op_tok), operand=_build_expr(operand), loc=_loc(tree))


def _build_borrow(tree: Tree) -> Borrow:
	mutable = bool(_tokens(tree, "MUT"))
	return Borrow(operand=_build_expr(_trees(tree)[0]), mutable=mutable, loc=_loc(tree))


def _build_binary(tree: Tree) -> Binary:
	left, op_tok, right = tree.children
	return Binary(op=str(op_tok), left=_build_expr(left), right=_build_expr(right), loc=_loc(tree))


def _build_cast(tree: Tree) -> Cast:
	value_node, target_tok = tree.children
	return Cast(value=_build_expr(value_node), target=str(target_tok), loc=_loc(tree))


def _build_range(tree: Tree) -> Range:
	start, op_tok, end = tree.children
	return Range(
		start=_build_expr(start),
		end=_build_expr(end),
		inclusive=str(op_tok) == "..=",
		loc=_loc(tree),
	)


def _build_if(tree: Tree) -> IfExpr:
	children = _trees(tree)
	condition = _build_expr(children[0])
	then_block = _build_block(children[1])
	else_branch = None
	if len(children) > 2:
		other = children[2]
		else_branch = _build_block(other) if _name(other) == "block" else _build_if(other)
	return IfExpr(condition=condition, then_block=then_block, else_branch=else_branch, loc=_loc(tree))


def _build_for(tree: Tree) -> ForExpr:
	pattern_node, iterable_node, body_node = _trees(tree)
	return ForExpr(
		pattern=_build_pattern(pattern_node),
		iterable=_build_expr(iterable_node),
		body=_build_block(body_node),
		loc=_loc(tree),
	)


_EXPR_BUILDERS: Dict[str, Callable[[Tree], Expr]] = {
	"int_lit": _build_literal("int"),
	"float_lit": _build_literal("float"),
	"str_lit": _build_literal("str"),
	"char_lit": _build_literal("char"),
	"bool_lit": _build_literal("bool"),
	"path_expr": lambda t: _path_of(t.children[0]),
	"call": _build_call,
	"method_call": _build_method_call,
	"macro_call": _build_macro_call,
	"field": _build_field,
	"index": _build_index,
	"unary": _build_unary,
	"borrow": _build_borrow,
	"binary": _build_binary,
	"cast": _build_cast,
	"range": _build_range,
	"unit": lambda t: TupleExpr(items=[], loc=_loc(t)),
	"tuple": lambda t: TupleExpr(items=_args_of(t), loc=_loc(t)),
	"array": lambda t: ArrayExpr(items=_args_of(t), loc=_loc(t)),
	"array_repeat": lambda t: ArrayRepeat(
		value=_build_expr(t.children[0]), count=_build_expr(t.children[1]), loc=_loc(t)
	),
	"block": lambda t: BlockExpr(block=_build_block(t), loc=_loc(t)),
	"if_expr": _build_if,
	"while_expr": lambda t: WhileExpr(
		condition=_build_expr(_trees(t)[0]), body=_build_block(_trees(t)[1]), loc=_loc(t)
	),
	"loop_expr": lambda t: LoopExpr(body=_build_block(_trees(t)[0]), loc=_loc(t)),
	"for_expr": _build_for,
}
