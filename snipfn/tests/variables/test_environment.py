# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from snipfn.variables import Environment, FunctionArg, MoveState, VariableState


def _scope(*pairs: tuple[str, str]) -> list[FunctionArg]:
	return [FunctionArg(name, ty) for name, ty in pairs]


def test_load_scope_marks_bindings_available_with_matching_baseline() -> None:
	env = Environment()
	env.load_scope(_scope(("a", "i32"), ("s", "String")))
	assert env.names() == ["a", "s"]
	state = env.get("a")
	assert state == VariableState(type_name="i32", is_mut=False, move_state=MoveState.AVAILABLE)
	assert state.definition_span is None
	assert env.baseline == dict(env.items())
	assert env.existed_in_baseline("s")
	assert not env.existed_in_baseline("t")


def test_load_scope_overwrites_and_recomputes_baseline() -> None:
	env = Environment()
	env.load_scope(_scope(("a", "i32")))
	env.set_move_state("a", MoveState.MOVED)
	env.load_scope(_scope(("a", "u8")))
	assert env.get("a").type_name == "u8"
	assert env.get("a").move_state is MoveState.AVAILABLE
	assert env.baseline["a"].type_name == "u8"


def test_mutable_scope_entry_seeds_is_mut() -> None:
	env = Environment()
	env.load_scope([FunctionArg("a", "i32", mutable=True)])
	assert env.get("a").is_mut is True


def test_first_new_transition_moves_name_to_the_end() -> None:
	"""Shadowing a scope name lists it after bindings introduced earlier."""
	env = Environment()
	env.load_scope(_scope(("x", "i32"), ("y", "i32")))
	env.declare("y", VariableState("bool", False, MoveState.NEW))
	env.declare("x", VariableState("bool", False, MoveState.NEW))
	env.declare("y", VariableState("char", False, MoveState.NEW))
	assert env.names() == ["y", "x"]
	assert [n for n, _ in env.new_bindings()] == ["y", "x"]
	assert env.get("y").type_name == "char"


def test_copy_is_independent() -> None:
	env = Environment()
	env.load_scope(_scope(("a", "i32")))
	other = env.copy()
	other.set_move_state("a", MoveState.MOVED)
	other.set_type("a", "i64")
	assert env.get("a").move_state is MoveState.AVAILABLE
	assert env.get("a").type_name == "i32"
	assert other.existed_in_baseline("a")


def test_type_known_detects_placeholders() -> None:
	assert VariableState("_", False, MoveState.NEW).type_known is False
	assert VariableState("Vec<_>", False, MoveState.NEW).type_known is False
	assert VariableState("my_type::Thing", False, MoveState.NEW).type_known is True
	assert VariableState("(i32, u8)", False, MoveState.NEW).type_known is True


def test_render_param() -> None:
	assert FunctionArg("a", "i32").render_param() == "a: i32"
	assert FunctionArg("v", "Vec<u8>", mutable=True).render_param() == "mut v: Vec<u8>"


def test_declare_without_reorder_keeps_position() -> None:
	env = Environment()
	env.declare("b", VariableState("String", True, MoveState.NEW))
	env.set_move_state("b", MoveState.MOVED)
	env.declare("c", VariableState("i32", False, MoveState.NEW))
	env.declare("b", VariableState("i32", False, MoveState.NEW), reorder=False)
	assert env.names() == ["b", "c"]
