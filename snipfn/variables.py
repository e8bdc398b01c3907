# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Variable environment model.

An `Environment` maps binding names to `VariableState` descriptors and keeps a
`baseline` snapshot taken when the caller's scope is loaded. Everything the
snippet introduces is tagged `NEW`; outputs are recovered later by diffing
against that baseline.

Iteration order is explicit: a name is moved to the end of the map the first
time it becomes `NEW`, so walking the map yields new bindings in the order the
snippet introduced them, independent of any scope names they shadow.
"""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from snipfn.core.span import Span

UNKNOWN_TYPE = "_"
_HOLE_RE = re.compile(r"(?<![A-Za-z0-9_])_(?![A-Za-z0-9_])")


@dataclass(frozen=True)
class FunctionArg:
	"""
	A (name, type) pair: a declared input taken from the caller's scope, or an
	inferred output. `mutable` marks scope entries declared `mut`.
	"""

	name: str
	type_name: str
	mutable: bool = False

	def render_param(self) -> str:
		prefix = "mut " if self.mutable else ""
		return f"{prefix}{self.name}: {self.type_name}"


class MoveState(Enum):
	"""Lifecycle of a binding during one analysis pass."""

	AVAILABLE = auto()  # Existed in the baseline and is still usable.
	MOVED = auto()      # Consumed; unusable until reassigned.
	NEW = auto()        # Introduced by the snippet under analysis.


@dataclass(frozen=True)
class VariableState:
	type_name: str
	is_mut: bool
	move_state: MoveState
	definition_span: Optional[Span] = None

	@property
	def type_known(self) -> bool:
		"""False while the type, or any part of it (`Vec<_>`), is still a placeholder."""
		return _HOLE_RE.search(self.type_name) is None


class Environment:
	"""Ordered binding map plus the baseline captured by `load_scope`."""

	def __init__(self) -> None:
		self._vars: Dict[str, VariableState] = {}
		self.baseline: Dict[str, VariableState] = {}

	def load_scope(self, bindings: Iterable[FunctionArg]) -> None:
		"""
		Put scope bindings in the environment as `AVAILABLE` and recompute the
		baseline. Previous descriptors of the same names are overwritten.
		"""
		for arg in bindings:
			self._vars[arg.name] = VariableState(
				type_name=arg.type_name,
				is_mut=arg.mutable,
				move_state=MoveState.AVAILABLE,
				definition_span=None,
			)
		self.baseline = copy.deepcopy(self._vars)

	# ---- read access ----

	def __contains__(self, name: object) -> bool:
		return name in self._vars

	def __len__(self) -> int:
		return len(self._vars)

	def __iter__(self) -> Iterator[str]:
		return iter(self._vars)

	def get(self, name: str) -> Optional[VariableState]:
		return self._vars.get(name)

	def items(self) -> List[Tuple[str, VariableState]]:
		return list(self._vars.items())

	def names(self) -> List[str]:
		return list(self._vars)

	def existed_in_baseline(self, name: str) -> bool:
		return name in self.baseline

	def new_bindings(self) -> List[Tuple[str, VariableState]]:
		"""Descriptors tagged `NEW`, in first-introduced order."""
		return [(n, s) for n, s in self._vars.items() if s.move_state is MoveState.NEW]

	# ---- mutation ----

	def declare(self, name: str, state: VariableState, *, reorder: bool = True) -> None:
		"""
		Insert or overwrite `name`. A transition into `NEW` from any other state
		moves the name to the end of the ordering unless `reorder` is False
		(bindings of nested blocks, which are rolled back when the block ends).
		"""
		prev = self._vars.get(name)
		if reorder and state.move_state is MoveState.NEW and (prev is None or prev.move_state is not MoveState.NEW):
			self._vars.pop(name, None)
		self._vars[name] = state

	def set_move_state(self, name: str, move_state: MoveState) -> None:
		"""Change the move state in place; the ordering is kept."""
		prev = self._vars[name]
		self._vars[name] = replace(prev, move_state=move_state)

	def set_type(self, name: str, type_name: str) -> None:
		prev = self._vars[name]
		self._vars[name] = replace(prev, type_name=type_name)

	def restore(self, name: str, state: VariableState) -> None:
		"""Put back a shadowed descriptor without touching the ordering."""
		self._vars[name] = state

	def remove(self, name: str) -> None:
		self._vars.pop(name, None)

	def copy(self) -> "Environment":
		other = Environment()
		other._vars = copy.deepcopy(self._vars)
		other.baseline = copy.deepcopy(self.baseline)
		return other

	def __repr__(self) -> str:
		body = ", ".join(f"{n}: {s.type_name} ({s.move_state.name})" for n, s in self._vars.items())
		return f"Environment({body})"


__all__ = [
	"Environment",
	"FunctionArg",
	"MoveState",
	"UNKNOWN_TYPE",
	"VariableState",
]
