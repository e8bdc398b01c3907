# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Source span attached to bindings and diagnostics.

Snippets are single anonymous sources, so a span only carries line/column
ranges. Bindings injected from a caller-provided scope have no span at all
(`definition_span is None`); `Span()` is reserved for "location unknown" in
diagnostics.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class Span:
	"""Best-effort line/column range inside a snippet (1-based, like lark)."""

	line: Optional[int] = None
	column: Optional[int] = None
	end_line: Optional[int] = None
	end_column: Optional[int] = None

	@classmethod
	def from_loc(cls, loc: Any) -> "Span":
		"""
		Build a Span from a lark `Meta`/`Token` or anything exposing the same
		line/column attributes. Spans are returned unchanged.
		"""
		if loc is None:
			return cls()
		if isinstance(loc, cls):
			return loc
		if getattr(loc, "empty", False):
			return cls()
		return cls(
			line=getattr(loc, "line", None),
			column=getattr(loc, "column", None),
			end_line=getattr(loc, "end_line", None),
			end_column=getattr(loc, "end_column", None),
		)

	@property
	def known(self) -> bool:
		return self.line is not None

	def format(self) -> str:
		"""Render as `line:col` (`?:?` when unknown), matching CLI diagnostics."""
		if self.line is None:
			return "?:?"
		col = self.column if self.column is not None else "?"
		return f"{self.line}:{col}"


__all__ = ["Span"]
