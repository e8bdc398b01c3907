# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Structured diagnostic shared by the parser, the applier and the type engines.

Engine diagnostics are carried verbatim: when `cargo check` rejects the
analysis source its messages become `Diagnostic`s with `phase="analysis"`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .span import Span


@dataclass
class Diagnostic:
	"""A single error/warning produced while extracting a function."""

	message: str
	code: str | None = None
	phase: str | None = None
	severity: str = "error"
	span: Span = field(default_factory=Span)  # Span() denotes unknown.
	notes: list[str] = field(default_factory=list)

	def __post_init__(self) -> None:
		if self.span is None:  # type: ignore[unreachable]
			self.span = Span()

	def to_dict(self) -> dict[str, Any]:
		return {
			"phase": self.phase,
			"code": self.code,
			"message": self.message,
			"severity": self.severity,
			"line": self.span.line,
			"column": self.span.column,
			"notes": list(self.notes),
		}

	def format_human(self) -> str:
		head = f"{self.span.format()}: {self.severity}: {self.message}"
		if self.code:
			head = f"{head} [{self.code}]"
		return "\n".join([head, *(f"  note: {n}" for n in self.notes)])


__all__ = ["Diagnostic"]
