# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Error kinds raised while extracting a function from a snippet.

Every error is raised directly to the caller of `find_outputs` /
`SharedLibFunctions.register`; nothing is retried internally. The underlying
exception (lark error, OSError, subprocess failure) is chained via `__cause__`.
"""

from __future__ import annotations

from typing import Any, Iterable

from snipfn.core.diagnostics import Diagnostic
from snipfn.core.span import Span


class SnipfnError(Exception):
	"""
	Base error: a message, an optional span and the diagnostics that explain it.

	`phase` names the step that failed and doubles as the diagnostic phase in
	JSON output.
	"""

	phase = "snipfn"

	def __init__(
		self,
		message: str,
		*,
		span: Span | None = None,
		diagnostics: Iterable[Diagnostic] | None = None,
	) -> None:
		super().__init__(message)
		self.message = message
		self.span = span or Span()
		self.diagnostics: list[Diagnostic] = list(diagnostics or [])

	def __str__(self) -> str:
		return self.format_human()

	def format_human(self) -> str:
		parts = [self.message if not self.span.known else f"{self.span.format()}: {self.message}"]
		for diag in self.diagnostics:
			parts.append(diag.format_human())
		return "\n".join(parts)

	def to_dict(self) -> dict[str, Any]:
		diags = self.diagnostics or [
			Diagnostic(message=self.message, phase=self.phase, span=self.span)
		]
		return {
			"kind": type(self).__name__,
			"message": self.message,
			"diagnostics": [d.to_dict() for d in diags],
		}


class ParseError(SnipfnError):
	"""The snippet cannot be structurally understood."""

	phase = "parser"


class ApplicationError(SnipfnError):
	"""
	The snippet references an undefined name or performs an inconsistent binding
	transition (e.g. use after move).
	"""

	phase = "apply"


class WorkspaceError(SnipfnError):
	"""Temporary directory or manifest I/O failure."""

	phase = "workspace"


class AnalysisError(SnipfnError):
	"""The type-analysis engine failed or could not resolve a binding's type."""

	phase = "analysis"


class RegistryError(SnipfnError):
	"""Invalid or duplicate function name passed to the registry."""

	phase = "registry"


__all__ = [
	"AnalysisError",
	"ApplicationError",
	"ParseError",
	"RegistryError",
	"SnipfnError",
	"WorkspaceError",
]
