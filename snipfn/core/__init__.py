# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Shared leaf types (spans, diagnostics) used by every snipfn phase."""

from .diagnostics import Diagnostic
from .span import Span

__all__ = ["Diagnostic", "Span"]
