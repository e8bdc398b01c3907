# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
`cargo check` type engine.

Runs `cargo check --message-format=json` in the analysis workspace and reads
each probed binding's type out of the E0308 ("mismatched types") diagnostic
its probe line produces. A probe line without a diagnostic means the binding
is `()`.

Any other compiler error means the snippet itself does not type-check; it is
reported as `AnalysisError` with the compiler's diagnostics attached.
"""

from __future__ import annotations

import json
import logging
import re
import subprocess
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from snipfn.config import EvalConfig
from snipfn.core.diagnostics import Diagnostic
from snipfn.core.span import Span
from snipfn.errors import AnalysisError

from .source import AnalysisRequest

logger = logging.getLogger(__name__)

MISMATCH_CODE = "E0308"
SOURCE_FILE = "src/lib.rs"

_FOUND_RE = re.compile(
	r"expected `\(\)`, found (?:(?:struct|enum|union|reference|type parameter|opaque type|closure) )?`(?P<ty>.+)`$"
)
# rustc spells still-unsuffixed literals without a concrete type.
_FOUND_LITERAL = {
	"expected `()`, found integer": "i32",
	"expected `()`, found floating-point number": "f64",
}
_FALLBACKS = {"{integer}": "i32", "{float}": "f64"}


def probe_type_from_label(label: str) -> Optional[str]:
	"""Type named by an E0308 span label, or None if the label is not a probe mismatch."""
	label = label.strip()
	if label in _FOUND_LITERAL:
		return _FOUND_LITERAL[label]
	m = _FOUND_RE.match(label)
	if m is None:
		return None
	ty = m.group("ty")
	for placeholder, concrete in _FALLBACKS.items():
		ty = ty.replace(placeholder, concrete)
	return ty


def iter_compiler_messages(stdout: str) -> Iterable[Dict[str, Any]]:
	"""`message` objects of `compiler-message` records; other lines are skipped."""
	for line in stdout.splitlines():
		line = line.strip()
		if not line.startswith("{"):
			continue
		try:
			record = json.loads(line)
		except json.JSONDecodeError:
			continue
		if record.get("reason") == "compiler-message" and isinstance(record.get("message"), dict):
			yield record["message"]


def _primary_span(message: Dict[str, Any]) -> Optional[Dict[str, Any]]:
	spans = message.get("spans") or []
	for span in spans:
		if span.get("is_primary"):
			return span
	return spans[0] if spans else None


def _to_diagnostic(message: Dict[str, Any]) -> Diagnostic:
	span = _primary_span(message)
	code = (message.get("code") or {}).get("code")
	notes = [c.get("message", "") for c in message.get("children") or [] if c.get("message")]
	return Diagnostic(
		message=message.get("message", ""),
		code=code,
		phase="analysis",
		severity=message.get("level", "error"),
		span=Span(
			line=span.get("line_start"),
			column=span.get("column_start"),
			end_line=span.get("line_end"),
			end_column=span.get("column_end"),
		)
		if span
		else Span(),
		notes=notes,
	)


def parse_check_output(stdout: str, request: AnalysisRequest) -> Dict[str, str]:
	"""
	Map probe names to types from `cargo check` JSON output.

	Raises `AnalysisError` when the output contains errors that are not probe
	mismatches.
	"""
	by_line = {line: name for name, line in request.probe_lines.items()}
	resolved: Dict[str, str] = {}
	errors: List[Diagnostic] = []
	for message in iter_compiler_messages(stdout):
		if message.get("level") not in ("error", "error: internal compiler error"):
			continue
		span = _primary_span(message)
		code = (message.get("code") or {}).get("code")
		name = None
		if span is not None and span.get("file_name", "").endswith("lib.rs"):
			name = by_line.get(span.get("line_start"))
		if code == MISMATCH_CODE and name is not None:
			ty = probe_type_from_label(span.get("label") or "")
			if ty is not None:
				resolved[name] = ty
				continue
		errors.append(_to_diagnostic(message))
	if errors:
		raise AnalysisError("type analysis rejected the snippet", diagnostics=errors)
	for name in request.probes:
		resolved.setdefault(name, "()")
	return resolved


class CargoTypeAnalyzer:
	"""Type engine backed by `cargo check`."""

	name = "cargo"

	def __init__(self, config: EvalConfig) -> None:
		self.config = config

	def command(self) -> List[str]:
		cmd = [self.config.cargo, "check", "--message-format=json", "--quiet"]
		if self.config.offline:
			cmd.append("--offline")
		return cmd

	def analyze(self, workspace: Path, request: AnalysisRequest) -> Dict[str, str]:
		src = workspace / SOURCE_FILE
		src.parent.mkdir(parents=True, exist_ok=True)
		src.write_text(request.source, encoding="utf-8")
		cmd = self.command()
		logger.debug("running %s in %s", " ".join(cmd), workspace)
		try:
			res = subprocess.run(
				cmd,
				cwd=str(workspace),
				capture_output=True,
				text=True,
				timeout=self.config.timeout,
			)
		except FileNotFoundError as err:
			raise AnalysisError(f"type analysis engine not found: {self.config.cargo}") from err
		except subprocess.TimeoutExpired as err:
			raise AnalysisError(f"type analysis timed out after {self.config.timeout}s") from err
		if res.returncode != 0 and next(iter_compiler_messages(res.stdout), None) is None:
			# Manifest or toolchain failure: nothing was type-checked.
			diag = Diagnostic(message=res.stderr.strip() or "cargo check failed", phase="analysis")
			raise AnalysisError(f"cargo check exited with status {res.returncode}", diagnostics=[diag])
		resolved = parse_check_output(res.stdout, request)
		logger.debug("cargo resolved %d binding type(s)", len(resolved))
		return resolved


__all__ = ["CargoTypeAnalyzer", "parse_check_output", "probe_type_from_label"]
