# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Type-analysis engine contract.

An engine receives the workspace directory and an `AnalysisRequest` and returns
a table `binding name -> concrete type`. Names it cannot resolve are simply
absent; failures are raised as `AnalysisError` carrying the engine's own
diagnostics.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Mapping, Protocol

from snipfn.variables import Environment

from .source import AnalysisRequest


class TypeAnalyzer(Protocol):
	def analyze(self, workspace: Path, request: AnalysisRequest) -> Dict[str, str]:
		...


def merge_resolved_types(env: Environment, resolved: Mapping[str, str]) -> list[str]:
	"""
	Write resolved types into `env`; returns the names whose type changed.
	Names the engine reported that are not in `env` are ignored.
	"""
	changed: list[str] = []
	for name, type_name in resolved.items():
		state = env.get(name)
		if state is None or state.type_name == type_name:
			continue
		env.set_type(name, type_name)
		changed.append(name)
	return changed


__all__ = ["TypeAnalyzer", "merge_resolved_types"]
