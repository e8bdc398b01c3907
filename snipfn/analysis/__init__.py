# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Analysis source generation and type engines."""

from __future__ import annotations

from snipfn.config import EvalConfig

from .cargo import CargoTypeAnalyzer
from .engine import TypeAnalyzer, merge_resolved_types
from .local import LocalTypeAnalyzer
from .source import ANALYSIS_FN, AnalysisRequest, build_analysis_source


def create_analyzer(config: EvalConfig) -> TypeAnalyzer:
	"""Engine selected by `config.engine`."""
	if config.engine == "cargo":
		return CargoTypeAnalyzer(config)
	return LocalTypeAnalyzer()


__all__ = [
	"ANALYSIS_FN",
	"AnalysisRequest",
	"CargoTypeAnalyzer",
	"LocalTypeAnalyzer",
	"TypeAnalyzer",
	"build_analysis_source",
	"create_analyzer",
	"merge_resolved_types",
]
