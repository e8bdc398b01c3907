# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
snipfn: turn interactive Rust snippets into exported functions.

Layers:
  parser:    lark grammar + AST for the supported statement subset
  variables: tracked binding environment (baseline + move states)
  apply:     applies a parsed snippet to an environment
  analysis:  analysis-source generation and type engines
  infer:     output inference (diff against the baseline)
  registry:  function registry and shared-library source generation
"""

from snipfn.errors import (
	AnalysisError,
	ApplicationError,
	ParseError,
	RegistryError,
	SnipfnError,
	WorkspaceError,
)
from snipfn.infer import find_outputs
from snipfn.registry import FunctionArg, ParsedFunction, SharedLibFunctions

__all__ = [
	"AnalysisError",
	"ApplicationError",
	"FunctionArg",
	"ParseError",
	"ParsedFunction",
	"RegistryError",
	"SharedLibFunctions",
	"SnipfnError",
	"WorkspaceError",
	"find_outputs",
]
