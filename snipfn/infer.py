# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Output inference: which bindings does a snippet leave behind?

The snippet is applied to an environment seeded with the caller's scope, the
type engine resolves every surviving binding's concrete type, and the outputs
are the bindings tagged `NEW`, in the order the snippet introduced them.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from snipfn.analysis import (
	TypeAnalyzer,
	build_analysis_source,
	create_analyzer,
	merge_resolved_types,
)
from snipfn.apply import AppliedBlock, apply_block
from snipfn.config import EvalConfig
from snipfn.core.diagnostics import Diagnostic
from snipfn.errors import AnalysisError
from snipfn.parser import parse_snippet
from snipfn.parser.ast import Block
from snipfn.variables import Environment, FunctionArg
from snipfn.workspace import AnalysisWorkspace, write_manifest

logger = logging.getLogger(__name__)


def _unresolved_error(names: List[str], applied: AppliedBlock) -> AnalysisError:
	diags = []
	for name in names:
		state = applied.env.get(name)
		span = state.definition_span if state is not None else None
		diags.append(
			Diagnostic(
				message=f"cannot infer the type of `{name}`",
				code="E-UNRESOLVED",
				phase="analysis",
				span=span,  # type: ignore[arg-type]
				notes=["add a type annotation to the `let` binding"],
			)
		)
	listed = ", ".join(f"`{n}`" for n in names)
	return AnalysisError(f"type of {listed} could not be resolved", diagnostics=diags)


def _analyze(
	env: Environment,
	block: Block,
	scope: Sequence[FunctionArg],
	config: EvalConfig,
	analyzer: TypeAnalyzer,
) -> AppliedBlock:
	applied = apply_block(env, block, display_final_expression=config.display_final_expression)
	unknown = {name for name, state in applied.env.items() if not state.type_known}
	with AnalysisWorkspace.create(config) as ws:
		write_manifest(ws.path, applied.env, config)
		request = build_analysis_source(applied, scope)
		logger.debug("analysing %d probe(s) with %s", len(request.probes), type(analyzer).__name__)
		resolved = analyzer.analyze(ws.path, request)
	merge_resolved_types(applied.env, resolved)
	if unknown & set(resolved):
		# Copy-ness of freshly typed bindings may change which of them moved.
		applied = apply_block(
			env,
			block,
			display_final_expression=config.display_final_expression,
			type_hints=resolved,
		)
		merge_resolved_types(applied.env, resolved)
	return applied


def find_outputs(
	snippet_text: str,
	scope: Sequence[FunctionArg],
	*,
	config: Optional[EvalConfig] = None,
	analyzer: Optional[TypeAnalyzer] = None,
) -> List[FunctionArg]:
	"""
	Infer the outputs of `snippet_text` evaluated with `scope` in force.

	Raises `ParseError`, `ApplicationError`, `WorkspaceError` or
	`AnalysisError`; nothing is retried.
	"""
	config = (config or EvalConfig()).for_analysis()
	if analyzer is None:
		analyzer = create_analyzer(config)
	block = parse_snippet(snippet_text)
	env = Environment()
	env.load_scope(scope)
	applied = _analyze(env, block, scope, config, analyzer)
	new = applied.env.new_bindings()
	unresolved = [name for name, state in new if not state.type_known]
	if unresolved:
		raise _unresolved_error(unresolved, applied)
	outputs = [FunctionArg(name, state.type_name) for name, state in new]
	logger.debug("inferred outputs: %s", ", ".join(a.render_param() for a in outputs) or "<none>")
	return outputs


__all__ = ["find_outputs"]
