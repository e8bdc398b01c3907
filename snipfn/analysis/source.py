# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Analysis source: the applied snippet wrapped in a function whose body ends with
one type probe per live binding.

A probe is `let _: () = name;`. It never changes what the snippet does, but any
engine that type-checks the function must explain why `name` is not `()`, which
is exactly the concrete type we are after (including integer/float literals
whose type was never written down).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence

from snipfn.apply import AppliedBlock
from snipfn.parser.ast import Block
from snipfn.parser.render import INDENT, render_block
from snipfn.variables import FunctionArg, MoveState

ANALYSIS_FN = "__snipfn_analysis"
PRELUDE = "#![allow(unused, unused_must_use, path_statements, unreachable_code)]"


@dataclass(frozen=True)
class AnalysisRequest:
	"""
	What a type engine receives.

	`source` is the complete crate root text. `probe_lines` maps each probed
	binding to its 1-based line in `source`, so engines that report by location
	can attribute diagnostics. `block` and `scope` carry the same program in
	structured form for engines that do not want to re-parse text.
	"""

	source: str
	probes: List[str]
	probe_lines: Dict[str, int]
	block: Block
	scope: List[FunctionArg]


def build_analysis_source(applied: AppliedBlock, scope: Sequence[FunctionArg]) -> AnalysisRequest:
	params = ", ".join(arg.render_param() for arg in scope)
	lines = [PRELUDE, "", f"pub fn {ANALYSIS_FN}({params}) {{"]
	body = render_block(applied.block, INDENT)
	if body:
		lines.extend(body.split("\n"))
	probes: List[str] = []
	probe_lines: Dict[str, int] = {}
	for name, state in applied.env.items():
		if state.move_state is MoveState.MOVED:
			continue
		lines.append(f"{INDENT}let _: () = {name};")
		probes.append(name)
		probe_lines[name] = len(lines)
	lines.append("}")
	return AnalysisRequest(
		source="\n".join(lines) + "\n",
		probes=probes,
		probe_lines=probe_lines,
		block=applied.block,
		scope=list(scope),
	)


__all__ = ["ANALYSIS_FN", "AnalysisRequest", "build_analysis_source"]
