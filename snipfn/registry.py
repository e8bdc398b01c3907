# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Function registry and shared-library source generation.

Each registered snippet becomes an exported function whose parameters are the
caller's scope and whose return value is a tuple of the bindings the snippet
introduced. The generated text is meant to be compiled into a `cdylib`; this
module never compiles it.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

from snipfn.config import EvalConfig
from snipfn.analysis import TypeAnalyzer
from snipfn.core.diagnostics import Diagnostic
from snipfn.errors import RegistryError
from snipfn.infer import find_outputs
from snipfn.parser.render import INDENT
from snipfn.variables import FunctionArg

logger = logging.getLogger(__name__)

_IDENT_RE = re.compile(r"^(?:[A-Za-z][A-Za-z0-9_]*|_[A-Za-z0-9_]+)$")
RUST_KEYWORDS = frozenset(
	{
		"as", "async", "await", "break", "const", "continue", "crate", "dyn",
		"else", "enum", "extern", "false", "fn", "for", "if", "impl", "in",
		"let", "loop", "match", "mod", "move", "mut", "pub", "ref", "return",
		"self", "Self", "static", "struct", "super", "trait", "true", "type",
		"unsafe", "use", "where", "while", "yield", "abstract", "become", "box",
		"do", "final", "macro", "override", "priv", "typeof", "unsized",
		"virtual", "try", "gen",
	}
)


@dataclass(frozen=True)
class ParsedFunction:
	"""One registered function: snippet body plus its inputs and inferred outputs."""

	name: str
	body: str
	inputs: Tuple[FunctionArg, ...]
	outputs: Tuple[FunctionArg, ...]

	def render(self) -> str:
		params = ", ".join(arg.render_param() for arg in self.inputs)
		body = self.body.strip().rstrip(";").rstrip()
		if self.outputs:
			ret_type = "(" + " ".join(f"{o.type_name}," for o in self.outputs) + ")"
			ret_value = "(" + " ".join(f"{o.name}," for o in self.outputs) + ")"
		else:
			ret_type = ret_value = "()"
		lines = ["#[no_mangle]", f'pub extern "C" fn {self.name}({params}) -> {ret_type} {{']
		if body:
			body_lines = [f"{INDENT}{line.rstrip()}" if line.strip() else "" for line in body.split("\n")]
			if "//" in body_lines[-1]:
				# A trailing line comment would swallow the terminator.
				body_lines.append(f"{INDENT};")
			else:
				body_lines[-1] += ";"
			lines.extend(body_lines)
		lines.append(f"{INDENT}{ret_value}")
		lines.append("}")
		return "\n".join(lines)


def _check_name(name: str) -> Optional[str]:
	if not _IDENT_RE.match(name):
		return f"`{name}` is not a valid function name"
	if name in RUST_KEYWORDS:
		return f"`{name}` is a reserved keyword"
	return None


class SharedLibFunctions:
	"""
	Ordered, append-only set of functions destined for one shared library.

	Registration infers outputs immediately, so every failure (bad name, parse
	error, analysis error) surfaces from `register` and leaves the registry
	unchanged.
	"""

	def __init__(self, config: Optional[EvalConfig] = None, analyzer: Optional[TypeAnalyzer] = None) -> None:
		self.config = config or EvalConfig()
		self.analyzer = analyzer
		self._functions: List[ParsedFunction] = []

	@property
	def functions(self) -> Tuple[ParsedFunction, ...]:
		return tuple(self._functions)

	def __len__(self) -> int:
		return len(self._functions)

	def __iter__(self) -> Iterator[ParsedFunction]:
		return iter(tuple(self._functions))

	def register(self, name: str, body: str, scope: Sequence[FunctionArg]) -> ParsedFunction:
		problem = _check_name(name)
		if problem is None and any(f.name == name for f in self._functions):
			problem = f"function `{name}` is already registered"
		if problem is not None:
			diag = Diagnostic(message=problem, code="E-NAME", phase="registry")
			raise RegistryError(problem, diagnostics=[diag])
		outputs = find_outputs(body, scope, config=self.config, analyzer=self.analyzer)
		fn = ParsedFunction(name=name, body=body, inputs=tuple(scope), outputs=tuple(outputs))
		self._functions.append(fn)
		logger.debug("registered %s (%d input(s), %d output(s))", name, len(fn.inputs), len(fn.outputs))
		return fn

	add_fn = register

	def render(self) -> str:
		"""Source text of every registered function, in registration order."""
		return "".join(fn.render() + "\n" for fn in self._functions)

	code = render


__all__ = ["FunctionArg", "ParsedFunction", "RegistryError", "SharedLibFunctions"]
