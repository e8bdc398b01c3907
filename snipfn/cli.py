# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import argparse
import json
import logging
import re
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, List

from snipfn.config import EvalConfig, load_config
from snipfn.errors import SnipfnError
from snipfn.infer import find_outputs
from snipfn.registry import SharedLibFunctions
from snipfn.variables import FunctionArg

_SCOPE_RE = re.compile(r"^\s*(?P<mut>mut\s+)?(?P<name>[A-Za-z_][A-Za-z0-9_]*)\s*:\s*(?P<type>\S.*?)\s*$")


def parse_scope_entry(text: str) -> FunctionArg:
	"""`name: type` or `mut name: type`."""
	m = _SCOPE_RE.match(text)
	if m is None:
		raise ValueError(f"invalid scope entry '{text}' (expected NAME:TYPE or 'mut NAME:TYPE')")
	return FunctionArg(m.group("name"), m.group("type"), mutable=m.group("mut") is not None)


def _scope_from_json(items: Any) -> List[FunctionArg]:
	if not isinstance(items, list):
		raise ValueError("'scope' must be a list")
	scope: List[FunctionArg] = []
	for item in items:
		if isinstance(item, str):
			scope.append(parse_scope_entry(item))
		elif isinstance(item, dict) and isinstance(item.get("name"), str) and isinstance(item.get("type"), str):
			scope.append(FunctionArg(item["name"], item["type"], mutable=bool(item.get("mutable", False))))
		else:
			raise ValueError(f"invalid scope entry {item!r}")
	return scope


def _build_parser() -> argparse.ArgumentParser:
	p = argparse.ArgumentParser(prog="snipfn", description="Extract exported functions from Rust snippets")
	p.add_argument("--config", type=Path, default=None, help="Path to a JSON EvalConfig")
	p.add_argument("--engine", choices=["local", "cargo"], default=None, help="Override the type engine")
	p.add_argument("-v", "--verbose", action="store_true", help="Log debug records to stderr")
	sub = p.add_subparsers(dest="cmd", required=True)

	outputs = sub.add_parser("outputs", help="Print the bindings a snippet introduces")
	outputs.add_argument("snippet", type=str, help="Snippet text ('-' reads stdin)")
	outputs.add_argument(
		"--scope",
		dest="scope",
		action="append",
		default=[],
		help="Scope binding NAME:TYPE or 'mut NAME:TYPE' (repeatable, in parameter order)",
	)
	outputs.add_argument("--json", action="store_true", help="Emit machine-readable JSON")

	render = sub.add_parser("render", help="Register functions from a JSON file and print the generated source")
	render.add_argument("functions", type=Path, help="JSON list of {name, body, scope} objects")
	render.add_argument("--json", action="store_true", help="Emit errors as JSON")
	return p


def _load_config(args: argparse.Namespace) -> EvalConfig:
	config = load_config(args.config) if args.config is not None else EvalConfig()
	if args.engine is not None:
		config = replace(config, engine=args.engine)
	return config


def _report(err: SnipfnError, as_json: bool) -> int:
	if as_json:
		print(json.dumps({"ok": False, "error": err.to_dict()}, sort_keys=True, separators=(",", ":")))
	else:
		print(f"error: {err.format_human()}", file=sys.stderr)
	return 1


def main(argv: list[str] | None = None) -> int:
	p = _build_parser()
	args = p.parse_args(argv)
	if args.verbose:
		logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

	try:
		config = _load_config(args)
	except (OSError, ValueError) as err:
		p.error(str(err))
		return 2

	if args.cmd == "outputs":
		try:
			scope = [parse_scope_entry(s) for s in args.scope]
		except ValueError as err:
			p.error(str(err))
			return 2
		snippet = sys.stdin.read() if args.snippet == "-" else args.snippet
		try:
			outputs = find_outputs(snippet, scope, config=config)
		except SnipfnError as err:
			return _report(err, args.json)
		if args.json:
			payload = {"ok": True, "outputs": [{"name": o.name, "type": o.type_name} for o in outputs]}
			print(json.dumps(payload, sort_keys=True, separators=(",", ":")))
		else:
			for o in outputs:
				print(o.render_param())
		return 0

	if args.cmd == "render":
		try:
			entries = json.loads(args.functions.read_text(encoding="utf-8"))
			if not isinstance(entries, list):
				raise ValueError(f"{args.functions}: expected a JSON list of functions")
			specs = [(e["name"], e["body"], _scope_from_json(e.get("scope", []))) for e in entries]
		except (OSError, ValueError, KeyError, TypeError) as err:
			p.error(str(err))
			return 2
		registry = SharedLibFunctions(config=config)
		try:
			for name, body, scope in specs:
				registry.register(name, body, scope)
		except SnipfnError as err:
			return _report(err, args.json)
		sys.stdout.write(registry.render())
		return 0

	raise AssertionError("unreachable")
