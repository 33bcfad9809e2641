# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
qualinfer CLI: solve constraint scripts and report the inferred qualifiers.

Each script is one call site. Uninferred arguments fall back to the declared
defaults of their targets unless --no-defaults is given; every other failure
is reported as an error and makes the exit code 1.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from qualinfer.core.diagnostics import Diagnostic
from qualinfer.core.span import Span
from qualinfer.failures import failure_to_diagnostic
from qualinfer.infer import SolveResult, apply_declared_bounds
from qualinfer.script import CallSite, load_script
from qualinfer.solver import SolverConfig, SolveTrace

logger = logging.getLogger(__name__)


def _assignments_json(site: CallSite, result: SolveResult) -> Dict[str, Dict[str, str]]:
	out: Dict[str, Dict[str, str]] = {}
	for target in site.targets:
		res = result.resolutions[target]
		out[str(target)] = {top: qual.name for top, qual in res.qualifiers.items()}
	return out


def _trace_json(trace: SolveTrace) -> List[dict]:
	rows: List[dict] = []
	for (target, top), evidence in trace.bindings.items():
		rows.append(
			{
				"target": str(target),
				"top": top,
				"steps": [
					{"qualifier": ev.qualifier.name, "derivation": ev.derivation.value, "sources": list(ev.sources)}
					for ev in evidence
				],
				"lower_bounds": sorted(q.name for q in trace.lower_bounds.get((target, top), ())),
				"upper_bounds": sorted(q.name for q in trace.upper_bounds.get((target, top), ())),
			}
		)
	return rows


def _result_diagnostics(site: CallSite, result: SolveResult) -> List[Diagnostic]:
	diags: List[Diagnostic] = []
	for failure in result.failures:
		diag = failure_to_diagnostic(failure, call_name=site.name)
		diag.span = Span(file=site.file)
		diags.append(diag)
	for target in site.targets:
		for top in result.resolutions[target].defaulted:
			qual = result.qualifier(target, top)
			diags.append(
				Diagnostic(
					message=f"{target} defaults to its declared {top} bound {qual}",
					code="N-DEFAULTED",
					phase="defaults",
					severity="note",
				)
			)
	return diags


def solve_site(site: CallSite, *, apply_defaults: bool = True, trace: bool = False) -> SolveResult:
	"""Solve one call site, applying declared defaults when requested."""
	result = site.session(SolverConfig(trace=trace)).solve()
	if apply_defaults:
		result = apply_declared_bounds(result, site.declared)
	return result


def _run_one(path: Path, args: argparse.Namespace) -> dict:
	site, diags = load_script(path)
	if site is None:
		return {"file": str(path), "exit_code": 1, "assignments": {}, "diagnostics": diags}
	logger.debug("solving %s: %d target(s), %d edge(s)", path, len(site.targets), len(site.edges))
	result = solve_site(site, apply_defaults=args.defaults, trace=args.trace)
	payload: dict = {
		"file": str(path),
		"exit_code": 0 if result.ok else 1,
		"assignments": _assignments_json(site, result),
		"diagnostics": _result_diagnostics(site, result),
	}
	if args.trace and result.trace is not None:
		payload["trace"] = _trace_json(result.trace)
	return payload


def main(argv: Optional[List[str]] = None) -> int:
	"""
	Solve each script and print its assignments.

	With --json, prints one JSON object per script (file/exit_code/assignments/
	diagnostics); otherwise prints assignments to stdout and diagnostics to
	stderr. Returns 1 if any script failed.
	"""
	parser = argparse.ArgumentParser(description="Infer qualifiers of generic type arguments from constraint scripts")
	parser.add_argument("scripts", type=Path, nargs="+", help="Path(s) to constraint script file(s)")
	parser.add_argument("--json", action="store_true", help="Emit results and diagnostics as JSON")
	parser.add_argument(
		"--defaults",
		dest="defaults",
		action="store_true",
		default=True,
		help="Substitute declared defaults for uninferred arguments (default)",
	)
	parser.add_argument(
		"--no-defaults",
		dest="defaults",
		action="store_false",
		help="Report uninferred arguments as errors instead of using declared defaults",
	)
	parser.add_argument("--trace", action="store_true", help="Include binding evidence in the output")
	parser.add_argument("--debug", action="store_true", help="Enable debug logging")
	args = parser.parse_args(argv)

	if args.debug:
		logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

	exit_code = 0
	for path in args.scripts:
		payload = _run_one(path, args)
		exit_code = max(exit_code, payload["exit_code"])
		diags: List[Diagnostic] = payload["diagnostics"]
		if args.json:
			payload["diagnostics"] = [d.to_json() for d in diags]
			print(json.dumps(payload))
			continue
		for target, quals in payload["assignments"].items():
			rendered = ", ".join(f"{top}={name}" for top, name in quals.items())
			print(f"{path}: {target}: {rendered or '-'}")
		for row in payload.get("trace", []):
			steps = " -> ".join(f"{s['qualifier']} ({s['derivation']})" for s in row["steps"])
			print(f"{path}: trace {row['target']} in {row['top']}: {steps}")
		for diag in diags:
			print(diag.render(), file=sys.stderr)
	return exit_code


__all__ = ["main", "solve_site"]
