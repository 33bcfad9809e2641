#!/usr/bin/env python3
# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""End-to-end CLI runs over constraint script files."""

import json
from pathlib import Path

from qualinfer.driver import main

_LATTICES = """
lattice Nullness { Nullable > NonNull; }
lattice Taint { Tainted > Partial; Partial > Untainted; }
"""


def _write(tmp_path: Path, name: str, body: str) -> Path:
	path = tmp_path / name
	path.write_text(_LATTICES + body)
	return path


def test_human_output_lists_assignments(tmp_path: Path, capsys):
	path = _write(
		tmp_path,
		"ok.qc",
		"type String { NonNull, Untainted };\ntarget T;\nT :> String;\n",
	)
	assert main([str(path)]) == 0
	captured = capsys.readouterr()
	assert f"{path}: T: Nullness=NonNull, Taint=Untainted" in captured.out
	assert captured.err == ""


def test_json_reports_bound_conflict(tmp_path: Path, capsys):
	path = _write(tmp_path, "conflict.qc", "target T;\nT == NonNull;\nT :> Nullable;\nT == Partial;\n")
	assert main([str(path), "--json"]) == 1
	payload = json.loads(capsys.readouterr().out)
	assert payload["exit_code"] == 1
	assert payload["assignments"] == {"T": {"Taint": "Partial"}}
	(diag,) = payload["diagnostics"]
	assert diag["code"] == "E-BOUND-CONFLICT"
	assert diag["phase"] == "infer"
	assert diag["file"] == str(path)
	assert "lower bound Nullable is not a subtype of upper bound NonNull" in diag["notes"]


def test_defaults_fill_uninferred_targets(tmp_path: Path, capsys):
	path = _write(tmp_path, "defaults.qc", "target V default { Nullable, Tainted };\n")
	assert main([str(path)]) == 0
	captured = capsys.readouterr()
	assert f"{path}: V: Nullness=Nullable, Taint=Tainted" in captured.out
	assert "[N-DEFAULTED]" in captured.err


def test_no_defaults_reports_uninferred(tmp_path: Path, capsys):
	path = _write(tmp_path, "defaults.qc", "target V default { Nullable };\n")
	assert main([str(path), "--json", "--no-defaults"]) == 1
	payload = json.loads(capsys.readouterr().out)
	codes = sorted(d["code"] for d in payload["diagnostics"])
	assert codes == ["E-UNINFERRED", "E-UNINFERRED"]
	assert payload["assignments"] == {"V": {}}


def test_script_error_is_a_parser_diagnostic(tmp_path: Path, capsys):
	path = _write(tmp_path, "broken.qc", "target T;\nT :> ;\n")
	assert main([str(path), "--json"]) == 1
	payload = json.loads(capsys.readouterr().out)
	(diag,) = payload["diagnostics"]
	assert diag["phase"] == "parser"
	assert diag["code"] == "E-SCRIPT"
	assert diag["line"] == 5


def test_trace_output(tmp_path: Path, capsys):
	path = _write(tmp_path, "trace.qc", "target A;\ntarget B;\nA :> B;\nB == Partial;\nB == NonNull;\n")
	assert main([str(path), "--json", "--trace"]) == 0
	payload = json.loads(capsys.readouterr().out)
	rows = {(r["target"], r["top"]): r for r in payload["trace"]}
	row = rows[("A", "Taint")]
	assert row["steps"] == [{"qualifier": "Partial", "derivation": "lower", "sources": ["B"]}]
	assert row["lower_bounds"] == ["Partial"]


def test_worst_exit_code_wins(tmp_path: Path, capsys):
	good = _write(tmp_path, "good.qc", "target T;\nT == NonNull;\nT == Partial;\n")
	bad = tmp_path / "missing.qc"
	assert main([str(good), str(bad)]) == 1
	captured = capsys.readouterr()
	assert f"{good}: T: Nullness=NonNull, Taint=Partial" in captured.out
	assert "[E-IO]" in captured.err
