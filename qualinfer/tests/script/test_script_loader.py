#!/usr/bin/env python3
# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Parsing and resolving constraint scripts."""

from pathlib import Path

import pytest

from qualinfer.constraints import RelationKind
from qualinfer.driver import solve_site
from qualinfer.script import ScriptError, build_call_site, load_script, parse_script
from qualinfer.script.ast import EdgeStmt, LatticeDecl, TargetDecl

SAMPLE = """
# two lattices on one host type
lattice Nullness { Nullable > NonNull; }
lattice Taint {
	Tainted > Partial;
	Partial > Untainted;
}
type String { NonNull, Untainted };
target T default { Nullable, Tainted };
target U;
T :> String;
U == T in Nullness;
U <: Partial;
"""


def test_parse_builds_statements():
	script = parse_script(SAMPLE)
	(nullness, taint) = script.lattices()
	assert isinstance(nullness, LatticeDecl)
	assert taint.elements() == ["Tainted", "Partial", "Untainted"]
	assert taint.order() == [("Tainted", "Partial"), ("Partial", "Untainted")]
	(t, u) = script.targets()
	assert isinstance(t, TargetDecl) and t.defaults == ["Nullable", "Tainted"]
	assert u.defaults == []
	edges = script.edges()
	assert edges[1] == EdgeStmt(lhs="U", rel="==", rhs="T", tops=["Nullness"], loc=edges[1].loc)
	assert edges[0].loc.line == 11


def test_call_site_resolves_names():
	site = build_call_site(SAMPLE, file="sample.qc")
	assert site.name == "sample"
	assert site.hierarchy.tops() == ("Nullness", "Taint")
	assert [str(t) for t in site.targets] == ["T", "U"]
	# `T :> String` fans out to both lattices.
	assert len(site.edges) == 4
	assert {e.top for e in site.edges if e.other == site.type_table.lookup("String")} == {"Nullness", "Taint"}
	partial_edge = site.edges[-1]
	assert partial_edge.kind is RelationKind.UPPER_BOUND
	assert partial_edge.resolved_top() == "Taint"
	t = site.targets[0]
	assert site.declared.declared_bound(t, "Nullness") == site.hierarchy.qualifier("Nullable")


def test_call_site_solves():
	site = build_call_site(SAMPLE)
	result = solve_site(site)
	t, u = site.targets
	q = site.hierarchy.qualifier
	assert result.ok
	assert result.qualifier(t, "Nullness") == q("NonNull")
	assert result.qualifier(t, "Taint") == q("Untainted")
	assert result.qualifier(u, "Nullness") == q("NonNull")
	assert result.qualifier(u, "Taint") == q("Partial")


def test_syntax_error_has_location():
	with pytest.raises(ScriptError) as excinfo:
		parse_script("lattice N { A > B; }\ntarget T;\nT :> ;\n", file="bad.qc")
	loc = excinfo.value.loc
	assert (loc.file, loc.line) == ("bad.qc", 3)
	assert "unexpected" in str(excinfo.value)


def test_unterminated_script():
	with pytest.raises(ScriptError, match="end of script"):
		parse_script("target T")


@pytest.mark.parametrize(
	"source, message",
	[
		("target T; T :> Foo;", "unknown name 'Foo'"),
		("lattice N { A > B; } T :> A;", "declared target"),
		("lattice N { A > B; } target T; target T;", "already declared"),
		("lattice N { A > B; } type T; target T;", "already declared"),
		("lattice N { A > B; } target T; target U; T == U in M;", "unknown lattice"),
		("lattice N { A > B; } lattice M { C > D; } target T; T :> A in M;", "belongs to"),
		("lattice N { A > B; } target T default { A, B };", "two defaults"),
		("lattice N { A > B; } target T default { Z };", "unknown qualifier"),
		("lattice N { A > B; } target T; T == T;", "itself"),
		("lattice N { A; B; }", "exactly one top"),
		("lattice N { A > B; } lattice M { B > C; }", "declared in both"),
	],
)
def test_resolution_errors(source, message):
	with pytest.raises(ScriptError, match=message):
		build_call_site(source)


def test_load_script_reports_diagnostics(tmp_path: Path):
	bad = tmp_path / "bad.qc"
	bad.write_text("target T; T :> Foo;\n")
	site, diags = load_script(bad)
	assert site is None
	(diag,) = diags
	assert diag.code == "E-SCRIPT"
	assert diag.phase == "parser"
	assert diag.span.line == 1

	site, diags = load_script(tmp_path / "missing.qc")
	assert site is None
	assert diags[0].code == "E-IO"


def test_load_script_ok(tmp_path: Path):
	path = tmp_path / "ok.qc"
	path.write_text(SAMPLE)
	site, diags = load_script(path)
	assert diags == []
	assert site is not None and site.file == str(path)
