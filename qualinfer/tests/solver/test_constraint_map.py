#!/usr/bin/env python3
# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Filing raw edges into per-target accumulators."""

import pytest

from qualinfer.constraint_map import ConstraintMap, RawEdge, equal, subtype_of, supertype_of
from qualinfer.constraints import InvalidEdgeError, RelationKind
from qualinfer.core.ids import Qualifier, TargetId
from qualinfer.core.types_core import TypeTable
from qualinfer.test_helpers import targets

NON_NULL = Qualifier("Nullness", "NonNull")
NULLABLE = Qualifier("Nullness", "Nullable")


def test_target_edges_are_mirrored():
	a, b, c = targets("A", "B", "C")
	cm = ConstraintMap([a, b, c])
	cm.add_edge(supertype_of(a, b, "Taint"))
	cm.add_edge(equal(b, c, "Nullness"))
	assert cm.get(a).supertypes.targets == {b: {"Taint"}}
	assert cm.get(b).subtypes.targets == {a: {"Taint"}}
	assert cm.get(b).equalities.targets == {c: {"Nullness"}}
	assert cm.get(c).equalities.targets == {b: {"Nullness"}}


def test_qualifier_edge_takes_qualifier_top():
	(t,) = targets("T")
	cm = ConstraintMap([t])
	cm.add_edge(subtype_of(t, NULLABLE))
	assert cm.get(t).subtypes.qualifiers("Nullness") == {NULLABLE}
	with pytest.raises(InvalidEdgeError, match="belongs to"):
		cm.add_edge(RawEdge(t, RelationKind.LOWER_BOUND, NON_NULL, top="Taint"))


def test_type_and_target_edges_need_a_top():
	t, u = targets("T", "U")
	cm = ConstraintMap([t, u])
	with pytest.raises(InvalidEdgeError, match="explicit hierarchy top"):
		cm.add_edge(equal(t, u))


def test_unknown_target_and_type_rejected():
	(t,) = targets("T")
	table = TypeTable()
	string = table.new_concrete("String", [NON_NULL])
	cm = ConstraintMap([t], type_table=table)
	cm.add_edge(equal(t, string, "Nullness"))
	with pytest.raises(InvalidEdgeError, match="unknown type"):
		cm.add_edge(equal(t, string + 1, "Nullness"))
	with pytest.raises(InvalidEdgeError, match="unknown target"):
		cm.add_edge(equal(TargetId("other", 0, "X"), NON_NULL))
	with pytest.raises(InvalidEdgeError, match="unknown target"):
		cm.add_edge(equal(t, TargetId("other", 0, "X"), "Nullness"))


def test_duplicate_targets_rejected():
	(t,) = targets("T")
	with pytest.raises(InvalidEdgeError, match="duplicate"):
		ConstraintMap([t, t])


def test_equality_conflict_recorded_not_raised():
	(t,) = targets("T")
	cm = ConstraintMap([t])
	cm.add_edges([equal(t, NON_NULL), equal(t, NULLABLE)])
	(failure,) = cm.insertion_failures()
	assert failure.target == t
	assert (failure.first, failure.second) == (NON_NULL, NULLABLE)


def test_clear_resets_everything():
	t, u = targets("T", "U")
	cm = ConstraintMap([t, u])
	cm.add_edges([equal(t, NON_NULL), equal(t, NULLABLE), supertype_of(t, u, "Nullness")])
	assert not cm.is_empty()
	cm.clear()
	assert cm.is_empty()
	assert cm.insertion_failures() == []
	assert cm.targets() == [t, u]
	assert len(cm) == 2 and t in cm
