#!/usr/bin/env python3
# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Solutions must not depend on the order targets or edges are given in."""

import itertools

import pytest

from qualinfer.constraint_map import equal, subtype_of, supertype_of
from qualinfer.failures import AmbiguousQualifier, BoundConflict, EqualityConflict
from qualinfer.test_helpers import solve, standard_hierarchy, targets

H = standard_hierarchy()
q = H.qualifier


def _upper_pair_equated(a, b, c):
	return [subtype_of(a, q("Nullable")), subtype_of(b, q("NonNull")), equal(a, b, "Nullness")]


def _upper_pair_related(a, b, c):
	return [subtype_of(b, q("Tainted")), subtype_of(a, q("Partial")), supertype_of(a, b, "Taint")]


def _mixed_directions(a, b, c):
	return [supertype_of(a, q("Untainted")), subtype_of(b, q("Tainted")), supertype_of(a, b, "Taint")]


def _diamond(a, b, c):
	return [
		supertype_of(a, b, "Taint"),
		supertype_of(a, c, "Taint"),
		supertype_of(b, q("Untainted")),
		supertype_of(c, q("Partial")),
	]


def _pushed_past_ceiling(a, b, c):
	return [supertype_of(a, b, "Taint"), equal(b, q("Tainted")), subtype_of(a, q("Untainted"))]


def _flavor_ceiling_without_meet(a, b, c):
	return [subtype_of(a, q("A")), subtype_of(a, q("B")), supertype_of(a, q("X")), equal(b, a, "Flavor")]


def _equated_chain(a, b, c):
	return [
		equal(a, b, "Taint"),
		supertype_of(c, a, "Taint"),
		supertype_of(b, q("Partial")),
		subtype_of(c, q("Tainted")),
		subtype_of(a, q("Tainted")),
	]


def _exact_disagreement(a, b, c):
	return [equal(a, b, "Nullness"), equal(a, q("NonNull")), equal(b, q("Nullable")), subtype_of(c, a, "Nullness")]


GRAPHS = [
	_upper_pair_equated,
	_upper_pair_related,
	_mixed_directions,
	_diamond,
	_pushed_past_ceiling,
	_flavor_ceiling_without_meet,
	_equated_chain,
	_exact_disagreement,
]


def _failure_key(failure):
	if isinstance(failure, EqualityConflict):
		quals = frozenset({failure.first, failure.second})
	elif isinstance(failure, BoundConflict):
		quals = (failure.lower, failure.upper)
	elif isinstance(failure, AmbiguousQualifier):
		quals = failure.candidates
	else:
		quals = None
	return (failure.kind, str(failure.target), failure.top, quals)


def _outcome(result):
	assignments = {(str(t), top): qual for (t, top), qual in result.assignments.items()}
	failures = frozenset(_failure_key(f) for f in result.failures)
	return assignments, failures


@pytest.mark.parametrize("graph", GRAPHS, ids=lambda g: g.__name__.strip("_"))
def test_same_solution_in_every_order(graph):
	tgts = targets("A", "B", "C")
	edges = graph(*tgts)
	tops = ["Nullness", "Taint", "Flavor"]
	expected = None
	for order in itertools.permutations(tgts):
		for edge_order in (edges, edges[::-1]):
			result = solve(list(order), edge_order, tops=tops, trace=True)
			outcome = _outcome(result)
			if expected is None:
				expected = outcome
			assert outcome == expected, [str(t) for t in order]
			for (target, top), value in result.assignments.items():
				for lower in result.trace.lower_bounds[(target, top)]:
					assert H.leq(top, lower, value)
				for upper in result.trace.upper_bounds[(target, top)]:
					assert H.leq(top, value, upper)


@pytest.mark.parametrize("reverse", [False, True])
def test_equated_upper_bounds_meet_in_either_order(reverse):
	a, b = targets("A", "B")
	edges = [subtype_of(a, q("Nullable")), subtype_of(b, q("NonNull")), equal(a, b, "Nullness")]
	tgts = [b, a] if reverse else [a, b]
	result = solve(tgts, edges[::-1] if reverse else edges, tops=["Nullness"])
	assert result.ok
	assert result.qualifier(a, "Nullness") == result.qualifier(b, "Nullness") == q("NonNull")


@pytest.mark.parametrize("reverse", [False, True])
def test_upper_bound_meets_across_subtype_edge_in_either_order(reverse):
	a, b = targets("A", "B")
	edges = [subtype_of(b, q("Tainted")), subtype_of(a, q("Partial")), supertype_of(a, b, "Taint")]
	tgts = [b, a] if reverse else [a, b]
	result = solve(tgts, edges[::-1] if reverse else edges, tops=["Taint"])
	assert result.ok
	assert result.qualifier(a, "Taint") == q("Partial")
	assert result.qualifier(b, "Taint") == q("Partial")


def test_upper_bounds_without_meet_are_ambiguous_despite_lower():
	(t,) = targets("T")
	result = solve([t], [subtype_of(t, q("A")), subtype_of(t, q("B")), supertype_of(t, q("X"))], tops=["Flavor"])
	assert result.failures == (AmbiguousQualifier(t, "Flavor", frozenset({q("A"), q("B")})),)
	assert result.qualifier(t, "Flavor") is None


def test_lower_bounds_without_join_are_ambiguous_despite_exact():
	(t,) = targets("T")
	result = solve([t], [equal(t, q("A")), supertype_of(t, q("X")), supertype_of(t, q("Y"))], tops=["Flavor"])
	assert result.failures == (AmbiguousQualifier(t, "Flavor", frozenset({q("X"), q("Y")})),)
	assert result.qualifier(t, "Flavor") is None
