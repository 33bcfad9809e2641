# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Fixed-point qualifier solver.

Each hierarchy top is solved on its own; tops never interact. Within a top the
solver closes three qualifier sets per target over the relation graph:

  - exacts: equality qualifiers and equated concrete types, shared along
            equality edges
  - lowers: lower bounds and exacts, carried up to supertypes and along
            equality edges
  - uppers: upper bounds, carried down to subtypes and along equality edges,
            for targets that have no lower bound anywhere below them

The closures are plain set unions, so their result does not depend on the
order targets or edges were declared in. A target's value is then its exact
value, else the join of its lowers (the least admissible qualifier), else the
meet of its uppers together with the values of resolved targets above it.

Bounds are checked once every value is known, against the direct bounds of
each target and the values of its related targets. Every check reads the same
snapshot of values, so which targets fail does not depend on check order
either.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Deque, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from qualinfer.constraint_map import ConstraintMap
from qualinfer.constraints import TargetConstraints
from qualinfer.core.ids import Qualifier, TargetId, TopId
from qualinfer.core.types_core import TypeTable
from qualinfer.failures import (
	AmbiguousQualifier,
	BoundConflict,
	EqualityConflict,
	Failure,
	UninferredTypeArgument,
)
from qualinfer.lattice import LatticeOracle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SolverConfig:
	"""
	Solver knobs.

	trace:       record binding evidence and final bound sets
	visit_limit: max worklist pops per top (None: derived from the problem size)
	"""

	trace: bool = False
	visit_limit: Optional[int] = None


class Derivation(str, Enum):
	EXACT = "exact"
	LOWER = "lower"
	UPPER = "upper"


@dataclass(frozen=True)
class BindingEvidence:
	target: TargetId
	top: TopId
	qualifier: Qualifier
	derivation: Derivation
	sources: Tuple[str, ...] = ()


@dataclass
class SolveTrace:
	bindings: Dict[Tuple[TargetId, TopId], List[BindingEvidence]] = field(default_factory=dict)
	lower_bounds: Dict[Tuple[TargetId, TopId], FrozenSet[Qualifier]] = field(default_factory=dict)
	upper_bounds: Dict[Tuple[TargetId, TopId], FrozenSet[Qualifier]] = field(default_factory=dict)

	def record(self, evidence: BindingEvidence) -> None:
		self.bindings.setdefault((evidence.target, evidence.top), []).append(evidence)


@dataclass
class SolverOutput:
	assignments: Dict[Tuple[TargetId, TopId], Qualifier]
	failures: List[Failure]
	trace: Optional[SolveTrace] = None


@dataclass
class _Node:
	"""Working state of one target in one top."""

	target: TargetId
	exact_direct: List[Qualifier] = field(default_factory=list)
	lower_direct: Set[Qualifier] = field(default_factory=set)
	upper_direct: Set[Qualifier] = field(default_factory=set)
	equal_targets: List[TargetId] = field(default_factory=list)
	lower_targets: List[TargetId] = field(default_factory=list)  # targets that are subtypes of this one
	upper_targets: List[TargetId] = field(default_factory=list)  # targets that are supertypes of this one
	value: Optional[Qualifier] = None
	derivation: Optional[Derivation] = None
	failure: Optional[Failure] = None

	def below(self) -> List[TargetId]:
		return [*self.equal_targets, *self.lower_targets]

	def above(self) -> List[TargetId]:
		return [*self.equal_targets, *self.upper_targets]


class _VisitBudget:
	"""Worklist pops allowed in one top; running out is logged once."""

	def __init__(self, top: TopId, limit: int) -> None:
		self.top = top
		self.limit = limit
		self.visits = 0
		self.exhausted = False

	def spend(self, pending: int) -> bool:
		if self.exhausted:
			return False
		self.visits += 1
		if self.visits > self.limit:
			self.exhausted = True
			logger.warning(
				"qualifier solver: visit limit (%d) reached in '%s' with %d target(s) pending",
				self.limit,
				self.top,
				pending,
			)
			return False
		return True


class QualifierSolver:
	"""
	Solve every (target, top) pair of one call site.

	The solver reads the ConstraintMap but never mutates it; all working state
	lives in per-top `_Node`s that are discarded when `solve` returns.
	"""

	def __init__(
		self,
		constraints: ConstraintMap,
		oracle: LatticeOracle,
		tops: Sequence[TopId],
		type_table: Optional[TypeTable] = None,
		config: Optional[SolverConfig] = None,
	) -> None:
		self.constraints = constraints
		self.oracle = oracle
		self.tops = list(tops)
		self.type_table = type_table or TypeTable()
		self.config = config or SolverConfig()

	def solve(self) -> SolverOutput:
		trace = SolveTrace() if self.config.trace else None
		out = SolverOutput(assignments={}, failures=[], trace=trace)
		for top in self.tops:
			self._solve_top(top, out, trace)
		return out

	# --- per-top fixpoint -------------------------------------------------

	def _solve_top(self, top: TopId, out: SolverOutput, trace: Optional[SolveTrace]) -> None:
		nodes = self._build_nodes(top)
		for conflict in self.constraints.insertion_failures():
			if conflict.top == top and conflict.target in nodes:
				nodes[conflict.target].failure = conflict
		limit = self.config.visit_limit
		if limit is None:
			limit = _default_visit_limit(nodes.values())
		budget = _VisitBudget(top, limit)

		exacts = {tid: set(node.exact_direct) for tid, node in nodes.items()}
		self._abandon(nodes, self._close(nodes, exacts, lambda n: n.equal_targets, budget), top)
		lowers = {tid: node.lower_direct | set(node.exact_direct) for tid, node in nodes.items()}
		self._abandon(nodes, self._close(nodes, lowers, _Node.above, budget), top)

		for tid, node in nodes.items():
			if node.failure is None:
				self._resolve_from_below(node, exacts, lowers, top, trace)

		# Targets with nothing below them take the meet of everything above them,
		# including the values just fixed for resolved targets above.
		uppers: Dict[TargetId, Set[Qualifier]] = {
			tid: set(node.upper_direct)
			for tid, node in nodes.items()
			if node.failure is None and node.value is None and not lowers[tid]
		}
		for tid, quals in uppers.items():
			for other in nodes[tid].above():
				value = nodes[other].value
				if other not in uppers and value is not None:
					quals.add(value)
		self._abandon(nodes, self._close(nodes, uppers, _Node.below, budget), top)
		for tid, quals in uppers.items():
			node = nodes[tid]
			if node.failure is None and quals:
				self._resolve_from_above(node, nodes, uppers, top, trace)

		for tid, node in nodes.items():
			if node.failure is None and node.value is None:
				node.failure = UninferredTypeArgument(target=tid, top=top)

		values = {tid: node.value for tid, node in nodes.items()}
		for node in nodes.values():
			self._validate(node, values, top, trace)

		for tid, node in nodes.items():
			if node.failure is not None:
				node.value = None
				logger.debug("%s in '%s': %s", tid, top, node.failure)
				out.failures.append(node.failure)
			elif node.value is not None:
				out.assignments[(tid, top)] = node.value

	def _build_nodes(self, top: TopId) -> Dict[TargetId, _Node]:
		nodes: Dict[TargetId, _Node] = {}
		for tc in self.constraints:
			nodes[tc.target] = self._node_for(tc, top)
		return nodes

	def _node_for(self, tc: TargetConstraints, top: TopId) -> _Node:
		node = _Node(target=tc.target)
		exact = tc.equality_qualifier(top)
		if exact is not None:
			node.exact_direct.append(exact)
		node.exact_direct.extend(self._type_quals(tc.equalities.types_in(top), top))
		node.lower_direct = tc.supertypes.qualifiers(top) | set(self._type_quals(tc.supertypes.types_in(top), top))
		node.upper_direct = tc.subtypes.qualifiers(top) | set(self._type_quals(tc.subtypes.types_in(top), top))
		node.equal_targets = tc.equalities.targets_in(top)
		node.lower_targets = tc.supertypes.targets_in(top)
		node.upper_targets = tc.subtypes.targets_in(top)
		return node

	def _type_quals(self, type_ids: Iterable[int], top: TopId) -> List[Qualifier]:
		quals: List[Qualifier] = []
		for ty in type_ids:
			qual = self.type_table.get(ty).qualifier(top)
			if qual is not None:
				quals.append(qual)
		return quals

	def _close(
		self,
		nodes: Mapping[TargetId, _Node],
		reached: Dict[TargetId, Set[Qualifier]],
		successors: Callable[[_Node], List[TargetId]],
		budget: _VisitBudget,
	) -> Set[TargetId]:
		"""
		Union each target's set into its successors' sets until nothing grows.

		Only targets keyed in `reached` take part; their sets are updated in
		place. Returns the targets left pending when the visit budget runs out.
		"""
		worklist: Deque[TargetId] = deque(tid for tid, quals in reached.items() if quals)
		queued: Set[TargetId] = set(worklist)
		while worklist:
			if not budget.spend(len(worklist)):
				return queued
			tid = worklist.popleft()
			queued.discard(tid)
			quals = reached[tid]
			for succ in successors(nodes[tid]):
				dest = reached.get(succ)
				if dest is None or quals <= dest:
					continue
				dest |= quals
				if succ not in queued:
					worklist.append(succ)
					queued.add(succ)
		return set()

	def _abandon(self, nodes: Mapping[TargetId, _Node], pending: Iterable[TargetId], top: TopId) -> None:
		for tid in pending:
			if nodes[tid].failure is None:
				nodes[tid].failure = UninferredTypeArgument(target=tid, top=top)

	def _resolve_from_below(
		self,
		node: _Node,
		exacts: Mapping[TargetId, Set[Qualifier]],
		lowers: Mapping[TargetId, Set[Qualifier]],
		top: TopId,
		trace: Optional[SolveTrace],
	) -> None:
		tid = node.target
		candidates = _distinct([*node.exact_direct, *sorted(exacts[tid], key=_qual_key)])
		if len(candidates) > 1:
			node.failure = EqualityConflict(target=tid, top=top, first=candidates[0], second=candidates[1])
		elif candidates:
			sources = () if node.exact_direct else _sources(node.equal_targets, exacts)
			self._bind(node, top, candidates[0], Derivation.EXACT, sources, trace)
		elif lowers[tid]:
			value = self.oracle.join(top, lowers[tid])
			if value is None:
				node.failure = AmbiguousQualifier(target=tid, top=top, candidates=frozenset(lowers[tid]))
			else:
				self._bind(node, top, value, Derivation.LOWER, _sources(node.below(), lowers), trace)

	def _resolve_from_above(
		self,
		node: _Node,
		nodes: Mapping[TargetId, _Node],
		uppers: Mapping[TargetId, Set[Qualifier]],
		top: TopId,
		trace: Optional[SolveTrace],
	) -> None:
		quals = uppers[node.target]
		value = self.oracle.meet(top, quals)
		if value is None:
			node.failure = AmbiguousQualifier(target=node.target, top=top, candidates=frozenset(quals))
			return
		# Resolved targets above contributed their values; the rest their sets.
		sources = tuple(
			sorted(str(t) for t in node.above() if uppers.get(t) or (t not in uppers and nodes[t].value is not None))
		)
		self._bind(node, top, value, Derivation.UPPER, sources, trace)

	def _bind(
		self,
		node: _Node,
		top: TopId,
		value: Qualifier,
		derivation: Derivation,
		sources: Tuple[str, ...],
		trace: Optional[SolveTrace],
	) -> None:
		logger.debug("%s in '%s': %s (%s)", node.target, top, value, derivation.value)
		node.value = value
		node.derivation = derivation
		if trace is not None:
			trace.record(BindingEvidence(node.target, top, value, derivation, sources))

	# --- final checks ------------------------------------------------------

	def _validate(
		self,
		node: _Node,
		values: Mapping[TargetId, Optional[Qualifier]],
		top: TopId,
		trace: Optional[SolveTrace],
	) -> None:
		value = node.value
		if value is None or node.failure is not None:
			return
		lowers = set(node.lower_direct)
		uppers = set(node.upper_direct)
		lowers.update(q for q in (values[t] for t in node.below()) if q is not None)
		uppers.update(q for q in (values[t] for t in node.above()) if q is not None)
		if trace is not None:
			trace.lower_bounds[(node.target, top)] = frozenset(lowers)
			trace.upper_bounds[(node.target, top)] = frozenset(uppers)

		floor = ceiling = None
		if lowers:
			floor = self.oracle.join(top, lowers)
			if floor is None:
				node.failure = AmbiguousQualifier(target=node.target, top=top, candidates=frozenset(lowers))
				return
		if uppers:
			ceiling = self.oracle.meet(top, uppers)
			if ceiling is None:
				node.failure = AmbiguousQualifier(target=node.target, top=top, candidates=frozenset(uppers))
				return
		if floor is not None and not self.oracle.leq(top, floor, value):
			node.failure = BoundConflict(target=node.target, top=top, lower=floor, upper=value)
		elif ceiling is not None and not self.oracle.leq(top, value, ceiling):
			node.failure = BoundConflict(target=node.target, top=top, lower=value, upper=ceiling)


def _distinct(quals: Iterable[Qualifier]) -> List[Qualifier]:
	out: List[Qualifier] = []
	for qual in quals:
		if qual not in out:
			out.append(qual)
	return out


def _sources(neighbors: Iterable[TargetId], reached: Mapping[TargetId, Set[Qualifier]]) -> Tuple[str, ...]:
	return tuple(sorted(str(t) for t in neighbors if reached.get(t)))


def _qual_key(qual: Qualifier) -> Tuple[str, str]:
	return (qual.top, qual.name)


def _default_visit_limit(nodes: Iterable[_Node]) -> int:
	# Each closure pops a target at most once per growth of its set, and a set
	# only holds direct qualifiers or values of other targets.
	node_list = list(nodes)
	quals: Set[Qualifier] = set()
	for node in node_list:
		quals.update(node.exact_direct)
		quals |= node.lower_direct | node.upper_direct
	n = len(node_list)
	return 64 + 4 * (n + 1) * (len(quals) + n + 1)


def solve_constraints(
	constraints: ConstraintMap,
	oracle: LatticeOracle,
	tops: Sequence[TopId],
	type_table: Optional[TypeTable] = None,
	config: Optional[SolverConfig] = None,
) -> SolverOutput:
	"""Convenience wrapper: build a solver and run it once."""
	return QualifierSolver(constraints, oracle, tops, type_table=type_table, config=config).solve()


__all__ = [
	"SolverConfig",
	"Derivation",
	"BindingEvidence",
	"SolveTrace",
	"SolverOutput",
	"QualifierSolver",
	"solve_constraints",
]
