# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Caller-facing inference session and its immutable result.

A session owns the accumulators of exactly one call-site resolution:

	session = InferenceSession(targets, hierarchy, type_table)
	session.add_edges(edges)
	result = session.solve()

`solve()` freezes the solver output into a `SolveResult`; nothing in the
result aliases the session's mutable state. `reset()` clears the accumulators
so the same session can be rebuilt for a second attempt.

Default substitution is policy and stays with the caller:
`apply_declared_bounds` replaces `UninferredTypeArgument` failures with the
declared bound of the parameter and leaves every other failure alone.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple

from qualinfer.constraint_map import ConstraintMap, RawEdge
from qualinfer.core.ids import Qualifier, TargetId, TopId
from qualinfer.core.types_core import TypeTable
from qualinfer.failures import Failure, UninferredTypeArgument
from qualinfer.lattice import LatticeOracle
from qualinfer.solver import QualifierSolver, SolverConfig, SolveTrace


class DeclaredBoundProvider(Protocol):
	def declared_bound(self, target: TargetId, top: TopId) -> Optional[Qualifier]:
		"""Declared default qualifier of `target` in `top`, if any."""
		...


@dataclass
class DeclaredBounds:
	"""Dict-backed DeclaredBoundProvider."""

	bounds: Dict[Tuple[TargetId, TopId], Qualifier] = field(default_factory=dict)

	def declare(self, target: TargetId, qual: Qualifier) -> None:
		self.bounds[(target, qual.top)] = qual

	def declared_bound(self, target: TargetId, top: TopId) -> Optional[Qualifier]:
		return self.bounds.get((target, top))


@dataclass(frozen=True)
class TargetResolution:
	"""Everything known about one target after solving, across all tops."""

	target: TargetId
	qualifiers: Mapping[TopId, Qualifier]
	failures: Tuple[Failure, ...] = ()
	defaulted: Tuple[TopId, ...] = ()

	@property
	def ok(self) -> bool:
		return not self.failures


@dataclass(frozen=True)
class SolveResult:
	ok: bool
	assignments: Mapping[Tuple[TargetId, TopId], Qualifier]
	failures: Tuple[Failure, ...]
	resolutions: Mapping[TargetId, TargetResolution]
	tops: Tuple[TopId, ...] = ()
	trace: Optional[SolveTrace] = None

	def qualifier(self, target: TargetId, top: TopId) -> Optional[Qualifier]:
		return self.assignments.get((target, top))

	def failures_for(self, target: TargetId) -> Tuple[Failure, ...]:
		res = self.resolutions.get(target)
		return res.failures if res is not None else ()


def freeze_result(
	targets: Sequence[TargetId],
	tops: Sequence[TopId],
	assignments: Mapping[Tuple[TargetId, TopId], Qualifier],
	failures: Iterable[Failure],
	*,
	trace: Optional[SolveTrace] = None,
	defaulted: Optional[Mapping[TargetId, Sequence[TopId]]] = None,
) -> SolveResult:
	"""Aggregate per-(target, top) outcomes per target into an immutable result."""
	failure_list = list(failures)
	defaulted = defaulted or {}
	resolutions: Dict[TargetId, TargetResolution] = {}
	for target in targets:
		quals = {top: assignments[(target, top)] for top in tops if (target, top) in assignments}
		resolutions[target] = TargetResolution(
			target=target,
			qualifiers=MappingProxyType(quals),
			failures=tuple(f for f in failure_list if f.target == target),
			defaulted=tuple(defaulted.get(target, ())),
		)
	return SolveResult(
		ok=not failure_list,
		assignments=MappingProxyType(dict(assignments)),
		failures=tuple(failure_list),
		resolutions=MappingProxyType(resolutions),
		tops=tuple(tops),
		trace=trace,
	)


class InferenceSession:
	"""
	One call-site resolution: accumulators plus a fresh solver per `solve()`.

	Sessions are not shared between call sites; a host resolving several calls
	concurrently must use one session per call.
	"""

	def __init__(
		self,
		targets: Iterable[TargetId],
		oracle: LatticeOracle,
		type_table: Optional[TypeTable] = None,
		tops: Optional[Sequence[TopId]] = None,
		config: Optional[SolverConfig] = None,
	) -> None:
		self.type_table = type_table or TypeTable()
		self.constraints = ConstraintMap(targets, type_table=self.type_table)
		self.oracle = oracle
		if tops is None:
			tops_fn = getattr(oracle, "tops", None)
			if tops_fn is None:
				raise ValueError("tops must be given when the oracle cannot enumerate its hierarchies")
			tops = tops_fn()
		self.tops: Tuple[TopId, ...] = tuple(tops)
		self.config = config or SolverConfig()

	@property
	def targets(self) -> List[TargetId]:
		return self.constraints.targets()

	def add_edge(self, edge: RawEdge) -> None:
		self.constraints.add_edge(edge)

	def add_edges(self, edges: Iterable[RawEdge]) -> None:
		self.constraints.add_edges(edges)

	def solve(self) -> SolveResult:
		solver = QualifierSolver(
			self.constraints,
			self.oracle,
			self.tops,
			type_table=self.type_table,
			config=self.config,
		)
		out = solver.solve()
		return freeze_result(self.targets, self.tops, out.assignments, out.failures, trace=out.trace)

	def reset(self) -> None:
		self.constraints.clear()


def apply_declared_bounds(result: SolveResult, provider: DeclaredBoundProvider) -> SolveResult:
	"""
	Substitute declared bounds for uninferred (target, top) pairs.

	Only `UninferredTypeArgument` failures are touched, and only where the
	provider has a declared bound; the substituted value is accepted as-is.
	"""
	assignments = dict(result.assignments)
	remaining: List[Failure] = []
	defaulted: Dict[TargetId, List[TopId]] = {}
	for failure in result.failures:
		if isinstance(failure, UninferredTypeArgument):
			bound = provider.declared_bound(failure.target, failure.top)
			if bound is not None:
				assignments[(failure.target, failure.top)] = bound
				defaulted.setdefault(failure.target, []).append(failure.top)
				continue
		remaining.append(failure)
	if not defaulted:
		return result
	return freeze_result(
		list(result.resolutions),
		result.tops,
		assignments,
		remaining,
		trace=result.trace,
		defaulted=defaulted,
	)


__all__ = [
	"DeclaredBoundProvider",
	"DeclaredBounds",
	"TargetResolution",
	"SolveResult",
	"InferenceSession",
	"freeze_result",
	"apply_declared_bounds",
]
