# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Grouping of raw call-site edges into per-target accumulators.

The caller's semantic analysis decides which relations to record; this module
only files them. Target-to-target relations are stored on both sides so the
solver can walk them from either end:

  A :> B  ->  A.supertypes.targets[B], B.subtypes.targets[A]
  A == B  ->  A.equalities.targets[B], B.equalities.targets[A]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional

from qualinfer.constraints import (
	EqualityConflictError,
	InvalidEdgeError,
	Other,
	OtherKind,
	RelationKind,
	TargetConstraints,
	other_kind,
)
from qualinfer.core.ids import TargetId, TopId
from qualinfer.core.types_core import TypeTable
from qualinfer.failures import EqualityConflict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawEdge:
	"""
	One relation recorded by the caller: `target <kind> other` in `top`.

	`top` may be omitted when `other` is a Qualifier; the qualifier's own top
	is used. Type and target operands always need an explicit top.
	"""

	target: TargetId
	kind: RelationKind
	other: Other
	top: Optional[TopId] = None

	def resolved_top(self) -> TopId:
		okind = other_kind(self.other)
		if okind is OtherKind.QUALIFIER:
			qual_top = self.other.top  # type: ignore[union-attr]
			if self.top is not None and self.top != qual_top:
				raise InvalidEdgeError(
					f"edge on {self.target}: qualifier '{self.other}' belongs to '{qual_top}', not '{self.top}'"
				)
			return qual_top
		if self.top is None:
			raise InvalidEdgeError(f"edge on {self.target}: a {okind.value} operand needs an explicit hierarchy top")
		return self.top


def equal(target: TargetId, other: Other, top: Optional[TopId] = None) -> RawEdge:
	return RawEdge(target=target, kind=RelationKind.EQUAL, other=other, top=top)


def supertype_of(target: TargetId, other: Other, top: Optional[TopId] = None) -> RawEdge:
	"""`target :> other`: other is a lower bound of target."""
	return RawEdge(target=target, kind=RelationKind.LOWER_BOUND, other=other, top=top)


def subtype_of(target: TargetId, other: Other, top: Optional[TopId] = None) -> RawEdge:
	"""`target <: other`: other is an upper bound of target."""
	return RawEdge(target=target, kind=RelationKind.UPPER_BOUND, other=other, top=top)


class ConstraintMap:
	"""
	Accumulators for every target of one call-site resolution.

	Insertion-time equality conflicts are recorded as failures instead of being
	raised so the solver can still report every other problem of the call.
	"""

	def __init__(self, targets: Iterable[TargetId], type_table: Optional[TypeTable] = None) -> None:
		self._by_target: Dict[TargetId, TargetConstraints] = {}
		for target in targets:
			if target in self._by_target:
				raise InvalidEdgeError(f"duplicate target {target}")
			self._by_target[target] = TargetConstraints(target)
		self._type_table = type_table
		self._insertion_failures: List[EqualityConflict] = []

	def targets(self) -> List[TargetId]:
		return list(self._by_target)

	def get(self, target: TargetId) -> TargetConstraints:
		try:
			return self._by_target[target]
		except KeyError:
			raise InvalidEdgeError(f"unknown target {target}") from None

	def __contains__(self, target: object) -> bool:
		return target in self._by_target

	def __iter__(self) -> Iterator[TargetConstraints]:
		return iter(self._by_target.values())

	def __len__(self) -> int:
		return len(self._by_target)

	def add_edge(self, edge: RawEdge) -> None:
		top = edge.resolved_top()
		subject = self.get(edge.target)
		okind = other_kind(edge.other)
		if okind is OtherKind.TYPE and self._type_table is not None and edge.other not in self._type_table:
			raise InvalidEdgeError(f"edge on {edge.target}: unknown type id {edge.other}")
		if okind is OtherKind.TARGET:
			other = self.get(edge.other)  # type: ignore[arg-type]
			subject.add(edge.kind, top, other.target)
			other.add(edge.kind.mirrored(), top, subject.target)
			return
		try:
			subject.add(edge.kind, top, edge.other)
		except EqualityConflictError as err:
			logger.debug("equality conflict while recording %s: %s", edge, err)
			self._insertion_failures.append(err.failure)

	def add_edges(self, edges: Iterable[RawEdge]) -> None:
		for edge in edges:
			self.add_edge(edge)

	def insertion_failures(self) -> List[EqualityConflict]:
		return list(self._insertion_failures)

	def clear(self) -> None:
		"""Reset every accumulator for a second attempt (no residue survives)."""
		for tc in self._by_target.values():
			tc.clear()
		self._insertion_failures.clear()

	def is_empty(self) -> bool:
		return all(tc.is_empty() for tc in self._by_target.values())


__all__ = ["RawEdge", "ConstraintMap", "equal", "supertype_of", "subtype_of"]
