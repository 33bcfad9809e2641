# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Constraint records and the per-target accumulator.

A `ConstraintRecord` is one immutable relation between a target and a
qualifier, a concrete type, or another target, scoped to one hierarchy top.
`TargetConstraints` holds every record whose subject is one target, grouped
by relation kind:

  - equalities: the target's qualifier equals the other side
  - supertypes: the target is the supertype; the other side is a lower bound
  - subtypes:   the target is the subtype;   the other side is an upper bound

Each group is the same `RelationGroup` shape (primaries/types/targets), tagged
with its `RelationKind`. Accumulators are mutated only by insertion and by
`clear()`; the solver reads them and keeps its propagation state elsewhere.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Set, Tuple, Union

from qualinfer.core.ids import Qualifier, TargetId, TopId
from qualinfer.core.types_core import TypeId
from qualinfer.failures import EqualityConflict


class RelationKind(str, Enum):
	EQUAL = "equal"
	LOWER_BOUND = "lower_bound"  # target is the supertype of the other side
	UPPER_BOUND = "upper_bound"  # target is the subtype of the other side

	def mirrored(self) -> "RelationKind":
		"""Kind of the same relation seen from the other target's side."""
		if self is RelationKind.LOWER_BOUND:
			return RelationKind.UPPER_BOUND
		if self is RelationKind.UPPER_BOUND:
			return RelationKind.LOWER_BOUND
		return self


class OtherKind(str, Enum):
	QUALIFIER = "qualifier"
	TYPE = "type"
	TARGET = "target"


Other = Union[Qualifier, TypeId, TargetId]


class InvalidEdgeError(ValueError):
	"""A relation that cannot be recorded (unknown target/type, bad top)."""


class EqualityConflictError(ValueError):
	"""Raised when a second, different exact qualifier is set for (target, top)."""

	def __init__(self, failure: EqualityConflict) -> None:
		super().__init__(
			f"{failure.target} already equals {failure.first} in {failure.top}, cannot also equal {failure.second}"
		)
		self.failure = failure


def other_kind(other: object) -> OtherKind:
	"""Classify the other side of a relation."""
	if isinstance(other, Qualifier):
		return OtherKind.QUALIFIER
	if isinstance(other, TargetId):
		return OtherKind.TARGET
	if isinstance(other, int) and not isinstance(other, bool):
		return OtherKind.TYPE
	raise InvalidEdgeError(f"unsupported relation operand {other!r}")


@dataclass(frozen=True)
class ConstraintRecord:
	"""One relation between `target` and `other` in hierarchy `top`."""

	target: TargetId
	kind: RelationKind
	other: Other
	top: TopId

	@property
	def other_kind(self) -> OtherKind:
		return other_kind(self.other)


@dataclass
class RelationGroup:
	"""
	All relations of one kind for one target.

	primaries: top -> qualifiers (for EQUAL at most one per top)
	types:     concrete type -> tops in which the relation holds
	targets:   other target  -> tops in which the relation holds
	"""

	kind: RelationKind
	primaries: Dict[TopId, Set[Qualifier]] = field(default_factory=dict)
	types: Dict[TypeId, Set[TopId]] = field(default_factory=dict)
	targets: Dict[TargetId, Set[TopId]] = field(default_factory=dict)

	def add_qualifier(self, top: TopId, qual: Qualifier) -> None:
		self.primaries.setdefault(top, set()).add(qual)

	def add_type(self, type_id: TypeId, top: TopId) -> None:
		self.types.setdefault(type_id, set()).add(top)

	def add_target(self, other: TargetId, top: TopId) -> None:
		self.targets.setdefault(other, set()).add(top)

	def qualifiers(self, top: TopId) -> Set[Qualifier]:
		return set(self.primaries.get(top, ()))

	def types_in(self, top: TopId) -> List[TypeId]:
		return [ty for ty, tops in self.types.items() if top in tops]

	def targets_in(self, top: TopId) -> List[TargetId]:
		return [tgt for tgt, tops in self.targets.items() if top in tops]

	def tops(self) -> Set[TopId]:
		out: Set[TopId] = {top for top, quals in self.primaries.items() if quals}
		for tops in self.types.values():
			out |= tops
		for tops in self.targets.values():
			out |= tops
		return out

	def is_empty(self) -> bool:
		return not (self.primaries or self.types or self.targets)

	def clear(self) -> None:
		self.primaries.clear()
		self.types.clear()
		self.targets.clear()


class TargetConstraints:
	"""
	Every constraint whose subject is `target`.

	Unlike ConstraintRecord this object is mutable: it is filled from raw edges
	and cleared between inference attempts. It is owned by exactly one
	ConstraintMap and never shared across call sites.
	"""

	def __init__(self, target: TargetId) -> None:
		self.target = target
		self.equalities = RelationGroup(RelationKind.EQUAL)
		# Target is the supertype: these are NOT supertypes of the target.
		self.supertypes = RelationGroup(RelationKind.LOWER_BOUND)
		# Target is the subtype: these are NOT subtypes of the target.
		self.subtypes = RelationGroup(RelationKind.UPPER_BOUND)

	def group(self, kind: RelationKind) -> RelationGroup:
		if kind is RelationKind.EQUAL:
			return self.equalities
		if kind is RelationKind.LOWER_BOUND:
			return self.supertypes
		return self.subtypes

	def add_equality_qualifier(self, top: TopId, qual: Qualifier) -> None:
		_check_top(qual, top)
		current = self.equality_qualifier(top)
		if current is not None and current != qual:
			raise EqualityConflictError(EqualityConflict(target=self.target, top=top, first=current, second=qual))
		self.equalities.primaries[top] = {qual}

	def add_equality_type(self, type_id: TypeId, top: TopId) -> None:
		self.equalities.add_type(type_id, top)

	def add_equality_target(self, other: TargetId, top: TopId) -> None:
		self._check_not_self(other)
		self.equalities.add_target(other, top)

	def add_lower_bound(self, top: TopId, other: Other) -> None:
		self._add_bound(self.supertypes, top, other)

	def add_upper_bound(self, top: TopId, other: Other) -> None:
		self._add_bound(self.subtypes, top, other)

	def add(self, kind: RelationKind, top: TopId, other: Other) -> None:
		"""Insert one relation of `kind`, dispatching on the other side."""
		if kind is RelationKind.EQUAL:
			okind = other_kind(other)
			if okind is OtherKind.QUALIFIER:
				self.add_equality_qualifier(top, other)  # type: ignore[arg-type]
			elif okind is OtherKind.TYPE:
				self.add_equality_type(other, top)  # type: ignore[arg-type]
			else:
				self.add_equality_target(other, top)  # type: ignore[arg-type]
		elif kind is RelationKind.LOWER_BOUND:
			self.add_lower_bound(top, other)
		else:
			self.add_upper_bound(top, other)

	def equality_qualifier(self, top: TopId) -> Qualifier | None:
		quals = self.equalities.primaries.get(top)
		if not quals:
			return None
		return next(iter(quals))

	def _add_bound(self, group: RelationGroup, top: TopId, other: Other) -> None:
		okind = other_kind(other)
		if okind is OtherKind.QUALIFIER:
			_check_top(other, top)  # type: ignore[arg-type]
			group.add_qualifier(top, other)  # type: ignore[arg-type]
		elif okind is OtherKind.TYPE:
			group.add_type(other, top)  # type: ignore[arg-type]
		else:
			self._check_not_self(other)  # type: ignore[arg-type]
			group.add_target(other, top)  # type: ignore[arg-type]

	def _check_not_self(self, other: TargetId) -> None:
		if other == self.target:
			raise InvalidEdgeError(f"target {self.target} cannot be related to itself")

	def groups(self) -> Tuple[RelationGroup, RelationGroup, RelationGroup]:
		return (self.equalities, self.supertypes, self.subtypes)

	def tops(self) -> Set[TopId]:
		out: Set[TopId] = set()
		for group in self.groups():
			out |= group.tops()
		return out

	def is_empty(self) -> bool:
		return all(group.is_empty() for group in self.groups())

	def clear(self) -> None:
		"""Drop every recorded relation; only valid between inference attempts."""
		for group in self.groups():
			group.clear()

	def records(self) -> Iterator[ConstraintRecord]:
		"""Yield every stored relation as an immutable record."""
		for group in self.groups():
			for top, quals in group.primaries.items():
				for qual in quals:
					yield ConstraintRecord(target=self.target, kind=group.kind, other=qual, top=top)
			for ty, tops in group.types.items():
				for top in sorted(tops):
					yield ConstraintRecord(target=self.target, kind=group.kind, other=ty, top=top)
			for tgt, tops in group.targets.items():
				for top in sorted(tops):
					yield ConstraintRecord(target=self.target, kind=group.kind, other=tgt, top=top)

	def __repr__(self) -> str:
		return f"TargetConstraints({self.target}, records={len(list(self.records()))})"


def _check_top(qual: Qualifier, top: TopId) -> None:
	if qual.top != top:
		raise InvalidEdgeError(f"qualifier '{qual.name}' belongs to '{qual.top}', not '{top}'")


__all__ = [
	"RelationKind",
	"OtherKind",
	"Other",
	"InvalidEdgeError",
	"EqualityConflictError",
	"ConstraintRecord",
	"RelationGroup",
	"TargetConstraints",
	"other_kind",
]
