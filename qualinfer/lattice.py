# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Lattice oracle protocol and a finite-poset implementation.

The solver never reasons about the qualifier order itself: it asks a
`LatticeOracle` for joins, meets and `leq` in one hierarchy top. A `None`
join/meet means "no unique answer" and becomes an `AmbiguousQualifier`
failure upstream.

`FiniteLattice` is declared from `sup > sub` edges and closes them
reflexively/transitively. It only has to be a partial order with a unique
greatest element; joins/meets that do not exist are reported as `None`
instead of being rejected at declaration time.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Set, Tuple

from qualinfer.core.ids import Qualifier, TopId


class LatticeError(ValueError):
	"""Malformed lattice declaration or a qualifier used in the wrong lattice."""


class LatticeOracle(Protocol):
	"""
	Order queries for the qualifier lattices in play.

	Every method is scoped to one hierarchy top; qualifiers from different tops
	are never compared.
	"""

	def join(self, top: TopId, qualifiers: Iterable[Qualifier]) -> Optional[Qualifier]:
		"""Least upper bound of a non-empty set, or None if it has none."""
		...

	def meet(self, top: TopId, qualifiers: Iterable[Qualifier]) -> Optional[Qualifier]:
		"""Greatest lower bound of a non-empty set, or None if it has none."""
		...

	def leq(self, top: TopId, a: Qualifier, b: Qualifier) -> bool:
		"""True iff `a` is a subtype of (or equal to) `b` in `top`."""
		...


class FiniteLattice:
	"""
	One qualifier hierarchy over a finite set of named elements.

	`order` holds `(sup, sub)` name pairs; their reflexive-transitive closure is
	the subtype relation. Cycles are rejected, and exactly one maximal element
	(the hierarchy's top qualifier) is required.
	"""

	def __init__(self, name: TopId, elements: Iterable[str], order: Iterable[Tuple[str, str]] = ()) -> None:
		self.name = name
		names: List[str] = []
		for elem in elements:
			if elem not in names:
				names.append(elem)
		if not names:
			raise LatticeError(f"lattice '{name}' has no elements")
		self._elements: Dict[str, Qualifier] = {n: Qualifier(top=name, name=n) for n in names}
		direct_up: Dict[str, Set[str]] = {n: set() for n in names}
		for sup, sub in order:
			for elem in (sup, sub):
				if elem not in self._elements:
					raise LatticeError(f"lattice '{name}': unknown element '{elem}'")
			if sup == sub:
				continue
			direct_up[sub].add(sup)
		self._up = _closure(direct_up)
		for elem, ups in self._up.items():
			for other in ups:
				if other != elem and elem in self._up[other]:
					raise LatticeError(f"lattice '{name}': cycle between '{elem}' and '{other}'")
		self._down: Dict[str, Set[str]] = {n: set() for n in names}
		for elem, ups in self._up.items():
			for other in ups:
				self._down[other].add(elem)
		maximal = [n for n in names if self._up[n] == {n}]
		if len(maximal) != 1:
			raise LatticeError(
				f"lattice '{name}' must have exactly one top qualifier, found {', '.join(sorted(maximal))}"
			)
		self.top_qualifier = self._elements[maximal[0]]
		minimal = [n for n in names if self._down[n] == {n}]
		self.bottom_qualifier: Optional[Qualifier] = self._elements[minimal[0]] if len(minimal) == 1 else None

	@property
	def elements(self) -> Tuple[Qualifier, ...]:
		return tuple(self._elements.values())

	def __len__(self) -> int:
		return len(self._elements)

	def __contains__(self, qual: object) -> bool:
		return isinstance(qual, Qualifier) and qual.top == self.name and qual.name in self._elements

	def qualifier(self, name: str) -> Qualifier:
		try:
			return self._elements[name]
		except KeyError:
			raise LatticeError(f"lattice '{self.name}' has no qualifier '{name}'") from None

	def leq(self, a: Qualifier, b: Qualifier) -> bool:
		self._check(a)
		self._check(b)
		return b.name in self._up[a.name]

	def join(self, qualifiers: Iterable[Qualifier]) -> Optional[Qualifier]:
		return self._extremum(qualifiers, self._up)

	def meet(self, qualifiers: Iterable[Qualifier]) -> Optional[Qualifier]:
		return self._extremum(qualifiers, self._down)

	def _extremum(self, qualifiers: Iterable[Qualifier], cone: Mapping[str, Set[str]]) -> Optional[Qualifier]:
		# join: least element of the common upper cone; meet: greatest of the lower cone.
		quals = list(qualifiers)
		if not quals:
			raise ValueError(f"lattice '{self.name}': join/meet of an empty set")
		for qual in quals:
			self._check(qual)
		common = set.intersection(*(cone[qual.name] for qual in quals))
		for cand in common:
			if common <= cone[cand]:
				return self._elements[cand]
		return None

	def _check(self, qual: Qualifier) -> None:
		if qual not in self:
			raise LatticeError(f"qualifier '{qual.name}' ({qual.top}) is not an element of lattice '{self.name}'")


def _closure(direct_up: Mapping[str, Set[str]]) -> Dict[str, Set[str]]:
	"""Reflexive-transitive closure of the direct supertype relation."""
	out: Dict[str, Set[str]] = {}
	for start in direct_up:
		seen = {start}
		stack = [start]
		while stack:
			cur = stack.pop()
			for nxt in direct_up[cur]:
				if nxt not in seen:
					seen.add(nxt)
					stack.append(nxt)
		out[start] = seen
	return out


class QualifierHierarchy:
	"""
	The set of independent lattices in play, keyed by hierarchy top.

	Implements `LatticeOracle`. Qualifier names are unique across all lattices
	so a bare name resolves to exactly one (top, qualifier) pair.
	"""

	def __init__(self, lattices: Iterable[FiniteLattice] = ()) -> None:
		self._lattices: Dict[TopId, FiniteLattice] = {}
		self._by_name: Dict[str, Qualifier] = {}
		for lattice in lattices:
			self.add(lattice)

	def add(self, lattice: FiniteLattice) -> None:
		if lattice.name in self._lattices:
			raise LatticeError(f"duplicate lattice '{lattice.name}'")
		for qual in lattice.elements:
			prev = self._by_name.get(qual.name)
			if prev is not None:
				raise LatticeError(f"qualifier '{qual.name}' declared in both '{prev.top}' and '{qual.top}'")
		self._lattices[lattice.name] = lattice
		for qual in lattice.elements:
			self._by_name[qual.name] = qual

	def tops(self) -> Tuple[TopId, ...]:
		return tuple(self._lattices)

	def lattice(self, top: TopId) -> FiniteLattice:
		try:
			return self._lattices[top]
		except KeyError:
			raise LatticeError(f"unknown hierarchy top '{top}'") from None

	def qualifier(self, name: str) -> Qualifier:
		qual = self._by_name.get(name)
		if qual is None:
			raise LatticeError(f"unknown qualifier '{name}'")
		return qual

	def find_qualifier(self, name: str) -> Optional[Qualifier]:
		return self._by_name.get(name)

	def join(self, top: TopId, qualifiers: Iterable[Qualifier]) -> Optional[Qualifier]:
		return self.lattice(top).join(qualifiers)

	def meet(self, top: TopId, qualifiers: Iterable[Qualifier]) -> Optional[Qualifier]:
		return self.lattice(top).meet(qualifiers)

	def leq(self, top: TopId, a: Qualifier, b: Qualifier) -> bool:
		return self.lattice(top).leq(a, b)

	def size(self, top: TopId) -> int:
		return len(self.lattice(top))


__all__ = [
	"LatticeError",
	"LatticeOracle",
	"FiniteLattice",
	"QualifierHierarchy",
]
