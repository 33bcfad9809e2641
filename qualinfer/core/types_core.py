# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Concrete (fully known) types taking part in one call-site resolution.

TypeIds are opaque ints indexing into a TypeTable. A TypeDef carries a display
name plus at most one qualifier per hierarchy top; a type with no qualifier in
some top simply says nothing about that top.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping

from .ids import Qualifier, TopId


TypeId = int  # opaque handle into the TypeTable


@dataclass(frozen=True)
class TypeDef:
	"""Definition of a concrete type stored in the TypeTable."""

	name: str
	qualifiers: Mapping[TopId, Qualifier] = field(default_factory=dict)

	def qualifier(self, top: TopId) -> Qualifier | None:
		"""Return this type's qualifier in `top`, if it carries one."""
		return self.qualifiers.get(top)


class TypeTable:
	"""
	Per-call table that owns TypeIds.

	Concrete types are keyed by TypeId, never by object identity, so the
	accumulators can use plain ints as map keys.
	"""

	def __init__(self) -> None:
		self._defs: Dict[TypeId, TypeDef] = {}
		self._by_name: Dict[str, TypeId] = {}
		self._next_id: TypeId = 1  # reserve 0 for "invalid"

	def new_concrete(self, name: str, qualifiers: Iterable[Qualifier] = ()) -> TypeId:
		"""Register a concrete type carrying `qualifiers` and return its TypeId."""
		if name in self._by_name:
			raise ValueError(f"type '{name}' is already registered")
		quals: Dict[TopId, Qualifier] = {}
		for qual in qualifiers:
			prev = quals.get(qual.top)
			if prev is not None and prev != qual:
				raise ValueError(
					f"type '{name}' carries two qualifiers in '{qual.top}' ({prev} and {qual})"
				)
			quals[qual.top] = qual
		ty_id = self._next_id
		self._next_id += 1
		self._defs[ty_id] = TypeDef(name=name, qualifiers=quals)
		self._by_name[name] = ty_id
		return ty_id

	def get(self, ty: TypeId) -> TypeDef:
		"""Fetch the TypeDef for a given TypeId."""
		return self._defs[ty]

	def lookup(self, name: str) -> TypeId | None:
		return self._by_name.get(name)

	def __contains__(self, ty: object) -> bool:
		return ty in self._defs

	def __len__(self) -> int:
		return len(self._defs)


__all__ = ["TypeId", "TypeDef", "TypeTable"]
