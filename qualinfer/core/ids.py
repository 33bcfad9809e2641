# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Canonical identifiers used as map keys throughout inference.

Every key is a plain value (str/int/frozen dataclass) so maps never depend on
object identity: two `Qualifier("Nullness", "NonNull")` instances are the same
key, and a `TargetId` is fully described by its owner and position.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List


TopId = str  # name of one independent qualifier lattice (hierarchy top)


@dataclass(frozen=True)
class Qualifier:
	"""An element of exactly one lattice."""

	top: TopId
	name: str

	def __str__(self) -> str:
		return self.name


@dataclass(frozen=True)
class TargetId:
	"""
	Identity of one type parameter awaiting inference at a call site.

	`owner` names the call being resolved; `index` is the declaration position of
	the type parameter. `name` is carried for rendering only and does not take
	part in equality.
	"""

	owner: str
	index: int
	name: str = field(default="", compare=False)

	def __str__(self) -> str:
		return self.name or f"{self.owner}#{self.index}"


def target_label(target: TargetId) -> str:
	"""Return the display label for a target (its name, else owner#index)."""
	return str(target)


def make_targets(owner: str, names: Iterable[str]) -> List[TargetId]:
	"""Mint TargetIds for `names` in declaration order."""
	return [TargetId(owner=owner, index=idx, name=name) for idx, name in enumerate(names)]


def targets_by_name(targets: Iterable[TargetId]) -> Dict[str, TargetId]:
	"""Index targets by their display name (later duplicates are rejected)."""
	out: Dict[str, TargetId] = {}
	for target in targets:
		label = str(target)
		if label in out:
			raise ValueError(f"duplicate target name '{label}'")
		out[label] = target
	return out


__all__ = ["TopId", "Qualifier", "TargetId", "target_label", "make_targets", "targets_by_name"]
