# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Failure taxonomy for one (target, hierarchy top) resolution.

Failures are plain frozen values returned by the solver, never raised: a call
site reports every unresolved parameter at once. Rendering them for users is
the driver's job (`failure_to_diagnostic`).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, ClassVar, FrozenSet, Union

from qualinfer.core.diagnostics import Diagnostic
from qualinfer.core.ids import Qualifier, TargetId, TopId


class FailureKind(str, Enum):
	EQUALITY_CONFLICT = "equality_conflict"
	BOUND_CONFLICT = "bound_conflict"
	AMBIGUOUS = "ambiguous"
	UNINFERRED = "uninferred"


@dataclass(frozen=True)
class EqualityConflict:
	"""Two distinct exact qualifiers demanded for the same (target, top)."""

	kind: ClassVar[FailureKind] = FailureKind.EQUALITY_CONFLICT
	target: TargetId
	top: TopId
	first: Qualifier
	second: Qualifier


@dataclass(frozen=True)
class BoundConflict:
	"""The tightest lower bound is not below the tightest upper bound."""

	kind: ClassVar[FailureKind] = FailureKind.BOUND_CONFLICT
	target: TargetId
	top: TopId
	lower: Qualifier
	upper: Qualifier


@dataclass(frozen=True)
class AmbiguousQualifier:
	"""The lattice oracle had no unique join/meet for the recorded bounds."""

	kind: ClassVar[FailureKind] = FailureKind.AMBIGUOUS
	target: TargetId
	top: TopId
	candidates: FrozenSet[Qualifier]


@dataclass(frozen=True)
class UninferredTypeArgument:
	"""Nothing anchors the target in this top, directly or through propagation."""

	kind: ClassVar[FailureKind] = FailureKind.UNINFERRED
	target: TargetId
	top: TopId


Failure = Union[EqualityConflict, BoundConflict, AmbiguousQualifier, UninferredTypeArgument]


def _names(quals: FrozenSet[Qualifier]) -> str:
	return ", ".join(sorted(q.name for q in quals))


def failure_to_diagnostic(
	failure: Failure,
	*,
	label_target: Callable[[TargetId], str] = str,
	call_name: str | None = None,
) -> Diagnostic:
	"""Render a solver failure as a user-facing diagnostic."""
	param = label_target(failure.target)
	where = f" for '{call_name}'" if call_name else ""
	if isinstance(failure, EqualityConflict):
		return Diagnostic(
			message=f"cannot infer {failure.top} qualifier of {param}{where}: conflicting exact qualifiers",
			code="E-EQ-CONFLICT",
			phase="infer",
			notes=[
				f"{param} is required to be {failure.first}",
				f"{param} is also required to be {failure.second}",
			],
		)
	if isinstance(failure, BoundConflict):
		return Diagnostic(
			message=f"cannot infer {failure.top} qualifier of {param}{where}: bounds do not overlap",
			code="E-BOUND-CONFLICT",
			phase="infer",
			notes=[
				f"lower bound {failure.lower} is not a subtype of upper bound {failure.upper}",
			],
		)
	if isinstance(failure, AmbiguousQualifier):
		return Diagnostic(
			message=f"cannot infer {failure.top} qualifier of {param}{where}: ambiguous bounds",
			code="E-AMBIGUOUS",
			phase="infer",
			notes=[f"no unique least upper/greatest lower bound for {{{_names(failure.candidates)}}}"],
		)
	return Diagnostic(
		message=f"cannot infer {failure.top} qualifier of {param}{where}",
		code="E-UNINFERRED",
		phase="infer",
		notes=[
			f"no constraints for {param} in {failure.top} (not determined from arguments or related type parameters)",
		],
	)


__all__ = [
	"FailureKind",
	"EqualityConflict",
	"BoundConflict",
	"AmbiguousQualifier",
	"UninferredTypeArgument",
	"Failure",
	"failure_to_diagnostic",
]
