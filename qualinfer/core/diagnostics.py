"""
Common diagnostic structure for the script loader and the driver.

Solver failures are data (see `qualinfer.failures`); a Diagnostic is only the
rendered, user-facing form of a failure or a script error.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .span import Span


@dataclass
class Diagnostic:
	"""Represents a user-facing diagnostic (error/warning/note)."""

	message: str
	code: str | None = None
	# Phase label: "parser" for script errors, "infer" for solver failures,
	# "defaults" for declared-bound substitution notes.
	phase: str | None = None
	severity: str = "error"
	span: Span = field(default_factory=Span)  # Span() denotes unknown.
	notes: list[str] = field(default_factory=list)

	def __post_init__(self) -> None:
		if self.span is None:  # type: ignore[unreachable]
			self.span = Span()

	def to_json(self) -> dict:
		return {
			"phase": self.phase,
			"code": self.code,
			"message": self.message,
			"severity": self.severity,
			"file": self.span.file,
			"line": self.span.line,
			"column": self.span.column,
			"notes": list(self.notes),
		}

	def render(self) -> str:
		head = f"{self.span.label()}: {self.severity}: {self.message}"
		if self.code:
			head = f"{head} [{self.code}]"
		lines = [head]
		lines.extend(f"  note: {note}" for note in self.notes)
		return "\n".join(lines)


__all__ = ["Diagnostic"]
