# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Source span for constraint-script locations.

Spans are best-effort: solver failures have no location (Span()), while script
parse/resolution errors carry file/line/column taken from lark tokens/trees.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class Span:
	"""Represents a source span (best-effort file/line/column)."""

	file: Optional[str] = None
	line: Optional[int] = None
	column: Optional[int] = None
	end_line: Optional[int] = None
	end_column: Optional[int] = None

	@classmethod
	def from_loc(cls, loc: Any, *, file: Optional[str] = None) -> "Span":
		"""
		Construct a Span from a lark Token, a lark Tree's `meta`, or an exception.

		`UnexpectedInput` exposes `line`/`column`; tokens and meta objects also
		expose `end_line`/`end_column`. Missing attributes stay None.
		"""
		if loc is None:
			return cls(file=file)
		if isinstance(loc, cls):
			return loc
		meta = getattr(loc, "meta", None)
		if meta is not None and getattr(meta, "line", None) is not None:
			loc = meta
		return cls(
			file=file,
			line=getattr(loc, "line", None),
			column=getattr(loc, "column", None),
			end_line=getattr(loc, "end_line", None),
			end_column=getattr(loc, "end_column", None),
		)

	def label(self) -> str:
		parts = [self.file or "<script>"]
		if self.line is not None:
			parts.append(str(self.line))
			if self.column is not None:
				parts.append(str(self.column))
		return ":".join(parts)


__all__ = ["Span"]
