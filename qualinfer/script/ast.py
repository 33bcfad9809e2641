# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Syntax tree for constraint scripts.

Nodes only hold names; resolving them to lattices, types and targets is the
loader's job (`qualinfer.script.build_call_site`).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple, Union

from qualinfer.core.span import Span


@dataclass
class OrderRule:
	sup: str
	subs: List[str]
	loc: Span = field(default_factory=Span)


@dataclass
class LatticeDecl:
	name: str
	rules: List[OrderRule]
	loc: Span = field(default_factory=Span)

	def elements(self) -> List[str]:
		"""Element names in first-mention order."""
		out: List[str] = []
		for rule in self.rules:
			for name in (rule.sup, *rule.subs):
				if name not in out:
					out.append(name)
		return out

	def order(self) -> List[Tuple[str, str]]:
		return [(rule.sup, sub) for rule in self.rules for sub in rule.subs]


@dataclass
class TypeDecl:
	name: str
	qualifiers: List[str]
	loc: Span = field(default_factory=Span)


@dataclass
class TargetDecl:
	name: str
	defaults: List[str]
	loc: Span = field(default_factory=Span)


@dataclass
class EdgeStmt:
	lhs: str
	rel: str  # one of "==", ":>", "<:"
	rhs: str
	tops: List[str]
	loc: Span = field(default_factory=Span)


Stmt = Union[LatticeDecl, TypeDecl, TargetDecl, EdgeStmt]


@dataclass
class Script:
	stmts: List[Stmt]
	file: str | None = None

	def lattices(self) -> List[LatticeDecl]:
		return [s for s in self.stmts if isinstance(s, LatticeDecl)]

	def types(self) -> List[TypeDecl]:
		return [s for s in self.stmts if isinstance(s, TypeDecl)]

	def targets(self) -> List[TargetDecl]:
		return [s for s in self.stmts if isinstance(s, TargetDecl)]

	def edges(self) -> List[EdgeStmt]:
		return [s for s in self.stmts if isinstance(s, EdgeStmt)]


__all__ = ["OrderRule", "LatticeDecl", "TypeDecl", "TargetDecl", "EdgeStmt", "Stmt", "Script"]
