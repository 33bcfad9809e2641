# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Constraint scripts: a textual batch of raw edges for one call site.

`build_call_site` parses a script and resolves its names into the objects the
inference API consumes (hierarchy, type table, targets, raw edges and declared
bounds). `load_script` does the same for a file and reports problems as
parser-phase diagnostics instead of raising.

Declarations may appear in any order; every edge is resolved after all
declarations have been collected.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from qualinfer.constraint_map import RawEdge
from qualinfer.constraints import Other, RelationKind
from qualinfer.core.diagnostics import Diagnostic
from qualinfer.core.ids import Qualifier, TargetId, TopId
from qualinfer.core.span import Span
from qualinfer.core.types_core import TypeId, TypeTable
from qualinfer.infer import DeclaredBounds, InferenceSession
from qualinfer.lattice import FiniteLattice, LatticeError, QualifierHierarchy
from qualinfer.solver import SolverConfig

from .ast import EdgeStmt, Script
from .parser import ScriptError, parse_script

_RELATIONS: Dict[str, RelationKind] = {
	"==": RelationKind.EQUAL,
	":>": RelationKind.LOWER_BOUND,
	"<:": RelationKind.UPPER_BOUND,
}


@dataclass
class CallSite:
	"""Everything one script declares, ready to be fed to an InferenceSession."""

	name: str
	hierarchy: QualifierHierarchy
	type_table: TypeTable
	targets: List[TargetId]
	edges: List[RawEdge]
	declared: DeclaredBounds = field(default_factory=DeclaredBounds)
	file: Optional[str] = None

	def session(self, config: Optional[SolverConfig] = None) -> InferenceSession:
		session = InferenceSession(self.targets, self.hierarchy, type_table=self.type_table, config=config)
		session.add_edges(self.edges)
		return session


def build_call_site(source: str, *, file: Optional[str] = None, name: Optional[str] = None) -> CallSite:
	script = parse_script(source, file=file)
	owner = name or (Path(file).stem if file else "call")
	return _Resolver(script, owner).resolve()


def load_script(path: Path) -> Tuple[Optional[CallSite], List[Diagnostic]]:
	"""Parse and resolve a script file; script errors become diagnostics."""
	file = str(path)
	try:
		source = path.read_text(encoding="utf-8")
	except OSError as err:
		return None, [Diagnostic(message=f"cannot read script: {err.strerror or err}", code="E-IO", phase="parser")]
	try:
		return build_call_site(source, file=file), []
	except ScriptError as err:
		return None, [Diagnostic(message=str(err), code="E-SCRIPT", phase="parser", span=err.loc)]


class _Resolver:
	def __init__(self, script: Script, owner: str) -> None:
		self.script = script
		self.owner = owner
		self.file = script.file
		self.hierarchy = QualifierHierarchy()
		self.type_table = TypeTable()
		self.types: Dict[str, TypeId] = {}
		self.targets: Dict[str, TargetId] = {}
		self.declared = DeclaredBounds()
		self._kinds: Dict[str, str] = {}

	def resolve(self) -> CallSite:
		for decl in self.script.lattices():
			try:
				self.hierarchy.add(FiniteLattice(decl.name, decl.elements(), decl.order()))
			except LatticeError as err:
				raise ScriptError(str(err), loc=decl.loc) from None
			self._claim(decl.name, "lattice", decl.loc)
			for elem in decl.elements():
				self._claim(elem, "qualifier", decl.loc)
		for decl in self.script.types():
			self._claim(decl.name, "type", decl.loc)
			quals = [self._qualifier(q, decl.loc) for q in decl.qualifiers]
			try:
				self.types[decl.name] = self.type_table.new_concrete(decl.name, quals)
			except ValueError as err:
				raise ScriptError(str(err), loc=decl.loc) from None
		for index, decl in enumerate(self.script.targets()):
			self._claim(decl.name, "target", decl.loc)
			target = TargetId(owner=self.owner, index=index, name=decl.name)
			self.targets[decl.name] = target
			seen_tops: Dict[TopId, Qualifier] = {}
			for qname in decl.defaults:
				qual = self._qualifier(qname, decl.loc)
				if qual.top in seen_tops:
					raise ScriptError(
						f"target '{decl.name}' declares two defaults in '{qual.top}' ({seen_tops[qual.top]} and {qual})",
						loc=decl.loc,
					)
				seen_tops[qual.top] = qual
				self.declared.declare(target, qual)
		edges: List[RawEdge] = []
		for stmt in self.script.edges():
			edges.extend(self._edges(stmt))
		return CallSite(
			name=self.owner,
			hierarchy=self.hierarchy,
			type_table=self.type_table,
			targets=list(self.targets.values()),
			edges=edges,
			declared=self.declared,
			file=self.file,
		)

	def _claim(self, name: str, kind: str, loc: Span) -> None:
		prev = self._kinds.get(name)
		if prev is not None and not (prev == kind == "qualifier"):
			raise ScriptError(f"'{name}' is already declared as a {prev}", loc=loc)
		self._kinds[name] = kind

	def _qualifier(self, name: str, loc: Span) -> Qualifier:
		qual = self.hierarchy.find_qualifier(name)
		if qual is None:
			raise ScriptError(f"unknown qualifier '{name}'", loc=loc)
		return qual

	def _edges(self, stmt: EdgeStmt) -> List[RawEdge]:
		target = self.targets.get(stmt.lhs)
		if target is None:
			raise ScriptError(f"left side of a relation must be a declared target, got '{stmt.lhs}'", loc=stmt.loc)
		kind = _RELATIONS[stmt.rel]
		for top in stmt.tops:
			if top not in self.hierarchy.tops():
				raise ScriptError(f"unknown lattice '{top}'", loc=stmt.loc)
		rhs_kind = self._kinds.get(stmt.rhs)
		other: Other
		if rhs_kind == "qualifier":
			qual = self.hierarchy.qualifier(stmt.rhs)
			if stmt.tops and stmt.tops != [qual.top]:
				raise ScriptError(
					f"qualifier '{qual.name}' belongs to '{qual.top}', not {', '.join(stmt.tops)}",
					loc=stmt.loc,
				)
			return [RawEdge(target=target, kind=kind, other=qual)]
		if rhs_kind == "type":
			other = self.types[stmt.rhs]
		elif rhs_kind == "target":
			other = self.targets[stmt.rhs]
			if other == target:
				raise ScriptError(f"target '{stmt.lhs}' cannot be related to itself", loc=stmt.loc)
		else:
			raise ScriptError(f"unknown name '{stmt.rhs}' (expected a qualifier, type or target)", loc=stmt.loc)
		tops = stmt.tops or list(self.hierarchy.tops())
		return [RawEdge(target=target, kind=kind, other=other, top=top) for top in tops]


__all__ = ["CallSite", "ScriptError", "build_call_site", "load_script", "parse_script"]
