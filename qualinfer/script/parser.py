# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Lark-based parser for constraint scripts.

`parse_script` turns source text into a `Script` syntax tree. Syntax errors
are raised as `ScriptError` carrying a best-effort span so the driver can
report them as parser-phase diagnostics instead of tracebacks.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from lark import Lark, Token, Tree
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, UnexpectedToken

from qualinfer.core.span import Span

from .ast import EdgeStmt, LatticeDecl, OrderRule, Script, Stmt, TargetDecl, TypeDecl

_GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")
_GRAMMAR_SRC = _GRAMMAR_PATH.read_text()

_PARSER = Lark(
	_GRAMMAR_SRC,
	parser="lalr",
	lexer="basic",
	start="start",
	propagate_positions=True,
	maybe_placeholders=False,
)


class ScriptError(ValueError):
	"""
	User-facing constraint-script error (syntax or name resolution).

	It is a ValueError so callers can treat it like any other bad input, but it
	carries `loc` so it can be rendered with file/line/column.
	"""

	def __init__(self, message: str, *, loc: Optional[Span] = None) -> None:
		super().__init__(message)
		self.loc = loc or Span()


def parse_script(source: str, *, file: Optional[str] = None) -> Script:
	try:
		tree = _PARSER.parse(source)
	except UnexpectedInput as err:
		raise ScriptError(_describe_syntax_error(err), loc=_error_span(err, file)) from None
	return _build_script(tree, file)


def _describe_syntax_error(err: UnexpectedInput) -> str:
	if isinstance(err, UnexpectedEOF):
		return "unexpected end of script (missing ';' or '}'?)"
	if isinstance(err, UnexpectedToken):
		if err.token.type == "$END":
			return "unexpected end of script (missing ';' or '}'?)"
		expected = ", ".join(sorted(err.expected)) if err.expected else ""
		msg = f"unexpected '{err.token}'"
		return f"{msg}; expected one of: {expected}" if expected else msg
	if isinstance(err, UnexpectedCharacters):
		return f"unexpected character {err.char!r}"
	return "syntax error"


def _error_span(err: UnexpectedInput, file: Optional[str]) -> Span:
	line = getattr(err, "line", None)
	column = getattr(err, "column", None)
	# lark reports '?' or -1 when the error is at end of input.
	if not isinstance(line, int) or line < 0:
		return Span(file=file)
	return Span(file=file, line=line, column=column if isinstance(column, int) else None)


def _build_script(tree: Tree, file: Optional[str]) -> Script:
	stmts: List[Stmt] = []
	for child in tree.children:
		if not isinstance(child, Tree):
			continue
		kind = _name(child)
		if kind == "lattice_decl":
			stmts.append(_build_lattice(child, file))
		elif kind == "type_decl":
			stmts.append(_build_type(child, file))
		elif kind == "target_decl":
			stmts.append(_build_target(child, file))
		elif kind == "edge_stmt":
			stmts.append(_build_edge(child, file))
		else:
			raise ScriptError(f"unsupported statement '{kind}'", loc=Span.from_loc(child, file=file))
	return Script(stmts=stmts, file=file)


def _build_lattice(tree: Tree, file: Optional[str]) -> LatticeDecl:
	name_tok = _first_token(tree)
	rules: List[OrderRule] = []
	for child in tree.children:
		if isinstance(child, Tree) and _name(child) == "order_rule":
			sup = _first_token(child)
			subs = _names_of(_subtree(child, "name_list"))
			rules.append(OrderRule(sup=sup.value, subs=subs, loc=Span.from_loc(child, file=file)))
	return LatticeDecl(name=name_tok.value, rules=rules, loc=Span.from_loc(tree, file=file))


def _build_type(tree: Tree, file: Optional[str]) -> TypeDecl:
	name_tok = _first_token(tree)
	quals = _names_of(_subtree(tree, "name_list"))
	return TypeDecl(name=name_tok.value, qualifiers=quals, loc=Span.from_loc(tree, file=file))


def _build_target(tree: Tree, file: Optional[str]) -> TargetDecl:
	name_tok = _first_token(tree)
	defaults: List[str] = []
	clause = _subtree(tree, "default_clause")
	if clause is not None:
		defaults = _names_of(_subtree(clause, "name_list"))
	return TargetDecl(name=name_tok.value, defaults=defaults, loc=Span.from_loc(tree, file=file))


def _build_edge(tree: Tree, file: Optional[str]) -> EdgeStmt:
	toks = [c for c in tree.children if isinstance(c, Token)]
	lhs, rel, rhs = toks[0], toks[1], toks[2]
	tops: List[str] = []
	clause = _subtree(tree, "top_clause")
	if clause is not None:
		tops = _names_of(_subtree(clause, "name_list"))
	return EdgeStmt(lhs=lhs.value, rel=rel.value, rhs=rhs.value, tops=tops, loc=Span.from_loc(tree, file=file))


def _first_token(tree: Tree) -> Token:
	tok = next((c for c in tree.children if isinstance(c, Token)), None)
	if tok is None:
		raise TypeError(f"{_name(tree)} node missing name token")
	return tok


def _subtree(tree: Tree, name: str) -> Optional[Tree]:
	return next((c for c in tree.children if isinstance(c, Tree) and _name(c) == name), None)


def _names_of(node: Optional[Tree]) -> List[str]:
	if node is None:
		return []
	return [c.value for c in node.children if isinstance(c, Token)]


def _name(node: Tree | Token) -> str:
	if isinstance(node, Tree):
		data = node.data
		if isinstance(data, Token):
			return data.value
		return data
	if isinstance(node, Token):
		return node.type
	return str(node)


__all__ = ["ScriptError", "parse_script"]
