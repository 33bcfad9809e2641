#!/usr/bin/env python3
# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Identifier value semantics and the concrete type table."""

import pytest

from qualinfer.core.ids import Qualifier, TargetId, make_targets, targets_by_name
from qualinfer.core.types_core import TypeTable


def test_qualifiers_are_value_keys():
	assert Qualifier("Nullness", "NonNull") == Qualifier("Nullness", "NonNull")
	assert Qualifier("Nullness", "NonNull") != Qualifier("Taint", "NonNull")
	assert len({Qualifier("Nullness", "NonNull"), Qualifier("Nullness", "NonNull")}) == 1
	assert str(Qualifier("Nullness", "NonNull")) == "NonNull"


def test_target_identity_ignores_display_name():
	a = TargetId(owner="f", index=0, name="T")
	b = TargetId(owner="f", index=0, name="renamed")
	assert a == b
	assert hash(a) == hash(b)
	assert a != TargetId(owner="g", index=0, name="T")
	assert str(TargetId(owner="f", index=2)) == "f#2"


def test_make_targets_in_declaration_order():
	tgts = make_targets("call", ["T", "U"])
	assert [t.index for t in tgts] == [0, 1]
	assert targets_by_name(tgts)["U"] == tgts[1]
	with pytest.raises(ValueError, match="duplicate"):
		targets_by_name([TargetId("a", 0, "T"), TargetId("b", 0, "T")])


def test_type_table_registers_concrete_types():
	table = TypeTable()
	string = table.new_concrete("String", [Qualifier("Nullness", "NonNull"), Qualifier("Taint", "Untainted")])
	plain = table.new_concrete("Plain")
	assert string == 1 and plain == 2
	assert len(table) == 2
	assert string in table and 0 not in table
	assert table.lookup("String") == string
	assert table.get(string).qualifier("Taint") == Qualifier("Taint", "Untainted")
	assert table.get(plain).qualifier("Taint") is None


def test_type_table_rejects_bad_declarations():
	table = TypeTable()
	table.new_concrete("String")
	with pytest.raises(ValueError, match="already registered"):
		table.new_concrete("String")
	with pytest.raises(ValueError, match="two qualifiers"):
		table.new_concrete("Odd", [Qualifier("Nullness", "NonNull"), Qualifier("Nullness", "Nullable")])
