"""Tests for the scope chain."""

from __future__ import annotations

import pytest

from berd.environment import Environment, ScopeError, create_global_scope
from berd.values import UNDEFINED, NumberValue, StringValue

CONST = (False, False)


class TestDeclareAndLookup:
    def test_lookup_returns_declared_value(self):
        env = Environment()
        env.declare("x", CONST, NumberValue(5))
        assert env.lookup("x") == NumberValue(5)

    @pytest.mark.parametrize("names", [["a"], ["a", "b"], ["x", "y", "z", "w"]])
    def test_each_declaration_is_kept(self, names):
        env = Environment()
        for i, name in enumerate(names):
            env.declare(name, CONST, NumberValue(i))
        for i, name in enumerate(names):
            assert env.lookup(name) == NumberValue(i)

    def test_declare_without_value_is_undefined(self):
        env = Environment()
        assert env.declare("x", CONST) is UNDEFINED
        assert env.lookup("x") is UNDEFINED

    def test_redeclare_in_same_scope_fails(self):
        env = Environment()
        env.declare("x", CONST, NumberValue(1))
        with pytest.raises(ScopeError) as exc:
            env.declare("x", CONST, NumberValue(2))
        assert exc.value.name == "x"
        assert env.lookup("x") == NumberValue(1)

    def test_shadowing_in_child_scope(self):
        parent = Environment()
        parent.declare("x", CONST, NumberValue(1))
        child = Environment(parent)
        child.declare("x", CONST, NumberValue(2))
        assert child.lookup("x") == NumberValue(2)
        assert parent.lookup("x") == NumberValue(1)

    def test_lookup_walks_parent_chain(self):
        root = Environment()
        root.declare("x", CONST, StringValue("root"))
        leaf = Environment(Environment(root))
        assert leaf.lookup("x") == StringValue("root")
        assert leaf.resolve("x") is root

    def test_unknown_name_fails(self):
        with pytest.raises(ScopeError):
            Environment().lookup("missing")

    def test_modifiers_are_recorded(self):
        env = Environment()
        env.declare("x", (True, False), NumberValue(1))
        assert env.lookup_local("x").modifiers == (True, False)


class TestAssign:
    def test_assign_writes_owning_scope(self):
        parent = Environment()
        parent.declare("x", CONST, NumberValue(1))
        child = Environment(parent)
        child.assign("x", NumberValue(9))
        assert parent.lookup("x") == NumberValue(9)
        assert child.lookup_local("x") is None

    def test_assign_unknown_fails(self):
        with pytest.raises(ScopeError):
            Environment().assign("missing", NumberValue(1))


class TestGlobalScope:
    def test_fresh_and_parentless(self):
        a = create_global_scope()
        b = create_global_scope()
        assert a.parent is None
        a.declare("x", CONST, NumberValue(1))
        assert b.lookup_local("x") is None
        assert [binding.name for binding in a.bindings()] == ["x"]
