"""Variable bindings with lexical scoping for the Berd evaluator."""

from __future__ import annotations

from dataclasses import dataclass

from berd.ast_nodes import Lifetime
from berd.values import UNDEFINED, RuntimeValue


class ScopeError(Exception):
    """A name could not be declared, resolved or assigned."""

    def __init__(self, name: str, message: str) -> None:
        self.name = name
        super().__init__(message)


@dataclass
class Binding:
    name: str
    value: RuntimeValue
    modifiers: tuple[bool, bool]  # (can reassign, can mutate)
    lifetime: Lifetime | None = None


class Environment:
    """A single lexical scope level, linked to its parent."""

    def __init__(self, parent: Environment | None = None, name: str = "") -> None:
        self.parent = parent
        self.name = name
        self._bindings: dict[str, Binding] = {}

    def declare(self, name: str, modifiers: tuple[bool, bool],
                value: RuntimeValue | None = None,
                lifetime: Lifetime | None = None) -> RuntimeValue:
        """Bind ``name`` in this scope. A missing value binds ``undefined``."""
        if name in self._bindings:
            raise ScopeError(name, f"'{name}' is already declared in this scope")
        value = UNDEFINED if value is None else value
        self._bindings[name] = Binding(name, value, modifiers, lifetime)
        return value

    def assign(self, name: str, value: RuntimeValue) -> RuntimeValue:
        """Overwrite ``name`` in whichever scope owns it."""
        self.resolve(name)._bindings[name].value = value
        return value

    def lookup(self, name: str) -> RuntimeValue:
        return self.resolve(name)._bindings[name].value

    def lookup_local(self, name: str) -> Binding | None:
        """Look up a binding in this scope only (not parents)."""
        return self._bindings.get(name)

    def resolve(self, name: str) -> Environment:
        """Return the nearest scope that binds ``name``."""
        env: Environment | None = self
        while env is not None:
            if name in env._bindings:
                return env
            env = env.parent
        raise ScopeError(name, f"cannot resolve '{name}': it does not exist")

    def bindings(self) -> list[Binding]:
        return list(self._bindings.values())


def create_global_scope() -> Environment:
    """Return a fresh root scope for one program run."""
    return Environment(name="global")
