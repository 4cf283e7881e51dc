"""
Lexical scopes for script execution.
"""
from typing import Any, Dict, Iterator, Optional

from autoscript.autoscript_values import ScriptRuntimeError


class UndefinedVariable(ScriptRuntimeError):
    def __init__(self, name: str):
        super().__init__(f"Undefined variable: {name}")
        self.name = name


class Environment:
    """A scope frame: local bindings plus an optional enclosing frame.

    Lookups and assignments walk outward through `parent`; only `define`
    is local. The frame with no parent is the global scope. Frames are
    ordinary Python objects, so a function value that captured one keeps
    it alive after the block that created it has finished.
    """
    def __init__(self, parent: Optional['Environment'] = None):
        self.bindings: Dict[str, Any] = {}
        self.parent = parent

    def define(self, name: str, value: Any):
        """Bind `name` in this frame, shadowing any outer binding."""
        self.bindings[name] = value

    def find_owner(self, name: str) -> Optional['Environment']:
        """The nearest frame (self, then parents) that binds `name`."""
        env = self
        while env is not None:
            if name in env.bindings:
                return env
            env = env.parent
        return None

    def get(self, name: str) -> Any:
        owner = self.find_owner(name)
        if owner is None:
            raise UndefinedVariable(name)
        return owner.bindings[name]

    def assign(self, name: str, value: Any):
        """Rebind `name` in the nearest frame that already binds it."""
        owner = self.find_owner(name)
        if owner is None:
            raise UndefinedVariable(name)
        owner.bindings[name] = value

    def exists(self, name: str) -> bool:
        return self.find_owner(name) is not None

    def is_global(self) -> bool:
        return self.parent is None

    def child(self) -> 'Environment':
        return Environment(parent=self)

    def __getitem__(self, name: str) -> Any:
        return self.get(name)

    def __setitem__(self, name: str, value: Any):
        self.define(name, value)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.exists(name)

    def __iter__(self) -> Iterator[str]:
        """Iterate over names bound in this frame only."""
        return iter(self.bindings)

    def __repr__(self) -> str:
        keys = ', '.join(self.bindings.keys())
        parent_id = f", parent=#{id(self.parent)}" if self.parent else ""
        return f"<Environment bindings=[{keys}]{parent_id}>"
