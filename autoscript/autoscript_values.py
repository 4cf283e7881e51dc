"""
The runtime value model.

Script values are plain Python objects, one Python type per tag:

    nil       -> None
    boolean   -> bool
    integer   -> int (kept within signed 64-bit range)
    float     -> float
    string    -> str
    array     -> list   (shared by reference)
    object    -> dict   (string keys, shared by reference)
    function  -> UserFunction
    native    -> NativeFunction

This module holds the rules that operate on them: truthiness, equality,
arithmetic with string concatenation, ordering, length, member/index access
and the textual form used by `+` and `Print`.
"""
import collections.abc
import math
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple, TYPE_CHECKING

from autoscript.autoscript_tokens import Token, wrap_int64

if TYPE_CHECKING:
    from autoscript.autoscript_ast import BlockStmt
    from autoscript.autoscript_environment import Environment

FLOAT_EPSILON = 1e-10


class ScriptRuntimeError(Exception):
    """A failure while evaluating a script.

    Natives raise this to report bad arguments or host failures; the
    interpreter attaches the source position of the failing expression.
    """
    def __init__(self, message: str, token: Optional[Token] = None):
        super().__init__(message)
        self.message = message
        self.token = token


@dataclass(eq=False)
class UserFunction:
    """A function declared in script code, closed over its defining scope."""
    name: str
    params: Tuple[str, ...]
    body: 'BlockStmt'
    closure: 'Environment' = field(repr=False)

    @property
    def arity(self) -> int:
        return len(self.params)

    def __repr__(self) -> str:
        return f"<function {self.name}>"


@dataclass(eq=False)
class NativeFunction:
    """A host callable taking the evaluated argument list."""
    name: str
    func: Callable[[List[Any]], Any] = field(repr=False)

    def __call__(self, args: List[Any]) -> Any:
        return self.func(args)

    def __repr__(self) -> str:
        return f"<native function {self.name}>"


# =================================================================
# Tags
# =================================================================

def type_name(value: Any) -> str:
    match value:
        case None:
            return "nil"
        case bool():
            return "boolean"
        case int():
            return "integer"
        case float():
            return "float"
        case str():
            return "string"
        case list():
            return "array"
        case dict():
            return "object"
        case UserFunction():
            return "function"
        case NativeFunction():
            return "native_function"
    raise ScriptRuntimeError(f"Unsupported value of type {type(value).__name__}")


def is_int(value: Any) -> bool:
    return type(value) is int


def is_number(value: Any) -> bool:
    return type(value) is int or type(value) is float


def is_callable(value: Any) -> bool:
    return isinstance(value, (UserFunction, NativeFunction))


def from_host(value: Any, _active: Optional[set] = None) -> Any:
    """Normalize a value handed back by host code into a script value.

    Lists and string-keyed dicts are normalized in place so that a native
    returning one of its arguments (e.g. `Push`) keeps the container's identity.
    """
    match value:
        case None | bool() | float() | str() | UserFunction() | NativeFunction():
            return value
        case int():
            return wrap_int64(value)
        case tuple():
            return [from_host(v, _active) for v in value]

    if not isinstance(value, (list, collections.abc.Mapping)):
        raise ScriptRuntimeError(f"Unsupported value of type {type(value).__name__}")

    active = _active if _active is not None else set()
    if id(value) in active:
        return value
    active.add(id(value))
    try:
        if isinstance(value, list):
            for i, item in enumerate(value):
                normalized = from_host(item, active)
                if normalized is not item:
                    value[i] = normalized
            return value
        if isinstance(value, dict) and all(isinstance(k, str) for k in value):
            for key, item in value.items():
                normalized = from_host(item, active)
                if normalized is not item:
                    value[key] = normalized
            return value
        return {str(k): from_host(v, active) for k, v in value.items()}
    finally:
        active.discard(id(value))


# =================================================================
# Truthiness and text
# =================================================================

def is_truthy(value: Any) -> bool:
    match value:
        case None:
            return False
        case bool():
            return value
        case int() | float():
            return value != 0
        case str() | list() | dict():
            return len(value) > 0
    return True


def format_float(value: float) -> str:
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if math.isnan(value):
        return "NaN"
    return repr(value)


def to_display(value: Any, _seen: Optional[set] = None) -> str:
    """The textual form of a value, as used by string `+` and `Print`."""
    match value:
        case None:
            return "null"
        case bool():
            return "true" if value else "false"
        case int():
            return str(value)
        case float():
            return format_float(value)
        case str():
            return value
        case list() | dict():
            seen = _seen if _seen is not None else set()
            if id(value) in seen:
                return "[...]" if isinstance(value, list) else "{...}"
            seen.add(id(value))
            try:
                if isinstance(value, list):
                    return "[" + ", ".join(to_display(v, seen) for v in value) + "]"
                return "{" + ", ".join(f"{k}: {to_display(v, seen)}" for k, v in value.items()) + "}"
            finally:
                seen.discard(id(value))
        case UserFunction():
            return f"<function {value.name}>"
        case NativeFunction():
            return f"<native function {value.name}>"
    return str(value)


# =================================================================
# Equality and ordering
# =================================================================

def values_equal(a: Any, b: Any) -> bool:
    """Tag-strict equality; containers and functions compare by identity."""
    if type_name(a) != type_name(b):
        return False
    match a:
        case None:
            return True
        case float():
            return abs(a - b) < FLOAT_EPSILON
        case list() | dict() | UserFunction() | NativeFunction():
            return a is b
    return a == b


def compare(op: str, a: Any, b: Any) -> bool:
    """Evaluate one of `<`, `<=`, `>`, `>=` between two numbers or two strings."""
    if is_number(a) and is_number(b):
        if not (is_int(a) and is_int(b)):
            a, b = float(a), float(b)
    elif not (isinstance(a, str) and isinstance(b, str)):
        raise ScriptRuntimeError(
            f"Invalid operands for {op}: {type_name(a)} and {type_name(b)}"
        )
    match op:
        case "<":
            return a < b
        case "<=":
            return a <= b
        case ">":
            return a > b
        case ">=":
            return a >= b
    raise ScriptRuntimeError(f"Unknown comparison operator: {op}")


# =================================================================
# Arithmetic
# =================================================================

def _require_numbers(op: str, a: Any, b: Any) -> bool:
    """Validate numeric operands; True when the result should be a float."""
    if not (is_number(a) and is_number(b)):
        raise ScriptRuntimeError(
            f"Invalid operands for {op}: {type_name(a)} and {type_name(b)}"
        )
    return isinstance(a, float) or isinstance(b, float)


def add(a: Any, b: Any) -> Any:
    if isinstance(a, str) or isinstance(b, str):
        return to_display(a) + to_display(b)
    if _require_numbers("+", a, b):
        return float(a) + float(b)
    return wrap_int64(a + b)


def subtract(a: Any, b: Any) -> Any:
    if _require_numbers("-", a, b):
        return float(a) - float(b)
    return wrap_int64(a - b)


def multiply(a: Any, b: Any) -> Any:
    if _require_numbers("*", a, b):
        return float(a) * float(b)
    return wrap_int64(a * b)


def divide(a: Any, b: Any) -> Any:
    if _require_numbers("/", a, b):
        if float(b) == 0.0:
            raise ScriptRuntimeError("Division by zero")
        return float(a) / float(b)
    if b == 0:
        raise ScriptRuntimeError("Division by zero")
    # truncate toward zero
    quotient = abs(a) // abs(b)
    if (a < 0) != (b < 0):
        quotient = -quotient
    return wrap_int64(quotient)


def modulo(a: Any, b: Any) -> Any:
    if not (is_int(a) and is_int(b)):
        raise ScriptRuntimeError("Modulo requires integer operands")
    if b == 0:
        raise ScriptRuntimeError("Modulo by zero")
    # result takes the sign of the dividend
    remainder = abs(a) % abs(b)
    return -remainder if a < 0 else remainder


def negate(value: Any) -> Any:
    if is_int(value):
        return wrap_int64(-value)
    if isinstance(value, float):
        return -value
    raise ScriptRuntimeError(f"Invalid operand for unary -: {type_name(value)}")


# =================================================================
# Containers
# =================================================================

def length(value: Any) -> int:
    if isinstance(value, (str, list, dict)):
        return len(value)
    raise ScriptRuntimeError(f"Value of type {type_name(value)} does not have a length")


def get_index(container: Any, index: Any) -> Any:
    if isinstance(container, list):
        if not is_int(index):
            raise ScriptRuntimeError("Array index must be an integer")
        if index < 0 or index >= len(container):
            raise ScriptRuntimeError(f"Array index out of bounds: {index}")
        return container[index]
    if isinstance(container, dict):
        if not isinstance(index, str):
            raise ScriptRuntimeError("Object key must be a string")
        return container.get(index)
    raise ScriptRuntimeError(f"Cannot index value of type {type_name(container)}")


def get_member(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    raise ScriptRuntimeError(f"Cannot access member '{name}' of {type_name(obj)}")
