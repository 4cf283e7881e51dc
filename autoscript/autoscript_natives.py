"""
Native function registry and the built-in standard library.

Natives are ordinary Python methods marked with `@native_function`. The
registry binds each marked method under a PascalCase script name derived
from the method name (`_to_upper` -> `ToUpper`, `find_by_text` ->
`FindByText`) and checks the argument count against the method signature
before the call.
"""
import inspect
import math
import time
from typing import Any, Callable, Dict, List, Optional

from autoscript.autoscript_tokens import wrap_int64
from autoscript.autoscript_values import (
    ScriptRuntimeError, NativeFunction,
    type_name, is_int, is_truthy, to_display, values_equal, length,
)
from autoscript.autoscript_serialize import serialize, deserialize


def native_function(func):
    """A decorator to explicitly mark methods as callable from scripts."""
    func._is_native = True
    return func


def script_name(method_name: str) -> str:
    """`_log_error` -> `LogError`."""
    return "".join(part[:1].upper() + part[1:] for part in method_name.strip("_").split("_") if part)


def _arity_bounds(sig: inspect.Signature):
    required, maximum = 0, 0
    for param in sig.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            maximum = None
        elif param.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            if param.default is inspect.Parameter.empty:
                required += 1
            if maximum is not None:
                maximum += 1
    return required, maximum


def _describe_arity(required: int, maximum: Optional[int]) -> str:
    def plural(n):
        return f"{n} argument" if n == 1 else f"{n} arguments"
    if maximum is None:
        return f"at least {plural(required)}"
    if maximum == required:
        return plural(required)
    return f"{required} to {plural(maximum)}"


def wrap_native(name: str, method: Callable[..., Any]) -> NativeFunction:
    """Adapt a Python callable with positional parameters to the native calling convention."""
    required, maximum = _arity_bounds(inspect.signature(method))

    def call(args: List[Any]) -> Any:
        if len(args) < required or (maximum is not None and len(args) > maximum):
            raise ScriptRuntimeError(
                f"{name}() requires {_describe_arity(required, maximum)}, got {len(args)}"
            )
        return method(*args)

    return NativeFunction(name, call)


def collect_natives(obj) -> Dict[str, NativeFunction]:
    """Every `@native_function` method of `obj`, keyed by script name."""
    natives = {}
    for name, member in inspect.getmembers(obj):
        if not callable(member):
            continue
        # Decorator may mark the bound method or the underlying function
        is_native = getattr(member, "_is_native", False)
        if not is_native:
            func = getattr(member, "__func__", None)
            if func is not None:
                is_native = getattr(func, "_is_native", False)
        if not is_native:
            continue
        native_name = script_name(name)
        natives[native_name] = wrap_native(native_name, member)
    return natives


# =================================================================
# Argument checks
# =================================================================

def expect_string(func_name: str, value: Any) -> str:
    if not isinstance(value, str):
        raise ScriptRuntimeError(f"{func_name}() expects a string, got {type_name(value)}")
    return value


def expect_int(func_name: str, value: Any) -> int:
    if not is_int(value):
        raise ScriptRuntimeError(f"{func_name}() expects an integer, got {type_name(value)}")
    return value


def expect_array(func_name: str, value: Any) -> list:
    if not isinstance(value, list):
        raise ScriptRuntimeError(f"{func_name}() expects an array, got {type_name(value)}")
    return value


def expect_object(func_name: str, value: Any) -> dict:
    if not isinstance(value, dict):
        raise ScriptRuntimeError(f"{func_name}() expects an object, got {type_name(value)}")
    return value


# =================================================================
# The Standard Library
# =================================================================

class StdLib:
    """Python implementations of the built-in natives.

    Output natives do not write to the process streams; they append
    `{'topics': [...], 'message': str}` records to `side_effects`, which the
    runner hands back to the embedding application.
    """
    def __init__(self, side_effects: Optional[List[Dict]] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.side_effects = side_effects if side_effects is not None else []
        self._sleep_func = sleep

    def natives(self) -> Dict[str, NativeFunction]:
        return collect_natives(self)

    def _emit_event(self, topics, parts):
        message = " ".join(to_display(p) for p in parts)
        self.side_effects.append({'topics': list(topics), 'message': message})

    # --- Output and diagnostics ---
    @native_function
    def _print(self, *parts):
        self._emit_event(['stdout'], parts)

    @native_function
    def _log(self, *parts):
        self._emit_event(['stdout'], ["[LOG]", *parts])

    @native_function
    def _log_error(self, *parts):
        self._emit_event(['stderr'], ["[ERROR]", *parts])

    @native_function
    def _sleep(self, ms):
        ms = expect_int("Sleep", ms)
        if ms < 0:
            raise ScriptRuntimeError("Sleep() duration cannot be negative")
        self._sleep_func(ms / 1000.0)

    @native_function
    def _assert(self, condition, message=None):
        if not is_truthy(condition):
            if message is None:
                raise ScriptRuntimeError("Assertion failed")
            raise ScriptRuntimeError(f"Assertion failed: {to_display(message)}")

    # --- Strings ---
    @native_function
    def _length(self, value):
        return length(value)

    @native_function
    def _substring(self, string, start, end):
        string = expect_string("Substring", string)
        start = expect_int("Substring", start)
        end = expect_int("Substring", end)
        if start < 0 or end > len(string) or start > end:
            raise ScriptRuntimeError("Invalid substring indices")
        return string[start:end]

    @native_function
    def _to_upper(self, string):
        return expect_string("ToUpper", string).upper()

    @native_function
    def _to_lower(self, string):
        return expect_string("ToLower", string).lower()

    @native_function
    def _contains(self, haystack, needle):
        # Arrays test membership with script equality
        if isinstance(haystack, list):
            return any(values_equal(item, needle) for item in haystack)
        return expect_string("Contains", needle) in expect_string("Contains", haystack)

    @native_function
    def _replace(self, string, old, new):
        string = expect_string("Replace", string)
        old = expect_string("Replace", old)
        new = expect_string("Replace", new)
        if not old:
            raise ScriptRuntimeError("Replace() search string cannot be empty")
        return string.replace(old, new)

    # --- Arrays ---
    @native_function
    def _count(self, value):
        return length(value)

    @native_function
    def _push(self, array, value):
        expect_array("Push", array).append(value)
        return array

    @native_function
    def _pop(self, array):
        if not expect_array("Pop", array):
            raise ScriptRuntimeError("Cannot pop from empty array")
        return array.pop()

    @native_function
    def _join(self, array, separator):
        items = expect_array("Join", array)
        return expect_string("Join", separator).join(to_display(item) for item in items)

    # --- Type and Conversion ---
    @native_function
    def _to_string(self, value):
        return to_display(value)

    @native_function
    def _to_int(self, value):
        match value:
            case bool():
                pass
            case int():
                return value
            case float():
                if math.isnan(value) or math.isinf(value):
                    raise ScriptRuntimeError("Cannot convert float to integer")
                return wrap_int64(int(value))
            case str():
                try:
                    return wrap_int64(int(value.strip(), 10))
                except ValueError:
                    raise ScriptRuntimeError("Cannot convert string to integer") from None
        raise ScriptRuntimeError("Cannot convert to integer")

    @native_function
    def _to_float(self, value):
        match value:
            case bool():
                pass
            case float():
                return value
            case int():
                return float(value)
            case str():
                try:
                    return float(value.strip())
                except ValueError:
                    raise ScriptRuntimeError("Cannot convert string to float") from None
        raise ScriptRuntimeError("Cannot convert to float")

    @native_function
    def _type_of(self, value):
        return type_name(value)

    # --- Objects ---
    @native_function
    def _keys(self, obj):
        return list(expect_object("Keys", obj).keys())

    @native_function
    def _has_key(self, obj, key):
        return expect_string("HasKey", key) in expect_object("HasKey", obj)

    # --- Serialization ---
    @native_function
    def _to_json(self, value):
        return serialize(value, fmt='json')

    @native_function
    def _parse_json(self, text):
        return deserialize(expect_string("ParseJson", text), fmt='json')

    @native_function
    def _to_yaml(self, value):
        return serialize(value, fmt='yaml')

    @native_function
    def _parse_yaml(self, text):
        return deserialize(expect_string("ParseYaml", text), fmt='yaml')
