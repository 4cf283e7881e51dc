from __future__ import annotations

import datetime
import json
from typing import Any, Optional
import collections.abc

# YAML is already a project dependency (screen descriptions for SimulatedHost)
import yaml

from autoscript.autoscript_tokens import wrap_int64
from autoscript.autoscript_values import ScriptRuntimeError, UserFunction, NativeFunction, type_name

FORMATS = ('json', 'yaml')


# --------------------------
# Helpers
# --------------------------

def _to_builtin(obj: Any, _active: Optional[set] = None) -> Any:
    # Script values are already plain Python containers; functions have no text form
    if isinstance(obj, (UserFunction, NativeFunction)):
        raise ScriptRuntimeError(f"Cannot serialize value of type {type_name(obj)}")
    if not isinstance(obj, (list, collections.abc.Mapping)):
        return obj
    active = _active if _active is not None else set()
    if id(obj) in active:
        raise ScriptRuntimeError("Cannot serialize value: circular reference")
    active.add(id(obj))
    try:
        if isinstance(obj, list):
            return [_to_builtin(x, active) for x in obj]
        return {str(k): _to_builtin(v, active) for k, v in obj.items()}
    finally:
        active.discard(id(obj))


def _to_script(obj: Any) -> Any:
    """Coerce parsed data into script values."""
    match obj:
        case None | bool() | float() | str():
            return obj
        case int():
            return wrap_int64(obj)
        case list() | tuple():
            return [_to_script(x) for x in obj]
        case collections.abc.Mapping():
            return {str(k): _to_script(v) for k, v in obj.items()}
        case datetime.date() | datetime.datetime():
            return obj.isoformat()
    return str(obj)


def detect_format(data_hint: Optional[str] = None) -> str:
    """
    Returns 'json' when the text looks like a JSON document, else 'yaml'
    (YAML is a superset, so it is the fallback).
    """
    if data_hint is not None:
        s = data_hint.lstrip()
        if s.startswith('{') or s.startswith('['):
            return 'json'
    return 'yaml'


# --------------------------
# Public API
# --------------------------

def deserialize(text: str, *, fmt: Optional[str] = None) -> Any:
    """
    Convert text to script values.
    Supported fmt: 'json', 'yaml'. If fmt is None, the format is sniffed.
    Malformed input raises ScriptRuntimeError.
    """
    if not isinstance(text, str):
        raise ScriptRuntimeError(f"Expected string to parse, got {type_name(text)}")
    f = (fmt or detect_format(text)).lower()
    if f == 'json':
        try:
            return _to_script(json.loads(text))
        except json.JSONDecodeError as e:
            raise ScriptRuntimeError(f"Invalid JSON: {e.msg} (line {e.lineno}, column {e.colno})") from e
    if f == 'yaml':
        try:
            return _to_script(yaml.safe_load(text))
        except yaml.YAMLError as e:
            raise ScriptRuntimeError(f"Invalid YAML: {e}") from e
    raise ScriptRuntimeError(f"Unsupported serialization format: {fmt!r}")


def serialize(value: Any, *, fmt: str, pretty: bool = False) -> str:
    """
    Convert a script value into a textual representation.
    - fmt: 'json' | 'yaml'
    """
    f = (fmt or '').lower()
    built = _to_builtin(value)
    if f == 'json':
        return json.dumps(built, ensure_ascii=False, indent=2 if pretty else None)
    if f == 'yaml':
        return yaml.safe_dump(built, sort_keys=False, allow_unicode=True)
    raise ScriptRuntimeError(f"Unsupported serialization format: {fmt!r}")


__all__ = [
    "deserialize",
    "serialize",
    "detect_format",
    "FORMATS",
]
