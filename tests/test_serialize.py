import pytest
from autoscript.autoscript_serialize import serialize, deserialize, detect_format
from autoscript.autoscript_values import ScriptRuntimeError, UserFunction, NativeFunction

def test_json_roundtrip():
    value = {"a": 1, "b": [1, 2.5, "x", None], "c": {"d": True}}
    s = serialize(value, fmt="json")
    out = deserialize(s)  # JSON is sniffed from leading "{"
    assert out == value

def test_yaml_roundtrip():
    value = {"a": 1, "b": ["x", "y"], "c": {"d": 2}}
    s = serialize(value, fmt="yaml")
    assert s.startswith("a: 1\n")  # insertion order kept
    out = deserialize(s, fmt="yaml")
    assert out == value

def test_pretty_json():
    assert serialize({"a": [1]}, fmt="json", pretty=True) == '{\n  "a": [\n    1\n  ]\n}'

def test_json_keeps_unicode():
    assert serialize("héllo", fmt="json") == '"héllo"'

@pytest.mark.parametrize(
    "text,expected",
    [
        ('{"a": 1}', "json"),
        ("  [1, 2]", "json"),
        ("a: 1", "yaml"),
        ("- x", "yaml"),
        ("", "yaml"),
    ],
)
def test_detect_format(text, expected):
    assert detect_format(text) == expected

def test_large_integers_wrap_to_int64():
    assert deserialize("[9223372036854775808]") == [-9223372036854775808]

def test_yaml_dates_become_strings():
    out = deserialize("when: 2024-01-02\n", fmt="yaml")
    assert out == {"when": "2024-01-02"}

def test_yaml_non_string_keys_become_strings():
    assert deserialize("1: one\ntrue: yes\n", fmt="yaml") == {"1": "one", "True": True}

def test_invalid_json_reports_position():
    with pytest.raises(ScriptRuntimeError) as exc:
        deserialize('{"a": }', fmt="json")
    assert exc.value.message.startswith("Invalid JSON: ")
    assert "line 1" in exc.value.message

def test_invalid_yaml():
    with pytest.raises(ScriptRuntimeError, match="Invalid YAML"):
        deserialize("a: [1, 2", fmt="yaml")

def test_parse_requires_string():
    with pytest.raises(ScriptRuntimeError, match="Expected string to parse, got integer"):
        deserialize(5)

def test_functions_cannot_be_serialized():
    fn = UserFunction("f", [], [], None)
    with pytest.raises(ScriptRuntimeError, match="Cannot serialize value of type function"):
        serialize([1, fn], fmt="json")
    native = NativeFunction("Print", lambda args: None)
    with pytest.raises(ScriptRuntimeError, match="native_function"):
        serialize({"p": native}, fmt="yaml")

def test_circular_reference_is_rejected():
    items = [1]
    items.append(items)
    with pytest.raises(ScriptRuntimeError, match="circular reference"):
        serialize(items, fmt="json")

def test_shared_but_acyclic_values_are_fine():
    shared = [1]
    assert serialize([shared, shared], fmt="json") == "[[1], [1]]"

@pytest.mark.parametrize("fn", [
    lambda: serialize(1, fmt="toml"),
    lambda: deserialize("a = 1", fmt="toml"),
])
def test_unsupported_format(fn):
    with pytest.raises(ScriptRuntimeError, match="Unsupported serialization format"):
        fn()
