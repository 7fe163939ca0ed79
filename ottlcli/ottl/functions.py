"""
OTTL editors and converters.

Editors (lower case names) mutate telemetry and head a statement.
Converters (capitalised names) compute values inside expressions. Each
function declares its parameters so that argument errors are reported at
compile time rather than per record.
"""

import fnmatch
import hashlib
import json
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from ottlcli.errors import ExecutionError

# Parameter kinds
GETTER = "getter"  # any value expression
GETSETTER = "getsetter"  # a settable path
STRING = "string"  # string literal
INT = "int"  # int literal
REGEX = "regex"  # string literal compiled as a regular expression
STRING_LIST = "string_list"  # list literal of string literals
GETTER_LIST = "getter_list"  # list literal of value expressions


@dataclass(frozen=True)
class Param:
    name: str
    kind: str
    optional: bool = False
    default: Any = None
    choices: Optional[Tuple[str, ...]] = None


@dataclass(frozen=True)
class FunctionSpec:
    name: str
    params: Tuple[Param, ...]
    impl: Callable[..., Any]

    @property
    def is_editor(self) -> bool:
        return self.name[0].islower()


EDITORS: Dict[str, FunctionSpec] = {}
CONVERTERS: Dict[str, FunctionSpec] = {}


def ottl_function(name: str, *params: Param):
    """Register ``impl`` as the OTTL function ``name``."""

    def register(impl):
        spec = FunctionSpec(name, params, impl)
        registry = EDITORS if spec.is_editor else CONVERTERS
        registry[name] = spec
        return impl

    return register


def lookup(name: str) -> Optional[FunctionSpec]:
    return EDITORS.get(name) or CONVERTERS.get(name)


def go_replacement(replacement: str) -> str:
    """Translate a ``$1`` / ``${name}`` replacement into ``re.sub`` syntax."""

    def convert(match: re.Match) -> str:
        token = match.group(0)
        if token == "$$":
            return "$"
        ref = match.group(1) or match.group(2)
        return f"\\g<{ref}>"

    escaped = replacement.replace("\\", "\\\\")
    return re.sub(r"\$\$|\$\{(\w+)\}|\$(\w+)", convert, escaped)


def to_string(value: Any) -> str:
    """Render a value the way OTTL converts values to strings."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, bytes):
        return value.hex()
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def _expect_map(tctx, target, editor: str) -> Optional[dict]:
    value = target.get(tctx)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ExecutionError(
            f"{editor}: expected a map at {target.name} but got {type(value).__name__}"
        )
    return value


def _expect_string(value: Any, converter: str) -> str:
    if not isinstance(value, str):
        raise ExecutionError(
            f"{converter}: expected a string but got {type(value).__name__}"
        )
    return value


# Editors


@ottl_function("set", Param("target", GETSETTER), Param("value", GETTER))
def set_(tctx, target, value):
    val = value.get(tctx)
    # nil values are not written
    if val is not None:
        target.set(tctx, val)


@ottl_function("delete_key", Param("target", GETSETTER), Param("key", STRING))
def delete_key(tctx, target, key):
    m = _expect_map(tctx, target, "delete_key")
    if m is not None and key in m:
        del m[key]
        target.set(tctx, m)


@ottl_function(
    "delete_matching_keys", Param("target", GETSETTER), Param("pattern", REGEX)
)
def delete_matching_keys(tctx, target, pattern):
    m = _expect_map(tctx, target, "delete_matching_keys")
    if m is not None:
        target.set(tctx, {k: v for k, v in m.items() if not pattern.search(k)})


@ottl_function("keep_keys", Param("target", GETSETTER), Param("keys", STRING_LIST))
def keep_keys(tctx, target, keys):
    m = _expect_map(tctx, target, "keep_keys")
    if m is not None:
        wanted = set(keys)
        target.set(tctx, {k: v for k, v in m.items() if k in wanted})


@ottl_function(
    "keep_matching_keys", Param("target", GETSETTER), Param("pattern", REGEX)
)
def keep_matching_keys(tctx, target, pattern):
    m = _expect_map(tctx, target, "keep_matching_keys")
    if m is not None:
        target.set(tctx, {k: v for k, v in m.items() if pattern.search(k)})


@ottl_function(
    "limit",
    Param("target", GETSETTER),
    Param("limit", INT),
    Param("priority_keys", STRING_LIST, optional=True, default=()),
)
def limit(tctx, target, limit, priority_keys):
    m = _expect_map(tctx, target, "limit")
    if m is None or len(m) <= limit:
        return
    keep = []
    for key in priority_keys:
        if key in m and key not in keep and len(keep) < limit:
            keep.append(key)
    for key in m:
        if len(keep) >= limit:
            break
        if key not in keep:
            keep.append(key)
    kept = set(keep)
    target.set(tctx, {k: v for k, v in m.items() if k in kept})


@ottl_function("truncate_all", Param("target", GETSETTER), Param("limit", INT))
def truncate_all(tctx, target, limit):
    m = _expect_map(tctx, target, "truncate_all")
    if m is not None:
        target.set(
            tctx,
            {k: v[:limit] if isinstance(v, str) else v for k, v in m.items()},
        )


@ottl_function(
    "replace_pattern",
    Param("target", GETSETTER),
    Param("regex", REGEX),
    Param("replacement", STRING),
)
def replace_pattern(tctx, target, regex, replacement):
    value = target.get(tctx)
    if isinstance(value, str):
        updated = regex.sub(go_replacement(replacement), value)
        if updated != value:
            target.set(tctx, updated)


@ottl_function(
    "replace_all_patterns",
    Param("target", GETSETTER),
    Param("mode", STRING, choices=("key", "value")),
    Param("regex", REGEX),
    Param("replacement", STRING),
)
def replace_all_patterns(tctx, target, mode, regex, replacement):
    m = _expect_map(tctx, target, "replace_all_patterns")
    if m is None:
        return
    template = go_replacement(replacement)
    updated = {}
    for k, v in m.items():
        if mode == "key":
            updated[regex.sub(template, k)] = v
        elif isinstance(v, str):
            updated[k] = regex.sub(template, v)
        else:
            updated[k] = v
    target.set(tctx, updated)


@ottl_function(
    "replace_match",
    Param("target", GETSETTER),
    Param("pattern", STRING),
    Param("replacement", STRING),
)
def replace_match(tctx, target, pattern, replacement):
    value = target.get(tctx)
    if isinstance(value, str) and fnmatch.fnmatchcase(value, pattern):
        target.set(tctx, replacement)


@ottl_function(
    "replace_all_matches",
    Param("target", GETSETTER),
    Param("pattern", STRING),
    Param("replacement", STRING),
)
def replace_all_matches(tctx, target, pattern, replacement):
    m = _expect_map(tctx, target, "replace_all_matches")
    if m is not None:
        target.set(
            tctx,
            {
                k: replacement
                if isinstance(v, str) and fnmatch.fnmatchcase(v, pattern)
                else v
                for k, v in m.items()
            },
        )


@ottl_function(
    "merge_maps",
    Param("target", GETSETTER),
    Param("source", GETTER),
    Param("strategy", STRING, choices=("insert", "update", "upsert")),
)
def merge_maps(tctx, target, source, strategy):
    m = _expect_map(tctx, target, "merge_maps")
    src = source.get(tctx)
    if src is None:
        return
    if not isinstance(src, dict):
        raise ExecutionError(
            f"merge_maps: expected a map source but got {type(src).__name__}"
        )
    merged = dict(m or {})
    for k, v in src.items():
        exists = k in merged
        if (
            strategy == "upsert"
            or (strategy == "insert" and not exists)
            or (strategy == "update" and exists)
        ):
            merged[k] = v
    target.set(tctx, merged)


@ottl_function(
    "append",
    Param("target", GETSETTER),
    Param("value", GETTER, optional=True),
    Param("values", GETTER, optional=True),
)
def append(tctx, target, value, values):
    current = target.get(tctx)
    if current is None:
        result = []
    elif isinstance(current, list):
        result = list(current)
    else:
        result = [current]

    if value is not None:
        result.append(value.get(tctx))
    if values is not None:
        extra = values.get(tctx)
        if not isinstance(extra, list):
            raise ExecutionError(
                f"append: expected a list of values but got {type(extra).__name__}"
            )
        result.extend(extra)
    target.set(tctx, result)


# Converters


@ottl_function("Concat", Param("vals", GETTER_LIST), Param("delimiter", STRING))
def concat(tctx, vals, delimiter):
    return delimiter.join(to_string(v.get(tctx)) for v in vals)


@ottl_function("ToUpperCase", Param("target", GETTER))
def to_upper_case(tctx, target):
    return _expect_string(target.get(tctx), "ToUpperCase").upper()


@ottl_function("ToLowerCase", Param("target", GETTER))
def to_lower_case(tctx, target):
    return _expect_string(target.get(tctx), "ToLowerCase").lower()


@ottl_function("Len", Param("target", GETTER))
def len_(tctx, target):
    value = target.get(tctx)
    if isinstance(value, (str, bytes, list, dict)):
        return len(value)
    raise ExecutionError(f"Len: unsupported type {type(value).__name__}")


@ottl_function("Int", Param("value", GETTER))
def int_(tctx, value):
    val = value.get(tctx)
    if isinstance(val, bool):
        return int(val)
    if isinstance(val, int):
        return val
    if isinstance(val, float):
        return int(val)
    if isinstance(val, str):
        try:
            return int(val.strip())
        except ValueError:
            return None
    return None


@ottl_function("Double", Param("value", GETTER))
def double(tctx, value):
    val = value.get(tctx)
    if isinstance(val, (bool, int, float)):
        return float(val)
    if isinstance(val, str):
        try:
            return float(val.strip())
        except ValueError:
            return None
    return None


@ottl_function("String", Param("value", GETTER))
def string(tctx, value):
    val = value.get(tctx)
    return None if val is None else to_string(val)


@ottl_function("IsMatch", Param("target", GETTER), Param("pattern", REGEX))
def is_match(tctx, target, pattern):
    val = target.get(tctx)
    if val is None:
        return False
    if isinstance(val, (dict, list, bytes)):
        raise ExecutionError(f"IsMatch: unsupported type {type(val).__name__}")
    return pattern.search(to_string(val)) is not None


def _type_check(name: str, check: Callable[[Any], bool]):
    @ottl_function(name, Param("value", GETTER))
    def converter(tctx, value):
        return check(value.get(tctx))

    return converter


is_string = _type_check("IsString", lambda v: isinstance(v, str))
is_int = _type_check(
    "IsInt", lambda v: isinstance(v, int) and not isinstance(v, bool)
)
is_double = _type_check("IsDouble", lambda v: isinstance(v, float))
is_bool = _type_check("IsBool", lambda v: isinstance(v, bool))
is_map = _type_check("IsMap", lambda v: isinstance(v, dict))
is_list = _type_check("IsList", lambda v: isinstance(v, list))


@ottl_function("Split", Param("target", GETTER), Param("delimiter", STRING))
def split(tctx, target, delimiter):
    val = target.get(tctx)
    if val is None:
        return None
    text = _expect_string(val, "Split")
    if delimiter == "":
        return list(text)
    return text.split(delimiter)


@ottl_function(
    "Substring",
    Param("target", GETTER),
    Param("start", GETTER),
    Param("length", GETTER),
)
def substring(tctx, target, start, length):
    text = _expect_string(target.get(tctx), "Substring")
    begin, size = start.get(tctx), length.get(tctx)
    for label, number in (("start", begin), ("length", size)):
        if isinstance(number, bool) or not isinstance(number, int):
            raise ExecutionError(f"Substring: {label} must be an int")
    if begin < 0 or size <= 0 or begin + size > len(text):
        raise ExecutionError(
            f"Substring: invalid range start={begin} length={size} "
            f"for string of length {len(text)}"
        )
    return text[begin : begin + size]


@ottl_function(
    "Trim",
    Param("target", GETTER),
    Param("replacement", STRING, optional=True, default=" "),
)
def trim(tctx, target, replacement):
    return _expect_string(target.get(tctx), "Trim").strip(replacement)


def _digest(name: str, algorithm: str):
    @ottl_function(name, Param("value", GETTER))
    def converter(tctx, value):
        text = _expect_string(value.get(tctx), name)
        return hashlib.new(algorithm, text.encode("utf-8")).hexdigest()

    return converter


sha256 = _digest("SHA256", "sha256")
sha1 = _digest("SHA1", "sha1")


@ottl_function("Hex", Param("value", GETTER))
def hex_(tctx, value):
    val = value.get(tctx)
    if isinstance(val, bytes):
        return val.hex()
    if isinstance(val, str):
        return val.encode("utf-8").hex()
    if isinstance(val, int) and not isinstance(val, bool):
        return val.to_bytes(8, "big", signed=True).hex()
    raise ExecutionError(f"Hex: unsupported type {type(val).__name__}")
