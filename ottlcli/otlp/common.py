"""
Common OTLP/JSON building blocks: attribute values, resources and scopes.

The JSON mapping follows the protobuf JSON conventions used by OTLP:
camelCase keys (snake_case is accepted on input), 64-bit integers encoded
as strings, enums as numbers and zero-valued fields omitted on output.
"""

import base64
import math
import string
from typing import Annotated, Any, ClassVar, List, Optional, Union

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    model_serializer,
)
from pydantic.alias_generators import to_camel


def _parse_int64(v: Any) -> Any:
    """Accept 64-bit integers both as JSON numbers and as decimal strings."""
    if isinstance(v, str):
        try:
            return int(v.strip())
        except ValueError:
            raise ValueError(f"invalid 64-bit integer: {v!r}")
    if isinstance(v, bool):
        raise ValueError("expected an integer, got a boolean")
    return v


_NON_FINITE = {"NaN": math.nan, "Infinity": math.inf, "-Infinity": -math.inf}


def _parse_double(v: Any) -> Any:
    if isinstance(v, bool):
        raise ValueError("expected a number, got a boolean")
    if isinstance(v, str) and v in _NON_FINITE:
        return _NON_FINITE[v]
    return v


def _dump_double(v: float) -> Union[float, str]:
    """Non-finite doubles are written as "NaN", "Infinity" or "-Infinity"."""
    if math.isnan(v):
        return "NaN"
    if math.isinf(v):
        return "Infinity" if v > 0 else "-Infinity"
    return v


# uint64/int64 fields travel as strings in OTLP/JSON
Int64 = Annotated[
    int, BeforeValidator(_parse_int64), PlainSerializer(str, return_type=str)
]
Double = Annotated[
    float,
    BeforeValidator(_parse_double),
    PlainSerializer(_dump_double, when_used="json"),
]


def _hex_id(size: int):
    def parse(v: Any) -> Any:
        if not isinstance(v, str) or v == "":
            return v
        if len(v) != 2 * size or not all(c in string.hexdigits for c in v):
            raise ValueError(f"invalid id {v!r}: expected {2 * size} hex characters")
        return v.lower()

    return parse


# ids are hex strings in OTLP/JSON; empty means unset
TraceId = Annotated[str, BeforeValidator(_hex_id(16))]
SpanId = Annotated[str, BeforeValidator(_hex_id(8))]


def _is_zero(value: Any) -> bool:
    if isinstance(value, (list, dict, str)):
        return len(value) == 0
    if isinstance(value, (bool, int, float)):
        return value == 0
    return False


class OTLPModel(BaseModel):
    """
    Base class for all OTLP/JSON models.

    Unknown keys are ignored on input. On output, fields holding their zero
    value are dropped, except the members of a oneof (listed in ``_oneof``),
    which are emitted whenever they are set.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    _oneof: ClassVar[frozenset] = frozenset()

    @model_serializer(mode="wrap")
    def _omit_zero_values(self, handler):
        data = handler(self)
        for name, field in type(self).model_fields.items():
            key = field.alias if field.alias in data else name
            if key not in data:
                continue
            value = getattr(self, name)
            if value is None:
                del data[key]
            elif name in self._oneof:
                continue
            elif _is_zero(value) or data[key] == {}:
                del data[key]
        return data


class ArrayValue(OTLPModel):
    values: List["AnyValue"] = Field(default_factory=list)


class KeyValueList(OTLPModel):
    values: List["KeyValue"] = Field(default_factory=list)


class AnyValue(OTLPModel):
    """An attribute value: exactly one of the members is set, or none."""

    _oneof: ClassVar[frozenset] = frozenset(
        {
            "string_value",
            "bool_value",
            "int_value",
            "double_value",
            "array_value",
            "kvlist_value",
            "bytes_value",
        }
    )

    string_value: Optional[str] = None
    bool_value: Optional[bool] = None
    int_value: Optional[Int64] = None
    double_value: Optional[Double] = None
    array_value: Optional[ArrayValue] = None
    kvlist_value: Optional[KeyValueList] = None
    # base64 encoded, as in protobuf JSON
    bytes_value: Optional[str] = None

    def to_python(self) -> Any:
        """Return the plain Python value held by this AnyValue."""
        if self.string_value is not None:
            return self.string_value
        if self.bool_value is not None:
            return self.bool_value
        if self.int_value is not None:
            return self.int_value
        if self.double_value is not None:
            return self.double_value
        if self.array_value is not None:
            return [v.to_python() for v in self.array_value.values]
        if self.kvlist_value is not None:
            return attributes_to_dict(self.kvlist_value.values)
        if self.bytes_value is not None:
            return base64.b64decode(self.bytes_value)
        return None

    @classmethod
    def from_python(cls, v: Any) -> "AnyValue":
        """Build an AnyValue from a plain Python value."""
        if v is None:
            return cls()
        # bool must be tested before int
        if isinstance(v, bool):
            return cls(bool_value=v)
        elif isinstance(v, int):
            return cls(int_value=v)
        elif isinstance(v, float):
            return cls(double_value=v)
        elif isinstance(v, str):
            return cls(string_value=v)
        elif isinstance(v, (bytes, bytearray)):
            return cls(bytes_value=base64.b64encode(bytes(v)).decode("ascii"))
        elif isinstance(v, (list, tuple)):
            return cls(array_value=ArrayValue(values=[cls.from_python(x) for x in v]))
        elif isinstance(v, dict):
            return cls(kvlist_value=KeyValueList(values=dict_to_attributes(v)))
        raise TypeError(f"unsupported attribute value type: {type(v).__name__}")


class KeyValue(OTLPModel):
    _oneof: ClassVar[frozenset] = frozenset({"key", "value"})

    key: str = ""
    value: AnyValue = Field(default_factory=AnyValue)


ArrayValue.model_rebuild()
KeyValueList.model_rebuild()


def attributes_to_dict(attributes: List[KeyValue]) -> dict:
    """Convert an attribute list into an insertion-ordered dict."""
    return {kv.key: kv.value.to_python() for kv in attributes}


def dict_to_attributes(values: dict) -> List[KeyValue]:
    """Convert a dict into an attribute list, keeping the dict order."""
    attributes = []
    for key, value in values.items():
        if not isinstance(key, str):
            raise TypeError(f"attribute keys must be strings, got {key!r}")
        attributes.append(KeyValue(key=key, value=AnyValue.from_python(value)))
    return attributes


class Resource(OTLPModel):
    attributes: List[KeyValue] = Field(default_factory=list)
    dropped_attributes_count: int = 0


class InstrumentationScope(OTLPModel):
    name: str = ""
    version: str = ""
    attributes: List[KeyValue] = Field(default_factory=list)
    dropped_attributes_count: int = 0


AttributeValue = Union[str, bool, int, float, bytes, list, dict, None]
