"""
OpenTelemetry enumerations used by the OTLP models and by OTTL enum symbols.
"""

from enum import IntEnum
from typing import Annotated, Any, Type

from pydantic import BeforeValidator


class SpanKind(IntEnum):
    """OpenTelemetry span kinds."""

    UNSPECIFIED = 0
    INTERNAL = 1
    SERVER = 2
    CLIENT = 3
    PRODUCER = 4
    CONSUMER = 5


class StatusCode(IntEnum):
    """OpenTelemetry span status codes."""

    UNSET = 0
    OK = 1
    ERROR = 2


class SeverityNumber(IntEnum):
    """OpenTelemetry log severity numbers."""

    UNSPECIFIED = 0
    TRACE = 1
    TRACE2 = 2
    TRACE3 = 3
    TRACE4 = 4
    DEBUG = 5
    DEBUG2 = 6
    DEBUG3 = 7
    DEBUG4 = 8
    INFO = 9
    INFO2 = 10
    INFO3 = 11
    INFO4 = 12
    WARN = 13
    WARN2 = 14
    WARN3 = 15
    WARN4 = 16
    ERROR = 17
    ERROR2 = 18
    ERROR3 = 19
    ERROR4 = 20
    FATAL = 21
    FATAL2 = 22
    FATAL3 = 23
    FATAL4 = 24


class AggregationTemporality(IntEnum):
    UNSPECIFIED = 0
    DELTA = 1
    CUMULATIVE = 2


class MetricType(IntEnum):
    """Which data field of a metric is populated."""

    NONE = 0
    GAUGE = 1
    SUM = 2
    HISTOGRAM = 3
    EXPONENTIAL_HISTOGRAM = 4
    SUMMARY = 5


# Prefixes used by the protobuf enum value names, e.g. SPAN_KIND_SERVER
_WIRE_PREFIXES = {
    SpanKind: "SPAN_KIND_",
    StatusCode: "STATUS_CODE_",
    SeverityNumber: "SEVERITY_NUMBER_",
    AggregationTemporality: "AGGREGATION_TEMPORALITY_",
    MetricType: "METRIC_DATA_TYPE_",
}


def symbol_table() -> dict[str, int]:
    """All enum symbols addressable from OTTL, e.g. ``STATUS_CODE_ERROR``."""
    symbols = {}
    for enum_cls, prefix in _WIRE_PREFIXES.items():
        for member in enum_cls:
            symbols[prefix + member.name] = int(member)
    return symbols


def _enum_parser(enum_cls: Type[IntEnum]):
    prefix = _WIRE_PREFIXES[enum_cls]

    def parse(v: Any) -> Any:
        if isinstance(v, str):
            name = v.strip().upper()
            if name.startswith(prefix):
                name = name[len(prefix) :]
            try:
                return int(enum_cls[name])
            except KeyError:
                raise ValueError(f"unknown {enum_cls.__name__} value: {v!r}")
        return v

    return parse


def enum_field(enum_cls: Type[IntEnum]):
    """An int field that also accepts the protobuf enum value names on input."""
    return Annotated[int, BeforeValidator(_enum_parser(enum_cls))]
