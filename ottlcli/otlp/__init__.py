"""
OTLP/JSON data model for ottlcli.

The models mirror the OpenTelemetry protocol messages (resource -> scope ->
record) and round-trip through the JSON encoding used by the OpenTelemetry
Collector.
"""

from ottlcli.otlp.codec import (
    UnmarshalError,
    marshal_logs,
    marshal_metrics,
    marshal_traces,
    unmarshal_logs,
    unmarshal_metrics,
    unmarshal_traces,
)
from ottlcli.otlp.logs import LogsData
from ottlcli.otlp.metrics import MetricsData
from ottlcli.otlp.traces import TracesData

__all__ = [
    "LogsData",
    "MetricsData",
    "TracesData",
    "UnmarshalError",
    "marshal_logs",
    "marshal_metrics",
    "marshal_traces",
    "unmarshal_logs",
    "unmarshal_metrics",
    "unmarshal_traces",
]
