"""A parsed telemetry document tagged with its context type."""

from dataclasses import dataclass
from typing import Optional, Union

from ottlcli.context import ContextType
from ottlcli.otlp import (
    LogsData,
    MetricsData,
    TracesData,
    marshal_logs,
    marshal_metrics,
    marshal_traces,
)

Payload = Union[TracesData, LogsData, MetricsData]

_PAYLOAD_TYPES = {
    ContextType.SPAN: TracesData,
    ContextType.LOG: LogsData,
    ContextType.METRIC: MetricsData,
    ContextType.DATAPOINT: MetricsData,
}


@dataclass
class TelemetryDocument:
    """
    Exactly one of a trace, log or metric tree, consistent with its context.

    The data point context addresses a sub-structure of metrics, so it holds
    a ``MetricsData`` payload just like the metric context.
    """

    context_type: ContextType
    payload: Payload

    def __post_init__(self):
        expected = _PAYLOAD_TYPES.get(self.context_type)
        if expected is None:
            raise TypeError(f"no document shape for context {self.context_type}")
        if not isinstance(self.payload, expected):
            raise TypeError(
                f"context {self.context_type} expects {expected.__name__}, "
                f"got {type(self.payload).__name__}"
            )

    @property
    def resource_count(self) -> int:
        return len(self.resources)

    @property
    def resources(self) -> list:
        """The top level resource groups, in document order."""
        if isinstance(self.payload, TracesData):
            return self.payload.resource_spans
        if isinstance(self.payload, LogsData):
            return self.payload.resource_logs
        return self.payload.resource_metrics

    def marshal(self, indent: Optional[int] = None) -> bytes:
        """Serialize the document in the shape it was parsed from."""
        if isinstance(self.payload, TracesData):
            return marshal_traces(self.payload, indent=indent)
        if isinstance(self.payload, LogsData):
            return marshal_logs(self.payload, indent=indent)
        return marshal_metrics(self.payload, indent=indent)
