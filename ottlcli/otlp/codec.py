"""
OTLP/JSON encoding and decoding of traces, logs and metrics.

Decoding never mutates its input and ignores keys it does not know, so a
document of one signal decodes as an *empty* document of another signal.
"""

import json
from typing import Optional, Type, TypeVar

from pydantic import ValidationError

from ottlcli.otlp.common import OTLPModel
from ottlcli.otlp.logs import LogsData
from ottlcli.otlp.metrics import MetricsData
from ottlcli.otlp.traces import TracesData

ModelT = TypeVar("ModelT", bound=OTLPModel)


class UnmarshalError(ValueError):
    """Raised when bytes cannot be decoded as the requested OTLP signal."""


def _unmarshal(model_cls: Type[ModelT], data: bytes, signal: str) -> ModelT:
    try:
        obj = json.loads(data)
    except ValueError as e:
        raise UnmarshalError(f"invalid OTLP {signal} JSON: {e}") from e

    if not isinstance(obj, dict):
        raise UnmarshalError(
            f"invalid OTLP {signal} JSON: expected an object, got {type(obj).__name__}"
        )

    try:
        return model_cls.model_validate(obj)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise UnmarshalError(
            f"invalid OTLP {signal} JSON at {location}: {first['msg']}"
        ) from e


def _marshal(model: OTLPModel, indent: Optional[int]) -> bytes:
    obj = model.model_dump(mode="json", by_alias=True)
    if indent is None:
        text = json.dumps(obj, separators=(",", ":"))
    else:
        text = json.dumps(obj, indent=indent)
    return text.encode("utf-8")


def unmarshal_traces(data: bytes) -> TracesData:
    return _unmarshal(TracesData, data, "traces")


def unmarshal_logs(data: bytes) -> LogsData:
    return _unmarshal(LogsData, data, "logs")


def unmarshal_metrics(data: bytes) -> MetricsData:
    return _unmarshal(MetricsData, data, "metrics")


def marshal_traces(traces: TracesData, indent: Optional[int] = None) -> bytes:
    return _marshal(traces, indent)


def marshal_logs(logs: LogsData, indent: Optional[int] = None) -> bytes:
    return _marshal(logs, indent)


def marshal_metrics(metrics: MetricsData, indent: Optional[int] = None) -> bytes:
    return _marshal(metrics, indent)
