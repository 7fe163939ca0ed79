"""Pydantic models for OTLP log data (``LogsData``)."""

from typing import List

from pydantic import Field

from ottlcli.otlp.common import (
    AnyValue,
    InstrumentationScope,
    Int64,
    KeyValue,
    OTLPModel,
    Resource,
    SpanId,
    TraceId,
)
from ottlcli.otlp.enums import SeverityNumber, enum_field

SeverityNumberField = enum_field(SeverityNumber)


class LogRecord(OTLPModel):
    time_unix_nano: Int64 = 0
    observed_time_unix_nano: Int64 = 0
    severity_number: SeverityNumberField = 0
    severity_text: str = ""
    body: AnyValue = Field(default_factory=AnyValue)
    attributes: List[KeyValue] = Field(default_factory=list)
    dropped_attributes_count: int = 0
    flags: int = 0
    trace_id: TraceId = ""
    span_id: SpanId = ""
    event_name: str = ""


class ScopeLogs(OTLPModel):
    scope: InstrumentationScope = Field(default_factory=InstrumentationScope)
    log_records: List[LogRecord] = Field(default_factory=list)
    schema_url: str = ""


class ResourceLogs(OTLPModel):
    resource: Resource = Field(default_factory=Resource)
    scope_logs: List[ScopeLogs] = Field(default_factory=list)
    schema_url: str = ""


class LogsData(OTLPModel):
    resource_logs: List[ResourceLogs] = Field(default_factory=list)
