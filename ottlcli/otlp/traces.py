"""Pydantic models for OTLP trace data (``TracesData``)."""

from typing import List

from pydantic import Field

from ottlcli.otlp.common import (
    InstrumentationScope,
    Int64,
    KeyValue,
    OTLPModel,
    Resource,
    SpanId,
    TraceId,
)
from ottlcli.otlp.enums import SpanKind, StatusCode, enum_field

SpanKindField = enum_field(SpanKind)
StatusCodeField = enum_field(StatusCode)


class Status(OTLPModel):
    message: str = ""
    code: StatusCodeField = 0


class SpanEvent(OTLPModel):
    time_unix_nano: Int64 = 0
    name: str = ""
    attributes: List[KeyValue] = Field(default_factory=list)
    dropped_attributes_count: int = 0


class SpanLink(OTLPModel):
    trace_id: TraceId = ""
    span_id: SpanId = ""
    trace_state: str = ""
    attributes: List[KeyValue] = Field(default_factory=list)
    dropped_attributes_count: int = 0
    flags: int = 0


class Span(OTLPModel):
    """A single span. Trace and span ids are kept as hex strings."""

    trace_id: TraceId = ""
    span_id: SpanId = ""
    trace_state: str = ""
    parent_span_id: SpanId = ""
    flags: int = 0
    name: str = ""
    kind: SpanKindField = 0
    start_time_unix_nano: Int64 = 0
    end_time_unix_nano: Int64 = 0
    attributes: List[KeyValue] = Field(default_factory=list)
    dropped_attributes_count: int = 0
    events: List[SpanEvent] = Field(default_factory=list)
    dropped_events_count: int = 0
    links: List[SpanLink] = Field(default_factory=list)
    dropped_links_count: int = 0
    status: Status = Field(default_factory=Status)


class ScopeSpans(OTLPModel):
    scope: InstrumentationScope = Field(default_factory=InstrumentationScope)
    spans: List[Span] = Field(default_factory=list)
    schema_url: str = ""


class ResourceSpans(OTLPModel):
    resource: Resource = Field(default_factory=Resource)
    scope_spans: List[ScopeSpans] = Field(default_factory=list)
    schema_url: str = ""


class TracesData(OTLPModel):
    resource_spans: List[ResourceSpans] = Field(default_factory=list)
