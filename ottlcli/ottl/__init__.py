"""A subset of the OpenTelemetry Transformation Language (OTTL)."""

from ottlcli.ottl.compiler import CompiledStatement, compile_statement
from ottlcli.ottl.contexts import (
    DataPointContext,
    LogContext,
    MetricContext,
    SpanContext,
    TransformContext,
    context_paths,
)
from ottlcli.ottl.functions import CONVERTERS, EDITORS

__all__ = [
    "CONVERTERS",
    "CompiledStatement",
    "DataPointContext",
    "EDITORS",
    "LogContext",
    "MetricContext",
    "SpanContext",
    "TransformContext",
    "compile_statement",
    "context_paths",
]
