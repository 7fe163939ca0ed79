"""
Traversal of a telemetry document, executing a compiled statement once per
leaf record.

Resources, scopes and leaves are visited in document order. The first
failing execution aborts the walk; nothing after it is visited.
"""

import logging
from typing import Callable, Iterable, Optional, Tuple

from ottlcli.context import ContextType
from ottlcli.document import TelemetryDocument
from ottlcli.errors import ExecutionError, ExecutionLocation
from ottlcli.otlp.enums import MetricType
from ottlcli.otlp.metrics import Metric
from ottlcli.ottl.contexts import (
    DataPointContext,
    LogContext,
    MetricContext,
    SpanContext,
    TransformContext,
)

logger = logging.getLogger(__name__)

# (scope list of a resource group, leaf list of a scope group)
_SHAPES = {
    ContextType.SPAN: ("scope_spans", "spans"),
    ContextType.LOG: ("scope_logs", "log_records"),
    ContextType.METRIC: ("scope_metrics", "metrics"),
    ContextType.DATAPOINT: ("scope_metrics", "metrics"),
}

_CONTEXT_FACTORIES = {
    ContextType.SPAN: SpanContext,
    ContextType.LOG: LogContext,
    ContextType.METRIC: MetricContext,
}

_METRIC_TYPE_NAMES = {
    MetricType.GAUGE: "gauge",
    MetricType.SUM: "sum",
    MetricType.HISTOGRAM: "histogram",
    MetricType.EXPONENTIAL_HISTOGRAM: "exponential_histogram",
    MetricType.SUMMARY: "summary",
}


def _execute(program, tctx: TransformContext, location: ExecutionLocation) -> None:
    try:
        program.execute(tctx)
    except Exception as e:
        message = e.message if isinstance(e, ExecutionError) else str(e)
        raise ExecutionError(
            f"failed to execute statement: {message}", location
        ) from e


def _walk(
    document: TelemetryDocument,
    visit: Callable[[object, object, object, ExecutionLocation], int],
) -> int:
    """Call ``visit`` for every leaf, returning the summed execution count."""
    scopes_attr, leaves_attr = _SHAPES[document.context_type]
    count = 0
    for r, resource_group in enumerate(document.resources):
        for s, scope_group in enumerate(getattr(resource_group, scopes_attr)):
            for i, leaf in enumerate(getattr(scope_group, leaves_attr)):
                location = ExecutionLocation(resource=r, scope=s, record=i)
                count += visit(leaf, scope_group, resource_group, location)
    return count


def _leaf_visitor(context_type: ContextType, program):
    factory = _CONTEXT_FACTORIES[context_type]

    def visit(leaf, scope_group, resource_group, location) -> int:
        tctx = factory(
            leaf,
            scope_group.scope,
            resource_group.resource,
            scope_group,
            resource_group,
        )
        _execute(program, tctx, location)
        return 1

    return visit


def datapoints_of(metric: Metric) -> Tuple[Optional[str], Iterable]:
    """The data points of ``metric`` selected by its data type."""
    metric_type = metric.type
    if metric_type is MetricType.NONE:
        return None, ()
    return _METRIC_TYPE_NAMES[metric_type], metric.data.data_points


def _datapoint_visitor(program):
    def visit(metric, scope_group, resource_group, location) -> int:
        type_name, datapoints = datapoints_of(metric)
        count = 0
        for d, datapoint in enumerate(datapoints):
            tctx = DataPointContext(
                datapoint,
                metric,
                scope_group.scope,
                resource_group.resource,
                scope_group,
                resource_group,
            )
            _execute(
                program,
                tctx,
                ExecutionLocation(
                    resource=location.resource,
                    scope=location.scope,
                    record=location.record,
                    metric_type=type_name,
                    datapoint=d,
                ),
            )
            count += 1
        return count

    return visit


def apply(context_type: ContextType, document: TelemetryDocument, program) -> int:
    """Execute ``program`` against every record of ``document`` in place.

    Args:
        context_type: The context the program was compiled for.
        document: The parsed document; mutated in place.
        program: Anything with an ``execute(tctx)`` method.

    Returns:
        The number of executions.

    Raises:
        ExecutionError: for the first failing execution, with its location.
    """
    if context_type is not document.context_type:
        raise ExecutionError(
            f"cannot apply a {context_type} statement to a "
            f"{document.context_type} document"
        )

    if context_type is ContextType.DATAPOINT:
        visit = _datapoint_visitor(program)
    else:
        visit = _leaf_visitor(context_type, program)

    count = _walk(document, visit)
    logger.debug(f"Executed statement {count} time(s) in {context_type} context")
    return count
