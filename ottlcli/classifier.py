"""Detection of the telemetry shape encoded by raw OTLP/JSON input."""

import logging
from typing import Callable, Tuple

from ottlcli.context import ContextType
from ottlcli.document import TelemetryDocument
from ottlcli.errors import DetectionError, OverrideError
from ottlcli.otlp import (
    UnmarshalError,
    unmarshal_logs,
    unmarshal_metrics,
    unmarshal_traces,
)

logger = logging.getLogger(__name__)

# Traces are tried first for backward compatibility
_DETECTION_ORDER: Tuple[Tuple[ContextType, Callable], ...] = (
    (ContextType.SPAN, unmarshal_traces),
    (ContextType.LOG, unmarshal_logs),
    (ContextType.METRIC, unmarshal_metrics),
)

_UNMARSHALERS = {
    ContextType.SPAN: unmarshal_traces,
    ContextType.LOG: unmarshal_logs,
    ContextType.METRIC: unmarshal_metrics,
    ContextType.DATAPOINT: unmarshal_metrics,
}


def classify(data: bytes) -> Tuple[ContextType, TelemetryDocument]:
    """Detect the shape of ``data`` and return it parsed.

    A shape matches when the bytes decode under it and the result holds at
    least one resource. An empty object decodes under every shape and is
    therefore rejected.

    Raises:
        DetectionError: if no shape matches.
    """
    for context_type, unmarshal in _DETECTION_ORDER:
        try:
            payload = unmarshal(data)
        except UnmarshalError as e:
            logger.debug(f"Input is not {context_type} data: {e}")
            continue

        document = TelemetryDocument(context_type, payload)
        if document.resource_count > 0:
            logger.debug(f"Detected {context_type} context")
            return context_type, document
        logger.debug(f"Input decodes as empty {context_type} data, skipping")

    raise DetectionError(
        "unable to detect data type from input: expected non-empty OTLP "
        "traces, logs or metrics JSON"
    )


def reparse(data: bytes, context_type: ContextType) -> TelemetryDocument:
    """Parse ``data`` directly as the shape implied by ``context_type``.

    No emptiness check is applied: an explicit context is authoritative.

    Raises:
        OverrideError: for an unknown context type or undecodable input.
    """
    unmarshal = _UNMARSHALERS.get(context_type)
    if unmarshal is None:
        raise OverrideError(f"unsupported context type: {context_type}")

    try:
        payload = unmarshal(data)
    except UnmarshalError as e:
        raise OverrideError(
            f"failed to parse data with context {context_type}: {e}"
        ) from e

    return TelemetryDocument(context_type, payload)
