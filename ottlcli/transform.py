"""Orchestration of one transform run: resolve, compile, dispatch, serialize."""

import logging
from dataclasses import dataclass
from typing import Optional

from ottlcli.classifier import classify, reparse
from ottlcli.context import ContextType, resolve_override
from ottlcli.dispatch import apply
from ottlcli.errors import OverrideError
from ottlcli.ottl import compile_statement

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransformRequest:
    """Everything a single run needs.

    Attributes:
        statement: The OTTL statement text.
        data: The OTLP/JSON input document.
        context: Optional context override; empty means auto-detect.
        indent: Indent for pretty output; ``None`` gives compact JSON.
    """

    statement: str
    data: bytes
    context: str = ""
    indent: Optional[int] = None


def _resolve(request: TransformRequest):
    if request.context != "":
        context_type = resolve_override(request.context)
        if context_type is ContextType.UNKNOWN:
            raise OverrideError(
                f"invalid context: {request.context} "
                f"(valid: {', '.join(ContextType.valid_names())})"
            )
        logger.debug(f"Using context override: {context_type}")
        return context_type, reparse(request.data, context_type)
    return classify(request.data)


def run(request: TransformRequest) -> bytes:
    """Apply the statement to every record of the input and serialize it.

    Raises:
        TransformError: a categorised subclass for any failure; no output is
            produced in that case.
    """
    context_type, document = _resolve(request)
    program = compile_statement(request.statement, context_type)
    apply(context_type, document, program)
    return document.marshal(indent=request.indent)


def transform(
    statement: str, data: bytes, context: str = "", indent: Optional[int] = None
) -> bytes:
    return run(TransformRequest(statement, data, context, indent))
