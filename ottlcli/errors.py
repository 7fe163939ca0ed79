"""Error taxonomy for a transform run.

Every failure of a run surfaces as a subclass of :class:`TransformError`.
The ``category`` attribute lets callers tell the cases apart without
parsing messages.
"""

from dataclasses import dataclass
from typing import Optional


class TransformError(Exception):
    """Base class for all errors raised while transforming telemetry."""

    category = "transform"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class DetectionError(TransformError):
    """The input matches no supported telemetry shape, or only empty ones."""

    category = "detection"


class OverrideError(TransformError):
    """The context override is unknown, or the input does not parse under it."""

    category = "override"


class CompileError(TransformError):
    """The statement is empty or not valid for the resolved context."""

    category = "compile"

    def __init__(
        self,
        message: str,
        statement: Optional[str] = None,
        position: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.statement = statement
        self.position = position


@dataclass(frozen=True)
class ExecutionLocation:
    """Where in the resource/scope/record tree an execution failed."""

    resource: int
    scope: int
    record: int
    metric_type: Optional[str] = None
    datapoint: Optional[int] = None

    def __str__(self) -> str:
        parts = [
            f"resource {self.resource}",
            f"scope {self.scope}",
            f"record {self.record}",
        ]
        if self.metric_type is not None:
            parts.append(f"{self.metric_type} datapoint {self.datapoint}")
        return ", ".join(parts)


class ExecutionError(TransformError):
    """A compiled statement failed against one record."""

    category = "execution"

    def __init__(
        self, message: str, location: Optional[ExecutionLocation] = None
    ) -> None:
        super().__init__(message)
        self.location = location

    def __str__(self) -> str:
        if self.location is None:
            return self.message
        return f"{self.message} (at {self.location})"


class InputError(TransformError):
    """Reading the statement or the input document failed."""

    category = "io"
