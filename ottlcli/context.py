"""Context types a transformation statement can be scoped to."""

from enum import Enum


class ContextType(str, Enum):
    """Telemetry shape a statement runs against."""

    UNKNOWN = "unknown"
    SPAN = "span"
    LOG = "log"
    METRIC = "metric"
    DATAPOINT = "datapoint"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def valid_names(cls) -> list[str]:
        return [c.value for c in cls if c is not cls.UNKNOWN]


def resolve_override(name: str) -> ContextType:
    """Map a user supplied context name to a context type.

    Matching is case-insensitive. Anything that is not one of the valid names,
    including the empty string, resolves to ``ContextType.UNKNOWN``.
    """
    try:
        context_type = ContextType(name.lower())
    except ValueError:
        return ContextType.UNKNOWN
    return context_type
