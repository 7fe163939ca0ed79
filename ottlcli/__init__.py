"""Apply OTTL statements to OTLP/JSON telemetry."""

__version__ = "0.1.0"
