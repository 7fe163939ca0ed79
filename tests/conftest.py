import io
import logging
from pathlib import Path

import pytest


@pytest.fixture
def capture_logs():
    """Fixture to capture log output during tests."""
    log_stream = io.StringIO()
    handler = logging.StreamHandler(log_stream)
    logger = logging.getLogger("ottlcli")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)

    yield log_stream

    logger.removeHandler(handler)
    log_stream.close()


@pytest.fixture(scope="session")
def otlp_dir() -> Path:
    """Directory holding the OTLP/JSON fixtures."""
    return Path(__file__).parent / "data" / "otlp"


@pytest.fixture
def load_otlp(otlp_dir):
    """Return the raw bytes of an OTLP/JSON fixture by file name."""

    def load(name: str) -> bytes:
        return (otlp_dir / name).read_bytes()

    return load


@pytest.fixture
def traces_json(load_otlp) -> bytes:
    return load_otlp("traces.json")


@pytest.fixture
def logs_json(load_otlp) -> bytes:
    return load_otlp("logs.json")


@pytest.fixture
def metrics_json(load_otlp) -> bytes:
    return load_otlp("metrics.json")
