import logging
import sys


logger = logging.getLogger("ottlcli")


def configure_logging(debug: bool):
    """
    Configures the logging system based on the debug flag.

    Log output goes to stderr; stdout carries the transformed telemetry.
    """
    handler = logging.StreamHandler(sys.stderr)
    formatter = logging.Formatter("%(message)s")
    handler.setFormatter(formatter)

    log_level = logging.DEBUG if debug else logging.INFO
    logger.setLevel(log_level)

    # rebind to the current stderr, which changes between CLI invocations
    for existing in [h for h in logger.handlers if h.get_name() == "ottlcli"]:
        logger.removeHandler(existing)
    handler.set_name("ottlcli")
    logger.addHandler(handler)
