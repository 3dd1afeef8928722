"""
Logging configuration for the daemon.
"""
import logging
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(debug: bool = False, stream=None) -> logging.Logger:
    """
    Sets up the ``nerdctld`` logger hierarchy with a single stderr handler.

    :param debug: Log CLI invocations and request details when True.
    :param stream: Output stream, stderr by default.
    :return: The package root logger.
    """
    logger = logging.getLogger("nerdctld")
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)
    return logger
