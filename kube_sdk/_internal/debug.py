"""Debug logging to stderr."""

import logging
import sys

LOGGER_NAME = "kube_sdk"
DEBUG_PREFIX = "[kube-sdk]"


def enable_debug_logging() -> logging.Handler:
    """Send kube_sdk DEBUG logs to stderr.

    Calling this more than once does not add duplicate handlers.

    Returns:
        The stderr handler attached to the ``kube_sdk`` logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers:
        if getattr(handler, "_kube_sdk_debug", False):
            return handler

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(f"{DEBUG_PREFIX} %(message)s"))
    handler._kube_sdk_debug = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    return handler
