"""
Logging configuration.

Log records go to stderr so stdout stays clean for the comparison summary.
"""

import logging
import sys


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """
    Configure the package logger.

    Args:
        verbose: If True, set level to DEBUG
        quiet: If True, set level to WARNING
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)-8s %(name)s: %(message)s"))

    logger = logging.getLogger("instacart_compare")
    logger.setLevel(level)

    # Calling twice must not double every line.
    logger.handlers.clear()
    logger.addHandler(handler)
