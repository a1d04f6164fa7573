"""Logging setup for the command line entry point."""

import logging


def configure_logging(level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger with a terse format on stderr."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
