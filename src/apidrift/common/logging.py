"""Shared logging helpers for apidrift."""

from __future__ import annotations

import logging


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger once, writing to stderr so stdout stays clean for reports.

    Pass ``force=True`` to reconfigure during tests or repeated CLI invocations.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    # httpx logs every request at INFO, including the URL with the API key
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
