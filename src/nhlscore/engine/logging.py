"""Logging helpers for the rating and scoring engine."""

from __future__ import annotations

import logging
from typing import Iterable


def configure_logging(
    level: int | str = logging.INFO, handlers: Iterable[logging.Handler] | None = None
) -> None:
    """Configure root logging for command line and embedded use.

    Engine modules log through ``logging.getLogger(__name__)``; calculations
    are traced at DEBUG and clamped inputs are reported at WARNING. Hosts can
    call this helper to get a consistent format.
    """

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=list(handlers) if handlers else None,
    )
