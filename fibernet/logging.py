"""Logging setup for processes embedding the fiber engine."""

from __future__ import annotations

import logging

from fibernet.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for the host process.

    The engine modules only create module loggers; the application decides
    where records go. ``level`` overrides ``settings.log_level``.
    """
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format=LOG_FORMAT,
    )
    logging.getLogger("fibernet").setLevel((level or settings.log_level).upper())
