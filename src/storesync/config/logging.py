"""Root logger setup for the storesync command line."""

from __future__ import annotations

import logging

# Library loggers kept at WARNING unless debug output was asked for.
_LIBRARY_LOGGERS = ("asyncio", "sqlalchemy")


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Log to stderr as ``date time LEVEL [logger] message``.

    ``force=True`` replaces handlers installed earlier (pytest, a host
    application). SQL statement echo is switched separately through
    ``STORESYNC_SQL_ECHO``.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=force,
    )
    library_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in _LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)
