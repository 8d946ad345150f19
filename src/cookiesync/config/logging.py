"""Logging setup for the command line entry points."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(*, level: int | str = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger once.

    ``level`` accepts either a numeric level or a level name such as ``"debug"``.
    Pass ``force=True`` to replace handlers installed by an earlier call (tests,
    ``--verbose`` re-configuration).
    """

    if isinstance(level, str):
        resolved = logging.getLevelNamesMapping().get(level.strip().upper())
        if resolved is None:
            raise ValueError(f"Unknown log level: {level}")
        level = resolved

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S", force=force)
