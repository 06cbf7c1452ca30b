# parafort/core/logging.py
from __future__ import annotations

import logging

_FORMAT = "%(asctime)s level=%(levelname)s logger=%(name)s msg=%(message)s"


def configure_logging(log_level: str = "INFO") -> None:
    """
    Install one stream handler on the root logger (idempotent).
    Module loggers use the 'parafort.*' namespace and lazy %-formatting.
    """
    root = logging.getLogger()
    root.setLevel(log_level)
    if any(getattr(h, "_parafort", False) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler._parafort = True  # type: ignore[attr-defined]
    root.addHandler(handler)
