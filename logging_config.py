"""
Logging setup for the API process.

Modules log through `logging.getLogger(__name__)`; this only installs the root
handler and level once.
"""

from __future__ import annotations

import logging

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.setLevel(level)

    # Idempotent: uvicorn --reload imports the app more than once
    if any(getattr(h, "_storefront_handler", False) for h in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler._storefront_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)


__all__ = ["configure_logging"]
