"""Application logging setup."""

import logging

from backend.app.core.settings import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def configure_logging() -> None:
    """Attach a single stream handler to the ``backend`` logger tree."""
    global _configured
    if _configured:
        return
    settings = get_settings()
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger("backend")
    root.addHandler(handler)
    root.setLevel(getattr(logging, settings.log_level, logging.INFO))
    _configured = True
