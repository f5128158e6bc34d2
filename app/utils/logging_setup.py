from __future__ import annotations

import logging

from app.config import load_config


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once, using logging.level from config by default."""
    global _configured
    if _configured:
        return

    if level is None:
        level = (load_config().get("logging") or {}).get("level", "INFO")

    logging.basicConfig(level=str(level).upper(), format=LOG_FORMAT)
    # SQL echo is far too chatty at INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    _configured = True
