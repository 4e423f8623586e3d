import logging

from app.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger once for the whole application."""
    global _configured
    resolved = (level or settings.LOG_LEVEL or "INFO").strip().upper()
    numeric_level = getattr(logging, resolved, logging.INFO)

    if _configured:
        logging.getLogger().setLevel(numeric_level)
        return

    logging.basicConfig(level=numeric_level, format=LOG_FORMAT)
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    _configured = True
