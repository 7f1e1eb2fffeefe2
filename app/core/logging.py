import logging

from app.core.config import settings

_JSON_FORMAT = '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}'


def configure_logging() -> None:
    """Text DEBUG logs in development, JSON lines in production."""
    if settings.env != "production":
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.INFO, format=_JSON_FORMAT)
    # httpx logs every request URL at INFO, which includes OAuth query strings
    logging.getLogger("httpx").setLevel(logging.WARNING)


def mask(value: str | None, keep: int = 6) -> str:
    """Shorten a secret for log output."""
    if not value:
        return "NOT_SET"
    return value[:keep] + "..."
