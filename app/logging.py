import logging

from app.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_configured = False


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once per process.

    Modules log through ``logging.getLogger(__name__)``; this only decides
    where records go and at which level.
    """
    global _configured
    if _configured:
        return
    logging.basicConfig(
        level=(level or settings.log_level),
        format=LOG_FORMAT,
    )
    # SQL echo is noisy at INFO.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    _configured = True
