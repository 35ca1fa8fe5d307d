import logging
import sys

from app.config import settings


def setup_logging():
    """Configure root logging once for the API process and for alembic runs."""
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
