import logging
import sys
from typing import Optional

from workhub.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)-4s [%(name)s] : %(message)s"


def setup_logging(level: Optional[str] = None) -> None:
    """Configure the root logger to write to stdout"""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    root_logger = logging.getLogger()
    root_logger.setLevel((level or settings.LOG_LEVEL).upper())
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    # SQL echo is noisy at INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
