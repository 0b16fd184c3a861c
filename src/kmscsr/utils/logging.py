import logging
import os
import sys

from ..config import LOG_LEVELS

DEFAULT_LOG_LEVEL = "INFO"


def env_log_level() -> str:
    """KMS_CSR_LOG_LEVEL if it names a logging level, else INFO."""
    level = os.getenv("KMS_CSR_LOG_LEVEL", DEFAULT_LOG_LEVEL).strip().upper()
    return level if level in LOG_LEVELS else DEFAULT_LOG_LEVEL


def get_logger():
    logger = logging.getLogger("kmscsr")
    if not logger.handlers:
        h = logging.StreamHandler(sys.stdout)
        fmt = logging.Formatter("[%(asctime)s] %(levelname)s %(message)s")
        h.setFormatter(fmt)
        logger.addHandler(h)
        logger.setLevel(env_log_level())
    return logger
