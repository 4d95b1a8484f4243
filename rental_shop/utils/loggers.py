import logging
import os

from ..constants import LOG_LEVEL_ENV_VAR

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def get_logger(name="rental_shop", level=None):
    """
    Console logger for the app. Module loggers (``rental_shop.*``) propagate
    here, so configuring the package logger once covers services and repos.
    Level comes from the argument, else $RENTAL_SHOP_LOG_LEVEL, else INFO.
    """
    logger = logging.getLogger(name)
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV_VAR, "INFO").upper()
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)
    return logger
