# marketplace/utils/logging.py
import logging
import sys

from marketplace.utils.settings import LOG_LEVEL

_FORMAT = (
    '{"time": "%(asctime)s", "service": "%(name)s", "level": "%(levelname)s", '
    '"message": "%(message)s", "module": "%(module)s", "lineno": %(lineno)d}'
)


def get_logger(name: str) -> logging.Logger:
    """Logger z jednym handlerem na stderr, format jednolinijkowy."""
    logger = logging.getLogger(name)

    # nie dokladamy handlera drugi raz przy ponownym imporcie modulu
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False

    logger.setLevel(LOG_LEVEL)
    return logger
