# sitebudget/logger.py
import logging
from logging.handlers import RotatingFileHandler
import os

LOG_DIR = os.getenv("LOG_DIR", "logs")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

ROOT_LOGGER = "sitebudget"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"


def _rotating(filename: str, level: int, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        os.path.join(LOG_DIR, filename),
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _configure_root() -> logging.Logger:
    '''
    Handlers live on the "sitebudget" logger only; module loggers propagate to it.
    sitebudget.log gets everything, errors.log only rejected operations and failures.
    '''
    root = logging.getLogger(ROOT_LOGGER)
    if root.handlers:
        return root

    root.setLevel(LOG_LEVEL)
    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    os.makedirs(LOG_DIR, exist_ok=True)
    root.addHandler(_rotating("sitebudget.log", logging.DEBUG, formatter))
    root.addHandler(_rotating("errors.log", logging.WARNING, formatter))
    return root


def get_logger(name: str) -> logging.Logger:
    """
    :param name: usually __name__; names outside the package are nested under "sitebudget"
    """
    _configure_root()
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
