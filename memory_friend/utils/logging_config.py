"""
Logging setup for Memory Friend.

The root handler is configured once on package import; module loggers hang off
the 'memory_friend' logger so the app level can be changed without touching
library loggers.
"""

import logging
import sys
from typing import Optional, TextIO

from .config import AppConfig

APP_LOGGER = 'memory_friend'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Third-party loggers that flood debug output with wire traffic
QUIET_LOGGERS = ('botocore', 'boto3', 'urllib3', 'httpx', 'httpcore')


def _level(config: Optional[AppConfig]) -> int:
    if config is None:
        from .config import config
    return getattr(logging, config.log_level.upper(), logging.INFO)


def setup_logging(config: Optional[AppConfig] = None, stream: Optional[TextIO] = None) -> None:
    """
    Configure the root handler and the application logger level.

    Args:
        config: AppConfig instance, uses default if None
        stream: Output stream, stdout if None
    """
    level = _level(config)
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=[logging.StreamHandler(stream or sys.stdout)])
    logging.getLogger(APP_LOGGER).setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """Logger for a module, e.g. get_logger(__name__)."""
    if name != APP_LOGGER and not name.startswith(APP_LOGGER + '.'):
        name = f'{APP_LOGGER}.{name}'
    return logging.getLogger(name)
