"""Logging for the expropriation engines.

Engine modules only ever call ``get_logger``; the hosting process calls
``setup_logger`` once at start (see ``core.deps.configure_logging``).
"""

import logging
import logging.handlers
import os

LOGGER_NAMESPACE = "expropriation"

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"
MAX_LOG_BYTES = 10485760  # 10MB
LOG_BACKUP_COUNT = 5


def setup_logger(
    name: str = LOGGER_NAMESPACE,
    log_dir: str = "/var/log/expropriation",
    level: str = "INFO",
    file_logging: bool = True,
    console_logging: bool = True,
) -> logging.Logger:
    """Attach rotating file and console handlers to a logger.

    Calling it again only updates the level.

    Raises:
        ValueError: If level is not a standard logging level name
    """
    logger = logging.getLogger(name)

    level_value = logging.getLevelName(level.upper())
    if not isinstance(level_value, int):
        raise ValueError(
            f"Invalid log level: {level}. "
            f"Must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL"
        )
    logger.setLevel(level_value)

    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers = []
    if file_logging:
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            os.path.join(log_dir, f"{name}.log"),
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUP_COUNT,
        ))
    if console_logging:
        handlers.append(logging.StreamHandler())

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a component logger under the package namespace, e.g. ``get_logger("workflow")``."""
    if name == LOGGER_NAMESPACE or name.startswith(f"{LOGGER_NAMESPACE}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")
