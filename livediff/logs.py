from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, List, Optional, Union

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
PACKAGE_LOGGERS = ("livediff", "livediff_rpc", "livediff_plugins")


def build_handler(log_path: Optional[Union[str, Path]] = None) -> logging.Handler:
    """Rotating file handler when ``log_path`` is given, stderr otherwise."""
    if log_path is not None:
        destination = Path(log_path)
        destination.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = RotatingFileHandler(
            destination,
            maxBytes=1_000_000,
            backupCount=3,
            encoding="utf-8",
        )
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


def build_logger(
    name: str,
    *,
    log_path: Optional[Union[str, Path]] = None,
    level: Union[int, str] = logging.INFO,
    handler: Optional[logging.Handler] = None,
) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(_level(level))
    logger.propagate = False
    close_logger(logger)
    logger.addHandler(handler or build_handler(log_path))
    return logger


def configure_logging(
    *,
    log_path: Optional[Union[str, Path]] = None,
    level: Union[int, str] = logging.INFO,
    names: Iterable[str] = PACKAGE_LOGGERS,
) -> List[logging.Logger]:
    """Route every package logger through one shared handler."""
    handler = build_handler(log_path)
    return [build_logger(name, level=level, handler=handler) for name in names]


def close_logger(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        try:
            handler.flush()
            handler.close()
        finally:
            logger.removeHandler(handler)


def _level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO
