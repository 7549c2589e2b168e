import logging
import os
from typing import List, Set

ROOT_NAMESPACE = "stockroom"

FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured: Set[str] = set()


def _level_from_env() -> int:
    """LOG_LEVEL as a logging level; accepts names ("debug", "WARN") or numbers."""
    raw = (os.environ.get("LOG_LEVEL") or "INFO").strip().upper()
    if raw.isdigit():
        return int(raw)
    if raw == "WARN":
        raw = "WARNING"
    level = logging.getLevelName(raw)
    return level if isinstance(level, int) else logging.INFO


def _build_handlers(level: int) -> List[logging.Handler]:
    formatter = logging.Formatter(fmt=FORMAT, datefmt=DATE_FORMAT)
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    log_file = os.environ.get("LOG_FILE")
    if log_file:
        try:
            handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
        except OSError as exc:
            logging.getLogger(ROOT_NAMESPACE).warning(f"LOG_FILE {log_file!r} unusable ({exc}); console only")
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def get_logger(name: str) -> logging.Logger:
    """Return the ``stockroom.<name>`` logger, wiring console/file output on first use.

    LOG_LEVEL (default INFO) and LOG_FILE are read once per logger name.
    """
    qualified = f"{ROOT_NAMESPACE}.{name}"
    logger = logging.getLogger(qualified)
    if qualified in _configured:
        return logger

    level = _level_from_env()
    logger.setLevel(level)
    for handler in _build_handlers(level):
        logger.addHandler(handler)
    logger.propagate = False
    _configured.add(qualified)
    return logger
