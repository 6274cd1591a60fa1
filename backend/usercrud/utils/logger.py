"""Process-wide logging setup shared by the API and the worker."""

import logging
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(filename)s:%(lineno)d %(message)s"


def resolve_level(env: str, debug: bool) -> int:
    if env == "production":
        return logging.WARNING
    return logging.DEBUG if debug else logging.INFO


def setup_logger(env: str = "dev", log_path: Optional[str] = None, debug: bool = False) -> logging.Logger:
    """Configure the root logger for stdout and, optionally, a log file.

    When `log_path` is given the directory is created and records are
    appended to `<log_path>/app.log` in addition to stdout.
    """
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_path:
        log_dir = Path(log_path)
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_dir / "app.log", encoding="utf-8"))
    logging.basicConfig(level=resolve_level(env, debug), format=LOG_FORMAT, handlers=handlers, force=True)
    logger = logging.getLogger("usercrud")
    if log_path:
        logger.info("logging to stdout and %s", Path(log_path) / "app.log")
    else:
        logger.info("logging to stdout only, set LOG_PATH to also log to a file")
    return logger
