import logging
import os
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import Optional

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
HANDLER_NAMES = ("insight_file", "insight_stream")
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def build_handlers(log_path: str, console_level: int = logging.INFO) -> list[logging.Handler]:
    formatter = logging.Formatter(LOG_FORMAT, "%H:%M:%S")

    to_file = RotatingFileHandler(log_path, maxBytes=5_000_000, backupCount=3, encoding="utf-8")
    to_file.setLevel(logging.DEBUG)
    to_console = logging.StreamHandler()
    to_console.setLevel(console_level)

    for name, handler in zip(HANDLER_NAMES, (to_file, to_console)):
        handler.setFormatter(formatter)
        handler.name = name
    return [to_file, to_console]


def _install(logger: logging.Logger, handlers: list[logging.Handler]) -> None:
    for stale in [h for h in logger.handlers if h.name in HANDLER_NAMES]:
        logger.removeHandler(stale)
        stale.close()
    for handler in handlers:
        logger.addHandler(handler)


def configure_logging(logs_dir: Optional[str] = None, console_level: int = logging.INFO) -> str:
    """Log to ``logs_dir/server_<timestamp>.log`` (rotating) and to stderr.

    Safe to call once per app instance: only handlers installed here are
    replaced, anything else attached to the root logger stays.
    """
    logs_dir = logs_dir or os.path.join(os.getcwd(), "logs")
    os.makedirs(logs_dir, exist_ok=True)
    log_path = os.path.join(logs_dir, f"server_{datetime.now():%Y-%m-%d_%H-%M-%S}.log")
    handlers = build_handlers(log_path, console_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    _install(root_logger, handlers)

    # uvicorn configures its own loggers; route them through the same handlers.
    for name in SERVER_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.setLevel(logging.INFO)
        _install(server_logger, handlers)
        server_logger.propagate = False

    root_logger.info("Logging initialized: %s", log_path)
    return log_path
