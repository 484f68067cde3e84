import sys
from pathlib import Path
from contextvars import ContextVar
from typing import Optional
from loguru import logger
from infrastructure.config import settings

# Trace id of the request being handled; "system" outside of a request
_trace_id: ContextVar[str] = ContextVar("trace_id", default="system")

LOG_DIR = Path(settings.LOG_DIR)


class LogConfig:
    """Global logging configuration using Loguru."""

    @classmethod
    def setup_logging(cls, level: Optional[str] = None):
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        logger.remove()

        logger.add(
            sys.stdout,
            enqueue=True,
            backtrace=True,
            diagnose=settings.DEBUG,
            format=(
                "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{extra[name]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
                "<magenta>Trace:{extra[trace_id]}</magenta> - <level>{message}</level>"
            ),
            level=level or settings.LOG_LEVEL,
        )

        logger.add(
            LOG_DIR / "parking_{time:YYYY-MM-DD}.log",
            rotation="00:00",
            retention="30 days",
            compression="zip",
            enqueue=True,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[name]}:{function}:{line} | Trace:{extra[trace_id]} - {message}",
            level="DEBUG",
        )

        logger.add(
            LOG_DIR / "error_{time:YYYY-MM-DD}.log",
            level="ERROR",
            rotation="100 MB",
            enqueue=True,
        )

        logger.configure(extra={"name": "app", "trace_id": "system"}, patcher=_inject_trace_id)


def _inject_trace_id(record) -> None:
    record["extra"]["trace_id"] = _trace_id.get()


def set_trace_id(trace_id: str):
    """Bind trace_id to the current context; returns the token for reset_trace_id."""
    return _trace_id.set(trace_id)


def reset_trace_id(token) -> None:
    _trace_id.reset(token)


def get_logger(name: str = "app"):
    """Get a logger bound to name; trace_id is filled in per record."""
    return logger.bind(name=name)
