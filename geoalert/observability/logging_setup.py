"""
loguru setup for GeoAlert.

Every module logs through a named, bound logger. Alert and ingest context
(``kind``, ``alert_id``, ``user_id``) travels in ``extra`` and is appended
to the console line whenever it is present.
"""

from __future__ import annotations
import inspect
import logging
import sys
from loguru import logger

CONTEXT_KEYS = ("kind", "alert_id", "user_id")

STDLIB_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error", "aiosqlite", "aiomqtt", "asyncio")

BASE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level:<7}</level> | "
    "<cyan>{extra[name]}</cyan> | "
    "<level>{message}</level>"
)

class InterceptHandler(logging.Handler):
    """Forward stdlib records to loguru under the stdlib logger's name."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # skip logging's own frames so loguru reports the real caller
        frame, depth = inspect.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.bind(name=record.name).opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage())

def format_record(record) -> str:
    """Console template: base line plus whichever context keys are bound."""
    extra = record["extra"]
    fmt = BASE_FORMAT
    context = [f"{key}={{extra[{key}]}}" for key in CONTEXT_KEYS if extra.get(key) is not None]
    if context:
        fmt += " <dim>[" + " ".join(context) + "]</dim>"
    return fmt + "\n{exception}"

def _route_stdlib_logging() -> None:
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in STDLIB_LOGGERS:
        std = logging.getLogger(name)
        std.handlers = [InterceptHandler()]
        std.propagate = False

def setup_logging(log_level: str = "INFO") -> None:
    """Single colorized console sink; stdlib logging is routed into loguru."""
    logger.remove()
    logger.configure(extra={"name": "geoalert"})
    logger.add(
        sys.stdout,
        format=format_record,
        colorize=True,
        backtrace=True,
        diagnose=False,
        level=log_level.upper(),
    )
    _route_stdlib_logging()

def get_logger(name: str = "geoalert", **ctx):
    """Logger bound to ``name`` and any extra context."""
    return logger.bind(name=name, **ctx)

def with_context(**ctx):
    """Bind context to every log call inside the block, None values dropped."""
    return logger.contextualize(**{k: v for k, v in ctx.items() if v is not None})
