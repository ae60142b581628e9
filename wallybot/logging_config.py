"""
Structured logging for WallyBot.

Everything goes through stdlib ``logging`` rendered by structlog: a console
handler on stdout, plus rotating JSON files in production so that errors
survive container restarts.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

import structlog

from .config import Settings, settings as default_settings

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5
NOISY_LOGGERS = ("uvicorn.access", "httpcore", "httpx")


def _shared_processors() -> List[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _formatter(renderer: structlog.types.Processor, pre_chain: List[structlog.types.Processor]) -> logging.Formatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )


def _file_handlers(log_dir: str, formatter: logging.Formatter) -> List[logging.Handler]:
    path = Path(log_dir)
    path.mkdir(parents=True, exist_ok=True)

    errors = RotatingFileHandler(
        path / "error.log", maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS, encoding="utf-8"
    )
    errors.setLevel(logging.ERROR)
    combined = RotatingFileHandler(
        path / "combined.log", maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS, encoding="utf-8"
    )

    for handler in (errors, combined):
        handler.setFormatter(formatter)
    return [errors, combined]


def setup_logging(log_level: Optional[str] = None, settings: Optional[Settings] = None) -> None:
    """Configure structlog and the root logger.

    Args:
        log_level: Override the level (default: ``settings.effective_log_level``)
        settings: Settings to read level, environment and log directory from
    """
    settings = settings or default_settings
    level = getattr(logging, (log_level or settings.effective_log_level).upper(), logging.INFO)

    pre_chain = _shared_processors()
    if settings.is_production:
        pre_chain.append(structlog.processors.format_exc_info)
        json_formatter = _formatter(structlog.processors.JSONRenderer(), pre_chain)
        handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
        handlers[0].setFormatter(json_formatter)
        handlers.extend(_file_handlers(settings.log_dir, json_formatter))
    else:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(_formatter(structlog.dev.ConsoleRenderer(), pre_chain))
        handlers = [console]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
