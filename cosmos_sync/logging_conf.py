"""Logging configuration built around structlog JSON logging."""

from __future__ import annotations

import logging
import logging.config
import os
from pathlib import Path
from typing import Iterable

import structlog

_LOGGING_INITIALISED = False


def default_log_dir() -> Path:
    env_home = os.environ.get("COSMOS_SYNC_HOME")
    if env_home:
        return Path(env_home).expanduser().resolve() / "logs"
    return Path(__file__).resolve().parents[1] / "logs"


def configure_logging(verbose: bool = False) -> structlog.BoundLogger:
    """Configure structlog + stdlib handlers and return application logger."""

    global _LOGGING_INITIALISED
    log_dir = default_log_dir()
    error_log = log_dir / "error.log"
    sync_log = log_dir / "sync.log"
    domains_dir = log_dir / "domains"
    domains_dir.mkdir(parents=True, exist_ok=True)
    error_log.touch(exist_ok=True)
    sync_log.touch(exist_ok=True)

    if not _LOGGING_INITIALISED:
        level = "DEBUG" if verbose else "INFO"
        logging.config.dictConfig(
            {
                "version": 1,
                "disable_existing_loggers": False,
                "formatters": {
                    "plain": {
                        "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                        "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
                    }
                },
                "handlers": {
                    "console": {
                        "class": "logging.StreamHandler",
                        "level": level,
                        "formatter": "plain",
                    },
                    "sync_file": {
                        "class": "logging.FileHandler",
                        "level": "INFO",
                        "filename": str(sync_log),
                        "formatter": "plain",
                    },
                    "error_file": {
                        "class": "logging.FileHandler",
                        "level": "ERROR",
                        "filename": str(error_log),
                        "formatter": "plain",
                    },
                },
                "loggers": {
                    "cosmos_sync": {
                        "handlers": ["console", "sync_file", "error_file"],
                        "level": level,
                        "propagate": False,
                    },
                },
            }
        )

        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_INITIALISED = True
    return structlog.get_logger("cosmos_sync")


def component_logger(name: str) -> structlog.BoundLogger:
    """Return a logger bound to one component.

    Loggers are named ``cosmos_sync.<name>`` so they inherit the global
    handlers; nothing is configured until :func:`configure_logging` runs.
    """

    return structlog.get_logger(f"cosmos_sync.{name}").bind(component=name)


def domain_logger(domain: str, verbose: bool = False) -> structlog.BoundLogger:
    """Return a logger bound to a sync domain and ensure its file handler exists."""

    configure_logging(verbose)
    domain_log_path = default_log_dir() / "domains" / f"{domain}.log"
    domain_log_path.parent.mkdir(parents=True, exist_ok=True)

    logger_name = f"cosmos_sync.domain.{domain}"
    py_logger = logging.getLogger(logger_name)
    if not any(
        isinstance(handler, logging.FileHandler) and handler.baseFilename == str(domain_log_path)
        for handler in py_logger.handlers
    ):
        file_handler = logging.FileHandler(domain_log_path, encoding="utf-8")
        global_logger = logging.getLogger("cosmos_sync")
        if global_logger.handlers:
            file_handler.setFormatter(global_logger.handlers[0].formatter)
        file_handler.setLevel(logging.INFO)
        py_logger.addHandler(file_handler)

    return structlog.get_logger(logger_name).bind(domain=domain)


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    """Return the last N lines from a log file."""

    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        lines = stream.readlines()
    return lines[-line_count:]


def available_domain_logs() -> Iterable[Path]:
    """Yield available per-domain log file paths."""

    domains_dir = default_log_dir() / "domains"
    if not domains_dir.exists():
        return []
    return sorted(p for p in domains_dir.glob("*.log"))


__all__ = [
    "available_domain_logs",
    "component_logger",
    "configure_logging",
    "default_log_dir",
    "domain_logger",
    "tail_log",
]
