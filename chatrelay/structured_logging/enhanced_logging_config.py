"""
Enhanced structlog-based logging configuration for the ChatRelay server.

This module wires structlog on top of the standard library logging handlers so
that every module can emit structured key/value events, with per-connection
context carried through contextvars.
"""

import json
import logging
import os
import re
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog
from structlog.contextvars import (
    bind_contextvars,
    clear_contextvars,
    merge_contextvars,
)
from structlog.stdlib import BoundLogger, LoggerFactory

_LOGGING_INITIALIZED = False
_LOGGING_SIGNATURE: str | None = None

VALID_ENVIRONMENTS = ["local", "unit_test", "e2e_test", "production"]

_ANSI_ESCAPE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")
_SIZE_UNITS = {"KB": 1024, "MB": 1024**2, "GB": 1024**3}


def detect_environment() -> str:
    """
    Detect the current environment.

    Returns:
        Environment name: "unit_test" under pytest, otherwise the value of
        CHATRELAY_ENV or LOGGING_ENVIRONMENT when valid, else "local".
    """
    if "pytest" in sys.modules or "pytest" in sys.argv[0]:
        return "unit_test"

    env = os.getenv("CHATRELAY_ENV")
    if env and env in VALID_ENVIRONMENTS:
        return env

    logging_env = os.getenv("LOGGING_ENVIRONMENT", "")
    if logging_env in VALID_ENVIRONMENTS:
        return logging_env

    return "local"


def _resolve_log_base(log_base: str) -> Path:
    """Resolve log_base relative to the project root (where pyproject.toml lives)."""
    log_path = Path(log_base)
    if log_path.is_absolute():
        return log_path

    current_dir = Path.cwd()
    for parent in [current_dir] + list(current_dir.parents):
        if (parent / "pyproject.toml").exists():
            return parent / log_path
    return current_dir / log_path


def parse_size(value: str | int) -> int:
    """
    Parse a human size such as "10MB" into bytes.

    Plain integers (or digit strings) are taken as a byte count.
    """
    if isinstance(value, int):
        return value
    text = value.strip().upper()
    for suffix, multiplier in _SIZE_UNITS.items():
        if text.endswith(suffix):
            return int(float(text[: -len(suffix)]) * multiplier)
    if text.endswith("B"):
        text = text[:-1]
    return int(text)


def _strip_ansi_renderer(bound_logger: Any, name: str, event_dict: dict[str, Any]) -> str:
    """Render key/value output with ANSI escape sequences removed."""
    formatted = structlog.processors.KeyValueRenderer(key_order=["timestamp", "level", "event"])(
        bound_logger, name, event_dict
    )
    return _ANSI_ESCAPE.sub("", formatted)


def configure_enhanced_structlog(
    environment: str | None = None,
    log_level: str = "INFO",
    log_config: dict[str, Any] | None = None,
) -> None:
    """
    Configure structlog processors, renderer and stdlib handlers.

    Args:
        environment: Environment name (auto-detected if None)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_config: Logging configuration dictionary
    """
    if environment is None:
        environment = detect_environment()
    log_config = log_config or {}

    base_processors = [
        merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: Any
    if log_config.get("format") == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = _strip_ansi_renderer

    _setup_stdlib_handlers(environment, log_config, log_level)

    structlog.configure(
        processors=base_processors + [renderer],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=BoundLogger,
        cache_logger_on_first_use=False,
    )


def _setup_stdlib_handlers(environment: str, log_config: dict[str, Any], log_level: str) -> None:
    """Attach console and rotating file handlers to the root logger."""
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger.setLevel(level)

    formatter = logging.Formatter("%(message)s")
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_config.get("disable_logging", False):
        return

    env_log_dir = _resolve_log_base(log_config.get("log_base", "logs")) / environment
    try:
        env_log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        # Console logging still works; only the file handler is skipped.
        structlog.get_logger(__name__).warning(
            "Failed to create log directory", directory=str(env_log_dir), error=str(e)
        )
        return

    rotation = log_config.get("rotation", {})
    file_handler = RotatingFileHandler(
        env_log_dir / "chatrelay.log",
        maxBytes=parse_size(rotation.get("max_size", "10MB")),
        backupCount=int(rotation.get("backup_count", 5)),
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)


def setup_enhanced_logging(config: dict[str, Any], *, force_reconfigure: bool = False) -> None:
    """
    Set up logging from the server configuration dictionary.

    Args:
        config: Server configuration dictionary (see AppConfig.to_legacy_dict)
        force_reconfigure: When True, tear down existing handlers before reconfiguring
    """
    global _LOGGING_INITIALIZED  # pylint: disable=global-statement
    global _LOGGING_SIGNATURE  # pylint: disable=global-statement

    config_signature = json.dumps(config, sort_keys=True, default=str)

    if _LOGGING_INITIALIZED and not force_reconfigure:
        get_logger("chatrelay.logging.setup").debug(
            "setup_enhanced_logging skipped; logging system already initialized",
            config_signature=_LOGGING_SIGNATURE,
        )
        return

    logging_config = config.get("logging", {})
    environment = logging_config.get("environment", detect_environment())
    log_level = logging_config.get("level", "INFO")

    configure_enhanced_structlog(environment, log_level, logging_config)
    _configure_uvicorn_logging()

    get_logger("chatrelay.logging.enhanced").info(
        "Enhanced logging system initialized",
        environment=environment,
        log_level=log_level,
        log_base=logging_config.get("log_base", "logs"),
        file_logging=not logging_config.get("disable_logging", False),
    )

    _LOGGING_INITIALIZED = True
    _LOGGING_SIGNATURE = config_signature


def _configure_uvicorn_logging() -> None:
    """Route uvicorn's loggers through the root handlers."""
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = []
        uvicorn_logger.propagate = True


def bind_session_context(session_id: int | str | None = None, **kwargs: Any) -> None:
    """
    Bind connection context so subsequent log entries include it.

    Args:
        session_id: Relay session identifier, if assigned
        **kwargs: Additional context variables (None values are dropped)
    """
    context_vars = {"session_id": session_id, **kwargs}
    bind_contextvars(**{k: v for k, v in context_vars.items() if v is not None})


def clear_session_context() -> None:
    """Clear the current connection context from logging."""
    clear_contextvars()


def get_logger(name: str) -> BoundLogger:
    """
    Get a structlog logger with the specified name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)
