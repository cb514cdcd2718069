"""
Logging configuration for ompass2fa.

structlog renders every event and hands the line to the standard library,
so gate events, uvicorn access logs and httpx share the same handlers.
OMPASS secret keys, verification tokens and session cookies are redacted
before rendering.
"""

from __future__ import annotations

import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
from structlog.types import FilteringBoundLogger

from .config import LoggingConfig, get_settings

REDACTED = "[REDACTED]"

SENSITIVE_KEYS = frozenset({
    "authorization", "cookie", "set-cookie", "password",
    "secret", "secret_key", "token", "session_id",
})

# Logged at WARNING only; httpx puts the username query parameter in its INFO lines
NOISY_LOGGERS = ("httpx", "httpcore")


def setup_logging(config: Optional[LoggingConfig] = None) -> None:
    """
    Configure structlog and the root logger.

    Args:
        config: Logging section. Read from the environment when omitted.
    """
    if config is None:
        config = get_settings().logging

    level = getattr(logging, config.level)

    # No-op when the host already configured the root logger
    logging.basicConfig(level=level, handlers=_build_handlers(config))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    if config.format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            redact_secrets,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _build_handlers(config: LoggingConfig) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if config.file_path:
        path = Path(config.file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))

    formatter = logging.Formatter("%(message)s")
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def _redact(key: str, value: Any) -> Any:
    if key.lower() in SENSITIVE_KEYS:
        return REDACTED
    if isinstance(value, dict):
        return {k: _redact(str(k), v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_redact("", item) for item in value]
    return value


def redact_secrets(
    logger: Any,
    method_name: str,
    event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """structlog processor masking credential-bearing keys at any depth."""
    for key, value in event_dict.items():
        if key != "event":
            event_dict[key] = _redact(key, value)
    return event_dict


def get_logger(name: str = __name__) -> FilteringBoundLogger:
    return structlog.get_logger(name)


def log_auth_event(
    logger: FilteringBoundLogger,
    event_type: str,
    user_id: Optional[str] = None,
    success: bool = True,
    details: Optional[Dict[str, Any]] = None
) -> None:
    """Record a step of the 2FA flow. Failures are logged as warnings."""
    emit = logger.info if success else logger.warning
    emit(
        "OMPASS authentication event",
        event_type=event_type,
        user_id=user_id,
        success=success,
        **(details or {})
    )


def log_api_call(
    logger: FilteringBoundLogger,
    service: str,
    endpoint: str,
    method: str,
    status_code: int,
    duration_ms: float
) -> None:
    emit = logger.warning if status_code >= 400 else logger.info
    emit(
        "OMPASS API call",
        service=service,
        endpoint=endpoint,
        method=method,
        status_code=status_code,
        duration_ms=round(duration_ms, 2)
    )


def log_error(
    logger: FilteringBoundLogger,
    error: Exception,
    context: Optional[Dict[str, Any]] = None,
    user_id: Optional[str] = None
) -> None:
    logger.error(
        "Error occurred",
        error_type=type(error).__name__,
        error_message=str(error),
        user_id=user_id,
        **(context or {}),
        exc_info=error
    )


def log_security_event(
    logger: FilteringBoundLogger,
    event_type: str,
    severity: str,
    client_ip: str,
    details: Optional[Dict[str, Any]] = None
) -> None:
    """Record an access-control decision. High severity is logged as an error."""
    emit = logger.error if severity in ("high", "critical") else logger.warning
    emit(
        "Security event",
        event_type=event_type,
        severity=severity,
        client_ip=client_ip,
        **(details or {})
    )


class LoggerMixin:
    """Adds a ``logger`` property named after the concrete class."""

    @property
    def logger(self) -> FilteringBoundLogger:
        cls = type(self)
        return get_logger(f"{cls.__module__}.{cls.__name__}")


class RequestLoggingContext:
    """
    Times one HTTP exchange and logs its outcome.

    Set ``status_code`` before leaving the block. An exception escaping the
    block is reported as a 500. Server errors are logged as warnings.
    The request id comes from the structlog context variables.
    """

    def __init__(
        self,
        logger: FilteringBoundLogger,
        method: str,
        path: str,
        client_ip: str,
        user_agent: Optional[str] = None
    ):
        self.logger = logger.bind(method=method, path=path)
        self.client_ip = client_ip
        self.user_agent = user_agent
        self.status_code = 200
        self._started: Optional[float] = None

    @property
    def duration_ms(self) -> float:
        if self._started is None:
            return 0.0
        return (time.perf_counter() - self._started) * 1000

    def __enter__(self) -> RequestLoggingContext:
        self._started = time.perf_counter()
        self.logger.debug(
            "Request started",
            client_ip=self.client_ip,
            user_agent=self.user_agent,
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        status_code = 500 if exc_type is not None else self.status_code
        emit = self.logger.warning if status_code >= 500 else self.logger.info
        emit(
            "Request completed",
            status_code=status_code,
            duration_ms=round(self.duration_ms, 2),
        )


setup_logging()
