"""Structured logging for build runs."""

from buildgate.observability.logging import (
    LoggingConfig,
    StructuredLoggingHandle,
    configure_structlog,
    correlation_scope,
    default_log_redactor,
    get_correlation_context,
    get_logger,
    new_run_id,
    setup_logging,
    setup_structured_logging,
    shutdown_logging,
)

__all__ = [
    "LoggingConfig",
    "StructuredLoggingHandle",
    "configure_structlog",
    "correlation_scope",
    "default_log_redactor",
    "get_correlation_context",
    "get_logger",
    "new_run_id",
    "setup_logging",
    "setup_structured_logging",
    "shutdown_logging",
]
