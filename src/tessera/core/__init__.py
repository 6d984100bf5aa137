"""Cross-cutting primitives: errors, logging, settings, dialects, protocols.

Modules
-------
errors      Typed error hierarchy (DriverError, ConfigError, ...)
logging     structlog configuration + get_logger
settings    pydantic-settings TesseraSettings
dialect     SQL fragments per backend
protocols   Connection / Cursor structural protocols
"""

from tessera.core.dialect import Dialect, get_dialect, register_dialect
from tessera.core.errors import (
    ConfigError,
    ConnectionNotFoundError,
    DriverError,
    ErrorCategory,
    ErrorContext,
    MissingConfigError,
    TesseraError,
    ValidationError,
)
from tessera.core.logging import LogContext, configure_logging, get_logger
from tessera.core.protocols import Connection, Cursor

__all__ = [
    "Dialect",
    "get_dialect",
    "register_dialect",
    "ConfigError",
    "ConnectionNotFoundError",
    "DriverError",
    "ErrorCategory",
    "ErrorContext",
    "MissingConfigError",
    "TesseraError",
    "ValidationError",
    "LogContext",
    "configure_logging",
    "get_logger",
    "Connection",
    "Cursor",
]
