"""Core error types shared across Subatomic."""

from subatomic.core.errors import (
    ConfigurationError,
    DuplicateKey,
    ExhaustedRetries,
    PermanentHTTPError,
    ResourceConflict,
    ResourceNotFound,
    RunTimeout,
    StepFailed,
    SubatomicError,
    TransportError,
    UnknownKey,
    describe_failure,
    format_error_message,
)

__all__ = [
    "ConfigurationError",
    "DuplicateKey",
    "ExhaustedRetries",
    "PermanentHTTPError",
    "ResourceConflict",
    "ResourceNotFound",
    "RunTimeout",
    "StepFailed",
    "SubatomicError",
    "TransportError",
    "UnknownKey",
    "describe_failure",
    "format_error_message",
]
