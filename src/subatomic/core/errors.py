"""
Unified error types for Subatomic provisioning.

Every error raised by the provisioning core derives from SubatomicError,
which carries a message plus structured details for logging and can render
itself as the chat text shown to the team.

Taxonomy:
- TransportError: the external platform could not be reached or refused a call
- ExhaustedRetries: a retried action never reported success
- ConfigurationError: the platform returned something semantically invalid,
  or the bot itself is misconfigured
- DuplicateKey / UnknownKey: task list programming errors
- RunTimeout: a run exceeded its deadline
- StepFailed: raised by the orchestrator after a run aborts
"""

from __future__ import annotations

import re
from typing import Any

import httpx
import structlog

logger = structlog.get_logger()

_TRAILING_PUNCTUATION = re.compile(r"[.,/#!$%^&*;:{}=\-_`~()]$")

SERVICE_DOWN_MESSAGE = "❗Unexpected failure. An external service dependency appears to be down."
UNHANDLED_MESSAGE = (
    "❗Unhandled exception occurred. Please alert your system admin to check "
    "the logs and correct the issue accordingly."
)


class SubatomicError(Exception):
    """Base exception for Subatomic errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def user_message(self, docs_url: str | None = None) -> str:
        """Chat text for this error, with an FAQ pointer when docs are configured."""
        text = f"❗{self.message}"
        if not _TRAILING_PUNCTUATION.search(text):
            text += "."
        if docs_url:
            text += f" Consulting the <{docs_url.rstrip('/')}/FAQ|FAQ> may be useful."
        return text


class TransportError(SubatomicError):
    """Raised when a call to an external platform fails."""


class PermanentHTTPError(TransportError):
    """HTTP errors that should not be retried."""

    def __init__(self, message: str, status_code: int, details: dict[str, Any] | None = None):
        super().__init__(message, details)
        self.status_code = status_code


class ResourceNotFound(PermanentHTTPError):
    """The platform reported that a resource does not exist (HTTP 404)."""


class ResourceConflict(PermanentHTTPError):
    """The platform reported that a resource already exists (HTTP 409)."""


class ExhaustedRetries(SubatomicError):
    """Raised when a retried action never reports success."""

    def __init__(self, message: str, attempts: int, last_result: Any = None):
        super().__init__(message, {"attempts": attempts})
        self.attempts = attempts
        self.last_result = last_result


class ConfigurationError(SubatomicError):
    """Raised for invalid configuration or semantically invalid platform responses."""


class DuplicateKey(SubatomicError):
    """Raised when a task key is registered twice on one task list."""


class UnknownKey(SubatomicError):
    """Raised when a status update names a task that was never added."""


class RunTimeout(SubatomicError):
    """Raised when a provisioning run exceeds its deadline."""


class StepFailed(SubatomicError):
    """Raised by the orchestrator once a run has been aborted."""

    def __init__(self, step_number: int, step_key: str, error: BaseException):
        super().__init__(
            f"Step {step_number} ({step_key}) failed: {error}",
            {"step": step_number, "step_key": step_key, "error_type": type(error).__name__},
        )
        self.step_number = step_number
        self.step_key = step_key
        self.error = error


def format_error_message(error: SubatomicError) -> str:
    """Format an error message for logs and operator output."""
    msg = error.message
    if error.details:
        detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
        msg = f"{msg} ({detail_str})"
    return msg


def describe_failure(error: BaseException, docs_url: str | None = None) -> str:
    """Map any failure to the message shown in the team channel."""
    cause = error.error if isinstance(error, StepFailed) else error

    if isinstance(cause, (httpx.ConnectError, ConnectionRefusedError)) or isinstance(
        cause.__cause__, (httpx.ConnectError, ConnectionRefusedError)
    ):
        logger.error("external_service_down", error=str(cause))
        return SERVICE_DOWN_MESSAGE
    if isinstance(cause, SubatomicError):
        logger.error("provisioning_error", error_type=type(cause).__name__, message=cause.message)
        return cause.user_message(docs_url)

    logger.error("unhandled_error", error_type=type(cause).__name__, error=str(cause))
    return UNHANDLED_MESSAGE
