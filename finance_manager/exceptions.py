"""Error types raised by the finance manager.

Every failure is scoped to the single user action that triggered it:

* :class:`ValidationError` - bad input, rejected before any store call
* :class:`ConfigurationError` - a required table or credential is missing
* :class:`RemoteCallError` - the hosted document store reported a failure
"""

from __future__ import annotations


class FinanceError(Exception):
    """Base class for all finance manager errors."""


class ValidationError(FinanceError, ValueError):
    """Raised when user input fails validation."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class ConfigurationError(FinanceError):
    """Raised when an operation needs configuration that is absent."""


class RemoteCallError(FinanceError):
    """Raised when a call to the document store fails.

    The original exception (when there is one) is kept on ``cause`` and its
    message is carried in ``str(error)`` so it can be shown to the user.
    """

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause
