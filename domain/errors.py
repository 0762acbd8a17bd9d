"""Error types raised by the portal services.

Views catch these at the boundary and turn them into user-facing messages
(`st.error`). Services never swallow them.
"""
from typing import Optional


class PortalError(Exception):
    """Base class for every failure the portal reports to the user."""


class AuthError(PortalError):
    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code

    def __str__(self):
        return f"{self.args[0]} ({self.code})"


class StoreError(PortalError):
    """A read or write against the document store failed."""


class ProfileError(PortalError, ValueError):
    pass


class ExamValidationError(PortalError, ValueError):
    """Exam form input rejected before any write."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class RegistrationError(PortalError, ValueError):
    pass


class DuplicateRegistrationError(RegistrationError):
    pass
