"""Error taxonomy for createkit.

Every failure that reaches the user carries an ``ErrorCode``.  The code (not
the exception type) decides the process exit status, so scripting callers can
tell validation problems apart from filesystem or path-traversal failures.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Machine-readable error categories."""

    PROJECT_DETECTION_FAILED = "PROJECT_DETECTION_FAILED"
    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"
    TEMPLATE_INVALID = "TEMPLATE_INVALID"
    TEMPLATE_FETCH_FAILED = "TEMPLATE_FETCH_FAILED"
    TEMPLATE_RENDER_ERROR = "TEMPLATE_RENDER_ERROR"
    TEMPLATE_METADATA_INVALID = "TEMPLATE_METADATA_INVALID"
    FILE_SYSTEM_ERROR = "FILE_SYSTEM_ERROR"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    INVALID_PROJECT_NAME = "INVALID_PROJECT_NAME"
    PATH_TRAVERSAL_ATTEMPT = "PATH_TRAVERSAL_ATTEMPT"
    DIRECTORY_EXISTS = "DIRECTORY_EXISTS"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    COMMAND_FAILED = "COMMAND_FAILED"
    AI_PROVIDER_UNAVAILABLE = "AI_PROVIDER_UNAVAILABLE"
    AI_REQUEST_FAILED = "AI_REQUEST_FAILED"
    AI_RESPONSE_INVALID = "AI_RESPONSE_INVALID"
    AI_TIMEOUT = "AI_TIMEOUT"


EXIT_CODES: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_FAILED: 2,
    ErrorCode.INVALID_PROJECT_NAME: 2,
    ErrorCode.FILE_SYSTEM_ERROR: 3,
    ErrorCode.DIRECTORY_EXISTS: 3,
    ErrorCode.PERMISSION_DENIED: 4,
    ErrorCode.PATH_TRAVERSAL_ATTEMPT: 5,
    ErrorCode.TEMPLATE_NOT_FOUND: 6,
    ErrorCode.TEMPLATE_INVALID: 6,
    ErrorCode.TEMPLATE_FETCH_FAILED: 6,
    ErrorCode.TEMPLATE_RENDER_ERROR: 6,
    ErrorCode.TEMPLATE_METADATA_INVALID: 6,
    ErrorCode.PROJECT_DETECTION_FAILED: 7,
}


class CreateError(Exception):
    """Raised (or carried inside an ``Err``) when a createkit operation fails.

    Attributes:
        code: The error category.
        message: Short human-readable description.
        details: Individual violations, when a check collects more than one.
        context: Extra values useful in verbose output.
        recovery_error: A second failure that happened while trying to
            recover from this one (for example a failed backup restore).
            Kept separate so both can be reported.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: list[str] | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or []
        self.context = context or {}
        self.recovery_error: CreateError | None = None
        super().__init__(message)

    def __repr__(self) -> str:
        return f"CreateError({self.code.value}, {self.message!r})"


def exit_code_for(code: ErrorCode) -> int:
    """Map an error code to a process exit status (``1`` for anything generic)."""
    return EXIT_CODES.get(code, 1)


def to_create_error(exc: BaseException, code: ErrorCode = ErrorCode.COMMAND_FAILED) -> CreateError:
    """Coerce an arbitrary exception into a ``CreateError``.

    ``PermissionError`` maps to ``PERMISSION_DENIED`` and any other ``OSError``
    to ``FILE_SYSTEM_ERROR``; everything else gets *code*.
    """
    if isinstance(exc, CreateError):
        return exc
    if isinstance(exc, PermissionError):
        return CreateError(ErrorCode.PERMISSION_DENIED, f"Permission denied: {exc}")
    if isinstance(exc, OSError):
        return CreateError(ErrorCode.FILE_SYSTEM_ERROR, f"File system error: {exc}")
    return CreateError(code, str(exc) or exc.__class__.__name__)


def user_friendly_message(error: CreateError, verbose: bool = False) -> str:
    """Render *error* for the terminal.

    Collected details are listed under the message; verbose mode also
    appends the error code.
    """
    headline = f"{error.message} [{error.code.value}]" if verbose else error.message
    lines = [headline]
    lines.extend(f"  - {detail}" for detail in error.details)
    return "\n".join(lines)
