"""
The error taxonomy shared by the parser, the executor and the CLI.

Every failure the shell can surface is a subclass of `ShellError`, so callers
dispatch on type instead of inspecting error names or messages.
"""

from typing import Any, Optional


class ShellError(Exception):
    """Base class for every error the shell reports to the user."""

    kind = "ShellError"

    def __init__(self, message: str, payload: Any = None):
        super().__init__(message)
        self.message = message
        # The decoded diagnostic body returned by the service, if any.
        self.payload = payload

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class IncompleteInput(ShellError):
    """Not a failure: the statement is truncated and needs more input."""

    kind = "IncompleteInput"

    def __init__(self, message: str = "Statement is incomplete."):
        super().__init__(message)


class QuerySyntaxError(ShellError):
    """The input is malformed and cannot be completed by appending text."""

    kind = "SyntaxError"

    def __init__(
        self, message: str, line: Optional[int] = None, column: Optional[int] = None
    ):
        super().__init__(message)
        self.line = line
        self.column = column


class EvaluationError(ShellError):
    """A statement could not be turned into a query, or failed unexpectedly."""

    kind = "EvaluationError"


class ServiceError(ShellError):
    """The remote service rejected the statement."""

    kind = "ServiceError"

    def __init__(
        self,
        message: str,
        payload: Any = None,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
    ):
        super().__init__(message, payload)
        self.status_code = status_code
        self.code = code

    @classmethod
    def from_response(cls, status_code: int, payload: Any) -> "ServiceError":
        """Builds the error from an HTTP status and its decoded JSON body."""
        code = None
        message = f"Request failed with HTTP status {status_code}."
        errors = payload.get("errors") if isinstance(payload, dict) else None
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            first = errors[0]
            code = first.get("code")
            message = first.get("description") or code or message
        return cls(message, payload=payload, status_code=status_code, code=code)


class TransportError(ShellError):
    """The connection to the service failed before a response was received."""

    kind = "TransportError"


class ScopeNotFoundError(ShellError):
    """The requested database scope does not exist. Fatal at startup."""

    kind = "ScopeNotFoundError"


class ConfigError(ShellError):
    """The connection options are missing or invalid. Fatal at startup."""

    kind = "ConfigError"
