"""Error types for fatcat-cli.

Every error raised by the client derives from ``FatcatCliError``. Errors are
raised where they happen and propagate untouched to the command-line
boundary; intermediate layers only attach context (operation name, entity
specifier) through :meth:`FatcatCliError.add_context`, so the original error
type survives for callers that branch on it.
"""

from __future__ import annotations

from typing import Any, List, Optional


class FatcatCliError(Exception):
    """Base exception for all fatcat-cli errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
        self.context: List[str] = []

    def add_context(self, context: str) -> "FatcatCliError":
        """Attach an outer annotation and return self for re-raising."""
        self.context.append(context)
        return self

    def chain(self) -> List[str]:
        """Annotations from outermost to innermost, ending with the message."""
        return list(reversed(self.context)) + [self.message]

    def __str__(self) -> str:
        return ": ".join(self.chain())


# ---------------------------------------------------------------------------
# Grammar errors
# ---------------------------------------------------------------------------


class ParseError(FatcatCliError):
    """Input text does not match the specifier or mutation grammar."""

    pass


class InvalidSpecifier(ParseError):
    def __init__(self, raw: str, reason: Optional[str] = None):
        super().__init__(
            reason
            or f"expecting a specifier: entity identifier or key/value lookup: {raw}"
        )
        self.raw = raw


class InvalidMutation(ParseError):
    def __init__(self, raw_token: str):
        super().__init__(f"not a field mutation: {raw_token}")
        self.raw_token = raw_token


class InvalidEntityKind(ParseError):
    def __init__(self, raw: str):
        super().__init__(f"invalid entity type: {raw}")
        self.raw = raw


# ---------------------------------------------------------------------------
# Remote API errors
# ---------------------------------------------------------------------------


class ResolutionError(FatcatCliError):
    """A lookup or fetch could not locate the requested entity."""

    pass


class NotFoundError(ResolutionError):
    def __init__(self, specifier: Any, message: str = ""):
        super().__init__(f"Not Found: {message}" if message else f"Not Found: {specifier}")
        self.specifier = specifier

    @property
    def kind(self):
        return getattr(self.specifier, "kind", None)


class TransportError(FatcatCliError):
    """Network or connection failure, or an unreadable response body."""

    pass


class ServerValidationError(FatcatCliError):
    """The remote API rejected the request as a bad request."""

    def __init__(self, error: str, message: str):
        super().__init__(f"Bad Request ({error}): {message}")
        self.error = error
        self.server_message = message


class AuthError(FatcatCliError):
    """Not-authorized, forbidden, or an unreadable auth token."""

    pass


class UnsupportedOperation(FatcatCliError):
    """The entity kind does not support the requested operation."""

    pass


class UnexpectedResponse(FatcatCliError):
    """The remote API answered with a response tag the caller does not handle."""

    def __init__(self, operation: str, response: Any):
        super().__init__(f"{operation}: unexpected response {response!r}")
        self.operation = operation
        self.response = response


# ---------------------------------------------------------------------------
# Entity model errors
# ---------------------------------------------------------------------------


class EntityModelError(FatcatCliError):
    """Error mutating or identifying an entity record."""

    pass


class UnknownField(EntityModelError):
    def __init__(self, kind: Any, field: str):
        super().__init__(f"setting field {field} on a {getattr(kind, 'value', kind)} is not supported")
        self.kind = kind
        self.field = field


class InvalidFieldValue(EntityModelError):
    def __init__(self, kind: Any, field: str, value: Optional[str]):
        super().__init__(
            f"invalid value for {getattr(kind, 'value', kind)} field {field}: {value!r}"
        )
        self.kind = kind
        self.field = field
        self.value = value


class MissingIdentity(EntityModelError):
    """identify() was called on a record that was never fetched or created."""

    def __init__(self, kind: Any):
        super().__init__(f"expected full {getattr(kind, 'value', kind)} entity with identifier")
        self.kind = kind


# ---------------------------------------------------------------------------
# Local workflow errors
# ---------------------------------------------------------------------------


class EditorError(FatcatCliError):
    """The external editor exited with a non-success status."""

    pass


class ConfigurationError(FatcatCliError):
    """Required configuration (auth token, editgroup, editor) is missing."""

    pass
