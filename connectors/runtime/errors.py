from __future__ import annotations

from typing import Optional


class FerryError(Exception):
    """
    Structured failure returned by a command or connector.

    `debug` optionally carries a longer description (underlying cause, hints)
    that error reports prefer over the short message shown to the user.
    """

    def __init__(self, message: str, debug: Optional[str] = None) -> None:
        super().__init__(message)
        self.debug = debug


class ConnectorNotFound(FerryError):
    """No connector module exists for the requested type."""


class OperationCancelled(FerryError):
    """Raised by a command that observed a cancellation request."""

    def __init__(self, message: str = "operation cancelled") -> None:
        super().__init__(message)
