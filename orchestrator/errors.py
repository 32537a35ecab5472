from __future__ import annotations

import traceback
from concurrent.futures import CancelledError
from typing import Optional

from connectors.runtime.errors import ConnectorNotFound, FerryError, OperationCancelled

__all__ = [
    "ConnectorNotFound",
    "FerryError",
    "InternalFault",
    "OperationCancelled",
    "error_string",
    "is_cancellation",
]


class InternalFault(FerryError):
    """An unexpected exception caught at the top of the command worker."""

    def __init__(self, original: BaseException, stack: str) -> None:
        summary = f"panic occurred! {original!r}"
        super().__init__(summary, debug=f"{summary}\n{stack}")
        self.original = original
        self.stack = stack

    @classmethod
    def capture(cls, original: BaseException) -> "InternalFault":
        stack = "".join(traceback.format_exception(type(original), original, original.__traceback__))
        fault = cls(original, stack)
        fault.__cause__ = original
        return fault


def error_string(err: Optional[BaseException]) -> str:
    if err is None:
        return ""
    debug = getattr(err, "debug", None)
    return str(debug) if debug else str(err)


def is_cancellation(err: Optional[BaseException]) -> bool:
    """True when `err` or anything it was raised from is a cancellation."""
    seen = set()
    while err is not None and id(err) not in seen:
        if isinstance(err, (OperationCancelled, CancelledError)):
            return True
        seen.add(id(err))
        err = err.__cause__ or err.__context__
    return False
