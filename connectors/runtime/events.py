"""
Runtime event bus for connector -> orchestrator progress reporting.

Design rules:
- CLI-agnostic: no Rich / printing here.
- Safe default: if no emitter is configured, events are ignored.

Typical usage inside a connector:
  from connectors.runtime.events import emit

  emit("progress", "Reading file", stream="orders.csv")
  emit("count", "Rows written", stream="orders.csv", count=1000)
"""
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, Optional

EventEmitter = Callable[["RuntimeEvent"], None]

_EMITTER: Optional[EventEmitter] = None


@dataclass(frozen=True)
class RuntimeEvent:
    type: str
    message: str
    connector: Optional[str] = None
    stream: Optional[str] = None
    count: Optional[int] = None
    level: str = "info"  # info|warn|error|debug
    ts: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    fields: Dict[str, Any] = field(default_factory=dict)


def set_emitter(fn: Optional[EventEmitter]) -> None:
    """Install a process-wide event emitter (None removes it)."""
    global _EMITTER
    _EMITTER = fn


@contextmanager
def emitter(fn: EventEmitter) -> Iterator[None]:
    """Install `fn` for the duration of a block, restoring the previous emitter."""
    global _EMITTER
    previous = _EMITTER
    _EMITTER = fn
    try:
        yield
    finally:
        _EMITTER = previous


def emit(
    event_type: str,
    message: str,
    *,
    connector: Optional[str] = None,
    stream: Optional[str] = None,
    count: Optional[int] = None,
    level: str = "info",
    **fields: Any,
) -> None:
    fn = _EMITTER
    if fn is None:
        return

    try:
        fn(
            RuntimeEvent(
                type=str(event_type),
                message=str(message),
                connector=connector,
                stream=stream,
                count=count,
                level=str(level),
                fields=fields or {},
            )
        )
    except Exception:
        # Never allow progress reporting to crash a connector run.
        return
