"""
Per-run primitives shared by the orchestrator and connectors.

- TelemetryContext: thread-safe key/value store describing the current run
  (connector types, run mode, serialized task, error text). Written by the
  command while it runs, read by the diagnostics pipeline once it stops or is
  abandoned.
- CancelToken: cancelled once by the orchestrator when the user interrupts;
  connectors poll it at safe checkpoints.
"""
from __future__ import annotations

import threading
from typing import Any, Dict, Iterator, Optional

from .errors import OperationCancelled


class TelemetryContext:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._values: Dict[str, Any] = {}

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._values[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._values.get(key, default)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._values)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)


class CancelToken:
    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until cancelled or `timeout` elapses. Returns the cancelled flag."""
        return self._event.wait(timeout)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled()
