"""
Connector packages (`connectors/<type>/`) plus the runtime they share.

Callers outside this package only need:
  from connectors import CancelToken, ReadSelection, TelemetryContext, load
"""
from __future__ import annotations

from connectors.runtime import (  # noqa: F401
    CancelToken,
    Connector,
    ReadResult,
    ReadSelection,
    TelemetryContext,
    load,
)

__all__ = ["CancelToken", "Connector", "ReadResult", "ReadSelection", "TelemetryContext", "load"]
