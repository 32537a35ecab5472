"""
Runtime package: connector protocol + helpers.

Exports:
- Protocol types: Connector, ConnectorCapabilities, ReadSelection, ReadResult
- Run primitives: TelemetryContext, CancelToken, OperationCancelled
- Loader: load
"""
from __future__ import annotations

from .context import CancelToken, TelemetryContext
from .errors import ConnectorNotFound, FerryError, OperationCancelled
from .loader import load
from .protocol import Connector, ConnectorCapabilities, ReadResult, ReadSelection

__all__ = [
    "CancelToken",
    "Connector",
    "ConnectorCapabilities",
    "ConnectorNotFound",
    "FerryError",
    "OperationCancelled",
    "ReadResult",
    "ReadSelection",
    "TelemetryContext",
    "load",
]
