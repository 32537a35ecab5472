from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .context import CancelToken


@dataclass(frozen=True)
class ConnectorCapabilities:
    """
    Capability flags the orchestrator can use to adjust behaviour.

    discover: can list the streams available behind a connection
    incremental: honours append/incremental modes instead of overwriting
    targets: connection types this connector can load into
    """
    discover: bool = False
    incremental: bool = False
    targets: tuple = ("file",)


@dataclass(frozen=True)
class ReadSelection:
    """
    Orchestrator-to-connector read intent.

    streams: source streams to move (tables, file paths...)
    mode: target load mode (full-refresh, append, incremental...)
    limit: optional maximum number of records to move
    options: free-form source/target options supplied on the command line
    """
    streams: List[str] = field(default_factory=list)
    mode: str = "full-refresh"
    limit: Optional[int] = None
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ReadResult:
    """
    Connector-to-orchestrator result.

    report_text: human readable summary shown after the run
    stats: machine-readable counters recorded as the run's task stats
    """
    report_text: str = ""
    stats: Optional[Dict[str, Any]] = None

    def __post_init__(self) -> None:
        if self.stats is None:
            object.__setattr__(self, "stats", {})


class Connector:
    """
    Minimal connector interface.

    - check(creds) -> str
    - discover(creds, pattern) -> list of stream names
    - read(creds, schema, selection, state, cancel) -> ReadResult

    `read` must poll `cancel` between units of work and raise
    OperationCancelled (via cancel.raise_if_cancelled()) once it is set.
    """

    capabilities: ConnectorCapabilities = ConnectorCapabilities()

    def check(self, creds: Dict[str, Any]) -> str:  # pragma: no cover
        raise NotImplementedError

    def discover(self, creds: Dict[str, Any], pattern: Optional[str] = None) -> List[str]:  # pragma: no cover
        raise NotImplementedError

    def read(  # pragma: no cover
        self,
        *,
        creds: Dict[str, Any],
        schema: str,
        selection: ReadSelection,
        state: Dict[str, Any],
        cancel: CancelToken,
    ) -> ReadResult:
        raise NotImplementedError
