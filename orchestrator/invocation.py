from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from connectors.runtime.context import CancelToken, TelemetryContext

from .config import Settings


class CommandKind(str, Enum):
    """Decides which error-report layout applies to a command."""

    DATA_MOVEMENT = "data_movement"
    CONNECTION_MANAGEMENT = "connection_management"


Handler = Callable[..., Any]


@dataclass
class Invocation:
    """The command (and optional subcommand) selected on the command line."""

    command: str
    kind: CommandKind
    handler: Handler
    sub_command: Optional[str] = None
    args: argparse.Namespace = field(default_factory=argparse.Namespace)
    settings: Settings = field(default_factory=Settings)

    @property
    def event_name(self) -> str:
        if self.sub_command:
            return f"{self.command}_{self.sub_command}"
        return self.command

    def execute(self, cancel: CancelToken, context: TelemetryContext) -> Any:
        return self.handler(self.args, cancel=cancel, context=context, settings=self.settings)
