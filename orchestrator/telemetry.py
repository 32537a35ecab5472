"""
Anonymous usage events.

One event per finished command, built from static application properties,
the run's TelemetryContext and the invoked command. Delivery is a single
best-effort POST: failures are logged at TRACE and never reach the caller.
"""
from __future__ import annotations

import json
import logging
import platform
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import requests

from connectors.runtime.context import TelemetryContext

from .constants import APP_NAME, DEV_VERSION, EVENTS_PAGE_URL, TELEMETRY_TIMEOUT_S
from .invocation import Invocation
from .logging_setup import TRACE

logger = logging.getLogger(__name__)


def os_label() -> str:
    return f"{platform.system().lower()}/{platform.machine().lower()}"


@dataclass
class UsageEvent:
    name: str
    properties: Dict[str, Any] = field(default_factory=dict)


class TelemetryEmitter:
    def __init__(
        self,
        *,
        enabled: bool,
        version: str,
        machine_id: str,
        context: TelemetryContext,
        endpoint: str = "",
        package: str = "pip",
        session: Optional[requests.Session] = None,
    ) -> None:
        self.enabled = enabled
        self.version = version
        self.machine_id = machine_id
        self.context = context
        self.endpoint = endpoint
        self.package = package
        self.session = session or requests.Session()
        self.invocation: Optional[Invocation] = None

    @property
    def active(self) -> bool:
        return self.enabled and self.version != DEV_VERSION

    def bind(self, invocation: Invocation) -> None:
        self.invocation = invocation

    def build(self, event: str, *props: Mapping[str, Any]) -> UsageEvent:
        properties: Dict[str, Any] = {
            "application": APP_NAME,
            "version": self.version,
            "package": self.package,
            "os": os_label(),
            "emit_time": time.time_ns() // 1000,
            "user_id": self.machine_id,
        }

        properties.update(self.context.snapshot())

        if props:
            properties.update(props[0])

        # identity and command identifiers are never overridden
        properties["user_id"] = self.machine_id
        if self.invocation is not None:
            properties["command"] = self.invocation.command
            if self.invocation.sub_command:
                properties["sub-command"] = self.invocation.sub_command

        return UsageEvent(name=event, properties=properties)

    def track(self, event: str, *props: Mapping[str, Any]) -> Optional[UsageEvent]:
        if not self.active:
            return None

        usage = self.build(event, *props)
        if self.endpoint:
            self._post(usage)
        return usage

    def _post(self, usage: UsageEvent) -> None:
        payload = {
            "name": usage.name,
            "url": EVENTS_PAGE_URL,
            "props": json.dumps(usage.properties, default=str),
            "referrer": f"http://{self.package}",
        }
        headers = {
            "Content-Type": "application/json",
            "User-Agent": f"{APP_NAME}/{self.version} ({platform.system().lower()}) {self.machine_id}",
        }
        try:
            resp = self.session.post(
                self.endpoint,
                data=json.dumps(payload),
                headers=headers,
                timeout=TELEMETRY_TIMEOUT_S,
            )
        except requests.RequestException as e:
            logger.log(TRACE, "post event failed: %s", e)
            return
        logger.log(TRACE, "post event response: %s\n%s", resp.status_code, resp.text)
