"""Shared fixtures: recording fakes for the HTTP session and the report sink."""

from __future__ import annotations

import argparse
from typing import Any, Dict, List, Optional

import pytest
import requests

from connectors.runtime.context import TelemetryContext
from orchestrator import machine_identity
from orchestrator.config import Settings
from orchestrator.diagnostics import DiagnosticsPipeline
from orchestrator.error_reports import ErrorReporter
from orchestrator.invocation import CommandKind, Invocation
from orchestrator.telemetry import TelemetryEmitter


class FakeResponse:
    status_code = 200
    text = "ok"


class FakeSession:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.posts: List[Dict[str, Any]] = []

    def post(self, url, data=None, headers=None, timeout=None):
        self.posts.append({"url": url, "data": data, "headers": headers, "timeout": timeout})
        if self.fail:
            raise requests.ConnectionError("collector unreachable")
        return FakeResponse()


class FakeSink:
    def __init__(self) -> None:
        self.events: List[Any] = []
        self.flushes: List[float] = []

    def send(self, event) -> None:
        self.events.append(event)

    def flush(self, timeout: float) -> None:
        self.flushes.append(timeout)


@pytest.fixture(autouse=True)
def _fresh_machine_id():
    machine_identity.reset()
    yield
    machine_identity.reset()


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def sink() -> FakeSink:
    return FakeSink()


@pytest.fixture
def context() -> TelemetryContext:
    return TelemetryContext()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(version="1.2.3", home_dir=str(tmp_path / "home"), show_progress=False)


def make_pipeline(
    context: TelemetryContext,
    session: FakeSession,
    sink: Optional[FakeSink],
    *,
    enabled: bool = True,
    version: str = "1.2.3",
) -> DiagnosticsPipeline:
    emitter = TelemetryEmitter(
        enabled=enabled,
        version=version,
        machine_id="mid-123",
        context=context,
        endpoint="https://collector.test/api/event",
        session=session,
    )
    reporter = ErrorReporter(enabled=enabled, machine_id="mid-123", package="pip", sink=sink)
    return DiagnosticsPipeline(emitter, reporter, context)


def make_invocation(handler, settings: Settings, *, command: str = "run", sub_command=None, kind=None) -> Invocation:
    return Invocation(
        command=command,
        sub_command=sub_command,
        kind=kind or CommandKind.DATA_MOVEMENT,
        handler=handler,
        args=argparse.Namespace(),
        settings=settings,
    )
