from connectors.runtime.events import RuntimeEvent
from orchestrator import diagnostics, machine_identity
from orchestrator.config import Settings
from orchestrator.errors import FerryError, InternalFault, OperationCancelled
from orchestrator.ui import format_event_line, render_error_panel

from conftest import make_invocation, make_pipeline


def test_disabled_pipeline_skips_machine_identity(context, monkeypatch):
    def boom(*a, **k):
        raise AssertionError("machine id must not be resolved")

    monkeypatch.setattr(machine_identity, "resolve", boom)
    pipeline = diagnostics.build_pipeline(Settings(telemetry_enabled=False), context)

    assert pipeline.reporter.sink is None
    assert pipeline.emitter.machine_id == ""


def test_enabled_pipeline_uses_project_identity(context):
    pipeline = diagnostics.build_pipeline(Settings(version="1.0.0", project_id="repo-1"), context)
    assert pipeline.emitter.machine_id == machine_identity.hash_project_id("repo-1")
    assert pipeline.reporter.machine_id == pipeline.emitter.machine_id


def test_on_error_keeps_existing_context_error(context, session, sink, settings):
    pipeline = make_pipeline(context, session, sink)
    inv = make_invocation(lambda *a, **k: None, settings)
    context.set("error", "first failure")

    pipeline.on_error(inv, FerryError("second failure"))

    assert context.get("error") == "first failure"
    assert len(session.posts) == 1


def test_flush_failure_is_contained(context, session, settings):
    class Broken:
        def send(self, event):
            pass

        def flush(self, timeout):
            raise RuntimeError("no transport")

    make_pipeline(context, session, Broken()).flush(1.0)


def test_error_panels():
    assert "Cancelled" in str(render_error_panel(OperationCancelled()).renderable)
    try:
        raise ValueError("bad")
    except ValueError as e:
        fault = InternalFault.capture(e)
    assert "Internal error" in str(render_error_panel(fault).renderable)
    assert "fatal" in str(render_error_panel(FerryError("x")).renderable)


def test_format_event_line():
    ev = RuntimeEvent(type="count", message="rows written", stream="orders.csv", count=1000,
                      fields={"path": "/data/orders.csv"})
    assert format_event_line(ev) == "[orders.csv] rows written  path=/data/orders.csv  count=1000"
