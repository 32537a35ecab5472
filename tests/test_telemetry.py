import json

from connectors.runtime.context import TelemetryContext
from orchestrator.invocation import CommandKind, Invocation
from orchestrator.telemetry import TelemetryEmitter

from conftest import FakeSession


def _emitter(context, session, **kw):
    opts = dict(enabled=True, version="1.2.3", machine_id="mid-1", context=context,
                endpoint="https://collector.test/api/event", package="docker", session=session)
    opts.update(kw)
    return TelemetryEmitter(**opts)


def _bound(emitter, command="conns", sub_command="set"):
    emitter.bind(Invocation(command=command, sub_command=sub_command,
                            kind=CommandKind.CONNECTION_MANAGEMENT, handler=lambda *a, **k: None))
    return emitter


def test_static_properties(context, session):
    event = _emitter(context, session).track("run")

    props = event.properties
    assert props["application"] == "ferry-cli"
    assert props["version"] == "1.2.3"
    assert props["package"] == "docker"
    assert props["user_id"] == "mid-1"
    assert "/" in props["os"]
    assert isinstance(props["emit_time"], int)


def test_merge_order_context_then_props_then_command(context, session):
    context.set("run_mode", "task")
    context.set("version", "from-context")
    context.set("command", "from-context")
    emitter = _bound(_emitter(context, session))

    event = emitter.track("conns_set", {"run_mode": "from-props", "command": "from-props"})

    props = event.properties
    assert props["version"] == "from-context"
    assert props["run_mode"] == "from-props"
    assert props["command"] == "conns"
    assert props["sub-command"] == "set"


def test_sub_command_absent_when_not_given(context, session):
    emitter = _bound(_emitter(context, session), command="run", sub_command=None)
    assert "sub-command" not in emitter.track("run").properties


def test_only_first_props_mapping_is_used(context, session):
    event = _emitter(context, session).track("run", {"a": 1}, {"b": 2})
    assert event.properties["a"] == 1
    assert "b" not in event.properties


def test_disabled_is_a_no_op(context, session):
    assert _emitter(context, session, enabled=False).track("run") is None
    assert session.posts == []


def test_dev_version_is_a_no_op(context, session):
    assert _emitter(context, session, version="dev").track("run") is None
    assert session.posts == []


def test_post_payload_and_headers(context, session):
    _emitter(context, session).track("run")

    assert len(session.posts) == 1
    sent = session.posts[0]
    assert sent["url"] == "https://collector.test/api/event"
    assert sent["timeout"] == 5.0
    assert sent["headers"]["Content-Type"] == "application/json"
    assert sent["headers"]["User-Agent"].startswith("ferry-cli/1.2.3 (")
    assert sent["headers"]["User-Agent"].endswith(") mid-1")

    body = json.loads(sent["data"])
    assert body["name"] == "run"
    assert body["referrer"] == "http://docker"
    assert body["url"].startswith("http")
    assert json.loads(body["props"])["user_id"] == "mid-1"


def test_delivery_failure_is_swallowed(context):
    failing = FakeSession(fail=True)
    event = _emitter(context, failing).track("run")

    assert event is not None
    assert len(failing.posts) == 1


def test_no_endpoint_builds_without_posting(context, session):
    event = _emitter(context, session, endpoint="").track("run")
    assert event.name == "run"
    assert session.posts == []


def test_context_is_snapshotted_at_emit_time(session):
    ctx = TelemetryContext()
    emitter = _emitter(ctx, session)
    ctx.set("stage", "1")
    first = emitter.track("run")
    ctx.set("stage", "2")
    assert first.properties["stage"] == "1"


def test_identity_cannot_be_overridden(context, session):
    context.set("user_id", "from-context")
    emitter = _bound(_emitter(context, session, machine_id="real-mid"))

    event = emitter.track("conns_set", {"user_id": "from-caller", "sub-command": "from-caller"})

    assert event.properties["user_id"] == "real-mid"
    assert event.properties["sub-command"] == "set"
    assert json.loads(json.loads(session.posts[0]["data"])["props"])["user_id"] == "real-mid"


def test_caller_still_overrides_static_properties(context, session):
    event = _emitter(context, session).track("run", {"os": "custom/os", "version": "9.9.9"})
    assert event.properties["os"] == "custom/os"
    assert event.properties["version"] == "9.9.9"
