import argparse
import json

import pytest

from connectors.runtime.context import CancelToken, TelemetryContext
from orchestrator import app
from orchestrator.config import Settings
from orchestrator.errors import ConnectorNotFound, FerryError
from orchestrator.lifecycle import ExitDecision
from orchestrator.run_task import run_task


def _args(**kw):
    base = dict(src_conn=None, src_stream=None, src_options=None, tgt_conn=None, tgt_object=None,
                tgt_options=None, streams=None, mode=None, limit=None, primary_key=None,
                update_key=None, debug=False)
    base.update(kw)
    return argparse.Namespace(**base)


@pytest.fixture
def source(tmp_path):
    path = tmp_path / "orders.csv"
    path.write_text("id,total\n1,10\n2,20\n3,30\n", encoding="utf-8")
    return path


def test_run_records_context_stages(source, tmp_path, settings):
    ctx = TelemetryContext()
    target = tmp_path / "out.jsonl"

    stats = run_task(_args(src_stream=str(source), tgt_object=str(target), limit="2",
                           src_options='{"source_format": "csv"}'),
                     cancel=CancelToken(), context=ctx, settings=settings)

    assert stats["rows"] == 2
    assert ctx.get("run_mode") == "task"
    assert ctx.get("stage") == "3 - task-completed"
    task = json.loads(ctx.get("task"))
    assert task["source_type"] == "file"
    assert task["target_type"] == "file"
    assert task["limit"] == 2
    # connection properties are not copied into the context
    assert "source" not in task
    assert json.loads(ctx.get("task_options"))["source"] == {"source_format": "csv"}
    assert json.loads(ctx.get("task_stats"))["rows"] == 2


def test_invalid_mode_fails_at_task_creation(source, settings):
    ctx = TelemetryContext()
    with pytest.raises(FerryError, match="invalid mode"):
        run_task(_args(src_stream=str(source), tgt_object="x.jsonl", mode="merge-ish"),
                 cancel=CancelToken(), context=ctx, settings=settings)
    assert ctx.get("stage") == "0 - task-creation"


def test_invalid_options_json(source, settings):
    with pytest.raises(FerryError, match="--tgt-options"):
        run_task(_args(src_stream=str(source), tgt_object="x.jsonl", tgt_options="[1, 2]"),
                 cancel=CancelToken(), context=TelemetryContext(), settings=settings)


def test_unavailable_source_connector(settings):
    ctx = TelemetryContext()
    with pytest.raises(ConnectorNotFound):
        run_task(_args(src_conn="nosuchdb://host/db", src_stream="public.orders", tgt_object="x.jsonl"),
                 cancel=CancelToken(), context=ctx, settings=settings)
    assert ctx.get("stage") == "1 - connector-loading"


def test_app_run_end_to_end(source, tmp_path):
    settings = Settings(version="1.2.3", telemetry_enabled=False, show_progress=False,
                        home_dir=str(tmp_path / "home"))
    target = tmp_path / "copy.csv"

    decision = app.run(["run", "--src-stream", f"file://{source}", "--tgt-object", f"file://{target}"], settings)

    assert decision is ExitDecision.SUCCESS
    assert target.read_text(encoding="utf-8").splitlines()[0] == "id,total"


def test_app_run_failure_exits_one(tmp_path):
    settings = Settings(version="1.2.3", telemetry_enabled=False, show_progress=False,
                        home_dir=str(tmp_path / "home"))

    decision = app.run(["run", "--src-stream", str(tmp_path / "missing.csv"), "--tgt-object",
                        str(tmp_path / "out.jsonl")], settings)

    assert decision is ExitDecision.COMMAND_ERROR


def test_app_run_without_command_is_success(tmp_path, capsys):
    assert app.run([], Settings(telemetry_enabled=False, home_dir=str(tmp_path))) is ExitDecision.SUCCESS
