import json
import logging

from click.testing import CliRunner

from conftest import FakeTransport, not_found
from eventflux_core.cli.main import cli


def invoke(args, transport_factory=None):
    runner = CliRunner()
    return runner.invoke(cli, args, obj={"transport_factory": transport_factory},
                         env={"EVENTFLUX_BASE_URL": None})


def test_run_prints_marker_line_per_session(tmp_path):
    output = tmp_path / "outcomes.jsonl"
    result = invoke(
        ["run", "--sessions", "3", "--events", "4", "--no-color", "--output", str(output)],
        transport_factory=lambda ordinal: FakeTransport(session_id=f"sess-{ordinal}"),
    )

    assert result.exit_code == 0, result.output
    for ordinal in range(3):
        assert f"sess-{ordinal} | ++++" in result.output
    assert "sessions=3 registered=3 events=12 ok=12 failed=0" in result.output

    lines = output.read_text().splitlines()
    assert len(lines) == 12
    assert json.loads(lines[0])["session_id"].startswith("sess-")


def test_run_fail_on_error_sets_exit_code():
    def factory(ordinal):
        if ordinal == 0:
            return FakeTransport(session_id="sess-0", confirm=lambda index, seen: not_found())
        return FakeTransport(session_id=f"sess-{ordinal}")

    args = ["run", "-s", "2", "-e", "2", "--max-attempts", "2", "--no-color"]
    assert invoke(args, transport_factory=factory).exit_code == 0

    result = invoke(args + ["--fail-on-error"], transport_factory=factory)
    assert result.exit_code == 1
    assert "sess-0 | --" in result.output
    assert "confirmation_exhausted=2" in result.output


def test_run_rejects_invalid_config():
    result = invoke(["run", "--sessions", "-1"], transport_factory=lambda ordinal: FakeTransport())

    assert result.exit_code == 2
    assert "session_count must be >= 0" in result.output


def test_report_reads_export(tmp_path):
    output = tmp_path / "outcomes.jsonl"
    invoke(["run", "-s", "2", "-e", "3", "--no-color", "-o", str(output)],
           transport_factory=lambda ordinal: FakeTransport(session_id=f"sess-{ordinal}"))

    result = CliRunner().invoke(cli, ["report", "--per-session", str(output)], obj={})

    assert result.exit_code == 0, result.output
    assert "sessions=2 registered=2 events=6 ok=6 failed=0" in result.output
    assert "confirm_ms_p50" in result.output


def test_run_mirrors_logs_to_file(tmp_path):
    log_file = tmp_path / "run.log"
    result = invoke(
        ["run", "-s", "2", "-e", "1", "--no-color", "--log-file", str(log_file)],
        transport_factory=lambda ordinal: FakeTransport(session_id=f"sess-{ordinal}"),
    )

    assert result.exit_code == 0, result.output
    text = log_file.read_text()
    assert "registered as sess-0" in text
    assert "registered as sess-1" in text
    assert "All sessions joined: 2/2" in text

    logging.getLogger("eventflux_core.agent.session").info("after run")
    assert "after run" not in log_file.read_text()
