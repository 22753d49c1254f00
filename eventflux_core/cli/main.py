"""
Entry point for the eventflux command.
Provides subcommands:
- run – drive concurrent sessions against a live event service
- report – summarize a JSONL export of a previous run
"""
from dataclasses import replace
import logging
import sys

import click

from eventflux_core.agent.engine import Orchestrator
from eventflux_core.config import HarnessConfig
from eventflux_core.errors import ConfigError
from eventflux_core.logger_config import attach_log_file, detach_log_file, set_level
from eventflux_core.models.event import SessionConfig
from eventflux_core.reporting.console import format_totals, print_sessions
from eventflux_core.reporting.summary import (
    load_outcomes_jsonl,
    outcomes_frame,
    summarize,
    totals,
    write_outcomes_jsonl,
)


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.option("-v", "--verbose", is_flag=True, default=False, help="Log every poll attempt.")
@click.pass_context
def cli(ctx, verbose: bool):
    """EventFlux ingestion conformance harness"""
    ctx.ensure_object(dict)
    if verbose:
        set_level(logging.DEBUG)


@cli.command(name="run")
@click.option("--base-url", help="Event service address (env: EVENTFLUX_BASE_URL).")
@click.option("-s", "--sessions", "session_count", type=int, help="Concurrent sessions.")
@click.option("-e", "--events", "events_per_session", type=int, help="Events per session.")
@click.option("--max-attempts", type=int, help="Confirmation attempts before giving up.")
@click.option("--confirm-workers", type=int, help="Concurrent confirmation polls per session.")
@click.option("--timeout", "request_timeout", type=float, help="Per-request timeout in seconds.")
@click.option("--no-timeout", is_flag=True, default=False, help="Let requests block indefinitely.")
@click.option("--deadline", "deadline_s", type=float, help="Cancel the run after this many seconds.")
@click.option("-o", "--output", type=click.Path(dir_okay=False, writable=True),
              help="Write per-event outcomes as JSON lines.")
@click.option("--log-file", type=click.Path(dir_okay=False, writable=True),
              help="Also write harness logs to this file (env: EVENTFLUX_LOG_FILE).")
@click.option("--no-color", is_flag=True, default=False, help="Plain markers without ANSI colors.")
@click.option("--fail-on-error", is_flag=True, default=False,
              help="Exit with status 1 if any session or event failed.")
@click.pass_context
def run(ctx, base_url, session_count, events_per_session, max_attempts, confirm_workers,
        request_timeout, no_timeout, deadline_s, output, log_file, no_color, fail_on_error):
    """
    Register sessions, submit their events and confirm each one.

    Prints one line per session with a marker per event, then totals.
    """
    try:
        config = HarnessConfig.from_env().override(
            base_url=base_url,
            session_count=session_count,
            events_per_session=events_per_session,
            max_attempts=max_attempts,
            confirm_workers=confirm_workers,
            request_timeout=request_timeout,
            deadline_s=deadline_s,
            log_file=log_file,
        )
        if no_timeout:
            config = replace(config, request_timeout=None)
    except ConfigError as e:
        raise click.UsageError(str(e)) from e

    orchestrator = Orchestrator.from_config(
        config, transport_factory=ctx.obj.get("transport_factory")
    )
    file_handler = attach_log_file(config.log_file) if config.log_file else None
    try:
        sessions = orchestrator.run_all(
            config.session_count, SessionConfig(config.events_per_session)
        )
    finally:
        if file_handler is not None:
            detach_log_file(file_handler)

    color = not no_color and sys.stdout.isatty()
    print_sessions(sessions, color=color)

    frame = outcomes_frame(sessions)
    summary = totals(frame)
    click.echo(format_totals(summary, color=color))

    if output:
        write_outcomes_jsonl(sessions, output)

    if fail_on_error and (summary["failed"] or summary["registered"] < summary["sessions"]):
        ctx.exit(1)


@cli.command(name="report")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--per-session", is_flag=True, default=False, help="Print the per-session table.")
def report(path: str, per_session: bool):
    """Summarize a JSONL export written by `eventflux run --output`."""
    frame = load_outcomes_jsonl(path)
    if per_session:
        click.echo(summarize(frame).to_string())
    click.echo(format_totals(totals(frame), color=False))


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
