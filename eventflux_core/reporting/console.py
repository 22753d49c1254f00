"""
Terminal rendering of completed sessions: one line per session, one
marker per event ("+" confirmed, "-" failed).
"""
import click

GREEN = "\033[42;30m"
RED = "\033[41;37;1m"
BOLD = "\033[1m"
RESET = "\033[0m"

OK_MARK = "+"
FAIL_MARK = "-"


def render_markers(outcomes, color: bool = True) -> str:
    marks = []
    for outcome in outcomes:
        mark = OK_MARK if outcome.ok else FAIL_MARK
        if color:
            mark = f"{GREEN if outcome.ok else RED}{mark}{RESET}"
        marks.append(mark)
    return "".join(marks)


def render_session_line(session, color: bool = True) -> str:
    label = session.session_id or f"#{session.ordinal}"
    if session.error is not None:
        detail = f"registration failed: {session.error.message}"
        if color:
            detail = f"{RED}{detail}{RESET}"
        return f"{label} | {detail}"
    return f"{label} | {render_markers(session.outcomes, color)}"


def print_sessions(sessions, color: bool = True):
    for session in sessions:
        click.echo(render_session_line(session, color))


def format_totals(totals: dict, color: bool = True) -> str:
    line = (f"sessions={totals['sessions']} registered={totals['registered']} "
            f"events={totals['events']} ok={totals['ok']} failed={totals['failed']}")
    if totals["error_kinds"]:
        kinds = ", ".join(f"{kind}={count}" for kind, count in sorted(totals["error_kinds"].items()))
        line += f" ({kinds})"
    return f"{BOLD}{line}{RESET}" if color else line
