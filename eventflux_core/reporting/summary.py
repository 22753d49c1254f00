"""
Tabular view of a finished run.

Flattens completed sessions into one row per event (plus one row per
session whose registration failed), derives latency columns, and
summarizes per session. The same rows round-trip through JSON lines so a
run can be re-reported later without re-running it.
"""
import json

import pandas as pd

from eventflux_core.logger_config import setup_logger

logger = setup_logger(__name__)

TIME_COLUMNS = ["submit_start", "submit_end", "poll_start", "poll_end", "db_time"]
COLUMNS = ["ordinal", "session_id", "event_index", *TIME_COLUMNS,
           "attempts", "ok", "error_kind", "error", "echoed"]
REGISTRATION_ROW = -1


def _iso(value):
    return value.isoformat() if value is not None else None


def outcome_records(sessions) -> list[dict]:
    records = []
    for session in sessions:
        if session.error is not None:
            records.append({
                "ordinal": session.ordinal,
                "session_id": session.session_id,
                "event_index": REGISTRATION_ROW,
                "attempts": 0,
                "ok": False,
                "error_kind": session.error.kind.value,
                "error": session.error.message,
            })
            continue

        for outcome in session.outcomes:
            record = {
                "ordinal": session.ordinal,
                "session_id": session.session_id,
                "event_index": outcome.index,
                "attempts": outcome.attempts,
                "ok": outcome.ok,
                "error_kind": outcome.error.kind.value if outcome.error else None,
                "error": outcome.error.message if outcome.error else None,
                "echoed": outcome.echoed,
            }
            for column in TIME_COLUMNS:
                record[column] = _iso(getattr(outcome, column))
            records.append(record)
    return records


def _millis(end: pd.Series, start: pd.Series) -> pd.Series:
    return (end - start).dt.total_seconds() * 1000.0


def frame_from_records(records: list[dict]) -> pd.DataFrame:
    df = pd.DataFrame(records, columns=COLUMNS)
    for column in TIME_COLUMNS:
        df[column] = pd.to_datetime(df[column], utc=True, format="ISO8601")
    df["attempts"] = df["attempts"].fillna(0).astype(int)
    df["ok"] = df["ok"].astype(bool)

    df["submit_ms"] = _millis(df["submit_end"], df["submit_start"])
    df["confirm_ms"] = _millis(df["poll_end"], df["poll_start"])
    df["db_lag_ms"] = _millis(df["db_time"], df["submit_end"])
    return df


def outcomes_frame(sessions) -> pd.DataFrame:
    return frame_from_records(outcome_records(sessions))


def summarize(frame: pd.DataFrame) -> pd.DataFrame:
    """ Per-session counts and latency percentiles, one row per session. """
    keys = ["ordinal", "session_id"]
    events = frame[frame["event_index"] != REGISTRATION_ROW]

    summary = events.groupby(keys).agg(
        events=("event_index", "count"),
        ok=("ok", "sum"),
        attempts_mean=("attempts", "mean"),
        submit_ms_p50=("submit_ms", "median"),
        confirm_ms_p50=("confirm_ms", "median"),
        confirm_ms_p95=("confirm_ms", lambda s: s.quantile(0.95)),
        db_lag_ms_p50=("db_lag_ms", "median"),
    )

    all_sessions = pd.MultiIndex.from_frame(frame[keys].drop_duplicates())
    summary = summary.reindex(all_sessions)
    summary[["events", "ok"]] = summary[["events", "ok"]].fillna(0).astype(int)
    summary["failed"] = summary["events"] - summary["ok"]
    summary["registered"] = ~all_sessions.isin(
        pd.MultiIndex.from_frame(frame.loc[frame["event_index"] == REGISTRATION_ROW, keys])
    )
    return summary.sort_index()


def totals(frame: pd.DataFrame) -> dict:
    events = frame[frame["event_index"] != REGISTRATION_ROW]
    registration_failures = int((frame["event_index"] == REGISTRATION_ROW).sum())
    sessions = frame[["ordinal", "session_id"]].drop_duplicates().shape[0]
    return {
        "sessions": sessions,
        "registered": sessions - registration_failures,
        "events": int(events.shape[0]),
        "ok": int(events["ok"].sum()),
        "failed": int((~events["ok"]).sum()),
        "error_kinds": {str(k): int(v) for k, v in frame["error_kind"].dropna().value_counts().items()},
    }


def write_outcomes_jsonl(sessions, path: str) -> int:
    records = outcome_records(sessions)
    with open(path, "w") as f:
        for record in records:
            f.write(json.dumps(record) + "\n")
    logger.info(f"Wrote {len(records)} outcome records to {path}")
    return len(records)


def load_outcomes_jsonl(path: str) -> pd.DataFrame:
    """ Load a JSON-lines export written by write_outcomes_jsonl """
    records = []

    with open(path, "r") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                records.append(json.loads(line))
            except json.JSONDecodeError as e:
                logger.warning(f"Skipping invalid JSON line: {e}")

    df = frame_from_records(records)
    logger.info(f"Loaded {len(df)} outcome records from {path}.")
    return df
