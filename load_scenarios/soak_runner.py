"""
Soak runner: repeats full orchestrator runs against the event service.

Responsibilities:
- Runs one complete harness cycle (all sessions, all events) at a time
- Logs cycle start/finish with totals in a JSONL cycle log
- Waits between cycles so the service sees sustained, bursty load
- Keeps going after failed cycles; every cycle is reported
"""
import json
import os
import time
import uuid
from datetime import datetime, timezone

from eventflux_core.agent.engine import Orchestrator
from eventflux_core.config import HarnessConfig
from eventflux_core.logger_config import attach_log_file, setup_logger
from eventflux_core.models.event import SessionConfig
from eventflux_core.reporting.console import format_totals
from eventflux_core.reporting.summary import outcomes_frame, totals

logger = setup_logger(__name__)

# CONFIG
LOG_DIR = os.getenv("EVENTFLUX_SOAK_LOG_DIR", "logs")
CYCLE_LOG = f"{LOG_DIR}/soak_cycles.jsonl"
WAIT_SECONDS = float(os.getenv("EVENTFLUX_SOAK_WAIT", "20"))


def log_event(event_type, data, cycle_id, cycle_log=CYCLE_LOG):
    """
    Append one cycle event to the JSONL cycle log.
    Same shape for every event type so runs can be compared later.
    """
    event = {
        "timestamp": time.time(),
        "timestamp_iso": datetime.now(timezone.utc).isoformat(),
        "cycle_id": cycle_id,
        "event_type": event_type,  # "started", "finished"
        "source": "soak_runner",
        "data": data
    }

    os.makedirs(os.path.dirname(cycle_log) or ".", exist_ok=True)
    with open(cycle_log, "a") as f:
        f.write(json.dumps(event) + "\n")

    logger.info(f"[SOAK] {event_type}: {json.dumps(data)[:100]}")


def run_cycle(config: HarnessConfig, cycle_log=CYCLE_LOG, transport_factory=None) -> dict:
    """
    One full harness run. Returns the run totals.
    """
    cycle_id = str(uuid.uuid4())
    log_event("started", {
        "base_url": config.base_url,
        "sessions": config.session_count,
        "events_per_session": config.events_per_session,
    }, cycle_id, cycle_log)

    started = time.monotonic()
    orchestrator = Orchestrator.from_config(config, transport_factory=transport_factory)
    sessions = orchestrator.run_all(config.session_count, SessionConfig(config.events_per_session))
    result = totals(outcomes_frame(sessions))

    log_event("finished", {
        **result,
        "duration_s": round(time.monotonic() - started, 3),
    }, cycle_id, cycle_log)
    return result


def soak(config: HarnessConfig, wait_seconds=WAIT_SECONDS, max_cycles=None,
         cycle_log=CYCLE_LOG, transport_factory=None, sleep=time.sleep) -> list[dict]:
    results = []
    cycle_count = 0
    while max_cycles is None or cycle_count < max_cycles:
        cycle_count += 1
        print(f"\n{'='*60}")
        print(f"Soak Cycle #{cycle_count}")
        print(f"{'='*60}")

        result = run_cycle(config, cycle_log, transport_factory)
        print(format_totals(result, color=False))
        results.append(result)

        if max_cycles is None or cycle_count < max_cycles:
            print(f"\n[*] Waiting {wait_seconds}s before next cycle...")
            sleep(wait_seconds)
    return results


if __name__ == "__main__":
    config = HarnessConfig.from_env()
    print("[*] Soak Runner Started")
    print(f"[*] Logging to: {CYCLE_LOG}")
    print(f"[*] Event service: {config.base_url}")

    if config.log_file:
        attach_log_file(config.log_file)
    soak(config)
