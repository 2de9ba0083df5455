# opaboard/services/polling_service.py
"""Refresh loop for opaboard.

Each cycle fetches the raw lists from the upstream, reconciles them and
replaces the published snapshot wholesale. Cycles run on a small worker
pool so a slow upstream call never delays the next tick; a cycle that
finishes after a newer one is discarded instead of overwriting it.
"""

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from opaboard.adapters.opa_client import OpaClient
from opaboard.core.dates import Clock
from opaboard.core.models import EngineOptions, ReconcileResult
from opaboard.core.reconcile import reconcile_or_empty
from opaboard.services.logger import RefreshLogger


class SnapshotHolder:
    """
    The dashboard's current canonical snapshot.

    Results are only ever replaced, never merged, and only by a newer
    generation than the one already published.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._generation = 0
        self._result = ReconcileResult.empty()
        self._updated_at: Optional[float] = None

    def publish(self, generation: int, result: ReconcileResult) -> bool:
        with self._lock:
            if generation <= self._generation:
                return False
            self._generation = generation
            self._result = result
            self._updated_at = time.time()
            return True

    @property
    def current(self) -> ReconcileResult:
        with self._lock:
            return self._result

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    @property
    def updated_at(self) -> Optional[float]:
        with self._lock:
            return self._updated_at


@dataclass
class RefreshOutcome:
    result: ReconcileResult
    error: Optional[str] = None
    upstream_errors: Dict[str, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.error is None


def refresh_once(
    client: OpaClient,
    options: Optional[EngineOptions] = None,
    clock: Optional[Clock] = None,
) -> RefreshOutcome:
    """
    One fetch + reconcile. Never raises: failures become an empty snapshot.
    """
    try:
        batch = client.fetch_dashboard_data()
    except Exception as exc:
        return RefreshOutcome(result=ReconcileResult.empty(), error=str(exc))

    result = reconcile_or_empty(
        batch.tickets,
        batch.attendants,
        batch.departments,
        batch.clients,
        batch.contacts,
        options=options,
        clock=clock,
    )
    return RefreshOutcome(result=result, upstream_errors=dict(batch.errors))


def _summary_line(cycle: int, outcome: RefreshOutcome) -> str:
    counts = outcome.result.count_by_status()
    return (
        f"Cycle #{cycle} complete: "
        f"{len(outcome.result.tickets)} tickets "
        f"(waiting={counts['waiting']}, bot={counts['bot']}, "
        f"in_service={counts['in_service']}, finished={counts['finished']}), "
        f"{len(outcome.result.attendants)} attendants"
    )


def run_cycle(
    cycle: int,
    client: OpaClient,
    holder: SnapshotHolder,
    *,
    options: Optional[EngineOptions] = None,
    clock: Optional[Clock] = None,
    refresh_logger: Optional[RefreshLogger] = None,
) -> RefreshOutcome:
    outcome = refresh_once(client, options=options, clock=clock)
    applied = holder.publish(cycle, outcome.result)

    if outcome.success:
        print(f"[INFO] {_summary_line(cycle, outcome)}")
        for name, err in outcome.upstream_errors.items():
            print(f"[WARN] Cycle #{cycle}: upstream {name} failed: {err}")
    else:
        print(f"[ERROR] Cycle #{cycle} failed: {outcome.error}")
    if not applied:
        print(f"[WARN] Cycle #{cycle} finished after a newer cycle; result discarded")

    if refresh_logger is not None:
        refresh_logger.log_cycle(
            cycle,
            result=outcome.result,
            success=outcome.success,
            error=outcome.error,
            upstream_errors=outcome.upstream_errors,
        )
    return outcome


def run_polling_loop(
    client: OpaClient,
    poll_interval_seconds: int = 30,
    run_once: bool = False,
    *,
    options: Optional[EngineOptions] = None,
    clock: Optional[Clock] = None,
    holder: Optional[SnapshotHolder] = None,
    stop_event: Optional[threading.Event] = None,
    max_inflight: int = 2,
    refresh_logger: Optional[RefreshLogger] = None,
) -> SnapshotHolder:
    """Main loop for `opaboard poll`.

    Submits a cycle every poll_interval_seconds until stop_event is set,
    Ctrl+C is pressed, or (run_once) the first cycle completes.
    """
    holder = holder or SnapshotHolder()
    stop_event = stop_event or threading.Event()

    print("=== opaboard refresh loop ===")
    print(f"[INFO] Upstream: {client.base_url}")
    print(f"[INFO] Poll interval: {poll_interval_seconds} seconds")
    print(
        "[INFO] Running continuously (Ctrl+C to stop)"
        if not run_once
        else "[INFO] Run-once mode"
    )

    executor = ThreadPoolExecutor(max_workers=max(1, int(max_inflight)))
    inflight: List[Future] = []
    cycle = 0
    try:
        while not stop_event.is_set():
            inflight = [f for f in inflight if not f.done()]
            if len(inflight) >= max_inflight:
                print(f"[WARN] {len(inflight)} cycle(s) still running; skipping this tick")
            else:
                cycle += 1
                print(f"\n[INFO] === Refresh cycle #{cycle} ===")
                print(f"[INFO] Time: {time.strftime('%Y-%m-%d %H:%M:%S')}")
                future = executor.submit(
                    run_cycle,
                    cycle,
                    client,
                    holder,
                    options=options,
                    clock=clock,
                    refresh_logger=refresh_logger,
                )
                inflight.append(future)

                if run_once:
                    future.result()
                    print("[INFO] Run-once mode: exiting after one cycle")
                    break

            if stop_event.wait(poll_interval_seconds):
                break

    except KeyboardInterrupt:
        print("\n[INFO] Polling stopped by user (Ctrl+C)")
    except Exception as exc:
        print(f"[ERROR] Unexpected error in polling loop: {exc}")
        raise
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    return holder
