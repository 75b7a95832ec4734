"""Processing orchestrator — concurrent analysis runs with supersede semantics.

One run = one immutable snapshot, one epoch, one result buffer. The
sequencer runs first; the remaining tasks fan out to a thread pool owned by
the run and report back through ``_record``. Every write to the buffer and
completion flags happens under a single lock and is checked against the
active epoch, so a superseded run can finish computing but never publishes.
Superseding a run cancels its queued tasks; a task already running keeps
its own worker and never holds one the new run needs.

Usage::

    orchestrator = ProcessingOrchestrator(AnalysisSettings())
    handle = orchestrator.start(observations, health_observations)
    result = orchestrator.wait(handle, timeout=10)
"""

from __future__ import annotations

import logging
import threading
import time
import weakref
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from moodlens.domains.mood.domain_logic.models import (
    HealthObservation,
    Observation,
    ProcessedResult,
)
from moodlens.domains.mood.domain_logic.registry import CategoryRegistry
from moodlens.domains.mood.domain_logic.snapshot import (
    AnalysisSettings,
    ProcessingSnapshot,
    capture_snapshot,
)
from moodlens.domains.mood.domain_logic.tasks import (
    ANALYSIS_TASKS,
    SEQUENCER_TASK,
    AnalysisTask,
    Fragment,
    assemble_result,
    sequence,
)

logger = logging.getLogger(__name__)

Observer = Callable[["RunHandle", ProcessedResult], None]


class AnalysisError(Exception):
    """Raised by ``result()`` when a task of the run failed unexpectedly."""


class RunState(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    SUPERSEDED = "superseded"
    FAILED = "failed"


class RunStatus:
    """Per-task completion flags for one run.

    Flags only move from False to True, and only for the run's own epoch.
    """

    def __init__(self, tasks: Iterable[str]) -> None:
        self._flags: dict[str, bool] = {name: False for name in tasks}

    def mark(self, task: str) -> None:
        if task not in self._flags:
            raise KeyError(f"Unknown task: {task!r}")
        self._flags[task] = True

    def is_complete(self, task: str) -> bool:
        return self._flags[task]

    @property
    def all_complete(self) -> bool:
        return all(self._flags.values())

    def as_dict(self) -> dict[str, bool]:
        return dict(self._flags)


@dataclass(eq=False)
class RunHandle:
    """Caller-side reference to one run; holds the outcome once resolved."""

    epoch: int
    started_at: datetime
    _state: RunState = RunState.RUNNING
    _result: ProcessedResult | None = field(default=None, repr=False)
    _error: BaseException | None = field(default=None, repr=False)
    _done: threading.Event = field(default_factory=threading.Event, repr=False)

    @property
    def state(self) -> RunState:
        return self._state

    def done(self) -> bool:
        return self._done.is_set()


@dataclass
class _ResultBuffer:
    epoch: int
    fragments: dict[str, Fragment] = field(default_factory=dict)


@dataclass
class _ActiveRun:
    handle: RunHandle
    snapshot: ProcessingSnapshot
    buffer: _ResultBuffer
    status: RunStatus
    started_monotonic: float
    executor: ThreadPoolExecutor


class ProcessingOrchestrator:
    """Runs the analysis task table over snapshots, one live epoch at a time."""

    def __init__(
        self,
        settings: AnalysisSettings | None = None,
        *,
        max_workers: int | None = None,
        tasks: Mapping[str, AnalysisTask] | None = None,
        sequencer: Callable[[ProcessingSnapshot], Fragment] = sequence,
    ) -> None:
        self._settings = settings or AnalysisSettings()
        self._tasks = dict(tasks if tasks is not None else ANALYSIS_TASKS)
        if SEQUENCER_TASK in self._tasks:
            raise ValueError(f"{SEQUENCER_TASK!r} is reserved for the sequencer")
        self._sequencer = sequencer
        self._max_workers = max_workers
        # Run pools still finishing work; shutdown() joins them
        self._executors: weakref.WeakSet[ThreadPoolExecutor] = weakref.WeakSet()
        self._closed = False
        self._lock = threading.Lock()
        self._epoch = 0
        self._active: _ActiveRun | None = None
        self._last_status: RunStatus | None = None
        self._latest: ProcessedResult | None = None
        self._observers: list[Observer] = []

    @property
    def task_names(self) -> list[str]:
        return [SEQUENCER_TASK, *self._tasks]

    @property
    def latest(self) -> ProcessedResult | None:
        """Most recently published result, if any.

        The one reference kept after publication; the next publication replaces it.
        """
        with self._lock:
            return self._latest

    @property
    def is_processing(self) -> bool:
        with self._lock:
            return self._active is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(
        self,
        observations: Iterable[Observation],
        health_observations: Iterable[HealthObservation] = (),
        registry: CategoryRegistry | None = None,
    ) -> RunHandle:
        """Snapshot the inputs and launch a new run, superseding any in flight.

        Raises:
            SnapshotError: If the inputs violate the snapshot contract.
            RuntimeError: If the orchestrator has been shut down.
        """
        settings = self._settings
        if registry is not None:
            settings = replace(settings, registry=registry)
        snapshot = capture_snapshot(observations, health_observations, settings)

        with self._lock:
            if self._closed:
                raise RuntimeError("Orchestrator has been shut down")
            self._supersede_active()
            self._epoch += 1
            handle = RunHandle(epoch=self._epoch, started_at=datetime.now(timezone.utc))
            run = _ActiveRun(
                handle=handle,
                snapshot=snapshot,
                buffer=_ResultBuffer(epoch=self._epoch),
                status=RunStatus(self.task_names),
                started_monotonic=time.monotonic(),
                executor=ThreadPoolExecutor(
                    max_workers=self._max_workers,
                    thread_name_prefix=f"moodlens-analysis-{self._epoch}",
                ),
            )
            self._executors.add(run.executor)
            self._active = run
            self._last_status = run.status
            run.executor.submit(self._run_sequencer, run)

        logger.info(
            "Started analysis run epoch=%d (%d observations, %d health records)",
            handle.epoch,
            len(snapshot.observations),
            len(snapshot.health_observations),
        )
        return handle

    def cancel(self, handle: RunHandle) -> bool:
        """Supersede ``handle`` if it is the run in flight."""
        with self._lock:
            if self._active is None or self._active.handle is not handle:
                return False
            self._supersede_active()
            return True

    def result(self, handle: RunHandle) -> ProcessedResult | None:
        """The published result, or None while pending or when superseded.

        Raises:
            AnalysisError: If one of the run's tasks raised.
        """
        if handle.state is RunState.FAILED:
            raise AnalysisError(f"Analysis run {handle.epoch} failed") from handle._error
        return handle._result

    def wait(self, handle: RunHandle, timeout: float | None = None) -> ProcessedResult | None:
        """Block until ``handle`` resolves (or ``timeout`` elapses)."""
        handle._done.wait(timeout)
        return self.result(handle)

    def status(self) -> dict[str, Any]:
        """Flags of the current (or most recent) run plus the live epoch."""
        with self._lock:
            flags = self._last_status.as_dict() if self._last_status else {}
            return {
                "epoch": self._epoch,
                "processing": self._active is not None,
                "tasks": flags,
                "all_complete": bool(flags) and all(flags.values()),
            }

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Call ``observer(handle, result)`` once per published run."""
        with self._lock:
            self._observers.append(observer)

        def unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return unsubscribe

    def shutdown(self, wait: bool = True) -> None:
        """Supersede the run in flight and stop accepting new runs.

        With ``wait``, also blocks until tasks of superseded runs that were
        already running have returned.
        """
        with self._lock:
            self._closed = True
            self._supersede_active()
            executors = list(self._executors)
        for executor in executors:
            executor.shutdown(wait=wait)

    def __enter__(self) -> ProcessingOrchestrator:
        return self

    def __exit__(self, *args) -> None:
        self.shutdown()

    # ------------------------------------------------------------------
    # Workers
    # ------------------------------------------------------------------

    def _run_sequencer(self, run: _ActiveRun) -> None:
        if not self._still_live(run, SEQUENCER_TASK):
            return
        try:
            fragment = self._sequencer(run.snapshot)
        except Exception as exc:
            self._fail(run, SEQUENCER_TASK, exc)
            return

        if not self._record(run, SEQUENCER_TASK, fragment):
            return  # superseded: no fan-out

        series = fragment["daily_series"]
        health = fragment["health_series"]
        with self._lock:
            # Supersede shuts the pool down under this same lock
            if self._active is not run:
                return
            for name, task in self._tasks.items():
                run.executor.submit(self._run_task, run, name, task, series, health)

    def _run_task(self, run: _ActiveRun, name: str, task: AnalysisTask, series, health) -> None:
        if not self._still_live(run, name):
            return
        try:
            fragment = task(run.snapshot, series, health)
        except Exception as exc:
            self._fail(run, name, exc)
            return
        self._record(run, name, fragment)

    def _still_live(self, run: _ActiveRun, name: str) -> bool:
        with self._lock:
            live = self._active is run
        if not live:
            logger.debug("Skipping %s for superseded epoch %d", name, run.buffer.epoch)
        return live

    def _record(self, run: _ActiveRun, name: str, fragment: Fragment) -> bool:
        """Store a task fragment if ``run`` is still the live epoch.

        Returns False when the write was discarded.
        """
        with self._lock:
            active = self._active
            if active is None or active.buffer.epoch != run.buffer.epoch:
                logger.debug("Discarding %s from superseded epoch %d", name, run.buffer.epoch)
                return False

            active.buffer.fragments[name] = fragment
            active.status.mark(name)
            if not active.status.all_complete:
                return True

            handle = active.handle
            self._release(active)
            try:
                result = assemble_result(active.buffer.fragments)
            except Exception as exc:
                handle._state = RunState.FAILED
                handle._error = exc
                result = None
            else:
                handle._result = result
                handle._state = RunState.COMPLETED
                self._latest = result
            observers = list(self._observers)
            elapsed_ms = (time.monotonic() - active.started_monotonic) * 1000

        if result is None:
            logger.error(
                "Could not assemble result for epoch %d", handle.epoch, exc_info=handle._error
            )
            handle._done.set()
            return False

        logger.info("Published analysis run epoch=%d in %.1f ms", handle.epoch, elapsed_ms)
        # Observers run before waiters are released
        for observer in observers:
            try:
                observer(handle, result)
            except Exception:
                logger.exception("Result observer %r failed", observer)
        handle._done.set()
        return True

    def _fail(self, run: _ActiveRun, name: str, exc: Exception) -> None:
        with self._lock:
            live = self._active is not None and self._active.buffer.epoch == run.buffer.epoch
            if live:
                run.handle._state = RunState.FAILED
                run.handle._error = exc
                self._release(run)
        if live:
            logger.error(
                "Analysis task %s failed in epoch %d", name, run.buffer.epoch, exc_info=exc
            )
            run.handle._done.set()
        else:
            logger.debug("Ignoring failure of %s in superseded epoch %d", name, run.buffer.epoch)

    def _supersede_active(self) -> None:
        """Invalidate the run in flight (caller holds the lock)."""
        run = self._active
        if run is None:
            return
        run.handle._state = RunState.SUPERSEDED
        self._release(run)
        run.handle._done.set()
        logger.info("Superseded analysis run epoch=%d", run.handle.epoch)

    def _release(self, run: _ActiveRun) -> None:
        """Drop the live run and cancel its queued tasks (caller holds the lock).

        Tasks already running finish on the run's own workers.
        """
        self._active = None
        run.executor.shutdown(wait=False, cancel_futures=True)
