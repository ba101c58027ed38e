"""Single-flight background job gate and worker runner.

WHY: Resolving and exporting can take long enough on big workspaces to
freeze the editor, so they run on a worker thread. Only one such job may
run at a time across the whole application, and the worker must never
touch editor state directly: it reports back through one channel that the
control flow drains when it is ready.

HOW: Three pieces work together:
  JobState: enum of the two gate states (idle, running)
  JobGate: lock-guarded state machine; try_start() is a compare-and-set
  run_job(): starts a daemon thread that runs a work callable and puts a
              JobResult on the caller's queue, success or failure

RULES:
- try_start() succeeds only from IDLE; a second caller gets False (busy)
- finish() is called by the control flow after it receives the JobResult
- The work callable must only use data it owns (a snapshot), never live state
- Every exception inside the worker becomes JobResult(ok=False); nothing escapes
- There is no cancellation and no timeout: a started job runs to completion
"""

from __future__ import annotations

import enum
import logging
import queue
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class JobState(str, enum.Enum):
    """States of the single-flight gate.

    HOW: Inherits from str so values print and compare cleanly.
    """

    IDLE = "idle"
    RUNNING = "running"


class JobKind(str, enum.Enum):
    """Kinds of background job. Values match the FORMATTERS registry keys."""

    RESOLVE = "resolve"
    EXPORT = "export"


@dataclass(frozen=True)
class JobResult:
    """Outcome of one background job, delivered through the result queue.

    RULES:
    - ok=True: path is the written artifact, error is None
    - ok=False: path is None, error is a one-line message
    """

    kind: JobKind
    bank_id: int
    ok: bool
    path: Optional[Path] = None
    error: Optional[str] = None


class JobGate:
    """Two-state machine guarding the one background job slot.

    WHY: A plain boolean read-then-write lets two quick clicks both pass
    the "not busy" check. The gate makes the check and the transition one
    atomic step.

    HOW: State is only read or written while holding self._lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state = JobState.IDLE

    @property
    def state(self) -> JobState:
        with self._lock:
            return self._state

    @property
    def running(self) -> bool:
        return self.state is JobState.RUNNING

    def try_start(self) -> bool:
        """Move IDLE → RUNNING. Returns False if a job is already running."""
        with self._lock:
            if self._state is JobState.RUNNING:
                return False
            self._state = JobState.RUNNING
            return True

    def finish(self) -> None:
        """Move back to IDLE. Finishing an idle gate is logged and ignored."""
        with self._lock:
            if self._state is JobState.IDLE:
                logger.warning("JobGate.finish() called while idle")
            self._state = JobState.IDLE


def run_job(
    kind: JobKind,
    bank_id: int,
    work: Callable[[], Path],
    results: "queue.Queue[JobResult]",
) -> threading.Thread:
    """Run ``work`` on a daemon thread and post its JobResult to ``results``.

    Args:
        kind: Which job this is, echoed back in the result.
        bank_id: The bank the job renders, echoed back in the result.
        work: Callable that produces the artifact and returns its path.
              It runs on the worker thread and must only touch data it owns.
        results: The hand-off channel drained by the control flow.

    Returns:
        The started thread (callers normally do not join it).
    """

    def _worker() -> None:
        logger.info("Job %s for bank %d started", kind.value, bank_id)
        try:
            path = work()
        except Exception as exc:
            logger.exception("Job %s for bank %d failed", kind.value, bank_id)
            result = JobResult(kind=kind, bank_id=bank_id, ok=False, error=str(exc))
        else:
            logger.info("Job %s for bank %d wrote %s", kind.value, bank_id, path)
            result = JobResult(kind=kind, bank_id=bank_id, ok=True, path=path)
        results.put(result)

    thread = threading.Thread(
        target=_worker,
        name="scripted-{}-{}".format(kind.value, bank_id),
        daemon=True,
    )
    thread.start()
    return thread
