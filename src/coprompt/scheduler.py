from __future__ import annotations
import asyncio
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Any
from .vcs import VcsSnapshot

log = logging.getLogger(__name__)

Job = Callable[[], Coroutine[Any, Any, VcsSnapshot]]


@dataclass
class RefreshJobState:
    #: Number of the current input cycle
    cycle: int = 0

    #: The repository root that the cached snapshots belong to
    repo: Path | None = None

    #: The background job currently running, if any
    task: asyncio.Task[VcsSnapshot] | None = None

    #: The cycle & repository the running job was dispatched for
    task_cycle: int | None = None
    task_repo: Path | None = None

    #: `True` iff a job has finished for the current cycle & repository
    completed: bool = False

    #: The snapshot produced during the current cycle, if any
    result: VcsSnapshot | None = None

    #: The most recent snapshot for the current repository, possibly from an
    #: earlier cycle
    last_known: VcsSnapshot | None = None


class RefreshScheduler:
    """
    Runs at most one background status job at a time on an asyncio event loop
    and hands out its result to repeated, synchronous render requests.

    Each render request calls `observe_repo()` and then `poll()`.  The first
    poll of an input cycle dispatches a job and returns the last known
    snapshot (or `None`); once the job has finished, polls return its result
    until `new_cycle()` is called.  Jobs are never cancelled: a job that
    finishes after its cycle or repository has been superseded has its result
    thrown away.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        on_ready: Callable[[], None] | None = None,
    ) -> None:
        self.loop = loop
        #: Called whenever a job finishes, so that the host can render again
        #: (which either shows the new result or dispatches a replacement for
        #: an obsolete job)
        self.on_ready = on_ready
        self.state = RefreshJobState()

    @property
    def pending(self) -> asyncio.Task[VcsSnapshot] | None:
        return self.state.task

    @property
    def ready(self) -> bool:
        return self.state.completed

    def new_cycle(self) -> None:
        """Signal that a new input line has begun"""
        st = self.state
        st.cycle += 1
        st.result = None
        st.completed = False
        log.debug("Starting input cycle %d", st.cycle)

    def observe_repo(self, repo: Path) -> None:
        """
        Record the repository that the current render is for, discarding any
        cached snapshots if it differs from the previous one
        """
        st = self.state
        if st.repo != repo:
            log.debug("Repository changed from %s to %s", st.repo, repo)
            st.repo = repo
            st.result = None
            st.last_known = None
            st.completed = False

    def poll(self, job: Job) -> VcsSnapshot | None:
        """
        Return the freshest snapshot available for the current repository, or
        `None` if there is none yet.  If no job has run for the current cycle
        and none is running, ``job()`` is dispatched on the event loop.
        """
        self._harvest()
        st = self.state
        if st.task is None and not st.completed:
            log.debug("Dispatching status job for %s (cycle %d)", st.repo, st.cycle)
            st.task = self.loop.create_task(job())
            st.task_cycle = st.cycle
            st.task_repo = st.repo
            st.task.add_done_callback(self._job_done)
        return st.result if st.completed else st.last_known

    def _is_current(self, task: asyncio.Task[VcsSnapshot]) -> bool:
        st = self.state
        return task is st.task and st.task_cycle == st.cycle and st.task_repo == st.repo

    def _harvest(self) -> None:
        st = self.state
        task = st.task
        if task is None or not task.done():
            return
        current = self._is_current(task)
        st.task = None
        st.task_cycle = None
        st.task_repo = None
        snapshot: VcsSnapshot | None = None
        if task.cancelled():
            log.debug("Status job was cancelled")
        elif (e := task.exception()) is not None:
            log.warning("Status job failed: %s: %s", type(e).__name__, e)
        else:
            snapshot = task.result()
        if not current:
            log.debug("Discarding result of obsolete status job")
            return
        st.completed = True
        if snapshot is not None:
            st.result = st.last_known = snapshot

    def _job_done(self, task: asyncio.Task[VcsSnapshot]) -> None:
        # Runs on the event loop between render requests.  If the job was
        # obsolete, the current cycle still needs a job, which the host's
        # re-render dispatches.
        if task is not self.state.task:
            return
        self._harvest()
        if self.on_ready is not None:
            self.on_ready()
