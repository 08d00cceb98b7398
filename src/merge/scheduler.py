# src/merge/scheduler.py - v1
"""Background merge scheduling.

A single asyncio worker runs merges one at a time, each after a fixed
delay so the append that triggered it has landed before the merge reads
the store back. At most one request waits in the queue: requests made
while one is already pending are folded into it. A request made while a
merge is running queues one more run, which picks up whatever that run
missed.
"""

from __future__ import annotations

import asyncio
import logging

from commentrank.core.models import MergeOutcome
from commentrank.merge.engine import MergeEngine

logger = logging.getLogger(__name__)


class MergeScheduler:
    """Serial, best-effort merge runner off the request path."""

    def __init__(self, engine: MergeEngine, delay_seconds: float = 1.0) -> None:
        self._engine = engine
        self._delay = delay_seconds
        self._queue: asyncio.Queue[None] | None = None
        self._worker: asyncio.Task[None] | None = None
        self.last_outcome: MergeOutcome | None = None
        self.runs_completed = 0

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        """Start the worker on the running event loop. Idempotent."""
        if self.running:
            return
        self._queue = asyncio.Queue(maxsize=1)
        self._worker = asyncio.get_running_loop().create_task(
            self._run_worker(), name="commentrank-merge-worker",
        )
        logger.debug("Merge worker started (delay=%.2fs)", self._delay)

    def request(self) -> bool:
        """Ask for a merge. Returns False if folded into a pending request.

        Raises:
            RuntimeError: If the scheduler has not been started.
        """
        if not self.running or self._queue is None:
            raise RuntimeError("MergeScheduler is not running; call start() first")
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            logger.debug("Merge already pending, request folded into it")
            return False
        return True

    async def wait_idle(self) -> None:
        """Wait until every queued merge has finished."""
        if self._queue is not None:
            await self._queue.join()

    async def stop(self) -> None:
        """Finish queued and in-flight merges, then stop the worker."""
        if self._worker is None:
            return
        if self.running:
            await self.wait_idle()
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
        self._worker = None
        self._queue = None
        logger.debug("Merge worker stopped after %d run(s)", self.runs_completed)

    async def _run_worker(self) -> None:
        assert self._queue is not None
        queue = self._queue
        while True:
            await queue.get()
            try:
                if self._delay > 0:
                    await asyncio.sleep(self._delay)
                self.last_outcome = await self._engine.run()
                self.runs_completed += 1
            except Exception:
                # Keep the worker alive; the next request gets a fresh run.
                logger.exception("Background merge crashed")
            finally:
                queue.task_done()
