"""In-process queue for recurring detection.

The pipeline submits a job after a transaction is committed and returns
immediately. A single worker task drains the queue, opening a fresh
database session per job so a failure never touches the request's
session. Failures are logged here and go no further.
"""

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Callable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from txnflow.config import settings
from txnflow.services.recurring import RecurringDetector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecurringJob:
    user_id: str
    transaction_id: UUID


class RecurringDetectionQueue:
    """Bounded job queue plus the worker that consumes it."""

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        maxsize: int | None = None,
    ):
        self._session_factory = session_factory
        self._queue: asyncio.Queue[RecurringJob] = asyncio.Queue(
            maxsize=settings.recurring_queue_maxsize if maxsize is None else maxsize
        )
        self._worker: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        """Start the worker task (idempotent)."""
        if self.running:
            return
        self._worker = asyncio.create_task(self._run(), name="recurring-detection-worker")
        logger.info("Recurring detection worker started")

    def submit(self, job: RecurringJob) -> bool:
        """Enqueue without waiting.

        Returns:
            False if the queue is full and the job was dropped
        """
        try:
            self._queue.put_nowait(job)
        except asyncio.QueueFull:
            logger.warning(
                "Recurring detection queue full; job dropped",
                extra={"transaction_id": str(job.transaction_id)},
            )
            return False
        return True

    async def join(self) -> None:
        """Wait until every submitted job has been processed."""
        if not self.running:
            return
        await self._queue.join()

    async def stop(self) -> None:
        """Cancel the worker; queued jobs are discarded."""
        if self._worker is None:
            return
        self._worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._worker
        self._worker = None
        logger.info("Recurring detection worker stopped")

    async def _run(self) -> None:
        while True:
            job = await self._queue.get()
            try:
                await self._handle(job)
            finally:
                self._queue.task_done()

    async def _handle(self, job: RecurringJob) -> None:
        try:
            async with self._session_factory() as session:
                await RecurringDetector(session).detect_by_id(job.user_id, job.transaction_id)
        except Exception as e:
            if settings.debug:
                logger.exception(
                    "Recurring detection failed",
                    extra={"transaction_id": str(job.transaction_id), "error_type": type(e).__name__},
                )
            else:
                logger.error(
                    "Recurring detection failed",
                    extra={"transaction_id": str(job.transaction_id), "error_type": type(e).__name__},
                )
