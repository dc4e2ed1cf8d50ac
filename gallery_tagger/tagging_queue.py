"""
In-process queue of photos waiting for AI tagging.
"""

import asyncio
from typing import Optional
from .logging import get_logger
from .models import TaggingJob


class TaggingQueue:
    """Unbounded multi-producer, single-consumer queue of tagging jobs.

    The queue belongs to the event loop that creates it. Producers on that
    loop push directly; producers on other threads hand the job to the loop.
    Enqueueing never blocks.
    """

    def __init__(self):
        self.logger = get_logger("tagging_queue")
        self._queue: "asyncio.Queue[TaggingJob]" = asyncio.Queue()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._closed = False

    def bind_loop(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Remember the loop that owns the queue (the running one by default)."""
        self._loop = loop or asyncio.get_running_loop()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Stop accepting new jobs. Queued jobs stay for the consumer."""
        if not self._closed:
            self._closed = True
            self.logger.info(f"Tagging queue closed with {self.qsize()} job(s) pending")

    def qsize(self) -> int:
        return self._queue.qsize()

    def enqueue(self, photo_id: int, absolute_file_path: Optional[str]) -> bool:
        """Queue a photo for tagging. Returns False when the job was dropped."""
        if not absolute_file_path or not absolute_file_path.strip():
            self.logger.debug(f"Skip AI tagging queue for photo {photo_id} because absolute path is empty")
            return False

        if self._closed:
            self.logger.info(f"Tagging queue is shutting down, dropping job for photo {photo_id}")
            return False

        job = TaggingJob(photo_id=photo_id, absolute_file_path=absolute_file_path)

        if self._loop is not None and not self._on_owner_loop():
            self._loop.call_soon_threadsafe(self._queue.put_nowait, job)
        else:
            self._queue.put_nowait(job)

        self.logger.debug(f"Enqueued AI tagging job for photo {photo_id}")
        return True

    async def get(self) -> TaggingJob:
        """Wait for the next job in FIFO order."""
        return await self._queue.get()

    def task_done(self) -> None:
        self._queue.task_done()

    async def join(self) -> None:
        """Wait until every queued job has been processed."""
        await self._queue.join()

    def _on_owner_loop(self) -> bool:
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False
