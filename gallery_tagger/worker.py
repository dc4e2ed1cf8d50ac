"""
Background worker that applies AI tags to queued photos.
"""

import asyncio
import time
from typing import Optional
from sqlalchemy.ext.asyncio import async_sessionmaker
from .config import settings
from .logging import get_logger, MetricsLogger
from .models import AiTaggingOptions, JobOutcome, JobProcessingResult, TaggingJob
from .performance_monitor import performance_monitor
from .store import PhotoTagStore
from .tag_generator import VisionTagGenerator
from .tagging_queue import TaggingQueue
from .vocabulary import build_vocabulary


class TaggingWorker:
    """Single consumer of the tagging queue.

    Jobs run strictly one at a time in FIFO order, so tag creation never
    races with another job. A failing job is logged and skipped; only
    cancellation ends the loop.
    """

    def __init__(
        self,
        queue: TaggingQueue,
        session_factory: async_sessionmaker,
        generator: Optional[VisionTagGenerator] = None,
        job_timeout: Optional[float] = None,
    ):
        self.logger = get_logger("worker")
        self.metrics = MetricsLogger()
        self.queue = queue
        self.session_factory = session_factory
        self.generator = generator or VisionTagGenerator()
        self.job_timeout = job_timeout if job_timeout is not None else settings.job_timeout
        self._task: Optional[asyncio.Task] = None

        # Progress tracking
        self.total_processed_jobs = 0
        self.total_applied_tags = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Spawn the consumer loop on the running event loop."""
        if self.is_running:
            return self._task
        self.queue.bind_loop()
        self._task = asyncio.create_task(self.run(), name="ai-tagging-worker")
        return self._task

    async def stop(self, timeout: Optional[float] = None) -> None:
        """Cancel the consumer loop and wait for it to exit."""
        if self._task is None:
            return

        timeout = timeout if timeout is not None else settings.shutdown_timeout
        self._task.cancel()
        try:
            await asyncio.wait_for(self._task, timeout=timeout)
        except asyncio.CancelledError:
            pass
        except asyncio.TimeoutError:
            self.logger.warning(f"⚠️  Tagging worker did not stop within {timeout}s")
        finally:
            self._task = None

    async def run(self) -> None:
        """Process jobs until cancelled."""
        self.logger.info("🚀 AI tagging worker started")
        try:
            while True:
                job = await self.queue.get()
                try:
                    await self.process_job(job)
                finally:
                    self.queue.task_done()
        except asyncio.CancelledError:
            self.logger.info(
                f"⏹️  AI tagging worker stopped: {self.total_processed_jobs} jobs processed, "
                f"{self.total_applied_tags} tags applied, {self.queue.qsize()} left in queue"
            )
            raise

    async def process_job(self, job: TaggingJob) -> JobProcessingResult:
        """Process one job. Only cancellation escapes."""
        start_time = time.time()
        result = JobProcessingResult(photo_id=job.photo_id, outcome=JobOutcome.NOOP)

        try:
            result = await asyncio.wait_for(self._apply(job), timeout=self.job_timeout)
        except asyncio.CancelledError:
            self.logger.debug(f"AI tagging job for photo {job.photo_id} abandoned during shutdown")
            raise
        except asyncio.TimeoutError:
            result.outcome = JobOutcome.FAILED
            result.error = f"timed out after {self.job_timeout}s"
            self.logger.error(f"❌ AI tagging job for photo {job.photo_id} timed out after {self.job_timeout}s")
        except Exception as e:
            result.outcome = JobOutcome.FAILED
            result.error = str(e)
            self.logger.error(
                f"❌ Failed to process AI tagging job for photo {job.photo_id} ({job.absolute_file_path})",
                exc_info=True,
            )

        processing_time = time.time() - start_time
        result.processing_time = processing_time
        self.total_processed_jobs += 1
        performance_monitor.record_job_processed(processing_time)

        if result.outcome == JobOutcome.APPLIED:
            self.total_applied_tags += len(result.selected)
            self.metrics.log_job_applied(
                job.photo_id, len(result.selected), len(result.suggested), processing_time
            )
        elif result.outcome == JobOutcome.FAILED:
            self.metrics.log_job_failure(job.photo_id, result.error or "unknown error")
        else:
            self.metrics.log_job_noop(job.photo_id, processing_time)

        return result

    async def _apply(self, job: TaggingJob) -> JobProcessingResult:
        """Load, generate, reconcile and commit for one photo."""
        noop = JobProcessingResult(photo_id=job.photo_id, outcome=JobOutcome.NOOP)

        async with self.session_factory() as session:
            store = PhotoTagStore(session)
            try:
                photo = await store.get_photo_with_tags(job.photo_id)
                if photo is None:
                    self.logger.warning(f"⚠️  Photo {job.photo_id} no longer exists while applying AI tags")
                    return noop

                ai_settings = await store.get_user_ai_settings(photo.user_id)
                if ai_settings is None or not ai_settings.has_api_key:
                    self.logger.debug(f"AI tagging not configured for user {photo.user_id}, skipping photo {photo.id}")
                    return noop

                vocabulary = await build_vocabulary(store, photo.user_id)
                options = AiTaggingOptions(
                    provider=ai_settings.provider,
                    api_key=ai_settings.api_key,
                    model=ai_settings.model,
                    endpoint=ai_settings.endpoint,
                    max_tags=settings.max_tags,
                    suggestion_limit=settings.suggestion_limit,
                    vocabulary=vocabulary,
                )

                generated = await self.generator.generate_tags(job.absolute_file_path, options)
                if generated.is_empty:
                    self.logger.debug(f"No AI tags generated for photo {photo.id}")
                    return noop

                applied = []
                if generated.selected:
                    applied = await store.replace_ai_tags(photo, generated.selected)

                recorded = []
                if generated.suggested:
                    recorded = await store.record_suggestions(photo.user_id, photo.id, generated.suggested)

                await store.commit()
            except BaseException:
                await store.rollback()
                raise

        self.logger.info(
            f"🏷️  AI tags applied to photo {job.photo_id}: {', '.join(applied) or '-'} | "
            f"pending suggestions: {', '.join(recorded) or '-'}"
        )
        return JobProcessingResult(
            photo_id=job.photo_id,
            outcome=JobOutcome.APPLIED,
            selected=applied,
            suggested=recorded,
        )
