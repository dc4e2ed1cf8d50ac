"""
HTTP surface for the gallery AI-tagging service: job submission, health and metrics.
"""

import json
from datetime import datetime
from typing import Optional
import psutil
from aiohttp import web
from pydantic import ValidationError
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine
from . import __version__
from .config import settings
from .logging import get_logger
from .models import EnqueueRequest, HealthStatus
from .performance_monitor import performance_monitor
from .tagging_queue import TaggingQueue
from .worker import TaggingWorker


class TaggingServer:
    """aiohttp application wired to the queue, the worker and the database."""

    def __init__(self, queue: TaggingQueue, worker: TaggingWorker, engine: AsyncEngine):
        self.queue = queue
        self.worker = worker
        self.engine = engine
        self.logger = get_logger("server")
        self.app = web.Application()
        self.setup_routes()

    def setup_routes(self):
        """Setup HTTP routes."""
        self.app.router.add_post("/api/tagging-jobs", self.enqueue_handler)
        self.app.router.add_get("/health", self.health_handler)
        self.app.router.add_get("/metrics", self.metrics_handler)
        self.app.router.add_get("/", self.root_handler)

    async def enqueue_handler(self, request):
        """Queue a photo for tagging. Answers before any tagging happens."""
        try:
            payload = await request.json()
        except ValueError:
            return web.json_response({"error": "Request body must be JSON"}, status=400)

        try:
            body = EnqueueRequest.parse_obj(payload)
        except ValidationError as e:
            return web.json_response(
                {"error": "Invalid tagging job", "details": e.errors()}, status=400, dumps=_dumps
            )

        queued = self.queue.enqueue(body.photo_id, body.file_path)
        return web.json_response(
            {"photo_id": body.photo_id, "queued": queued, "queue_depth": self.queue.qsize()},
            status=202,
        )

    async def _database_ok(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            self.logger.warning(f"⚠️  Database health check failed: {e}")
            return False

    async def health_handler(self, request):
        """Health check endpoint."""
        database_ok = await self._database_ok()
        worker_ok = self.worker.is_running
        healthy = database_ok and worker_ok

        health_status = HealthStatus(
            status="healthy" if healthy else "unhealthy",
            version=__version__,
            metrics={
                "database": "ok" if database_ok else "unavailable",
                "worker": "running" if worker_ok else "stopped",
                "queue_depth": self.queue.qsize(),
                "queue_closed": self.queue.closed,
            },
        )

        return web.json_response(
            health_status.dict(),
            status=200 if healthy else 503,
            dumps=_dumps,
        )

    async def metrics_handler(self, request):
        """Metrics endpoint."""
        metrics = {
            "jobs": self.worker.metrics.get_metrics(),
            "performance": performance_monitor.get_metrics_dict(),
            "progress": {
                "total_processed": self.worker.total_processed_jobs,
                "total_tags_applied": self.worker.total_applied_tags,
                "queue_depth": self.queue.qsize(),
            },
            "system": {
                "cpu_percent": psutil.cpu_percent(),
                "memory_percent": psutil.virtual_memory().percent,
            },
        }
        return web.json_response(metrics)

    async def root_handler(self, request):
        """Root endpoint with service information."""
        info = {
            "service": "Gallery AI Tagger",
            "version": __version__,
            "endpoints": {
                "POST /api/tagging-jobs": "Queue a photo for AI tagging",
                "/health": "Health check endpoint",
                "/metrics": "Processing metrics",
                "/": "Service information",
            },
            "timestamp": datetime.utcnow().isoformat(),
        }

        return web.json_response(info)

    async def start(self, host: Optional[str] = None, port: Optional[int] = None) -> web.AppRunner:
        """Start serving HTTP."""
        runner = web.AppRunner(self.app)
        await runner.setup()

        host = host or settings.api_host
        port = port if port is not None else settings.api_port
        site = web.TCPSite(runner, host, port)
        await site.start()

        self.logger.info(f"HTTP server started on {host}:{port}")
        return runner

    async def stop(self, runner: web.AppRunner):
        """Stop serving HTTP."""
        await runner.cleanup()
        self.logger.info("HTTP server stopped")


def _dumps(obj) -> str:
    return json.dumps(obj, default=str)
