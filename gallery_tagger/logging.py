"""
Logging configuration for the gallery AI-tagging service.
"""

import logging
from typing import Any, Dict
from rich.logging import RichHandler
from .config import settings


def setup_logging() -> None:
    """Configure clean, simple logging output."""

    # Configure standard library logging with Rich handler
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, settings.log_level),
        handlers=[RichHandler(
            rich_tracebacks=True,
            show_time=True,
            show_path=False,
            show_level=True,
            markup=False
        )],
        force=True  # Override any existing configuration
    )

    # Silence noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def get_logger(name: str):
    """Get a standard logger instance."""
    return logging.getLogger(name)


class MetricsLogger:
    """Logger for tracking tagging job outcomes."""

    def __init__(self):
        self.logger = get_logger("metrics")
        self.metrics: Dict[str, Any] = {
            "jobs_applied": 0,
            "jobs_noop": 0,
            "jobs_failed": 0,
            "tags_applied": 0,
            "suggestions_recorded": 0,
            "processing_time": 0.0,
        }

    def log_job_applied(self, photo_id: int, tags_count: int, suggestions_count: int, processing_time: float) -> None:
        """Log a job whose results were written to the photo."""
        self.metrics["jobs_applied"] += 1
        self.metrics["tags_applied"] += tags_count
        self.metrics["suggestions_recorded"] += suggestions_count
        self.metrics["processing_time"] += processing_time

        # Only log individual jobs at DEBUG level to avoid spam
        self.logger.debug(
            f"Photo tagged: {photo_id} | Tags: {tags_count} | Suggestions: {suggestions_count} | "
            f"Time: {processing_time:.3f}s | Total: {self.metrics['jobs_applied']} photos, "
            f"{self.metrics['tags_applied']} tags"
        )

    def log_job_noop(self, photo_id: int, processing_time: float) -> None:
        """Log a job that ended without changes."""
        self.metrics["jobs_noop"] += 1
        self.metrics["processing_time"] += processing_time

    def log_job_failure(self, photo_id: int, error: str) -> None:
        """Log a failed tagging job."""
        self.metrics["jobs_failed"] += 1

        # The worker already logged the traceback, keep this one short
        self.logger.warning(f"Tagging job failed: photo {photo_id} | Error: {error}")

    def get_metrics(self) -> Dict[str, Any]:
        """Get current metrics."""
        return self.metrics.copy()
