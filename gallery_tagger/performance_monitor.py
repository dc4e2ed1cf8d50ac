"""
Performance monitoring utilities for the gallery AI-tagging service.
"""

import time
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field
from .logging import get_logger


@dataclass
class PerformanceMetrics:
    """Performance metrics tracking."""

    # Vision model calls
    model_calls_total: int = 0
    model_call_failures: int = 0
    model_response_times: List[float] = field(default_factory=list)

    # Tag operations
    tags_created: int = 0
    tags_reused: int = 0
    suggestions_recorded: int = 0

    # Job processing
    jobs_processed: int = 0
    total_processing_time: float = 0.0
    average_processing_time: Optional[float] = None

    def update_averages(self):
        """Update calculated averages."""
        if self.jobs_processed > 0:
            self.average_processing_time = self.total_processing_time / self.jobs_processed

    def get_average_model_time(self) -> float:
        """Average latency of successful model calls, in seconds."""
        if not self.model_response_times:
            return 0.0
        return sum(self.model_response_times) / len(self.model_response_times)

    def get_tag_reuse_rate(self) -> float:
        """Share of applied tags that matched an existing row, as a percentage."""
        total = self.tags_created + self.tags_reused
        if total == 0:
            return 0.0
        return (self.tags_reused / total) * 100

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to dictionary for logging."""
        self.update_averages()
        return {
            "model_calls_total": self.model_calls_total,
            "model_call_failures": self.model_call_failures,
            "average_model_time": round(self.get_average_model_time(), 3),
            "tags_created": self.tags_created,
            "tags_reused": self.tags_reused,
            "tag_reuse_rate_percent": round(self.get_tag_reuse_rate(), 2),
            "suggestions_recorded": self.suggestions_recorded,
            "jobs_processed": self.jobs_processed,
            "average_processing_time": round(self.average_processing_time or 0, 3),
        }


class PerformanceMonitor:
    """Performance monitoring and metrics collection."""

    def __init__(self):
        self.logger = get_logger("performance")
        self.metrics = PerformanceMetrics()
        self.start_time = time.time()

    def record_model_call(self, response_time: float):
        """Record a successful vision model call."""
        self.metrics.model_calls_total += 1
        self.metrics.model_response_times.append(response_time)

    def record_model_failure(self):
        """Record a failed vision model call."""
        self.metrics.model_calls_total += 1
        self.metrics.model_call_failures += 1

    def record_tag_created(self):
        """Record a tag creation."""
        self.metrics.tags_created += 1

    def record_tag_reused(self):
        """Record an existing tag being reused."""
        self.metrics.tags_reused += 1

    def record_suggestion(self):
        """Record a new suggestion row."""
        self.metrics.suggestions_recorded += 1

    def record_job_processed(self, processing_time: float):
        """Record tagging job completion."""
        self.metrics.jobs_processed += 1
        self.metrics.total_processing_time += processing_time

    def get_runtime_seconds(self) -> float:
        """Get total runtime in seconds."""
        return time.time() - self.start_time

    def log_performance_summary(self):
        """Log a summary of performance metrics."""
        runtime = self.get_runtime_seconds()
        metrics_dict = self.metrics.to_dict()

        self.logger.info(
            f"📈 Performance Summary: Runtime {runtime:.1f}s, "
            f"Jobs {metrics_dict['jobs_processed']}, "
            f"Model calls {metrics_dict['model_calls_total']} "
            f"({metrics_dict['model_call_failures']} failed, avg {metrics_dict['average_model_time']:.2f}s), "
            f"Tag reuse rate {metrics_dict['tag_reuse_rate_percent']:.1f}%"
        )

    def get_metrics_dict(self) -> Dict[str, Any]:
        """Get all metrics as a dictionary."""
        runtime = self.get_runtime_seconds()
        metrics_dict = self.metrics.to_dict()
        metrics_dict["runtime_seconds"] = round(runtime, 2)
        return metrics_dict

    def reset(self):
        """Start a fresh measurement window."""
        self.metrics = PerformanceMetrics()
        self.start_time = time.time()


# Global performance monitor instance
performance_monitor = PerformanceMonitor()
