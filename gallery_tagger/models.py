"""
Data models for the gallery AI-tagging service.
"""

from enum import Enum, IntEnum
from typing import List, Optional, Dict, Any, Tuple
from datetime import datetime
from pydantic import BaseModel, Field


class TagType(IntEnum):
    """Origin of a tag, stored as an integer column."""
    MANUAL = 0
    AI = 1
    EXIF = 2


class TaggingJob(BaseModel):
    """One photo waiting for AI tags."""
    photo_id: int
    absolute_file_path: str

    class Config:
        frozen = True


class AiTaggingOptions(BaseModel):
    """Per-invocation configuration for the tag generator."""
    provider: str = "OpenAI"
    api_key: str = ""
    model: str = "gpt-4o-mini"
    endpoint: Optional[str] = None
    max_tags: int = 3
    suggestion_limit: int = 5
    vocabulary: Tuple[str, ...] = ()

    class Config:
        frozen = True


class AiTaggingResult(BaseModel):
    """Normalized tags produced for one photo."""
    selected: Tuple[str, ...] = ()
    suggested: Tuple[str, ...] = ()

    class Config:
        frozen = True

    @classmethod
    def empty(cls) -> "AiTaggingResult":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.selected and not self.suggested


class UserAiSettings(BaseModel):
    """Snapshot of a user's persisted vision-model settings."""
    user_id: int
    provider: str = "OpenAI"
    model: str = "gpt-4o-mini"
    endpoint: Optional[str] = None
    api_key: str = ""

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key and self.api_key.strip())


class JobOutcome(str, Enum):
    """Terminal state of a tagging job."""
    APPLIED = "applied"
    NOOP = "noop"
    FAILED = "failed"


class JobProcessingResult(BaseModel):
    """Result of processing one tagging job."""
    photo_id: int
    outcome: JobOutcome
    selected: List[str] = []
    suggested: List[str] = []
    processing_time: float = 0.0
    error: Optional[str] = None


class EnqueueRequest(BaseModel):
    """Body of the job submission endpoint."""
    photo_id: int = Field(gt=0)
    file_path: str


class HealthStatus(BaseModel):
    """Health check response."""
    status: str = "healthy"
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    version: str = "1.0.0"
    metrics: Dict[str, Any] = {}
