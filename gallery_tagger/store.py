"""
Photo/tag store used by the tagging worker.
"""

from datetime import datetime
from typing import Iterable, List, Optional, Sequence
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .entities import AiTagSuggestion, Photo, PhotoTag, Tag, UserAiSetting
from .logging import get_logger
from .models import TagType, UserAiSettings
from .performance_monitor import performance_monitor

MAX_TAG_NAME_LENGTH = 50


class PhotoTagStore:
    """Queries and writes for one unit of work, bound to a single session."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.logger = get_logger("store")

    async def get_photo_with_tags(self, photo_id: int) -> Optional[Photo]:
        """Load a photo together with its tag associations."""
        result = await self.session.execute(
            select(Photo)
            .options(selectinload(Photo.photo_tags).selectinload(PhotoTag.tag))
            .where(Photo.id == photo_id)
        )
        return result.scalar_one_or_none()

    async def get_user_ai_settings(self, user_id: int) -> Optional[UserAiSettings]:
        """Get a snapshot of the user's AI settings, or None if never saved."""
        result = await self.session.execute(
            select(UserAiSetting).where(UserAiSetting.user_id == user_id)
        )
        row = result.scalar_one_or_none()
        if row is None:
            return None

        return UserAiSettings(
            user_id=row.user_id,
            provider=row.provider or "",
            model=row.model or "",
            endpoint=row.endpoint,
            api_key=row.api_key or "",
        )

    async def find_or_create_tag(self, name: str, tag_type: TagType) -> Tag:
        """Get an existing tag or create it if it doesn't exist."""
        if not self._is_valid_tag_name(name):
            raise ValueError(f"Invalid tag name: '{name}'")

        result = await self.session.execute(
            select(Tag).where(Tag.name == name, Tag.type == int(tag_type))
        )
        tag = result.scalar_one_or_none()
        if tag is not None:
            performance_monitor.record_tag_reused()
            return tag

        tag = Tag(name=name, type=int(tag_type))
        self.session.add(tag)
        # Flush so the next lookup in this unit of work sees the row
        await self.session.flush()
        performance_monitor.record_tag_created()
        self.logger.debug(f"Created {tag_type.name} tag '{name}'")
        return tag

    async def top_tag_names(self, user_id: int, types: Sequence[TagType], limit: int) -> List[str]:
        """Most used tag names on the user's photos, most frequent first."""
        if limit <= 0 or not types:
            return []

        usage = func.count(PhotoTag.photo_id)
        result = await self.session.execute(
            select(Tag.name, usage.label("usage"))
            .join(PhotoTag, PhotoTag.tag_id == Tag.id)
            .join(Photo, Photo.id == PhotoTag.photo_id)
            .where(Photo.user_id == user_id, Tag.type.in_([int(t) for t in types]))
            .group_by(Tag.name)
            .order_by(usage.desc(), Tag.name.asc())
            .limit(limit)
        )
        return [row.name for row in result]

    async def suggestion_exists(self, user_id: int, name: str) -> bool:
        result = await self.session.execute(
            select(AiTagSuggestion.id)
            .where(AiTagSuggestion.user_id == user_id, AiTagSuggestion.name == name)
            .limit(1)
        )
        return result.first() is not None

    async def insert_suggestion(self, user_id: int, photo_id: int, name: str) -> AiTagSuggestion:
        suggestion = AiTagSuggestion(
            user_id=user_id,
            photo_id=photo_id,
            name=name,
            created_at=datetime.utcnow(),
        )
        self.session.add(suggestion)
        performance_monitor.record_suggestion()
        return suggestion

    async def replace_ai_tags(self, photo: Photo, names: Iterable[str]) -> List[str]:
        """Make the photo's Ai-typed tags exactly ``names``.

        Associations to Ai tags outside ``names`` are removed, missing ones are
        added, and Manual/EXIF associations are left alone. Running it twice
        with the same names changes nothing the second time.

        Returns the names that ended up associated, in the given order.
        """
        wanted: List[str] = []
        for name in names:
            if name in wanted:
                continue
            if not self._is_valid_tag_name(name):
                self.logger.debug(f"Skipping invalid tag name: '{name}'")
                continue
            wanted.append(name)

        kept = {}
        for association in list(photo.photo_tags):
            tag = association.tag
            if tag is None or tag.type != int(TagType.AI):
                continue
            if tag.name in wanted and tag.name not in kept:
                kept[tag.name] = association
            else:
                photo.photo_tags.remove(association)

        for name in wanted:
            if name in kept:
                continue
            tag = await self.find_or_create_tag(name, TagType.AI)
            photo.photo_tags.append(PhotoTag(tag=tag))

        return wanted

    async def record_suggestions(self, user_id: int, photo_id: int, names: Iterable[str]) -> List[str]:
        """Insert suggestions the user does not have yet. Returns the new names."""
        recorded: List[str] = []
        for name in names:
            if name in recorded or not self._is_valid_tag_name(name):
                continue
            if await self.suggestion_exists(user_id, name):
                continue
            await self.insert_suggestion(user_id, photo_id, name)
            recorded.append(name)
        return recorded

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()

    @staticmethod
    def _is_valid_tag_name(name: Optional[str]) -> bool:
        """Check if a normalized tag name fits the tags table."""
        if not name or not name.strip():
            return False
        return len(name) <= MAX_TAG_NAME_LENGTH
