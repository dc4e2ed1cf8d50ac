"""
Shared fixtures: an in-memory gallery database and a scripted tag generator.
"""

import asyncio
from collections import defaultdict
from typing import Dict, List, Optional

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.pool import StaticPool

from gallery_tagger.database import create_engine, create_session_factory, init_db
from gallery_tagger.entities import Photo, PhotoTag, User, UserAiSetting
from gallery_tagger.models import AiTaggingResult, TagType
from gallery_tagger.store import PhotoTagStore


class FakeGenerator:
    """Stand-in for VisionTagGenerator that replays scripted answers.

    Each scripted item is either an ``AiTaggingResult`` or an exception to
    raise. Once the script runs out the generator answers with an empty result.
    """

    def __init__(self, *script, delay: float = 0.0):
        self.script = list(script)
        self.delay = delay
        self.calls = []

    async def generate_tags(self, absolute_file_path, options):
        self.calls.append((absolute_file_path, options))
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self.script:
            return AiTaggingResult.empty()
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class GalleryFactory:
    """Seeds and inspects gallery rows, one committed session per call."""

    def __init__(self, session_factory):
        self.session_factory = session_factory
        self._users = 0

    async def create_user(self, api_key: Optional[str] = "sk-test", endpoint: Optional[str] = None) -> int:
        """Create a user; ``api_key=None`` means the user never saved AI settings."""
        self._users += 1
        async with self.session_factory() as session:
            user = User(username=f"user{self._users}", email=f"user{self._users}@example.com")
            if api_key is not None:
                user.ai_setting = UserAiSetting(model="gpt-4o-mini", endpoint=endpoint, api_key=api_key)
            session.add(user)
            await session.commit()
            return user.id

    async def create_photo(self, user_id: int, file_path: str = "/photos/a.jpg") -> int:
        async with self.session_factory() as session:
            photo = Photo(user_id=user_id, file_path=file_path)
            session.add(photo)
            await session.commit()
            return photo.id

    async def attach_tag(self, photo_id: int, name: str, tag_type: TagType = TagType.MANUAL) -> None:
        async with self.session_factory() as session:
            store = PhotoTagStore(session)
            photo = await store.get_photo_with_tags(photo_id)
            tag = await store.find_or_create_tag(name, tag_type)
            photo.photo_tags.append(PhotoTag(tag=tag))
            await store.commit()

    async def tags_of(self, photo_id: int) -> Dict[TagType, List[str]]:
        """Tag names on the photo grouped by type, sorted."""
        async with self.session_factory() as session:
            photo = await PhotoTagStore(session).get_photo_with_tags(photo_id)
            grouped = defaultdict(list)
            for association in photo.photo_tags:
                grouped[association.tag.tag_type].append(association.tag.name)
            return {tag_type: sorted(names) for tag_type, names in grouped.items()}

    async def count(self, entity) -> int:
        async with self.session_factory() as session:
            result = await session.execute(select(func.count()).select_from(entity))
            return result.scalar_one()

    async def delete(self, entity, row_id) -> None:
        async with self.session_factory() as session:
            row = await session.get(entity, row_id)
            await session.delete(row)
            await session.commit()

    async def all(self, entity):
        async with self.session_factory() as session:
            result = await session.execute(select(entity))
            return list(result.scalars())


@pytest_asyncio.fixture
async def engine():
    """In-memory SQLite shared by every session of one test."""
    engine = create_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def gallery(session_factory):
    return GalleryFactory(session_factory)


@pytest.fixture
def image_file(tmp_path):
    """A small file with a JPEG signature; the fake model never decodes it."""
    path = tmp_path / "photo.jpg"
    path.write_bytes(b"\xff\xd8\xff\xe0" + b"\x00" * 64)
    return path


@pytest.fixture
def fake_generator():
    """Factory for scripted generators."""
    return FakeGenerator
