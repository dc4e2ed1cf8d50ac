"""
Candidate tag vocabulary offered to the vision model.

The vocabulary is advisory: it nudges the model toward tags the user
already has instead of near-duplicates it would otherwise invent.
"""

from typing import Iterable, Optional, Tuple

from .config import settings
from .logging import get_logger
from .models import TagType

logger = get_logger("vocabulary")

DEFAULT_VOCABULARY: Tuple[str, ...] = (
    "人物", "人像", "自拍", "合影", "儿童", "宠物", "猫", "狗", "鸟", "花卉",
    "树木", "草地", "森林", "山峰", "雪山", "湖泊", "河流", "海滩", "大海", "天空",
    "云朵", "日出", "日落", "夜景", "星空", "城市", "街道", "建筑", "桥梁", "室内",
    "家居", "美食", "饮品", "甜点", "水果", "汽车", "自行车", "火车", "飞机", "船只",
    "运动", "音乐会", "婚礼", "生日", "节日", "旅行", "办公室", "书籍", "文档", "截图",
)

PERSONAL_TAG_TYPES = (TagType.MANUAL, TagType.EXIF)


def merge_vocabulary(*sources: Iterable[str]) -> Tuple[str, ...]:
    """Concatenate sources, dropping blanks and case-insensitive repeats.

    First occurrence wins, so earlier sources take precedence.
    """
    merged = []
    seen = set()
    for source in sources:
        for entry in source:
            if entry is None:
                continue
            name = entry.strip()
            key = name.casefold()
            if not name or key in seen:
                continue
            seen.add(key)
            merged.append(name)
    return tuple(merged)


async def build_vocabulary(store, user_id: int, personal_limit: Optional[int] = None) -> Tuple[str, ...]:
    """Default vocabulary followed by the user's most used Manual/EXIF tags."""
    if personal_limit is None:
        personal_limit = settings.vocabulary_personal_limit

    personal = await store.top_tag_names(user_id, PERSONAL_TAG_TYPES, personal_limit)
    vocabulary = merge_vocabulary(DEFAULT_VOCABULARY, personal)

    logger.debug(
        f"Vocabulary for user {user_id}: {len(DEFAULT_VOCABULARY)} defaults + "
        f"{len(vocabulary) - len(DEFAULT_VOCABULARY)} personal"
    )
    return vocabulary
