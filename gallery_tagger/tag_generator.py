"""
AI tag generation for gallery photos using a vision language model.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
from .config import settings
from .logging import get_logger
from .models import AiTaggingOptions, AiTaggingResult
from .response_parser import parse_response_with_mode
from .vision_client import VisionClient
from .vocabulary import merge_vocabulary

DEFAULT_MAX_TAGS = 3
DEFAULT_SUGGESTION_LIMIT = 5
VOCABULARY_PROMPT_LIMIT = 200

MIME_TYPES = {
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".heic": "image/heic",
}

SYSTEM_PROMPT_TEMPLATE = (
    "你是一位资深图片策展人与视觉分类专家。请只输出能够精确描述主要主体、关键场景元素或鲜明情绪的中文名词标签，"
    "每个标签不超过 6 个汉字，避免如“自然”“风景”等泛泛词汇。\n"
    "只输出一个 JSON 对象，格式为 {{\"selected\": [...], \"suggested\": [...]}}，不得包含解释、序号或额外文本。\n"
    "selected：按重要性给出 1 到 {max_tags} 个你有把握的唯一标签，优先从下方词表中选择完全一致的词，"
    "只有词表中没有合适的词时才使用新词。\n"
    "suggested：最多 {suggestion_limit} 个词表中没有、但值得用户收录的新标签；没有则给出空数组。\n"
    "{vocabulary_section}"
)

VOCABULARY_SECTION = "词表：{vocabulary}\n"
EMPTY_VOCABULARY_SECTION = "（当前没有可用词表，请直接给出最贴切的标签。）\n"

USER_PROMPT = (
    "Inspect this image and return only the JSON object described above. "
    "Reuse vocabulary tags whenever they fit; reply {\"selected\": [], \"suggested\": []} "
    "if no meaningful subject is visible."
)


def get_mime_type(file_path: str) -> str:
    """MIME type from the file extension, defaulting to JPEG."""
    return MIME_TYPES.get(Path(file_path).suffix.lower(), "image/jpeg")


def normalize_options(options: AiTaggingOptions) -> AiTaggingOptions:
    """Fully populated copy of ``options`` with blanks defaulted and limits clamped."""
    provider = (options.provider or "").strip() or settings.ai_default_provider
    model = (options.model or "").strip() or settings.ai_default_model
    endpoint = (options.endpoint or "").strip().rstrip("/") or None

    return AiTaggingOptions(
        provider=provider,
        api_key=(options.api_key or "").strip(),
        model=model,
        endpoint=endpoint,
        max_tags=options.max_tags if options.max_tags and options.max_tags >= 1 else DEFAULT_MAX_TAGS,
        suggestion_limit=(
            options.suggestion_limit
            if options.suggestion_limit and options.suggestion_limit >= 1
            else DEFAULT_SUGGESTION_LIMIT
        ),
        vocabulary=merge_vocabulary(options.vocabulary or ()),
    )


def build_prompt_messages(options: AiTaggingOptions) -> List[Dict[str, Any]]:
    """System instruction plus the user task. The image is attached by the client."""
    if options.vocabulary:
        vocabulary = list(options.vocabulary[:VOCABULARY_PROMPT_LIMIT])
        vocabulary_section = VOCABULARY_SECTION.format(
            vocabulary=json.dumps(vocabulary, ensure_ascii=False)
        )
    else:
        vocabulary_section = EMPTY_VOCABULARY_SECTION

    system_prompt = SYSTEM_PROMPT_TEMPLATE.format(
        max_tags=options.max_tags,
        suggestion_limit=options.suggestion_limit,
        vocabulary_section=vocabulary_section,
    )

    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": USER_PROMPT},
    ]


def default_client_factory(options: AiTaggingOptions) -> VisionClient:
    return VisionClient(
        api_key=options.api_key,
        model=options.model,
        endpoint=options.endpoint,
    )


class VisionTagGenerator:
    """Generates selected and suggested tags for one image file."""

    def __init__(self, client_factory: Optional[Callable[[AiTaggingOptions], VisionClient]] = None):
        self.logger = get_logger("tag_generator")
        self.client_factory = client_factory or default_client_factory

    async def generate_tags(self, absolute_file_path: str, options: AiTaggingOptions) -> AiTaggingResult:
        """Ask the model for tags. Never raises for missing input or model failures."""
        options = normalize_options(options)

        if not options.api_key:
            self.logger.debug("AI tagging skipped because API key is missing")
            return AiTaggingResult.empty()

        path = Path(absolute_file_path)
        if not path.is_file():
            self.logger.warning(f"⚠️  AI tagging skipped because file {absolute_file_path} cannot be found")
            return AiTaggingResult.empty()

        try:
            image_data = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            self.logger.warning(f"⚠️  AI tagging skipped because file {absolute_file_path} cannot be read: {e}")
            return AiTaggingResult.empty()

        messages = build_prompt_messages(options)
        mime_type = get_mime_type(absolute_file_path)

        try:
            async with self.client_factory(options) as client:
                text = await client.complete(messages, image_data, mime_type)
        except Exception:
            self.logger.error(
                f"❌ {options.provider} vision tagging failed for {absolute_file_path} (model {options.model})",
                exc_info=True,
            )
            return AiTaggingResult.empty()

        result, mode = parse_response_with_mode(text, options.max_tags, options.suggestion_limit)
        self.logger.debug(
            f"Model reply parsed as {mode.value}: selected={list(result.selected)} "
            f"suggested={list(result.suggested)}"
        )
        return result
