"""
Parser for vision-model replies.

Model output is unreliable free text. Parsing degrades through a fixed
sequence of attempts and never raises:

1. Structured: the ``{...}`` fragment is a JSON object with optional
   ``selected`` / ``suggested`` arrays.
2. Bare array: the ``[...]`` fragment is a JSON array; every element is a
   selected tag.
3. Free text: the text (or the inside of its ``[...]``) is split on common
   ASCII and full-width separators; every token is a selected tag.

The first attempt that yields tags wins. If some JSON fragment parsed but
held no usable tags the model answered "nothing", and free-text splitting
is not attempted.
"""

import json
import re
from enum import Enum
from typing import Any, Iterable, List, Optional, Tuple

from .models import AiTaggingResult
from .normalizer import normalize_tag

SEPARATORS = re.compile(r"[,\n;|，、]")
TRAILING_COMMA = re.compile(r",\s*([\]}])")


class ParseMode(str, Enum):
    """Which attempt produced a parse result."""
    STRUCTURED = "structured"
    BARE_ARRAY = "bare_array"
    FREE_TEXT = "free_text"
    EMPTY = "empty"


def parse_response(raw_text: Optional[str], max_tags: int, suggestion_limit: int) -> AiTaggingResult:
    """Parse raw model text into selected and suggested tags."""
    result, _ = parse_response_with_mode(raw_text, max_tags, suggestion_limit)
    return result


def parse_response_with_mode(
    raw_text: Optional[str],
    max_tags: int,
    suggestion_limit: int,
) -> Tuple[AiTaggingResult, ParseMode]:
    """Same as :func:`parse_response`, also reporting which attempt succeeded."""
    if raw_text is None or not raw_text.strip():
        return AiTaggingResult.empty(), ParseMode.EMPTY

    max_tags = max(max_tags, 0)
    suggestion_limit = max(suggestion_limit, 0)
    parsed_any_json = False

    obj = _load_fragment(_between(raw_text, "{", "}", inclusive=True))
    if isinstance(obj, dict):
        parsed_any_json = True
        selected = _collect(_field(obj, "selected"), max_tags)
        suggested = _collect(_field(obj, "suggested"), suggestion_limit)
        if selected or suggested:
            return AiTaggingResult(selected=selected, suggested=suggested), ParseMode.STRUCTURED

    array = _load_fragment(_between(raw_text, "[", "]", inclusive=True))
    if isinstance(array, list):
        parsed_any_json = True
        selected = _collect(array, max_tags)
        if selected:
            return AiTaggingResult(selected=selected), ParseMode.BARE_ARRAY

    if parsed_any_json:
        return AiTaggingResult.empty(), ParseMode.EMPTY

    text = _between(raw_text, "[", "]", inclusive=False)
    if text is None:
        text = raw_text
    selected = _collect(SEPARATORS.split(text), max_tags)
    if selected:
        return AiTaggingResult(selected=selected), ParseMode.FREE_TEXT

    return AiTaggingResult.empty(), ParseMode.EMPTY


def _between(text: str, opening: str, closing: str, inclusive: bool) -> Optional[str]:
    """Substring from the first ``opening`` to the last ``closing``."""
    start = text.find(opening)
    end = text.rfind(closing)
    if start < 0 or end <= start:
        return None
    if inclusive:
        return text[start:end + 1]
    return text[start + 1:end]


def _load_fragment(fragment: Optional[str]) -> Any:
    if fragment is None:
        return None
    try:
        return json.loads(TRAILING_COMMA.sub(r"\1", fragment))
    except (ValueError, RecursionError):
        return None


def _field(obj: dict, name: str) -> Any:
    """Case-insensitive key lookup."""
    if name in obj:
        return obj[name]
    for key, value in obj.items():
        if isinstance(key, str) and key.lower() == name:
            return value
    return None


def _collect(values: Any, limit: int) -> List[str]:
    """Normalize, de-duplicate and cap candidate tags, keeping their order."""
    if not isinstance(values, (list, tuple)) or limit <= 0:
        return []

    collected: List[str] = []
    seen = set()
    for value in _candidates(values):
        tag = normalize_tag(value)
        key = tag.casefold()
        if not tag or key in seen:
            continue
        seen.add(key)
        collected.append(tag)
        if len(collected) >= limit:
            break
    return collected


def _candidates(values: Iterable[Any]) -> Iterable[str]:
    for value in values:
        # bool is an int subclass but never a tag
        if isinstance(value, bool):
            continue
        if isinstance(value, str):
            yield value
        elif isinstance(value, (int, float)):
            yield str(value)
