"""
Client for OpenAI-compatible vision chat-completion endpoints.
"""

import base64
import copy
import time
from typing import Any, Dict, List, Optional
import httpx
from .config import settings
from .logging import get_logger
from .performance_monitor import performance_monitor


class VisionClientError(Exception):
    """Custom exception for vision model API errors."""
    pass


class VisionClient:
    """Async client for a single model/credential pair.

    Calls are not retried: a failed call surfaces as ``VisionClientError``
    and the caller decides what an empty answer means.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        endpoint: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (endpoint or settings.ai_default_endpoint).rstrip("/")
        self.model = model
        self.timeout = timeout if timeout is not None else settings.model_request_timeout
        self.logger = get_logger("vision_client")

        self.client = httpx.AsyncClient(
            timeout=self.timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
        )

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        image_bytes: bytes,
        mime_type: str,
    ) -> Optional[str]:
        """Send the prompt with the image attached and return the reply text.

        The image is attached to the last user message as a base64 data URL.
        Returns the first non-blank text part of the first choice, or None
        when the model answered with nothing.
        """
        payload = {
            "model": self.model,
            "messages": self._attach_image(messages, image_bytes, mime_type),
        }

        response = await self._make_request("POST", "/chat/completions", json_data=payload)
        try:
            body = response.json()
            content = body["choices"][0]["message"].get("content")
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            raise VisionClientError(f"Unexpected completion payload: {e}")

        return self._first_text_part(content)

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        json_data: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Make one HTTP request and translate failures."""
        url = f"{self.base_url}{endpoint}"
        request_start = time.time()

        try:
            response = await self.client.request(method=method, url=url, json=json_data)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            performance_monitor.record_model_failure()
            raise VisionClientError(f"HTTP {e.response.status_code}: {e.response.text[:500]}")
        except httpx.TimeoutException as e:
            performance_monitor.record_model_failure()
            raise VisionClientError(f"Request timed out after {self.timeout}s: {e}")
        except httpx.RequestError as e:
            performance_monitor.record_model_failure()
            raise VisionClientError(f"Request failed: {e}")

        response_time = time.time() - request_start
        performance_monitor.record_model_call(response_time)
        self.logger.debug(f"{method} {url} -> {response.status_code} in {response_time:.2f}s")
        return response

    @staticmethod
    def _attach_image(messages: List[Dict[str, Any]], image_bytes: bytes, mime_type: str) -> List[Dict[str, Any]]:
        encoded = base64.b64encode(image_bytes).decode("ascii")
        image_part = {
            "type": "image_url",
            "image_url": {"url": f"data:{mime_type};base64,{encoded}"},
        }

        prepared = copy.deepcopy(messages)
        for message in reversed(prepared):
            if message.get("role") != "user":
                continue
            content = message.get("content")
            if isinstance(content, str):
                message["content"] = [{"type": "text", "text": content}, image_part]
            elif isinstance(content, list):
                content.append(image_part)
            else:
                message["content"] = [image_part]
            return prepared

        prepared.append({"role": "user", "content": [image_part]})
        return prepared

    @staticmethod
    def _first_text_part(content: Any) -> Optional[str]:
        """Message content is either a string or a list of typed parts."""
        if isinstance(content, str):
            return content if content.strip() else None

        if isinstance(content, list):
            for part in content:
                if isinstance(part, str):
                    text = part
                elif isinstance(part, dict):
                    text = part.get("text")
                else:
                    continue
                if isinstance(text, str) and text.strip():
                    return text

        return None

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
