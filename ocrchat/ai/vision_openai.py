"""Remote text recognition with an OpenAI vision model (chat completions API)."""

import asyncio
import logging
from typing import Any

from ocrchat.ai.http import DEFAULT_TIMEOUT_SECONDS, ProviderClient
from ocrchat.ai.schema import ENGINE_DESCRIPTORS, EngineId
from ocrchat.ai.vision_base import (
    OCR_PROMPT,
    REQUEST_SENT_PROGRESS,
    RESPONSE_RECEIVED_PROGRESS,
    BaseRecognitionEngine,
    ProgressSink,
    _ignore_progress,
)
from ocrchat.core.credentials import Credentials
from ocrchat.core.image import ImageArtifact

_log = logging.getLogger(__name__)

PROVIDER_NAME = "OpenAI"
DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o"


def parse_choice_text(data: Any) -> str:
    """Return choices[0].message.content, or "" when the body doesn't have that shape."""
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""
    return content if isinstance(content, str) else ""


class OpenAIVisionEngine(BaseRecognitionEngine):
    """Sends the image as an image_url part together with the OCR prompt."""

    descriptor = ENGINE_DESCRIPTORS[EngineId.gpt4_vision]

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        max_tokens: int = 4096,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        client: ProviderClient | None = None,
    ) -> None:
        self.model = model
        self._url = f"{base_url.rstrip('/')}/chat/completions"
        self._max_tokens = max_tokens
        self._client = client or ProviderClient(PROVIDER_NAME, timeout_seconds)

    def build_payload(self, artifact: ImageArtifact) -> dict:
        return {
            "model": self.model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": OCR_PROMPT},
                        {"type": "image_url", "image_url": {"url": artifact.data_uri}},
                    ],
                }
            ],
            "max_tokens": self._max_tokens,
        }

    async def recognize(
        self,
        artifact: ImageArtifact,
        credentials: Credentials,
        progress: ProgressSink = _ignore_progress,
    ) -> str:
        api_key = self.require_credential(credentials)
        payload = self.build_payload(artifact)
        progress(REQUEST_SENT_PROGRESS)
        data = await asyncio.to_thread(
            self._client.post_json,
            self._url,
            payload,
            headers={"Authorization": f"Bearer {api_key}"},
        )
        progress(RESPONSE_RECEIVED_PROGRESS)
        text = parse_choice_text(data)
        if not text:
            _log.info("%s returned no text for %r", PROVIDER_NAME, artifact)
        return text.strip()
