"""Remote text recognition with Google Gemini (generateContent API, key as query parameter)."""

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
from ocrchat.core.errors import InvalidInputError
from ocrchat.core.image import ImageArtifact

_log = logging.getLogger(__name__)

PROVIDER_NAME = "Gemini"
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-1.5-flash"


def split_data_uri(data_uri: str) -> tuple[str, str]:
    """Split 'data:<mime>;base64,<payload>' into (mime, payload)."""
    header, sep, payload = data_uri.partition(",")
    if not sep or not header.startswith("data:") or not header.endswith(";base64"):
        raise InvalidInputError("Malformed image data URI.")
    mime_type = header[len("data:") : -len(";base64")]
    return mime_type, payload


def parse_candidate_text(data: Any) -> str:
    """Return candidates[0].content.parts[0].text, or "" when the body doesn't have that shape."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return ""
    return text if isinstance(text, str) else ""


class GeminiVisionEngine(BaseRecognitionEngine):
    """Sends the image as inline_data next to the OCR prompt."""

    descriptor = ENGINE_DESCRIPTORS[EngineId.gemini_vision]

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        client: ProviderClient | None = None,
    ) -> None:
        self.model = model
        self._url = f"{base_url.rstrip('/')}/models/{model}:generateContent"
        self._client = client or ProviderClient(PROVIDER_NAME, timeout_seconds)

    def build_payload(self, artifact: ImageArtifact) -> dict:
        mime_type, b64 = split_data_uri(artifact.data_uri)
        return {
            "contents": [
                {
                    "parts": [
                        {"text": OCR_PROMPT},
                        {"inline_data": {"mime_type": mime_type, "data": b64}},
                    ]
                }
            ]
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
            params={"key": api_key},
        )
        progress(RESPONSE_RECEIVED_PROGRESS)
        text = parse_candidate_text(data)
        if not text:
            _log.info("%s returned no text for %r", PROVIDER_NAME, artifact)
        return text.strip()
