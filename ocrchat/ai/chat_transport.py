"""Remote chat transport: one OpenAI chat completions round trip per call."""

import asyncio
from typing import Any, Sequence

from ocrchat.ai.http import DEFAULT_TIMEOUT_SECONDS, ProviderClient
from ocrchat.ai.schema import ChatTurn
from ocrchat.ai.vision_openai import DEFAULT_BASE_URL, DEFAULT_MODEL, PROVIDER_NAME, parse_choice_text
from ocrchat.core.config import Settings


def build_messages(
    system_text: str, turns: Sequence[ChatTurn], image: str | None = None
) -> list[dict[str, Any]]:
    """
    Assemble the messages array: system turn, then turns in order.

    When image is given, the last turn becomes a [text, image_url] composite; every other turn
    is sent as plain string content.
    """
    messages: list[dict[str, Any]] = [{"role": "system", "content": system_text}]
    last = len(turns) - 1
    for i, turn in enumerate(turns):
        if i == last and image:
            content: Any = [
                {"type": "text", "text": turn.content},
                {"type": "image_url", "image_url": {"url": image}},
            ]
        else:
            content = turn.content
        messages.append({"role": turn.role.value, "content": content})
    return messages


class OpenAIChatTransport:
    """Sends a conversation to the chat completions endpoint and returns the assistant text."""

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        max_tokens: int = 1000,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        client: ProviderClient | None = None,
    ) -> None:
        self.model = model
        self._url = f"{base_url.rstrip('/')}/chat/completions"
        self._max_tokens = max_tokens
        self._client = client or ProviderClient(PROVIDER_NAME, timeout_seconds)

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpenAIChatTransport":
        return cls(
            model=settings.openai_chat_model,
            base_url=settings.openai_base_url,
            max_tokens=settings.chat_max_tokens,
            timeout_seconds=settings.request_timeout_seconds,
        )

    async def complete(
        self,
        api_key: str,
        system_text: str,
        turns: Sequence[ChatTurn],
        image: str | None = None,
    ) -> str:
        """Return the assistant's reply ("" for a malformed body). Raises TransportError."""
        payload = {
            "model": self.model,
            "messages": build_messages(system_text, turns, image),
            "max_tokens": self._max_tokens,
        }
        data = await asyncio.to_thread(
            self._client.post_json,
            self._url,
            payload,
            headers={"Authorization": f"Bearer {api_key}"},
        )
        return parse_choice_text(data)
