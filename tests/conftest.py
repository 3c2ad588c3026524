"""Pytest fixtures: isolated config, sample images, fake HTTP responses and fake engines."""

import asyncio
import io
import logging

import pytest
from PIL import Image

from ocrchat.ai.schema import ENGINE_DESCRIPTORS, EngineId
from ocrchat.ai.vision_base import BaseRecognitionEngine
from ocrchat.core import config as config_module
from ocrchat.core.image import ImageArtifact

OPENAI_KEY = "sk-test-0123456789abcdefghij"
GEMINI_KEY = "AIzaSyTest0123456789abcdefgh"

_NO_JSON = object()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """No real config file or API keys leak into tests; cached config is cleared around each test."""
    monkeypatch.setenv("OCRCHAT_CONFIG", str(tmp_path / "missing.yml"))
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    config_module.reset_config()
    yield
    config_module.reset_config()
    root.handlers[:] = handlers
    root.setLevel(level)


def _image_bytes(fmt: str) -> bytes:
    buffered = io.BytesIO()
    Image.new("RGB", (8, 8), color=(255, 255, 255)).save(buffered, format=fmt)
    return buffered.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return _image_bytes("PNG")


@pytest.fixture
def jpeg_bytes() -> bytes:
    return _image_bytes("JPEG")


@pytest.fixture
def artifact(png_bytes):
    art = ImageArtifact(png_bytes, name="sample.png")
    yield art
    art.release()


class FakeResponse:
    """Stand-in for requests.Response: status_code, ok and json()."""

    def __init__(self, status_code: int = 200, body=_NO_JSON) -> None:
        self.status_code = status_code
        self._body = body

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self):
        if self._body is _NO_JSON:
            raise ValueError("No JSON object could be decoded")
        return self._body


@pytest.fixture
def make_response():
    """make_response(status_code=200, body=...) -> FakeResponse. Omit body for a non-JSON response."""
    return FakeResponse


class FakeEngine(BaseRecognitionEngine):
    """
    Scripted recognition engine.

    Returns `text`, or raises `error`. When `gate` (an asyncio.Event) is given, waits for it
    before finishing so tests can interleave jobs.
    """

    def __init__(self, engine_id=EngineId.tesseract, text="", error=None, progress_steps=(0.5,), gate=None):
        self.descriptor = ENGINE_DESCRIPTORS[EngineId(engine_id)]
        self.text = text
        self.error = error
        self.progress_steps = progress_steps
        self.gate = gate
        self.calls = 0

    async def recognize(self, artifact, credentials, progress=lambda f: None):
        self.require_credential(credentials)
        self.calls += 1
        for step in self.progress_steps:
            progress(step)
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture
def fake_engine_cls():
    return FakeEngine


class FakeTransport:
    """Records complete() calls; replies from `replies` in order, or raises `error`."""

    def __init__(self, replies=("ok",), error=None, gate=None):
        self.replies = list(replies)
        self.error = error
        self.gate = gate
        self.calls = []

    async def complete(self, api_key, system_text, turns, image=None):
        self.calls.append({"api_key": api_key, "system": system_text, "turns": list(turns), "image": image})
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.replies.pop(0) if self.replies else ""


@pytest.fixture
def fake_transport_cls():
    return FakeTransport
