"""Tests for SessionController: image ownership, job superseding, engine re-selection."""

import asyncio

import pytest

from ocrchat.ai.schema import EngineId, Role
from ocrchat.controller import SessionController
from ocrchat.core.config import Settings
from ocrchat.core.credentials import Credentials
from ocrchat.core.errors import InvalidInputError, TransportError
from ocrchat.core.image import ImageArtifact
from ocrchat.ocr.job import JobState
from tests.conftest import GEMINI_KEY, OPENAI_KEY

pytestmark = [pytest.mark.fast]


def _controller(engines, transport, **settings_kwargs):
    """Controller whose engine factory hands out engines[engine_id] (a list is consumed in order)."""

    def factory(engine_id):
        engine = engines[engine_id]
        return engine.pop(0) if isinstance(engine, list) else engine

    settings = Settings(openai_api_key=OPENAI_KEY, gemini_api_key=GEMINI_KEY, **settings_kwargs)
    return SessionController(settings, engine_factory=factory, transport=transport)


def test_process_sets_grounding_text(artifact, fake_engine_cls, fake_transport_cls):
    transport = fake_transport_cls()
    controller = _controller({EngineId.tesseract: fake_engine_cls(text="Hallo")}, transport)
    controller.load_image(artifact)
    job = asyncio.run(controller.process())

    assert job.state == JobState.succeeded
    assert controller.extracted_text == "Hallo"
    asyncio.run(controller.ask("What does it say?"))
    assert '"Hallo"' in transport.calls[0]["system"]
    assert transport.calls[0]["image"] == artifact.data_uri


def test_failed_job_leaves_no_grounding(artifact, fake_engine_cls, fake_transport_cls):
    controller = _controller(
        {EngineId.tesseract: fake_engine_cls(error=TransportError("nope"))}, fake_transport_cls()
    )
    controller.load_image(artifact)
    job = asyncio.run(controller.process())
    assert job.state == JobState.failed
    assert controller.extracted_text == ""
    assert controller.chat.grounding_text == ""


def test_empty_result_grounds_with_fallback(artifact, fake_engine_cls, fake_transport_cls):
    """The display sentinel never leaks into the chat grounding."""
    transport = fake_transport_cls()
    controller = _controller({EngineId.tesseract: fake_engine_cls(text="")}, transport)
    controller.load_image(artifact)
    asyncio.run(controller.process())
    asyncio.run(controller.ask("anything?"))
    assert "No text was extracted" in transport.calls[0]["system"]


def test_process_without_image_raises(fake_engine_cls, fake_transport_cls):
    controller = _controller({EngineId.tesseract: fake_engine_cls()}, fake_transport_cls())
    with pytest.raises(InvalidInputError):
        asyncio.run(controller.process())


def test_newer_job_supersedes_stale_outcome(artifact, fake_engine_cls, fake_transport_cls):
    """A slow first job finishing after a second one started must not overwrite its result."""

    async def scenario():
        slow_gate = asyncio.Event()
        slow = fake_engine_cls(text="stale", gate=slow_gate)
        fast = fake_engine_cls(text="fresh")
        controller = _controller({EngineId.tesseract: [slow, fast]}, fake_transport_cls())
        controller.load_image(artifact)
        changes = []
        controller.on_job_change = lambda job: changes.append((job.id, job.state))

        first = asyncio.create_task(controller.process())
        while slow.calls == 0:
            await asyncio.sleep(0)
        second = await controller.process()
        slow_gate.set()
        first_job = await first
        return controller, first_job, second, changes

    controller, first_job, second_job, changes = asyncio.run(scenario())
    assert first_job.state == JobState.succeeded  # the job itself finished...
    assert controller.job is second_job  # ...but is not authoritative
    assert controller.extracted_text == "fresh"
    assert controller.chat.grounding_text == "fresh"
    assert (first_job.id, JobState.succeeded) not in changes
    assert (second_job.id, JobState.succeeded) in changes


def test_load_image_resets_chat_and_releases_previous(png_bytes, jpeg_bytes, fake_engine_cls, fake_transport_cls):
    transport = fake_transport_cls(replies=("a", "b"))
    controller = _controller({EngineId.tesseract: fake_engine_cls(text="x")}, transport)
    first = ImageArtifact(png_bytes)
    first.display_uri
    controller.load_image(first)
    asyncio.run(controller.ask("hello"))
    assert len(controller.chat.turns) == 2

    second = ImageArtifact(jpeg_bytes)
    controller.load_image(second)
    assert first.released
    assert controller.chat.turns == []
    assert controller.job is None
    assert controller.chat.image_context == second.data_uri

    asyncio.run(controller.ask("and this one?"))
    assert transport.calls[-1]["image"] == second.data_uri
    second.release()


def test_clear_image(artifact, fake_engine_cls, fake_transport_cls):
    controller = _controller({EngineId.tesseract: fake_engine_cls(text="x")}, fake_transport_cls())
    controller.load_image(artifact)
    asyncio.run(controller.process())
    controller.clear_image()
    assert artifact.released
    assert controller.artifact is None
    assert controller.job is None
    assert controller.chat.image_context is None


def test_select_engine_auto_reprocess(artifact, fake_engine_cls, fake_transport_cls):
    engines = {
        EngineId.tesseract: fake_engine_cls(text="local"),
        EngineId.gemini_vision: fake_engine_cls(EngineId.gemini_vision, text="remote"),
    }
    controller = _controller(engines, fake_transport_cls())
    controller.load_image(artifact)
    asyncio.run(controller.process())

    job = asyncio.run(controller.select_engine("gemini-vision"))
    assert job is not None and job.engine_id == EngineId.gemini_vision
    assert controller.extracted_text == "remote"
    # Re-selecting the same engine doesn't start a job.
    assert asyncio.run(controller.select_engine(EngineId.gemini_vision)) is None


def test_select_engine_without_auto_reprocess(artifact, fake_engine_cls, fake_transport_cls):
    engine = fake_engine_cls(EngineId.gemini_vision, text="remote")
    controller = _controller({EngineId.gemini_vision: engine}, fake_transport_cls(), auto_reprocess=False)
    controller.load_image(artifact)
    assert asyncio.run(controller.select_engine("gemini-vision")) is None
    assert controller.engine_id == EngineId.gemini_vision
    assert engine.calls == 0


def test_set_credentials_applies_to_jobs_and_chat(artifact, fake_engine_cls, fake_transport_cls):
    engine = fake_engine_cls(EngineId.gpt4_vision, text="t")
    controller = _controller({EngineId.gpt4_vision: engine}, fake_transport_cls())
    controller.set_credentials(Credentials())
    controller.load_image(artifact)
    job = asyncio.run(controller.process(EngineId.gpt4_vision))
    assert job.state == JobState.failed
    assert engine.calls == 0
    assert controller.chat.credentials == Credentials()


def test_snapshot(artifact, fake_engine_cls, fake_transport_cls):
    controller = _controller({EngineId.tesseract: fake_engine_cls(text="abc")}, fake_transport_cls(replies=("hi",)))
    assert controller.snapshot().image is None

    controller.load_image(artifact)
    asyncio.run(controller.process())
    asyncio.run(controller.ask("hello"))
    snap = controller.snapshot()
    assert snap.image.mime_type == "image/png"
    assert snap.image.name == "sample.png"
    assert snap.engine == EngineId.tesseract
    assert snap.job.result == "abc"
    assert [t.role for t in snap.turns] == [Role.user, Role.assistant]
    assert snap.chat_error is None


def test_reset_chat_keeps_image_and_grounding(artifact, fake_engine_cls, fake_transport_cls):
    transport = fake_transport_cls(replies=("a", "b"))
    controller = _controller({EngineId.tesseract: fake_engine_cls(text="abc")}, transport)
    controller.load_image(artifact)
    asyncio.run(controller.process())
    asyncio.run(controller.ask("one"))
    controller.reset_chat()
    assert controller.chat.turns == []
    asyncio.run(controller.ask("two"))
    assert transport.calls[-1]["image"] == artifact.data_uri
    assert '"abc"' in transport.calls[-1]["system"]


def test_load_image_supersedes_running_job(png_bytes, jpeg_bytes, fake_engine_cls, fake_transport_cls):
    """A job still running when a new image arrives never becomes authoritative."""

    async def scenario():
        gate = asyncio.Event()
        engine = fake_engine_cls(text="old image text", gate=gate)
        controller = _controller({EngineId.tesseract: engine}, fake_transport_cls())
        old, new = ImageArtifact(png_bytes), ImageArtifact(jpeg_bytes)
        controller.load_image(old)
        changes = []
        controller.on_job_change = lambda job: changes.append((job.id, job.state))

        task = asyncio.create_task(controller.process())
        while engine.calls == 0:
            await asyncio.sleep(0)
        controller.load_image(new)
        changes.clear()
        gate.set()
        stale = await task
        return controller, stale, changes, old, new

    controller, stale, changes, old, new = asyncio.run(scenario())
    assert stale.state == JobState.succeeded
    assert controller.job is None
    assert controller.extracted_text == ""
    assert controller.chat.grounding_text == ""
    assert controller.chat.image_context == new.data_uri
    assert changes == []
    assert old.released
    new.release()
