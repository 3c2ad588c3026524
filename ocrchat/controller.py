"""SessionController: owns the current image, the current OCR job and the chat session.

This is the seam the CLI and the HTTP API drive. Loading a new image always resets the chat
(new image context, empty transcript) and supersedes any OCR job still running.
"""

import logging
from typing import Callable

from pydantic import BaseModel

from ocrchat.ai.chat_transport import OpenAIChatTransport
from ocrchat.ai.factory import get_recognition_engine, parse_engine_id
from ocrchat.ai.schema import ChatTurn, EngineId
from ocrchat.ai.vision_base import BaseRecognitionEngine
from ocrchat.chat.session import ChatSession
from ocrchat.core.config import Settings, get_config
from ocrchat.core.credentials import Credentials
from ocrchat.core.errors import InvalidInputError
from ocrchat.core.image import ImageArtifact
from ocrchat.ocr.job import JobState, JobView, OCRJob

_log = logging.getLogger(__name__)

EngineFactory = Callable[[EngineId], BaseRecognitionEngine]


class ImageInfo(BaseModel):
    name: str | None = None
    mime_type: str
    size: int


class SessionSnapshot(BaseModel):
    """What a UI needs to render: image, engine, OCR job and chat transcript."""

    image: ImageInfo | None = None
    engine: EngineId
    job: JobView | None = None
    turns: list[ChatTurn] = []
    chat_error: str | None = None
    chat_in_flight: bool = False


class SessionController:
    """
    Top-level owner of the ImageArtifact. Jobs and the chat session only read it.

    Only the most recently started job is authoritative: when an older job finishes after a newer
    one started, its outcome is discarded (compared by job identity, since the same engine can be
    re-invoked).
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        credentials: Credentials | None = None,
        engine_factory: EngineFactory | None = None,
        transport: OpenAIChatTransport | None = None,
        on_job_change: Callable[[OCRJob], None] | None = None,
    ) -> None:
        self.settings = settings or get_config()
        self.credentials = credentials or Credentials.from_settings(self.settings)
        self._engine_factory = engine_factory or (lambda eid: get_recognition_engine(eid, self.settings))
        self.engine_id = parse_engine_id(self.settings.default_engine)
        self.auto_reprocess = self.settings.auto_reprocess
        self.artifact: ImageArtifact | None = None
        self.job: OCRJob | None = None
        self.on_job_change = on_job_change
        self.chat = ChatSession(
            transport or OpenAIChatTransport.from_settings(self.settings),
            self.credentials,
        )

    @property
    def extracted_text(self) -> str:
        """Raw text of the authoritative job, "" unless it succeeded."""
        if self.job is not None and self.job.state == JobState.succeeded:
            return self.job.text
        return ""

    def set_credentials(self, credentials: Credentials) -> None:
        self.credentials = credentials
        self.chat.credentials = credentials

    def load_image(self, artifact: ImageArtifact) -> None:
        """Replace the current image. Releases the old one and resets OCR and chat state."""
        if self.artifact is not None and self.artifact is not artifact:
            self.artifact.release()
        self.artifact = artifact
        self.job = None
        self.chat.reset(image_context=artifact.data_uri)
        _log.info("Loaded image %r", artifact)

    def clear_image(self) -> None:
        if self.artifact is not None:
            self.artifact.release()
        self.artifact = None
        self.job = None
        self.chat.reset()

    async def select_engine(self, engine_id: str | EngineId) -> OCRJob | None:
        """Change the engine. Re-runs OCR when auto_reprocess is on and an image is loaded."""
        new_id = parse_engine_id(engine_id)
        changed = new_id != self.engine_id
        self.engine_id = new_id
        if changed and self.auto_reprocess and self.artifact is not None:
            return await self.process()
        return None

    def _forward_change(self, job: OCRJob) -> None:
        if job is self.job and self.on_job_change is not None:
            self.on_job_change(job)

    async def process(self, engine_id: str | EngineId | None = None) -> OCRJob:
        """
        Run OCR on the current image with a fresh job and return it.

        The previous result is dropped as soon as the new job starts. If another process() call
        starts before this one finishes, this job's outcome is not applied.
        """
        if self.artifact is None:
            raise InvalidInputError("Load an image first.")
        if engine_id is not None:
            self.engine_id = parse_engine_id(engine_id)
        artifact = self.artifact
        engine = self._engine_factory(self.engine_id)
        job = OCRJob(self.engine_id, on_change=self._forward_change)
        self.job = job
        self.chat.grounding_text = ""
        await job.run(engine, artifact, self.credentials)
        if job is not self.job:
            _log.info("Discarding outcome of superseded OCR job %s", job.id)
            return job
        self.chat.grounding_text = self.extracted_text
        return job

    async def ask(self, text: str) -> ChatTurn | None:
        """Send a chat message about the current image. See ChatSession.append_user_turn."""
        return await self.chat.append_user_turn(text)

    def reset_chat(self) -> None:
        self.chat.reset(
            image_context=self.artifact.data_uri if self.artifact is not None else None,
            grounding_text=self.extracted_text,
        )

    def snapshot(self) -> SessionSnapshot:
        image = None
        if self.artifact is not None:
            image = ImageInfo(name=self.artifact.name, mime_type=self.artifact.mime_type, size=self.artifact.size)
        return SessionSnapshot(
            image=image,
            engine=self.engine_id,
            job=self.job.view() if self.job is not None else None,
            turns=list(self.chat.turns),
            chat_error=self.chat.error,
            chat_in_flight=self.chat.in_flight,
        )
