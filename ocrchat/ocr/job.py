"""OCRJob: state machine for a single recognition run (idle -> running -> succeeded | failed)."""

import logging
import uuid
from enum import Enum
from typing import Callable

from pydantic import BaseModel

from ocrchat.ai.schema import EngineId
from ocrchat.ai.vision_base import BaseRecognitionEngine
from ocrchat.core.credentials import Credentials
from ocrchat.core.errors import CredentialMissingError
from ocrchat.core.image import ImageArtifact

_log = logging.getLogger(__name__)

NO_TEXT_RECOGNIZED = "No text recognized."
GENERIC_FAILURE = "Text recognition failed."


class JobState(str, Enum):
    idle = "idle"
    running = "running"
    succeeded = "succeeded"
    failed = "failed"


TERMINAL_STATES = frozenset({JobState.succeeded, JobState.failed})


class JobView(BaseModel):
    """Read-only snapshot of a job for display (CLI, API)."""

    id: str
    engine: EngineId
    state: JobState
    progress: int
    result: str | None = None
    error: str | None = None


class OCRJob:
    """
    One recognition attempt.

    Invariants:
    - A job runs at most once; re-invocation means a new OCRJob (progress starts at 0 again).
    - Terminal states always end with progress == 100.
    - result is set only in succeeded (never partial text), error only in failed.
    - A credentialed engine with an empty slot goes idle -> failed without calling the engine.
    """

    def __init__(self, engine_id: EngineId, on_change: Callable[["OCRJob"], None] | None = None) -> None:
        self.id = uuid.uuid4().hex
        self.engine_id = engine_id
        self.state = JobState.idle
        self.progress = 0
        self.result: str | None = None
        self.text = ""
        self.error: str | None = None
        self._on_change = on_change

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self)

    def report_progress(self, fraction: float) -> None:
        """Progress sink for the engine: fraction in [0, 1] scaled to 0..100. Ignored unless running."""
        if self.state != JobState.running:
            return
        self.progress = max(0, min(100, int(round(fraction * 100))))
        self._notify()

    def _succeed(self, text: str) -> None:
        self.text = text.strip()
        self.result = self.text or NO_TEXT_RECOGNIZED
        self.state = JobState.succeeded
        self.progress = 100
        _log.info("OCR job %s (%s) succeeded: %d chars", self.id, self.engine_id.value, len(self.text))
        self._notify()

    def _fail(self, message: str) -> None:
        self.error = message or GENERIC_FAILURE
        self.state = JobState.failed
        self.progress = 100
        _log.warning("OCR job %s (%s) failed: %s", self.id, self.engine_id.value, self.error)
        self._notify()

    async def run(
        self, engine: BaseRecognitionEngine, artifact: ImageArtifact, credentials: Credentials
    ) -> "OCRJob":
        """Drive the job to a terminal state. Never raises for engine failures."""
        if self.state != JobState.idle:
            raise RuntimeError(f"OCR job {self.id} already started ({self.state.value}); create a new job.")
        if engine.descriptor.id != self.engine_id:
            raise ValueError(f"Engine {engine.descriptor.id.value} does not match job engine {self.engine_id.value}")

        try:
            engine.require_credential(credentials)
        except CredentialMissingError as e:
            self._fail(str(e))
            return self

        self.state = JobState.running
        self.progress = 0
        _log.debug("OCR job %s started with %s on %r", self.id, self.engine_id.value, artifact)
        self._notify()
        try:
            text = await engine.recognize(artifact, credentials, self.report_progress)
        except Exception as e:
            # Every engine failure ends the job in failed; the host keeps running.
            _log.debug("OCR job %s engine error", self.id, exc_info=True)
            self._fail(str(e))
            return self
        self._succeed(text or "")
        return self

    def view(self) -> JobView:
        return JobView(
            id=self.id,
            engine=self.engine_id,
            state=self.state,
            progress=self.progress,
            result=self.result,
            error=self.error,
        )
