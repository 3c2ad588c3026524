"""Local, offline text recognition with Tesseract (German + English by default).

Requires the tesseract binary with the deu and eng traineddata installed. The blocking
pytesseract call runs in a worker thread; progress is reported from the event loop around it.
"""

import asyncio
import io
import logging

import pytesseract
from PIL import Image, ImageOps

from ocrchat.ai.schema import ENGINE_DESCRIPTORS, EngineId
from ocrchat.ai.vision_base import BaseRecognitionEngine, ProgressSink, _ignore_progress
from ocrchat.core.credentials import Credentials
from ocrchat.core.errors import RecognitionError
from ocrchat.core.image import ImageArtifact

_log = logging.getLogger(__name__)

DEFAULT_LANG = "deu+eng"
GENERIC_FAILURE = "Text recognition failed."

LOADED_PROGRESS = 0.1


def _recognize_bytes(data: bytes, lang: str, timeout: float) -> str:
    """Decode, normalize (EXIF rotation, grayscale) and run Tesseract."""
    with Image.open(io.BytesIO(data)) as img:
        img = ImageOps.exif_transpose(img)
        img = img.convert("L")
        return pytesseract.image_to_string(img, lang=lang, timeout=timeout)


class TesseractEngine(BaseRecognitionEngine):
    """Offline OCR. Needs no credential."""

    descriptor = ENGINE_DESCRIPTORS[EngineId.tesseract]

    def __init__(self, lang: str = DEFAULT_LANG, timeout_seconds: float = 120.0) -> None:
        self.lang = lang
        self._timeout = timeout_seconds

    async def recognize(
        self,
        artifact: ImageArtifact,
        credentials: Credentials,
        progress: ProgressSink = _ignore_progress,
    ) -> str:
        progress(LOADED_PROGRESS)
        try:
            text = await asyncio.to_thread(_recognize_bytes, artifact.bytes, self.lang, self._timeout)
        except Exception as e:
            # Decode errors, Tesseract errors and timeouts alike surface as one generic message.
            _log.error("Tesseract failed on %r: %s", artifact, e, exc_info=True)
            raise RecognitionError(GENERIC_FAILURE) from e
        progress(1.0)
        return text.strip()
