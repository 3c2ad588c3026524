"""Abstract base for recognition engines and the fixed OCR instruction prompt."""

from abc import ABC, abstractmethod
from typing import Callable

from ocrchat.ai.schema import EngineDescriptor
from ocrchat.core.credentials import Credentials
from ocrchat.core.errors import CredentialMissingError
from ocrchat.core.image import ImageArtifact

# Receives recognition progress as a fraction in [0.0, 1.0].
ProgressSink = Callable[[float], None]

OCR_PROMPT = (
    "Extract all visible text from this image. Preserve the original layout and line breaks "
    "as closely as possible. Return only the extracted text, without any commentary, "
    "explanation or formatting."
)

# Synthetic progress for providers that don't report any.
REQUEST_SENT_PROGRESS = 0.3
RESPONSE_RECEIVED_PROGRESS = 0.9


def _ignore_progress(fraction: float) -> None:
    return None


class BaseRecognitionEngine(ABC):
    """Abstract base for text recognition: one job against one ImageArtifact."""

    descriptor: EngineDescriptor

    @abstractmethod
    async def recognize(
        self,
        artifact: ImageArtifact,
        credentials: Credentials,
        progress: ProgressSink = _ignore_progress,
    ) -> str:
        """Return the text found in artifact. Raises OCRChatError subclasses on failure."""
        ...

    def require_credential(self, credentials: Credentials) -> str | None:
        """Return this engine's credential, raising CredentialMissingError if its slot is empty."""
        kind = self.descriptor.credential_kind
        if kind is None:
            return None
        value = credentials.get(kind)
        if value is None:
            raise CredentialMissingError(
                kind.value,
                f"{self.descriptor.name} requires an API key ({kind.value}).",
            )
        return value
