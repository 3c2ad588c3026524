"""Pydantic data contracts for recognition engines and chat turns."""

from enum import Enum

from pydantic import BaseModel

from ocrchat.core.credentials import CredentialKind


class EngineId(str, Enum):
    tesseract = "tesseract"
    gpt4_vision = "gpt4-vision"
    gemini_vision = "gemini-vision"


class EngineDescriptor(BaseModel):
    """Identity and credential requirement of a recognition engine."""

    model_config = {"frozen": True}

    id: EngineId
    name: str
    description: str
    credential_kind: CredentialKind | None = None

    @property
    def requires_credential(self) -> bool:
        return self.credential_kind is not None


class Role(str, Enum):
    user = "user"
    assistant = "assistant"


class ChatTurn(BaseModel):
    """One message in a chat transcript."""

    model_config = {"frozen": True}

    role: Role
    content: str


ENGINE_DESCRIPTORS: dict[EngineId, EngineDescriptor] = {
    EngineId.tesseract: EngineDescriptor(
        id=EngineId.tesseract,
        name="Tesseract",
        description="Local OCR, German + English, works offline",
    ),
    EngineId.gpt4_vision: EngineDescriptor(
        id=EngineId.gpt4_vision,
        name="GPT-4 Vision",
        description="OpenAI vision model, best on handwriting and complex layouts",
        credential_kind=CredentialKind.openai,
    ),
    EngineId.gemini_vision: EngineDescriptor(
        id=EngineId.gemini_vision,
        name="Gemini Vision",
        description="Google Gemini vision model",
        credential_kind=CredentialKind.gemini,
    ),
}
