"""Credential slots and their syntactic shape check."""

from enum import Enum

from pydantic import BaseModel, field_validator

from ocrchat.core.config import Settings


class CredentialKind(str, Enum):
    openai = "openai"
    gemini = "gemini"


# (prefix, label) per slot; a key must start with the prefix and be longer than MIN_KEY_LENGTH.
KEY_SHAPES = {
    CredentialKind.openai: ("sk-", "OpenAI API key"),
    CredentialKind.gemini: ("AIza", "Gemini API key"),
}
MIN_KEY_LENGTH = 20


def is_valid_credential(kind: CredentialKind, value: str | None) -> bool:
    """Shape check only; says nothing about whether the provider accepts the key."""
    if not value:
        return False
    prefix, _ = KEY_SHAPES[kind]
    return value.startswith(prefix) and len(value) > MIN_KEY_LENGTH


def credential_label(kind: CredentialKind) -> str:
    return KEY_SHAPES[kind][1]


class Credentials(BaseModel):
    """Explicit credential values handed to jobs and chat sessions. Blank values count as absent."""

    model_config = {"frozen": True}

    openai_api_key: str | None = None
    gemini_api_key: str | None = None

    @field_validator("openai_api_key", "gemini_api_key", mode="before")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @classmethod
    def from_settings(cls, settings: Settings) -> "Credentials":
        return cls(openai_api_key=settings.openai_api_key, gemini_api_key=settings.gemini_api_key)

    def get(self, kind: CredentialKind | None) -> str | None:
        if kind is None:
            return None
        if kind == CredentialKind.openai:
            return self.openai_api_key
        if kind == CredentialKind.gemini:
            return self.gemini_api_key
        raise ValueError(f"Unknown credential kind: {kind}")

    def has(self, kind: CredentialKind | None) -> bool:
        return self.get(kind) is not None
