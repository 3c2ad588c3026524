"""Factory for recognition engines, dispatched on the explicit EngineId."""

from ocrchat.ai.schema import ENGINE_DESCRIPTORS, EngineDescriptor, EngineId
from ocrchat.ai.vision_base import BaseRecognitionEngine
from ocrchat.core.config import Settings, get_config


def parse_engine_id(value: str | EngineId) -> EngineId:
    """Return the EngineId for a name such as 'tesseract'. Raises ValueError for unknown names."""
    try:
        return EngineId(value)
    except ValueError:
        known = ", ".join(e.value for e in EngineId)
        raise ValueError(f"Unknown OCR engine: {value} (expected one of: {known})") from None


def list_engines() -> list[EngineDescriptor]:
    return list(ENGINE_DESCRIPTORS.values())


def get_recognition_engine(
    engine_id: str | EngineId, settings: Settings | None = None
) -> BaseRecognitionEngine:
    """Return a configured engine for engine_id. Imports are lazy so pytesseract only loads when used."""
    engine_id = parse_engine_id(engine_id)
    cfg = settings or get_config()
    if engine_id == EngineId.tesseract:
        from ocrchat.ai.vision_tesseract import TesseractEngine

        return TesseractEngine(lang=cfg.tesseract_lang, timeout_seconds=cfg.request_timeout_seconds)
    if engine_id == EngineId.gpt4_vision:
        from ocrchat.ai.vision_openai import OpenAIVisionEngine

        return OpenAIVisionEngine(
            model=cfg.openai_vision_model,
            base_url=cfg.openai_base_url,
            max_tokens=cfg.vision_max_tokens,
            timeout_seconds=cfg.request_timeout_seconds,
        )
    if engine_id == EngineId.gemini_vision:
        from ocrchat.ai.vision_gemini import GeminiVisionEngine

        return GeminiVisionEngine(
            model=cfg.gemini_model,
            base_url=cfg.gemini_base_url,
            timeout_seconds=cfg.request_timeout_seconds,
        )
    raise ValueError(f"Unknown OCR engine: {engine_id}")
