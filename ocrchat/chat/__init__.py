"""Chat about the current image, grounded in its extracted text."""

from ocrchat.chat.session import NO_ANSWER, ChatSession, build_system_text

__all__ = ["ChatSession", "NO_ANSWER", "build_system_text"]
