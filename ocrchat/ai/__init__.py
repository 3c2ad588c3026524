"""AI module: data contracts, recognition engines and the chat transport."""

from ocrchat.ai.schema import ChatTurn, EngineDescriptor, EngineId, Role
from ocrchat.ai.vision_base import BaseRecognitionEngine, ProgressSink
from ocrchat.ai.factory import get_recognition_engine, list_engines, parse_engine_id
from ocrchat.ai.chat_transport import OpenAIChatTransport, build_messages

__all__ = [
    "BaseRecognitionEngine",
    "ChatTurn",
    "EngineDescriptor",
    "EngineId",
    "OpenAIChatTransport",
    "ProgressSink",
    "Role",
    "build_messages",
    "get_recognition_engine",
    "list_engines",
    "parse_engine_id",
]
