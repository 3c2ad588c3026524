from ocrchat.core.config import get_config
from ocrchat.core.errors import (
    CredentialMissingError,
    InvalidInputError,
    OCRChatError,
    RecognitionError,
    RequestInFlightError,
    TransportError,
)
from ocrchat.core.logging import setup_logging

__all__ = [
    "CredentialMissingError",
    "InvalidInputError",
    "OCRChatError",
    "RecognitionError",
    "RequestInFlightError",
    "TransportError",
    "get_config",
    "setup_logging",
]
