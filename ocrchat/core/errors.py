"""Error taxonomy shared by recognition engines, the chat session and the collaborators."""


class OCRChatError(Exception):
    """Base for all errors surfaced to the user. str(err) is the display message."""


class InvalidInputError(OCRChatError):
    """Rejected locally before any call: unsupported file type, unreadable image."""


class CredentialMissingError(OCRChatError):
    """A credentialed engine or the chat was invoked with an empty credential slot."""

    def __init__(self, slot: str, message: str | None = None) -> None:
        self.slot = slot
        super().__init__(message or f"An API key is required for {slot}.")


class TransportError(OCRChatError):
    """Non-2xx response or network-level failure talking to a provider."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class RecognitionError(OCRChatError):
    """Local recognition failed; never carries partial text."""


class RequestInFlightError(OCRChatError):
    """A chat request is already outstanding for this session."""
