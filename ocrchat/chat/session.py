"""ChatSession: transcript state, grounding system prompt and first-turn image injection."""

import logging

from ocrchat.ai.chat_transport import OpenAIChatTransport
from ocrchat.ai.schema import ChatTurn, Role
from ocrchat.core.credentials import CredentialKind, Credentials
from ocrchat.core.errors import CredentialMissingError, OCRChatError, RequestInFlightError

_log = logging.getLogger(__name__)

NO_ANSWER = "No answer received."

SYSTEM_TEMPLATE = (
    "You are a helpful assistant that answers questions about an image.\n"
    "{grounding}\n"
    "Answer the user's questions based on the image and the extracted text."
)
GROUNDING_WITH_TEXT = 'The text extracted from the image is:\n"{text}"'
GROUNDING_WITHOUT_TEXT = "No text was extracted from the image."


def build_system_text(grounding_text: str) -> str:
    """System prompt embedding the OCR text verbatim, or a fallback phrase when there is none."""
    if grounding_text:
        grounding = GROUNDING_WITH_TEXT.format(text=grounding_text)
    else:
        grounding = GROUNDING_WITHOUT_TEXT
    return SYSTEM_TEMPLATE.format(grounding=grounding)


class ChatSession:
    """
    Conversation about one image.

    Invariants:
    - turns keep insertion order; the user turn is appended before the request is sent and stays
      even when the request fails.
    - The image context travels with the first user turn only.
    - grounding_text is read when a request is assembled, so changes apply to the next request only.
    - At most one request is outstanding; a concurrent call raises RequestInFlightError.
    """

    def __init__(
        self,
        transport: OpenAIChatTransport,
        credentials: Credentials,
        *,
        grounding_text: str = "",
        image_context: str | None = None,
    ) -> None:
        self._transport = transport
        self.credentials = credentials
        self.grounding_text = grounding_text
        self.image_context = image_context
        self.turns: list[ChatTurn] = []
        self.error: str | None = None
        self._generation = 0
        # Generation that owns the outstanding request, if any.
        self._request_generation: int | None = None

    @property
    def in_flight(self) -> bool:
        return self._request_generation == self._generation

    def reset(self, image_context: str | None = None, grounding_text: str = "") -> None:
        """
        Start over: clear turns and error, install a new image context and grounding text.

        A request still outstanding belongs to the old conversation; it no longer blocks sends.
        """
        if self.in_flight:
            _log.warning("Chat session reset while a request is in flight; its reply will be dropped.")
        self.turns = []
        self.error = None
        self.image_context = image_context
        self.grounding_text = grounding_text
        self._generation = self._generation + 1

    async def append_user_turn(self, text: str) -> ChatTurn | None:
        """
        Send one user message and return the assistant turn.

        Returns None (and does nothing) for empty or whitespace-only text. Raises
        CredentialMissingError before anything is appended when no OpenAI key is set, and
        RequestInFlightError while another call is outstanding. Transport failures are recorded
        in self.error and re-raised; the user turn is kept.
        """
        message = (text or "").strip()
        if not message:
            return None
        api_key = self.credentials.get(CredentialKind.openai)
        if api_key is None:
            raise CredentialMissingError(CredentialKind.openai.value, "An OpenAI API key is required to chat.")
        if self.in_flight:
            raise RequestInFlightError("A chat request is already in progress.")

        generation = self._generation
        is_first = not self.turns
        user_turn = ChatTurn(role=Role.user, content=message)
        self.turns.append(user_turn)
        self.error = None

        system_text = build_system_text(self.grounding_text)
        image = self.image_context if is_first else None
        self._request_generation = generation
        try:
            _log.debug("Chat request with %d turns (image=%s)", len(self.turns), image is not None)
            reply = await self._transport.complete(api_key, system_text, list(self.turns), image)
        except OCRChatError as e:
            if generation == self._generation:
                self.error = str(e)
            raise
        finally:
            if self._request_generation == generation:
                self._request_generation = None

        assistant_turn = ChatTurn(role=Role.assistant, content=reply or NO_ANSWER)
        if generation != self._generation:
            _log.info("Dropping chat reply for a session that was reset meanwhile.")
            return assistant_turn
        self.turns.append(assistant_turn)
        return assistant_turn
