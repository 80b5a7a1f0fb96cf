"""Outgoing message box for an open transcript."""
import logging
from typing import Optional

from .api import APIError, AuthError
from .config import MAX_MESSAGE_LENGTH
from .events import Listeners
from .schemas import Message
from .transcript import TranscriptController

logger = logging.getLogger(__name__)


class MessageComposer:
    """Holds the draft and sends it, at most one request at a time.

    The length bound mirrors the server's validation and is advisory only.
    """

    def __init__(self, transcript: TranscriptController, max_length: int = MAX_MESSAGE_LENGTH):
        self.transcript = transcript
        self.max_length = max_length
        self.draft = ""
        self.sending = False
        self.error: Optional[str] = None
        self.changed: Listeners["MessageComposer"] = Listeners()

    @property
    def can_send(self) -> bool:
        return bool(self.draft.strip()) and not self.sending and self.transcript.is_ready

    def set_draft(self, text: str) -> None:
        self.draft = text[: self.max_length]
        self.error = None
        self.changed.emit(self)

    def send(self, text: Optional[str] = None) -> bool:
        """Send ``text`` (or the current draft). Returns True if a request went out."""
        raw = text if text is not None else self.draft
        content = raw.strip()
        if not content or self.sending or not self.transcript.is_ready:
            return False
        if len(content) > self.max_length:
            self.error = f"Message must be less than {self.max_length} characters"
            self.changed.emit(self)
            return False

        # the draft only changes once a request actually goes out
        self.draft = raw
        self.sending = True
        self.error = None
        self.changed.emit(self)
        api = self.transcript.api
        conversation_id = self.transcript.conversation_id
        self.transcript.scheduler.submit(
            lambda: api.send_message(conversation_id, content),
            self._sent,
            self._failed,
        )
        return True

    def _sent(self, message: Message) -> None:
        try:
            if self.transcript.append_local(message):
                self.draft = ""
                logger.info(
                    "MESSAGE_SENT conversation_id=%s message_id=%s", message.conversation_id, message.id
                )
        finally:
            self.sending = False
            self.changed.emit(self)

    def _failed(self, exc: Exception) -> None:
        try:
            if isinstance(exc, AuthError):
                self.transcript.session.expire()
                return
            logger.warning("SEND_FAILED conversation_id=%s error=%s", self.transcript.conversation_id, exc)
            self.error = exc.message if isinstance(exc, APIError) else "Failed to send message"
        finally:
            self.sending = False
            self.changed.emit(self)
