"""Transcript of one open conversation: initial load, polling, date grouping.

The controller moves IDLE -> LOADING -> READY on a successful mount. A
failed initial load ends in ERROR, a missing or dropped session ends in
UNAUTHENTICATED, and ``close()`` ends in CLOSED. Polling only runs in READY.
Every exit from READY goes through ``_teardown``, which stops the poll timer
exactly once; responses that arrive after that are ignored because their
handlers check the state first.
"""
import logging
from datetime import date, datetime, tzinfo
from typing import Dict, Iterable, List, Optional

from ..shared.utils import calendar_day, date_label, format_clock
from .api import APIClient, AuthError
from .config import POLL_INTERVAL_MS
from .events import Listeners
from .models import DateGroup, TranscriptState
from .navigation import Navigator
from .scheduler import Scheduler, TimerHandle
from .schemas import Conversation, Message, Session
from .session import SessionStore

logger = logging.getLogger(__name__)


def merge_messages(current: Iterable[Message], incoming: Iterable[Message]) -> List[Message]:
    """Union of both sequences by id, ordered by (sent_at, id).

    Messages are immutable and never deleted, so a stale or reordered poll
    response can only add messages, never hide one already shown.
    """
    by_id: Dict[int, Message] = {msg.id: msg for msg in current}
    for msg in incoming:
        by_id[msg.id] = msg
    return sorted(by_id.values(), key=Message.sort_key)


def group_by_date(
    messages: Iterable[Message], tz: Optional[tzinfo] = None, today: Optional[date] = None
) -> List[DateGroup]:
    """Split an already ordered sequence into runs sharing a calendar day.

    Single pass, no sorting: a message joins the last group when it falls on
    the same day as that group's first message, otherwise it opens a new one.
    """
    if today is None:
        today = datetime.now(tz).date()
    groups: List[DateGroup] = []
    for msg in messages:
        day = calendar_day(msg.sent_at, tz)
        if groups and groups[-1].day == day:
            groups[-1].messages.append(msg)
        else:
            groups.append(DateGroup(day=day, date_label=date_label(msg.sent_at, today, tz), messages=[msg]))
    return groups


class TranscriptController:
    """Owns the message sequence of one conversation view.

    ``changed`` fires with the controller on every state change.
    ``messages_changed`` fires with the new date groups whenever the message
    sequence changes; views re-render and scroll to the latest message.
    """

    def __init__(
        self,
        conversation_id: int,
        api: APIClient,
        session: SessionStore,
        scheduler: Scheduler,
        navigator: Navigator,
        poll_interval_ms: int = POLL_INTERVAL_MS,
        tz: Optional[tzinfo] = None,
    ):
        self.conversation_id = conversation_id
        self.api = api
        self.session = session
        self.scheduler = scheduler
        self.navigator = navigator
        self.poll_interval_ms = poll_interval_ms
        self.tz = tz
        self.state = TranscriptState.IDLE
        self.conversation: Optional[Conversation] = None
        self.messages: List[Message] = []
        self.groups: List[DateGroup] = []
        self.changed: Listeners["TranscriptController"] = Listeners()
        self.messages_changed: Listeners[List[DateGroup]] = Listeners()
        self._poller: Optional[TimerHandle] = None
        self._unsubscribe = None

    @property
    def is_ready(self) -> bool:
        return self.state is TranscriptState.READY

    @property
    def is_polling(self) -> bool:
        return self._poller is not None

    def is_mine(self, message: Message) -> bool:
        current: Optional[Session] = self.session.session
        return current is not None and message.sender_id == current.user_id

    def clock_label(self, message: Message) -> str:
        return format_clock(message.sent_at, tz=self.tz)

    def mount(self) -> None:
        if self.state is not TranscriptState.IDLE:
            return
        if not self.session.is_authenticated:
            self._set_state(TranscriptState.UNAUTHENTICATED)
            self.navigator.to_login()
            return
        self._unsubscribe = self.session.subscribe(self._session_changed)
        self._set_state(TranscriptState.LOADING)

        loaded: Dict[str, object] = {}

        def arrived(key: str, value: object) -> None:
            if self.state is not TranscriptState.LOADING:
                return
            loaded[key] = value
            if len(loaded) == 2:
                self._ready(loaded["conversation"], loaded["messages"])

        conversation_id = self.conversation_id
        self.scheduler.submit(
            lambda: self.api.get_conversation(conversation_id),
            lambda conversation: arrived("conversation", conversation),
            self._load_failed,
        )
        self.scheduler.submit(
            lambda: self.api.get_messages(conversation_id),
            lambda messages: arrived("messages", messages),
            self._load_failed,
        )

    def _ready(self, conversation: Conversation, messages: List[Message]) -> None:
        self.conversation = conversation
        self._set_state(TranscriptState.READY)
        self._set_messages(merge_messages([], messages))
        self._poller = self.scheduler.call_every(self.poll_interval_ms, self.poll)
        logger.info("TRANSCRIPT_READY conversation_id=%s messages=%s", self.conversation_id, len(self.messages))

    def _load_failed(self, exc: Exception) -> None:
        if self.state is not TranscriptState.LOADING:
            return
        logger.warning("TRANSCRIPT_LOAD_FAILED conversation_id=%s error=%s", self.conversation_id, exc)
        self._teardown(TranscriptState.ERROR)
        if isinstance(exc, AuthError):
            self.session.expire()
            self.navigator.to_login()
        else:
            self.navigator.to_conversations()

    def poll(self) -> None:
        """Fetch the full history once; results are merged when they arrive."""
        if self.state is not TranscriptState.READY:
            return
        conversation_id = self.conversation_id
        self.scheduler.submit(lambda: self.api.get_messages(conversation_id), self._poll_succeeded, self._poll_failed)

    def _poll_succeeded(self, messages: List[Message]) -> None:
        if self.state is not TranscriptState.READY:
            return
        merged = merge_messages(self.messages, messages)
        if merged != self.messages:
            self._set_messages(merged)

    def _poll_failed(self, exc: Exception) -> None:
        if self.state is not TranscriptState.READY:
            return
        if isinstance(exc, AuthError):
            # The session subscription tears this view down and redirects.
            self.session.expire()
            return
        logger.warning("POLL_FAILED conversation_id=%s error=%s", self.conversation_id, exc)

    def append_local(self, message: Message) -> bool:
        """Add a message confirmed by the server outside of a poll."""
        if self.state is not TranscriptState.READY:
            return False
        self._set_messages(merge_messages(self.messages, [message]))
        return True

    def close(self) -> None:
        """Tear the view down. Safe to call more than once."""
        if self.state is TranscriptState.CLOSED:
            return
        self._teardown(TranscriptState.CLOSED)

    def _session_changed(self, session: Optional[Session]) -> None:
        if session is not None:
            return
        self._teardown(TranscriptState.UNAUTHENTICATED)
        self.navigator.to_login()

    def _teardown(self, state: TranscriptState) -> None:
        if self._poller is not None:
            self._poller.stop()
            self._poller = None
            logger.info("POLLING_STOPPED conversation_id=%s", self.conversation_id)
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.messages = []
        self.groups = []
        self._set_state(state)

    def _set_state(self, state: TranscriptState) -> None:
        self.state = state
        self.changed.emit(self)

    def _set_messages(self, messages: List[Message]) -> None:
        self.messages = messages
        self.groups = group_by_date(messages, tz=self.tz)
        self.messages_changed.emit(self.groups)
