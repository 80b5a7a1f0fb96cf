"""Shared fixtures: a manual-clock scheduler, a scripted API and a fresh session store."""
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import pytest

from marketplace_chat.client import storage
from marketplace_chat.client.schemas import AuthResponse, Conversation, Message
from marketplace_chat.client.session import SessionStore

BASE_TIME = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
ME = 1
PEER = 2
CONVERSATION_ID = 7


def make_message(
    message_id: int,
    sent_at: Optional[datetime] = None,
    sender_id: int = PEER,
    content: Optional[str] = None,
    conversation_id: int = CONVERSATION_ID,
) -> Message:
    return Message(
        id=message_id,
        conversation_id=conversation_id,
        sender_id=sender_id,
        sender_username="alice" if sender_id == ME else "bob",
        content=content or f"message {message_id}",
        sent_at=sent_at or BASE_TIME + timedelta(minutes=message_id),
    )


def make_conversation(conversation_id: int = CONVERSATION_ID, **overrides: Any) -> Conversation:
    fields: Dict[str, Any] = {
        "id": conversation_id,
        "listing_id": 11,
        "listing_title": "Mountain bike",
        "listing_image": None,
        "other_user_id": PEER,
        "other_username": "bob",
        "last_message": None,
        "last_message_at": None,
        "created_at": BASE_TIME,
    }
    fields.update(overrides)
    return Conversation(**fields)


class PendingCall:
    def __init__(self, fn: Callable[[], Any], on_success: Callable[[Any], None], on_error: Callable[[Exception], None]):
        self.fn = fn
        self.on_success = on_success
        self.on_error = on_error
        self.done = False

    def resolve(self) -> None:
        """Run the blocking call now and deliver its outcome."""
        self.done = True
        try:
            result = self.fn()
        except Exception as exc:  # noqa: BLE001
            self.on_error(exc)
            return
        self.on_success(result)

    def fail(self, exc: Exception) -> None:
        self.done = True
        self.on_error(exc)


class FakeTimer:
    def __init__(self, interval_ms: int, callback: Callable[[], None], due_ms: int):
        self.interval_ms = interval_ms
        self.callback = callback
        self.due_ms = due_ms
        self.active = True
        self.stop_calls = 0

    def stop(self) -> None:
        self.stop_calls += 1
        self.active = False


class FakeScheduler:
    """Single-threaded loop with a manual clock; background calls wait for ``resolve``."""

    def __init__(self) -> None:
        self.now_ms = 0
        self.timers: List[FakeTimer] = []
        self.pending: List[PendingCall] = []

    def call_every(self, interval_ms: int, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(interval_ms, callback, self.now_ms + interval_ms)
        self.timers.append(timer)
        return timer

    def submit(self, fn, on_success, on_error) -> None:
        self.pending.append(PendingCall(fn, on_success, on_error))

    @property
    def active_timers(self) -> List[FakeTimer]:
        return [timer for timer in self.timers if timer.active]

    def advance(self, ms: int) -> None:
        target = self.now_ms + ms
        while True:
            due = [timer for timer in self.active_timers if timer.due_ms <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due_ms)
            self.now_ms = timer.due_ms
            timer.due_ms += timer.interval_ms
            timer.callback()
        self.now_ms = target

    def take(self) -> List[PendingCall]:
        calls, self.pending = self.pending, []
        return calls

    def run_pending(self) -> None:
        while self.pending:
            for call in self.take():
                call.resolve()


class FakeNavigator:
    def __init__(self) -> None:
        self.visits: List[Any] = []

    def to_login(self) -> None:
        self.visits.append("login")

    def to_conversations(self) -> None:
        self.visits.append("conversations")

    def to_conversation(self, conversation_id: int) -> None:
        self.visits.append(("conversation", conversation_id))


class FakeAPI:
    """Scripted stand-in for APIClient; ``errors`` maps method name to the exception it raises."""

    def __init__(self) -> None:
        self.conversation = make_conversation()
        self.conversations: List[Conversation] = [self.conversation]
        self.messages: List[Message] = [make_message(1), make_message(2, sender_id=ME)]
        self.errors: Dict[str, Exception] = {}
        self.calls: List[tuple] = []
        self.next_id = 100

    def _call(self, name: str, *args: Any) -> None:
        self.calls.append((name, *args))
        if name in self.errors:
            raise self.errors[name]

    def call_count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    def list_conversations(self) -> List[Conversation]:
        self._call("list_conversations")
        return list(self.conversations)

    def get_conversation(self, conversation_id: int) -> Conversation:
        self._call("get_conversation", conversation_id)
        return self.conversation

    def get_messages(self, conversation_id: int) -> List[Message]:
        self._call("get_messages", conversation_id)
        return list(self.messages)

    def send_message(self, conversation_id: int, content: str) -> Message:
        self._call("send_message", conversation_id, content)
        self.next_id += 1
        message = make_message(self.next_id, sender_id=ME, content=content)
        self.messages.append(message)
        return message


@pytest.fixture(autouse=True)
def state_file(tmp_path, monkeypatch):
    path = tmp_path / "state.json"
    monkeypatch.setattr(storage, "STORAGE_FILE", path)
    return path


@pytest.fixture
def auth_response() -> AuthResponse:
    return AuthResponse(token="tok-123", user_id=ME, username="alice", email="alice@example.com", role="USER")


@pytest.fixture
def session(auth_response) -> SessionStore:
    store = SessionStore()
    store.sign_in(auth_response)
    return store


@pytest.fixture
def anonymous_session() -> SessionStore:
    return SessionStore()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def navigator() -> FakeNavigator:
    return FakeNavigator()


@pytest.fixture
def fake_api() -> FakeAPI:
    return FakeAPI()
