"""Inbox of the current user's conversations."""
import logging
from datetime import datetime
from typing import List, Optional

from ..shared.utils import format_relative_time
from .api import APIClient, AuthError
from .events import Listeners
from .navigation import Navigator
from .scheduler import Scheduler
from .schemas import Conversation
from .session import SessionStore

logger = logging.getLogger(__name__)

EMPTY_PREVIEW = "No messages yet. Say hello!"


class ConversationListController:
    def __init__(self, api: APIClient, session: SessionStore, scheduler: Scheduler, navigator: Navigator):
        self.api = api
        self.session = session
        self.scheduler = scheduler
        self.navigator = navigator
        self.conversations: List[Conversation] = []
        self.loading = True
        self.closed = False
        self.changed: Listeners["ConversationListController"] = Listeners()
        self._request_id = 0

    def mount(self) -> None:
        if not self.session.is_authenticated:
            self.navigator.to_login()
            return
        self._fetch()

    def refresh(self) -> None:
        """Re-fetch on user request; failed loads are never retried automatically."""
        if self.closed or not self.session.is_authenticated:
            return
        self._fetch()

    def close(self) -> None:
        self.closed = True

    def open(self, conversation: Conversation) -> None:
        self.navigator.to_conversation(conversation.id)

    def _fetch(self) -> None:
        self._request_id += 1
        request_id = self._request_id
        self.loading = True
        self.changed.emit(self)
        self.scheduler.submit(
            self.api.list_conversations,
            lambda conversations: self._loaded(request_id, conversations),
            lambda exc: self._failed(request_id, exc),
        )

    def _is_stale(self, request_id: int) -> bool:
        return self.closed or request_id != self._request_id

    def _loaded(self, request_id: int, conversations: List[Conversation]) -> None:
        if self._is_stale(request_id):
            return
        self.conversations = list(conversations)
        self.loading = False
        self.changed.emit(self)

    def _failed(self, request_id: int, exc: Exception) -> None:
        if self._is_stale(request_id):
            return
        logger.warning("CONVERSATIONS_FETCH_FAILED error=%s", exc)
        self.conversations = []
        self.loading = False
        self.changed.emit(self)
        if isinstance(exc, AuthError):
            self.closed = True
            self.session.expire()
            self.navigator.to_login()

    @staticmethod
    def time_label(conversation: Conversation, now: Optional[datetime] = None) -> str:
        return format_relative_time(conversation.last_activity, now)

    @staticmethod
    def preview(conversation: Conversation) -> str:
        return conversation.last_message or EMPTY_PREVIEW
