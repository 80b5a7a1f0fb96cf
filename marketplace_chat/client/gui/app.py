"""Application controller logic for the PyQt GUI client."""
from __future__ import annotations

from typing import Dict, Optional, Tuple

from .. import api
from ..composer import MessageComposer
from ..config import DEFAULT_API_URL
from ..conversations import ConversationListController
from ..navigation import Navigator
from ..scheduler import Scheduler
from ..schemas import Session
from ..session import SessionStore
from ..storage import get_server_url, store_server_url
from ..transcript import TranscriptController


class MarketplaceController:
    """Owns the session and API client and builds the per-screen controllers."""

    def __init__(self, base_url: Optional[str] = None, session: Optional[SessionStore] = None):
        self.session = session or SessionStore()
        self.base_url = base_url or get_server_url() or ""
        if self.base_url:
            self.api = api.APIClient(self.base_url, self.session)
        else:
            self.api = None
        self.image_cache: Dict[str, bytes] = {}

    @property
    def suggested_url(self) -> str:
        return self.base_url or DEFAULT_API_URL

    @property
    def user(self) -> Optional[Session]:
        return self.session.session

    def set_base_url(self, url: str) -> None:
        self.base_url = url.rstrip("/")
        store_server_url(self.base_url)
        self.api = api.APIClient(self.base_url, self.session)
        self.image_cache = {}

    def ensure_ready(self) -> None:
        if not self.api:
            raise RuntimeError("Server URL not configured")

    def login(self, username: str, password: str) -> Session:
        self.ensure_ready()
        if not username or not password:
            raise ValueError("Username and password are required")
        return self.session.sign_in(self.api.login(username, password))

    def register(self, username: str, email: str, password: str) -> Session:
        self.ensure_ready()
        if not username or not email or not password:
            raise ValueError("Username, email and password are required")
        return self.session.sign_in(self.api.register(username, email, password))

    def logout(self) -> None:
        self.session.sign_out()
        self.image_cache = {}

    def conversation_list(self, scheduler: Scheduler, navigator: Navigator) -> ConversationListController:
        self.ensure_ready()
        return ConversationListController(self.api, self.session, scheduler, navigator)

    def transcript(
        self, conversation_id: int, scheduler: Scheduler, navigator: Navigator
    ) -> Tuple[TranscriptController, MessageComposer]:
        self.ensure_ready()
        transcript = TranscriptController(conversation_id, self.api, self.session, scheduler, navigator)
        return transcript, MessageComposer(transcript)

    def image(self, filename: str) -> bytes:
        """Listing thumbnail bytes, fetched once per server."""
        if filename in self.image_cache:
            return self.image_cache[filename]
        self.ensure_ready()
        data = self.api.fetch_image(filename)
        self.image_cache[filename] = data
        return data


__all__ = ["MarketplaceController"]
