"""Authenticated identity shared by the API client and the controllers."""
import logging
from typing import Callable, Optional

from pydantic import ValidationError

from . import storage
from .events import Listeners
from .schemas import AuthResponse, Session

logger = logging.getLogger(__name__)


class SessionStore:
    """Owns the current :class:`Session` and persists it between runs.

    Consumers receive the store explicitly and either read ``session`` or
    subscribe to changes; nothing outside this class replaces the session.
    """

    def __init__(self) -> None:
        self._listeners: Listeners[Optional[Session]] = Listeners()
        self._session: Optional[Session] = self._restore()

    def _restore(self) -> Optional[Session]:
        token = storage.get_token()
        user = storage.get_user()
        if token is None and user is None:
            return None
        try:
            if not token or not isinstance(user, dict):
                raise ValueError("stored session is incomplete")
            return Session.model_validate({**user, "token": token})
        except (ValidationError, ValueError) as exc:
            logger.warning("SESSION_CORRUPT error=%s", exc)
            storage.clear_auth()
            return None

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def token(self) -> Optional[str]:
        return self._session.token if self._session else None

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    @property
    def is_admin(self) -> bool:
        return self._session is not None and self._session.is_admin

    def subscribe(self, callback: Callable[[Optional[Session]], None]) -> Callable[[], None]:
        return self._listeners.subscribe(callback)

    def sign_in(self, auth: AuthResponse) -> Session:
        session = Session.from_auth(auth)
        storage.store_auth(session.token, session.model_dump(by_alias=True, mode="json"))
        self._session = session
        logger.info("SESSION_STARTED user_id=%s role=%s", session.user_id, session.role)
        self._listeners.emit(session)
        return session

    def sign_out(self) -> None:
        storage.clear_auth()
        if self._session is None:
            return
        logger.info("SESSION_ENDED user_id=%s", self._session.user_id)
        self._session = None
        self._listeners.emit(None)

    def expire(self) -> None:
        """Drop a session the server no longer accepts."""
        if self._session is not None:
            logger.warning("SESSION_EXPIRED user_id=%s", self._session.user_id)
        self.sign_out()
