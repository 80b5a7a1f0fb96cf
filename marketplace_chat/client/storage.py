"""Local client storage for the session and server settings."""
import json
import logging
from typing import Any, Dict, Optional

from .config import STORAGE_FILE

logger = logging.getLogger(__name__)


def load_state() -> Dict[str, Any]:
    if STORAGE_FILE.exists():
        try:
            with STORAGE_FILE.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("STATE_UNREADABLE path=%s error=%s", STORAGE_FILE, exc)
            return {}
        if isinstance(data, dict):
            return data
        logger.warning("STATE_UNREADABLE path=%s error=not a mapping", STORAGE_FILE)
    return {}


def save_state(data: Dict[str, Any]) -> None:
    STORAGE_FILE.parent.mkdir(parents=True, exist_ok=True)
    with STORAGE_FILE.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def store_auth(token: str, user: Dict[str, Any]) -> None:
    state = load_state()
    state["token"] = token
    state["user"] = user
    save_state(state)


def clear_auth() -> None:
    state = load_state()
    for key in ["token", "user"]:
        state.pop(key, None)
    save_state(state)


def get_token() -> Optional[str]:
    return load_state().get("token")


def get_user() -> Optional[Dict[str, Any]]:
    return load_state().get("user")


def get_server_url() -> Optional[str]:
    return load_state().get("server_url")


def store_server_url(url: str) -> None:
    state = load_state()
    state["server_url"] = url
    save_state(state)
