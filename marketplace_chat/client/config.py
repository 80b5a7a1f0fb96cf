"""Client configuration values."""
import os
from pathlib import Path

DEFAULT_API_URL = os.environ.get("MARKETPLACE_API_URL", "http://localhost:8080")
REQUEST_TIMEOUT = 10
POLL_INTERVAL_MS = 5000
MAX_MESSAGE_LENGTH = 2000

STORAGE_FILE = Path(os.environ.get("MARKETPLACE_CHAT_STATE", Path.home() / ".marketplace_chat.json"))
LOG_FILE = Path.home() / ".marketplace_chat.log"
