"""Client-side models for conversation display."""
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List

from .schemas import Message


class TranscriptState(str, Enum):
    IDLE = "idle"
    UNAUTHENTICATED = "unauthenticated"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"
    CLOSED = "closed"


@dataclass
class DateGroup:
    day: date
    date_label: str
    messages: List[Message] = field(default_factory=list)
