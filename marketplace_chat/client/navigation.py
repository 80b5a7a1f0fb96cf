"""Screen changes requested by controllers."""
from typing import Protocol


class Navigator(Protocol):
    def to_login(self) -> None:
        ...

    def to_conversations(self) -> None:
        ...

    def to_conversation(self, conversation_id: int) -> None:
        ...
