"""Plain-Python change notification for controllers and the session store."""
from typing import Callable, Generic, List, TypeVar

T = TypeVar("T")


class Listeners(Generic[T]):
    """Ordered set of callbacks; ``subscribe`` returns the matching unsubscribe."""

    def __init__(self) -> None:
        self._callbacks: List[Callable[[T], None]] = []

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def emit(self, value: T) -> None:
        for callback in list(self._callbacks):
            callback(value)

    def __len__(self) -> int:
        return len(self._callbacks)
