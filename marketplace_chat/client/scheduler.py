"""Event-loop contract the messaging controllers run on.

Controllers never block and never touch threads. They ask the scheduler for a
repeating timer or for a background call, and every callback (timer tick,
success, failure) is delivered on the loop thread, one at a time.
"""
from typing import Callable, Protocol, TypeVar

T = TypeVar("T")


class TimerHandle(Protocol):
    def stop(self) -> None:
        """Cancel the timer; no tick is delivered after this returns."""


class Scheduler(Protocol):
    def call_every(self, interval_ms: int, callback: Callable[[], None]) -> TimerHandle:
        ...

    def submit(
        self,
        fn: Callable[[], T],
        on_success: Callable[[T], None],
        on_error: Callable[[Exception], None],
    ) -> None:
        """Run ``fn`` off the loop and hand its outcome back to the loop."""
