"""Qt implementation of the controller scheduler."""
from __future__ import annotations

from typing import Callable, Optional, Set

from PyQt6.QtCore import QObject, QRunnable, QThreadPool, QTimer, pyqtSignal


class _JobSignals(QObject):
    succeeded = pyqtSignal(object)
    failed = pyqtSignal(object)


class _Job(QRunnable):
    def __init__(self, fn: Callable[[], object], signals: _JobSignals):
        super().__init__()
        self.fn = fn
        self.signals = signals

    def run(self) -> None:
        try:
            result = self.fn()
        except Exception as exc:  # noqa: BLE001
            self.signals.failed.emit(exc)
            return
        self.signals.succeeded.emit(result)


class QtTimerHandle:
    def __init__(self, timer: QTimer):
        self._timer: Optional[QTimer] = timer

    def stop(self) -> None:
        if self._timer is None:
            return
        self._timer.stop()
        self._timer.deleteLater()
        self._timer = None


class QtScheduler(QObject):
    """Timers on the Qt event loop; blocking calls on the global thread pool.

    Job signals are created on the GUI thread, so their outcomes are queued
    back to it and handled between other UI events.
    """

    def __init__(self, parent: QObject | None = None, pool: QThreadPool | None = None):
        super().__init__(parent)
        self.pool = pool or QThreadPool.globalInstance()
        self._pending: Set[_JobSignals] = set()

    def call_every(self, interval_ms: int, callback: Callable[[], None]) -> QtTimerHandle:
        timer = QTimer(self)
        timer.timeout.connect(callback)
        timer.start(interval_ms)
        return QtTimerHandle(timer)

    def submit(self, fn, on_success, on_error) -> None:
        signals = _JobSignals()
        self._pending.add(signals)

        def finish(handler, value) -> None:
            self._pending.discard(signals)
            handler(value)

        signals.succeeded.connect(lambda result: finish(on_success, result))
        signals.failed.connect(lambda exc: finish(on_error, exc))
        self.pool.start(_Job(fn, signals))
