"""
QThread workers that wrap a blocking export or import.

A worker runs `do_work` on its own thread and reports back only
through Qt signals, so callers never touch it while it runs.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum, auto
from typing import Any, Optional

from PyQt6.QtCore import QObject, QThread, pyqtSignal, pyqtSlot, QMutex, QMutexLocker

from ctxmirror.core.models import OperationCancelled, ProgressCallback


class WorkerState(Enum):
    """Lifecycle of a worker."""
    PENDING = auto()
    RUNNING = auto()
    CANCELLING = auto()  # Requested, do_work has not returned yet
    CANCELLED = auto()
    COMPLETED = auto()
    FAILED = auto()


class WorkerSignals(QObject):
    """Signals a worker emits towards the thread that owns it."""
    progress = pyqtSignal(int, str)   # (accumulated percent, message)
    status = pyqtSignal(str)          # Messages that carry no progress
    finished = pyqtSignal(object)     # Result of do_work
    error = pyqtSignal(str, str)      # (exception type, message)
    cancelled = pyqtSignal()


class WorkerMeta(type(QObject), type(ABC)):
    pass


class BaseWorker(QObject, ABC, metaclass=WorkerMeta):
    """
    Runs `do_work` and turns its outcome into exactly one of the
    `finished`, `error` or `cancelled` signals.

    Subclasses implement `do_work` and feed the core's progress
    callback with `progress_callback()`.
    """

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.signals = WorkerSignals()
        self._state = WorkerState.PENDING
        self._cancelled = False
        self._mutex = QMutex()
        self._percent = 0.0
        self._result: Any = None
        self._error: Optional[tuple[str, str]] = None

    @property
    def state(self) -> WorkerState:
        with QMutexLocker(self._mutex):
            return self._state

    def _set_state(self, value: WorkerState) -> None:
        with QMutexLocker(self._mutex):
            self._state = value

    @property
    def is_cancelled(self) -> bool:
        with QMutexLocker(self._mutex):
            return self._cancelled

    @property
    def result(self) -> Any:
        return self._result

    @property
    def error(self) -> Optional[tuple[str, str]]:
        """(exception type, message) once the worker has failed."""
        return self._error

    def cancel(self) -> None:
        """Ask the running work to stop. Safe to call from any thread."""
        with QMutexLocker(self._mutex):
            self._cancelled = True
            if self._state == WorkerState.RUNNING:
                self._state = WorkerState.CANCELLING

    @pyqtSlot()
    def run(self) -> None:
        """Slot connected to the thread's `started` signal."""
        self._set_state(WorkerState.RUNNING)
        if self.is_cancelled:
            self._set_state(WorkerState.CANCELLING)

        try:
            self._result = self.do_work()
        except OperationCancelled:
            self._set_state(WorkerState.CANCELLED)
            self.signals.cancelled.emit()
            return
        except Exception as e:
            logging.error(f"{type(self).__name__} - {type(e).__name__}: {e}")
            self._error = (type(e).__name__, str(e))
            self._set_state(WorkerState.FAILED)
            self.signals.error.emit(*self._error)
            return

        if self.is_cancelled:
            self._set_state(WorkerState.CANCELLED)
            self.signals.cancelled.emit()
        else:
            self._set_state(WorkerState.COMPLETED)
            self.signals.finished.emit(self._result)

    @abstractmethod
    def do_work(self) -> Any:
        """Blocking work. Return the result, or raise OperationCancelled."""

    def report_progress(self, increment: float, message: str = "") -> None:
        with QMutexLocker(self._mutex):
            self._percent = min(100.0, self._percent + increment)
            percent = self._percent
        self.signals.progress.emit(int(percent), message)

    def report_status(self, message: str) -> None:
        self.signals.status.emit(message)

    def progress_callback(self) -> ProgressCallback:
        """Adapter to the ``report(message, increment)`` callback of the core."""
        def report(message: str, increment: float) -> None:
            if increment:
                self.report_progress(increment, message)
            else:
                self.report_status(message)
        return report

    def check_cancelled(self) -> None:
        if self.is_cancelled:
            raise OperationCancelled("Operation cancelled")


class CancellableWorker(BaseWorker):
    """
    Worker that forwards `cancel` to the objects doing the work.

    Register them with `track`; anything with a ``cancel()`` method works.
    """

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._cancel_targets: list[Any] = []

    def track(self, target: Any) -> Any:
        self._cancel_targets.append(target)
        if self.is_cancelled:
            target.cancel()
        return target

    def cancel(self) -> None:
        super().cancel()
        for target in self._cancel_targets:
            target.cancel()


class WorkerThread(QThread):
    """Owns a worker and quits once the worker reports any outcome."""

    def __init__(self, worker: BaseWorker, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.worker = worker
        self.worker.moveToThread(self)

        self.started.connect(self.worker.run)
        for signal in (worker.signals.finished, worker.signals.error, worker.signals.cancelled):
            signal.connect(self.quit)

    def cancel(self) -> None:
        self.worker.cancel()

    @property
    def result(self) -> Any:
        return self.worker.result

    @property
    def error(self) -> Optional[tuple[str, str]]:
        return self.worker.error
