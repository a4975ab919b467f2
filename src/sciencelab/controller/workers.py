"""
Background Workers (Threading)
==============================
This module contains the QThread subclass used to load models off the GUI
thread.

Why is this file needed?
------------------------
1. Responsiveness: Downloading and parsing a model can take seconds. Running
   it on the main thread would freeze the render loop.
2. Signals: Results and errors travel back to the GUI thread through Qt
   signals, so scene mutation only ever happens on the main thread.

Classes:
    AssetLoadWorker: Runs one load job.
    QtLoadExecutor: LoadExecutor that runs every job on its own worker.
"""
import logging
from typing import Callable, Optional

from PySide6.QtCore import QDeadlineTimer, QObject, QThread, Signal, Slot

from sciencelab.controller.asset_viewer import LoadCallback, LoadExecutor
from sciencelab.model.assets import ViewerAsset

logger = logging.getLogger(__name__)

# Total time shutdown() may block the GUI thread, shared by all running workers
SHUTDOWN_TIMEOUT_MS = 2000


class AssetLoadWorker(QThread):
    # Signals to deliver the outcome to the GUI thread
    loaded = Signal(object)  # ViewerAsset
    error_occurred = Signal(object)  # Exception

    def __init__(self, job: Callable[[], ViewerAsset], parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self.job = job

    def run(self) -> None:
        try:
            logger.debug("Starting model load in background thread...")
            asset = self.job()
            self.loaded.emit(asset)
        except Exception as e:
            logger.error(f"Error in AssetLoadWorker: {e}")
            self.error_occurred.emit(e)


class _ResultRelay(QObject):
    """Lives on the GUI thread; receives worker signals through queued connections."""

    def __init__(
        self,
        worker: AssetLoadWorker,
        on_done: LoadCallback,
        on_finished: Callable[[AssetLoadWorker], None],
    ) -> None:
        super().__init__()
        self._worker = worker
        self._on_done = on_done
        self._on_finished = on_finished

    @Slot(object)
    def on_loaded(self, asset: ViewerAsset) -> None:
        self._on_done(asset, None)

    @Slot(object)
    def on_error(self, error: Exception) -> None:
        self._on_done(None, error)

    @Slot()
    def on_finished(self) -> None:
        self._on_finished(self._worker)


class QtLoadExecutor(LoadExecutor):
    """Runs each job on its own AssetLoadWorker."""

    def __init__(self) -> None:
        self._workers: dict[AssetLoadWorker, _ResultRelay] = {}
        self._accepting = True

    @property
    def pending(self) -> int:
        return len(self._workers)

    def submit(self, job: Callable[[], ViewerAsset], on_done: LoadCallback) -> None:
        if not self._accepting:
            logger.warning("Load executor is shut down; job dropped.")
            return

        worker = AssetLoadWorker(job)
        relay = _ResultRelay(worker, on_done, self._on_worker_finished)
        worker.loaded.connect(relay.on_loaded)
        worker.error_occurred.connect(relay.on_error)
        worker.finished.connect(relay.on_finished)
        self._workers[worker] = relay
        worker.start()

    def _on_worker_finished(self, worker: AssetLoadWorker) -> None:
        relay = self._workers.pop(worker, None)
        if relay is not None:
            relay.deleteLater()
        worker.deleteLater()

    def shutdown(self, timeout_ms: int = SHUTDOWN_TIMEOUT_MS) -> None:
        """Stop accepting jobs and wait for running ones; the viewer discards their results."""
        self._accepting = False
        deadline = QDeadlineTimer(timeout_ms)
        for worker in list(self._workers):
            if not worker.wait(deadline):
                logger.warning("Model load still running at shutdown; its result will be dropped.")
