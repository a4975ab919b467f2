"""
Qt Frame Scheduler
Drives SceneHost render loops from a QTimer on the GUI thread.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from PySide6.QtCore import QObject, Qt, QTimer

from sciencelab import config
from sciencelab.controller.scene_host import FrameHandle, FrameScheduler

logger = logging.getLogger(__name__)


class QtFrameHandle(FrameHandle):
    def __init__(self, timer: QTimer, callback: Callable[[float], None]) -> None:
        self._timer: Optional[QTimer] = timer
        self._callback = callback
        self._last_time: Optional[float] = None

    @property
    def active(self) -> bool:
        return self._timer is not None and self._timer.isActive()

    def _on_timeout(self) -> None:
        now = time.perf_counter()
        # The first frame only records the clock
        elapsed = 0.0 if self._last_time is None else now - self._last_time
        self._last_time = now
        self._callback(elapsed)

    def cancel(self) -> None:
        if self._timer is None:
            return
        self._timer.stop()
        self._timer.timeout.disconnect(self._on_timeout)
        self._timer.deleteLater()
        self._timer = None
        logger.debug("Frame loop cancelled.")


class QtFrameScheduler(FrameScheduler):
    """
    One precise QTimer per started loop.

    Args:
        interval_ms: Timer interval, ~60 FPS by default.
        parent: Optional owner of the timers.
    """

    def __init__(self, interval_ms: int = config.FRAME_INTERVAL_MS, parent: Optional[QObject] = None) -> None:
        self.interval_ms = interval_ms
        self.parent = parent

    def start(self, callback: Callable[[float], None]) -> QtFrameHandle:
        timer = QTimer(self.parent)
        timer.setTimerType(Qt.PreciseTimer)
        timer.setInterval(self.interval_ms)
        handle = QtFrameHandle(timer, callback)
        timer.timeout.connect(handle._on_timeout)
        timer.start()
        logger.debug(f"Frame loop started ({self.interval_ms} ms).")
        return handle
