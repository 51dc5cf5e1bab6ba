from PyQt6.QtCore import QObject, QTimer, QElapsedTimer, pyqtSignal
from typing import Callable, Optional

from ..core.playback import PlaybackScheduler, PlaybackState, TickSource


class QtTickSource(QObject, TickSource):
    """Drives a PlaybackScheduler from the Qt event loop."""

    def __init__(self, interval_ms: int = 33, parent=None):
        super().__init__(parent)
        self._callback: Optional[Callable[[float], None]] = None

        self.elapsed = QElapsedTimer()
        self.timer = QTimer(self)
        self.timer.setInterval(max(1, int(interval_ms)))
        self.timer.timeout.connect(self.on_timeout)

    @classmethod
    def from_config(cls, config, parent=None) -> 'QtTickSource':
        return cls(interval_ms=round(config.tick_interval * 1000), parent=parent)

    def start(self, callback: Callable[[float], None]):
        self._callback = callback
        self.elapsed.start()
        self.timer.start()

    def stop(self):
        self.timer.stop()
        self._callback = None
        self.elapsed.invalidate()

    @property
    def active(self) -> bool:
        return self._callback is not None and self.timer.isActive()

    def on_timeout(self):
        if self._callback is None:
            return
        # restart() returns ms since the previous tick (monotonic)
        dt = self.elapsed.restart() / 1000.0
        self._callback(dt)


class PlaybackBridge(QObject):
    """Re-emits scheduler publications as Qt signals for the timeline and preview widgets."""

    time_changed = pyqtSignal(float)
    frame_time_changed = pyqtSignal(str, float)  # (frame id, local time)
    active_frame_changed = pyqtSignal(str)
    playing_changed = pyqtSignal(bool)

    def __init__(self, scheduler: PlaybackScheduler, parent=None):
        super().__init__(parent)
        self.scheduler = scheduler

        scheduler.add_time_listener(self.time_changed.emit)
        scheduler.add_frame_time_listener(self.frame_time_changed.emit)
        scheduler.add_active_frame_listener(self.active_frame_changed.emit)
        scheduler.add_state_listener(self.on_state_changed)

    def on_state_changed(self, state: PlaybackState):
        self.playing_changed.emit(state == PlaybackState.PLAYING)

    def toggle_play(self):
        self.scheduler.toggle()
