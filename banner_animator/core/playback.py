"""
Playback scheduler

Advances a play cursor under two mutually exclusive modes:

- ANIMATION: one pass over the animation track, stopping at its end.
- GIF_SEQUENCE: a looping walk over an ad size's GIF frames, where each
  frame holds for its delay and then runs its own animation clock.

The scheduler is driven through ``on_tick(dt)`` by a tick source. It does
not know which timer backs the source, only that deltas are monotonic.
"""

from contextlib import contextmanager
from enum import Enum
from typing import List, Optional, Callable, Iterable, Tuple, NamedTuple, Iterator

from .log import get_logger

log = get_logger(__name__)


class PlaybackMode(Enum):
    ANIMATION = 'animation'
    GIF_SEQUENCE = 'gif-sequence'


class PlaybackState(Enum):
    STOPPED = 'stopped'
    PLAYING = 'playing'


class SequenceEntry(NamedTuple):
    frame_id: str
    delay: float
    duration: float
    start_offset: float

    @property
    def total_duration(self) -> float:
        return self.delay + self.duration


def build_sequence(frames: Iterable[Tuple[str, float, float]]) -> List[SequenceEntry]:
    """
    Turn (frame_id, delay, duration) triples into entries with cumulative offsets.
    """
    entries: List[SequenceEntry] = []
    offset = 0.0
    for frame_id, delay, duration in frames:
        entry = SequenceEntry(str(frame_id), max(0.0, delay), max(0.0, duration), offset)
        entries.append(entry)
        offset += entry.total_duration
    return entries


def sequence_total(entries: List[SequenceEntry]) -> float:
    return sum(e.total_duration for e in entries)


def locate_in_sequence(entries: List[SequenceEntry], t: float) -> Optional[Tuple[int, float]]:
    """
    Find the frame active at sequence time t.

    Returns (index, local_time), where local_time stays at 0 during the
    frame's delay and then runs the frame's own clock. None if t is outside
    the sequence.
    """
    for index, entry in enumerate(entries):
        if entry.start_offset <= t < entry.start_offset + entry.total_duration:
            return index, max(0.0, t - entry.start_offset - entry.delay)
    return None


class TickSource:
    """
    Something that calls back repeatedly with elapsed seconds.

    Implementations: ManualTickSource (virtual clock) and
    widgets.playback_timer.QtTickSource (QTimer).
    """

    def start(self, callback: Callable[[float], None]):
        raise NotImplementedError

    def stop(self):
        raise NotImplementedError

    @property
    def active(self) -> bool:
        raise NotImplementedError


class ManualTickSource(TickSource):
    """Test-controlled clock: ticks only when advance() is called."""

    def __init__(self):
        self._callback: Optional[Callable[[float], None]] = None

    def start(self, callback: Callable[[float], None]):
        self._callback = callback

    def stop(self):
        self._callback = None

    @property
    def active(self) -> bool:
        return self._callback is not None

    def advance(self, dt: float, steps: int = 1):
        """Deliver `steps` ticks of dt seconds each, stopping early if the listener detaches"""
        for _ in range(steps):
            if self._callback is None:
                return
            self._callback(dt)


class PlaybackScheduler:

    def __init__(self, tick_source: TickSource, track_duration: float = 5.0):
        if track_duration <= 0:
            raise ValueError("track_duration must be positive")
        self.tick_source = tick_source
        self.track_duration = float(track_duration)
        self.mode = PlaybackMode.ANIMATION
        self.state = PlaybackState.STOPPED

        self.current_time = 0.0          # animation track time
        self.sequence_time = 0.0         # global GIF sequence time
        self.entries: List[SequenceEntry] = []
        self.active_index: Optional[int] = None
        self.local_time = 0.0
        self._announced_frame_id: Optional[str] = None

        self._initial_time = 0.0
        self._elapsed = 0.0

        self._time_listeners: List[Callable[[float], None]] = []
        self._frame_time_listeners: List[Callable[[str, float], None]] = []
        self._active_frame_listeners: List[Callable[[str], None]] = []
        self._state_listeners: List[Callable[[PlaybackState], None]] = []

    # ----- Listeners -----
    def add_time_listener(self, callback: Callable[[float], None]):
        self._time_listeners.append(callback)

    def add_frame_time_listener(self, callback: Callable[[str, float], None]):
        self._frame_time_listeners.append(callback)

    def add_active_frame_listener(self, callback: Callable[[str], None]):
        self._active_frame_listeners.append(callback)

    def add_state_listener(self, callback: Callable[[PlaybackState], None]):
        self._state_listeners.append(callback)

    # ----- Properties -----
    @property
    def is_playing(self) -> bool:
        return self.state == PlaybackState.PLAYING

    @property
    def active_frame_id(self) -> Optional[str]:
        if self.active_index is None or self.active_index >= len(self.entries):
            return None
        return self.entries[self.active_index].frame_id

    @property
    def sequence_duration(self) -> float:
        return sequence_total(self.entries)

    # ----- Configuration -----
    def set_track_duration(self, duration: float):
        if duration <= 0:
            raise ValueError("track_duration must be positive")
        self.track_duration = float(duration)
        if self.current_time > self.track_duration:
            self.current_time = self.track_duration
            self._publish_time(self.current_time)

    def load_sequence(self, entries: List[SequenceEntry]):
        """
        Replace the GIF frame sequence. Keeps the cursor if it still fits.

        Active-frame listeners only hear about the reload if the frame under
        the cursor is a different one.
        """
        self.entries = list(entries)
        total = sequence_total(self.entries)
        if self.sequence_time >= total:
            self.sequence_time = 0.0
        if self.is_playing and self.mode == PlaybackMode.GIF_SEQUENCE:
            self._initial_time = self.sequence_time
            self._elapsed = 0.0
        self.active_index = None
        if self.entries:
            self._update_sequence_position(self.sequence_time)
        else:
            self._announced_frame_id = None

    # ----- Transport -----
    def play(self, mode: Optional[PlaybackMode] = None):
        mode = mode or self.mode
        if self.is_playing:
            if mode == self.mode:
                return
            self.stop()
        self.mode = mode
        if mode == PlaybackMode.ANIMATION:
            if self.current_time >= self.track_duration:
                self.current_time = 0.0
            self._initial_time = self.current_time
        else:
            self._initial_time = self.sequence_time
        self._elapsed = 0.0
        self.state = PlaybackState.PLAYING
        self.tick_source.start(self.on_tick)
        log.debug("Playback started in %s mode at %.3f", mode.value, self._initial_time)
        self._publish_state()

    def pause(self):
        """Stop ticking; the current time is kept."""
        if not self.is_playing:
            return
        self.tick_source.stop()
        self.state = PlaybackState.STOPPED
        log.debug("Playback paused in %s mode", self.mode.value)
        self._publish_state()

    def stop(self):
        self.pause()

    def toggle(self, mode: Optional[PlaybackMode] = None):
        if self.is_playing:
            self.pause()
        else:
            self.play(mode)

    def seek(self, time: float, mode: Optional[PlaybackMode] = None):
        """Move the cursor of the given mode (default: current mode)."""
        mode = mode or self.mode
        if mode == PlaybackMode.ANIMATION:
            self.current_time = max(0.0, min(self.track_duration, time))
            value = self.current_time
            self._publish_time(value)
        else:
            total = sequence_total(self.entries)
            value = max(0.0, time)
            if total > 0 and value >= total:
                value = value % total
            self.sequence_time = value
            self._update_sequence_position(value)
        if self.is_playing and mode == self.mode:
            self._initial_time = value
            self._elapsed = 0.0

    @contextmanager
    def playing(self, mode: Optional[PlaybackMode] = None) -> Iterator['PlaybackScheduler']:
        """Play for the duration of a with-block; ticking always stops on exit."""
        self.play(mode)
        try:
            yield self
        finally:
            self.stop()

    # ----- Ticking -----
    def on_tick(self, dt: float):
        if not self.is_playing:
            return
        self._elapsed += max(0.0, dt)
        t = self._initial_time + self._elapsed
        if self.mode == PlaybackMode.ANIMATION:
            self._tick_animation(t)
        else:
            self._tick_sequence(t)

    def _tick_animation(self, t: float):
        if t >= self.track_duration:
            self.current_time = self.track_duration
            self._publish_time(self.current_time)
            self.stop()
            return
        self.current_time = t
        self._publish_time(t)

    def _tick_sequence(self, t: float):
        total = sequence_total(self.entries)
        if total <= 0:
            log.debug("GIF sequence is empty, stopping playback")
            self.stop()
            return
        if t >= total:
            t = t % total
            # restart the loop origin so elapsed time does not grow without bound
            self._initial_time = t
            self._elapsed = 0.0
        self.sequence_time = t
        self._update_sequence_position(t)

    def _update_sequence_position(self, t: float):
        found = locate_in_sequence(self.entries, t)
        if found is None:
            return
        index, local_time = found
        frame_id = self.entries[index].frame_id
        self.local_time = local_time
        self.active_index = index
        if frame_id != self._announced_frame_id:
            self._announced_frame_id = frame_id
            for callback in self._active_frame_listeners:
                callback(frame_id)
        for callback in self._frame_time_listeners:
            callback(frame_id, local_time)

    def _publish_time(self, t: float):
        for callback in self._time_listeners:
            callback(t)

    def _publish_state(self):
        for callback in self._state_listeners:
            callback(self.state)

    def __repr__(self):
        return (f"PlaybackScheduler(mode={self.mode.value}, state={self.state.value}, "
                f"time={self.current_time:.3f}, sequence_time={self.sequence_time:.3f})")
