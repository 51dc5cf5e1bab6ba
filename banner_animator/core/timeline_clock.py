"""
Timeline clock

Time <-> pixel mapping for the animation track and the clamped edit
arithmetic used when clips are dragged or resized.
"""

from typing import List, Optional, NamedTuple, Callable, Sequence

from .log import get_logger

log = get_logger(__name__)

MIN_CLIP_DURATION = 0.5
NOMINAL_TRACK_WIDTH = 400.0
DEFAULT_TRACK_DURATION = 5.0


class Clip(NamedTuple):
    """The (start, duration) interval of one animation on the track."""
    start: float
    duration: float

    @property
    def end(self) -> float:
        return self.start + self.duration


def _clamp(low: float, high: float, value: float) -> float:
    return max(low, min(high, value))


# ----- Clip edits (pure) -----
def move_clip(clip: Clip, delta: float, track_duration: float) -> Clip:
    """Shift a clip, keeping it entirely on the track. Duration is unchanged."""
    start = _clamp(0.0, track_duration - clip.duration, clip.start + delta)
    return Clip(max(0.0, start), clip.duration)


def resize_clip_left(clip: Clip, delta: float, track_duration: float,
                     min_duration: float = MIN_CLIP_DURATION) -> Clip:
    """
    Drag the left edge of a clip by delta seconds.

    The right edge stays where it is. Shrinking below min_duration pins the
    duration and pushes the start back; growing past 0 pins the start at 0.
    """
    end = clip.end
    start = clip.start + delta
    duration = clip.duration - delta
    if duration < min_duration:
        duration = min_duration
        start = end - min_duration
    if start < 0:
        start = 0.0
        duration = max(min_duration, end)
    if start + duration > track_duration:
        duration = max(min_duration, track_duration - start)
    return Clip(start, duration)


def resize_clip_right(clip: Clip, delta: float, track_duration: float,
                      min_duration: float = MIN_CLIP_DURATION) -> Clip:
    """Drag the right edge of a clip by delta seconds. Start is unchanged."""
    duration = max(min_duration, min(track_duration - clip.start, clip.duration + delta))
    return Clip(clip.start, duration)


class RulerTick(NamedTuple):
    time: float
    position: float
    label: str
    is_major: bool


class TimelineClock:
    """
    Converts between track time (seconds) and pixel position.

    The track width is unknown until the view has been measured; until then
    a nominal width keeps freshly created clips at sane proportions.
    """

    def __init__(self, track_duration: float = DEFAULT_TRACK_DURATION,
                 track_width: Optional[float] = None,
                 min_clip_duration: float = MIN_CLIP_DURATION,
                 nominal_width: float = NOMINAL_TRACK_WIDTH):
        if track_duration <= 0:
            raise ValueError("track_duration must be positive")
        if min_clip_duration <= 0 or min_clip_duration > track_duration:
            raise ValueError("min_clip_duration must be in (0, track_duration]")
        self.track_duration = float(track_duration)
        self.track_width = track_width
        self.min_clip_duration = float(min_clip_duration)
        self.nominal_width = float(nominal_width)

    @classmethod
    def from_config(cls, config, track_width: Optional[float] = None) -> 'TimelineClock':
        return cls(
            track_duration=config.track_duration,
            track_width=track_width,
            min_clip_duration=config.min_clip_duration,
            nominal_width=config.nominal_track_width,
        )

    @property
    def effective_width(self) -> float:
        if self.track_width is None or self.track_width <= 0:
            return self.nominal_width
        return float(self.track_width)

    def set_track_width(self, width: Optional[float]):
        self.track_width = width

    def set_track_duration(self, duration: float):
        if duration < self.min_clip_duration:
            raise ValueError("track duration cannot be shorter than the minimum clip")
        self.track_duration = float(duration)

    # ----- Mapping -----
    def position_from_time(self, time: float) -> float:
        return (time / self.track_duration) * self.effective_width

    def time_from_position(self, position: float) -> float:
        time = (position / self.effective_width) * self.track_duration
        return _clamp(0.0, self.track_duration, time)

    def time_delta_from_pixels(self, delta_x: float) -> float:
        """Unclamped time delta for a horizontal drag distance"""
        return (delta_x / self.effective_width) * self.track_duration

    def clamp_time(self, time: float) -> float:
        return _clamp(0.0, self.track_duration, time)

    # ----- Edits -----
    def move(self, clip: Clip, delta: float) -> Clip:
        return move_clip(clip, delta, self.track_duration)

    def resize_left(self, clip: Clip, delta: float) -> Clip:
        return resize_clip_left(clip, delta, self.track_duration, self.min_clip_duration)

    def resize_right(self, clip: Clip, delta: float) -> Clip:
        return resize_clip_right(clip, delta, self.track_duration, self.min_clip_duration)

    def fit(self, clip: Clip) -> Clip:
        """Bring an arbitrary clip back inside the track bounds"""
        duration = _clamp(self.min_clip_duration, self.track_duration, clip.duration)
        start = _clamp(0.0, self.track_duration - duration, clip.start)
        return Clip(start, duration)

    # ----- Ruler / snapping -----
    def ruler_ticks(self, scale: float = 100.0) -> List[RulerTick]:
        interval = 0.5
        if self.track_duration > 10:
            interval = 1.0
        if scale < 50:
            interval = 2.0
        ticks: List[RulerTick] = []
        count = int(self.track_duration / interval + 1e-9)
        for i in range(count + 1):
            time = round(i * interval, 6)
            ticks.append(RulerTick(
                time=time,
                position=self.position_from_time(time),
                label=f"{time:.1f}s",
                is_major=float(time).is_integer(),
            ))
        return ticks

    @staticmethod
    def snap_time(time: float, frame_rate: int = 30, keyframes: Sequence[float] = ()) -> float:
        """Snap to a nearby keyframe (within half a frame) or else to the nearest frame"""
        frame_duration = 1.0 / frame_rate
        threshold = frame_duration / 2
        for keyframe_time in keyframes:
            if abs(time - keyframe_time) <= threshold:
                return keyframe_time
        return round(time / frame_duration) * frame_duration

    def __repr__(self):
        return f"TimelineClock(duration={self.track_duration}s, width={self.effective_width}px)"


class ClipDragSession:
    """
    One drag or resize gesture on a clip.

    Deltas are applied one after another to the current clip state. The
    commit callback runs once when the session closes normally; after
    closing, further deltas are ignored. Use as a context manager.
    """

    MOVE = 'move'
    RESIZE_LEFT = 'resize-left'
    RESIZE_RIGHT = 'resize-right'

    def __init__(self, clock: TimelineClock, clip: Clip, mode: str = MOVE,
                 on_update: Optional[Callable[[Clip], None]] = None,
                 on_commit: Optional[Callable[[Clip], None]] = None):
        if mode not in (self.MOVE, self.RESIZE_LEFT, self.RESIZE_RIGHT):
            raise ValueError(f"Unknown drag mode: {mode}")
        self.clock = clock
        self.mode = mode
        self.original = clip
        self.current = clip
        self.history: List[Clip] = [clip]
        self._on_update = on_update
        self._on_commit = on_commit
        self.closed = False

    def apply(self, time_delta: float) -> Clip:
        if self.closed:
            log.warning("Ignoring delta %.3f on a closed drag session", time_delta)
            return self.current
        if self.mode == self.MOVE:
            clip = self.clock.move(self.current, time_delta)
        elif self.mode == self.RESIZE_LEFT:
            clip = self.clock.resize_left(self.current, time_delta)
        else:
            clip = self.clock.resize_right(self.current, time_delta)
        self.current = clip
        self.history.append(clip)
        if self._on_update is not None:
            self._on_update(clip)
        return clip

    def apply_pixels(self, delta_x: float) -> Clip:
        return self.apply(self.clock.time_delta_from_pixels(delta_x))

    def close(self, commit: bool = True):
        if self.closed:
            return
        self.closed = True
        if commit and self._on_commit is not None:
            self._on_commit(self.current)

    def __enter__(self) -> 'ClipDragSession':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close(commit=exc_type is None)
        return False
