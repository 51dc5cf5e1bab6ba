"""
Editor configuration

Runtime defaults for the timeline, GIF sequences and playback loop.
Values can be loaded from / saved to a JSON file.
"""

import json
from dataclasses import dataclass, asdict, fields
from typing import Any, Dict

from .log import get_logger

log = get_logger(__name__)


@dataclass
class EditorConfig:
    """
    Attributes:
        track_duration: Length of the animation track in seconds
        nominal_track_width: Pixel width used before the track has been measured
        min_clip_duration: Shortest allowed animation clip in seconds
        default_gif_delay: Delay in seconds given to lazily created GIF frames
        tick_interval: Seconds between playback ticks
        default_ad_size_id: Ad size used when a frame id carries no ad size
        snap_frame_rate: Frame rate used when snapping times to frames
    """
    track_duration: float = 5.0
    nominal_track_width: float = 400.0
    min_clip_duration: float = 0.5
    default_gif_delay: float = 2.5
    tick_interval: float = 1.0 / 30.0
    default_ad_size_id: str = "frame-1"
    snap_frame_rate: int = 30

    def __post_init__(self):
        if self.track_duration <= 0:
            raise ValueError("track_duration must be positive")
        if self.nominal_track_width <= 0:
            raise ValueError("nominal_track_width must be positive")
        if self.min_clip_duration <= 0:
            raise ValueError("min_clip_duration must be positive")
        if self.min_clip_duration > self.track_duration:
            raise ValueError("min_clip_duration cannot exceed track_duration")
        if self.default_gif_delay < 0:
            raise ValueError("default_gif_delay cannot be negative")
        if self.tick_interval <= 0:
            raise ValueError("tick_interval must be positive")
        if self.snap_frame_rate <= 0:
            raise ValueError("snap_frame_rate must be positive")
        if not self.default_ad_size_id:
            raise ValueError("default_ad_size_id cannot be empty")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EditorConfig':
        known = {f.name for f in fields(cls)}
        for key in data:
            if key not in known:
                log.warning("Ignoring unknown config key %r", key)
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_config(file_path: str) -> EditorConfig:
    with open(file_path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError("Invalid config: expected a JSON object")
    return EditorConfig.from_dict(data)


def save_config(config: EditorConfig, file_path: str):
    with open(file_path, 'w', encoding='utf-8') as f:
        json.dump(config.to_dict(), f, indent=2, ensure_ascii=False)
