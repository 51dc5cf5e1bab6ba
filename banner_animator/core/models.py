"""
Data model for multi-size banner animation

Ad sizes own layers, layers own animations, and GIF frames record which
layers are shown at each step of an ad size's GIF sequence.
"""

import uuid
from enum import Enum
from typing import List, Optional, Dict, Set, Any
from dataclasses import dataclass, field

from .frame_ids import GifFrameId


KEYFRAME_TOLERANCE = 1e-6


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


class AnimationType(str, Enum):
    FADE_IN = 'fadeIn'
    FADE_OUT = 'fadeOut'
    SLIDE_IN = 'slideIn'
    SLIDE_OUT = 'slideOut'
    SCALE_UP = 'scaleUp'
    SCALE_DOWN = 'scaleDown'
    ROTATE = 'rotate'
    SIMPLE_FADE_IN = 'simple-fade-in'
    SIMPLE_FADE_OUT = 'simple-fade-out'
    INSTANT_SHOW = 'instant-show'
    INSTANT_HIDE = 'instant-hide'
    CUSTOM = 'custom'


class AnimationMode(str, Enum):
    ENTRANCE = 'entrance'
    EXIT = 'exit'


class EasingType(str, Enum):
    LINEAR = 'linear'
    EASE_IN = 'easeIn'
    EASE_OUT = 'easeOut'
    EASE_IN_OUT = 'easeInOut'
    BOUNCE = 'bounce'
    ELASTIC = 'elastic'


class SyncMode(str, Enum):
    FULL = 'full'
    PARTIAL = 'partial'
    INDEPENDENT = 'independent'


@dataclass
class Animation:
    """
    A single entrance or exit effect on a layer

    Attributes:
        type: Visual effect kind
        mode: Entrance or exit
        start_time: Clip start on the track, in seconds (>= 0)
        duration: Clip length in seconds (> 0)
        easing: Easing curve
        direction: Slide direction for directional effects
        scale: Target scale for scale effects
        rotation: Rotation in degrees for rotate effects
        opacity: Target opacity for fade effects
        overridden: Exempt this instance from linked-layer sync
        id: Stable identifier, used by link overrides
    """
    type: AnimationType = AnimationType.FADE_IN
    mode: AnimationMode = AnimationMode.ENTRANCE
    start_time: float = 0.0
    duration: float = 1.0
    easing: EasingType = EasingType.EASE_OUT
    direction: Optional[str] = None
    scale: Optional[float] = None
    rotation: Optional[float] = None
    opacity: Optional[float] = None
    overridden: bool = False
    id: str = field(default_factory=lambda: new_id("anim"))

    def __post_init__(self):
        self.type = AnimationType(self.type)
        self.mode = AnimationMode(self.mode)
        self.easing = EasingType(self.easing)
        if self.start_time < 0:
            raise ValueError("start_time cannot be negative")
        if self.duration <= 0:
            raise ValueError("duration must be positive")

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration

    def copy(self) -> 'Animation':
        return Animation(
            type=self.type,
            mode=self.mode,
            start_time=self.start_time,
            duration=self.duration,
            easing=self.easing,
            direction=self.direction,
            scale=self.scale,
            rotation=self.rotation,
            opacity=self.opacity,
            overridden=self.overridden,
            id=self.id,
        )

    def same_effect(self, other: 'Animation') -> bool:
        """True when both describe the same effect and timing, ignoring id and override flag"""
        return (
            self.type == other.type
            and self.mode == other.mode
            and self.start_time == other.start_time
            and self.duration == other.duration
            and self.easing == other.easing
            and self.direction == other.direction
            and self.scale == other.scale
            and self.rotation == other.rotation
            and self.opacity == other.opacity
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "mode": self.mode.value,
            "start_time": self.start_time,
            "duration": self.duration,
            "easing": self.easing.value,
            "direction": self.direction,
            "scale": self.scale,
            "rotation": self.rotation,
            "opacity": self.opacity,
            "overridden": self.overridden,
        }


@dataclass
class LinkInfo:
    """Membership of a layer in a link group"""
    group_id: str
    sync_mode: SyncMode = SyncMode.FULL
    is_main: bool = False
    overrides: Set[str] = field(default_factory=set)

    def copy(self) -> 'LinkInfo':
        return LinkInfo(
            group_id=self.group_id,
            sync_mode=self.sync_mode,
            is_main=self.is_main,
            overrides=set(self.overrides),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "group_id": self.group_id,
            "sync_mode": self.sync_mode.value,
            "is_main": self.is_main,
            "overrides": sorted(self.overrides),
        }


@dataclass
class Keyframe:
    """A marked time on a layer's track, optionally carrying property values"""
    time: float
    properties: Dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: new_id("kf"))

    def __post_init__(self):
        if self.time < 0:
            raise ValueError("keyframe time cannot be negative")

    def copy(self) -> 'Keyframe':
        return Keyframe(time=self.time, properties=dict(self.properties), id=self.id)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "time": self.time, "properties": dict(self.properties)}


@dataclass
class Layer:
    """
    A named visual element of an ad size

    The name is the join key used to link layers across ad sizes.
    Keyframes are kept sorted by time, at most one per time.
    """
    id: str
    name: str
    type: str = "rectangle"
    visible: bool = True
    locked: bool = False
    animations: List[Animation] = field(default_factory=list)
    link: Optional[LinkInfo] = None
    keyframes: List[Keyframe] = field(default_factory=list)

    @property
    def is_linked(self) -> bool:
        return self.link is not None

    def get_animation(self, index: int) -> Optional[Animation]:
        if 0 <= index < len(self.animations):
            return self.animations[index]
        return None

    def get_keyframe(self, time: float) -> Optional[Keyframe]:
        for keyframe in self.keyframes:
            if abs(keyframe.time - time) < KEYFRAME_TOLERANCE:
                return keyframe
        return None

    def is_slot_overridden(self, index: int) -> bool:
        """Whether the animation at index is exempt from inbound sync"""
        anim = self.get_animation(index)
        if anim is None:
            return False
        if anim.overridden:
            return True
        return self.link is not None and anim.id in self.link.overrides

    def copy(self) -> 'Layer':
        """Create a deep copy of this layer"""
        return Layer(
            id=self.id,
            name=self.name,
            type=self.type,
            visible=self.visible,
            locked=self.locked,
            animations=[a.copy() for a in self.animations],
            link=self.link.copy() if self.link else None,
            keyframes=[k.copy() for k in self.keyframes],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "visible": self.visible,
            "locked": self.locked,
            "animations": [a.to_dict() for a in self.animations],
            "link": self.link.to_dict() if self.link else None,
            "keyframes": [k.to_dict() for k in self.keyframes],
        }


@dataclass
class AdSize:
    """One fixed-dimension variant of the creative"""
    id: str
    width: int
    height: int
    name: str = ""
    layers: List[Layer] = field(default_factory=list)

    def __post_init__(self):
        if not self.name:
            self.name = f"{self.width}x{self.height}"

    def get_layer(self, layer_id: str) -> Optional[Layer]:
        for layer in self.layers:
            if layer.id == layer_id:
                return layer
        return None

    def find_layer_by_name(self, name: str) -> Optional[Layer]:
        """First layer with the given name, in layer order"""
        for layer in self.layers:
            if layer.name == name:
                return layer
        return None

    def copy(self) -> 'AdSize':
        return AdSize(
            id=self.id,
            width=self.width,
            height=self.height,
            name=self.name,
            layers=[layer.copy() for layer in self.layers],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "width": self.width,
            "height": self.height,
            "layers": [layer.to_dict() for layer in self.layers],
        }

    def __repr__(self):
        return f"AdSize(id={self.id!r}, {self.width}x{self.height}, layers={len(self.layers)})"


@dataclass
class LayerOverride:
    overridden: bool = False


@dataclass
class GifFrame:
    """
    One step of an ad size's GIF sequence

    Attributes:
        id: Structured frame id (ad size + frame number)
        delay: Seconds the frame holds before its animation clock runs
        duration: Animation clock length; None means the track duration
        hidden_layers: Ids of layers hidden in this frame
        overrides: Per-layer flags that gate visibility propagation
        source_of_truth: Marks the canonical frame for its id
        ad_size: The owning ad size; its live layer list is the frame's layers
    """
    id: GifFrameId
    delay: float = 2.5
    duration: Optional[float] = None
    hidden_layers: Set[str] = field(default_factory=set)
    overrides: Dict[str, LayerOverride] = field(default_factory=dict)
    source_of_truth: bool = False
    ad_size: Optional[AdSize] = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        if self.delay < 0:
            raise ValueError("delay cannot be negative")
        if self.duration is not None and self.duration <= 0:
            raise ValueError("duration must be positive")
        if self.ad_size is not None and self.ad_size.id != self.id.ad_size_id:
            raise ValueError(f"frame {self.id} does not belong to ad size {self.ad_size.id}")

    @property
    def ad_size_id(self) -> str:
        return self.id.ad_size_id

    @property
    def frame_number(self) -> int:
        return self.id.frame_number

    @property
    def name(self) -> str:
        return f"Frame {self.frame_number}"

    @property
    def layers(self) -> List[Layer]:
        return self.ad_size.layers if self.ad_size is not None else []

    @property
    def visible_layer_count(self) -> int:
        layer_ids = {layer.id for layer in self.layers}
        return len(self.layers) - len(self.hidden_layers & layer_ids)

    def has_layer(self, layer_id: str) -> bool:
        return any(layer.id == layer_id for layer in self.layers)

    def is_layer_hidden(self, layer_id: str) -> bool:
        return layer_id in self.hidden_layers

    def is_overridden(self, layer_id: str) -> bool:
        override = self.overrides.get(layer_id)
        return override.overridden if override else False

    def total_duration(self, track_duration: float) -> float:
        return self.delay + (self.duration if self.duration is not None else track_duration)

    def copy(self) -> 'GifFrame':
        return GifFrame(
            id=self.id,
            delay=self.delay,
            duration=self.duration,
            hidden_layers=set(self.hidden_layers),
            overrides={k: LayerOverride(v.overridden) for k, v in self.overrides.items()},
            source_of_truth=self.source_of_truth,
            ad_size=self.ad_size,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "ad_size_id": self.ad_size_id,
            "frame_number": self.frame_number,
            "delay": self.delay,
            "duration": self.duration,
            "hidden_layers": sorted(self.hidden_layers),
            "overrides": {k: {"overridden": v.overridden} for k, v in sorted(self.overrides.items())},
            "visible_layer_count": self.visible_layer_count,
            "source_of_truth": self.source_of_truth,
        }

    def __repr__(self):
        return (f"GifFrame({self.id}, delay={self.delay}, "
                f"visible={self.visible_layer_count}/{len(self.layers)})")


@dataclass
class LinkGroup:
    """Layers (one per ad size) that share a name and sync together"""
    group_id: str
    member_ids: List[str] = field(default_factory=list)
    main_layer_id: Optional[str] = None

    def __contains__(self, layer_id: str) -> bool:
        return layer_id in self.member_ids

    def __len__(self):
        return len(self.member_ids)

    def copy(self) -> 'LinkGroup':
        return LinkGroup(self.group_id, list(self.member_ids), self.main_layer_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "group_id": self.group_id,
            "member_ids": list(self.member_ids),
            "main_layer_id": self.main_layer_id,
        }
