"""
Animation editor

The operation surface used by the UI. Every edit goes through one of the
components (clock, link registry, sync engine, visibility tracker,
playback scheduler), which share a single EntityStore.
"""

from contextlib import contextmanager
from typing import List, Optional, Dict, Any, Union, Iterator

from .animation_sync import AnimationSyncEngine
from .config import EditorConfig
from .export_plan import ExportPlanBuilder
from .frame_ids import GifFrameId
from .link_registry import LinkRegistry
from .log import get_logger
from .models import (Animation, AnimationMode, AnimationType, EasingType, Keyframe, Layer,
                     LinkGroup, SyncMode, KEYFRAME_TOLERANCE)
from .playback import PlaybackScheduler, PlaybackMode, TickSource, ManualTickSource, build_sequence
from .store import EntityStore
from .timeline_clock import TimelineClock, Clip, ClipDragSession
from .visibility import VisibilityOverrideTracker, VisibilityChange

log = get_logger(__name__)

_ENUM_FIELDS = {'type': AnimationType, 'mode': AnimationMode, 'easing': EasingType}
_EDITABLE_FIELDS = ('type', 'mode', 'easing', 'direction', 'scale', 'rotation', 'opacity')


class AnimationEditor:

    def __init__(self, store: Optional[EntityStore] = None,
                 config: Optional[EditorConfig] = None,
                 tick_source: Optional[TickSource] = None):
        if store is None:
            store = EntityStore(config)
        self.store = store
        self.config = store.config
        self.clock = TimelineClock.from_config(self.config)
        self.registry = LinkRegistry(store)
        self.sync = AnimationSyncEngine(store, self.registry)
        self.visibility = VisibilityOverrideTracker(store)
        self.scheduler = PlaybackScheduler(tick_source or ManualTickSource(),
                                           track_duration=self.config.track_duration)
        self.active_ad_size_id: Optional[str] = None
        self._drag: Optional[ClipDragSession] = None

    # ----- Ad sizes -----
    def select_ad_size(self, ad_size_id: str) -> bool:
        """Make an ad size active and load its GIF sequence into the scheduler"""
        if self.store.get_ad_size(ad_size_id) is None:
            log.warning("Cannot select unknown ad size %s", ad_size_id)
            return False
        self.active_ad_size_id = ad_size_id
        self.reload_sequence()
        return True

    def reload_sequence(self):
        if self.active_ad_size_id is None:
            self.scheduler.load_sequence([])
            return
        frames = self.store.gif_frames_for(self.active_ad_size_id)
        track = self.clock.track_duration
        self.scheduler.load_sequence(build_sequence(
            (str(f.id), f.delay, f.duration if f.duration is not None else track) for f in frames
        ))

    def remove_ad_size(self, ad_size_id: str) -> bool:
        removed = self.store.remove_ad_size(ad_size_id)
        if removed and ad_size_id == self.active_ad_size_id:
            self.scheduler.stop()
            self.active_ad_size_id = None
            self.reload_sequence()
        return removed

    def set_track_duration(self, duration: float):
        self.clock.set_track_duration(duration)
        self.scheduler.set_track_duration(duration)
        for _, layer in self.store.iter_layers():
            for anim in layer.animations:
                clip = self.clock.fit(Clip(anim.start_time, anim.duration))
                anim.start_time, anim.duration = clip.start, clip.duration
            self._refit_keyframes(layer)
        self.reload_sequence()

    def set_track_width(self, width: Optional[float]):
        self.clock.set_track_width(width)

    # ----- Animations -----
    def _animation(self, layer_id: str, animation_index: int):
        layer = self.store.get_layer(layer_id)
        if layer is None:
            log.warning("Unknown layer %s", layer_id)
            return None, None
        anim = layer.get_animation(animation_index)
        if anim is None:
            log.warning("Layer %s has no animation at index %d", layer_id, animation_index)
            return layer, None
        return layer, anim

    def _edit_clip(self, layer_id: str, animation_index: int, time_delta: float,
                   mode: str, sync: bool) -> Optional[Animation]:
        layer, anim = self._animation(layer_id, animation_index)
        if anim is None:
            return None
        if layer.locked:
            log.info("Layer %s is locked, ignoring clip edit", layer_id)
            return anim.copy()
        clip = Clip(anim.start_time, anim.duration)
        if mode == ClipDragSession.MOVE:
            clip = self.clock.move(clip, time_delta)
        elif mode == ClipDragSession.RESIZE_LEFT:
            clip = self.clock.resize_left(clip, time_delta)
        else:
            clip = self.clock.resize_right(clip, time_delta)
        anim.start_time, anim.duration = clip.start, clip.duration
        if sync:
            self.sync.sync_from(layer_id)
        return anim.copy()

    def move_clip(self, layer_id: str, animation_index: int, time_delta: float,
                  sync: bool = True) -> Optional[Animation]:
        return self._edit_clip(layer_id, animation_index, time_delta, ClipDragSession.MOVE, sync)

    def resize_clip_left(self, layer_id: str, animation_index: int, time_delta: float,
                         sync: bool = True) -> Optional[Animation]:
        return self._edit_clip(layer_id, animation_index, time_delta, ClipDragSession.RESIZE_LEFT, sync)

    def resize_clip_right(self, layer_id: str, animation_index: int, time_delta: float,
                          sync: bool = True) -> Optional[Animation]:
        return self._edit_clip(layer_id, animation_index, time_delta, ClipDragSession.RESIZE_RIGHT, sync)

    @contextmanager
    def clip_drag(self, layer_id: str, animation_index: int,
                  mode: str = ClipDragSession.MOVE) -> Iterator[Optional[ClipDragSession]]:
        """
        Scoped drag of one clip. Each delta updates the animation in place;
        linked layers are synced once when the block exits normally.

        Yields None if the layer/animation is unknown or the layer is locked.
        """
        layer, anim = self._animation(layer_id, animation_index)
        if anim is None or layer.locked:
            yield None
            return
        if self._drag is not None:
            self._drag.close(commit=True)

        def _update(clip: Clip):
            anim.start_time, anim.duration = clip.start, clip.duration

        def _commit(_clip: Clip):
            self.sync.sync_from(layer_id)

        session = ClipDragSession(self.clock, Clip(anim.start_time, anim.duration), mode,
                                  on_update=_update, on_commit=_commit)
        self._drag = session
        try:
            with session:
                yield session
        finally:
            if self._drag is session:
                self._drag = None

    def add_animation(self, layer_id: str, animation: Animation, sync: bool = True) -> Optional[Animation]:
        layer = self.store.get_layer(layer_id)
        if layer is None:
            log.warning("Cannot add animation to unknown layer %s", layer_id)
            return None
        clip = self.clock.fit(Clip(animation.start_time, animation.duration))
        animation.start_time, animation.duration = clip.start, clip.duration
        layer.animations.append(animation)
        if sync:
            self.sync.sync_from(layer_id)
        return animation

    def update_animation(self, layer_id: str, animation_index: int, sync: bool = True,
                         **changes) -> Optional[Animation]:
        layer, anim = self._animation(layer_id, animation_index)
        if anim is None:
            return None
        for key, value in changes.items():
            if key not in _EDITABLE_FIELDS:
                raise ValueError(f"Cannot update animation field {key!r}")
            if key in _ENUM_FIELDS:
                value = _ENUM_FIELDS[key](value)
            setattr(anim, key, value)
        if sync:
            self.sync.sync_from(layer_id)
        return anim.copy()

    def remove_animation(self, layer_id: str, animation_index: int, sync: bool = True) -> bool:
        layer, anim = self._animation(layer_id, animation_index)
        if anim is None:
            return False
        del layer.animations[animation_index]
        if layer.link is not None:
            layer.link.overrides.discard(anim.id)
        if sync:
            self.sync.sync_from(layer_id)
        return True

    # ----- Keyframes -----
    def add_keyframe(self, layer_id: str, time: float,
                     properties: Optional[Dict[str, Any]] = None) -> Optional[Keyframe]:
        """
        Mark a keyframe on a layer at the given time, clamped to the track.

        A keyframe already at that time is returned unchanged instead of
        adding a second one.
        """
        layer = self.store.get_layer(layer_id)
        if layer is None:
            log.warning("Cannot add keyframe to unknown layer %s", layer_id)
            return None
        time = self.clock.clamp_time(time)
        existing = layer.get_keyframe(time)
        if existing is not None:
            return existing
        keyframe = Keyframe(time=time, properties=dict(properties or {}))
        layer.keyframes.append(keyframe)
        layer.keyframes.sort(key=lambda k: k.time)
        return keyframe

    def delete_keyframe(self, layer_id: str, time: float) -> bool:
        layer = self.store.get_layer(layer_id)
        if layer is None:
            log.warning("Cannot delete keyframe from unknown layer %s", layer_id)
            return False
        keyframe = layer.get_keyframe(time)
        if keyframe is None:
            return False
        layer.keyframes.remove(keyframe)
        return True

    def keyframe_times(self, layer_id: Optional[str] = None) -> List[float]:
        """Sorted keyframe times of one layer, or of every layer when layer_id is None"""
        if layer_id is not None:
            layer = self.store.get_layer(layer_id)
            layers = [layer] if layer is not None else []
        else:
            layers = [layer for _, layer in self.store.iter_layers()]
        return sorted({k.time for layer in layers for k in layer.keyframes})

    def snap_time(self, time: float, layer_id: Optional[str] = None) -> float:
        """Snap a track time to a nearby keyframe or else to the configured frame rate"""
        snapped = TimelineClock.snap_time(time, self.config.snap_frame_rate,
                                          self.keyframe_times(layer_id))
        return self.clock.clamp_time(snapped)

    def _refit_keyframes(self, layer: Layer):
        kept: List[Keyframe] = []
        for keyframe in sorted(layer.keyframes, key=lambda k: k.time):
            keyframe.time = self.clock.clamp_time(keyframe.time)
            if kept and abs(kept[-1].time - keyframe.time) < KEYFRAME_TOLERANCE:
                continue
            kept.append(keyframe)
        layer.keyframes = kept

    # ----- Linking -----
    def auto_link(self) -> List[LinkGroup]:
        return self.registry.auto_link()

    def link_layer(self, layer_id: str) -> Optional[LinkGroup]:
        return self.registry.link(layer_id)

    def unlink_layer(self, layer_id: str) -> bool:
        return self.registry.unlink(layer_id)

    def set_sync_mode(self, layer_id: str, mode: SyncMode) -> bool:
        changed = self.registry.set_sync_mode(layer_id, mode)
        if changed and SyncMode(mode) == SyncMode.FULL:
            group = self.registry.group_of(layer_id)
            if group is not None and group.main_layer_id is not None:
                self.sync.sync_from(group.main_layer_id)
        return changed

    def toggle_animation_override(self, layer_id: str, animation_id: str) -> Optional[bool]:
        return self.registry.toggle_animation_override(layer_id, animation_id)

    def toggle_layer_lock(self, layer_id: str) -> Optional[bool]:
        layer = self.store.get_layer(layer_id)
        if layer is None:
            log.warning("Cannot lock unknown layer %s", layer_id)
            return None
        layer.locked = not layer.locked
        return layer.locked

    # ----- GIF frames -----
    def toggle_layer_visibility(self, frame_id: Union[str, GifFrameId],
                                layer_id: str) -> Optional[VisibilityChange]:
        change = self.visibility.toggle_visibility(frame_id, layer_id)
        if change is not None:
            self.reload_sequence()
        return change

    def toggle_layer_override(self, frame_id: Union[str, GifFrameId], layer_id: str) -> Optional[bool]:
        result = self.visibility.toggle_override(frame_id, layer_id)
        if result is not None:
            self.reload_sequence()
        return result

    def set_frame_delay(self, frame_id: Union[str, GifFrameId], delay: float) -> bool:
        frame = self.store.set_frame_delay(frame_id, delay)
        if frame is None:
            return False
        self.reload_sequence()
        return True

    def normalize_frame_counts(self) -> List[GifFrameId]:
        added = self.store.normalize_frame_counts()
        self.reload_sequence()
        return added

    # ----- Playback -----
    def play(self, mode: PlaybackMode = PlaybackMode.ANIMATION):
        if mode == PlaybackMode.GIF_SEQUENCE:
            self.reload_sequence()
        self.scheduler.play(mode)

    def pause(self):
        self.scheduler.pause()

    def seek(self, time: float, mode: Optional[PlaybackMode] = None):
        self.scheduler.seek(time, mode)

    # ----- Output -----
    def snapshot(self) -> Dict[str, Any]:
        return self.store.snapshot()

    def export_plan(self, ad_size_ids: Optional[List[str]] = None) -> Dict[str, Any]:
        return ExportPlanBuilder.build(self.store, self.clock.track_duration, ad_size_ids)

    def layers_of(self, ad_size_id: str) -> List[Layer]:
        ad_size = self.store.get_ad_size(ad_size_id)
        return [layer.copy() for layer in ad_size.layers] if ad_size else []
