"""
Visibility override tracker

A GIF frame number is one logical step shared by every ad size. Hiding or
showing a layer in one ad size's frame is mirrored onto the same-named layer
in every other ad size's frame with that number, unless an override flag
on the layer/frame pair says otherwise.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union

from .frame_ids import GifFrameId, parse_gif_frame_id
from .log import get_logger
from .models import GifFrame, LayerOverride
from .store import EntityStore

log = get_logger(__name__)


@dataclass
class VisibilityChange:
    """Outcome of a visibility toggle"""
    frame_id: GifFrameId
    layer_id: str
    hidden: bool
    propagated_to: List[GifFrameId] = field(default_factory=list)
    skipped_ad_sizes: List[str] = field(default_factory=list)


class VisibilityOverrideTracker:

    def __init__(self, store: EntityStore):
        self.store = store

    def _parse(self, frame_id: Union[str, GifFrameId]) -> GifFrameId:
        return parse_gif_frame_id(frame_id, self.store.config.default_ad_size_id)

    def _resolve(self, key: GifFrameId, layer_id: str) -> Optional[GifFrame]:
        ad_size = self.store.get_ad_size(key.ad_size_id)
        if ad_size is None:
            log.warning("Unknown ad size %s for frame %s", key.ad_size_id, key)
            return None
        if ad_size.get_layer(layer_id) is None:
            log.warning("Layer %s not found in ad size %s", layer_id, key.ad_size_id)
            return None
        return self.store.ensure_gif_frame(key.ad_size_id, key.frame_number)

    def toggle_visibility(self, frame_id: Union[str, GifFrameId], layer_id: str) -> Optional[VisibilityChange]:
        """
        Flip a layer's visibility in one GIF frame and mirror it to sibling ad sizes.

        Raises:
            InvalidFrameIdError: if frame_id cannot be parsed (nothing is changed)

        Returns:
            The change, or None if the ad size or layer is unknown
        """
        key = self._parse(frame_id)
        frame = self._resolve(key, layer_id)
        if frame is None:
            return None
        hidden = not frame.is_layer_hidden(layer_id)
        return self._apply(frame, layer_id, hidden)

    def set_visibility(self, frame_id: Union[str, GifFrameId], layer_id: str,
                       hidden: bool) -> Optional[VisibilityChange]:
        """Force a layer hidden or shown in one frame, mirrored like a toggle"""
        key = self._parse(frame_id)
        frame = self._resolve(key, layer_id)
        if frame is None:
            return None
        return self._apply(frame, layer_id, hidden)

    def _apply(self, frame: GifFrame, layer_id: str, hidden: bool) -> VisibilityChange:
        _set_hidden(frame, layer_id, hidden)
        change = VisibilityChange(frame_id=frame.id, layer_id=layer_id, hidden=hidden)

        if frame.is_overridden(layer_id):
            log.debug("Layer %s is overridden in %s, not propagating", layer_id, frame.id)
            return change

        layer = next(l for l in frame.layers if l.id == layer_id)
        for ad_size_id, ad_size in self.store.ad_sizes.items():
            if ad_size_id == frame.ad_size_id:
                continue
            sibling = ad_size.find_layer_by_name(layer.name)
            if sibling is None:
                log.debug("No layer named %r in %s, skipping", layer.name, ad_size_id)
                change.skipped_ad_sizes.append(ad_size_id)
                continue
            target = self.store.ensure_gif_frame(ad_size_id, frame.frame_number)
            if target.is_overridden(sibling.id):
                log.debug("Layer %s is overridden in %s, leaving it", sibling.id, target.id)
                change.skipped_ad_sizes.append(ad_size_id)
                continue
            _set_hidden(target, sibling.id, hidden)
            change.propagated_to.append(target.id)
        return change

    def toggle_override(self, frame_id: Union[str, GifFrameId], layer_id: str) -> Optional[bool]:
        """
        Flip the propagation override of a layer in one frame.
        Visibility itself is not changed.
        """
        key = self._parse(frame_id)
        frame = self._resolve(key, layer_id)
        if frame is None:
            return None
        override = frame.overrides.setdefault(layer_id, LayerOverride())
        override.overridden = not override.overridden
        return override.overridden

    def is_hidden(self, frame_id: Union[str, GifFrameId], layer_id: str) -> bool:
        frame = self.store.gif_frames.get(self._parse(frame_id))
        return frame.is_layer_hidden(layer_id) if frame else False

    def is_overridden(self, frame_id: Union[str, GifFrameId], layer_id: str) -> bool:
        frame = self.store.gif_frames.get(self._parse(frame_id))
        return frame.is_overridden(layer_id) if frame else False


def _set_hidden(frame: GifFrame, layer_id: str, hidden: bool):
    if hidden:
        frame.hidden_layers.add(layer_id)
    else:
        frame.hidden_layers.discard(layer_id)
