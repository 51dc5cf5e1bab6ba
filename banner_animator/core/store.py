"""
Entity store

Holds the whole entity graph (ad sizes, their layers, GIF frames and link
groups). Components receive the store in their constructor and mutate it
through their own APIs.
"""

from typing import List, Optional, Dict, Tuple, Iterator, Callable, Union, Any

from .config import EditorConfig
from .frame_ids import GifFrameId, parse_gif_frame_id
from .log import get_logger
from .models import AdSize, Layer, GifFrame, LinkGroup, new_id

log = get_logger(__name__)


class EntityStore:
    """Owns ad sizes (in creation order), GIF frames and link groups."""

    def __init__(self, config: Optional[EditorConfig] = None):
        self.config = config or EditorConfig()
        self.ad_sizes: Dict[str, AdSize] = {}
        self.gif_frames: Dict[GifFrameId, GifFrame] = {}
        self.link_groups: Dict[str, LinkGroup] = {}
        self._ad_size_counter = 0
        self._layer_removed_listeners: List[Callable[[str], None]] = []

    # ----- Ad sizes -----
    def add_ad_size(self, width: int, height: int, name: str = "",
                    ad_size_id: Optional[str] = None,
                    layers: Optional[List[Layer]] = None) -> AdSize:
        if width <= 0 or height <= 0:
            raise ValueError("Ad size dimensions must be positive")
        if ad_size_id is None:
            ad_size_id = self._next_ad_size_id()
        elif ad_size_id in self.ad_sizes:
            raise ValueError(f"Ad size {ad_size_id} already exists")
        ad_size = AdSize(id=ad_size_id, width=width, height=height, name=name)
        self.ad_sizes[ad_size_id] = ad_size
        for layer in layers or []:
            self.add_layer(ad_size_id, layer)
        log.debug("Added ad size %r", ad_size)
        return ad_size

    def _next_ad_size_id(self) -> str:
        while True:
            self._ad_size_counter += 1
            candidate = f"frame-{self._ad_size_counter}"
            if candidate not in self.ad_sizes:
                return candidate

    def get_ad_size(self, ad_size_id: str) -> Optional[AdSize]:
        return self.ad_sizes.get(ad_size_id)

    def ad_size_ids(self) -> List[str]:
        return list(self.ad_sizes.keys())

    def duplicate_ad_size(self, ad_size_id: str, width: Optional[int] = None,
                          height: Optional[int] = None, name: str = "") -> Optional[AdSize]:
        """Deep-clone an ad size's layer list into a new ad size. Links are not copied."""
        source = self.get_ad_size(ad_size_id)
        if source is None:
            log.warning("Cannot duplicate unknown ad size %s", ad_size_id)
            return None
        clone = self.add_ad_size(width or source.width, height or source.height, name=name)
        for layer in source.layers:
            copy = layer.copy()
            copy.id = new_id("layer")
            copy.link = None
            for anim in copy.animations:
                anim.overridden = False
            self.add_layer(clone.id, copy)
        return clone

    def remove_ad_size(self, ad_size_id: str) -> bool:
        """Remove an ad size, its layers (from link groups too) and its GIF frames"""
        ad_size = self.ad_sizes.get(ad_size_id)
        if ad_size is None:
            log.warning("Cannot remove unknown ad size %s", ad_size_id)
            return False
        for layer in list(ad_size.layers):
            self._notify_layer_removed(layer.id)
        del self.ad_sizes[ad_size_id]
        for frame_id in [fid for fid in self.gif_frames if fid.ad_size_id == ad_size_id]:
            del self.gif_frames[frame_id]
        log.debug("Removed ad size %s", ad_size_id)
        return True

    # ----- Layers -----
    def add_layer(self, ad_size_id: str, layer: Layer, index: Optional[int] = None) -> Optional[Layer]:
        ad_size = self.get_ad_size(ad_size_id)
        if ad_size is None:
            log.warning("Cannot add layer %s to unknown ad size %s", layer.id, ad_size_id)
            return None
        if ad_size.get_layer(layer.id) is not None:
            raise ValueError(f"Layer {layer.id} already exists in ad size {ad_size_id}")
        if index is None:
            ad_size.layers.append(layer)
        else:
            index = max(0, min(index, len(ad_size.layers)))
            ad_size.layers.insert(index, layer)
        return layer

    def remove_layer(self, layer_id: str) -> bool:
        found = self.find_layer(layer_id)
        if found is None:
            log.warning("Cannot remove unknown layer %s", layer_id)
            return False
        ad_size, layer = found
        self._notify_layer_removed(layer_id)
        ad_size.layers.remove(layer)
        for frame in self.gif_frames_for(ad_size.id):
            frame.hidden_layers.discard(layer_id)
            frame.overrides.pop(layer_id, None)
        return True

    def find_layer(self, layer_id: str) -> Optional[Tuple[AdSize, Layer]]:
        for ad_size in self.ad_sizes.values():
            layer = ad_size.get_layer(layer_id)
            if layer is not None:
                return ad_size, layer
        return None

    def get_layer(self, layer_id: str) -> Optional[Layer]:
        found = self.find_layer(layer_id)
        return found[1] if found else None

    def iter_layers(self) -> Iterator[Tuple[AdSize, Layer]]:
        """All layers in ad-size creation order, then layer order"""
        for ad_size in self.ad_sizes.values():
            for layer in ad_size.layers:
                yield ad_size, layer

    def layers_by_ad_size(self) -> Dict[str, List[Layer]]:
        return {ad_size_id: [layer.copy() for layer in ad_size.layers]
                for ad_size_id, ad_size in self.ad_sizes.items()}

    def add_layer_removed_listener(self, callback: Callable[[str], None]):
        self._layer_removed_listeners.append(callback)

    def _notify_layer_removed(self, layer_id: str):
        for callback in self._layer_removed_listeners:
            callback(layer_id)

    # ----- GIF frames -----
    def get_gif_frame(self, frame_id: Union[str, GifFrameId]) -> Optional[GifFrame]:
        key = parse_gif_frame_id(frame_id, self.config.default_ad_size_id)
        return self.gif_frames.get(key)

    def ensure_gif_frame(self, ad_size_id: str, frame_number: int) -> Optional[GifFrame]:
        """
        Return the GIF frame for (ad_size_id, frame_number), creating it on first use.

        A created frame has nothing hidden and reads its layers from the ad size,
        so layers added or edited later are reflected in every frame.
        Returns None when the ad size does not exist.
        """
        key = GifFrameId(ad_size_id, frame_number)
        frame = self.gif_frames.get(key)
        if frame is not None:
            return frame
        ad_size = self.get_ad_size(ad_size_id)
        if ad_size is None:
            log.warning("Cannot create GIF frame %s: unknown ad size", key)
            return None
        frame = GifFrame(
            id=key,
            delay=self.config.default_gif_delay,
            source_of_truth=True,
            ad_size=ad_size,
        )
        self.gif_frames[key] = frame
        log.debug("Created GIF frame %s with %d layers", key, len(frame.layers))
        return frame

    def register_gif_frame(self, frame: GifFrame) -> Optional[GifFrame]:
        """
        Add an externally built frame. If a frame with the same id exists it stays
        canonical and the incoming one is discarded.
        """
        if frame.ad_size_id not in self.ad_sizes:
            log.warning("Cannot register GIF frame %s: unknown ad size", frame.id)
            return None
        existing = self.gif_frames.get(frame.id)
        if existing is not None:
            log.debug("GIF frame %s already exists, keeping the canonical frame", frame.id)
            return existing
        frame.source_of_truth = True
        frame.ad_size = self.ad_sizes[frame.ad_size_id]
        self.gif_frames[frame.id] = frame
        return frame

    def remove_gif_frame(self, frame_id: Union[str, GifFrameId]) -> bool:
        key = parse_gif_frame_id(frame_id, self.config.default_ad_size_id)
        if key not in self.gif_frames:
            log.warning("Cannot remove unknown GIF frame %s", key)
            return False
        del self.gif_frames[key]
        return True

    def gif_frames_for(self, ad_size_id: str) -> List[GifFrame]:
        frames = [f for f in self.gif_frames.values() if f.ad_size_id == ad_size_id]
        return sorted(frames, key=lambda f: f.frame_number)

    def set_frame_delay(self, frame_id: Union[str, GifFrameId], delay: float) -> Optional[GifFrame]:
        frame = self.get_gif_frame(frame_id)
        if frame is None:
            log.warning("Cannot set delay on unknown GIF frame %s", frame_id)
            return None
        frame.delay = max(0.0, float(delay))
        return frame

    def normalize_frame_counts(self) -> List[GifFrameId]:
        """
        Pad every ad size's GIF sequence up to the longest one.

        New frames clone the ad size's first frame (or are lazily created if the
        ad size has none). Returns the ids of the frames that were added.
        """
        max_count = max((f.frame_number for f in self.gif_frames.values()), default=0)
        if max_count <= 1:
            return []
        added: List[GifFrameId] = []
        for ad_size_id in self.ad_sizes:
            existing = self.gif_frames_for(ad_size_id)
            template = existing[0] if existing else None
            for number in range(1, max_count + 1):
                key = GifFrameId(ad_size_id, number)
                if key in self.gif_frames:
                    continue
                if template is None:
                    self.ensure_gif_frame(ad_size_id, number)
                else:
                    clone = template.copy()
                    clone.id = key
                    clone.source_of_truth = True
                    self.gif_frames[key] = clone
                added.append(key)
        log.info("Normalized GIF frame counts to %d, added %d frames", max_count, len(added))
        return added

    # ----- Snapshots -----
    def snapshot(self) -> Dict[str, Any]:
        """Plain-data view of the whole graph for rendering/export collaborators"""
        return {
            "ad_sizes": [ad_size.to_dict() for ad_size in self.ad_sizes.values()],
            "gif_frames": [f.to_dict() for f in sorted(self.gif_frames.values(), key=lambda f: f.id)],
            "link_groups": [g.to_dict() for g in self.link_groups.values()],
        }

    def __repr__(self):
        return (f"EntityStore(ad_sizes={len(self.ad_sizes)}, gif_frames={len(self.gif_frames)}, "
                f"link_groups={len(self.link_groups)})")
