"""
Export Plan - Hand the frame sequence to export encoders
Describes every ad size as an ordered list of frames with resolved dimensions,
per-layer visibility and animation timing. Encoders (GIF/HTML/video) consume
the plan without knowing anything about linking or overrides.
"""

import json
from typing import List, Dict, Any, Optional

from .errors import ExportPlanError
from .store import EntityStore
from .models import AdSize, Layer, GifFrame


class ExportPlanBuilder:
    """
    Builds export plans from an EntityStore

    An ad size with GIF frames exports one entry per frame, in frame-number
    order. An ad size without GIF frames exports a single frame built from its
    base layers (animation mode).
    """

    VERSION = "1.0"

    @staticmethod
    def build(
        store: EntityStore,
        track_duration: float,
        ad_size_ids: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        """
        Build an export plan

        Args:
            store: The entity store holding ad sizes and GIF frames
            track_duration: Animation track length in seconds
            ad_size_ids: Ad sizes to include (None = all, in creation order)

        Returns:
            Plan dictionary
        """
        plan = {
            "version": ExportPlanBuilder.VERSION,
            "track_duration": track_duration,
            "ad_sizes": []
        }

        if ad_size_ids is None:
            ad_size_ids = store.ad_size_ids()

        for ad_size_id in ad_size_ids:
            ad_size = store.get_ad_size(ad_size_id)
            if ad_size is None:
                continue

            gif_frames = store.gif_frames_for(ad_size_id)
            if gif_frames:
                frames = [
                    ExportPlanBuilder._gif_frame_entry(frame, track_duration)
                    for frame in gif_frames
                ]
                mode = "gif"
            else:
                frames = [ExportPlanBuilder._base_frame_entry(ad_size, track_duration)]
                mode = "animation"

            plan["ad_sizes"].append({
                "id": ad_size.id,
                "name": ad_size.name,
                "width": ad_size.width,
                "height": ad_size.height,
                "mode": mode,
                "total_duration": sum(f["delay"] + f["duration"] for f in frames),
                "frames": frames
            })

        return plan

    @staticmethod
    def _layer_entry(layer: Layer, visible: bool) -> Dict[str, Any]:
        return {
            "id": layer.id,
            "name": layer.name,
            "type": layer.type,
            "visible": visible,
            "animations": [
                {
                    "type": anim.type.value,
                    "mode": anim.mode.value,
                    "start_time": anim.start_time,
                    "duration": anim.duration,
                    "easing": anim.easing.value,
                    "direction": anim.direction,
                    "scale": anim.scale,
                    "rotation": anim.rotation,
                    "opacity": anim.opacity
                }
                for anim in layer.animations
            ],
            "keyframes": [k.to_dict() for k in layer.keyframes]
        }

    @staticmethod
    def _gif_frame_entry(frame: GifFrame, track_duration: float) -> Dict[str, Any]:
        return {
            "id": str(frame.id),
            "frame_number": frame.frame_number,
            "delay": frame.delay,
            "duration": frame.duration if frame.duration is not None else track_duration,
            "layers": [
                ExportPlanBuilder._layer_entry(layer, layer.visible and not frame.is_layer_hidden(layer.id))
                for layer in frame.layers
            ]
        }

    @staticmethod
    def _base_frame_entry(ad_size: AdSize, track_duration: float) -> Dict[str, Any]:
        return {
            "id": ad_size.id,
            "frame_number": 1,
            "delay": 0.0,
            "duration": track_duration,
            "layers": [ExportPlanBuilder._layer_entry(layer, layer.visible) for layer in ad_size.layers]
        }

    @staticmethod
    def save_plan_to_file(plan: Dict[str, Any], file_path: str):
        """
        Save plan to JSON file

        Args:
            plan: Plan dictionary
            file_path: Output file path
        """
        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(plan, f, indent=2, ensure_ascii=False)

    @staticmethod
    def load_plan_from_file(file_path: str) -> Dict[str, Any]:
        """
        Load plan from JSON file

        Raises:
            ExportPlanError: if the file is not a plan
        """
        with open(file_path, 'r', encoding='utf-8') as f:
            plan = json.load(f)

        if not isinstance(plan, dict) or "version" not in plan:
            raise ExportPlanError("Invalid export plan: missing version")
        if not isinstance(plan.get("ad_sizes"), list):
            raise ExportPlanError("Invalid export plan: missing ad_sizes")

        return plan

    @staticmethod
    def get_plan_info(plan: Dict[str, Any]) -> Dict[str, Any]:
        """Summary used by export dialogs"""
        ad_sizes = plan.get("ad_sizes", [])
        return {
            "version": plan.get("version", "unknown"),
            "ad_size_count": len(ad_sizes),
            "frame_count": sum(len(a.get("frames", [])) for a in ad_sizes),
            "dimensions": [f'{a.get("width")}x{a.get("height")}' for a in ad_sizes]
        }
