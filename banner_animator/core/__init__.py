from .errors import BannerAnimatorError, InvalidFrameIdError, ExportPlanError
from .config import EditorConfig, load_config, save_config
from .frame_ids import GifFrameId, parse_gif_frame_id, format_gif_frame_id
from .models import (Animation, AnimationType, AnimationMode, EasingType, SyncMode,
                     Layer, LinkInfo, AdSize, GifFrame, LayerOverride, LinkGroup, Keyframe)
from .store import EntityStore
from .timeline_clock import TimelineClock, Clip, ClipDragSession, MIN_CLIP_DURATION
from .link_registry import LinkRegistry, compute_groups
from .animation_sync import AnimationSyncEngine
from .visibility import VisibilityOverrideTracker, VisibilityChange
from .playback import (PlaybackScheduler, PlaybackMode, PlaybackState, TickSource,
                       ManualTickSource, SequenceEntry, build_sequence, locate_in_sequence)
from .export_plan import ExportPlanBuilder
from .editor import AnimationEditor

__all__ = [
    'BannerAnimatorError',
    'InvalidFrameIdError',
    'ExportPlanError',
    'EditorConfig',
    'load_config',
    'save_config',
    'GifFrameId',
    'parse_gif_frame_id',
    'format_gif_frame_id',
    'Animation',
    'AnimationType',
    'AnimationMode',
    'EasingType',
    'SyncMode',
    'Layer',
    'LinkInfo',
    'AdSize',
    'GifFrame',
    'LayerOverride',
    'Keyframe',
    'LinkGroup',
    'EntityStore',
    'TimelineClock',
    'Clip',
    'ClipDragSession',
    'MIN_CLIP_DURATION',
    'LinkRegistry',
    'compute_groups',
    'AnimationSyncEngine',
    'VisibilityOverrideTracker',
    'VisibilityChange',
    'PlaybackScheduler',
    'PlaybackMode',
    'PlaybackState',
    'TickSource',
    'ManualTickSource',
    'SequenceEntry',
    'build_sequence',
    'locate_in_sequence',
    'ExportPlanBuilder',
    'AnimationEditor',
]
