from .playback_timer import QtTickSource, PlaybackBridge

__all__ = [
    'QtTickSource',
    'PlaybackBridge',
]
