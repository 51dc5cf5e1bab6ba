"""Banner Animator - Multi-size banner animation core

Layer linking, animation sync, GIF-frame visibility and playback for
multi-size banner ads.
"""

__version__ = '1.0.0'

from . import core

__all__ = ['core']
