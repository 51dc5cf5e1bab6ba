"""
GIF frame identifiers

Internally a GIF frame is addressed by a structured ``GifFrameId``. The string
form ``gif-frame-<adSizeId>-<frameNumber>`` is only used at the display/wire
boundary and is produced and consumed exclusively by this module.
"""

from dataclasses import dataclass
from typing import Union

from .errors import InvalidFrameIdError
from .log import get_logger

log = get_logger(__name__)

GIF_FRAME_PREFIX = "gif-frame-"
AD_SIZE_TOKEN = "frame"
DEFAULT_AD_SIZE_ID = "frame-1"


@dataclass(frozen=True, order=True)
class GifFrameId:
    """Structured id of a GIF frame: one sequence position within one ad size."""
    ad_size_id: str
    frame_number: int

    kind = "gif-frame"

    def __post_init__(self):
        if not self.ad_size_id:
            raise InvalidFrameIdError(self, "empty ad size id")
        if isinstance(self.frame_number, bool) or not isinstance(self.frame_number, int):
            raise InvalidFrameIdError(self, "frame number must be an integer")
        if self.frame_number < 1:
            raise InvalidFrameIdError(self, "frame number must be >= 1")

    def __str__(self):
        return format_gif_frame_id(self.ad_size_id, self.frame_number)

    def with_ad_size(self, ad_size_id: str) -> 'GifFrameId':
        """Same sequence position in another ad size."""
        return GifFrameId(ad_size_id, self.frame_number)


def format_gif_frame_id(ad_size_id: str, frame_number: int) -> str:
    return f"{GIF_FRAME_PREFIX}{ad_size_id}-{frame_number}"


def parse_gif_frame_id(frame_id: Union[str, GifFrameId],
                       default_ad_size_id: str = DEFAULT_AD_SIZE_ID) -> GifFrameId:
    """
    Decode the wire form of a GIF frame id.

    Accepted forms:
        gif-frame-frame-1-2     -> (frame-1, 2)
        gif-frame-1-2           -> (frame-1, 2)   legacy numeric ad size
        gif-frame-adsize-a-3    -> (adsize-a, 3)
        gif-frame-2             -> (default_ad_size_id, 2), logged

    Raises:
        InvalidFrameIdError: if the id cannot be decoded
    """
    if isinstance(frame_id, GifFrameId):
        return frame_id
    if not isinstance(frame_id, str):
        raise InvalidFrameIdError(frame_id, "expected a string")
    if not frame_id.startswith(GIF_FRAME_PREFIX):
        raise InvalidFrameIdError(frame_id, f"missing '{GIF_FRAME_PREFIX}' prefix")

    parts = frame_id.split('-')
    # parts[0:2] == ['gif', 'frame']
    number_token = parts[-1]
    if not number_token.isdigit():
        raise InvalidFrameIdError(frame_id, "frame number is not numeric")
    frame_number = int(number_token)
    if frame_number < 1:
        raise InvalidFrameIdError(frame_id, "frame number must be >= 1")

    ad_parts = parts[2:-1]
    if not ad_parts:
        log.warning("Frame id %s has no ad size, falling back to %s", frame_id, default_ad_size_id)
        return GifFrameId(default_ad_size_id, frame_number)
    if any(p == "" for p in ad_parts):
        raise InvalidFrameIdError(frame_id, "empty ad size token")

    if ad_parts[0] == AD_SIZE_TOKEN:
        if len(ad_parts) == 1:
            raise InvalidFrameIdError(frame_id, "ad size 'frame' has no number")
        ad_size_id = '-'.join(ad_parts)
    elif len(ad_parts) == 1 and ad_parts[0].isdigit():
        # Legacy 4-token form gif-frame-<n>-<m>
        ad_size_id = f"{AD_SIZE_TOKEN}-{ad_parts[0]}"
    else:
        ad_size_id = '-'.join(ad_parts)

    return GifFrameId(ad_size_id, frame_number)


def is_gif_frame_id(frame_id: str) -> bool:
    try:
        parse_gif_frame_id(frame_id)
    except InvalidFrameIdError:
        return False
    return True
