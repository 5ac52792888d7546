"""
Image decoding

Turns the PNG buffers captured from the challenge canvases into RGBA bitmaps.
"""

import base64
import binascii
import io
import logging
import re
from dataclasses import dataclass

import numpy as np
from PIL import Image, UnidentifiedImageError

from ..common.errors import DecodeError

logger = logging.getLogger(__name__)

DATA_URL_PREFIX = re.compile(r'^data:image/[a-zA-Z0-9.+-]+;base64,')


@dataclass(frozen=True, eq=False)
class Bitmap:
    """RGBA pixels of one captured image, shape (height, width, 4)"""
    width: int
    height: int
    pixels: np.ndarray

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Bitmap dimensions must be positive, got {self.width}x{self.height}")
        pixels = np.ascontiguousarray(self.pixels, dtype=np.uint8)
        if pixels.shape != (self.height, self.width, 4):
            raise ValueError(
                f"Pixel buffer shape {pixels.shape} does not match {self.width}x{self.height} RGBA"
            )
        if pixels is self.pixels:
            pixels = pixels.copy()
        pixels.flags.writeable = False
        object.__setattr__(self, 'pixels', pixels)

    @classmethod
    def from_array(cls, pixels: np.ndarray) -> 'Bitmap':
        height, width = pixels.shape[:2]
        return cls(width=width, height=height, pixels=pixels)

    @property
    def size(self):
        return (self.width, self.height)

    def to_bytes(self) -> bytes:
        return self.pixels.tobytes()


def decode(data: bytes) -> Bitmap:
    """
    Decode an encoded raster image into an RGBA bitmap

    Args:
        data: Complete encoded image buffer (PNG or any format Pillow reads)

    Returns:
        Decoded Bitmap

    Raises:
        DecodeError: If the buffer is empty, truncated or not an image
    """
    if not data:
        raise DecodeError("Empty image buffer")

    try:
        image = Image.open(io.BytesIO(data))
        image.load()
        rgba = image.convert('RGBA')
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError) as e:
        raise DecodeError(f"Could not decode image ({len(data)} bytes): {e}") from e

    bitmap = Bitmap.from_array(np.array(rgba, dtype=np.uint8))
    logger.debug(f"Decoded {image.format or 'image'} {bitmap.width}x{bitmap.height}")
    return bitmap


def data_url_to_bytes(url: str) -> bytes:
    """Strip the ``data:image/png;base64,`` prefix of a canvas data URL and decode the payload"""
    payload = DATA_URL_PREFIX.sub('', url.strip(), count=1)
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Invalid base64 image payload: {e}") from e


def decode_data_url(url: str) -> Bitmap:
    return decode(data_url_to_bytes(url))


def encode_png(bitmap: Bitmap) -> bytes:
    buffer = io.BytesIO()
    Image.fromarray(np.asarray(bitmap.pixels)).save(buffer, format='PNG')
    return buffer.getvalue()
