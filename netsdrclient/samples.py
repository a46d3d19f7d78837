"""Unpack raw little-endian sample bytes from data-item payloads."""

from typing import Iterator

import numpy as np

from .common import SAMPLE_WIDTHS
from .exceptions import UnsupportedSampleWidth


def _byte_width(bit_width: int) -> int:
    if bit_width not in SAMPLE_WIDTHS:
        raise UnsupportedSampleWidth(bit_width)
    return bit_width // 8


def iter_samples(bit_width: int, payload: bytes) -> Iterator[int]:
    """
    Yield one int32 per ``bit_width``-bit little-endian chunk of ``payload``.
    Narrow samples are zero-extended; a trailing partial chunk is dropped.
    The width is checked here, before the generator is returned.
    """
    width = _byte_width(bit_width)
    return _iter_chunks(width, bytes(payload))


def _iter_chunks(width: int, payload: bytes) -> Iterator[int]:
    for start in range(0, len(payload) - width + 1, width):
        value = int.from_bytes(payload[start:start + width], "little")
        # 32-bit chunks reinterpret as signed, narrower ones always fit
        if value >= 0x80000000:
            value -= 0x100000000
        yield value


def unpack_samples(bit_width: int, payload: bytes) -> np.ndarray:
    """Vectorised equivalent of iter_samples, returning an int32 array."""
    width = _byte_width(bit_width)
    count = len(payload) // width
    if count == 0:
        return np.zeros(0, dtype=np.int32)

    raw = np.frombuffer(payload, dtype=np.uint8, count=count * width).reshape(count, width)
    if width == 4:
        return raw.copy().view("<i4").ravel()

    # Zero-extend each sample into the low bytes of a 4-byte word
    padded = np.zeros((count, 4), dtype=np.uint8)
    padded[:, :width] = raw
    return padded.view("<i4").ravel()
