"""Image builders shared by the test modules."""

import io
import os
from typing import Optional, Tuple

from PIL import Image


def encode_image(
    size: Tuple[int, int] = (800, 600),
    fmt: str = "JPEG",
    mode: str = "RGB",
    color=(200, 120, 40),
    **save_kwargs,
) -> bytes:
    """Encodes a solid-color image and returns the bytes."""
    img = Image.new(mode, size, color)
    buf = io.BytesIO()
    img.save(buf, format=fmt, **save_kwargs)
    return buf.getvalue()


def noise_jpeg(size: Tuple[int, int] = (64, 64)) -> bytes:
    """A JPEG of random pixels, so the entropy-coded data dominates the file."""
    img = Image.frombytes("RGB", size, os.urandom(size[0] * size[1] * 3))
    buf = io.BytesIO()
    img.save(buf, format="JPEG", quality=95)
    return buf.getvalue()


def animated_gif(frame_count: int = 3, duration_ms: int = 100, size: Tuple[int, int] = (16, 16)) -> bytes:
    frames = [Image.new("RGB", size, (index * 60, 255 - index * 60, 0)) for index in range(frame_count)]
    buf = io.BytesIO()
    frames[0].save(buf, format="GIF", save_all=True, append_images=frames[1:], duration=duration_ms, loop=0)
    return buf.getvalue()


def image_size(source) -> Tuple[int, int]:
    """Size of an image given as a path or as encoded bytes."""
    if isinstance(source, (bytes, bytearray, memoryview)):
        source = io.BytesIO(bytes(source))
    with Image.open(source) as img:
        return img.size


def image_format(source) -> Optional[str]:
    if isinstance(source, (bytes, bytearray, memoryview)):
        source = io.BytesIO(bytes(source))
    with Image.open(source) as img:
        return img.format


def frame_count(source) -> int:
    if isinstance(source, (bytes, bytearray, memoryview)):
        source = io.BytesIO(bytes(source))
    with Image.open(source) as img:
        return getattr(img, "n_frames", 1)
