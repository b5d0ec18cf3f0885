# -*- coding: utf-8 -*-
"""
Pillow-backed image engine.

Exposes the three capabilities the transcoder needs from an image library:
opening a decoder over raw bytes and reading its header, a combined
resize+encode transform that writes into a caller-supplied buffer, and
deterministic release of the decoder.
"""
import enum
import io
import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from PIL import Image, ImageOps, ImageSequence

from .errors import DecodeError, HeaderError, TransformError

logger = logging.getLogger(__name__)

# Largest width or height the transform will produce.
MAX_RESIZE_DIMENSION = 8192

# EXIF tag holding the orientation; values 5-8 rotate the image by 90 degrees.
_EXIF_ORIENTATION_TAG = 0x0112
_TRANSPOSED_ORIENTATIONS = (5, 6, 7, 8)

_RESAMPLE_FILTER = Image.Resampling.LANCZOS  # Highest quality

# Modes each encoder writes as-is; anything else is converted before saving.
_WRITABLE_MODES = {
    "JPEG": ("1", "L", "RGB", "CMYK"),
    "PNG": ("1", "L", "LA", "P", "RGB", "RGBA", "I", "I;16"),
    "GIF": ("1", "L", "P", "RGB", "RGBA"),  # RGB/RGBA are quantized by the GIF encoder
    "BMP": ("1", "L", "P", "RGB", "RGBA"),
    "WEBP": ("RGB", "RGBA"),
}
# Fallback for formats not listed above.
_COMMON_WRITABLE_MODES = ("1", "L", "LA", "P", "RGB", "RGBA")

# Formats whose Pillow writer supports save_all (multi-frame animation).
_ANIMATED_FORMATS = ("GIF", "WEBP", "PNG")


class ResizeMethod(enum.Enum):
    FIT = "fit"  # scale to fit inside the box, keeping aspect ratio
    STRETCH = "stretch"  # scale to exactly the box


@dataclass(frozen=True)
class ImageHeader:
    """Format metadata of a decoded image. Duration is in seconds, 0.0 when static."""
    format: str
    width: int
    height: int
    duration: float = 0.0


class Decoder:
    """
    Decoder over an in-memory encoded image.

    Opening only checks that the bytes carry a known image signature. The
    header read loads the first frame and therefore catches truncated or
    corrupt data the open step lets through. Use as a context manager so the
    underlying Pillow image is closed on every exit path.
    """

    def __init__(self, data: bytes):
        self._stream = io.BytesIO(data)
        try:
            self._image = Image.open(self._stream)
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            self._stream.close()
            raise DecodeError("error decoding image", e) from e
        self._header: Optional[ImageHeader] = None
        self._closed = False

    def __enter__(self) -> "Decoder":
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    @property
    def description(self) -> str:
        """Detected container format, e.g. ``"JPEG"``."""
        return self._image.format or ""

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def image(self) -> Image.Image:
        if self._header is None:
            self.header()
        return self._image

    def header(self) -> ImageHeader:
        if self._header is not None:
            return self._header
        try:
            duration = self._animation_duration()
            self._image.load()
            orientation = self._image.getexif().get(_EXIF_ORIENTATION_TAG, 1)
        except (OSError, SyntaxError, ValueError, EOFError) as e:
            raise HeaderError("error reading image header", e) from e

        width, height = self._image.size
        if orientation in _TRANSPOSED_ORIENTATIONS:
            # Rotated by 90 degrees: report the displayed size, as seen after orientation normalization
            width, height = height, width
        self._header = ImageHeader(self.description, width, height, duration)
        return self._header

    def close(self):
        if self._closed:
            return
        self._image.close()
        self._stream.close()
        self._closed = True

    def _animation_duration(self) -> float:
        if not getattr(self._image, "is_animated", False):
            return 0.0
        total_ms = 0  # Per-frame durations are in milliseconds
        for frame in ImageSequence.Iterator(self._image):
            total_ms += frame.info.get("duration", 0) or 0
        self._image.seek(0)  # Rewind so load() decodes the first frame
        return total_ms / 1000.0


def open_decoder(data: bytes) -> Decoder:
    """Opens a decoder over ``data``; raises DecodeError for unrecognized bytes."""
    return Decoder(data)


def pillow_format_for(file_type: str) -> str:
    """Maps an extension such as ``".jpeg"`` to the Pillow format that can write it."""
    pil_format = Image.registered_extensions().get(file_type.lower())
    if pil_format is None or pil_format not in Image.SAVE:
        raise TransformError(f"unsupported output format '{file_type}'")
    return pil_format


def fit_size(src_width: int, src_height: int, box_width: int, box_height: int) -> Tuple[int, int]:
    """
    Largest size with the source aspect ratio that fits inside the box.

    One side always equals its bound; the other is rounded and never exceeds
    its own bound. Upscaling is allowed.
    """
    # Integer cross-multiplication picks the binding side without float error
    if box_width * src_height <= box_height * src_width:
        return box_width, max(1, round(src_height * box_width / src_width))  # Width-bound
    return max(1, round(src_width * box_height / src_height)), box_height  # Height-bound


def _has_alpha(img: Image.Image) -> bool:
    return img.mode in ("RGBA", "LA", "PA", "RGBa", "La") or (img.mode == "P" and "transparency" in img.info)


def prepare_image_for_save(img: Image.Image, pil_format: str) -> Image.Image:
    """
    Converts the image to a mode the target encoder can write.

    Images with transparency become RGBA where the format keeps alpha and are
    flattened onto a white background where it does not (JPEG). Everything
    else that the encoder rejects (CMYK for PNG/GIF/BMP, palette for WebP,
    ...) becomes RGB.
    """
    writable_modes = _WRITABLE_MODES.get(pil_format, _COMMON_WRITABLE_MODES)
    if img.mode in writable_modes:
        return img

    original_mode = img.mode
    if _has_alpha(img):
        save_img = img.convert("RGBA")
        if "RGBA" not in writable_modes:
            # No alpha support in the target: merge onto white
            background = Image.new("RGB", save_img.size, (255, 255, 255))
            background.paste(save_img, (0, 0), mask=save_img.split()[-1])
            save_img = background
    else:
        save_img = img.convert("RGB")

    logger.debug(f"Image mode converted: '{original_mode}' -> '{save_img.mode}' for {pil_format}")
    return save_img


def _resize_frame(
    img: Image.Image,
    width: int,
    height: int,
    resize_method: ResizeMethod,
    normalize_orientation: bool,
    pil_format: str,
) -> Image.Image:
    if normalize_orientation:
        img = ImageOps.exif_transpose(img)

    if resize_method is ResizeMethod.STRETCH:
        new_size = (width, height)
    else:
        new_size = fit_size(img.width, img.height, width, height)

    if new_size != img.size:  # Same size: skip resampling
        logger.debug(f"Resizing ({resize_method.value}): {img.size} -> {new_size}")
        img = img.resize(new_size, _RESAMPLE_FILTER)

    return prepare_image_for_save(img, pil_format)


def transform(
    decoder: Decoder,
    buffer: bytearray,
    *,
    file_type: str,
    width: int,
    height: int,
    resize_method: ResizeMethod,
    normalize_orientation: bool,
    encode_options: Mapping[str, int],
) -> memoryview:
    """
    Resizes the decoded image and encodes it as ``file_type`` into ``buffer``.

    Animated sources keep every frame, with their durations and loop count,
    when the output format can hold an animation (GIF, WebP, APNG); otherwise
    only the first frame is encoded.

    Args:
        decoder: An open decoder.
        buffer: Caller-owned scratch buffer; its length is the capacity limit.
        file_type: Output extension including the dot, e.g. ``".png"``.
        width: Target width (bounding width for FIT).
        height: Target height (bounding height for FIT).
        resize_method: FIT or STRETCH.
        normalize_orientation: Apply the EXIF orientation before resizing.
        encode_options: Encoder keyword arguments, e.g. ``{"quality": 85}``.

    Returns:
        A memoryview over the populated prefix of ``buffer``.

    Raises:
        TransformError: Unsupported format, invalid size, or a result that
            does not fit in ``buffer``. Pillow's own OSError/ValueError are
            left to the caller.
    """
    pil_format = pillow_format_for(file_type)
    for name, value in (("width", width), ("height", height)):
        if value <= 0 or value > MAX_RESIZE_DIMENSION:
            raise TransformError(f"{name} {value} outside 1..{MAX_RESIZE_DIMENSION}")

    source = decoder.image
    frame_args = (width, height, resize_method, normalize_orientation, pil_format)
    save_kwargs = dict(encode_options)

    if getattr(source, "is_animated", False) and pil_format in _ANIMATED_FORMATS:
        frames = []
        durations = []
        for frame in ImageSequence.Iterator(source):
            durations.append(frame.info.get("duration", 0) or 0)
            # copy() detaches the frame from the sequence before the next seek
            frames.append(_resize_frame(frame.copy(), *frame_args))
        loop = source.info.get("loop", 0)
        source.seek(0)
        logger.debug(f"Encoding {len(frames)} frames as animated {pil_format}")
        save_kwargs.update(save_all=True, append_images=frames[1:], duration=durations, loop=loop)
        first_frame = frames[0]
    else:
        first_frame = _resize_frame(source, *frame_args)

    encoded = io.BytesIO()
    first_frame.save(encoded, format=pil_format, **save_kwargs)
    size = encoded.tell()
    # The buffer never grows: a larger result is an error, not a truncation
    if size > len(buffer):
        raise TransformError(f"output buffer too small: need {size} bytes, capacity is {len(buffer)}")

    buffer[:size] = encoded.getvalue()
    return memoryview(buffer)[:size]
