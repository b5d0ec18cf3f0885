# -*- coding: utf-8 -*-
import logging
import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Tuple

from .engine import Decoder, ImageHeader, ResizeMethod

logger = logging.getLogger(__name__)

# Encoder settings per output extension. Formats not listed use the encoder defaults.
ENCODE_OPTIONS: Mapping[str, Mapping[str, int]] = MappingProxyType({
    ".jpeg": MappingProxyType({"quality": 85}),
    ".jpg": MappingProxyType({"quality": 85}),
    ".png": MappingProxyType({"compress_level": 7}),
    ".webp": MappingProxyType({"quality": 85}),
})

_NO_ENCODE_OPTIONS: Mapping[str, int] = MappingProxyType({})


@dataclass(frozen=True)
class ResizePolicy:
    """Everything the transform needs to know about the output, resolved once per run."""
    output_format: str
    width: int
    height: int
    resize_method: ResizeMethod
    normalize_orientation: bool = True
    encode_options: Mapping[str, int] = field(default_factory=lambda: _NO_ENCODE_OPTIONS)


def output_format_for(output_filename: str, source_description: str) -> str:
    """
    Output extension for ``output_filename``.

    Uses the filename's extension when it has one, otherwise the source
    format (``"JPEG"`` -> ``".jpeg"``). The extension is not checked against
    the encoders; an unknown one fails at transform time.
    """
    extension = os.path.splitext(output_filename or "")[1]  # Includes the leading dot
    if extension:
        return extension.lower()
    return "." + source_description.lower()  # No extension: keep the source format


def resolve_dimension(requested: int, source: int) -> int:
    """A requested size of 0 keeps the source size."""
    return requested if requested > 0 else source


def encode_options_for(output_format: str) -> Mapping[str, int]:
    return ENCODE_OPTIONS.get(output_format, _NO_ENCODE_OPTIONS)


def resolve(
    decoder: Decoder,
    requested_width: int,
    requested_height: int,
    output_filename: str,
    stretch: bool,
) -> Tuple[ResizePolicy, ImageHeader]:
    """
    Reads the image header and decides the output format, size, resize method
    and encoder settings.

    Raises:
        HeaderError: The image is recognized but malformed.
    """
    header = decoder.header()  # Raises HeaderError for malformed data

    logger.info(f"file type: {header.format}")
    logger.info(f"{header.width}px x {header.height}px")
    if header.duration:  # Animated images only
        logger.info(f"duration: {header.duration:.2f} s")

    output_format = output_format_for(output_filename, decoder.description)
    policy = ResizePolicy(
        output_format=output_format,
        width=resolve_dimension(requested_width, header.width),
        height=resolve_dimension(requested_height, header.height),
        resize_method=ResizeMethod.STRETCH if stretch else ResizeMethod.FIT,
        normalize_orientation=True,  # Always apply the EXIF orientation
        encode_options=encode_options_for(output_format),
    )
    logger.debug(f"Resolved policy: {policy}")
    return policy, header
