# -*- coding: utf-8 -*-
import logging

from . import engine
from .errors import TransformError
from .policy import ResizePolicy

logger = logging.getLogger(__name__)

# 50 MiB, enough for any encoded image up to MAX_RESIZE_DIMENSION on a side.
DEFAULT_BUFFER_CAPACITY = 50 * 1024 * 1024


class OutputBuffer:
    """Fixed-capacity scratch region the engine encodes into. It never grows."""

    def __init__(self, capacity: int = DEFAULT_BUFFER_CAPACITY):
        if capacity <= 0:
            raise ValueError(f"Output buffer capacity must be positive, got {capacity}.")
        self.data = bytearray(capacity)

    @property
    def capacity(self) -> int:
        return len(self.data)


def run_transform(decoder: engine.Decoder, policy: ResizePolicy, output_buffer: OutputBuffer) -> memoryview:
    """
    Resizes and encodes the decoded image according to ``policy``.

    Runs exactly once; any engine failure is reported as TransformError.
    The returned view covers only the populated part of ``output_buffer``.
    """
    try:
        result = engine.transform(
            decoder,
            output_buffer.data,
            file_type=policy.output_format,
            width=policy.width,
            height=policy.height,
            resize_method=policy.resize_method,
            normalize_orientation=policy.normalize_orientation,
            encode_options=policy.encode_options,
        )
    except (TransformError, OSError, ValueError, KeyError) as e:  # Engine or Pillow failure, reported once
        raise TransformError("error transforming image", e) from e

    logger.debug(f"Encoded {len(result)} bytes as '{policy.output_format}' (buffer capacity {output_buffer.capacity})")
    return result
