# -*- coding: utf-8 -*-
import logging
import os
import time
from dataclasses import dataclass

from tqdm import tqdm

from .engine import open_decoder
from .errors import ReadError
from .policy import ResizePolicy, resolve
from .transform import DEFAULT_BUFFER_CAPACITY, OutputBuffer, run_transform
from .writer import write_output

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_BASENAME = "resized"


@dataclass(frozen=True)
class IterationStats:
    iterations: int
    elapsed: float  # seconds, all iterations

    @property
    def average(self) -> float:
        return self.elapsed / self.iterations if self.iterations else 0.0


def read_input(path: str) -> bytes:
    """Loads the whole input file; raises ReadError on failure."""
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise ReadError("failed to read input file", e) from e


def default_output_filename(input_filename: str) -> str:
    """``"resized"`` plus the input's extension, in the current directory."""
    return DEFAULT_OUTPUT_BASENAME + os.path.splitext(input_filename)[1]  # Directory part is dropped


def resize_image(
    input_bytes: bytes,
    width: int,
    height: int,
    output_filename: str,
    stretch: bool,
    buffer_capacity: int = DEFAULT_BUFFER_CAPACITY,
) -> ResizePolicy:
    """
    Decodes ``input_bytes``, resizes/transcodes it and writes ``output_filename``.

    One complete run: decode, read header, resolve policy, transform, write.
    The decoder is released on every exit path. Errors propagate unchanged.

    Returns:
        The policy that was applied.
    """
    with open_decoder(input_bytes) as decoder:  # Closed even when a later step fails
        policy, _header = resolve(decoder, width, height, output_filename, stretch)
        # Fresh buffer per run; nothing carries over between iterations
        encoded = run_transform(decoder, policy, OutputBuffer(buffer_capacity))
        write_output(output_filename, encoded)
    return policy


def run_iterations(
    input_bytes: bytes,
    width: int,
    height: int,
    output_filename: str,
    stretch: bool,
    iterations: int = 1,
    progress: bool = False,
    buffer_capacity: int = DEFAULT_BUFFER_CAPACITY,
) -> IterationStats:
    """
    Runs :func:`resize_image` ``iterations`` times, one after another.

    The first failure propagates and the remaining iterations are not run.
    """
    start = time.perf_counter()
    with tqdm(total=iterations, desc="Resizing", unit="run", ncols=100, leave=True, disable=not progress) as pbar:
        for index in range(iterations):
            logger.debug(f"Iteration {index + 1}/{iterations}")
            # Any exception ends the loop; remaining iterations are skipped
            resize_image(input_bytes, width, height, output_filename, stretch, buffer_capacity)
            pbar.update(1)
    return IterationStats(iterations, time.perf_counter() - start)
