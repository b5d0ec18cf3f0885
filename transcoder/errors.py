# -*- coding: utf-8 -*-
"""Error types raised by the transcoder, one per processing phase."""
from typing import Optional


class TranscodeError(Exception):
    """Base class for every failure raised while resizing/transcoding an image.

    The message names the phase that failed. When the error wraps a lower-level
    exception, ``str()`` renders the whole chain as ``"<phase>: <cause>"``.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is None:
            return self.message
        return f"{self.message}: {self.cause}"


class ReadError(TranscodeError):
    """Input file could not be read."""
    pass


class DecodeError(TranscodeError):
    """Input bytes do not match any known image signature."""
    pass


class HeaderError(TranscodeError):
    """Image format was recognized but the data is malformed."""
    pass


class TransformError(TranscodeError):
    """Resize/encode failed (unsupported format, undersized buffer, encoder fault)."""
    pass


class RemoveError(TranscodeError):
    """Existing output file could not be removed."""
    pass


class WriteError(TranscodeError):
    """Output file could not be written."""
    pass
