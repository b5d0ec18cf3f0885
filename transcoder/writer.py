# -*- coding: utf-8 -*-
import logging
import os
import stat
from typing import Union

from .errors import RemoveError, WriteError

logger = logging.getLogger(__name__)

# Owner read-only.
OUTPUT_FILE_MODE = stat.S_IRUSR

_OPEN_FLAGS = os.O_WRONLY | os.O_CREAT | os.O_TRUNC | getattr(os, "O_BINARY", 0)


def write_output(path: str, data: Union[bytes, memoryview]) -> None:
    """
    Writes ``data`` to ``path``, removing any file already there first.

    The write is not staged through a temporary file: a failure part-way
    can leave a truncated file behind.

    Raises:
        RemoveError: An existing entry at ``path`` could not be removed.
        WriteError: The new file could not be created or written.
    """
    if os.path.lexists(path):  # lexists: a dangling symlink is removed, not followed
        logger.info(f"output filename {path} exists, removing")
        try:
            os.remove(path)
        except OSError as e:
            raise RemoveError(f"error removing {path}", e) from e

    try:
        # Permissions are set at creation, not via a later chmod
        fd = os.open(path, _OPEN_FLAGS, OUTPUT_FILE_MODE)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
    except OSError as e:
        raise WriteError("error writing out resized image", e) from e

    logger.info(f"image written to {path}")
