"""Shared fixtures: small images generated with Pillow."""

from pathlib import Path
from typing import Callable

import pytest

from tests.helpers import encode_image


@pytest.fixture
def jpeg_bytes() -> bytes:
    """800x600 JPEG."""
    return encode_image((800, 600), "JPEG")


@pytest.fixture
def png_bytes() -> bytes:
    """30x20 PNG."""
    return encode_image((30, 20), "PNG")


@pytest.fixture
def write_image(tmp_path: Path) -> Callable[[str, bytes], str]:
    """Writes encoded bytes into ``tmp_path`` and returns the path."""

    def _write(name: str, data: bytes) -> str:
        path = tmp_path / name
        path.write_bytes(data)
        return str(path)

    return _write
