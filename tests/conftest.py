# tests/conftest.py
"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest


@pytest.fixture
def write_csv(tmp_path: Path) -> Callable[..., Path]:
    """Write text or bytes to a file under tmp_path and return its path.

    Text is encoded with *encoding* (UTF-8 by default); bytes are written
    as given.
    """

    def _write(
        content: str | bytes, name: str = "data.csv", encoding: str = "utf-8"
    ) -> Path:
        path = tmp_path / name
        data = content.encode(encoding) if isinstance(content, str) else content
        path.write_bytes(data)
        return path

    return _write
