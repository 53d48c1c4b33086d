from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterator

import pytest

TESTS_DIR = Path(__file__).resolve().parent
ROOT = TESTS_DIR.parent
for extra in (TESTS_DIR, ROOT / "src"):
    path_str = str(extra)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

from quiz_console.core.workspace import WORKSPACE_ENV  # noqa: E402
from quiz_console.config import CONFIG_PATH_ENV  # noqa: E402


@pytest.fixture(autouse=True)
def data_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Point every test at a private data home and no config override."""

    home = tmp_path / "data-home"
    monkeypatch.setenv(WORKSPACE_ENV, str(home))
    monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)
    yield home
