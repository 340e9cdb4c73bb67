"""Shared fixtures for the converter tests."""

import logging
from pathlib import Path
from typing import Callable, List

import pytest

SCENARIO_LINES = [
    '"2024-01-01 00:00:10","A","Hi","こんにちは"',
    '"2024-01-01 00:00:11","B","Bye","バイバイ"',
]


@pytest.fixture
def write_csv(tmp_path: Path) -> Callable[..., Path]:
    """Writes CSV lines to a file under tmp_path and returns its path."""

    def _write(lines: List[str], name: str = "transcript.csv") -> Path:
        path = tmp_path / name
        content = "".join(f"{line}\n" for line in lines)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def restore_root_logging():
    """Puts back the root logger handlers replaced by setup_logging."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
