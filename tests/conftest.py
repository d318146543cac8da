"""Shared fixtures for keymap parsing tests."""

from pathlib import Path

import pytest

DATA_DIR = Path(__file__).parent / "data"


@pytest.fixture(name="sample_keymap_path")
def fixture_sample_keymap_path() -> Path:
    """Path to a four layer keymap with six combos and a behavior override block."""
    return DATA_DIR / "sample.keymap"


@pytest.fixture(name="sample_keymap")
def fixture_sample_keymap(sample_keymap_path: Path) -> str:
    """Content of the sample keymap."""
    return sample_keymap_path.read_text(encoding="utf-8")
