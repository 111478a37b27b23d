"""
Tests for the distribution metadata.
"""

from pathlib import Path

import pytest

tomllib = pytest.importorskip("tomllib")

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def test_metadata_files_exist() -> None:
    with open(PROJECT_ROOT / "pyproject.toml", "rb") as f:
        project = tomllib.load(f)["project"]

    assert project["name"] == "meteorstack"
    readme = project.get("readme")
    if readme is not None:
        assert readme.endswith((".md", ".rst", ".txt"))
        assert (PROJECT_ROOT / readme).is_file()
