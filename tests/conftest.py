from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.asset_tree import AssetTreeBuilder


@pytest.fixture
def asset_tree(tmp_path: Path) -> AssetTreeBuilder:
    """Provide a release workspace rooted at the pytest tmp_path."""
    return AssetTreeBuilder(tmp_path)
