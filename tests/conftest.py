import sys
from pathlib import Path

# src/ on the path for runs without an editable install
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

import pytest

from tests.fakes import FakeEmbedder, make_registry


@pytest.fixture
def tool_calls_seen():
    return []


@pytest.fixture
def registry(tool_calls_seen):
    return make_registry(calls=tool_calls_seen)


@pytest.fixture
def embedder():
    return FakeEmbedder()
