"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from tests.fake_host import FakeHost, make_document  # noqa: E402

MB = 1024 * 1024


@pytest.fixture
def document_bytes():
    """A 2.5 MB document."""
    return make_document(2 * MB + MB // 2)


@pytest.fixture
def deck_path(tmp_path, document_bytes):
    """The 2.5 MB document written to a local file."""
    path = tmp_path / "deck.pptx"
    path.write_bytes(document_bytes)
    return path


@pytest.fixture
def fake_host(document_bytes):
    """Fake host serving the 2.5 MB document."""
    return FakeHost(document_bytes)
