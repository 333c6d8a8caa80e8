"""Test fixtures shared by the cpstate tests."""

import pytest

from .fakes import FakeLiveClient, RecordingPrinter


@pytest.fixture
def client() -> FakeLiveClient:
    """Create a fake live control plane."""
    return FakeLiveClient()


@pytest.fixture
def printer() -> RecordingPrinter:
    """Create a printer recording progress events."""
    return RecordingPrinter()
