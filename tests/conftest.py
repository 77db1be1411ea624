"""Pytest configuration and shared fixtures."""

import httpx
import pytest

from tests.fakes import FakeTransport


@pytest.fixture
def ok_transport() -> FakeTransport:
    """Transport answering every request with an empty JSON object."""
    return FakeTransport(lambda request: httpx.Response(200, json={}))
