"""Shared fixtures for subsonic_client unit tests."""

import httpx
import pytest

from src.subsonic_client.client import SubsonicClient
from src.subsonic_client.models import SubsonicConfig
from tests.unit.subsonic_client.fakes import FakeSubsonicServer, make_config


@pytest.fixture
def config() -> SubsonicConfig:
    return make_config()


@pytest.fixture
def server() -> FakeSubsonicServer:
    return FakeSubsonicServer()


@pytest.fixture
def client(server: FakeSubsonicServer, config: SubsonicConfig):
    """SubsonicClient wired to the fake server."""
    with SubsonicClient(config, transport=httpx.MockTransport(server)) as subsonic:
        yield subsonic
