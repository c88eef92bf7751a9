"""Shared test fixtures and marker registration."""

from __future__ import annotations

import pytest

from object_drive._contents import ContentsManager
from object_drive._drive import Drive
from object_drive.clients._memory import MemoryClient

BUCKET = "bucket"


def pytest_configure(config: object) -> None:
    """Register custom markers."""
    if isinstance(config, pytest.Config):
        config.addinivalue_line("markers", "integration: requires external services")


@pytest.fixture
def client() -> MemoryClient:
    return MemoryClient()


@pytest.fixture
def drive(client: MemoryClient) -> Drive:
    return Drive("cloud", client, bucket=BUCKET)


@pytest.fixture
def manager(drive: Drive) -> ContentsManager:
    contents = ContentsManager()
    contents.add_drive(drive)
    return contents
