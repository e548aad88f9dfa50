from pathlib import Path

import pytest
import pytest_asyncio

from modsync.download import Downloader
from modsync.paths import LauncherPaths
from modsync.services import ResilientHttpClient
from tests.helpers import StubServer


@pytest_asyncio.fixture
async def stub():
    server = StubServer()
    await server.start()
    yield server
    await server.close()


@pytest_asyncio.fixture
async def http():
    client = ResilientHttpClient(timeout=5.0, retry_delay=0.01, jitter=0)
    yield client
    await client.close()


@pytest.fixture
def downloader(http) -> Downloader:
    return Downloader(http)


@pytest.fixture
def paths(tmp_path: Path) -> LauncherPaths:
    return LauncherPaths(tmp_path / "root", tmp_path / "minecraft")
