"""Test fixtures: temporary music directory, services and FastAPI test client."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from tunehost.config import Settings
from tunehost.main import create_app
from tunehost.services import init_services, shutdown_services

ADMIN_PASSWORD = "s3cret"


def sample_bytes(size: int) -> bytes:
    """Deterministic, position-dependent content."""
    return bytes(i % 251 for i in range(size))


@pytest.fixture
def music_dir(tmp_path):
    path = tmp_path / "music"
    path.mkdir()
    return path


@pytest.fixture
def test_settings(tmp_path, music_dir) -> Settings:
    return Settings(
        music_dir=str(music_dir),
        public_dir=str(tmp_path / "public"),
        admin_password=ADMIN_PASSWORD,
        cache_check_period_seconds=0,
        download_timeout_seconds=5,
    )


@pytest.fixture
def song(music_dir):
    """A 1000-byte track named song.mp3."""
    path = music_dir / "song.mp3"
    path.write_bytes(sample_bytes(1000))
    return path


@pytest_asyncio.fixture
async def client(test_settings: Settings):
    """Async test client with services bound to the temporary music directory."""
    app = create_app(test_settings)
    init_services(test_settings, start_background=False)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    await shutdown_services()
