"""Tests for /music/{filename} streaming and /stats."""

import os
from unittest.mock import patch
from urllib.parse import quote

import pytest
from httpx import AsyncClient

from conftest import sample_bytes
from tunehost.services import get_metadata_cache, get_transfer_stats


@pytest.mark.asyncio
async def test_full_file(client: AsyncClient, song):
    resp = await client.get("/music/song.mp3")
    assert resp.status_code == 200
    assert resp.headers["content-length"] == "1000"
    assert resp.content == sample_bytes(1000)


@pytest.mark.asyncio
async def test_common_headers(client: AsyncClient, song):
    resp = await client.get("/music/song.mp3")
    assert resp.headers["content-type"] == "audio/mpeg"
    assert resp.headers["accept-ranges"] == "bytes"
    assert resp.headers["cache-control"] == "public, max-age=3600"
    assert resp.headers["x-content-type-options"] == "nosniff"
    assert resp.headers["content-disposition"] == "inline; filename*=UTF-8''song.mp3"
    assert resp.headers["last-modified"].endswith("GMT")


@pytest.mark.asyncio
async def test_partial_content(client: AsyncClient, song):
    resp = await client.get("/music/song.mp3", headers={"Range": "bytes=100-199"})
    assert resp.status_code == 206
    assert resp.headers["content-range"] == "bytes 100-199/1000"
    assert resp.headers["content-length"] == "100"
    assert resp.content == sample_bytes(1000)[100:200]


@pytest.mark.asyncio
async def test_suffix_range(client: AsyncClient, song):
    resp = await client.get("/music/song.mp3", headers={"Range": "bytes=-10"})
    assert resp.status_code == 206
    assert resp.headers["content-range"] == "bytes 990-999/1000"
    assert resp.content == sample_bytes(1000)[-10:]


@pytest.mark.asyncio
async def test_unsatisfiable_range(client: AsyncClient, song):
    resp = await client.get("/music/song.mp3", headers={"Range": "bytes=2000-3000"})
    assert resp.status_code == 416
    assert resp.headers["content-range"] == "bytes */1000"
    assert resp.content == b""
    assert resp.headers["content-type"] == "audio/mpeg"
    assert resp.headers["accept-ranges"] == "bytes"
    assert resp.headers["cache-control"] == "public, max-age=3600"
    assert resp.headers["x-content-type-options"] == "nosniff"
    assert resp.headers["last-modified"].endswith("GMT")


@pytest.mark.asyncio
async def test_large_file_spans_many_chunks(client: AsyncClient, music_dir):
    data = sample_bytes(200 * 1024 + 17)
    (music_dir / "long take.flac").write_bytes(data)

    resp = await client.get("/music/" + quote("long take.flac"))
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "audio/flac"
    assert resp.content == data

    resp = await client.get(
        "/music/" + quote("long take.flac"), headers={"Range": "bytes=65530-131080"}
    )
    assert resp.status_code == 206
    assert resp.content == data[65530:131081]


@pytest.mark.asyncio
async def test_unicode_filename(client: AsyncClient, music_dir):
    (music_dir / "晴天.m4a").write_bytes(b"abc")
    resp = await client.get("/music/" + quote("晴天.m4a"))
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "audio/mp4"
    assert resp.headers["content-disposition"] == "inline; filename*=UTF-8''%E6%99%B4%E5%A4%A9.m4a"


@pytest.mark.asyncio
async def test_invalid_filename_is_rejected_before_stat(client: AsyncClient, song):
    with patch("tunehost.services.stream_service.os.stat") as mock_stat:
        resp = await client.get("/music/song.txt")
    assert resp.status_code == 400
    mock_stat.assert_not_called()


@pytest.mark.asyncio
async def test_double_dot_is_forbidden(client: AsyncClient, music_dir):
    (music_dir / "song..mp3").write_bytes(b"x")
    resp = await client.get("/music/song..mp3")
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_missing_file(client: AsyncClient):
    resp = await client.get("/music/nothing.mp3")
    assert resp.status_code == 404
    assert len(get_metadata_cache()) == 0


@pytest.mark.asyncio
async def test_directory_with_audio_name_is_not_served(client: AsyncClient, music_dir):
    (music_dir / "folder.mp3").mkdir()
    resp = await client.get("/music/folder.mp3")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_metadata_is_cached_after_first_request(client: AsyncClient, song):
    await client.get("/music/song.mp3")
    assert str(song) in get_metadata_cache()

    with patch("tunehost.services.stream_service.os.stat") as mock_stat:
        resp = await client.get("/music/song.mp3", headers={"Range": "bytes=0-9"})
    assert resp.status_code == 206
    mock_stat.assert_not_called()


@pytest.mark.asyncio
async def test_size_change_behind_cache_is_picked_up(client: AsyncClient, song):
    await client.get("/music/song.mp3")
    song.write_bytes(sample_bytes(500))

    resp = await client.get("/music/song.mp3")
    assert resp.status_code == 200
    assert resp.headers["content-length"] == "500"
    assert get_metadata_cache().get(str(song)).size == 500


@pytest.mark.asyncio
async def test_stale_cache_entry_for_removed_file(client: AsyncClient, song):
    """Removed behind the cache's back: open fails before any byte is sent."""
    await client.get("/music/song.mp3")
    os.unlink(song)

    resp = await client.get("/music/song.mp3")
    assert resp.status_code == 500
    assert str(song) not in get_metadata_cache()

    resp = await client.get("/music/song.mp3")
    assert resp.status_code == 404


class TestStats:
    @pytest.mark.asyncio
    async def test_initial_stats(self, client: AsyncClient):
        resp = await client.get("/stats")
        assert resp.status_code == 200
        assert resp.json() == {"totalTransferred": "0B", "totalRequests": 0}

    @pytest.mark.asyncio
    async def test_successful_streams_are_counted(self, client: AsyncClient, song):
        await client.get("/music/song.mp3")
        await client.get("/music/song.mp3", headers={"Range": "bytes=100-199"})

        snap = get_transfer_stats().snapshot()
        assert snap.requests == 2
        assert snap.total_bytes == 1100

        resp = await client.get("/stats")
        assert resp.json() == {"totalTransferred": "1.07KB", "totalRequests": 2}

    @pytest.mark.asyncio
    async def test_failed_requests_are_not_counted(self, client: AsyncClient, song):
        await client.get("/music/missing.mp3")
        await client.get("/music/bad.txt")
        await client.get("/music/song.mp3", headers={"Range": "bytes=5000-"})
        assert get_transfer_stats().snapshot().requests == 0

    @pytest.mark.asyncio
    async def test_bytes_counted_at_stream_start(self, client: AsyncClient, song):
        """Accounting is optimistic: the intended size is recorded even if the
        client never reads the body."""
        async with client.stream("GET", "/music/song.mp3") as resp:
            assert resp.status_code == 200
        assert get_transfer_stats().snapshot().total_bytes == 1000
