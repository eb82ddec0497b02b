"""Tests for the streaming downloader."""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from binaries.downloader import download_file
from interfaces.errors import DownloadFailed, IncompleteDownload


class ChunkStream(httpx.AsyncByteStream):
    """Response body delivered in fixed chunks."""

    def __init__(self, chunks: list[bytes]) -> None:
        self.chunks = chunks

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=False)


@pytest.mark.asyncio
async def test_writes_body_and_reports_progress_per_chunk(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            headers={"content-length": "400"},
            stream=ChunkStream([b"a" * 100] * 4),
        )

    dest = tmp_path / "dl" / "asset.zip"
    progress: list[int] = []
    async with _client(handler) as client:
        received = await download_file(client, "https://host/asset.zip", dest, on_progress=progress.append)

    assert received == 400
    assert dest.read_bytes() == b"a" * 400
    assert progress == [25, 50, 75, 100]


@pytest.mark.asyncio
async def test_progress_falls_back_to_declared_size(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, stream=ChunkStream([b"x" * 50, b"x" * 50]))

    progress: list[int] = []
    async with _client(handler) as client:
        await download_file(
            client, "https://host/a.zip", tmp_path / "a.zip", on_progress=progress.append, declared_size=100
        )
    assert progress == [50, 100]


@pytest.mark.asyncio
async def test_follows_relative_redirect_and_sends_user_agent(tmp_path: Path) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/start":
            return httpx.Response(302, headers={"location": "/final/asset.zip"})
        return httpx.Response(200, content=b"payload")

    dest = tmp_path / "asset.zip"
    async with _client(handler) as client:
        received = await download_file(client, "https://host/start", dest, user_agent="UA-Test")

    assert received == len(b"payload")
    assert [r.url.path for r in seen] == ["/start", "/final/asset.zip"]
    assert all(r.headers["user-agent"] == "UA-Test" for r in seen)


@pytest.mark.asyncio
async def test_redirect_body_does_not_count_toward_progress(tmp_path: Path) -> None:
    moved = b"<html>moved to the CDN</html>" * 10

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/start":
            return httpx.Response(
                302,
                headers={"location": "https://cdn.host/asset.zip", "content-length": str(len(moved))},
                content=moved,
            )
        return httpx.Response(200, headers={"content-length": "400"}, stream=ChunkStream([b"z" * 100] * 4))

    dest = tmp_path / "asset.zip"
    progress: list[int] = []
    async with _client(handler) as client:
        received = await download_file(
            client, "https://host/start", dest, on_progress=progress.append, declared_size=len(moved)
        )

    assert received == 400
    assert dest.read_bytes() == b"z" * 400
    assert progress == [25, 50, 75, 100]


@pytest.mark.asyncio
async def test_too_many_redirects(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(302, headers={"location": "https://host/again"})

    dest = tmp_path / "asset.zip"
    async with _client(handler) as client:
        with pytest.raises(DownloadFailed):
            await download_file(client, "https://host/start", dest, max_redirects=3)
    assert not dest.exists()


@pytest.mark.asyncio
async def test_non_2xx_is_download_failed(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, content=b"not found")

    dest = tmp_path / "asset.zip"
    async with _client(handler) as client:
        with pytest.raises(DownloadFailed) as exc:
            await download_file(client, "https://host/missing.zip", dest)
    assert exc.value.status_code == 404
    assert exc.value.category == "network"
    assert not dest.exists()


@pytest.mark.asyncio
async def test_short_body_is_incomplete_and_removed(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"content-length": "1000"}, stream=ChunkStream([b"x" * 10]))

    dest = tmp_path / "asset.zip"
    async with _client(handler) as client:
        with pytest.raises(IncompleteDownload) as exc:
            await download_file(client, "https://host/asset.zip", dest)
    assert exc.value.received == 10
    assert exc.value.expected == 1000
    assert not dest.exists()


@pytest.mark.asyncio
async def test_transport_error_is_download_failed(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    dest = tmp_path / "asset.zip"
    async with _client(handler) as client:
        with pytest.raises(DownloadFailed):
            await download_file(client, "https://host/asset.zip", dest)
    assert not dest.exists()
