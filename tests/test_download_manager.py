import os

import pytest

from conftest import sha1_of, write_file
from distrogen.download import DownloadManager
from distrogen.exceptions import DownloadChecksumError, DownloadError


class _FakeContent:
    def __init__(self, data: bytes):
        self._data = data

    async def iter_chunked(self, size):
        for start in range(0, len(self._data), size):
            yield self._data[start:start + size]


class _FakeResponse:
    def __init__(self, status, data=b""):
        self.status = status
        self.content = _FakeContent(data)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class _FakeSession:
    def __init__(self, *responses):
        self._responses = list(responses)
        self.urls = []
        self.closed = False

    def get(self, url):
        self.urls.append(url)
        return self._responses.pop(0)


def _manager(session):
    return DownloadManager(max_retries=2, retry_delay=0, session=session)


@pytest.mark.asyncio
async def test_download_verifies_and_replaces(tmp_path):
    data = b"x" * 20000
    session = _FakeSession(_FakeResponse(200, data))
    target = tmp_path / "repo" / "a.jar"
    manager = _manager(session)

    path = await manager.download_file("https://f/a.jar", str(target), sha1_of(data), len(data))

    assert path == str(target)
    assert target.read_bytes() == data
    assert not os.path.exists(f"{target}.part")
    assert manager.stats.completed == 1
    assert manager.stats.bytes_downloaded == len(data)


@pytest.mark.asyncio
async def test_valid_cached_file_is_skipped(tmp_path):
    target = write_file(tmp_path / "a.jar", b"cached")
    session = _FakeSession()
    manager = _manager(session)

    await manager.download_file("https://f/a.jar", target, sha1_of(b"cached"), 6)

    assert session.urls == []
    assert manager.stats.skipped == 1


@pytest.mark.asyncio
async def test_checksum_mismatch_leaves_nothing_behind(tmp_path):
    session = _FakeSession(_FakeResponse(200, b"corrupt"))
    target = tmp_path / "a.jar"

    with pytest.raises(DownloadChecksumError):
        await _manager(session).download_file("https://f/a.jar", str(target), sha1_of(b"good"))

    assert not target.exists()
    assert not os.path.exists(f"{target}.part")
    assert len(session.urls) == 1


@pytest.mark.asyncio
async def test_not_found_is_not_retried(tmp_path):
    session = _FakeSession(_FakeResponse(404))

    with pytest.raises(DownloadError) as exc:
        await _manager(session).download_file("https://f/a.jar", str(tmp_path / "a.jar"))

    assert exc.value.context["status"] == 404
    assert len(session.urls) == 1


@pytest.mark.asyncio
async def test_server_errors_are_retried(tmp_path):
    session = _FakeSession(_FakeResponse(503), _FakeResponse(429), _FakeResponse(200, b"ok"))
    target = tmp_path / "a.jar"

    await _manager(session).download_file("https://f/a.jar", str(target))

    assert target.read_bytes() == b"ok"
    assert len(session.urls) == 3


@pytest.mark.asyncio
async def test_unwritable_directory_is_a_download_error(tmp_path):
    blocker = write_file(tmp_path / "repo", b"not a directory")
    session = _FakeSession(_FakeResponse(200, b"ok"))
    manager = _manager(session)

    with pytest.raises(DownloadError) as exc:
        await manager.download_file("https://f/a.jar", os.path.join(blocker, "a.jar"))

    assert exc.value.context["path"] == os.path.join(blocker, "a.jar")
    assert session.urls == []
    assert manager.stats.failed == 1


@pytest.mark.asyncio
async def test_write_failure_is_not_retried(tmp_path):
    target = tmp_path / "a.jar"
    os.makedirs(f"{target}.part")
    session = _FakeSession(_FakeResponse(200, b"ok"), _FakeResponse(200, b"ok"))

    with pytest.raises(DownloadError) as exc:
        await _manager(session).download_file("https://f/a.jar", str(target))

    assert isinstance(exc.value.__cause__, OSError)
    assert len(session.urls) == 1
    assert not target.exists()


@pytest.mark.asyncio
async def test_locks_are_released_after_download(tmp_path):
    session = _FakeSession(_FakeResponse(200, b"ok"), _FakeResponse(404))
    manager = _manager(session)

    await manager.download_file("https://f/a.jar", str(tmp_path / "a.jar"))
    with pytest.raises(DownloadError):
        await manager.download_file("https://f/b.jar", str(tmp_path / "b.jar"))

    assert manager._locks == {}
    assert manager._waiting == {}
