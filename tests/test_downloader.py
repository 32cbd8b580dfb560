"""Tests for artifact downloads."""

from pathlib import Path
from unittest.mock import patch

import pytest
import requests

from rhel_packager.downloader import Artifact, download_file, fetch_artifacts
from rhel_packager.errors import ArtifactNotFound, DownloadFailed

from .helpers import FakeResponse

URL = 'https://example.invalid/files/tool-1.0.tar.gz'


def test_download_writes_the_body(tmp_path: Path, fake_get):
    body = b'x' * 20000
    response = FakeResponse(body)
    with patch('rhel_packager.downloader.requests.get', side_effect=fake_get({URL: response})):
        path = download_file(URL, tmp_path / 'sub' / 'tool-1.0.tar.gz')

    assert path.read_bytes() == body
    assert response.closed


def test_http_error_raises_download_failed(tmp_path: Path, fake_get):
    dest = tmp_path / 'tool-1.0.tar.gz'
    with (
        patch('rhel_packager.downloader.requests.get', side_effect=fake_get({URL: FakeResponse(status_code=404)})),
        pytest.raises(DownloadFailed) as excinfo,
    ):
        download_file(URL, dest)

    assert excinfo.value.url == URL
    assert isinstance(excinfo.value.__cause__, requests.HTTPError)
    assert not dest.exists()


def test_interrupted_transfer_leaves_no_partial_file(tmp_path: Path):
    class BrokenResponse(FakeResponse):
        def iter_content(self, chunk_size: int = 8192):
            yield b'partial'
            msg = 'connection reset'
            raise requests.ConnectionError(msg)

    response = BrokenResponse(b'partial-body')
    dest = tmp_path / 'tool-1.0.tar.gz'
    with (
        patch('rhel_packager.downloader.requests.get', return_value=response),
        pytest.raises(DownloadFailed),
    ):
        download_file(URL, dest)

    assert not dest.exists()
    assert response.closed


def test_fetch_stops_at_first_failure(tmp_path: Path, fake_get):
    second = 'https://example.invalid/files/other-1.0.tar.gz'
    artifacts = [
        Artifact(url=URL, path=tmp_path / 'tool-1.0.tar.gz', pattern='tool-*.tar.gz'),
        Artifact(url=second, path=tmp_path / 'other-1.0.tar.gz', pattern='other-*.tar.gz'),
        Artifact(url=URL, path=tmp_path / 'never.tar.gz'),
    ]
    routes = {URL: FakeResponse(b'ok'), second: FakeResponse(status_code=500)}

    with (
        patch('rhel_packager.downloader.requests.get', side_effect=fake_get(routes)) as get,
        pytest.raises(DownloadFailed),
    ):
        fetch_artifacts(artifacts)

    assert get.call_count == 2
    assert not (tmp_path / 'never.tar.gz').exists()


def test_artifact_name_must_match_pattern(tmp_path: Path, fake_get):
    artifact = Artifact(url=URL, path=tmp_path / 'tool-1.0.tar.gz', pattern='other-*.tar.gz')
    with (
        patch('rhel_packager.downloader.requests.get', side_effect=fake_get({URL: FakeResponse(b'ok')})),
        pytest.raises(ArtifactNotFound),
    ):
        fetch_artifacts([artifact])
