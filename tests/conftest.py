"""Test configuration for pytest."""

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import requests

from .helpers import (
    LAUNCHER_SCRIPT,
    LIBSIGNAL_VERSION,
    SIGNAL_CLI_VERSION,
    FakeResponse,
    libsignal_jar,
    make_tarball,
    make_zip,
)


@pytest.fixture
def signal_cli_tarball() -> Callable[..., bytes]:
    """Factory for signal-cli release tarballs.

    ``root`` is the top-level directory name and ``launcher`` the launcher's
    path relative to it.
    """

    def factory(
        *,
        root: str = f'signal-cli-{SIGNAL_CLI_VERSION}',
        launcher: str | None = 'bin/signal-cli',
        jars: bool = True,
    ) -> bytes:
        entries: dict[str, bytes] = {f'{root}/README.md': b'signal-cli\n'}
        modes = {}
        if launcher:
            entries[f'{root}/{launcher}'] = LAUNCHER_SCRIPT
            modes[f'{root}/{launcher}'] = 0o755
            entries[f'{root}/bin/signal-cli.bat'] = b'@echo off\n'
        if jars:
            entries[f'{root}/lib/signal-cli-{SIGNAL_CLI_VERSION}.jar'] = make_zip({'Main.class': b'x'})
            entries[f'{root}/lib/libsignal-client-{LIBSIGNAL_VERSION}.jar'] = libsignal_jar()
        return make_tarball(entries, modes)

    return factory


@pytest.fixture
def native_tarball() -> bytes:
    """The secondary-source native library tarball."""
    return make_tarball({'libsignal_jni.so': b'\x7fELF-x86_64-libsignal'})


@pytest.fixture
def fake_get() -> Callable[[dict[str, FakeResponse]], Callable[..., FakeResponse]]:
    """Build a ``requests.get`` replacement serving canned responses by URL."""

    def factory(routes: dict[str, FakeResponse]) -> Callable[..., FakeResponse]:
        def get(url: str, **kwargs: Any) -> FakeResponse:
            _ = kwargs
            if url not in routes:
                msg = f'unexpected request: {url}'
                raise requests.ConnectionError(msg)
            return routes[url]

        return get

    return factory


@pytest.fixture
def topdir(tmp_path: Path) -> Path:
    """An empty rpmbuild top directory."""
    return tmp_path / 'rpmbuild'
