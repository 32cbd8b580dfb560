"""Shared builders for test archives and HTTP responses."""

import io
import tarfile
import zipfile
from typing import Any

import requests

SIGNAL_CLI_VERSION = '1.2.3'
LIBSIGNAL_VERSION = '0.65.0'

LAUNCHER_SCRIPT = b'#!/bin/sh\nexec java -cp "$APP_HOME/lib/*" org.asamk.signal.Main "$@"\n'


class FakeResponse:
    """Minimal stand-in for ``requests.Response``."""

    def __init__(
        self,
        content: bytes = b'',
        *,
        status_code: int = 200,
        json_data: Any = None,
        text: str | None = None,
    ) -> None:
        self.content = content
        self.status_code = status_code
        self._json = json_data
        self.text = text if text is not None else content.decode(errors='replace')
        self.headers = {'Content-Length': str(len(content))}
        self.closed = False

    def __enter__(self) -> 'FakeResponse':
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self.closed = True

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            msg = f'{self.status_code} Client Error'
            raise requests.HTTPError(msg, response=self)  # type: ignore[arg-type]

    def iter_content(self, chunk_size: int = 8192):
        for start in range(0, len(self.content), chunk_size):
            yield self.content[start:start + chunk_size]

    def json(self) -> Any:
        if self._json is None:
            msg = 'No JSON object could be decoded'
            raise ValueError(msg)
        return self._json


def make_zip(entries: dict[str, bytes]) -> bytes:
    """Build an in-memory zip archive."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, 'w') as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return buf.getvalue()


def make_tarball(entries: dict[str, bytes], modes: dict[str, int] | None = None) -> bytes:
    """Build an in-memory .tar.gz archive."""
    modes = modes or {}
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode='w:gz') as tar:
        for name, data in entries.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = modes.get(name, 0o644)
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def libsignal_jar(extra: dict[str, bytes] | None = None) -> bytes:
    """Return a libsignal-client jar as shipped upstream."""
    entries = {
        'META-INF/MANIFEST.MF': b'Manifest-Version: 1.0\n',
        'org/signal/libsignal/internal/Native.class': b'\xca\xfe\xba\xbe',
        'libsignal_jni_amd64.so': b'UPSTREAM-AMD64',
        'signal_jni_amd64.dll': b'UPSTREAM-DLL',
        'libsignal_jni_aarch64.dylib': b'UPSTREAM-DYLIB',
    }
    entries.update(extra or {})
    return make_zip(entries)
