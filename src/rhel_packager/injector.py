"""Replace the native libsignal library bundled inside libsignal-client jars."""

import logging
import os
import re
import shutil
import tempfile
import zipfile
import zlib
from pathlib import Path

from .bundle import extract_archive, find_files
from .config import (
    ARCH_TRIPLES,
    LIBSIGNAL_ENTRY_NAME,
    LIBSIGNAL_HISTORICAL_ENTRIES,
    LIBSIGNAL_JAR_PREFIX,
    LIBSIGNAL_JAR_SUFFIX,
    LIBSIGNAL_NATIVE_URL,
    NUMERIC_VERSION_PATTERN,
)
from .downloader import Artifact, fetch_artifacts
from .errors import (
    ArtifactNotFound,
    InjectionVerificationFailed,
    UnsupportedArchitecture,
    VersionParseFailed,
)

logger = logging.getLogger(__name__)

COMPANION_JAR_RE = re.compile(
    rf'{re.escape(LIBSIGNAL_JAR_PREFIX)}-({NUMERIC_VERSION_PATTERN})\.{re.escape(LIBSIGNAL_JAR_SUFFIX)}',
)


def find_companion_jar(lib_dir: Path) -> Path:
    """Return the single libsignal-client jar in a staged lib directory."""
    jars = sorted(lib_dir.glob(f'{LIBSIGNAL_JAR_PREFIX}-*.{LIBSIGNAL_JAR_SUFFIX}'))
    if len(jars) != 1:
        msg = f'expected one {LIBSIGNAL_JAR_PREFIX} jar in {lib_dir}, found {len(jars)}'
        raise ArtifactNotFound(msg)
    return jars[0]


def parse_library_version(filename: str) -> str:
    """Extract the libsignal version from ``libsignal-client-<version>.jar``.

    Raises:
        VersionParseFailed: If the name does not follow the grammar exactly

    """
    match = COMPANION_JAR_RE.fullmatch(filename)
    if not match:
        msg = f'cannot parse libsignal version from {filename!r}'
        raise VersionParseFailed(msg)
    return match.group(1)


def target_triple(arch: str) -> str:
    """Map a ``uname -m`` architecture to the native build's target triple."""
    try:
        return ARCH_TRIPLES[arch]
    except KeyError:
        raise UnsupportedArchitecture(arch, sorted(ARCH_TRIPLES)) from None


def native_library_artifact(version: str, arch: str, dest_dir: Path) -> Artifact:
    """Describe the native library tarball for a libsignal version and arch."""
    triple = target_triple(arch)
    url = LIBSIGNAL_NATIVE_URL.format(version=version, triple=triple)
    return Artifact(
        url=url,
        path=dest_dir / url.rsplit('/', 1)[-1],
        pattern=f'{LIBSIGNAL_ENTRY_NAME}-v{version}-{triple}.tar.gz',
    )


def rewrite_jar(jar_path: Path, library: Path) -> None:
    """Drop every known native entry from the jar and add ``library`` at its root.

    Entries that are not present are simply skipped. The jar is rebuilt in a
    temporary file next to it and moved into place. Timestamps before 1980,
    which zip cannot store, are clamped.

    Raises:
        InjectionVerificationFailed: If the jar cannot be read

    """
    removed = []
    fd, tmp_name = tempfile.mkstemp(prefix=f'.{jar_path.name}.', dir=jar_path.parent)
    os.close(fd)
    tmp_path = Path(tmp_name)

    try:
        with (
            zipfile.ZipFile(jar_path) as src,
            zipfile.ZipFile(tmp_path, 'w', zipfile.ZIP_DEFLATED, strict_timestamps=False) as dst,
        ):
            for info in src.infolist():
                if info.filename in LIBSIGNAL_HISTORICAL_ENTRIES:
                    removed.append(info.filename)
                    continue
                dst.writestr(info, src.read(info))
            dst.write(library, LIBSIGNAL_ENTRY_NAME)
        shutil.copymode(jar_path, tmp_path)
        tmp_path.replace(jar_path)
    except (zipfile.BadZipFile, zlib.error) as e:
        tmp_path.unlink(missing_ok=True)
        msg = f'{jar_path.name} is not a valid archive: {e}'
        raise InjectionVerificationFailed(msg) from e
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise

    logger.info('Rewrote %s (removed: %s)', jar_path.name, ', '.join(removed) or 'nothing')


def count_entries(jar_path: Path, name: str = LIBSIGNAL_ENTRY_NAME) -> int:
    """Count entries called ``name`` in a zip archive."""
    with zipfile.ZipFile(jar_path) as zf:
        return sum(1 for info in zf.infolist() if info.filename == name)


def verify_injection(jar_path: Path) -> None:
    """Check the jar holds exactly one injected native library entry."""
    try:
        count = count_entries(jar_path)
    except zipfile.BadZipFile as e:
        msg = f'{jar_path.name} is not a valid archive after injection: {e}'
        raise InjectionVerificationFailed(msg) from e

    if count != 1:
        msg = f'{jar_path.name} contains {count} {LIBSIGNAL_ENTRY_NAME} entries, expected 1'
        raise InjectionVerificationFailed(msg)


def inject_native_library(jar_path: Path, arch: str, work_dir: Path) -> Path:
    """Swap the native library inside a libsignal-client jar for ``arch``.

    The version is taken from the jar's file name and the architecture is
    resolved before anything is downloaded.

    Args:
        jar_path: Staged ``libsignal-client-<version>.jar``
        arch: Target architecture (``x86_64`` or ``aarch64``)
        work_dir: Scratch directory for the download and extraction

    Returns:
        Path to the rewritten jar

    Raises:
        VersionParseFailed: If the jar name has no version
        UnsupportedArchitecture: If there is no native build for ``arch``
        DownloadFailed: If the native library cannot be fetched
        ArtifactNotFound: If the download does not contain the library
        InjectionVerificationFailed: If the rewritten jar fails verification

    """
    version = parse_library_version(jar_path.name)
    artifact = native_library_artifact(version, arch, work_dir)
    logger.info('Injecting libsignal %s native library for %s', version, arch)

    (tarball,) = fetch_artifacts([artifact])
    extract_dir = extract_archive(tarball, work_dir / 'libsignal')

    libraries = find_files(extract_dir, LIBSIGNAL_ENTRY_NAME)
    if not libraries:
        msg = f'{LIBSIGNAL_ENTRY_NAME} not found in {tarball.name}'
        raise ArtifactNotFound(msg)

    rewrite_jar(jar_path, libraries[0])
    verify_injection(jar_path)
    return jar_path
