"""Extract release bundles and flatten them into a bin/ + lib/ layout."""

import logging
import shutil
import tarfile
import zipfile
import zlib
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from .config import NATIVE_LIBRARY_GLOB, SEARCH_DEPTH
from .errors import ArtifactNotFound
from .staging import scratch_dir

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LauncherCandidate:
    """One place a launcher may live inside an extracted bundle."""

    description: str
    locate: Callable[[Path, str], Path | None]


@dataclass
class NormalizedBundle:
    """Files copied into the flat staging layout."""

    launcher: Path
    jars: list[Path] = field(default_factory=list)
    native_libraries: list[Path] = field(default_factory=list)


def extract_archive(archive: Path, dest: Path) -> Path:
    """Extract a .tar(.gz) or .zip archive into ``dest``.

    Raises:
        ArtifactNotFound: If the archive is of an unknown format, truncated or corrupt

    """
    dest.mkdir(parents=True, exist_ok=True)
    name = archive.name.lower()

    try:
        if name.endswith('.zip'):
            with zipfile.ZipFile(archive) as zf:
                zf.extractall(dest)
        elif tarfile.is_tarfile(archive):
            with tarfile.open(archive) as tar:
                tar.extractall(dest, filter='data')
        else:
            msg = f'unsupported archive format: {archive.name}'
            raise ArtifactNotFound(msg)
    except (tarfile.TarError, zipfile.BadZipFile, EOFError, zlib.error) as e:
        msg = f'cannot extract {archive.name}: {e}'
        raise ArtifactNotFound(msg) from e

    return dest


def find_files(root: Path, pattern: str, max_depth: int = SEARCH_DEPTH) -> list[Path]:
    """Find files matching a glob at most ``max_depth`` levels below root."""
    matches = [
        path for path in root.rglob(pattern)
        if path.is_file() and len(path.relative_to(root).parts) <= max_depth
    ]
    return sorted(matches)


def locate_bundle_root(extract_dir: Path, expected: str, pattern: str) -> Path:
    """Find the top-level directory of an extracted bundle.

    Archives do not always use the directory name we expect, so fall back
    to the first directory matching ``pattern`` and finally to the
    extraction directory itself.
    """
    exact = extract_dir / expected
    if exact.is_dir():
        return exact

    for candidate in sorted(extract_dir.glob(pattern)):
        if candidate.is_dir():
            logger.info('Using bundle directory %s instead of %s', candidate.name, expected)
            return candidate

    return extract_dir


def _in_bin_dir(root: Path, name: str) -> Path | None:
    path = root / 'bin' / name
    return path if path.is_file() else None


def _at_root(root: Path, name: str) -> Path | None:
    path = root / name
    return path if path.is_file() else None


def _anywhere(root: Path, name: str) -> Path | None:
    matches = find_files(root, name)
    return matches[0] if matches else None


LAUNCHER_CANDIDATES = (
    LauncherCandidate('bin/<name>', _in_bin_dir),
    LauncherCandidate('<name>', _at_root),
    LauncherCandidate(f'**/<name> (depth {SEARCH_DEPTH})', _anywhere),
)


def find_launcher(root: Path, name: str) -> Path:
    """Return the first launcher found by the ordered candidate list.

    Raises:
        ArtifactNotFound: If no candidate matches

    """
    for candidate in LAUNCHER_CANDIDATES:
        path = candidate.locate(root, name)
        if path is not None:
            logger.debug('Launcher found via %s: %s', candidate.description, path)
            return path

    msg = f'launcher {name!r} not found in {root}'
    raise ArtifactNotFound(msg)


def _copy_all(files: list[Path], dest_dir: Path) -> list[Path]:
    dest_dir.mkdir(parents=True, exist_ok=True)
    copied = []
    for src in files:
        dst = dest_dir / src.name
        shutil.copy2(src, dst)
        copied.append(dst)
    return copied


def normalize_bundle(
    archive: Path,
    dest: Path,
    *,
    launcher_name: str,
    expected_root: str,
    root_pattern: str,
) -> NormalizedBundle:
    """Extract ``archive`` and copy its launcher, jars and native libraries.

    Args:
        archive: Downloaded release archive
        dest: Staging directory receiving ``bin/`` and ``lib/``
        launcher_name: File name of the executable entry point
        expected_root: Top-level directory the archive should contain
        root_pattern: Glob used when ``expected_root`` is missing

    Returns:
        The staged files

    Raises:
        ArtifactNotFound: If no launcher or no jar is present

    """
    logger.info('Extracting %s...', archive.name)

    with scratch_dir() as tmp:
        extract_dir = extract_archive(archive, tmp / 'extract')
        root = locate_bundle_root(extract_dir, expected_root, root_pattern)

        launcher_src = find_launcher(root, launcher_name)
        jars = find_files(root, '*.jar')
        if not jars:
            msg = f'no .jar files found in {archive.name}'
            raise ArtifactNotFound(msg)
        native_libraries = find_files(root, NATIVE_LIBRARY_GLOB)

        bin_dir = dest / 'bin'
        bin_dir.mkdir(parents=True, exist_ok=True)
        launcher = bin_dir / launcher_name
        shutil.copy2(launcher_src, launcher)
        launcher.chmod(0o755)

        bundle = NormalizedBundle(
            launcher=launcher,
            jars=_copy_all(jars, dest / 'lib'),
            native_libraries=_copy_all(native_libraries, dest / 'lib'),
        )

    logger.info(
        'Staged launcher, %d jar(s) and %d native libraries',
        len(bundle.jars),
        len(bundle.native_libraries),
    )
    return bundle
