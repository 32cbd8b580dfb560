"""Version validation and discovery of the latest upstream release."""

import logging
import re
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import requests

from .config import (
    DEFAULT_RELEASE,
    NUMERIC_VERSION_PATTERN,
    SIGNAL_CLI_API_URL,
    SIGNAL_CLI_RELEASES_PAGE,
    SUFFIX_PATTERN,
)
from .errors import InvalidRelease, InvalidVersion, VersionDiscoveryFailed

logger = logging.getLogger(__name__)

VERSION_RE = re.compile(NUMERIC_VERSION_PATTERN)
SUFFIXED_VERSION_RE = re.compile(rf'{NUMERIC_VERSION_PATTERN}{SUFFIX_PATTERN}')
RELEASE_RE = re.compile(r'[1-9][0-9]*')
RELEASE_TAG_LINK_RE = re.compile(rf'/releases/tag/v?({NUMERIC_VERSION_PATTERN})"')


@dataclass(frozen=True)
class PackageRequest:
    """What to package: name, version, release and target architecture."""

    name: str
    version: str
    release: str = DEFAULT_RELEASE
    arch: str = 'x86_64'

    @property
    def source_dir_name(self) -> str:
        """Return the top-level directory name inside the source tarball."""
        return f'{self.name}-{self.version}'

    @property
    def tarball_name(self) -> str:
        """Return the source tarball file name."""
        return f'{self.source_dir_name}.tar.gz'

    @property
    def nvr(self) -> str:
        """Return name-version-release."""
        return f'{self.name}-{self.version}-{self.release}'


def validate_version(version: str, *, allow_suffix: bool = False) -> str:
    """Check a version string against the accepted pattern.

    Args:
        version: Version to check, e.g. ``0.13.22``
        allow_suffix: Also accept a ``-rc1``/``+build`` style suffix

    Returns:
        The version unchanged

    Raises:
        InvalidVersion: If the version does not match

    """
    pattern = SUFFIXED_VERSION_RE if allow_suffix else VERSION_RE
    if not pattern.fullmatch(version or ''):
        raise InvalidVersion(version)
    return version


def validate_release(release: str) -> str:
    """Check that the release is a positive integer."""
    if not RELEASE_RE.fullmatch(release):
        raise InvalidRelease(release)
    return release


def _tag_to_version(tag: str) -> str | None:
    version = tag[1:] if tag.startswith('v') else tag
    return version if VERSION_RE.fullmatch(version) else None


def select_stable_release(releases: list[dict[str, Any]]) -> str | None:
    """Pick the first non-draft, non-prerelease entry with a numeric tag.

    Args:
        releases: Release objects as returned by the GitHub releases API,
            newest first

    Returns:
        Version without the leading ``v`` or None if nothing qualifies

    """
    for release in releases:
        if release.get('draft') or release.get('prerelease'):
            continue
        version = _tag_to_version(str(release.get('tag_name', '')))
        if version:
            return version
    return None


def scrape_release_page(html: str) -> str | None:
    """Find the first numeric release tag linked from a releases page."""
    match = RELEASE_TAG_LINK_RE.search(html)
    return match.group(1) if match else None


def _query_releases_api(repo: str, timeout: int) -> str | None:
    url = SIGNAL_CLI_API_URL.format(repo=repo)
    try:
        response = requests.get(url, headers={'Accept': 'application/vnd.github+json'}, timeout=timeout)
        response.raise_for_status()
        releases = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.warning('Release API query failed: %s', e)
        return None

    if not isinstance(releases, list):
        logger.warning('Unexpected release API payload from %s', url)
        return None
    return select_stable_release(releases)


def _scrape_releases(repo: str, timeout: int) -> str | None:
    url = SIGNAL_CLI_RELEASES_PAGE.format(repo=repo)
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.warning('Release page scrape failed: %s', e)
        return None
    return scrape_release_page(response.text)


def discover_latest_version(repo: str, timeout: int = 10) -> str:
    """Find the newest stable release of a GitHub repository.

    The JSON API is tried first. If it fails or yields nothing the
    human-facing releases page is scraped instead.

    Args:
        repo: ``owner/name`` of the repository
        timeout: Per-request timeout in seconds

    Returns:
        The latest stable version

    Raises:
        VersionDiscoveryFailed: If neither path finds a stable release

    """
    version = _query_releases_api(repo, timeout)
    if version:
        logger.info('Latest %s release (API): %s', repo, version)
        return version

    logger.info('Falling back to scraping the %s releases page', repo)
    version = _scrape_releases(repo, timeout)
    if version:
        logger.info('Latest %s release (page): %s', repo, version)
        return version

    msg = f'could not detect latest stable version of {repo}'
    raise VersionDiscoveryFailed(msg)


def read_cargo_version(project_dir: Path) -> str:
    """Read ``[package].version`` from a Cargo manifest.

    Raises:
        VersionDiscoveryFailed: If the manifest has no package version

    """
    manifest = project_dir / 'Cargo.toml'
    try:
        data = tomllib.loads(manifest.read_text())
    except (OSError, tomllib.TOMLDecodeError) as e:
        msg = f'cannot read version from {manifest}: {e}'
        raise VersionDiscoveryFailed(msg) from e

    version = data.get('package', {}).get('version')
    if not isinstance(version, str):
        msg = f'no [package].version in {manifest}'
        raise VersionDiscoveryFailed(msg)
    return version
