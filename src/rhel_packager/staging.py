"""rpmbuild staging tree management."""

import logging
import shutil
import tarfile
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from .config import RPM_SUBDIRS, RPM_TOPDIR
from .errors import PackagingError
from .versions import PackageRequest

logger = logging.getLogger(__name__)


@contextmanager
def scratch_dir(prefix: str = 'rhel-packager-') -> Iterator[Path]:
    """Yield a temporary directory that is removed on every exit path."""
    with tempfile.TemporaryDirectory(prefix=prefix) as tmpdir:
        yield Path(tmpdir)


class StagingArea:
    """The rpmbuild tree (BUILD, SOURCES, SPECS, RPMS, ...) for one run."""

    def __init__(self, topdir: Path = RPM_TOPDIR) -> None:
        """Initialize the staging area.

        Args:
            topdir: Root of the rpmbuild tree, ``~/rpmbuild`` by default

        """
        self.topdir = topdir

    def prepare(self) -> None:
        """Create the rpmbuild directory layout."""
        for subdir in RPM_SUBDIRS:
            (self.topdir / subdir).mkdir(parents=True, exist_ok=True)

    def build_dir(self, request: PackageRequest) -> Path:
        """Return ``BUILD/<name>-<version>``."""
        return self.topdir / 'BUILD' / request.source_dir_name

    def fresh_build_dir(self, request: PackageRequest) -> Path:
        """Wipe and recreate the build directory of this version."""
        build_dir = self.build_dir(request)
        if build_dir.exists():
            logger.info('Removing stale build directory %s', build_dir)
            shutil.rmtree(build_dir)
        build_dir.mkdir(parents=True)
        return build_dir

    def remove_build_dir(self, request: PackageRequest) -> Path | None:
        """Delete the build directory of this version if it exists.

        Returns:
            The removed directory, or None if there was nothing to remove

        Raises:
            PackagingError: If the directory does not resolve to a direct child of ``BUILD/``

        """
        build_root = (self.topdir / 'BUILD').resolve()
        build_dir = self.build_dir(request).resolve()
        if build_dir.parent != build_root:
            msg = f'refusing to remove {build_dir}: not a build directory under {build_root}'
            raise PackagingError(msg)

        if not build_dir.exists():
            return None
        shutil.rmtree(build_dir)
        return build_dir

    def spec_path(self, request: PackageRequest) -> Path:
        """Return ``SPECS/<name>.spec``."""
        return self.topdir / 'SPECS' / f'{request.name}.spec'

    def make_source_tarball(self, request: PackageRequest) -> Path:
        """Pack the build directory into ``SOURCES/<name>-<version>.tar.gz``."""
        tarball = self.topdir / 'SOURCES' / request.tarball_name
        logger.info('Creating source tarball: %s', tarball)
        with tarfile.open(tarball, 'w:gz') as tar:
            tar.add(self.build_dir(request), arcname=request.source_dir_name)
        return tarball

    def built_packages(self, request: PackageRequest) -> list[Path]:
        """List RPMs produced for this name-version-release."""
        return sorted(self.topdir.joinpath('RPMS').rglob(f'{request.nvr}*.rpm'))
