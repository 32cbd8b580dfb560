"""Unified RPM builder."""

import logging
import platform
from contextlib import ExitStack
from pathlib import Path

from .config import DEFAULT_RELEASE, RPM_TOPDIR
from .privileges import SudoKeepAlive, is_root
from .rpm import build_package, require_commands, write_spec
from .sources import PackageSource
from .staging import StagingArea, scratch_dir
from .versions import PackageRequest, validate_release


class RpmBuilder:
    """Runs one package source through staging, spec generation and rpmbuild."""

    def __init__(
        self,
        source: PackageSource,
        *,
        topdir: Path = RPM_TOPDIR,
        arch: str | None = None,
    ) -> None:
        """Initialize the builder.

        Args:
            source: The package flow to run
            topdir: Root of the rpmbuild tree
            arch: Target architecture, the host's by default

        """
        self.source = source
        self.staging = StagingArea(topdir)
        self.arch = arch or platform.machine()
        self.logger = logging.getLogger(__name__)

    def resolve(self, version: str | None, release: str = DEFAULT_RELEASE) -> PackageRequest:
        """Turn command line input into a validated package request."""
        request = PackageRequest(
            name=self.source.name,
            version=self.source.resolve_version(version),
            release=validate_release(release),
            arch=self.arch,
        )
        self.source.check_request(request)
        return request

    def check_dependencies(self) -> None:
        """Install build dependencies if the source wants them, then check tools."""
        self.source.install_dependencies()
        require_commands(self.source.required_commands, path=self.source.command_path())

    def build(self, version: str | None = None, release: str = DEFAULT_RELEASE) -> list[Path]:
        """Run the complete build.

        Args:
            version: Version to package, discovered when None
            release: RPM release number

        Returns:
            Paths of the built RPMs

        """
        request = self.resolve(version, release)
        self.logger.info('Package: %s  Version: %s  Release: %s', request.name, request.version, request.release)

        with ExitStack() as stack:
            if self.source.needs_sudo and not is_root():
                stack.enter_context(SudoKeepAlive())

            self.check_dependencies()
            return self.package(request)

    def package(self, request: PackageRequest) -> list[Path]:
        """Stage, render the spec and run rpmbuild for a resolved request."""
        self.staging.prepare()
        build_dir = self.staging.fresh_build_dir(request)

        with scratch_dir() as work_dir:
            self.source.stage(request, build_dir, work_dir)

        self.staging.make_source_tarball(request)

        manifest = self.source.manifest(request, build_dir)
        spec_path = write_spec(manifest, self.staging.spec_path(request))

        build_package(self.staging, spec_path, request.arch)

        packages = self.staging.built_packages(request)
        self.logger.info('RPM build finished: %s', ', '.join(str(p) for p in packages) or 'no RPMs found')
        return packages
