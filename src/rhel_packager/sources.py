"""Package sources: where the binaries come from and how they are staged."""

import logging
import os
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path

from .bundle import normalize_bundle
from .config import (
    DAEMON_DESCRIPTION,
    DAEMON_LICENSE,
    DAEMON_NAME,
    DAEMON_SUMMARY,
    DAEMON_URL,
    DNF_PACKAGES,
    DOC_CANDIDATES,
    LICENSE_CANDIDATES,
    SIGNAL_CLI_INSTALL_PREFIX,
    SIGNAL_CLI_JAVA_PACKAGE,
    SIGNAL_CLI_NAME,
    SIGNAL_CLI_RELEASE_URL,
    SIGNAL_CLI_REPO,
    cargo_home,
)
from .downloader import Artifact, download_file, fetch_artifacts
from .errors import ArtifactNotFound, DependencyInstallFailed, MissingRequiredTool
from .injector import find_companion_jar, inject_native_library, target_triple
from .rpm import PackageManifest
from .staging import scratch_dir
from .templates import (
    DAEMON_INSTALL,
    DAEMON_POST,
    DAEMON_POSTUN,
    DAEMON_PRE,
    DAEMON_PREUN,
    SIGNAL_CLI_INSTALL,
    render_service_unit,
    write_service_unit,
)
from .versions import PackageRequest, discover_latest_version, read_cargo_version, validate_version

RUSTUP_URL = 'https://sh.rustup.rs'


class PackageSource(ABC):
    """Abstract base class for a package flow."""

    def __init__(self) -> None:
        """Initialize the source."""
        self.logger = logging.getLogger(__name__)

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the RPM package name."""

    @property
    @abstractmethod
    def required_commands(self) -> list[str]:
        """Return external commands needed to build this package."""

    @property
    def allow_version_suffix(self) -> bool:
        """Whether versions may carry a pre-release/build suffix."""
        return False

    @property
    def needs_sudo(self) -> bool:
        """Whether this run calls sudo."""
        return False

    @abstractmethod
    def discover_version(self) -> str:
        """Find the version to package when none was given."""

    @abstractmethod
    def stage(self, request: PackageRequest, build_dir: Path, work_dir: Path) -> None:
        """Populate the build directory with everything the RPM installs.

        Args:
            request: What is being packaged
            build_dir: ``BUILD/<name>-<version>``, freshly emptied
            work_dir: Scratch space removed after staging

        """

    @abstractmethod
    def manifest(self, request: PackageRequest, build_dir: Path) -> PackageManifest:
        """Describe the spec file for a staged build directory."""

    def resolve_version(self, version: str | None) -> str:
        """Validate the given version, discovering one if absent."""
        if not version:
            version = self.discover_version()
        return validate_version(version, allow_suffix=self.allow_version_suffix)

    def check_request(self, request: PackageRequest) -> None:
        """Reject requests this source cannot build before any work starts.

        Override in subclasses with architecture or layout constraints.
        """
        _ = request

    def install_dependencies(self) -> None:
        """Install build dependencies.

        Override in subclasses that need system packages.
        """

    def command_path(self) -> str | None:
        """Return the PATH used to look up and run external commands."""
        return None


class SignalCliSource(PackageSource):
    """signal-cli JVM distribution with an architecture-matched libsignal."""

    def __init__(self, repo: str = SIGNAL_CLI_REPO) -> None:
        """Initialize with the upstream GitHub repository."""
        super().__init__()
        self.repo = repo

    @property
    def name(self) -> str:
        """Return package name."""
        return SIGNAL_CLI_NAME

    @property
    def required_commands(self) -> list[str]:
        """Return required system commands."""
        return ['rpmbuild']

    def discover_version(self) -> str:
        """Ask GitHub for the newest stable signal-cli release."""
        return discover_latest_version(self.repo)

    def check_request(self, request: PackageRequest) -> None:
        """Fail on architectures without a native libsignal build."""
        target_triple(request.arch)

    def install_dir(self, request: PackageRequest) -> str:
        """Return the installation directory under /opt."""
        return f'{SIGNAL_CLI_INSTALL_PREFIX}/{request.source_dir_name}'

    def artifacts(self, request: PackageRequest, download_dir: Path) -> list[Artifact]:
        """Return the release downloads for a version."""
        url = SIGNAL_CLI_RELEASE_URL.format(version=request.version)
        return [
            Artifact(
                url=url,
                path=download_dir / f'{request.source_dir_name}.tar.gz',
                pattern=f'{SIGNAL_CLI_NAME}-*.tar.gz',
            ),
        ]

    def stage(self, request: PackageRequest, build_dir: Path, work_dir: Path) -> None:
        """Download, flatten and patch the signal-cli distribution."""
        (archive,) = fetch_artifacts(self.artifacts(request, work_dir / 'downloads'))

        bundle = normalize_bundle(
            archive,
            build_dir,
            launcher_name=SIGNAL_CLI_NAME,
            expected_root=request.source_dir_name,
            root_pattern=f'{SIGNAL_CLI_NAME}*',
        )

        jar = find_companion_jar(bundle.launcher.parent.parent / 'lib')
        inject_native_library(jar, request.arch, work_dir / 'native')

    def manifest(self, request: PackageRequest, build_dir: Path) -> PackageManifest:
        """Describe the signal-cli spec file."""
        _ = build_dir
        install_dir = self.install_dir(request)
        return PackageManifest(
            request=request,
            summary='Signal CLI with bundled libsignal-client',
            license='GPL-3.0',
            url=f'https://github.com/{self.repo}',
            description=(
                'signal-cli packaged with a matching libsignal-client native library.\n\n'
                'This RPM is self-contained and does not rely on a system libsignal-client.'
            ),
            install=SIGNAL_CLI_INSTALL.substitute(install_dir=install_dir, launcher=SIGNAL_CLI_NAME),
            files=[install_dir, f'%{{_bindir}}/{SIGNAL_CLI_NAME}'],
            requires=[SIGNAL_CLI_JAVA_PACKAGE],
        )


class DaemonSource(PackageSource):
    """A Rust daemon built from a local Cargo project, run by systemd."""

    def __init__(
        self,
        project_dir: Path,
        name: str = DAEMON_NAME,
        *,
        install_deps: bool = True,
    ) -> None:
        """Initialize the daemon source.

        Args:
            project_dir: Directory containing Cargo.toml
            name: Package, binary, service user and group name
            install_deps: Install build dependencies with dnf (needs sudo)

        """
        super().__init__()
        self.project_dir = project_dir
        self.package_name = name
        self.install_deps = install_deps

    @property
    def name(self) -> str:
        """Return package name."""
        return self.package_name

    @property
    def required_commands(self) -> list[str]:
        """Return required system commands."""
        return ['cargo', 'rustc', 'rpmbuild']

    @property
    def allow_version_suffix(self) -> bool:
        """Daemon versions may be pre-releases."""
        return True

    @property
    def needs_sudo(self) -> bool:
        """Return True when dnf will be invoked."""
        return self.install_deps

    @property
    def state_dir(self) -> str:
        """Return the daemon state directory."""
        return f'/var/lib/{self.package_name}'

    @property
    def run_dir(self) -> str:
        """Return the daemon runtime directory."""
        return f'/run/{self.package_name}'

    @property
    def log_dir(self) -> str:
        """Return the daemon log directory."""
        return f'/var/log/{self.package_name}'

    @property
    def binary_path(self) -> Path:
        """Return the cargo release binary."""
        return self.project_dir / 'target' / 'release' / self.package_name

    def discover_version(self) -> str:
        """Read the version from Cargo.toml."""
        return read_cargo_version(self.project_dir)

    def resolve_version(self, version: str | None) -> str:
        """Validate the version and turn a ``-rc1`` suffix into rpm's ``~rc1``."""
        return super().resolve_version(version).replace('-', '~')

    def check_request(self, request: PackageRequest) -> None:
        """Require a Cargo project."""
        _ = request
        if not (self.project_dir / 'Cargo.toml').is_file():
            msg = f'Cargo.toml not found in {self.project_dir}'
            raise ArtifactNotFound(msg)

    def command_path(self) -> str:
        """Return PATH with the cargo toolchain directory first."""
        return os.pathsep.join([str(cargo_home() / 'bin'), os.environ.get('PATH', os.defpath)])

    def _run(self, cmd: list[str], cwd: Path | None = None) -> None:
        env = {**os.environ, 'PATH': self.command_path()}
        try:
            subprocess.run(cmd, check=True, cwd=cwd, env=env)
        except subprocess.CalledProcessError as e:
            msg = f'{" ".join(cmd)} failed with exit code {e.returncode}'
            raise DependencyInstallFailed(msg) from e
        except FileNotFoundError as e:
            raise MissingRequiredTool([cmd[0]]) from e

    def install_dependencies(self) -> None:
        """Install build packages with dnf and Rust with rustup if missing."""
        if not self.install_deps:
            return

        self.logger.info('Installing build dependencies via dnf...')
        self._run(['sudo', 'dnf', '-y', 'makecache'])
        self._run(['sudo', 'dnf', '-y', 'install', *DNF_PACKAGES])

        if not shutil.which('cargo', path=self.command_path()):
            self._install_rustup()

    def _install_rustup(self) -> None:
        self.logger.info('Installing Rust (rustup) for current user...')
        with scratch_dir() as tmp:
            installer = download_file(RUSTUP_URL, tmp / 'rustup-init.sh')
            self._run(['sh', str(installer), '-y', '--profile', 'minimal'])

    def stage(self, request: PackageRequest, build_dir: Path, work_dir: Path) -> None:
        """Build the release binary and stage it with its unit and docs."""
        _ = work_dir
        self.logger.info('Building %s (release)...', self.package_name)
        self._run(['cargo', 'build', '--release'], cwd=self.project_dir)

        if not self.binary_path.is_file():
            msg = f'build succeeded but binary not found: {self.binary_path}'
            raise ArtifactNotFound(msg)

        binary = build_dir / self.package_name
        shutil.copy2(self.binary_path, binary)
        binary.chmod(0o755)

        unit = render_service_unit(
            name=self.package_name,
            description=f'{self.package_name} daemon',
            user=self.package_name,
            group=self.package_name,
            state_dir=self.state_dir,
            run_dir=self.run_dir,
            log_dir=self.log_dir,
        )
        write_service_unit(build_dir, self.package_name, unit)

        for filename in (*LICENSE_CANDIDATES, *DOC_CANDIDATES):
            src = self.project_dir / filename
            if src.is_file():
                shutil.copy2(src, build_dir / filename)

        self.logger.info('Staged %s %s in %s', self.package_name, request.version, build_dir)

    def manifest(self, request: PackageRequest, build_dir: Path) -> PackageManifest:
        """Describe the daemon spec file with its lifecycle scriptlets."""
        dirs = {
            'name': self.package_name,
            'user': self.package_name,
            'group': self.package_name,
            'state_dir': self.state_dir,
            'run_dir': self.run_dir,
            'log_dir': self.log_dir,
        }

        files = []
        licenses = [f for f in LICENSE_CANDIDATES if (build_dir / f).is_file()]
        if licenses:
            files.append(f'%license {" ".join(licenses)}')
        docs = [f for f in DOC_CANDIDATES if (build_dir / f).is_file()]
        if docs:
            files.append(f'%doc {" ".join(docs)}')
        files += [
            '%{_bindir}/%{name}',
            '%{_unitdir}/%{name}.service',
            f'%dir {self.state_dir}',
            f'%dir {self.log_dir}',
            f'%dir {self.run_dir}',
        ]

        return PackageManifest(
            request=request,
            summary=DAEMON_SUMMARY,
            license=DAEMON_LICENSE,
            url=DAEMON_URL.format(name=self.package_name),
            description=DAEMON_DESCRIPTION,
            install=DAEMON_INSTALL.substitute(dirs),
            files=files,
            requires=['systemd', 'shadow-utils'],
            hooks={
                'pre': DAEMON_PRE.substitute(dirs),
                'post': DAEMON_POST.substitute(dirs),
                'preun': DAEMON_PREUN,
                'postun': DAEMON_POSTUN,
            },
        )

