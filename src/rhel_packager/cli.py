"""CLI interface for the RPM packager."""

import logging
import sys
from pathlib import Path
from typing import NoReturn

import click

from . import __version__
from .builder import RpmBuilder
from .config import DAEMON_NAME, DEFAULT_RELEASE, RPM_TOPDIR, SIGNAL_CLI_NAME, SIGNAL_CLI_REPO
from .errors import PackageBuildFailed, PackagingError, UnknownArgument
from .sources import DaemonSource, PackageSource, SignalCliSource
from .staging import StagingArea
from .versions import PackageRequest, discover_latest_version, validate_version

ENVVAR_PREFIX = 'RPMPACK'

CONTEXT_SETTINGS = {'help_option_names': ['-h', '--help']}


def fail(error: Exception) -> NoReturn:
    """Print a one-line error and exit with status 1."""
    if isinstance(error, PackageBuildFailed) and error.output:
        click.echo(error.output.rstrip(), err=True)
    click.echo(f'ERROR: {error!s}', err=True)
    sys.exit(1)


def run_build(source: PackageSource, version: str | None, release: str, topdir: Path, arch: str | None) -> None:
    """Build a package and report the produced RPMs."""
    builder = RpmBuilder(source, topdir=topdir, arch=arch)

    try:
        packages = builder.build(version, release)
    except (PackagingError, OSError) as e:
        fail(e)

    click.echo('[OK] RPM build finished.')
    for package in packages:
        click.echo(f'  {package}')
    if packages:
        click.echo('Install with:')
        click.echo(f'  sudo dnf install -y {packages[0]}')


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(version=__version__, prog_name='rhel-packager')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--debug', is_flag=True, help='Enable debug output')
def cli(*, verbose: bool, debug: bool) -> None:
    """Build RPM packages for signal-cli and a systemd daemon."""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format='%(levelname)s: %(message)s',
    )


@cli.command('signal-cli', context_settings=CONTEXT_SETTINGS)
@click.option('--version', 'version', help='signal-cli version (default: latest stable release)')
@click.option('--release', default=DEFAULT_RELEASE, show_default=True, help='RPM release number')
@click.option('--arch', help='Target architecture: x86_64 or aarch64 (default: host)')
@click.option('--topdir', type=click.Path(path_type=Path), default=RPM_TOPDIR, help='rpmbuild top directory')
def signal_cli(version: str | None, release: str, arch: str | None, topdir: Path) -> None:
    """Package signal-cli with an architecture-matched libsignal native library."""
    run_build(SignalCliSource(), version, release, topdir, arch)


@cli.command(context_settings=CONTEXT_SETTINGS)
@click.option('--version', 'version', help='Daemon version (default: Cargo.toml package version)')
@click.option('--release', default=DEFAULT_RELEASE, show_default=True, help='RPM release number')
@click.option(
    '--project-dir',
    type=click.Path(file_okay=False, path_type=Path),
    default=Path.cwd,
    help='Cargo project directory (default: current directory)',
)
@click.option('--name', default=DAEMON_NAME, show_default=True, help='Package, binary and service user name')
@click.option('--topdir', type=click.Path(path_type=Path), default=RPM_TOPDIR, help='rpmbuild top directory')
@click.option('--skip-deps', is_flag=True, help='Do not install build dependencies with dnf')
def daemon(  # noqa: PLR0913
    version: str | None,
    release: str,
    project_dir: Path,
    name: str,
    topdir: Path,
    *,
    skip_deps: bool,
) -> None:
    """Build a Rust daemon with cargo and package it with a systemd unit."""
    source = DaemonSource(project_dir.resolve(), name, install_deps=not skip_deps)
    run_build(source, version, release, topdir, None)


@cli.command('check-update', context_settings=CONTEXT_SETTINGS)
@click.option('--repo', default=SIGNAL_CLI_REPO, show_default=True, help='GitHub repository')
def check_update(repo: str) -> None:
    """Show the latest stable signal-cli release without building."""
    try:
        version = discover_latest_version(repo)
    except PackagingError as e:
        fail(e)

    click.echo(f'Latest version: {version}')


@cli.command(context_settings=CONTEXT_SETTINGS)
@click.option('--version', 'version', required=True, help='Version whose build directory to remove')
@click.option('--name', default=SIGNAL_CLI_NAME, show_default=True, help='Package name')
@click.option('--topdir', type=click.Path(path_type=Path), default=RPM_TOPDIR, help='rpmbuild top directory')
def clean(version: str, name: str, topdir: Path) -> None:
    """Remove the staged build directory of a package version."""
    try:
        # rpm pre-release versions use ~ where the upstream version has -
        validate_version(version.replace('~', '-'), allow_suffix=True)
        removed = StagingArea(topdir).remove_build_dir(PackageRequest(name=name, version=version))
    except (PackagingError, OSError) as e:
        fail(e)

    if removed:
        click.echo(f'Removed {removed}')
    click.echo('Cleanup complete')


def main(argv: list[str] | None = None) -> None:
    """Entry point for the CLI."""
    try:
        exit_code = cli.main(args=argv, auto_envvar_prefix=ENVVAR_PREFIX, standalone_mode=False)
    except click.NoSuchOption as e:
        fail(UnknownArgument(e.option_name))
    except click.ClickException as e:
        fail(e)
    except click.Abort:
        fail(PackagingError('aborted'))
    else:
        sys.exit(exit_code if isinstance(exit_code, int) else 0)


if __name__ == '__main__':
    main()
