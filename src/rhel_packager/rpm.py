"""Spec file emission and rpmbuild invocation."""

import logging
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from .config import PACKAGER
from .errors import MissingRequiredTool, PackageBuildFailed
from .staging import StagingArea
from .templates import render_spec
from .versions import PackageRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackageManifest:
    """Everything rendered into a spec file."""

    request: PackageRequest
    summary: str
    license: str
    url: str
    description: str
    install: str
    files: list[str]
    requires: list[str] = field(default_factory=list)
    hooks: dict[str, str] = field(default_factory=dict)
    packager: str = PACKAGER

    def render(self) -> str:
        """Render the spec file text."""
        return render_spec(
            name=self.request.name,
            version=self.request.version,
            release=self.request.release,
            arch=self.request.arch,
            summary=self.summary,
            license=self.license,
            url=self.url,
            description=self.description,
            install=self.install,
            files=self.files,
            requires=self.requires,
            hooks=self.hooks,
            packager=self.packager,
        )


def require_commands(commands: list[str], path: str | None = None) -> None:
    """Fail early if any command is missing from PATH (or ``path``)."""
    missing = [cmd for cmd in commands if not shutil.which(cmd, path=path)]
    if missing:
        raise MissingRequiredTool(missing)


def write_spec(manifest: PackageManifest, spec_path: Path) -> Path:
    """Render the manifest to ``spec_path``."""
    logger.info('Generating spec: %s', spec_path)
    spec_path.parent.mkdir(parents=True, exist_ok=True)
    spec_path.write_text(manifest.render())
    return spec_path


def build_package(staging: StagingArea, spec_path: Path, arch: str) -> subprocess.CompletedProcess[str]:
    """Run ``rpmbuild -ba`` once against the staged tree.

    ``--target`` is set to ``arch``, the spec's ``BuildArch``.

    Raises:
        PackageBuildFailed: If rpmbuild exits non-zero

    """
    cmd = ['rpmbuild', '--define', f'_topdir {staging.topdir}', '--target', arch, '-ba', str(spec_path)]
    logger.info('Running %s', ' '.join(cmd))

    result = subprocess.run(cmd, check=False, capture_output=True, text=True)
    logger.debug('rpmbuild stdout:\n%s', result.stdout)

    if result.returncode != 0:
        raise PackageBuildFailed(result.returncode, result.stdout + result.stderr)

    return result
