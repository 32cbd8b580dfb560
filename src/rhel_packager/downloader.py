"""Download helper for release artifacts."""

import fnmatch
import logging
from dataclasses import dataclass
from pathlib import Path

import requests
from tqdm import tqdm

from .config import HTTP_TIMEOUT
from .errors import ArtifactNotFound, DownloadFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Artifact:
    """A remote file and where it lands locally.

    ``pattern`` is a glob the local file name must match, used to catch
    URL templates that were formatted with the wrong values.
    """

    url: str
    path: Path
    pattern: str = '*'

    def verify(self) -> Path:
        """Check the downloaded file is present and correctly named."""
        if not self.path.is_file():
            msg = f'artifact not found after download: {self.path}'
            raise ArtifactNotFound(msg)
        if not fnmatch.fnmatch(self.path.name, self.pattern):
            msg = f'artifact {self.path.name} does not match {self.pattern}'
            raise ArtifactNotFound(msg)
        return self.path


def download_file(url: str, dest_path: Path, *, timeout: int = HTTP_TIMEOUT) -> Path:
    """Download a file with a progress bar.

    Args:
        url: URL to download from
        dest_path: Destination path for the downloaded file
        timeout: Connect/read timeout in seconds

    Returns:
        Path to the downloaded file

    Raises:
        DownloadFailed: On any transport error or non-success status

    """
    logger.info('Downloading from: %s', url)
    dest_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with requests.get(url, stream=True, timeout=timeout) as response:
            response.raise_for_status()
            total_size = int(response.headers.get('Content-Length', 0))

            with (
                dest_path.open('wb') as f,
                tqdm(total=total_size, unit='B', unit_scale=True, desc=dest_path.name, disable=None) as pbar,
            ):
                for chunk in response.iter_content(chunk_size=8192):
                    f.write(chunk)
                    pbar.update(len(chunk))
    except requests.RequestException as e:
        dest_path.unlink(missing_ok=True)
        raise DownloadFailed(url, e) from e

    return dest_path


def fetch_artifacts(artifacts: list[Artifact]) -> list[Path]:
    """Download every artifact in order, aborting on the first failure."""
    paths = []
    for artifact in artifacts:
        download_file(artifact.url, artifact.path)
        paths.append(artifact.verify())
    return paths
