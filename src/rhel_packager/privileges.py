"""Keep sudo credentials alive while a long build runs."""

import logging
import os
import subprocess
import threading
from types import TracebackType

from .config import SUDO_REFRESH_INTERVAL
from .errors import MissingRequiredTool, PackagingError

logger = logging.getLogger(__name__)


def is_root() -> bool:
    """Return True when running with an effective uid of 0."""
    return os.geteuid() == 0


class SudoKeepAlive:
    """Prompt for sudo once, then refresh the timestamp in the background.

    Use as a context manager; the refresh thread stops when the block exits,
    whether it finishes normally or raises.
    """

    def __init__(self, interval: float = SUDO_REFRESH_INTERVAL) -> None:
        """Initialize with the refresh interval in seconds."""
        self.interval = interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """Validate credentials and start the refresh thread."""
        logger.warning('Requesting sudo...')
        try:
            subprocess.run(['sudo', '-v'], check=True)
        except FileNotFoundError as e:
            raise MissingRequiredTool(['sudo']) from e
        except subprocess.CalledProcessError as e:
            msg = 'sudo authentication failed'
            raise PackagingError(msg) from e

        self._thread = threading.Thread(target=self._refresh, name='sudo-keepalive', daemon=True)
        self._thread.start()

    def _refresh(self) -> None:
        while not self._stop.wait(self.interval):
            result = subprocess.run(['sudo', '-n', 'true'], check=False, capture_output=True)
            if result.returncode != 0:
                logger.debug('sudo refresh failed, stopping keep-alive')
                return

    def stop(self) -> None:
        """Stop the refresh thread."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self.interval)
            self._thread = None

    def __enter__(self) -> 'SudoKeepAlive':
        """Start refreshing."""
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Stop refreshing."""
        self.stop()
