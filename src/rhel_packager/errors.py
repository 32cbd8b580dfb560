"""Errors raised while resolving, fetching, staging and packaging."""


class PackagingError(RuntimeError):
    """Base class for every failure that terminates a packaging run."""


class InvalidVersion(PackagingError):
    """A supplied or discovered version does not match the accepted pattern."""

    def __init__(self, version: str) -> None:
        """Initialize with the rejected version string."""
        super().__init__(f'invalid version format: {version!r}')
        self.version = version


class InvalidRelease(PackagingError):
    """The release identifier is not a positive integer."""

    def __init__(self, release: str) -> None:
        """Initialize with the rejected release string."""
        super().__init__(f'invalid release: {release!r} (expected a positive integer)')
        self.release = release


class UnknownArgument(PackagingError):
    """An unrecognised command line flag was given."""

    def __init__(self, argument: str) -> None:
        """Initialize with the offending flag."""
        super().__init__(f'unknown arg: {argument}')
        self.argument = argument


class MissingRequiredTool(PackagingError):
    """One or more required external commands are not on PATH."""

    def __init__(self, tools: list[str]) -> None:
        """Initialize with the missing command names."""
        super().__init__(f'missing command: {", ".join(tools)}')
        self.tools = tools


class VersionDiscoveryFailed(PackagingError):
    """No stable release could be found upstream."""


class DownloadFailed(PackagingError):
    """A transfer did not complete successfully."""

    def __init__(self, url: str, reason: object) -> None:
        """Initialize with the URL and the underlying transport error."""
        super().__init__(f'download failed: {url}: {reason}')
        self.url = url


class ArtifactNotFound(PackagingError):
    """An expected file is missing from a download or an extracted tree."""


class VersionParseFailed(PackagingError):
    """A file name does not follow the expected version grammar."""


class UnsupportedArchitecture(PackagingError):
    """The target architecture has no matching native build."""

    def __init__(self, arch: str, supported: list[str]) -> None:
        """Initialize with the rejected and the supported architectures."""
        super().__init__(f'unsupported architecture: {arch} (supported: {", ".join(supported)})')
        self.arch = arch


class InjectionVerificationFailed(PackagingError):
    """The rewritten Java archive does not contain the injected library."""


class DependencyInstallFailed(PackagingError):
    """Installing build dependencies or compiling the project failed."""


class PackageBuildFailed(PackagingError):
    """rpmbuild exited with a non-zero status."""

    def __init__(self, returncode: int, output: str) -> None:
        """Initialize with the exit status and the captured tool output."""
        super().__init__(f'rpmbuild failed with exit code {returncode}')
        self.returncode = returncode
        self.output = output
