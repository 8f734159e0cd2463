"""Error taxonomy for jorup.

Every subsystem raises a subclass of :class:`JorupError`. Lower level
exceptions (``OSError``, ``requests`` errors, pydantic validation errors) are
chained with ``raise ... from exc`` so the CLI can print the full cause chain.
"""

from pathlib import Path


class JorupError(Exception):
    """Base class for all jorup errors."""


class VersionParseError(JorupError, ValueError):
    """Raised when a version or version requirement cannot be parsed."""

    def __init__(self, text: str, component: str, reason: str = "") -> None:
        self.text = text
        self.component = component
        message = f"Cannot parse {component} of version '{text}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class NightlyConfigurationError(JorupError):
    """Raised when a nightly version is configured twice or with a bad anchor."""


# Resolution


class ResolutionError(JorupError):
    """A requirement could not be turned into a concrete release."""


class ReleaseNotInstalledError(ResolutionError):
    """No installed release satisfies the requirement."""

    def __init__(self, requirement: object) -> None:
        self.requirement = requirement
        super().__init__(f"No installed release matching {requirement}")


class ReleaseFetchError(ResolutionError):
    """Release data could not be fetched from the registry."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"Could not fetch release data from {url}")


class MalformedReleaseDataError(ResolutionError):
    """The registry answered with data that does not follow the release contract."""

    def __init__(self, url: str, reason: str = "") -> None:
        self.url = url
        message = f"Malformed release data from {url}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ReleaseNotFoundError(ResolutionError):
    """The registry has no release satisfying the requirement."""

    def __init__(self, requirement: object) -> None:
        self.requirement = requirement
        super().__init__(f"No release matching {requirement}")


class AssetNotFoundError(ResolutionError):
    """The release has no asset for the requested platform."""

    def __init__(self, version: object, target: str) -> None:
        self.version = version
        self.target = target
        super().__init__(f"No asset for version {version} and platform {target}")


# Installation


class InstallationError(JorupError):
    """A release could not be downloaded, unpacked or made default."""

    def __init__(self, message: str, path: Path) -> None:
        self.path = path
        super().__init__(message)


class DestinationFileError(InstallationError):
    def __init__(self, path: Path) -> None:
        super().__init__(f"Cannot create destination file for download: {path}", path)


class DownloadError(InstallationError):
    def __init__(self, asset: str, path: Path) -> None:
        self.asset = asset
        super().__init__(f"Failed to download '{asset}' into file {path}", path)


class ExtractionError(InstallationError):
    def __init__(self, path: Path) -> None:
        super().__init__(f"Cannot unpack asset: {path}", path)


class DefaultSwitchError(InstallationError):
    def __init__(self, path: Path) -> None:
        super().__init__(f"Could not set default binary: {path}", path)


# Supervision


class SupervisionError(JorupError):
    """The node process could not be started, found or controlled."""


class NodeAlreadyRunningError(SupervisionError):
    def __init__(self, pid: int) -> None:
        self.pid = pid
        super().__init__(f"Node already running. PID: {pid}")


class NoRunningNodeError(SupervisionError):
    def __init__(self) -> None:
        super().__init__("No running node")


class SessionFileError(SupervisionError):
    """The session file exists but cannot be read or parsed."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Cannot parse session file: {path}")


class SessionPersistError(SupervisionError):
    """The node started but its session file could not be written."""

    def __init__(self, path: Path, pid: int) -> None:
        self.path = path
        self.pid = pid
        super().__init__(
            f"Cannot write session file {path}; node with PID {pid} is not tracked "
            "and must be stopped manually"
        )


class SessionRemoveError(SupervisionError):
    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Cannot remove session file: {path}")


class LivenessCheckError(SupervisionError):
    def __init__(self, pid: int) -> None:
        self.pid = pid
        super().__init__(f"Cannot check if the node is running. PID: {pid}")


class SpawnError(SupervisionError):
    def __init__(self, binary: Path) -> None:
        self.binary = binary
        super().__init__(f"Cannot start {binary}")


class ChannelNotPreparedError(SupervisionError):
    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Channel is not prepared, missing {path}")


class NodeConfigError(SupervisionError):
    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Cannot resolve node configuration file: {path}")


class ControlChannelUnavailableError(SupervisionError):
    def __init__(self) -> None:
        super().__init__("REST is not running: no control port recorded for this node")


class ControlRequestError(SupervisionError):
    """The companion CLI could not perform a request against the running node."""

    def __init__(self, request: str, returncode: int | None = None) -> None:
        self.request = request
        self.returncode = returncode
        message = f"Request '{request}' to the running node failed"
        if returncode is not None:
            message = f"{message} (exit status {returncode})"
        super().__init__(message)


# Compatibility


class CompatibilityError(JorupError):
    """A binary does not satisfy the channel's version requirement."""

    def __init__(self, binary: Path, reported: object, requirement: object) -> None:
        self.binary = binary
        self.reported = reported
        self.requirement = requirement
        super().__init__(
            f"{binary} reports version {reported} which does not match {requirement}"
        )


class VersionQueryError(CompatibilityError):
    """The binary did not answer the version query with a parsable version."""

    def __init__(self, binary: Path, output: str = "") -> None:
        self.binary = binary
        self.reported = output
        self.requirement = None
        JorupError.__init__(self, f"Cannot get the version of {binary}: '{output.strip()}'")


# Channels


class UnknownChannelError(JorupError):
    def __init__(self, name: str, jorfile: Path) -> None:
        self.name = name
        self.jorfile = jorfile
        super().__init__(f"No channel named '{name}' in {jorfile}")


class JorfileError(JorupError):
    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Cannot read jorfile: {path}")
