"""A resolved release: a concrete version and where its files live."""

from dataclasses import dataclass
from pathlib import Path

from .config import JorupConfig
from .errors import AssetNotFoundError, NightlyConfigurationError
from .models.release import RemoteRelease
from .version import Nightly, Version


@dataclass(frozen=True)
class BinaryPaths:
    """The node binary and its companion CLI."""

    node: Path
    companion: Path

    @classmethod
    def in_directory(cls, directory: Path, config: JorupConfig) -> "BinaryPaths":
        return cls(
            node=directory / config.node_binary_name,
            companion=directory / config.companion_binary_name,
        )

    def exist(self) -> bool:
        return self.node.is_file() and self.companion.is_file()


@dataclass
class ResolvedRelease:
    """A concrete release and its files under ``releases/<version>/``.

    Built either from the local store, where the binaries already exist, or
    from a remote lookup, where the paths are targets for the installer.
    """

    version: Version
    directory: Path
    binaries: BinaryPaths
    archive_path: Path
    remote: RemoteRelease | None = None

    @classmethod
    def at(
        cls, config: JorupConfig, version: Version, remote: RemoteRelease | None = None
    ) -> "ResolvedRelease":
        if isinstance(version, Nightly) and not version.configured:
            raise NightlyConfigurationError("An unconfigured nightly has no release directory")
        directory = config.release_dir / str(version)
        return cls(
            version=version,
            directory=directory,
            binaries=BinaryPaths.in_directory(directory, config),
            archive_path=directory / config.archive_name,
            remote=remote,
        )

    @property
    def node_binary(self) -> Path:
        return self.binaries.node

    @property
    def companion_binary(self) -> Path:
        return self.binaries.companion

    @property
    def needs_fetch(self) -> bool:
        return not self.archive_path.is_file()

    @property
    def needs_extraction(self) -> bool:
        return not self.binaries.exist()

    def asset_url(self, target: str) -> str:
        """Download URL of this release's archive for ``target``."""
        if self.remote is None:
            raise AssetNotFoundError(self.version, target)
        return self.remote.asset_url(target)
