"""Turn a version requirement into an installed release.

Resolution order:
1. Local release store (skipped for ``latest``)
2. Remote registry, unless running offline
3. Archive download and extraction when the binaries are missing
"""

import logging

from .audit import AuditLogger
from .config import JorupConfig
from .download import Downloader, ProgressSink, download_file
from .errors import ReleaseNotInstalledError
from .installer import ensure_installed
from .release import ResolvedRelease
from .remote import RemoteReleaseResolver
from .store import ReleaseStore
from .version import Latest, VersionRequirement

_LOGGER = logging.getLogger(__name__)


def resolve_release(
    config: JorupConfig,
    requirement: VersionRequirement,
    store: ReleaseStore,
    resolver: RemoteReleaseResolver,
) -> ResolvedRelease:
    """Resolve ``requirement`` from the local store, then from the registry.

    Raises:
        ReleaseNotInstalledError: Offline and nothing installed matches.
        ResolutionError: Any error of the remote resolver.
    """
    if not isinstance(requirement, Latest):
        try:
            return store.load(requirement)
        except ReleaseNotInstalledError:
            if config.offline:
                raise
            _LOGGER.info("No installed release matches %s, querying the registry", requirement)
    elif config.offline:
        raise ReleaseNotInstalledError(requirement)

    remote = resolver.find_matching(requirement)
    return ResolvedRelease.at(config, remote.version, remote)


def install_release(
    config: JorupConfig,
    requirement: VersionRequirement,
    store: ReleaseStore,
    resolver: RemoteReleaseResolver,
    progress: ProgressSink | None = None,
    make_default: bool = False,
    downloader: Downloader = download_file,
    audit: AuditLogger | None = None,
) -> ResolvedRelease:
    """Resolve ``requirement`` and install the release if needed.

    Args:
        config: jorup configuration
        requirement: Requested version
        store: Local release store
        resolver: Remote release resolver
        progress: Optional download progress sink
        make_default: Also make the release the default binaries
        downloader: Callable performing the archive download
        audit: Optional audit logger

    Returns:
        The installed release
    """
    release = resolve_release(config, requirement, store, resolver)

    if release.needs_extraction:
        asset_url = release.asset_url(config.target)
        ensure_installed(release, asset_url, progress=progress, downloader=downloader)
        if audit:
            audit.log("INSTALL", version=str(release.version), path=release.directory)

    if make_default:
        store.make_default(release)
    return release
