"""Fetch and unpack release archives into the release directory."""

import logging
import os
import tarfile
import zipfile
from pathlib import Path

from .download import Downloader, ProgressSink, download_file
from .errors import DestinationFileError, ExtractionError
from .release import ResolvedRelease

_LOGGER = logging.getLogger(__name__)


def ensure_installed(
    release: ResolvedRelease,
    asset_url: str,
    progress: ProgressSink | None = None,
    downloader: Downloader = download_file,
) -> None:
    """Make sure ``release`` has its archive and both binaries on disk.

    An archive already present is reused without being verified, so an
    interrupted download is only detected when extraction fails.

    Args:
        release: Release to install
        asset_url: URL of the platform archive
        progress: Optional download progress sink
        downloader: Callable performing the download

    Raises:
        DestinationFileError: If the release directory cannot be created.
        DownloadError: If the archive cannot be downloaded.
        ExtractionError: If the archive cannot be opened or unpacked.
    """
    try:
        release.directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise DestinationFileError(release.directory) from exc

    if release.needs_fetch:
        downloader(release.archive_path.name, asset_url, release.archive_path, progress)
        _LOGGER.info("Archive for %s downloaded to %s", release.version, release.archive_path)
    else:
        _LOGGER.debug("Archive %s already present", release.archive_path)

    if release.needs_extraction:
        extract_archive(release.archive_path, release.directory)
    else:
        _LOGGER.debug("Binaries of %s already extracted", release.version)


def extract_archive(archive_path: Path, directory: Path) -> None:
    """Unpack a ``.tar.gz`` or ``.zip`` archive into ``directory``."""
    _LOGGER.info("Extracting %s", archive_path)
    if archive_path.suffix == ".zip":
        _extract_zip(archive_path, directory)
    else:
        _extract_tar(archive_path, directory)


def _extract_tar(archive_path: Path, directory: Path) -> None:
    try:
        with tarfile.open(archive_path, "r:gz") as archive:
            if hasattr(tarfile, "tar_filter"):
                # keeps permission bits, refuses members escaping the directory
                archive.extractall(directory, filter="tar")
            else:
                archive.extractall(directory)
    except (OSError, tarfile.TarError) as exc:
        raise ExtractionError(archive_path) from exc


def _extract_zip(archive_path: Path, directory: Path) -> None:
    try:
        with zipfile.ZipFile(archive_path) as archive:
            for member in archive.infolist():
                extracted = Path(archive.extract(member, directory))
                mode = (member.external_attr >> 16) & 0o777
                if mode and not member.is_dir():
                    os.chmod(extracted, mode)
                _LOGGER.debug("Extracted archive member %s to %s", member.filename, extracted)
    except (OSError, zipfile.BadZipFile) as exc:
        raise ExtractionError(archive_path) from exc
