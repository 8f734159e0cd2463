"""Blocking HTTP downloads with progress reporting."""

import logging
from pathlib import Path
from typing import Protocol

import requests

from . import __version__
from .errors import DestinationFileError, DownloadError

_LOGGER = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
USER_AGENT = f"jorup/{__version__}"


class ProgressSink(Protocol):
    """Receives download progress: bytes written so far and the total if known."""

    def __call__(self, written: int, total: int | None) -> None: ...


class Downloader(Protocol):
    def __call__(
        self, what: str, url: str, destination: Path, progress: ProgressSink | None = None
    ) -> None: ...


def download_file(
    what: str,
    url: str,
    destination: Path,
    progress: ProgressSink | None = None,
    session: requests.Session | None = None,
    timeout: float = 60.0,
) -> None:
    """Stream ``url`` into ``destination``.

    Args:
        what: Human readable name of the download, used in errors
        url: Source URL
        destination: File to write; created or truncated
        progress: Optional sink called after every chunk
        session: Optional HTTP session
        timeout: Connect/read timeout in seconds

    Raises:
        DestinationFileError: If the destination cannot be created.
        DownloadError: On any transport or HTTP error. The partially written
            file is left in place.
    """
    try:
        target = open(destination, "wb")
    except OSError as exc:
        raise DestinationFileError(destination) from exc

    http = session if session is not None else requests.Session()
    _LOGGER.info("Downloading %s from %s", what, url)
    with target:
        try:
            with http.get(
                url, stream=True, timeout=timeout, headers={"User-Agent": USER_AGENT}
            ) as response:
                response.raise_for_status()
                total = _content_length(response)
                written = 0
                if progress is not None:
                    progress(written, total)
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if not chunk:
                        continue
                    target.write(chunk)
                    written += len(chunk)
                    if progress is not None:
                        progress(written, total)
        except (requests.RequestException, OSError) as exc:
            raise DownloadError(what, destination) from exc
    _LOGGER.debug("Downloaded %s bytes into %s", written, destination)


def _content_length(response: requests.Response) -> int | None:
    value = response.headers.get("Content-Length")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None
