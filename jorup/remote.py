"""Remote release resolver backed by the GitHub releases API."""

import functools
import json
import logging
from pathlib import Path
from typing import Any

import jsonschema
import requests
from pydantic import ValidationError

from . import __version__
from .config import DEFAULT_API_URL, DEFAULT_REPOSITORY, JorupConfig
from .errors import (
    MalformedReleaseDataError,
    ReleaseFetchError,
    ReleaseNotFoundError,
    VersionParseError,
)
from .models.release import RemoteRelease
from .version import (
    NIGHTLY,
    ExactStable,
    Latest,
    Nightly,
    NightlyRequirement,
    Stable,
    StableRange,
    VersionRequirement,
    from_registry_tag,
    matches,
    sort_key,
    to_registry_tag,
)

_LOGGER = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).parent / "contracts" / "release_schema.json"
USER_AGENT = f"jorup/{__version__}"
PAGE_SIZE = 100


@functools.lru_cache(maxsize=1)
def _load_schema() -> dict:
    """Load the release JSON schema."""
    with open(SCHEMA_PATH) as f:
        return json.load(f)


class RemoteReleaseResolver:
    """Find the registry release satisfying a version requirement."""

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        repository: str = DEFAULT_REPOSITORY,
        session: requests.Session | None = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the resolver.

        Args:
            api_url: Base URL of the GitHub API
            repository: ``owner/name`` of the repository publishing releases
            session: Optional HTTP session, created lazily when omitted
            timeout: Timeout in seconds for each API request
        """
        self.api_url = api_url.rstrip("/")
        self.repository = repository
        self.timeout = timeout
        self._session = session

    @classmethod
    def from_config(cls, config: JorupConfig) -> "RemoteReleaseResolver":
        return cls(api_url=config.api_url, repository=config.repository)

    @property
    def session(self) -> requests.Session:
        """Lazy-load the HTTP session."""
        if self._session is None:
            self._session = requests.Session()
            self._session.headers["User-Agent"] = USER_AGENT
        return self._session

    def find_matching(self, requirement: VersionRequirement) -> RemoteRelease:
        """Return the release satisfying ``requirement``.

        Raises:
            ReleaseFetchError: The registry could not be reached.
            MalformedReleaseDataError: The registry answered with unexpected data.
            ReleaseNotFoundError: No release satisfies the requirement.
        """
        _LOGGER.debug("Looking up release matching %s", requirement)
        if isinstance(requirement, Latest):
            return self.latest()
        if isinstance(requirement, NightlyRequirement):
            return self.nightly()
        if isinstance(requirement, ExactStable):
            return self.by_version(requirement.version)
        if isinstance(requirement, StableRange):
            return self.best_in_range(requirement)
        raise TypeError(f"Unknown version requirement: {requirement!r}")

    def latest(self) -> RemoteRelease:
        url = self._url("releases/latest")
        payload = self._request_json(url, not_found=Latest())
        return self._build_release(url, payload)

    def nightly(self) -> RemoteRelease:
        """Fetch the nightly release and tie it to the latest stable version."""
        url = self._url(f"releases/tags/{NIGHTLY}")
        payload = self._request_json(url, not_found=NightlyRequirement())
        release = self._build_release(url, payload, version=Nightly())
        if release.published_at is None:
            raise MalformedReleaseDataError(url, "nightly release has no publish date")

        anchor = self.latest().version
        if not isinstance(anchor, Stable):
            raise MalformedReleaseDataError(
                self._url("releases/latest"), "latest release is not stable"
            )
        version = release.version.configure_nightly(anchor, release.published_at.date())
        release = release.model_copy(update={"version": version})
        _LOGGER.info("Nightly release resolved to %s", release.version)
        return release

    def by_version(self, version: Stable) -> RemoteRelease:
        tag = to_registry_tag(version)
        url = self._url(f"releases/tags/{tag}")
        payload = self._request_json(url, not_found=ExactStable(version))
        release = self._build_release(url, payload)
        if release.version != version:
            raise MalformedReleaseDataError(url, f"expected tag {tag}, got {release.tag}")
        return release

    def best_in_range(self, requirement: StableRange) -> RemoteRelease:
        """Return the highest listed release within ``requirement``."""
        url = self._url("releases")
        candidates: list[RemoteRelease] = []
        for entry in self._list_releases():
            try:
                version = from_registry_tag(entry["tag_name"])
            except VersionParseError:
                _LOGGER.debug("Skipping release with unparsable tag %s", entry["tag_name"])
                continue
            if matches(requirement, version):
                candidates.append(self._build_release(url, entry, version=version))

        if not candidates:
            raise ReleaseNotFoundError(requirement)
        return max(candidates, key=lambda release: sort_key(release.version))

    def _url(self, path: str) -> str:
        return f"{self.api_url}/repos/{self.repository}/{path}"

    def _list_releases(self) -> list[dict]:
        """Fetch every page of the release listing, following the ``next`` links."""
        url = self._url("releases")
        params: dict | None = {"per_page": PAGE_SIZE}
        releases: list[dict] = []
        while url:
            response = self._get(url, params=params)
            payload = self._decode(url, response)
            if not isinstance(payload, list):
                raise MalformedReleaseDataError(url, "expected a list of releases")
            releases.extend(payload)
            # The next link already carries the query string
            url = response.links.get("next", {}).get("url")
            params = None
        return releases

    def _request_json(self, url: str, not_found: VersionRequirement | None = None) -> Any:
        return self._decode(url, self._get(url, not_found=not_found))

    def _get(
        self,
        url: str,
        params: dict | None = None,
        not_found: VersionRequirement | None = None,
    ) -> requests.Response:
        try:
            response = self.session.get(
                url,
                params=params,
                timeout=self.timeout,
                headers={"Accept": "application/vnd.github+json"},
            )
        except requests.RequestException as exc:
            raise ReleaseFetchError(url) from exc

        if response.status_code == 404 and not_found is not None:
            raise ReleaseNotFoundError(not_found)
        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise ReleaseFetchError(url) from exc
        return response

    def _decode(self, url: str, response: requests.Response) -> Any:
        try:
            payload = response.json()
        except ValueError as exc:
            raise MalformedReleaseDataError(url, "response is not JSON") from exc

        try:
            jsonschema.validate(instance=payload, schema=_load_schema())
        except jsonschema.ValidationError as exc:
            raise MalformedReleaseDataError(url, exc.message) from exc
        return payload

    def _build_release(
        self, url: str, payload: dict, version: Stable | Nightly | None = None
    ) -> RemoteRelease:
        tag = payload["tag_name"]
        if version is None:
            try:
                version = from_registry_tag(tag)
            except VersionParseError as exc:
                raise MalformedReleaseDataError(url, f"invalid tag {tag}") from exc
        try:
            return RemoteRelease(
                version=version,
                tag=tag,
                published_at=payload.get("published_at"),
                assets=payload["assets"],
            )
        except ValidationError as exc:
            raise MalformedReleaseDataError(url, str(exc)) from exc
