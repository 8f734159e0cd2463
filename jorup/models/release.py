"""Release data advertised by the remote registry."""

import logging
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ..errors import AssetNotFoundError
from ..version import Nightly, Stable, to_registry_tag

_LOGGER = logging.getLogger(__name__)

ASSET_PREFIX = "jormungandr"


class ReleaseAsset(BaseModel):
    """One downloadable artifact of a release."""

    name: str
    url: str = Field(..., alias="browser_download_url")

    model_config = ConfigDict(populate_by_name=True)


class RemoteRelease(BaseModel):
    """A release found on the registry, resolved to a concrete version."""

    version: Stable | Nightly
    tag: str
    published_at: datetime | None = None
    assets: list[ReleaseAsset] = Field(default_factory=list)

    def asset_name(self, target: str) -> str:
        """Name of the archive for ``target`` under the release naming contract.

        Stable archives carry the release tag (``v1.2.3``), nightlies carry the
        configured nightly version (``1.2.4-nightly.20200301``).
        """
        extension = "zip" if "windows" in target else "tar.gz"
        if isinstance(self.version, Stable):
            label = to_registry_tag(self.version)
        else:
            label = str(self.version)
        return f"{ASSET_PREFIX}-{label}-{target}-generic.{extension}"

    def asset_url(self, target: str) -> str:
        """Return the download URL of the archive built for ``target``.

        Raises:
            AssetNotFoundError: If no advertised asset targets the platform.
        """
        expected = self.asset_name(target)
        for asset in self.assets:
            if asset.name == expected:
                return asset.url

        # Older releases used other prefixes around the platform part.
        marker = f"{target}-generic"
        for asset in self.assets:
            if marker in asset.name:
                _LOGGER.warning(
                    "Release %s has no asset named %s, using %s",
                    self.tag,
                    expected,
                    asset.name,
                )
                return asset.url
        raise AssetNotFoundError(self.version, target)
