"""Channel entries of the jorfile.

The jorfile itself is maintained upstream; these models only cover the
fields the runner needs to launch a node.
"""

from pydantic import BaseModel, ConfigDict, Field


class TrustedPeer(BaseModel):
    """A peer the node bootstraps from."""

    address: str
    id: str | None = None

    def as_argument(self) -> str:
        if self.id:
            return f"{self.address}@{self.id}"
        return self.address


class ChannelEntry(BaseModel):
    """A blockchain channel and the node versions able to run it."""

    model_config = ConfigDict(populate_by_name=True)
    name: str
    description: str = ""
    node_versions: str = Field(..., alias="jormungandr_versions")
    genesis_hash: str = Field(..., alias="block0_hash")
    trusted_peers: list[TrustedPeer] = Field(default_factory=list)


class Jorfile(BaseModel):
    """Root document listing every known channel."""

    entries: list[ChannelEntry] = Field(default_factory=list)

    def find(self, name: str) -> ChannelEntry | None:
        """Return the last entry named ``name``."""
        found = None
        for entry in self.entries:
            if entry.name == name:
                found = entry
        return found
