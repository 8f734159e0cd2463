"""Channel working directories."""

import json
from pathlib import Path

from pydantic import ValidationError

from .config import JorupConfig
from .errors import JorfileError, UnknownChannelError
from .models.channel import ChannelEntry, Jorfile
from .version import VersionRequirement, parse_requirement


def load_jorfile(path: Path) -> Jorfile:
    """Load the jorfile. Returns an empty jorfile if the file is missing."""
    if not path.exists():
        return Jorfile()
    try:
        with open(path) as f:
            data = json.load(f)
        if isinstance(data, list):
            data = {"entries": data}
        return Jorfile.model_validate(data)
    except (OSError, ValueError, ValidationError) as exc:
        raise JorfileError(path) from exc


class Channel:
    """A channel entry and the directory its node runs in.

    Layout of ``channel/<name>/``:
        NODE.logs            node stderr when running detached
        running_config.json  session descriptor of the running node
        genesis.block.hash   genesis block hash passed to the node
        node-storage/        node storage
        node-secret.yaml     optional node secret
    """

    def __init__(self, entry: ChannelEntry, directory: Path) -> None:
        self.entry = entry
        self.directory = directory

    @classmethod
    def load(cls, config: JorupConfig, name: str) -> "Channel":
        """Load channel ``name`` from the configured jorfile and create its directory."""
        jorfile = load_jorfile(config.jorfile_path)
        entry = jorfile.find(name)
        if entry is None:
            raise UnknownChannelError(name, config.jorfile_path)
        directory = config.channel_dir / entry.name
        directory.mkdir(parents=True, exist_ok=True)
        return cls(entry, directory)

    @property
    def name(self) -> str:
        return self.entry.name

    @property
    def requirement(self) -> VersionRequirement:
        return parse_requirement(self.entry.node_versions)

    @property
    def log_file(self) -> Path:
        return self.directory / "NODE.logs"

    @property
    def session_file(self) -> Path:
        return self.directory / "running_config.json"

    @property
    def genesis_hash_file(self) -> Path:
        return self.directory / "genesis.block.hash"

    @property
    def storage_dir(self) -> Path:
        return self.directory / "node-storage"

    @property
    def secret_file(self) -> Path:
        return self.directory / "node-secret.yaml"

    def prepare(self) -> None:
        """Write the genesis hash file unless it already exists."""
        if not self.genesis_hash_file.is_file():
            self.genesis_hash_file.write_text(self.entry.genesis_hash)
