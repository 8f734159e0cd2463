"""Process-wide configuration: the jorup home directory and registry settings.

The configuration is a value passed explicitly to every component so tests
can point everything at an isolated temporary root.
"""

import os
import platform
import sys
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

HOME_ENV_VAR = "JORUP_HOME"
DEFAULT_API_URL = "https://api.github.com"
DEFAULT_REPOSITORY = "input-output-hk/jormungandr"
NODE_BINARY = "jormungandr"
COMPANION_BINARY = "jcli"

_ARCH_ALIASES = {"amd64": "x86_64", "x64": "x86_64", "arm64": "aarch64"}


def detect_target() -> str:
    """Return the target triple of the host, e.g. ``x86_64-unknown-linux-gnu``."""
    machine = platform.machine().lower()
    arch = _ARCH_ALIASES.get(machine, machine) or "x86_64"
    if sys.platform.startswith("linux"):
        return f"{arch}-unknown-linux-gnu"
    if sys.platform == "darwin":
        return f"{arch}-apple-darwin"
    if sys.platform in ("win32", "cygwin"):
        return f"{arch}-pc-windows-msvc"
    return f"{arch}-unknown-{sys.platform}"


def default_home() -> Path:
    env_home = os.environ.get(HOME_ENV_VAR)
    if env_home:
        return Path(env_home)
    return Path.home() / ".jorup"


class JorupConfig(BaseModel):
    """Directory layout and registry settings for one jorup invocation."""

    model_config = ConfigDict(frozen=True)

    home: Path = Field(default_factory=default_home)
    jorfile: Path | None = None
    offline: bool = False
    target: str = Field(default_factory=detect_target)
    api_url: str = DEFAULT_API_URL
    repository: str = DEFAULT_REPOSITORY

    @property
    def windows(self) -> bool:
        return "windows" in self.target

    @property
    def bin_dir(self) -> Path:
        return self.home / "bin"

    @property
    def release_dir(self) -> Path:
        return self.home / "release"

    @property
    def channel_dir(self) -> Path:
        return self.home / "channel"

    @property
    def jorfile_path(self) -> Path:
        return self.jorfile if self.jorfile is not None else self.home / "jorfile.json"

    @property
    def audit_log_path(self) -> Path:
        return self.home / "audit.log"

    @property
    def node_binary_name(self) -> str:
        return NODE_BINARY + (".exe" if self.windows else "")

    @property
    def companion_binary_name(self) -> str:
        return COMPANION_BINARY + (".exe" if self.windows else "")

    @property
    def archive_name(self) -> str:
        return "archive.zip" if self.windows else "archive.tar.gz"

    def init(self) -> None:
        """Create the home directory tree."""
        for directory in (self.home, self.bin_dir, self.release_dir, self.channel_dir):
            directory.mkdir(parents=True, exist_ok=True)
