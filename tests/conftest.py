"""Pytest fixtures for jorup tests."""

import io
import json
import tarfile
from pathlib import Path
from typing import Any

import pytest
import requests

from jorup.channel import Channel
from jorup.config import JorupConfig
from jorup.models.channel import ChannelEntry, TrustedPeer

TARGET = "x86_64-unknown-linux-gnu"
API = "https://api.github.com/repos/input-output-hk/jormungandr"

NODE_SCRIPT = """#!/bin/sh
if [ "$1" = "--version" ]; then
  echo "jormungandr ${FAKE_VERSION:-1.2.3}"
  exit 0
fi
echo "$@" > node_args.txt
exit ${FAKE_NODE_EXIT:-0}
"""

COMPANION_SCRIPT = """#!/bin/sh
if [ "$1" = "--version" ]; then
  echo "jcli ${FAKE_VERSION:-1.2.3}"
  exit 0
fi
echo "$@" >> "$FAKE_JCLI_LOG"
echo "uptime: 42"
exit ${FAKE_JCLI_EXIT:-0}
"""


class FakeResponse:
    """Stand-in for requests.Response."""

    def __init__(
        self,
        status_code: int = 200,
        payload: Any = None,
        content: bytes = b"",
        headers: dict | None = None,
        next_url: str | None = None,
    ):
        self.status_code = status_code
        self.payload = payload
        self.content = content
        self.headers = headers or {}
        self.links = {"next": {"url": next_url, "rel": "next"}} if next_url else {}

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc_info: object) -> None:
        pass

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")

    def json(self) -> Any:
        if self.payload is None:
            raise ValueError("no JSON body")
        return self.payload

    def iter_content(self, chunk_size: int = 1):
        for start in range(0, len(self.content), chunk_size):
            yield self.content[start : start + chunk_size]


class FakeSession:
    """Stand-in for requests.Session answering from a URL table."""

    def __init__(self, routes: dict[str, FakeResponse | Exception] | None = None):
        self.routes = routes or {}
        self.requested: list[str] = []
        self.params: list[dict | None] = []

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.requested.append(url)
        self.params.append(kwargs.get("params"))
        answer = self.routes.get(url, FakeResponse(status_code=404))
        if isinstance(answer, Exception):
            raise answer
        return answer


class FakeLiveness:
    """Liveness probe reporting a fixed set of PIDs as alive."""

    def __init__(self, alive: set[int] | None = None):
        self.alive = alive or set()

    def is_alive(self, pid: int) -> bool:
        return pid in self.alive


def release_payload(
    tag: str,
    published_at: str | None = "2020-03-01T10:00:00Z",
    asset_label: str | None = None,
    target: str = TARGET,
) -> dict:
    """GitHub release JSON with one archive for ``target``."""
    label = asset_label if asset_label is not None else tag
    name = f"jormungandr-{label}-{target}-generic.tar.gz"
    return {
        "tag_name": tag,
        "published_at": published_at,
        "assets": [
            {
                "name": name,
                "browser_download_url": f"https://downloads.example/{tag}/{name}",
            }
        ],
    }


def write_script(path: Path, body: str) -> Path:
    path.write_text(body)
    path.chmod(0o755)
    return path


def make_archive(binaries: dict[str, bytes]) -> bytes:
    """Build a tar.gz holding executable files."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
        for name, data in binaries.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o755
            archive.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


def install_fake_release(config: JorupConfig, version: str) -> Path:
    """Create an extracted release directory holding both binaries."""
    directory = config.release_dir / version
    directory.mkdir(parents=True)
    write_script(directory / config.node_binary_name, NODE_SCRIPT)
    write_script(directory / config.companion_binary_name, COMPANION_SCRIPT)
    return directory


@pytest.fixture
def config(tmp_path: Path) -> JorupConfig:
    """Configuration rooted in a temporary home."""
    cfg = JorupConfig(home=tmp_path / "jorup", target=TARGET)
    cfg.init()
    return cfg


@pytest.fixture
def fake_binaries(tmp_path: Path, monkeypatch) -> tuple[Path, Path]:
    """Shell script stand-ins for the node and companion binaries."""
    bin_dir = tmp_path / "fake-bin"
    bin_dir.mkdir()
    monkeypatch.setenv("FAKE_JCLI_LOG", str(tmp_path / "jcli.log"))
    node = write_script(bin_dir / "jormungandr", NODE_SCRIPT)
    companion = write_script(bin_dir / "jcli", COMPANION_SCRIPT)
    return node, companion


@pytest.fixture
def channel_entry() -> ChannelEntry:
    return ChannelEntry(
        name="testnet",
        description="Test network",
        node_versions=">=1.0.0, <2.0.0",
        genesis_hash="adbdd5ede31637f6c9bad5c271eec0bc3d0cb9efb86a5b913bb55cba549d0770",
        trusted_peers=[
            TrustedPeer(address="/ip4/3.115.194.22/tcp/3000", id="ed25519_pk1npsal"),
            TrustedPeer(address="/ip4/13.113.10.64/tcp/3000"),
        ],
    )


@pytest.fixture
def channel(config: JorupConfig, channel_entry: ChannelEntry) -> Channel:
    """A prepared channel directory."""
    directory = config.channel_dir / channel_entry.name
    directory.mkdir(parents=True)
    ch = Channel(channel_entry, directory)
    ch.prepare()
    return ch


@pytest.fixture
def jorfile(config: JorupConfig, channel_entry: ChannelEntry) -> Path:
    """A jorfile listing the test channel, at the default location."""
    data = [channel_entry.model_dump(by_alias=True)]
    config.jorfile_path.write_text(json.dumps(data, indent=2))
    return config.jorfile_path
