"""Calls into the node and companion binaries: version queries and REST requests."""

import logging
import subprocess
from pathlib import Path

from ..errors import (
    CompatibilityError,
    ControlRequestError,
    VersionParseError,
    VersionQueryError,
)
from ..version import Latest, Version, VersionRequirement, matches, parse

_LOGGER = logging.getLogger(__name__)

# `<binary> --version` answers "<name> <version> ..."
_VERSION_PREFIXES = ("jcli", "jormungandr")


def query_version(binary: Path) -> Version:
    """Ask ``binary`` for its version.

    Raises:
        VersionQueryError: The binary cannot be run or its answer does not parse.
    """
    try:
        result = subprocess.run(
            [str(binary), "--version"], capture_output=True, text=True, check=False
        )
    except OSError as exc:
        raise VersionQueryError(binary) from exc

    output = result.stdout.strip()
    if result.returncode != 0:
        raise VersionQueryError(binary, output or result.stderr)

    tokens = output.split()
    if tokens and tokens[0].removesuffix(".exe") in _VERSION_PREFIXES:
        tokens = tokens[1:]
    if not tokens:
        raise VersionQueryError(binary, output)

    try:
        return parse(tokens[0])
    except VersionParseError as exc:
        raise VersionQueryError(binary, output) from exc


def ensure_compatible(binary: Path, requirement: VersionRequirement) -> Version:
    """Check that ``binary`` reports a version satisfying ``requirement``.

    ``latest`` accepts any version the binary reports.

    Returns:
        The reported version

    Raises:
        VersionQueryError: The version could not be obtained.
        CompatibilityError: The version does not satisfy ``requirement``.
    """
    version = query_version(binary)
    if not isinstance(requirement, Latest) and not matches(requirement, version):
        raise CompatibilityError(binary, version, requirement)
    _LOGGER.debug("%s reports version %s", binary, version)
    return version


def control_request(companion: Path, port: int, *request: str) -> str:
    """Run ``<companion> rest v0 <request> get`` against the node listening on ``port``.

    Returns:
        The companion's standard output

    Raises:
        ControlRequestError: The companion could not be run or exited non-zero.
    """
    name = " ".join(request)
    command = [
        str(companion),
        "rest",
        "v0",
        *request,
        "get",
        "--host",
        f"http://localhost:{port}/api",
    ]
    try:
        result = subprocess.run(command, capture_output=True, text=True, check=False)
    except OSError as exc:
        raise ControlRequestError(name) from exc

    if result.returncode != 0:
        _LOGGER.debug("'%s' failed: %s", name, result.stderr.strip())
        raise ControlRequestError(name, result.returncode)
    return result.stdout
