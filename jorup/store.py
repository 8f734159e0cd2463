"""Local release store: the releases already unpacked under the jorup home."""

import logging
import os
import shutil
import uuid
from pathlib import Path

from .audit import AuditLogger
from .config import JorupConfig
from .errors import DefaultSwitchError, ReleaseNotInstalledError, VersionParseError
from .release import ResolvedRelease
from .version import Nightly, Version, VersionRequirement, matches, parse, sort_key

_LOGGER = logging.getLogger(__name__)


class ReleaseStore:
    """Installed releases, one directory per version under ``release_dir``."""

    def __init__(self, config: JorupConfig, audit: AuditLogger | None = None) -> None:
        self.config = config
        self.audit = audit

    def list_installed(self) -> list[Version]:
        """Return every installed version, newest first.

        Directories whose name is not a version, or which do not hold both
        binaries, are skipped.
        """
        release_dir = self.config.release_dir
        if not release_dir.is_dir():
            return []

        versions: list[Version] = []
        for entry in release_dir.iterdir():
            if not entry.is_dir():
                continue
            try:
                version = parse(entry.name)
            except VersionParseError:
                _LOGGER.debug("Ignoring %s: not a release directory", entry)
                continue
            if isinstance(version, Nightly) and not version.configured:
                _LOGGER.debug("Ignoring %s: nightly without build date", entry)
                continue
            if ResolvedRelease.at(self.config, version).needs_extraction:
                _LOGGER.debug("Ignoring %s: release is not fully extracted", entry)
                continue
            versions.append(version)
        return sorted(versions, key=sort_key, reverse=True)

    def load(self, requirement: VersionRequirement) -> ResolvedRelease:
        """Return the newest installed release satisfying ``requirement``.

        Raises:
            ReleaseNotInstalledError: If no installed release matches.
        """
        candidates = [v for v in self.list_installed() if matches(requirement, v)]
        if not candidates:
            raise ReleaseNotInstalledError(requirement)
        version = max(candidates, key=sort_key)
        _LOGGER.debug("Installed release %s satisfies %s", version, requirement)
        return ResolvedRelease.at(self.config, version)

    def remove(self, version: Version) -> None:
        """Delete an installed release directory."""
        release = ResolvedRelease.at(self.config, version)
        if not release.directory.is_dir():
            raise ReleaseNotInstalledError(version)
        shutil.rmtree(release.directory)
        if self.audit:
            self.audit.log("REMOVE", version=str(version))

    def make_default(self, release: ResolvedRelease, bin_dir: Path | None = None) -> None:
        """Make ``release`` the binaries found by their bare names in ``bin_dir``.

        Both binaries are first copied into a staging directory inside
        ``bin_dir`` and then renamed over the previous defaults. Each rename is
        atomic but the pair is not: if the second rename fails the first
        binary already points at the new release.

        Raises:
            DefaultSwitchError: Naming the file that could not be replaced.
        """
        bin_dir = bin_dir if bin_dir is not None else self.config.bin_dir
        staging = bin_dir / f".staging-{uuid.uuid4().hex}"
        pairs = [
            (release.node_binary, bin_dir / release.node_binary.name),
            (release.companion_binary, bin_dir / release.companion_binary.name),
        ]

        try:
            staging.mkdir(parents=True)
        except OSError as exc:
            raise DefaultSwitchError(staging) from exc

        try:
            staged = []
            for source, destination in pairs:
                copy = staging / destination.name
                try:
                    shutil.copy2(source, copy)
                except OSError as exc:
                    raise DefaultSwitchError(destination) from exc
                staged.append((copy, destination))

            for copy, destination in staged:
                try:
                    os.replace(copy, destination)
                except OSError as exc:
                    raise DefaultSwitchError(destination) from exc
        finally:
            shutil.rmtree(staging, ignore_errors=True)

        _LOGGER.info("Release %s is now the default", release.version)
        if self.audit:
            self.audit.log("DEFAULT", version=str(release.version), bin_dir=bin_dir)
