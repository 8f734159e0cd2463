"""Tests for resolving and installing releases."""

import pytest

from conftest import (
    API,
    FakeResponse,
    FakeSession,
    install_fake_release,
    make_archive,
    release_payload,
)
from jorup.audit import AuditLogger
from jorup.errors import ReleaseNotInstalledError
from jorup.remote import RemoteReleaseResolver
from jorup.store import ReleaseStore
from jorup.update import install_release, resolve_release
from jorup.version import Latest, Stable, parse_requirement

ARCHIVE = make_archive({"jormungandr": b"node", "jcli": b"cli"})


class ArchiveDownloader:
    def __init__(self):
        self.urls = []

    def __call__(self, what, url, destination, progress=None):
        self.urls.append(url)
        destination.write_bytes(ARCHIVE)


@pytest.fixture
def store(config):
    return ReleaseStore(config)


def resolver_for(routes):
    return RemoteReleaseResolver(session=FakeSession(routes))


class TestResolveRelease:
    """Tests for resolve_release()."""

    def test_local_store_first(self, config, store):
        install_fake_release(config, "1.5.0")
        session = FakeSession()

        release = resolve_release(
            config, parse_requirement("^1.0"), store, RemoteReleaseResolver(session=session)
        )

        assert release.version == Stable(1, 5, 0)
        assert session.requested == []

    def test_falls_back_to_registry(self, config, store):
        resolver = resolver_for(
            {f"{API}/releases": FakeResponse(payload=[release_payload("v1.6.0")])}
        )

        release = resolve_release(config, parse_requirement("^1.0"), store, resolver)

        assert release.version == Stable(1, 6, 0)
        assert release.remote is not None
        assert release.needs_extraction

    def test_latest_always_asks_registry(self, config, store):
        install_fake_release(config, "1.5.0")
        resolver = resolver_for(
            {f"{API}/releases/latest": FakeResponse(payload=release_payload("v1.5.0"))}
        )

        release = resolve_release(config, Latest(), store, resolver)

        assert release.version == Stable(1, 5, 0)
        assert not release.needs_extraction

    def test_offline_never_asks_registry(self, config, store):
        offline = config.model_copy(update={"offline": True})
        session = FakeSession()

        with pytest.raises(ReleaseNotInstalledError):
            resolve_release(
                offline,
                parse_requirement("^1.0"),
                ReleaseStore(offline),
                RemoteReleaseResolver(session=session),
            )
        assert session.requested == []


class TestInstallRelease:
    """Tests for install_release()."""

    def test_downloads_platform_asset(self, config, store):
        payload = release_payload("v1.6.0")
        resolver = resolver_for({f"{API}/releases/tags/v1.6.0": FakeResponse(payload=payload)})
        downloader = ArchiveDownloader()
        audit = AuditLogger(config.audit_log_path)

        release = install_release(
            config,
            parse_requirement("1.6.0"),
            store,
            resolver,
            downloader=downloader,
            audit=audit,
        )

        assert downloader.urls == [payload["assets"][0]["browser_download_url"]]
        assert release.node_binary.read_bytes() == b"node"
        assert store.list_installed() == [Stable(1, 6, 0)]
        assert "[INSTALL] version=1.6.0" in config.audit_log_path.read_text()

    def test_installed_release_is_not_downloaded(self, config, store):
        install_fake_release(config, "1.6.0")
        downloader = ArchiveDownloader()

        install_release(
            config,
            parse_requirement("1.6.0"),
            store,
            resolver_for({}),
            downloader=downloader,
        )

        assert downloader.urls == []

    def test_make_default(self, config, store):
        install_fake_release(config, "1.6.0")

        install_release(
            config, parse_requirement("1.6.0"), store, resolver_for({}), make_default=True
        )

        assert (config.bin_dir / "jormungandr").is_file()
        assert (config.bin_dir / "jcli").is_file()
