"""Pytest configuration and fixtures for releasebisect tests."""

import sys
import tempfile
from datetime import date, datetime, timedelta
from pathlib import Path
from unittest.mock import Mock

import pytest

from releasebisect.bisect.blacklist import ReleaseBlacklist
from releasebisect.bisect.catalog import Catalog, ReleaseTag
from releasebisect.bisect.controller import BisectionController
from releasebisect.bisect.track import JudgmentLog
from releasebisect.core.config import ReleasesConfig
from releasebisect.core.log import ConsoleSink, setup_logger
from releasebisect.core.runner import Runner
from releasebisect.releases.github import GithubClient, GithubRelease, ReleaseAsset
from releasebisect.releases.hub import ReleaseHub
from releasebisect.releases.install import ActiveInstall, Installer
from releasebisect.session import BisectSession


@pytest.fixture(autouse=True, scope="session")
def configure_logging():
    """Console-only logging at debug level, nothing sent anywhere."""
    test_log_root = Path(tempfile.gettempdir()) / "releasebisect-tests"
    setup_logger(
        log_root=test_log_root,
        session_name="test",
        console=ConsoleSink(level="debug"),
    )


@pytest.fixture
def mock_argv(monkeypatch):
    """Keep pytest's own arguments away from the settings CLI parser."""
    monkeypatch.setattr(sys, "argv", ["releasebisect"])


@pytest.fixture
def ten_tags():
    """t00 (2024-03-20) .. t09 (2024-03-11), one release per day."""
    newest = datetime(2024, 3, 20, 12, 0)
    return [
        ReleaseTag(name=f"t{i:02d}", timestamp=newest - timedelta(days=i))
        for i in range(10)
    ]


@pytest.fixture
def ten_catalog(ten_tags):
    return Catalog(ten_tags)


def make_release(tag: str) -> GithubRelease:
    """Release details as GitHub would return them for tag."""
    return GithubRelease(
        id=1,
        published_at="2024-03-20T12:00:00Z",
        tag_name=tag,
        assets=[
            ReleaseAsset(
                name=f"cdda-linux-tiles-x64-{tag}.tar.gz",
                browser_download_url=f"https://example.com/{tag}/linux.tar.gz",
            ),
            ReleaseAsset(
                name=f"cdda-windows-tiles-x64-msvc-{tag}.zip",
                browser_download_url=f"https://example.com/{tag}/win.zip",
            ),
        ],
        html_url=f"https://github.com/CleverRaven/Cataclysm-DDA/releases/tag/{tag}",
        target_commitish=f"sha-{tag}",
    )


@pytest.fixture
def release_factory():
    return make_release


@pytest.fixture
def fake_installer(tmp_path):
    """Installer double that 'installs' instantly and has nothing local."""
    installer = Mock(spec=Installer)

    def install(release):
        asset = release.assets[-1]
        return ActiveInstall(
            release=release,
            asset=asset,
            install_dir=tmp_path / "unpacked" / asset.stem,
        )

    installer.install.side_effect = install
    installer.freshest_install_tag.return_value = None
    return installer


@pytest.fixture
def session(tmp_path, ten_catalog, fake_installer):
    """Session over the ten-day catalog with no network or disk I/O
    beyond the state files in tmp_path."""
    client = Mock(spec=GithubClient)
    client.get_release.side_effect = make_release
    hub = ReleaseHub(
        ReleasesConfig(
            repo="CleverRaven/Cataclysm-DDA",
            remote_url="https://github.com/CleverRaven/Cataclysm-DDA.git",
            tag_prefix="t",
            tag_formats=[],
            asset_priority=["cdda-windows-tiles-x64-msvc"],
        ),
        ReleaseBlacklist.load(tmp_path / "state" / "blacklist.json"),
        client,
        Mock(spec=Runner),
        ls_remote="git ls-remote {remote_url}",
    )
    hub.catalog = ten_catalog
    return BisectSession(
        hub,
        fake_installer,
        JudgmentLog(tmp_path / "state" / "track.json"),
        BisectionController(days_back=7, today=date(2024, 3, 14)),
    )
