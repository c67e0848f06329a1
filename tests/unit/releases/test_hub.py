"""Tests for the release hub."""

from unittest.mock import Mock

import pytest
from invoke import Result
from invoke.exceptions import UnexpectedExit

from releasebisect.bisect.blacklist import ReleaseBlacklist
from releasebisect.core.config import ReleasesConfig
from releasebisect.core.errors import ReleaseFetchError
from releasebisect.core.runner import Runner
from releasebisect.releases.github import GithubClient
from releasebisect.releases.hub import ReleaseHub, parse_ls_remote

LS_REMOTE = (
    "a1a1\trefs/tags/cdda-experimental-2024-03-01-0612\n"
    "b2b2\trefs/tags/cdda-experimental-2024-03-02-0100\n"
    "c3c3\trefs/tags/cdda-experimental-2021-11-30-23-05\n"
    "d4d4\trefs/tags/cdda-experimental-latest\n"
)


@pytest.fixture
def config():
    return ReleasesConfig(
        repo="CleverRaven/Cataclysm-DDA",
        remote_url="https://github.com/CleverRaven/Cataclysm-DDA.git",
        tag_glob="cdda-experimental-*-*",
        tag_prefix="cdda-experimental-",
        tag_formats=[
            "cdda-experimental-%Y-%m-%d-%H%M",
            "cdda-experimental-%Y-%m-%d-%H-%M",
        ],
        asset_priority=["cdda-windows-tiles-x64-msvc"],
    )


@pytest.fixture
def runner():
    runner = Mock(spec=Runner)
    runner.execute.return_value = Result(stdout=LS_REMOTE, exited=0)
    return runner


@pytest.fixture
def hub(tmp_path, config, runner, release_factory):
    client = Mock(spec=GithubClient)
    client.get_release.side_effect = release_factory
    return ReleaseHub(
        config,
        ReleaseBlacklist.load(tmp_path / "blacklist.json"),
        client,
        runner,
        ls_remote='git ls-remote --tags --refs --quiet {remote_url} "{tag_glob}"',
    )


def test_parse_ls_remote():
    assert parse_ls_remote(LS_REMOTE + "\nnoise without a tab\n") == [
        "cdda-experimental-2024-03-01-0612",
        "cdda-experimental-2024-03-02-0100",
        "cdda-experimental-2021-11-30-23-05",
        "cdda-experimental-latest",
    ]


def test_refresh_builds_catalog(hub, runner):
    catalog = hub.refresh()

    runner.execute.assert_called_once_with(
        "git ls-remote --tags --refs --quiet "
        "https://github.com/CleverRaven/Cataclysm-DDA.git "
        '"cdda-experimental-*-*"',
        check=True,
    )
    assert [t.name for t in catalog] == [
        "cdda-experimental-2024-03-02-0100",
        "cdda-experimental-2024-03-01-0612",
        "cdda-experimental-2021-11-30-23-05",
    ]
    assert hub.catalog is catalog


def test_blacklisted_tags_dropped_on_refresh(hub):
    hub.refresh()
    hub.mark_blacklist("cdda-experimental-2024-03-02-0100")

    # The current catalog only changes on the next refresh
    assert "cdda-experimental-2024-03-02-0100" in hub.catalog

    catalog = hub.refresh()

    assert "cdda-experimental-2024-03-02-0100" not in catalog
    assert catalog.tip.name == "cdda-experimental-2024-03-01-0612"


def test_git_failure(hub, runner):
    runner.execute.side_effect = UnexpectedExit(
        Result(stderr="fatal: unable to access\n", exited=128, command="git")
    )

    with pytest.raises(ReleaseFetchError, match="fatal: unable to access"):
        hub.refresh()


def test_release_details_fetched_once(hub):
    first = hub.release("cdda-experimental-2024-03-01-0612")
    second = hub.release("cdda-experimental-2024-03-01-0612")

    assert first is second
    hub.client.get_release.assert_called_once_with(
        "cdda-experimental-2024-03-01-0612"
    )
