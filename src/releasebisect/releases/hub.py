"""Release hub: tag listing, blacklist filtering, metadata cache."""

from __future__ import annotations

from invoke.exceptions import UnexpectedExit

from releasebisect.bisect.blacklist import ReleaseBlacklist
from releasebisect.bisect.catalog import Catalog
from releasebisect.core.config import ReleasesConfig
from releasebisect.core.errors import ReleaseFetchError
from releasebisect.core.log import logger
from releasebisect.core.runner import Runner
from releasebisect.releases.github import GithubClient, GithubRelease


def parse_ls_remote(output: str) -> list[str]:
    """Tag names from 'git ls-remote --tags --refs' output.

    Lines look like '<sha>\\trefs/tags/<name>'.
    """
    names = []
    for line in output.splitlines():
        if "\t" not in line:
            continue
        _sha, ref = line.split("\t", 1)
        names.append(ref.strip().rsplit("/", 1)[-1])
    return names


class ReleaseHub:
    """Owns the catalog and the per-tag release metadata cache.

    The catalog is rebuilt wholesale on refresh(). Release details
    are fetched lazily and kept in memory for the hub's lifetime.
    """

    def __init__(
        self,
        config: ReleasesConfig,
        blacklist: ReleaseBlacklist,
        client: GithubClient,
        runner: Runner,
        ls_remote: str,
    ):
        """
        Args:
            config: Release listing settings
            blacklist: Tags to leave out of every refresh
            client: GitHub client for release details
            runner: Command runner for git
            ls_remote: Command template with {remote_url} and {tag_glob}
        """
        self.config = config
        self.blacklist = blacklist
        self.client = client
        self.runner = runner
        self.ls_remote = ls_remote
        self.catalog = Catalog()
        self._details: dict[str, GithubRelease] = {}

    def list_remote_tags(self) -> list[str]:
        """Raw tag names from the remote.

        Raises:
            ReleaseFetchError: If git fails
        """
        command = self.ls_remote.format(
            remote_url=self.config.remote_url,
            tag_glob=self.config.tag_glob,
        )
        try:
            result = self.runner.execute(command, check=True)
        except UnexpectedExit as e:
            raise ReleaseFetchError(
                f"listing tags of {self.config.remote_url} failed: "
                f"{e.result.stderr.strip()}"
            ) from e
        return parse_ls_remote(result.stdout)

    def refresh(self) -> Catalog:
        """Re-pull the tag list and rebuild the catalog."""
        with logger.span("Fetching releases", remote=self.config.remote_url):
            names = self.list_remote_tags()
            self.catalog = Catalog.from_names(
                names,
                self.config.tag_formats,
                blacklist=self.blacklist.release_tags,
            )

        tip = self.catalog[0].name if len(self.catalog) else "???"
        logger.info(
            f"Got {len(self.catalog)} releases, latest one being {tip}",
            listed=len(names),
            blacklisted=len(self.blacklist),
        )
        return self.catalog

    def release(self, tag: str) -> GithubRelease:
        """Release details for a tag, fetched at most once."""
        if tag not in self._details:
            self._details[tag] = self.client.get_release(tag)
        return self._details[tag]

    def mark_blacklist(self, tag: str) -> None:
        """Exclude tag from future refreshes."""
        self.blacklist.add(tag)

    def close(self) -> None:
        self.client.close()
