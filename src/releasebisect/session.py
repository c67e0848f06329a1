"""Bisection session: the state every prompt command works on."""

from __future__ import annotations

import re

from releasebisect.bisect.blacklist import ReleaseBlacklist
from releasebisect.bisect.catalog import Catalog, ReleaseTag
from releasebisect.bisect.controller import (
    Activate,
    BisectionController,
    Converged,
    Decision,
)
from releasebisect.bisect.track import Judgment, JudgmentLog
from releasebisect.core.config import Config
from releasebisect.core.errors import BisectError, PreconditionViolation
from releasebisect.core.log import logger
from releasebisect.core.runner import Runner
from releasebisect.releases.github import GithubClient, GithubRelease
from releasebisect.releases.hub import ReleaseHub
from releasebisect.releases.install import ActiveInstall, Installer

TRACK_FILE = "track.json"
BLACKLIST_FILE = "blacklist.json"

# 'advance 10d' steps ten days back when no good release is known
DAYS_ARG = re.compile(r"^(\d+)d$")


def parse_days_arg(arg: str | None) -> int | None:
    """Day count from an 'Nd' argument, None when no argument.

    Raises:
        ValueError: If the argument is not of the form Nd
    """
    if not arg:
        return None
    match = DAYS_ARG.match(arg.strip())
    if not match:
        raise ValueError(f"expected a day offset like '7d', got {arg!r}")
    return int(match.group(1))


def format_convergence(good: GithubRelease, bad: GithubRelease) -> str:
    return (
        f"Bisected to commit range ( {good.target_commitish} , "
        f"{bad.target_commitish} ]\n"
        f"  latest good - [{good.tag_name}]({good.html_url})\n"
        f"  earliest bad - [{bad.tag_name}]({bad.html_url})"
    )


class BisectSession:
    """Catalog, judgments and the active install for one bisection.

    The session owns the catalog (through the hub) and the active
    install. The track and the blacklist are loaded at start and
    written back after every change. One session per state
    directory: nothing guards against two sessions sharing files.
    """

    def __init__(
        self,
        hub: ReleaseHub,
        installer: Installer,
        track: JudgmentLog,
        controller: BisectionController | None = None,
    ):
        self.hub = hub
        self.installer = installer
        self.track = track
        self.controller = controller or BisectionController()
        self.active: ActiveInstall | None = None

    @classmethod
    def from_config(cls, config: Config) -> BisectSession:
        """Wire up collaborators from configuration.

        Loads the blacklist and track but does not touch the network;
        call fetch() to fill the catalog.
        """
        state_dir = config.paths.state_dir
        blacklist = ReleaseBlacklist.load(state_dir / BLACKLIST_FILE)
        track = JudgmentLog.load(state_dir / TRACK_FILE)

        runner = Runner()
        client = GithubClient(config.releases)
        hub = ReleaseHub(
            config.releases,
            blacklist,
            client,
            runner,
            ls_remote=config.command("git", "ls_remote"),
        )
        installer = Installer(
            config.paths,
            client,
            runner,
            asset_priority=config.releases.asset_priority,
            tag_prefix=config.releases.tag_prefix,
            extract=config.command("tools", "extract"),
            launch=config.command("tools", "launch"),
        )
        controller = BisectionController(days_back=config.bisect.days_back)
        return cls(hub, installer, track, controller)

    @property
    def catalog(self) -> Catalog:
        return self.hub.catalog

    def fetch(self) -> Catalog:
        """Refresh the catalog from the remote."""
        return self.hub.refresh()

    def resume(self) -> ActiveInstall | None:
        """Re-activate the last judged release, if any.

        Failure is logged; the session stays usable without an
        active install.
        """
        last = self.track.last
        if last is None:
            return None
        try:
            return self.activate_tag(last.tag)
        except (BisectError, OSError) as e:
            logger.warn(f"Could not resume {last.tag}: {e}")
            return None

    def activate_release(self, tag: ReleaseTag) -> ActiveInstall:
        """Prepare a release for testing and make it the active one."""
        release = self.hub.release(tag.name)
        self.active = self.installer.install(release)
        return self.active

    def resolve(self, query: str) -> ReleaseTag:
        """Tag for a user query: 'tip', 'recent' or a name fragment.

        Raises:
            TagNotFound: If nothing in the catalog matches
            PreconditionViolation: If 'recent' is asked for and
                nothing is installed, or the catalog is empty
        """
        if query == "tip":
            return self.catalog.tip
        if query == "recent":
            installed = self.installer.freshest_install_tag()
            if installed is None:
                raise PreconditionViolation("no release is installed locally")
            return self.catalog.get(installed)
        return self.catalog.find(query)

    def activate_tag(self, query: str) -> ActiveInstall:
        return self.activate_release(self.resolve(query))

    def _require_active(self) -> ActiveInstall:
        if self.active is None:
            raise PreconditionViolation(
                "no active install; use 'activate' or 'advance' first"
            )
        return self.active

    def mark(self, judgment: Judgment) -> None:
        """Record a verdict on the active release."""
        active = self._require_active()
        self.track.append(active.tag, judgment)

    def mark_good(self) -> None:
        self.mark(Judgment.GOOD)

    def mark_bad(self) -> None:
        self.mark(Judgment.BAD)

    def mark_skip(self) -> None:
        self.mark(Judgment.SKIP)

    def mark_blacklist(self) -> None:
        """Skip the active release and exclude it from future refreshes."""
        active = self._require_active()
        self.mark_skip()
        self.hub.mark_blacklist(active.tag)

    def advance(self, days_back: int | None = None) -> Decision:
        """Let the controller pick the next release and activate it.

        Nothing is activated when the bisection has converged.
        """
        decision = self.controller.next_step(
            self.catalog,
            self.track,
            installed=self.installer.freshest_install_tag(),
            days_back=days_back,
        )
        if isinstance(decision, Activate):
            self.activate_release(decision.tag)
        return decision

    def convergence_report(self, decision: Converged) -> str:
        good = self.hub.release(decision.latest_good.name)
        bad = self.hub.release(decision.earliest_bad.name)
        return format_convergence(good, bad)

    def track_lines(self) -> list[str]:
        return [f"{e.tag} - {e.judgment.value}" for e in self.track]

    def reset(self) -> int:
        """Forget every judgment. Returns the number removed."""
        removed = self.track.clear()
        logger.info(f"Track cleared ({removed} entries)")
        return removed

    def launch(self) -> int:
        return self.installer.launch(self._require_active())

    def fix_font(self) -> bool:
        return self.installer.fix_font()

    def close(self) -> None:
        self.hub.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):  # noqa: U100
        self.close()
        return False
