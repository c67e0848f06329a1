"""Bisection controller - decides which release to test next."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from enum import Enum

from releasebisect.bisect.catalog import (
    Catalog,
    ReleaseTag,
    estimate_steps_remaining,
)
from releasebisect.bisect.midpoint import Roundness, round_date, select_midpoint_tag
from releasebisect.bisect.track import JudgmentLog
from releasebisect.core.errors import NoMatchingRelease, PathologicalSkip
from releasebisect.core.log import logger


class Phase(str, Enum):
    """Where the search stands, derived from the judgment log."""

    SEEKING_UPPER_BOUND = "seeking-upper-bound"
    SEEKING_LOWER_BOUND = "seeking-lower-bound"
    BISECTING = "bisecting"


@dataclass(frozen=True)
class Activate:
    """Prepare this release for testing."""

    tag: ReleaseTag
    phase: Phase
    steps_left: int | None = None


@dataclass(frozen=True)
class Converged:
    """No release left between the bounds; nothing to activate."""

    latest_good: ReleaseTag
    earliest_bad: ReleaseTag


Decision = Activate | Converged


def classify(track: JudgmentLog) -> Phase:
    if track.earliest_bad is None:
        return Phase.SEEKING_UPPER_BOUND
    if track.latest_good is None:
        return Phase.SEEKING_LOWER_BOUND
    return Phase.BISECTING


def lookback_roundness(rough_date: date, today: date) -> Roundness:
    """Coarser rounding the further back the probe reaches."""
    days_since = (today - rough_date).days
    if days_since < 3:
        return Roundness.DAY
    if days_since < 14:
        return Roundness.WEEK
    return Roundness.MONTH


def select_earlier_release(
    catalog: Catalog, rough_date: date, today: date
) -> ReleaseTag:
    """Release on the calendar boundary at or before rough_date.

    Raises:
        NoMatchingRelease: If no release falls on the rounded date
    """
    roundness = lookback_roundness(rough_date, today)
    target = round_date(rough_date, roundness)
    logger.info(
        f"Rough date {rough_date} rounded to nearest {roundness.value} "
        f"to {target}"
    )
    matches = catalog.on_date(target)
    if not matches:
        raise NoMatchingRelease(target)
    return matches[-1]


class BisectionController:
    """Turns the judgment log into the next release to test.

    - no bad release yet: test the newest install (or the tip)
    - bad but no good: step back days_back from the last judged
      release to find a lower bound
    - both: bisect the window between latest good and earliest bad
    """

    def __init__(self, days_back: int = 7, today: date | None = None):
        """
        Args:
            days_back: Default lookback for the lower-bound probe
            today: Fixed "today" for the lookback rounding; None uses
                the current UTC date
        """
        self.days_back = days_back
        self.today = today

    def _today(self) -> date:
        return self.today or datetime.now(UTC).date()

    def next_step(
        self,
        catalog: Catalog,
        track: JudgmentLog,
        installed: str | None = None,
        days_back: int | None = None,
    ) -> Decision:
        """Decide what to do next.

        Args:
            catalog: Current releases, newest first
            track: Judgments so far
            installed: Freshest locally installed tag, if any
            days_back: Overrides the default lookback for this step

        Returns:
            Activate for a release to test, or Converged

        Raises:
            TagNotFound: If a judged tag has left the catalog
            NoMatchingRelease: If the lower-bound probe finds nothing
            PathologicalSkip: If every retried midpoint is skipped
            PreconditionViolation: If the catalog is empty or the
                latest good release is newer than the earliest bad
        """
        phase = classify(track)
        logger.debug(f"Bisection phase: {phase.value}", entries=len(track))

        if phase is Phase.SEEKING_UPPER_BOUND:
            return self._seek_upper_bound(catalog, installed)
        if phase is Phase.SEEKING_LOWER_BOUND:
            return self._seek_lower_bound(
                catalog, track, self.days_back if days_back is None else days_back
            )
        return self._bisect(catalog, track)

    def _seek_upper_bound(
        self, catalog: Catalog, installed: str | None
    ) -> Activate:
        logger.info("No bad versions recorded... Trying latest installed.")
        if installed is not None and installed in catalog:
            tag = catalog.get(installed)
        else:
            if installed is not None:
                logger.debug(
                    "Installed release is not in the catalog",
                    tag=installed,
                )
            tag = catalog.tip
        return Activate(tag=tag, phase=Phase.SEEKING_UPPER_BOUND)

    def _seek_lower_bound(
        self, catalog: Catalog, track: JudgmentLog, days_back: int
    ) -> Activate:
        logger.info(
            f"No good versions recorded. Trying {days_back} days earlier"
        )
        anchor = catalog.get(track.last.tag)
        rough_date = anchor.date - timedelta(days=days_back)
        tag = select_earlier_release(catalog, rough_date, self._today())
        logger.info(f"Found earlier release: {tag.name}")
        return Activate(tag=tag, phase=Phase.SEEKING_LOWER_BOUND)

    def _bisect(self, catalog: Catalog, track: JudgmentLog) -> Decision:
        good = catalog.get(track.latest_good.tag)
        bad = catalog.get(track.earliest_bad.tag)

        mid = select_midpoint_tag(catalog, good.name, bad.name)
        if mid not in (good, bad) and track.is_skipped(mid.name):
            mid = self._skip_fallback(catalog, track, good, bad, mid)

        if mid in (good, bad):
            return Converged(latest_good=good, earliest_bad=bad)

        steps = estimate_steps_remaining(catalog, good.name, bad.name)
        logger.info(f"Approx. {steps} steps left.")
        return Activate(tag=mid, phase=Phase.BISECTING, steps_left=steps)

    def _skip_fallback(
        self,
        catalog: Catalog,
        track: JudgmentLog,
        good: ReleaseTag,
        bad: ReleaseTag,
        skipped: ReleaseTag,
    ) -> ReleaseTag:
        """Retry once on the older side of a skipped midpoint, then
        once on the newer side if that retry is skipped too.

        The older retry may return the good release itself; the
        caller then reports convergence.

        Raises:
            PathologicalSkip: If the newer-side retry is skipped as well
        """
        logger.warn(f"Midpoint would be {skipped.name}, but it's skipped")

        older = select_midpoint_tag(catalog, good.name, skipped.name)
        if not track.is_skipped(older.name):
            return older
        logger.warn(
            f"Midpoint would be {older.name}, but it's skipped AGAIN; "
            f"trying the newer side"
        )

        newer = select_midpoint_tag(catalog, skipped.name, bad.name)
        if not track.is_skipped(newer.name):
            return newer
        raise PathologicalSkip(good.name, bad.name)
