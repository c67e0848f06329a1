"""Calendar-aware midpoint selection.

Plain index bisection lands on arbitrary builds. People remember
"it broke sometime in early March", so the midpoint is nudged onto
the first release of a month, a week or a day when one exists
inside the window, and falls back to the raw index otherwise.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from enum import Enum

from releasebisect.bisect.catalog import Catalog, ReleaseTag
from releasebisect.core.errors import PreconditionViolation
from releasebisect.core.log import logger


class Roundness(str, Enum):
    """Calendar alignment used when picking a midpoint."""

    NONE = "none"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


# Coarsest first; NONE always succeeds
MIDPOINT_ROUNDNESS = (
    Roundness.MONTH,
    Roundness.WEEK,
    Roundness.DAY,
    Roundness.NONE,
)


def round_date(day: date | datetime, roundness: Roundness) -> date:
    """Round a date down to a calendar boundary.

    Weeks are counted from the first of the month (days 1, 8, 15,
    22, 29) rather than from Mondays.
    """
    if isinstance(day, datetime):
        day = day.date()
    if roundness is Roundness.WEEK:
        return day.replace(day=((day.day - 1) // 7) * 7 + 1)
    if roundness is Roundness.MONTH:
        return day.replace(day=1)
    return day


def _next_boundary(start: date, roundness: Roundness) -> date:
    if roundness is Roundness.DAY:
        return start + timedelta(days=1)
    if roundness is Roundness.WEEK:
        return start + timedelta(days=7)
    if roundness is Roundness.MONTH:
        if start.month == 12:
            return start.replace(year=start.year + 1, month=1)
        return start.replace(month=start.month + 1)
    raise ValueError(f"no boundary for roundness {roundness}")


def _last_position_since(catalog: Catalog, boundary: date) -> int | None:
    """Largest position whose release date is on or after boundary."""
    return max(
        (i for i, tag in enumerate(catalog) if tag.date >= boundary),
        default=None,
    )


def _inside(pos: int | None, bad_pos: int, good_pos: int) -> int | None:
    if pos is not None and bad_pos < pos < good_pos:
        return pos
    return None


def select_midpoint_rounded(
    catalog: Catalog,
    good_pos: int,
    bad_pos: int,
    roundness: Roundness,
) -> int | None:
    """Midpoint aligned to one calendar granularity, or None.

    The release at the raw midpoint fixes a calendar period. The
    oldest release of that period and the oldest release of the
    next period are the candidates; whichever lies strictly inside
    the window and closer to the raw midpoint wins, the next period
    on a tie.
    """
    naive_mid = (good_pos + bad_pos) // 2
    if roundness is Roundness.NONE:
        return naive_mid

    period_start = round_date(catalog[naive_mid].date, roundness)
    period_end = _next_boundary(period_start, roundness)

    first_in_period = _last_position_since(catalog, period_start)
    first_in_next_period = _last_position_since(catalog, period_end)
    if first_in_period is None or first_in_next_period is None:
        return None

    before = _inside(first_in_period, bad_pos, good_pos)
    after = _inside(first_in_next_period, bad_pos, good_pos)
    if before is None:
        return after
    if after is None:
        return before
    if abs(naive_mid - before) < abs(naive_mid - after):
        return before
    return after


def select_midpoint(catalog: Catalog, good_pos: int, bad_pos: int) -> int:
    """Pick the position to test between a good and a bad release.

    Args:
        catalog: Releases, newest first
        good_pos: Position of the known-good (older) release
        bad_pos: Position of the known-bad (newer) release

    Returns:
        A position strictly between bad_pos and good_pos

    Raises:
        PreconditionViolation: If good_pos is not greater than bad_pos + 1
    """
    if good_pos <= bad_pos + 1:
        raise PreconditionViolation(
            f"no release between positions {bad_pos} and {good_pos}"
        )

    for roundness in MIDPOINT_ROUNDNESS:
        mid = select_midpoint_rounded(catalog, good_pos, bad_pos, roundness)
        logger.spew(
            "Midpoint candidate",
            roundness=roundness.value,
            good_pos=good_pos,
            bad_pos=bad_pos,
            mid=mid,
        )
        if mid is not None:
            return mid
    raise AssertionError("Roundness.NONE always yields a midpoint")


def select_midpoint_tag(
    catalog: Catalog, latest_good: str, earliest_bad: str
) -> ReleaseTag:
    """Release to test between two tags.

    Adjacent tags leave nothing to test; the good tag itself is
    returned in that case.

    Raises:
        TagNotFound: If either tag is not in the catalog
        PreconditionViolation: If the good tag is not older than the
            bad one
    """
    good_pos = catalog.position_of(latest_good)
    bad_pos = catalog.position_of(earliest_bad)
    if good_pos <= bad_pos:
        raise PreconditionViolation(
            f"good release {latest_good!r} is not older than bad "
            f"release {earliest_bad!r}"
        )
    if good_pos == bad_pos + 1:
        return catalog[good_pos]
    return catalog[select_midpoint(catalog, good_pos, bad_pos)]
