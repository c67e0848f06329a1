"""Bisection engine: catalog, judgment log, midpoint selection, controller."""

from releasebisect.bisect.blacklist import ReleaseBlacklist
from releasebisect.bisect.catalog import (
    Catalog,
    ReleaseTag,
    estimate_steps_remaining,
)
from releasebisect.bisect.controller import (
    Activate,
    BisectionController,
    Converged,
    Decision,
    Phase,
)
from releasebisect.bisect.midpoint import (
    Roundness,
    round_date,
    select_midpoint,
    select_midpoint_tag,
)
from releasebisect.bisect.track import Judgment, JudgmentLog, TrackEntry

__all__ = [
    "Activate",
    "BisectionController",
    "Catalog",
    "Converged",
    "Decision",
    "Judgment",
    "JudgmentLog",
    "Phase",
    "ReleaseBlacklist",
    "ReleaseTag",
    "Roundness",
    "TrackEntry",
    "estimate_steps_remaining",
    "round_date",
    "select_midpoint",
    "select_midpoint_tag",
]
