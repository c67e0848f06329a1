"""Error taxonomy for the bisection engine and its collaborators.

Every error derives from BisectError so the interactive prompt can
report it and carry on with the next command.
"""


class BisectError(Exception):
    """Base class for all recoverable bisection errors."""


class TagNotFound(BisectError):
    """A tag name is absent from the current catalog."""

    def __init__(self, tag: str):
        super().__init__(f"tag {tag!r} is not in the release catalog")
        self.tag = tag


class NoMatchingRelease(BisectError):
    """No release falls on the date picked for the lower-bound probe."""

    def __init__(self, date):
        super().__init__(
            f"no releases match the date of {date.isoformat()}; "
            f"try a different day offset (e.g. 'advance 10d')"
        )
        self.date = date


class PreconditionViolation(BisectError):
    """An operation was called in a state that does not allow it."""


class PathologicalSkip(BisectError):
    """Every midpoint reachable by the skip retries is skipped."""

    def __init__(self, latest_good: str, earliest_bad: str):
        super().__init__(
            f"every release tried between {latest_good!r} and "
            f"{earliest_bad!r} is skipped; bisection cannot narrow "
            f"the range further"
        )
        self.latest_good = latest_good
        self.earliest_bad = earliest_bad


class NoUsableAsset(BisectError):
    """A release has no downloadable asset that can be installed."""


class ReleaseFetchError(BisectError):
    """Listing tags or fetching release metadata failed."""


class InstallError(BisectError):
    """Downloading, unpacking or launching a release failed."""


__all__ = [
    "BisectError",
    "TagNotFound",
    "NoMatchingRelease",
    "PreconditionViolation",
    "PathologicalSkip",
    "NoUsableAsset",
    "ReleaseFetchError",
    "InstallError",
]
