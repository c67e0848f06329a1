"""Release catalog: date-stamped tags ordered newest first."""

from __future__ import annotations

import math
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime

from releasebisect.core.errors import PreconditionViolation, TagNotFound


def parse_tag_timestamp(
    name: str, formats: Sequence[str]
) -> datetime | None:
    """Read the timestamp encoded in a tag name.

    Args:
        name: Tag name, e.g. 'cdda-experimental-2024-03-01-0612'
        formats: strptime formats tried in order

    Returns:
        Parsed timestamp, or None if no format matches
    """
    for fmt in formats:
        try:
            return datetime.strptime(name, fmt)
        except ValueError:
            continue
    return None


@dataclass(frozen=True)
class ReleaseTag:
    """One candidate release. Equal iff names are equal."""

    name: str
    timestamp: datetime = field(compare=False)

    @property
    def date(self) -> date:
        return self.timestamp.date()

    @classmethod
    def parse(cls, name: str, formats: Sequence[str]) -> ReleaseTag | None:
        timestamp = parse_tag_timestamp(name, formats)
        if timestamp is None:
            return None
        return cls(name=name, timestamp=timestamp)


class Catalog(Sequence[ReleaseTag]):
    """Immutable, blacklist-filtered list of tags, newest first.

    Position 0 is the most recent release. Tags are deduplicated
    by name and every name in the blacklist is dropped.
    """

    def __init__(
        self,
        tags: Iterable[ReleaseTag] = (),
        blacklist: Iterable[str] = (),
    ):
        excluded = set(blacklist)
        unique: dict[str, ReleaseTag] = {}
        for tag in tags:
            if tag.name in excluded or tag.name in unique:
                continue
            unique[tag.name] = tag

        self._tags = tuple(
            sorted(
                unique.values(),
                key=lambda t: (t.timestamp, t.name),
                reverse=True,
            )
        )
        self._positions = {t.name: i for i, t in enumerate(self._tags)}

    @classmethod
    def from_names(
        cls,
        names: Iterable[str],
        formats: Sequence[str],
        blacklist: Iterable[str] = (),
    ) -> Catalog:
        """Build a catalog from raw tag names.

        Names without a parseable timestamp are left out.
        """
        tags = (ReleaseTag.parse(name, formats) for name in names)
        return cls((t for t in tags if t is not None), blacklist)

    def __len__(self) -> int:
        return len(self._tags)

    def __getitem__(self, index):
        return self._tags[index]

    def __iter__(self) -> Iterator[ReleaseTag]:
        return iter(self._tags)

    def __contains__(self, item) -> bool:
        name = item.name if isinstance(item, ReleaseTag) else item
        return name in self._positions

    def __repr__(self) -> str:
        tip = self._tags[0].name if self._tags else None
        return f"Catalog({len(self)} tags, tip={tip!r})"

    def position_of(self, name: str) -> int:
        """Index of an exact tag name.

        Raises:
            TagNotFound: If the name is not in the catalog
        """
        try:
            return self._positions[name]
        except KeyError:
            raise TagNotFound(name) from None

    def get(self, name: str) -> ReleaseTag:
        """Tag with an exact name.

        Raises:
            TagNotFound: If the name is not in the catalog
        """
        return self._tags[self.position_of(name)]

    @property
    def tip(self) -> ReleaseTag:
        """Newest release.

        Raises:
            PreconditionViolation: If the catalog is empty
        """
        if not self._tags:
            raise PreconditionViolation(
                "release catalog is empty; run 'fetch' first"
            )
        return self._tags[0]

    def find(self, query: str) -> ReleaseTag:
        """Resolve a user-typed tag fragment.

        The first tag whose name ends with the query wins, so a
        date suffix like '2024-03-01-0612' is enough. Otherwise the
        oldest tag containing the query is used.

        Raises:
            TagNotFound: If nothing matches
        """
        for tag in self._tags:
            if tag.name.endswith(query):
                return tag
        containing = [t for t in self._tags if query in t.name]
        if containing:
            return containing[-1]
        raise TagNotFound(query)

    def on_date(self, day: date) -> list[ReleaseTag]:
        """Tags released on a calendar day, newest first."""
        return [t for t in self._tags if t.date == day]


def estimate_steps_remaining(catalog: Catalog, tag_a: str, tag_b: str) -> int:
    """Approximate number of bisection steps left between two tags.

    A window of span 1 or less needs no more steps.

    Raises:
        TagNotFound: If either tag is not in the catalog
    """
    span = abs(catalog.position_of(tag_a) - catalog.position_of(tag_b))
    if span <= 1:
        return 0
    return math.ceil(math.log2(span))
