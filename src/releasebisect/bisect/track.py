"""Judgment log ("track"): append-only record of user verdicts."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from enum import Enum
from pathlib import Path
from typing import NamedTuple

from pydantic import TypeAdapter

from releasebisect.core.log import logger
from releasebisect.core.persist import write_atomic


class Judgment(str, Enum):
    """User verdict on one release."""

    GOOD = "Good"
    BAD = "Bad"
    SKIP = "Skip"


class TrackEntry(NamedTuple):
    tag: str
    judgment: Judgment


# On disk: [["cdda-experimental-2024-03-01-0612", "Good"], ...]
_TRACK_FORMAT = TypeAdapter(list[tuple[str, Judgment]])


def latest_good(entries: Iterable[TrackEntry]) -> TrackEntry | None:
    """Good entry with the lexicographically greatest tag name.

    Tag names carry a fixed-width timestamp, so this is the
    chronologically newest known-good release whatever order the
    verdicts were given in.
    """
    goods = [e for e in entries if e.judgment is Judgment.GOOD]
    return max(goods, key=lambda e: e.tag, default=None)


def earliest_bad(entries: Iterable[TrackEntry]) -> TrackEntry | None:
    """Bad entry with the lexicographically smallest tag name."""
    bads = [e for e in entries if e.judgment is Judgment.BAD]
    return min(bads, key=lambda e: e.tag, default=None)


class JudgmentLog:
    """Ordered verdicts, persisted after every change.

    A tag may be judged more than once; current belief is derived
    from all entries (latest_good, earliest_bad, is_skipped), never
    from the last verdict alone.
    """

    def __init__(self, path: Path | None = None, entries: Iterable[TrackEntry] = ()):
        """
        Args:
            path: JSON file rewritten on every change, or None to keep
                the log in memory only
            entries: Initial entries
        """
        self.path = path
        self._entries = tuple(
            TrackEntry(tag, Judgment(judgment)) for tag, judgment in entries
        )

    @classmethod
    def load(cls, path: Path) -> JudgmentLog:
        """Load the log from path; a missing file is an empty log."""
        if not path.exists():
            logger.debug("No track file yet", path=str(path))
            return cls(path)
        raw = _TRACK_FORMAT.validate_json(path.read_bytes())
        logger.debug("Loaded track", path=str(path), entries=len(raw))
        return cls(path, (TrackEntry(tag, judgment) for tag, judgment in raw))

    @property
    def entries(self) -> tuple[TrackEntry, ...]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TrackEntry]:
        return iter(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    @property
    def last(self) -> TrackEntry | None:
        """Most recently appended entry."""
        return self._entries[-1] if self._entries else None

    @property
    def latest_good(self) -> TrackEntry | None:
        return latest_good(self._entries)

    @property
    def earliest_bad(self) -> TrackEntry | None:
        return earliest_bad(self._entries)

    def is_skipped(self, tag: str) -> bool:
        """True if any verdict for tag is Skip."""
        return any(
            e.tag == tag and e.judgment is Judgment.SKIP
            for e in self._entries
        )

    def append(self, tag: str, judgment: Judgment) -> TrackEntry:
        """Record a verdict and persist it.

        The in-memory log only changes once the file is written.
        """
        entry = TrackEntry(tag, Judgment(judgment))
        entries = self._entries + (entry,)
        self._save(entries)
        self._entries = entries
        logger.info(
            f"Marked {tag} as {entry.judgment.value}",
            tag=tag,
            judgment=entry.judgment.value,
        )
        return entry

    def clear(self) -> int:
        """Drop every entry and persist. Returns the number removed."""
        removed = len(self._entries)
        self._save(())
        self._entries = ()
        return removed

    def _save(self, entries: tuple[TrackEntry, ...]) -> None:
        if self.path is None:
            return
        data = _TRACK_FORMAT.dump_json(
            [(e.tag, e.judgment) for e in entries], indent=2
        )
        write_atomic(self.path, data.decode())
