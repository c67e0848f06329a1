"""Permanently excluded release tags."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, PrivateAttr

from releasebisect.core.log import logger
from releasebisect.core.persist import write_atomic


class ReleaseBlacklist(BaseModel):
    """Set of tag names left out of every catalog refresh.

    Grows only; there is no way to remove a tag short of editing
    blacklist.json by hand.
    """

    release_tags: list[str] = Field(
        default_factory=list,
        description="Excluded tag names, kept sorted",
    )

    _path: Path | None = PrivateAttr(default=None)

    @classmethod
    def load(cls, path: Path) -> ReleaseBlacklist:
        """Load from path, creating an empty file on first use."""
        if not path.exists():
            out = cls()
            out._path = path
            out.save()
            logger.debug("Created empty blacklist", path=str(path))
            return out

        out = cls.model_validate_json(path.read_bytes())
        out._path = path
        return out

    def __contains__(self, tag: str) -> bool:
        return tag in self.release_tags

    def __len__(self) -> int:
        return len(self.release_tags)

    def save(self, tags: list[str] | None = None) -> None:
        if self._path is None:
            return
        payload = self.model_copy(
            update={"release_tags": self.release_tags if tags is None else tags}
        )
        write_atomic(self._path, payload.model_dump_json(indent=2))

    def add(self, tag: str) -> None:
        """Exclude tag from future refreshes and persist."""
        if tag in self.release_tags:
            return
        tags = sorted({*self.release_tags, tag})
        self.save(tags)
        self.release_tags = tags
        logger.info(f"Blacklisted {tag}", tag=tag)
