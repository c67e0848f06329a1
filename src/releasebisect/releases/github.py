"""GitHub REST client for release metadata and asset downloads."""

from __future__ import annotations

from pathlib import Path

import httpx
from pydantic import BaseModel

from releasebisect.core.config import ReleasesConfig
from releasebisect.core.errors import InstallError, ReleaseFetchError
from releasebisect.core.log import logger


class ReleaseAsset(BaseModel):
    """One downloadable file attached to a release."""

    name: str
    browser_download_url: str

    @property
    def stem(self) -> str:
        """Name up to the first dot, used as the unpack directory."""
        return self.name.split(".")[0]


class GithubRelease(BaseModel):
    """Subset of the GitHub release object the bisector needs."""

    id: int
    published_at: str | None = None
    tag_name: str
    assets: list[ReleaseAsset] = []
    html_url: str
    target_commitish: str


class GithubClient:
    """Thin wrapper around an httpx.Client bound to one repository."""

    def __init__(
        self,
        config: ReleasesConfig,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Args:
            config: Repository, endpoint and HTTP settings
            transport: Optional transport override (tests use
                httpx.MockTransport)
        """
        self.repo = config.repo
        headers = {
            "User-Agent": config.user_agent,
            "Accept": "application/vnd.github+json",
        }
        if config.token:
            headers["Authorization"] = f"Bearer {config.token}"
        self._client = httpx.Client(
            base_url=config.api_endpoint,
            headers=headers,
            timeout=config.timeout,
            follow_redirects=True,
            transport=transport,
        )

    def get_release(self, tag: str) -> GithubRelease:
        """Fetch the release published for a tag.

        Raises:
            ReleaseFetchError: On HTTP or decoding failure
        """
        url = f"/repos/{self.repo}/releases/tags/{tag}"
        logger.debug("Fetching release info", tag=tag)
        try:
            response = self._client.get(url)
            response.raise_for_status()
            return GithubRelease.model_validate_json(response.content)
        except httpx.HTTPError as e:
            raise ReleaseFetchError(
                f"fetching release {tag!r} failed: {e}"
            ) from e
        except ValueError as e:
            raise ReleaseFetchError(
                f"release {tag!r} has an unexpected format: {e}"
            ) from e

    def download(self, url: str, dest: Path) -> Path:
        """Stream url into dest.

        Data goes to a .part file renamed on completion, so an
        interrupted download is never mistaken for a finished one.

        Raises:
            InstallError: On HTTP failure
        """
        dest.parent.mkdir(parents=True, exist_ok=True)
        partial = dest.with_name(dest.name + ".part")
        try:
            with self._client.stream("GET", url) as response:
                response.raise_for_status()
                with open(partial, "wb") as f:
                    for chunk in response.iter_bytes():
                        f.write(chunk)
        except httpx.HTTPError as e:
            partial.unlink(missing_ok=True)
            raise InstallError(f"downloading {url} failed: {e}") from e
        partial.replace(dest)
        return dest

    def close(self) -> None:
        self._client.close()
