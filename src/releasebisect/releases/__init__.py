"""Release collaborators: tag listing, GitHub metadata, installation."""

from releasebisect.releases.github import GithubClient, GithubRelease, ReleaseAsset
from releasebisect.releases.hub import ReleaseHub
from releasebisect.releases.install import ActiveInstall, Installer

__all__ = [
    "ActiveInstall",
    "GithubClient",
    "GithubRelease",
    "Installer",
    "ReleaseAsset",
    "ReleaseHub",
]
