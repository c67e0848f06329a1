"""Preparing releases for testing: download, unpack, launch."""

from __future__ import annotations

import re
import shutil
from dataclasses import dataclass
from pathlib import Path

from invoke.exceptions import UnexpectedExit

from releasebisect.core.config import PathsConfig
from releasebisect.core.errors import InstallError, NoUsableAsset
from releasebisect.core.log import logger
from releasebisect.core.runner import Runner
from releasebisect.releases.github import GithubClient, GithubRelease, ReleaseAsset

# Unpacked asset directories end in the build's date stamp,
# e.g. cdda-windows-tiles-x64-msvc-2024-03-01-0612
INSTALL_DIR_PATTERN = re.compile(r"^.*-(\d{4}-\d{2}-\d{2}-\d{4})$")

UNPACK_TMP_NAME = "_unpack_tmp"


def select_best_asset(
    release: GithubRelease, priority: list[str]
) -> ReleaseAsset:
    """First asset matching the highest-priority name prefix.

    Raises:
        NoUsableAsset: If no asset matches any prefix
    """
    for prefix in priority:
        for asset in release.assets:
            if asset.name.startswith(prefix):
                return asset
    raise NoUsableAsset(
        f"release {release.tag_name!r} has no asset matching "
        f"{', '.join(priority)}"
    )


@dataclass(frozen=True)
class ActiveInstall:
    """Release currently prepared for testing."""

    release: GithubRelease
    asset: ReleaseAsset
    install_dir: Path

    @property
    def tag(self) -> str:
        return self.release.tag_name


class Installer:
    """Downloads and unpacks release assets, launches the result."""

    def __init__(
        self,
        paths: PathsConfig,
        client: GithubClient,
        runner: Runner,
        asset_priority: list[str],
        tag_prefix: str,
        extract: str,
        launch: str,
    ):
        """
        Args:
            paths: Download, unpack and user data directories
            client: Client used for downloads
            runner: Runner for the extractor and the launched program
            asset_priority: Asset name prefixes, most preferred first
            tag_prefix: Prefix turning an install date stamp into a tag
            extract: Extractor command template ({archive}, {output_dir})
            launch: Launch command template ({game_dir}, {userdata_dir})
        """
        self.paths = paths
        self.client = client
        self.runner = runner
        self.asset_priority = asset_priority
        self.tag_prefix = tag_prefix
        self.extract = extract
        self.launch_template = launch

    def unpack_dir_for(self, asset: ReleaseAsset) -> Path:
        return self.paths.unpack_dir / asset.stem

    def install(self, release: GithubRelease) -> ActiveInstall:
        """Download and unpack the best asset of a release.

        Work already done (archive present, directory unpacked) is
        not repeated.
        """
        asset = select_best_asset(release, self.asset_priority)
        logger.info(f"Activating version {asset.name}", tag=release.tag_name)
        archive = self.download(asset)
        install_dir = self.unpack(asset, archive)
        return ActiveInstall(release=release, asset=asset, install_dir=install_dir)

    def download(self, asset: ReleaseAsset) -> Path:
        archive = self.paths.distr_dir / asset.name
        if archive.exists():
            logger.debug("Archive already downloaded", path=str(archive))
            return archive
        with logger.span(
            f"Downloading {asset.browser_download_url} -> {archive}",
            asset=asset.name,
        ):
            self.client.download(asset.browser_download_url, archive)
        return archive

    def unpack(self, asset: ReleaseAsset, archive: Path) -> Path:
        """Extract archive into its own directory under unpack_dir.

        Extraction goes to a scratch directory that is renamed once
        the extractor succeeds.

        Raises:
            NoUsableAsset: If the asset is not a zip archive
            InstallError: If the extractor fails
        """
        if not asset.name.endswith(".zip"):
            raise NoUsableAsset(f"asset {asset.name!r} is not a zip archive")

        unpacked = self.unpack_dir_for(asset)
        if unpacked.exists():
            logger.debug("Already unpacked", path=str(unpacked))
            return unpacked

        scratch = self.paths.unpack_dir / UNPACK_TMP_NAME
        if scratch.exists():
            shutil.rmtree(scratch)
        self.paths.unpack_dir.mkdir(parents=True, exist_ok=True)

        command = self.extract.format(archive=archive, output_dir=scratch)
        with logger.span(f"Unpacking {archive} -> {unpacked}"):
            try:
                self.runner.execute(command, check=True, log_level="debug")
            except UnexpectedExit as e:
                raise InstallError(
                    f"extracting {archive.name} failed with exit code "
                    f"{e.result.exited}"
                ) from e
            scratch.rename(unpacked)
        return unpacked

    def freshest_install_tag(self) -> str | None:
        """Tag of the newest release unpacked locally, if any.

        Derived from the date stamp at the end of the unpacked
        directory names; the tag may no longer be in the catalog.
        """
        if not self.paths.unpack_dir.is_dir():
            return None
        stamps = [
            match.group(1)
            for entry in self.paths.unpack_dir.iterdir()
            if entry.is_dir()
            and (match := INSTALL_DIR_PATTERN.match(entry.name))
        ]
        if not stamps:
            return None
        tag = f"{self.tag_prefix}{max(stamps)}"
        logger.debug(
            "Freshest install",
            tag=tag,
            unpack_dir=str(self.paths.unpack_dir),
        )
        return tag

    def launch(self, install: ActiveInstall) -> int:
        """Run the installed program and wait for it to exit.

        Returns:
            The program's exit code

        Raises:
            InstallError: If the program cannot be started
        """
        self.paths.userdata_dir.mkdir(parents=True, exist_ok=True)
        command = self.launch_template.format(
            game_dir=install.install_dir,
            userdata_dir=self.paths.userdata_dir,
        )
        logger.info(f"Launching {install.tag}", command=command)
        try:
            result = self.runner.execute(command, check=False, hide=False)
        except OSError as e:
            raise InstallError(
                f"game dir: {install.install_dir}: {e}"
            ) from e
        logger.info(f"{install.tag} exited", exit_code=result.exited)
        return result.exited

    def fix_font(self) -> bool:
        """Remove the user's font config. Returns True if one existed."""
        fonts = self.paths.userdata_dir / "config" / "fonts.json"
        if not fonts.exists():
            return False
        fonts.unlink()
        logger.info("Removed font config", path=str(fonts))
        return True
