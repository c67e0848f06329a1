"""YAML configuration loading with include directive support."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import yaml
from platformdirs import user_config_dir
from pydantic_settings import BaseSettings, YamlConfigSettingsSource

APP_NAME = "releasebisect"
CONFIG_FILENAME = f"{APP_NAME}.yaml"

# Created lazily to avoid a circular import with core.log
_bootstrap_logger = None


def _get_bootstrap_logger():
    """Logger used while config is still loading."""
    global _bootstrap_logger
    if _bootstrap_logger is None:
        from releasebisect.core.log import Logger
        _bootstrap_logger = Logger()
        _bootstrap_logger.setup(log_root=Path.home(), session_name="bootstrap")
    return _bootstrap_logger


def _cleanup_bootstrap_logger():
    """Called once Config has set up the real logger."""
    global _bootstrap_logger
    if _bootstrap_logger:
        _bootstrap_logger.close()
        _bootstrap_logger = None


def default_config_path() -> Path:
    """Packaged defaults shipped next to the core package."""
    return Path(__file__).parent.parent / "defaults" / "default.yaml"


def _cli_includes(argv: list[str]) -> list[str]:
    """Collect --include values before pydantic parses the CLI."""
    includes = []
    i = 1
    while i < len(argv):
        if argv[i] == "--include" and i + 1 < len(argv):
            includes.append(argv[i + 1])
            i += 1
        i += 1
    return includes


class YamlWithIncludesSettingsSource(YamlConfigSettingsSource):
    """YAML settings source with include: and --include support.

    Deep merges, lowest priority first:
        package defaults < user config < project config
        < --include files.
    Files may pull in others with a top-level include: key,
    resolved relative to the including file.
    """

    def __init__(
        self, settings_cls: type[BaseSettings], yaml_file=None
    ):
        """
        Args:
            settings_cls: The Settings class being initialized
            yaml_file: Optional override for the extra config file(s)
        """
        includes = _cli_includes(sys.argv)

        base = yaml_file or settings_cls.model_config.get("yaml_file")
        if base and includes:
            yaml_file = (
                [base] if isinstance(base, (str, os.PathLike)) else list(base)
            ) + includes
        elif includes:
            yaml_file = includes
        else:
            yaml_file = base

        super().__init__(settings_cls, yaml_file)

    def _read_files(self, files, deep_merge: bool = False):  # noqa: ARG002
        """Load defaults, user config, project config, and includes.

        Files are always deep merged.

        Args:
            files: Extra file path(s) from yaml_file and --include

        Returns:
            Deep-merged dictionary of all loaded data
        """
        result = {}

        files_to_load = [
            default_config_path(),
            Path(user_config_dir(APP_NAME, appauthor=False))
            / CONFIG_FILENAME,
            Path(CONFIG_FILENAME),
        ]
        if files:
            if isinstance(files, (str, os.PathLike)):
                files = [files]
            files_to_load.extend(Path(f).expanduser() for f in files)

        # The project file may also be named explicitly; load it once
        seen = set()
        for file_path in files_to_load:
            key = file_path.resolve()
            if key in seen:
                continue
            seen.add(key)

            if file_path.is_file():
                with _get_bootstrap_logger().span(
                    "Configuration loading",
                    file=str(file_path),
                ):
                    data = self._load_file_recursive(file_path, set())
                    result = self._deep_merge(result, data)
            else:
                _get_bootstrap_logger().debug(
                    "Configuration file not found (skipping)",
                    file=str(file_path),
                )

        return result

    def _load_file_recursive(
        self, filepath: Path, visited: set[Path]
    ) -> dict:
        """Load a file and resolve its include: directives.

        Raises:
            ValueError: If circular include detected
        """
        if filepath in visited:
            raise ValueError(f"Circular include: {filepath}")
        visited.add(filepath)

        with open(filepath) as f:
            data = yaml.safe_load(f) or {}

        if "include" in data:
            includes = data.pop("include")
            if isinstance(includes, str):
                includes = [includes]

            for inc in includes:
                inc_path = self._resolve_path(inc, filepath)
                with _get_bootstrap_logger().span(
                    f"Including {inc_path.name}",
                    included_from=str(filepath),
                    include_file=str(inc_path),
                ):
                    inc_data = self._load_file_recursive(
                        inc_path, visited.copy()
                    )
                    data = self._deep_merge(inc_data, data)

        return data

    def _resolve_path(
        self, include_path: str, relative_to: Path
    ) -> Path:
        path = Path(include_path)
        if path.is_absolute():
            return path
        return (relative_to.parent / path).resolve()

    def _deep_merge(self, base: dict, override: dict) -> dict:
        """Deep merge override into base (override wins)."""
        result = base.copy()
        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        return result
