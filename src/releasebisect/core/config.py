"""Application state and configuration."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import platformdirs
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from releasebisect.core.base import BaseConfig, BaseState
from releasebisect.core.log import Logger
from releasebisect.core.yaml_settings import (
    APP_NAME,
    CONFIG_FILENAME,
    YamlWithIncludesSettingsSource,
)

# Modules available for template substitution in YAML files
# Usage: {platformdirs.user_data_dir}, {os.getcwd}, {Path.cwd}
TEMPLATE_NAMESPACE = {
    'os': os,
    'platformdirs': platformdirs,
    'Path': Path,
}

# ============================================================
# CONFIG MODELS (loaded from YAML/env/CLI)
# ============================================================

class ReleasesConfig(BaseConfig):
    """Where release tags and their metadata come from."""

    repo: str = Field(
        description="GitHub repository as 'owner/name'"
    )
    remote_url: str = Field(
        description="Git remote listed with 'git ls-remote' for tags"
    )
    tag_glob: str = Field(
        default="*",
        description="Pattern passed to 'git ls-remote' to narrow the tags",
    )
    tag_prefix: str = Field(
        description=(
            "Tag name prefix in front of the date stamp; used to map "
            "unpacked directory names back to tags"
        )
    )
    tag_formats: list[str] = Field(
        description=(
            "strptime formats tried in order to read a timestamp out "
            "of a tag name; tags matching none are ignored"
        )
    )
    api_endpoint: str = Field(
        default="https://api.github.com",
        description="GitHub REST API base URL",
    )
    user_agent: str = Field(
        default="releasebisect",
        description="User-Agent header sent to GitHub",
    )
    token: str | None = Field(
        default=None,
        description=(
            "Optional GitHub token for higher API rate limits "
            "(e.g., from RELEASEBISECT_CONFIG__RELEASES__TOKEN)"
        ),
    )
    asset_priority: list[str] = Field(
        description=(
            "Asset name prefixes in order of preference; the first "
            "prefix with a matching asset wins"
        )
    )
    timeout: float = Field(
        default=60.0,
        description="HTTP timeout in seconds",
    )


class PathsConfig(BaseConfig):
    """Local directories used by a bisection session."""

    distr_dir: Path = Field(
        description="Directory holding downloaded release archives"
    )
    unpack_dir: Path = Field(
        description="Directory holding one unpacked directory per asset"
    )
    userdata_dir: Path = Field(
        description="User data directory shared by every launched release"
    )
    state_dir: Path = Field(
        description=(
            "Directory for track.json and blacklist.json "
            "(supports {config.*} templates)"
        )
    )


class BisectConfig(BaseConfig):
    """Tuning for the bisection controller."""

    days_back: int = Field(
        default=7,
        description=(
            "Days to step back from the last judged release when no "
            "good release is known yet ('advance Nd' overrides)"
        ),
    )


class Config(BaseConfig):
    """Application configuration loaded from YAML/env/CLI."""

    logger: Logger = Field(
        default=None,
        description="Logger configuration and runtime instance"
    )
    name: str = Field(
        default="default",
        description=(
            "Name of this bisection; separates log directories and, "
            "through the default state_dir, judgment logs"
        ),
    )
    releases: ReleasesConfig = Field(
        description="Release listing and metadata settings"
    )
    paths: PathsConfig = Field(
        description="Download, unpack and state directories"
    )
    bisect: BisectConfig = Field(
        default_factory=BisectConfig,
        description="Bisection controller settings"
    )
    log_root: Path = Field(
        default_factory=(
            lambda: Path(platformdirs.user_state_dir(APP_NAME, appauthor=False))
            / "logs"
        ),
        description=(
            "Root directory for all log files "
            "(supports {platformdirs.*} templates)"
        ),
    )
    commands: dict[str, dict[str, str]] = Field(
        default_factory=dict,
        description=(
            "Command templates organized by category (git, tools)"
        ),
    )

    @model_validator(mode='after')
    def _setup_logger(self) -> 'Config':
        """Initialize the global logger once config has loaded."""
        from releasebisect.core.log import Logger, setup_logger

        if self.logger is None:
            self.logger = Logger()

        setup_logger(
            log_root=self.log_root,
            session_name=self.name,
            console=self.logger.console,
            file=self.logger.file,
        )

        from releasebisect.core.yaml_settings import _cleanup_bootstrap_logger
        _cleanup_bootstrap_logger()

        return self

    def command(self, category: str, name: str) -> str:
        """Look up a command template.

        Raises:
            KeyError: If the template is not configured
        """
        try:
            return self.commands[category][name]
        except KeyError:
            raise KeyError(
                f"command template '{category}.{name}' is not configured"
            ) from None

    def close(self):
        """Close the global logger, then the other closeable children."""
        from releasebisect.core.log import logger
        if logger is not None:
            logger.close()

        super().close()


# ============================================================
# RUNTIME STATE MODELS (mutable while commands run)
# ============================================================

class SessionState(BaseState):
    """Interactive session runtime state."""

    active_tag: str | None = Field(
        default=None,
        description="Tag of the release currently prepared for testing",
    )
    commands_run: int = Field(
        default=0,
        description="Number of prompt commands dispatched",
    )
    status: str = Field(
        default="pending",
        description="Session status: pending, running, complete",
    )


class ResetState(BaseState):
    """Reset command runtime state."""

    entries_cleared: int = Field(
        default=0,
        description="Judgments removed from the track",
    )
    status: str = Field(
        default="pending",
        description="Reset status: pending, complete",
    )


class Runtime(BaseModel):
    """All runtime state, one section per command."""

    session: SessionState = Field(
        default_factory=SessionState,
        description="Interactive session runtime state"
    )
    reset: ResetState = Field(
        default_factory=ResetState,
        description="Reset command runtime state"
    )


# ============================================================
# STATE (config + runtime combined)
# ============================================================

class State(BaseSettings):
    """Complete application state - configuration and runtime.

    - config: loaded from YAML/env/CLI, validated on load
    - runtime: mutated by the running command
    """

    config: Config = Field(
        description=(
            "Application configuration (from YAML/env/CLI)"
        )
    )
    runtime: Runtime = Field(
        default_factory=Runtime,
        description=(
            "Runtime state (mutates while commands run)"
        ),
    )
    include: list[str] | None = Field(
        default=None,
        description=(
            "Additional YAML files to include and merge. "
            "Use --include on CLI or include: in YAML files."
        ),
    )

    model_config = SettingsConfigDict(
        yaml_file=CONFIG_FILENAME,
        env_file=".env",
        env_prefix="RELEASEBISECT_",
        env_nested_delimiter="__",
        cli_parse_args=True,
        cli_implicit_flags=True,
        cli_use_class_docs_for_groups=True,
        arbitrary_types_allowed=True,
        extra='ignore'
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Priority, highest first: init args, YAML files,
        .env, environment, file secrets."""
        return (
            init_settings,
            YamlWithIncludesSettingsSource(settings_cls),
            dotenv_settings,
            env_settings,
            file_secret_settings,
        )

    @model_validator(mode="after")
    def substitute_templates(self) -> "State":
        """Substitute {config.*} and {platformdirs.*} templates in
        every string, Path, dict value and list item."""
        self._substitute_recursive(self)
        return self

    def _substitute_recursive(self, obj: Any) -> None:
        if isinstance(obj, BaseModel):
            for field_name in obj.__class__.model_fields:
                value = getattr(obj, field_name)
                new_value = self._substitute_value(value)
                if new_value is not value:
                    setattr(obj, field_name, new_value)
        elif isinstance(obj, dict):
            for key in obj:
                obj[key] = self._substitute_value(obj[key])
        elif isinstance(obj, list):
            for i in range(len(obj)):
                obj[i] = self._substitute_value(obj[i])

    def _substitute_value(self, value: Any) -> Any:
        if isinstance(value, str):
            return self._substitute_string(value)
        elif isinstance(value, Path):
            return Path(self._substitute_string(str(value)))
        elif isinstance(value, (BaseModel, dict, list)):
            self._substitute_recursive(value)
            return value
        else:
            return value

    def _substitute_string(self, value: str) -> str:
        """Replace {field.path} templates with actual field values.

        Unresolvable names are left alone, so runtime placeholders
        such as {archive} or {game_dir} in command templates survive
        until the command is formatted.

        Examples:
            "{config.paths.unpack_dir}/tmp"
            → "/home/user/.local/share/releasebisect/unpacked/tmp"
            "{platformdirs.user_state_dir}"
            → "~/.local/state/releasebisect"
        """
        def replace_template(match):
            field_path = match.group(1)
            parts = field_path.split(".")

            if parts[0] in TEMPLATE_NAMESPACE:
                obj = TEMPLATE_NAMESPACE[parts[0]]
                parts = parts[1:]
            else:
                obj = self

            try:
                for part in parts:
                    obj = getattr(obj, part)

                if callable(obj):
                    obj = obj(APP_NAME, appauthor=False)

                return str(obj)
            except (AttributeError, TypeError):
                return match.group(0)

        return re.sub(r'\{([a-z._]+)\}', replace_template, value)


__all__ = ["State", "Config", "BaseConfig", "BaseState"]
