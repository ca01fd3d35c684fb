"""Build configuration loaded from YAML, .env and the environment."""

from __future__ import annotations

from pathlib import Path

from pydantic import ConfigDict, Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from yeahbuild.core.base import BaseCloseable, BaseConfig
from yeahbuild.core.log import Logger
from yeahbuild.core.yaml_settings import (
    DEFAULTS_DIR,
    YamlWithIncludesSettingsSource,
)

DEFAULT_CONFIG_FILE = Path("yeah-build.yaml")

# Applied when the configuration leaves timeout unset, zero or negative
DEFAULT_TIMEOUT = 600

# ============================================================
# PROJECT MODELS
# ============================================================

class GitConfig(BaseConfig):
    """Version control refresh policy for one project."""

    model_config = ConfigDict(frozen=True)

    pull: bool = Field(
        default=False,
        description="Pull remote changes before building",
    )
    branch: str = Field(
        default="",
        description="Branch to check out before pulling (empty: stay)",
    )
    reset: bool = Field(
        default=False,
        description="Discard local changes (git reset --hard) first",
    )


class BuildConfig(BaseConfig):
    """Build steps for one project."""

    model_config = ConfigDict(frozen=True)

    commands: list[str] = Field(
        default_factory=list,
        description="Command lines run in order in the project directory",
    )
    clean: bool = Field(
        default=False,
        description="Informational: the commands include a clean step",
    )
    test: bool = Field(
        default=False,
        description="Informational: the commands run tests",
    )


class ProjectConfig(BaseConfig):
    """One configured unit of work."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    name: str = Field(description="Project name, unique within a config")
    path: Path = Field(description="Project directory")
    type: str = Field(
        default="",
        description="Project kind (java, go, node, ...); display only",
    )
    git: GitConfig = Field(default_factory=GitConfig)
    build: BuildConfig = Field(default_factory=BuildConfig)
    env: dict[str, str] = Field(
        default_factory=dict,
        description="Environment variables layered over the inherited ones",
    )
    disabled: bool = Field(
        default=False,
        description="Hide the project from selection and batch builds",
    )

    @property
    def enabled(self) -> bool:
        return not self.disabled


class ExecutionPolicy(BaseConfig):
    """Global knobs for a build run (the global: section)."""

    model_config = ConfigDict(frozen=True)

    parallel: bool = Field(
        default=False,
        description="Build all selected projects concurrently",
    )
    stop_on_error: bool = Field(
        default=False,
        description=(
            "Sequential runs stop at the first failed project. "
            "Has no effect on parallel runs."
        ),
    )
    log_file: Path | None = Field(
        default=None,
        description="Text file receiving the build log (empty: none)",
    )
    timeout: int = Field(
        default=DEFAULT_TIMEOUT,
        description="Per-command timeout in seconds",
    )
    enforce_timeout: bool = Field(
        default=False,
        description=(
            "Kill commands that run longer than timeout. When false "
            "the timeout is advisory only."
        ),
    )

    @field_validator("log_file", mode="before")
    @classmethod
    def _empty_log_file(cls, value):
        if value in ("", None):
            return None
        return value

    @field_validator("timeout", mode="before")
    @classmethod
    def _default_timeout(cls, value):
        if value is None or int(value) <= 0:
            return DEFAULT_TIMEOUT
        return value

    @property
    def command_timeout(self) -> int | None:
        """Timeout handed to the command runner, None when advisory."""
        return self.timeout if self.enforce_timeout else None


# ============================================================
# ROOT CONFIG
# ============================================================

class Config(BaseSettings, BaseCloseable):
    """Complete build configuration.

    Values come from, highest priority first: the YAML files handed
    to load() (with package defaults and the user config beneath
    them), a .env file, then the environment (YEAHBUILD_INTERACTIVE;
    the aliased global section reads GLOBAL__PARALLEL and friends).
    """

    interactive: bool = Field(
        default=False,
        description="Start the interactive view (false: batch mode)",
    )
    global_: ExecutionPolicy = Field(
        default_factory=ExecutionPolicy,
        alias="global",
        description="Execution policy shared by all projects",
    )
    projects: list[ProjectConfig] = Field(
        default_factory=list,
        description="Projects in display and build order",
    )
    logger: Logger | None = Field(
        default=None,
        description="Logger configuration and runtime instance",
    )
    commands: dict[str, dict[str, str]] = Field(
        default_factory=dict,
        description="Command templates by category (git, ...)",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="YEAHBUILD_",
        env_nested_delimiter="__",
        populate_by_name=True,
        arbitrary_types_allowed=True,
        extra='ignore',
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
        """YAML data arrives as init arguments (see load())."""
        return (init_settings, dotenv_settings, env_settings)

    @classmethod
    def load(cls, path: Path | str = DEFAULT_CONFIG_FILE) -> Config:
        """Load configuration from a YAML file.

        Args:
            path: Config file; include: directives inside it are
                followed

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If an include cycle is found
            pydantic.ValidationError: If the data is invalid
        """
        source = YamlWithIncludesSettingsSource(cls, yaml_file=Path(path))
        return cls(**source())

    @model_validator(mode='after')
    def _check_unique_names(self) -> 'Config':
        seen = set()
        for project in self.projects:
            if project.name in seen:
                raise ValueError(f"Duplicate project name: {project.name}")
            seen.add(project.name)
        return self

    @model_validator(mode='after')
    def _setup_logger(self) -> 'Config':
        """Initialize the global logger singleton after load.

        The file sink writes to global.log_file unless the logger
        section names its own path.
        """
        from yeahbuild.core.log import setup_logger

        if self.logger is None:
            self.logger = Logger()

        self.logger = setup_logger(
            log_file=self.global_.log_file,
            level=self.logger.level,
            console=self.logger.console,
            file=self.logger.file,
        )
        return self

    @property
    def policy(self) -> ExecutionPolicy:
        return self.global_

    @property
    def enabled_projects(self) -> list[ProjectConfig]:
        return [p for p in self.projects if p.enabled]


def write_default_config(path: Path | str = DEFAULT_CONFIG_FILE) -> Path:
    """Write the example configuration to path.

    Returns:
        The path written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        (DEFAULTS_DIR / "example.yaml").read_text(encoding="utf-8"),
        encoding="utf-8",
    )
    return path


__all__ = [
    "BuildConfig",
    "Config",
    "ExecutionPolicy",
    "GitConfig",
    "ProjectConfig",
    "write_default_config",
]
