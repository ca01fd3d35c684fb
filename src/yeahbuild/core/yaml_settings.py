"""YAML configuration loading with include directive support."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from platformdirs import user_config_dir
from pydantic_settings import BaseSettings, YamlConfigSettingsSource

from yeahbuild.core.log import logger

DEFAULTS_DIR = Path(__file__).parent.parent / "defaults"


def user_config_file() -> Path:
    """Location of the per-user configuration file."""
    return (
        Path(user_config_dir("yeah-build", appauthor=False))
        / "yeah-build.yaml"
    )


class YamlWithIncludesSettingsSource(YamlConfigSettingsSource):
    """YAML settings source with include: directive support.

    Loads, in priority order (later wins):
        package defaults < user config < requested config file(s)

    Package defaults (defaults/default.yaml) and the user config are
    optional layers; the requested files must exist. Every file may
    carry an include: directive naming further files, which are
    resolved relative to the including file and merged underneath it.
    """

    def __init__(
        self, settings_cls: type[BaseSettings], yaml_file=None
    ):
        """Initialize the source.

        Args:
            settings_cls: The Settings class being initialized
            yaml_file: Config file path(s); falls back to the
                settings class's yaml_file setting
        """
        yaml_file = yaml_file or settings_cls.model_config.get("yaml_file")
        super().__init__(settings_cls, yaml_file)

    def _read_files(self, files, deep_merge: bool = True):
        """Load defaults, user config and the requested files.

        Args:
            files: Requested config file path(s)

        Returns:
            Deep-merged dictionary of all loaded data

        Raises:
            FileNotFoundError: If a requested file does not exist
        """
        result = {}

        optional = [DEFAULTS_DIR / "default.yaml", user_config_file()]
        for file_path in optional:
            if file_path.is_file():
                data = self._load_file_recursive(file_path, set())
                result = self._deep_merge(result, data)
            else:
                logger.debug(
                    "Configuration file not found (skipping)",
                    file=str(file_path),
                )

        if files is None:
            return result
        if isinstance(files, (str, os.PathLike)):
            files = [files]

        for file_path in (Path(f).expanduser() for f in files):
            if not file_path.is_file():
                raise FileNotFoundError(
                    f"Configuration file not found: {file_path}"
                )
            logger.debug("Configuration loading", file=str(file_path))
            data = self._load_file_recursive(file_path, set())
            result = self._deep_merge(result, data)

        return result

    def _load_file_recursive(
        self, filepath: Path, visited: set[Path]
    ) -> dict:
        """Load file and process include: directives recursively.

        Args:
            filepath: Path to YAML file to load
            visited: Set of already-visited files for cycle detection

        Returns:
            Dictionary with all includes resolved and merged

        Raises:
            ValueError: If circular include detected or the file
                is not a mapping
        """
        filepath = filepath.resolve()
        if filepath in visited:
            raise ValueError(f"Circular include: {filepath}")
        visited.add(filepath)

        with open(filepath, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(
                f"Configuration file must contain a mapping: {filepath}"
            )

        if "include" in data:
            includes = data.pop("include")
            if isinstance(includes, str):
                includes = [includes]

            for inc in includes:
                inc_path = self._resolve_path(inc, filepath)
                logger.debug(
                    "Including configuration file",
                    included_from=str(filepath),
                    include_file=str(inc_path),
                )
                inc_data = self._load_file_recursive(
                    inc_path, visited.copy()
                )
                data = self._deep_merge(inc_data, data)

        return data

    def _resolve_path(
        self, include_path: str, relative_to: Path
    ) -> Path:
        """Resolve include path relative to the including file."""
        path = Path(include_path).expanduser()
        if path.is_absolute():
            return path
        return (relative_to.parent / path).resolve()

    def _deep_merge(self, base: dict, override: dict) -> dict:
        """Deep merge override into base (override wins).

        Lists are replaced, not concatenated: a project file that
        defines projects: replaces any inherited list.
        """
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
