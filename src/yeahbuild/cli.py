#!/usr/bin/env python3
"""yeah-build CLI - build many projects from one YAML file."""

import sys
from pathlib import Path

from pydantic import AliasChoices, Field, ValidationError
from pydantic_settings import (
    BaseSettings,
    CliApp,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)
from rich.console import Console

from yeahbuild.build import (
    BuildScheduler,
    ProjectBuilder,
    ResultReporter,
    ResultSet,
    Selection,
)
from yeahbuild.build.reporter import platform_label
from yeahbuild.core.config import (
    DEFAULT_CONFIG_FILE,
    Config,
    write_default_config,
)
from yeahbuild.core.log import logger
from yeahbuild.core.sink import BuildLog
from yeahbuild.ui import BatchPrinter, InteractiveView


class YeahBuild(BaseSettings):
    """Build multiple projects (java, go, node, ...) from one YAML file.

    Each project is refreshed from git if configured, then its build
    commands run in order. Projects build one after another or all
    at once (global.parallel).

    In batch mode a failure with global.stop_on_error ends a
    sequential run at once; parallel runs still finish and summarize.

    Interactive mode keys:
      <n>      toggle project n
      a / d    select all / deselect all
      Enter/b  build the selection
      q        quit

    A missing configuration file is created with example projects.
    """

    config_file: Path = Field(
        default=DEFAULT_CONFIG_FILE,
        validation_alias=AliasChoices("c", "config"),
        description="Configuration file",
    )
    interactive: bool = Field(
        default=True,
        description=(
            "Start the interactive view. Defaults to the interactive "
            "key of the configuration file"
        ),
    )

    model_config = SettingsConfigDict(
        cli_prog_name="yeah-build",
        cli_implicit_flags=True,
        cli_ignore_unknown_args=True,
        populate_by_name=True,
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
        """Only the command line; everything else lives in Config."""
        return (init_settings,)

    def cli_cmd(self):
        """Load the configuration and start the selected mode."""
        console = Console(highlight=False)
        config = load_config(self.config_file, console)

        interactive = config.interactive
        if "interactive" in self.model_fields_set:
            interactive = self.interactive

        # Use config as context manager to ensure log files are closed
        with config:
            if interactive:
                exit_code = run_interactive(config, console)
            else:
                exit_code = run_batch(config, console)
        raise SystemExit(exit_code)


def load_config(path: Path, console: Console) -> Config:
    """Load the configuration or exit with status 1.

    A missing file is replaced with the example configuration first;
    an existing file that fails to load is left as it is.
    """
    try:
        return Config.load(path)
    except (ValidationError, ValueError, OSError) as e:
        console.print(
            f"Failed to load configuration {path}: {e}",
            style="red",
            markup=False,
            soft_wrap=True,
        )

    if not path.exists():
        write_default_config(path)
        console.print(
            f"Created default configuration file: {path}",
            markup=False,
            soft_wrap=True,
        )
    raise SystemExit(1)


def run_interactive(config: Config, console: Console) -> int:
    log = BuildLog()
    scheduler = BuildScheduler(log, ProjectBuilder.from_config(config, log))
    view = InteractiveView(
        Selection(config.projects),
        scheduler,
        config.policy,
        log,
        console=console,
    )
    view.run()
    return 0


def run_batch(config: Config, console: Console) -> int:
    """Build every enabled project, printing the log as it grows.

    A sequential run with stop_on_error exits at the first failure
    without a summary. Parallel runs always finish every project and
    print the summary, whatever stop_on_error says.

    Returns:
        Process exit status: 1 if any project failed
    """
    log = BuildLog()
    policy = config.policy
    projects = config.enabled_projects
    builder = ProjectBuilder.from_config(config, log)

    with BatchPrinter(log, console):
        log.write("=== Yeah-Build batch mode ===", style="bold")
        log.write(f"Platform: {platform_label()}")
        logger.info("Batch build", projects=len(projects))

        if not projects:
            log.write(
                "No enabled projects to build", level="warn", style="yellow"
            )
            return 0

        if policy.parallel or not policy.stop_on_error:
            scheduler = BuildScheduler(log, builder)
            try:
                outcomes = scheduler.execute(projects, policy)
            finally:
                scheduler.shutdown()
            return 0 if all(o.success for o in outcomes) else 1

        # Sequential fail-fast: exit on the first failure, no summary
        results = ResultSet()
        for project in projects:
            outcome = builder.build(project)
            results.append(outcome)
            if not outcome.success:
                log.write(
                    f"Build failed for {project.name}, stopping",
                    level="error",
                    style="red",
                )
                return 1

        ResultReporter(log).summarize(results)
        return 0


def main():
    """Main entry point for CLI."""
    CliApp.run(YeahBuild, cli_args=sys.argv[1:])


if __name__ == "__main__":
    main()
