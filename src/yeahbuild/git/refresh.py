"""Git refresh - bring a project's working copy up to date before a build."""

from __future__ import annotations

from pathlib import Path

from yeahbuild.core.command import (
    CommandLine,
    detect_command_line,
    resolve_workdir,
)
from yeahbuild.core.config import ProjectConfig
from yeahbuild.core.log import logger
from yeahbuild.core.runner import Runner
from yeahbuild.core.sink import LogSink

# Overridable through the commands.git section of the configuration
DEFAULT_GIT_COMMANDS = {
    "checkout": "git checkout {branch}",
    "reset": "git reset --hard HEAD",
    "pull": "git pull",
}


class RefreshError(Exception):
    """A refresh step failed; the project must not be built."""


def is_working_copy(path: Path) -> bool:
    """True if path holds a git working copy (.git dir or file)."""
    return (path / ".git").exists()


class GitRefresher:
    """Run a project's refresh policy: checkout, reset, pull."""

    def __init__(
        self,
        sink: LogSink,
        commands: dict[str, str] | None = None,
        timeout: int | None = None,
        command_line: CommandLine | None = None,
    ):
        """Initialize refresher.

        Args:
            sink: Build log for status lines
            commands: Git command templates overriding the defaults
            timeout: Seconds before a git command is killed (None:
                unbounded)
            command_line: Strategy whose shell runs the git commands
        """
        self.sink = sink
        self.commands = {**DEFAULT_GIT_COMMANDS, **(commands or {})}
        self.timeout = timeout
        self.command_line = command_line or detect_command_line()

    def refresh(self, project: ProjectConfig) -> bool:
        """Apply the project's refresh policy.

        Does nothing unless git.pull is set. A project directory that
        is not a git working copy is skipped, not an error.

        Returns:
            True if a pull ran, False if the refresh was skipped

        Raises:
            RefreshError: If the branch checkout or the pull fails
        """
        if not project.git.pull:
            return False

        workdir = resolve_workdir(project.path)
        if not is_working_copy(workdir):
            self.sink.write(
                "Skipping git refresh (not a git working copy)",
                level="warn",
                style="yellow",
            )
            return False

        runner = Runner()

        if project.git.branch:
            branch = self.command_line.quote(project.git.branch)
            result = self._git(
                runner, "checkout", workdir, project, branch=branch
            )
            if result.exited != 0:
                raise RefreshError(
                    f"failed to switch to branch {project.git.branch}: "
                    f"{self._describe(result)}"
                )
            self.sink.write(
                f"Switched to branch: {project.git.branch}", style="blue"
            )

        if project.git.reset:
            result = self._git(runner, "reset", workdir, project)
            if result.exited != 0:
                # Discarding local changes is best-effort; the pull
                # below decides whether the refresh succeeds.
                logger.debug(
                    "Ignoring failed reset",
                    project=project.name,
                    returncode=result.exited,
                )

        result = self._git(runner, "pull", workdir, project)
        if result.exited != 0:
            raise RefreshError(f"git pull failed: {self._describe(result)}")

        self.sink.write(
            f"Git: {(result.stdout + result.stderr).strip()}", style="blue"
        )
        return True

    def _git(self, runner: Runner, name: str, workdir: Path,
             project: ProjectConfig, **params):
        command = self.command_line.in_directory(
            self.commands[name].format(**params), workdir
        )
        return runner.execute(
            command,
            timeout=self.timeout,
            env=dict(project.env) if project.env else None,
            shell=self.command_line.shell,
            log_level="debug",
            check=False,
        )

    @staticmethod
    def _describe(result) -> str:
        if result.exited == -1:
            return "timed out"
        detail = (result.stderr or result.stdout).strip()
        message = f"exit status {result.exited}"
        return f"{message}: {detail}" if detail else message
