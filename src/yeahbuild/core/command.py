"""Build command execution.

A build command is a single line from a project's configuration.
How that line becomes a process depends on the platform, so the
interpretation lives in a small CommandLine strategy selected once
by platform detection.
"""

from __future__ import annotations

import io
import platform
import shlex
import subprocess
from pathlib import Path

from yeahbuild.core.log import logger
from yeahbuild.core.result import CommandResult
from yeahbuild.core.runner import Runner
from yeahbuild.core.sink import LogSink

# Number of trailing output lines echoed to the build log per command
TAIL_LINES = 10


class CommandLine:
    """Turns a configured command line into something a shell runs."""

    shell: str | None = None
    change_directory = "cd"

    def prepare(self, line: str) -> str:
        raise NotImplementedError

    def quote(self, word: str) -> str:
        """Quote one word for this platform's shell."""
        raise NotImplementedError

    def in_directory(self, command: str, directory: Path | str) -> str:
        """Prefix a prepared command with a change into directory.

        The directory is quoted like any other word, so its name never
        reaches the shell as syntax.
        """
        target = self.quote(str(directory))
        return f"{self.change_directory} {target} && {command}"


class PosixCommandLine(CommandLine):
    """Whitespace-split argv with no shell expansion.

    Each word is quoted before it reaches the shell, so globs,
    pipes, redirections and variables are passed literally.
    """

    shell = "/bin/sh"

    def prepare(self, line: str) -> str:
        parts = line.split()
        if not parts:
            raise ValueError("empty command line")
        return " ".join(shlex.quote(part) for part in parts)

    def quote(self, word: str) -> str:
        return shlex.quote(word)


class WindowsCommandLine(CommandLine):
    """Native command interpreter, with direct PowerShell launches.

    Lines are handed to cmd.exe unchanged. Lines starting with
    powershell or pwsh are split on whitespace and the shell is
    invoked with those arguments instead.
    """

    shell = "cmd.exe"
    change_directory = "cd /d"
    alternate_shells = ("powershell", "pwsh")

    def prepare(self, line: str) -> str:
        parts = line.split()
        if not parts:
            raise ValueError("empty command line")
        if line.lstrip().lower().startswith(self.alternate_shells):
            return subprocess.list2cmdline(parts)
        return line

    def quote(self, word: str) -> str:
        # Always quoted: cmd.exe treats & | ( ) as syntax even without
        # whitespace. Paths and branch names cannot contain '"'.
        return f'"{word}"'


def detect_command_line(system: str | None = None) -> CommandLine:
    """Pick the CommandLine strategy for this platform."""
    system = system or platform.system()
    if system == "Windows":
        return WindowsCommandLine()
    return PosixCommandLine()


def resolve_workdir(path: Path | str) -> Path:
    """Absolute form of a project path.

    When the absolute path cannot be computed (the current directory
    no longer exists), the configured path is used as given.
    """
    try:
        return Path(path).absolute()
    except OSError as e:
        logger.debug(
            "Using unresolved project path", path=str(path), error=str(e)
        )
        return Path(path)


def tail_lines(output: str, count: int = TAIL_LINES) -> list[str]:
    """Last count lines of output (all of them if there are fewer)."""
    return output.splitlines()[-count:]


class CommandRunner:
    """Run build commands and report their output.

    Every command's trailing output lines are written to the build
    log whatever the outcome; the full output is returned to the
    caller.
    """

    def __init__(
        self,
        sink: LogSink,
        command_line: CommandLine | None = None,
        timeout: int | None = None,
    ):
        """Initialize command runner.

        Args:
            sink: Build log receiving output tails
            command_line: Interpretation strategy; detected from the
                platform when None
            timeout: Seconds before a command is killed. None leaves
                commands unbounded.
        """
        self.sink = sink
        self.command_line = command_line or detect_command_line()
        self.timeout = timeout

    def run(
        self,
        line: str,
        workdir: Path | str,
        env: dict[str, str] | None = None,
    ) -> CommandResult:
        """Run one command line.

        Args:
            line: Command line from the project configuration
            workdir: Project directory (made absolute here)
            env: Variables layered over the inherited environment

        Returns:
            CommandResult with the combined stdout/stderr text; error
            is set on launch failure, timeout or non-zero exit
        """
        cwd = resolve_workdir(workdir)
        buffer = io.StringIO()

        try:
            command = self.command_line.in_directory(
                self.command_line.prepare(line), cwd
            )
            result = Runner().execute(
                command,
                timeout=self.timeout,
                env=dict(env) if env else None,
                shell=self.command_line.shell,
                stream=buffer,
                check=False,
            )
        except (OSError, ValueError) as e:
            output = buffer.getvalue()
            self._echo_tail(output)
            return CommandResult(
                command=line,
                output=output,
                returncode=-1,
                error=f"failed to start '{line}': {e}",
            )

        output = buffer.getvalue()
        self._echo_tail(output)

        error = None
        if result.exited == -1 and self.timeout:
            error = f"'{line}' timed out after {self.timeout}s"
        elif result.exited != 0:
            error = f"'{line}' exited with status {result.exited}"

        return CommandResult(
            command=line,
            output=output,
            returncode=result.exited,
            error=error,
        )

    def _echo_tail(self, output: str) -> None:
        lines = tail_lines(output)
        if lines:
            self.sink.write("\n".join(lines))
