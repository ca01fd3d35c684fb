"""Command execution using invoke library with custom extensions."""

import contextlib
import os
from typing import IO

from invoke import Context, Result
from invoke.exceptions import CommandTimedOut

from yeahbuild.core.log import logger


class Runner(Context):
    """Wrapper around invoke.Context with custom command
    execution methods.

    Callers put any change of directory into the command itself,
    quoted for their shell; invoke's cd() only escapes spaces.
    """

    def kill(self) -> None:
        """Kill the running subprocess.

        invoke's kill() sends signal.SIGKILL, which does not exist
        on Windows. os.kill() on Windows accepts a numeric value and
        passes it to TerminateProcess() as the exit code, so 9 works
        there. POSIX systems use invoke's implementation.

        Reached when an enforced build timeout expires.
        """
        import platform

        if platform.system() == "Windows":
            pid = self.pid if self.using_pty else self.process.pid
            with contextlib.suppress(ProcessLookupError):
                os.kill(pid, 9)
            return

        super().kill()

    def execute(
        self,
        command: str,
        timeout: int | None = None,
        env: dict[str, str] | None = None,
        shell: str | None = None,
        stream: IO[str] | None = None,
        log_level: str | None = None,
        check: bool = True,
    ) -> Result:
        """Execute a command with full control over execution
        parameters.

        Args:
            command: Command string to execute
            timeout: Maximum execution time in seconds; None waits
                forever
            env: Environment variables to set (updates os.environ,
                does not replace it)
            shell: Shell used to interpret the command; invoke's
                platform default when None
            stream: If given, stdout and stderr are both written
                here in arrival order
            log_level: Log level for captured output lines
            check: If True, raise exception on non-zero exit
                code

        Returns:
            invoke.Result with stdout, stderr, exited (return
                code). A timed out command reports exited == -1.

        Raises:
            invoke.UnexpectedExit: If check=True and command
                returns non-zero
        """
        kwargs = {
            "hide": stream is None,
            "warn": not check,
            "in_stream": False,
        }

        if stream is not None:
            kwargs["out_stream"] = stream
            kwargs["err_stream"] = stream

        if timeout:
            kwargs["timeout"] = timeout

        if env:
            kwargs["env"] = env

        if shell:
            kwargs["shell"] = shell

        logger.spew("Executing command", command=command)

        try:
            result = self.run(command, **kwargs)
        except CommandTimedOut as e:
            result = e.result
            result.exited = -1

        if log_level:
            for line in result.stdout.splitlines():
                logger.log(log_level, "{line}", line=line.rstrip())
            for line in result.stderr.splitlines():
                logger.log(log_level, "{line}", line=line.rstrip())

        return result
