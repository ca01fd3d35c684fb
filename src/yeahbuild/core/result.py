"""Result types for command and project build execution."""

from datetime import timedelta

from pydantic import BaseModel, ConfigDict


class CommandResult(BaseModel):
    """Result of running one build command."""

    model_config = ConfigDict(frozen=True)

    command: str
    output: str
    returncode: int
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BuildOutcome(BaseModel):
    """Result of one project's build pipeline.

    Output holds everything captured up to and including the first
    failing command. Error is empty on success.
    """

    model_config = ConfigDict(frozen=True)

    project: str
    success: bool
    output: str = ""
    error: str = ""
    duration: timedelta = timedelta(0)


def format_duration(duration: timedelta) -> str:
    """Render a duration the way build logs show it (e.g. 1.25s)."""
    seconds = duration.total_seconds()
    if seconds < 60:
        return f"{seconds:.2f}s"
    minutes, seconds = divmod(seconds, 60)
    return f"{int(minutes)}m{seconds:04.1f}s"
