"""Interactive terminal view.

A rich rendering of the project list next to the tail of the build
log, driven by one-line commands typed at a prompt:

    <n> [<n> ...]  toggle projects by their listed number
    a              select all
    d              deselect all
    <Enter> / b    build the selection
    ? / h          show the command help in the output pane
    q              quit
"""

from __future__ import annotations

import time

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from yeahbuild.build.scheduler import BuildScheduler
from yeahbuild.build.selection import Selection
from yeahbuild.core.config import ExecutionPolicy
from yeahbuild.core.log import logger
from yeahbuild.core.result import BuildOutcome, format_duration
from yeahbuild.core.sink import BuildLog

HELP = (
    "[yellow]<n>[/yellow]:toggle  [yellow]a[/yellow]:select all  "
    "[yellow]d[/yellow]:deselect all  [yellow]Enter/b[/yellow]:build  "
    "[yellow]?[/yellow]:help  [yellow]q[/yellow]:quit"
)

# Build log lines shown in the output pane
OUTPUT_LINES = 30

# Seconds between screen refreshes while a build runs
REFRESH_INTERVAL = 0.25


class InteractiveView:
    """Project picker and build monitor.

    Parameters
    ----------
    selection:
        Selection over the enabled projects.
    scheduler:
        Scheduler that runs the builds.
    policy:
        Execution policy handed to every run.
    log:
        Build log shown in the output pane.
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(
        self,
        selection: Selection,
        scheduler: BuildScheduler,
        policy: ExecutionPolicy,
        log: BuildLog,
        console: Console | None = None,
    ) -> None:
        self.selection = selection
        self.scheduler = scheduler
        self.policy = policy
        self.log = log
        self.console = console or Console(highlight=False)
        self.status: dict[str, BuildOutcome] = {}
        self.scheduler.on_outcome(self._record)

    def _record(self, outcome: BuildOutcome) -> None:
        self.status[outcome.project] = outcome

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render_projects(self) -> Table:
        table = Table(
            show_header=True,
            header_style="bold cyan",
            expand=True,
            pad_edge=True,
        )
        table.add_column("#", style="dim", width=4, justify="right")
        table.add_column("", width=3)
        table.add_column("Project", min_width=16)
        table.add_column("Type", style="dim")
        table.add_column("Status", justify="center")

        for number, project in enumerate(self.selection.projects, start=1):
            mark = "[X]" if self.selection.is_selected(project.name) else "[ ]"
            table.add_row(
                str(number),
                Text(mark),
                Text(project.name),
                Text(project.type),
                self._status_text(project.name),
            )
        return table

    def _status_text(self, name: str) -> Text:
        outcome = self.status.get(name)
        if outcome is None:
            return Text("-", style="dim")
        if outcome.success:
            return Text(
                f"ok {format_duration(outcome.duration)}", style="green"
            )
        return Text("failed", style="bold red")

    def render_output(self) -> Text:
        output = Text()
        for line in self.log.tail(OUTPUT_LINES):
            output.append(line.text + "\n", style=line.style)
        return output

    def render(self) -> Group:
        """Whole screen: project list, output pane and help line."""
        layout = Table.grid(expand=True)
        layout.add_column(ratio=1)
        layout.add_column(ratio=2)
        layout.add_row(
            Panel(
                self.render_projects(),
                title="Projects",
                title_align="left",
                border_style="blue",
            ),
            Panel(
                self.render_output(),
                title="Build Output",
                title_align="left",
                border_style="blue",
            ),
        )
        return Group(layout, Text.from_markup(HELP, justify="center"))

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def handle(self, command: str) -> bool:
        """Apply one prompt command.

        Returns:
            False when the user asked to quit, True otherwise
        """
        command = command.strip().lower()

        if command == "q":
            return False
        if command in ("", "b"):
            self.build()
        elif command == "a":
            self.selection.select_all()
        elif command == "d":
            self.selection.deselect_all()
        elif command in ("?", "h"):
            self.log.write(Text.from_markup(HELP).plain)
        else:
            self._toggle_numbers(command.split())
        return True

    def _toggle_numbers(self, words: list[str]) -> None:
        for word in words:
            if not word.isdigit():
                self.log.write(
                    f"Unknown command: {word}", level="warn", style="yellow"
                )
                continue
            index = int(word) - 1
            if not 0 <= index < len(self.selection.projects):
                self.log.write(
                    f"No project numbered {word}", level="warn", style="yellow"
                )
                continue
            self.selection.toggle(self.selection.projects[index].name)

    def build(self) -> None:
        """Build the selected projects, refreshing the screen until done."""
        projects = self.selection.selected_projects()
        self.status.clear()
        self.log.clear()

        future = self.scheduler.run(projects, self.policy)
        if future is None:
            return

        with Live(
            self.render(),
            console=self.console,
            refresh_per_second=1 / REFRESH_INTERVAL,
            transient=True,
        ) as live:
            while not future.done():
                live.update(self.render())
                time.sleep(REFRESH_INTERVAL)
        future.result()

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    def run(self) -> None:
        """Prompt for commands until the user quits."""
        logger.info("Interactive view started",
                    projects=len(self.selection.projects))
        try:
            while True:
                self.console.clear()
                self.console.print(self.render())
                if not self.handle(self.console.input("> ")):
                    break
        except (KeyboardInterrupt, EOFError):
            self.console.print()
        finally:
            self.scheduler.shutdown(wait=False)
