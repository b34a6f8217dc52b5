"""Console reporting of test executions."""

import inspect
import pprint
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.rule import Rule
from rich.table import Table

from testnow.core.calls import (
    Cancelled,
    Done,
    ErrorResult,
    ExecutionStatus,
    RunStatistics,
    TestCall,
    TestCallExecution,
)
from testnow.core.paths import FileItem, FolderItem, as_relative_pathname


def plural(count: int) -> str:
    return "" if count == 1 else "s"


def format_value(value: Any) -> str:
    """Pretty-print a value or an exception for a report."""
    if isinstance(value, BaseException):
        return repr(value)
    if isinstance(value, type):
        return value.__name__
    return pprint.pformat(value, indent=1, width=88)


def source_lines(call: TestCall) -> list[str]:
    try:
        return inspect.getsource(call.fn).rstrip("\n").split("\n")
    except (OSError, TypeError):
        return []


class ConsoleReporter:
    """Reports per-file and global results on a rich console."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def report_file(self, statistics: RunStatistics, file: FileItem, root: FolderItem) -> None:
        """Print the one-line result of a test file."""
        name = escape(as_relative_pathname(file, root))
        ok, ko, skipped, total = statistics.ok, statistics.ko, statistics.skipped, statistics.total

        if ko > 0:
            self.console.print(f"\n[red]{name}: {ko} test{plural(ko)} failed on {total} test{plural(total)}[/red]")
        elif skipped > 0:
            self.console.print(
                f"\n[green]{name}: ok ({ok} test{plural(ok)}) skipped ({skipped} test{plural(skipped)})[/green]"
            )
        else:
            self.console.print(f"\n[green]{name}: ok ({total} test{plural(total)})[/green]")

    def report_execution(self, execution: TestCallExecution) -> None:
        """Print the details of an execution that did not pass."""
        state = execution.state
        description = escape(execution.call.describe())

        if execution.status == ExecutionStatus.INITIALIZED:
            self.console.print(f"\t[red]The test call {description} was not executed[/red]")
        elif isinstance(state, Cancelled):
            self.console.print(f"\t[red]Cancelled execution for the test call {description}[/red]")
            self.console.print(f"\t[red]{escape(format_value(state.error))}[/red]")
        elif isinstance(state, Done) and not state.passed:
            self.console.print(self._comparison_table(state, execution.call))

    def _comparison_table(self, state: Done, call: TestCall) -> Table:
        table = Table(show_header=False, box=None, padding=(0, 1, 0, 4))
        table.add_column("Label", style="bright_black", justify="right")
        table.add_column("Value", style="cyan")

        if isinstance(state.expected, ErrorResult):
            table.add_row("Expected error", escape(format_value(state.expected.error)))
        else:
            table.add_row("Expected value", escape(format_value(state.expected.value)))

        if isinstance(state.obtained, ErrorResult):
            table.add_row("but got error", escape(format_value(state.obtained.error)))
        else:
            table.add_row("but got value", escape(format_value(state.obtained.value)))

        if not call.is_anonymous:
            table.add_row("for", escape(call.describe()))
            return table

        arguments = call.describe_arguments()
        label = "for"
        if arguments:
            table.add_row("for", escape(f"anonymous({arguments})"))
            label = "defined as"
        for index, line in enumerate(source_lines(call)):
            table.add_row(label if index == 0 else "", escape(line))
        return table

    def report_summary(self, statistics: RunStatistics) -> None:
        """Print the global result of a run."""
        if statistics.ko > 0:
            text = (
                f"A total of {statistics.ko} test{plural(statistics.ko)} failed "
                f"on {statistics.total} test{plural(statistics.total)}."
            )
            style = "red"
        elif statistics.skipped > 0:
            text = (
                f"{statistics.ok} test{plural(statistics.ok)} passed, "
                f"{statistics.skipped} test{plural(statistics.skipped)} skipped."
            )
            style = "green"
        else:
            text = f"All {statistics.total} test{plural(statistics.total)} passed."
            style = "green"

        self.console.print()
        self.console.print(Rule(style="bright_black"))
        self.console.print(f"\n[{style}]{text}[/{style}]")
