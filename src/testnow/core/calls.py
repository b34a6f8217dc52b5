"""Data models for test calls, their executions and statistics."""

import pprint
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Union

from testnow.errors import InvalidState


@dataclass(frozen=True)
class NormalResult:
    """A call that returned a value."""

    value: Any


@dataclass(frozen=True)
class ErrorResult:
    """A call that raised, or is expected to raise.

    ``error`` is an exception instance, or an exception class when the
    expectation only names the type of the error.
    """

    error: Union[BaseException, type]


CallResult = Union[NormalResult, ErrorResult]


@dataclass(frozen=True)
class TestCall:
    """One recorded intent to call a function with captured arguments."""

    __test__ = False

    fn: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    timeout: Optional[float] = None

    @property
    def name(self) -> str:
        return getattr(self.fn, "__name__", "") or "anonymous"

    @property
    def is_anonymous(self) -> bool:
        return self.name in ("anonymous", "<lambda>")

    def describe_arguments(self) -> str:
        parts = [pprint.pformat(value) for value in self.args]
        parts.extend(f"{key}={pprint.pformat(value)}" for key, value in self.kwargs.items())
        return ", ".join(parts)

    def describe(self) -> str:
        """Render the call as ``name(arguments)``."""
        return f"{self.name}({self.describe_arguments()})"


class ExecutionStatus(str, Enum):
    """State of a test call execution."""

    INITIALIZED = "initialized"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"
    DONE = "done"


@dataclass(frozen=True)
class Initialized:
    status = ExecutionStatus.INITIALIZED


@dataclass(frozen=True)
class Skipped:
    status = ExecutionStatus.SKIPPED


@dataclass(frozen=True)
class Cancelled:
    error: BaseException
    status = ExecutionStatus.CANCELLED


@dataclass(frozen=True)
class Done:
    passed: bool
    obtained: CallResult
    expected: CallResult
    status = ExecutionStatus.DONE


ExecutionState = Union[Initialized, Skipped, Cancelled, Done]


class TestCallExecution:
    """The outcome of a test call.

    Starts ``Initialized`` and moves at most once to ``Done``, ``Skipped``
    or ``Cancelled``. A record still ``Initialized`` after a run was never
    reached because the run was cancelled earlier.
    """

    __test__ = False

    def __init__(self, call: TestCall, expected: CallResult):
        self.call = call
        self.expected = expected
        self._state: ExecutionState = Initialized()

    def __repr__(self) -> str:
        return f"TestCallExecution({self.call.describe()}, {self._state!r})"

    @property
    def state(self) -> ExecutionState:
        return self._state

    @property
    def status(self) -> ExecutionStatus:
        return self._state.status

    @property
    def passed(self) -> bool:
        return isinstance(self._state, Done) and self._state.passed

    def _transition(self, state: ExecutionState) -> None:
        if not isinstance(self._state, Initialized):
            raise InvalidState(
                f"Execution of {self.call.describe()} is already {self.status.value}"
            )
        self._state = state

    def mark_done(self, passed: bool, obtained: CallResult) -> None:
        self._transition(Done(passed=passed, obtained=obtained, expected=self.expected))

    def mark_skipped(self) -> None:
        self._transition(Skipped())

    def mark_cancelled(self, error: BaseException) -> None:
        self._transition(Cancelled(error=error))


@dataclass
class RunStatistics:
    """Pass/fail/skip counts of one or more runs."""

    ok: int = 0
    ko: int = 0
    skipped: int = 0
    total: int = 0

    @classmethod
    def from_executions(cls, executions: list[TestCallExecution]) -> "RunStatistics":
        """Tally executions; anything not passed nor skipped counts as ko."""
        statistics = cls()
        for execution in executions:
            if execution.passed:
                statistics.ok += 1
            elif execution.status == ExecutionStatus.SKIPPED:
                statistics.skipped += 1
            else:
                statistics.ko += 1
            statistics.total += 1
        return statistics

    def add(self, other: "RunStatistics") -> "RunStatistics":
        """Merge other into these statistics and return self."""
        self.ok += other.ok
        self.ko += other.ko
        self.skipped += other.skipped
        self.total += other.total
        return self

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "ok": self.ok,
            "ko": self.ko,
            "skipped": self.skipped,
            "total": self.total,
        }
