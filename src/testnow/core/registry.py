"""Registration of test calls."""

import logging
from typing import Any, Callable

from testnow.core.calls import ErrorResult, NormalResult, TestCall, TestCallExecution
from testnow.errors import InvalidState

log = logging.getLogger("testnow.registry")


class CallSpecifier:
    """Finalizes a registered call with its expected outcome.

    A call only becomes a test once ``equals`` or ``throws`` is called:
    a call registered without an expectation is never run.
    """

    def __init__(self, registry: "TestCallRegistry", call: TestCall):
        self._registry = registry
        self._call = call
        self._finalized = False

    def _finalize(self, expected) -> None:
        if self._finalized:
            raise InvalidState(f"{self._call.describe()} already has an expectation")
        self._registry._append(TestCallExecution(self._call, expected))
        self._finalized = True

    def equals(self, value: Any) -> None:
        """Expect the call to return a value equal to ``value``."""
        self._finalize(NormalResult(value))

    def throws(self, error) -> None:
        """Expect the call to raise.

        Args:
            error: An exception instance, compared by type, args and
                attributes, or an exception class, matched with isinstance.
                Only Exception subclasses can be expected: SystemExit,
                KeyboardInterrupt and the like are never caught.
        """
        if not (
            isinstance(error, Exception)
            or (isinstance(error, type) and issubclass(error, Exception))
        ):
            raise TypeError(
                f"throws() expects an Exception or an Exception subclass, got {error!r}"
            )
        self._finalize(ErrorResult(error))


class TestCallRegistry:
    """Ordered list of pending test calls.

    Test modules receive a registry and call it like a function::

        check(add, 1, 2).equals(3)
        check.stop_past(0.5, fetch, "key").throws(KeyError)

    Registration is only possible until a run starts; ``reset()`` opens
    a new registration phase.
    """

    __test__ = False

    def __init__(self):
        self._executions: list[TestCallExecution] = []
        self._running = False
        self._consumed = False

    def __len__(self) -> int:
        return len(self._executions)

    def __call__(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> CallSpecifier:
        return self.register(fn, *args, **kwargs)

    @property
    def running(self) -> bool:
        return self._running

    @property
    def consumed(self) -> bool:
        """True once a run started on the current calls."""
        return self._consumed

    @property
    def executions(self) -> list[TestCallExecution]:
        """Snapshot of the registered executions, in registration order."""
        return list(self._executions)

    def _check_registration_phase(self) -> None:
        if self._running:
            raise InvalidState("Cannot register a test call while running")
        if self._consumed:
            raise InvalidState("Cannot register a test call after run(): call reset() first")

    def _append(self, execution: TestCallExecution) -> None:
        self._check_registration_phase()
        self._executions.append(execution)

    def register(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> CallSpecifier:
        """Register a call of ``fn`` with the given arguments."""
        self._check_registration_phase()
        return CallSpecifier(self, TestCall(fn=fn, args=args, kwargs=kwargs))

    def register_with_timeout(
        self, timeout: float, fn: Callable[..., Any], *args: Any, **kwargs: Any
    ) -> CallSpecifier:
        """Register a call of ``fn`` that must settle within ``timeout`` seconds."""
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ValueError(f"Timeout must be a positive number of seconds, got {timeout!r}")
        self._check_registration_phase()
        return CallSpecifier(self, TestCall(fn=fn, args=args, kwargs=kwargs, timeout=timeout))

    stop_past = register_with_timeout

    def reset(self) -> None:
        """Drop every registered call."""
        if self._running:
            raise InvalidState("Cannot call reset() while running")
        log.debug("Reset registry (%d calls dropped)", len(self._executions))
        self._executions = []
        self._consumed = False

    def truncate(self, count: int) -> None:
        """Drop the calls registered after the first ``count`` ones."""
        if self._running:
            raise InvalidState("Cannot truncate the registry while running")
        del self._executions[count:]

    def begin_run(self) -> list[TestCallExecution]:
        """Close the registration phase and hand over the executions to run."""
        if self._running:
            raise InvalidState("run() has already been called")
        if self._consumed:
            raise InvalidState("These test calls were already run: call reset() first")
        self._running = True
        self._consumed = True
        return self.executions

    def end_run(self) -> None:
        self._running = False
