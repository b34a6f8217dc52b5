"""Sequential execution of registered test calls.

Calls run one at a time on the running event loop. A call whose result is
awaitable is raced against its timeout; a synchronous call blocks the loop
and so always completes before its timer could fire.

A single timeout cancels the whole remaining run: the timed out call is
marked cancelled and every later call stays initialized. A hung call is
taken as a sign that the environment of the batch is no longer reliable.
"""

import asyncio
import inspect
import logging
import math
from typing import Any

from testnow.core.calls import (
    CallResult,
    ErrorResult,
    NormalResult,
    TestCallExecution,
)
from testnow.core.registry import TestCallRegistry
from testnow.errors import CallTimeoutError

log = logging.getLogger("testnow.engine")

DEFAULT_TIMEOUT = 0.2


def deep_equal(expected: Any, obtained: Any) -> bool:
    """Type-strict structural equality.

    Both sides must have exactly the same type. Dicts, lists, tuples and
    sets are compared item by item, exceptions by args and attributes, and
    plain objects without their own ``__eq__`` by their attributes.
    Anything else falls back to ``==``.
    """
    if expected is obtained:
        return True
    if type(expected) is not type(obtained):
        return False

    if isinstance(expected, float) and math.isnan(expected):
        return math.isnan(obtained)
    if isinstance(expected, dict):
        return expected.keys() == obtained.keys() and all(
            deep_equal(value, obtained[key]) for key, value in expected.items()
        )
    if isinstance(expected, (list, tuple)):
        return len(expected) == len(obtained) and all(
            deep_equal(a, b) for a, b in zip(expected, obtained)
        )
    if isinstance(expected, (set, frozenset)):
        return len(expected) == len(obtained) and all(
            any(deep_equal(a, b) for b in obtained) for a in expected
        )
    if isinstance(expected, BaseException):
        return deep_equal(expected.args, obtained.args) and deep_equal(
            vars(expected), vars(obtained)
        )
    if (
        type(expected).__eq__ is object.__eq__
        and hasattr(expected, "__dict__")
        and not callable(expected)
    ):
        return deep_equal(vars(expected), vars(obtained))
    return bool(expected == obtained)


def errors_equal(expected: BaseException, obtained: BaseException) -> bool:
    """Structural equality of two exceptions: type, args and attributes."""
    return deep_equal(expected, obtained)


def matches_value(value: Any, expected: CallResult) -> bool:
    return isinstance(expected, NormalResult) and deep_equal(expected.value, value)


def matches_error(error: BaseException, expected: CallResult) -> bool:
    if not isinstance(expected, ErrorResult):
        return False
    if isinstance(expected.error, BaseException):
        return errors_equal(expected.error, error)
    return isinstance(error, expected.error)


def _consume_outcome(task: "asyncio.Future[Any]") -> None:
    # retrieve the outcome of an abandoned task
    if not task.cancelled():
        task.exception()


class ExecutionEngine:
    """Drains a registry, running its calls in registration order."""

    def __init__(self, registry: TestCallRegistry, default_timeout: float = DEFAULT_TIMEOUT):
        self.registry = registry
        self.default_timeout = default_timeout

    async def run(self, skip_timeboxed_tests: bool = False) -> list[TestCallExecution]:
        """Run every pending call.

        Args:
            skip_timeboxed_tests: Mark calls registered with a timeout as
                skipped instead of running them

        Returns:
            All execution records, including those left initialized when
            the run was cancelled

        Raises:
            InvalidState: If a run is in progress or the calls were already run
        """
        executions = self.registry.begin_run()
        log.debug("Running %d test calls", len(executions))

        try:
            for execution in executions:
                if skip_timeboxed_tests and execution.call.timeout is not None:
                    execution.mark_skipped()
                elif not await self._execute(execution):
                    log.debug("Run cancelled at %s", execution.call.describe())
                    break

                # let the loop process other callbacks between two calls
                await asyncio.sleep(0)
        finally:
            self.registry.end_run()

        return executions

    async def _execute(self, execution: TestCallExecution) -> bool:
        """Run one call and record its outcome.

        Returns:
            False if the run must stop after this call
        """
        call = execution.call
        timeout = call.timeout if call.timeout is not None else self.default_timeout

        try:
            outcome = call.fn(*call.args, **call.kwargs)
        except Exception as e:
            return self._settle(execution, error=e)

        if not inspect.isawaitable(outcome):
            return self._settle(execution, value=outcome)

        task = asyncio.ensure_future(outcome)
        done, _ = await asyncio.wait({task}, timeout=timeout)

        if not done:
            task.add_done_callback(_consume_outcome)
            task.cancel()
            execution.mark_cancelled(CallTimeoutError(timeout))
            return False

        if task.cancelled():
            return self._settle(execution, error=asyncio.CancelledError())

        error = task.exception()
        if error is not None:
            return self._settle(execution, error=error)
        return self._settle(execution, value=task.result())

    def _settle(self, execution: TestCallExecution, value: Any = None, error: Any = None) -> bool:
        try:
            if error is None:
                passed = matches_value(value, execution.expected)
                execution.mark_done(passed, NormalResult(value))
            else:
                passed = matches_error(error, execution.expected)
                execution.mark_done(passed, ErrorResult(error))
        except Exception as e:
            # comparing the outcome failed: nothing after this call can be trusted
            execution.mark_cancelled(e)
            return False
        return True
