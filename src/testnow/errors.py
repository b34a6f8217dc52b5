"""Exceptions raised by testnow."""

from typing import Optional


class TestNowError(Exception):
    """Base class for all testnow errors."""

    __test__ = False


class InvalidState(TestNowError):
    """Raised when the registry or the engine is used out of sequence."""

    pass


class ImportFailure(TestNowError):
    """Raised when the top-level code of a test module fails."""

    def __init__(self, pathname: str, message: Optional[str] = None):
        self.pathname = pathname
        super().__init__(message or f"Failed to import {pathname}")


class EnumerationFailure(TestNowError):
    """Raised when a folder cannot be read while walking a test folder."""

    def __init__(self, pathname: str, message: Optional[str] = None):
        self.pathname = pathname
        super().__init__(message or f"Failed to read {pathname}")


class EngineCancellation(TestNowError):
    """Aborts the remainder of a run."""

    pass


class CallTimeoutError(EngineCancellation):
    """A test call did not settle within its timeout."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Execution timed out (duration: {timeout}s)")
