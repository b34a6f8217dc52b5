"""Reporting of test results."""

from testnow.report.console import ConsoleReporter

__all__ = ["ConsoleReporter"]
