"""Test folder execution orchestration."""

import logging
import time
from pathlib import Path
from typing import Optional, Union

from testnow.config import TestNowConfig
from testnow.core.calls import RunStatistics
from testnow.core.engine import ExecutionEngine
from testnow.core.loader import load_test_module
from testnow.core.paths import (
    FileItem,
    FolderItem,
    as_absolute_folder,
    has_extension,
    normalize_folder_pathname,
)
from testnow.core.registry import TestCallRegistry
from testnow.core.walker import FolderWalker, WalkerOptions, make_freshness_predicate

log = logging.getLogger("testnow.runner")


def as_root_folder(root: Union[FolderItem, str, Path]) -> FolderItem:
    """Resolve a folder reference to an absolute FolderItem."""
    if isinstance(root, FolderItem):
        return root
    return as_absolute_folder(normalize_folder_pathname(str(Path(root).resolve())))


class FolderRunner:
    """Runs the test calls of every test file below a folder.

    Files are processed one after the other: the registry is reset, the
    file is loaded (which registers its calls), the calls are run and the
    statistics of the file are added to the global ones. Any failure to
    load a file, read a folder or run the calls stops the whole walk.
    """

    def __init__(
        self,
        config: Optional[TestNowConfig] = None,
        registry: Optional[TestCallRegistry] = None,
        reporter=None,
    ):
        """Initialize the runner.

        Args:
            config: Discovery and execution settings (defaults if None)
            registry: Registry injected in test modules (a new one if None)
            reporter: Object with report_file and report_execution methods,
                such as testnow.report.console.ConsoleReporter
        """
        self.config = config or TestNowConfig()
        self.registry = registry if registry is not None else TestCallRegistry()
        self.reporter = reporter
        self.engine = ExecutionEngine(
            self.registry,
            default_timeout=self.config.execution.default_timeout_seconds,
        )

    def walker_options(self, start_time: float) -> WalkerOptions:
        discovery = self.config.discovery
        item_predicate = None
        if discovery.only_last_modified:
            item_predicate = make_freshness_predicate(start_time, discovery.max_execution_age_seconds)
        return WalkerOptions(depth_limit=discovery.depth_limit, item_predicate=item_predicate)

    async def run(self, root: Union[FolderItem, str, Path]) -> RunStatistics:
        """Run every test file below ``root``.

        Returns:
            Statistics of all the files that registered at least one call

        Raises:
            ImportFailure: If a test file raises while being loaded
            EnumerationFailure: If a folder cannot be read
            InvalidState: If the registry is used by another run
        """
        folder = as_root_folder(root)
        statistics = RunStatistics()
        walker = FolderWalker(folder, self.walker_options(time.time()))

        try:
            for item in walker:
                if has_extension(item, self.config.discovery.extensions):
                    statistics.add(await self.run_file(item, folder))
        finally:
            walker.close()

        return statistics

    async def run_file(self, file: FileItem, root: FolderItem) -> RunStatistics:
        """Load one test file and run the calls it registers."""
        self.registry.reset()
        try:
            load_test_module(file, self.registry, search_paths=[root.folder_pathname])
            executions = await self.engine.run(
                skip_timeboxed_tests=self.config.execution.skip_timeboxed_tests
            )
        finally:
            self.registry.reset()

        statistics = RunStatistics.from_executions(executions)
        log.debug("%s%s: %s", file.folder_pathname, file.full_file_name, statistics.to_dict())

        if statistics.total > 0 and self.reporter is not None:
            self.reporter.report_file(statistics, file, root)
            for execution in executions:
                self.reporter.report_execution(execution)

        return statistics


async def run_folder(
    root: Union[FolderItem, str, Path],
    config: Optional[TestNowConfig] = None,
    registry: Optional[TestCallRegistry] = None,
    reporter=None,
) -> RunStatistics:
    """Run every test file below ``root`` and return the global statistics."""
    runner = FolderRunner(config, registry=registry, reporter=reporter)
    return await runner.run(root)
