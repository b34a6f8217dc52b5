"""Core test registration and execution functionality."""

from testnow.core.engine import ExecutionEngine
from testnow.core.registry import TestCallRegistry
from testnow.core.walker import FolderWalker, walk_folder

__all__ = ["ExecutionEngine", "TestCallRegistry", "FolderWalker", "walk_folder"]
