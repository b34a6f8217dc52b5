"""Lazy, depth-first walk of a folder.

The walker is pull-based: each ``next()`` pops pathnames from a stack until
it can produce one item, and never touches the filesystem beyond that. A
folder is produced before its content; when a folder is produced, its
children have already been pushed on the stack so they come next.
"""

import logging
import os
import stat
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Callable, Iterator, Optional

from testnow.core.paths import (
    SEPARATOR,
    FolderItem,
    PathItem,
    as_absolute_file,
    as_absolute_folder,
    normalize_folder_pathname,
    normalize_pathname,
)
from testnow.errors import EnumerationFailure

log = logging.getLogger("testnow.walker")

EntryComparator = Callable[[os.DirEntry, os.DirEntry], int]
EntryFilter = Callable[[os.DirEntry], bool]
ItemPredicate = Callable[[str, os.stat_result], bool]


def compare_names(a: str, b: str) -> int:
    """Ascending order, empty names last."""
    if a and b:
        return (a > b) - (a < b)
    if a:
        return -1
    if b:
        return 1
    return 0


def sort_files_first_then_alphabetically(a: os.DirEntry, b: os.DirEntry) -> int:
    """Default order of a folder's entries on the stack.

    Entries are pushed in sorted order and popped in reverse, so this
    comparator is the mirror of the order in which entries are visited:
    it puts folders before files and sorts names in descending order,
    which makes the walker visit files first, then folders, each group
    in ascending name order.
    """
    a_is_folder = a.is_dir(follow_symlinks=False)
    b_is_folder = b.is_dir(follow_symlinks=False)

    if a_is_folder and not b_is_folder:
        return -1
    if b_is_folder and not a_is_folder:
        return 1
    return -compare_names(a.name, b.name)


@dataclass(frozen=True)
class WalkerOptions:
    """How a folder is walked."""

    # order of a folder's entries on the stack (the reverse of the visit order)
    sort_comparator: Optional[EntryComparator] = sort_files_first_then_alphabetically
    # which entries of a folder to keep after reading it
    filter_predicate: Optional[EntryFilter] = None
    # how many levels below the root are read
    depth_limit: Optional[int] = None
    # which files to produce, based on their stats
    item_predicate: Optional[ItemPredicate] = None


def segment_count(pathname: str) -> int:
    return len(pathname.split(SEPARATOR))


def make_freshness_predicate(reference_time: float, max_age: float) -> ItemPredicate:
    """Keep files modified less than ``max_age`` seconds before ``reference_time``."""

    def is_fresh(pathname: str, stats: os.stat_result) -> bool:
        return reference_time - stats.st_mtime < max_age

    return is_fresh


class FolderWalker:
    """Iterator over the files and folders below a root folder.

    A root that does not exist produces no item. If a folder cannot be read,
    the folder itself is still produced and the following ``next()`` raises
    EnumerationFailure, after which the walker is exhausted.
    """

    def __init__(self, root: FolderItem, options: Optional[WalkerOptions] = None):
        self.root = root
        self.options = options or WalkerOptions()
        self._pending: list[str] = []
        self._length_limit: Optional[int] = None
        self._failure: Optional[EnumerationFailure] = None
        self._finished = False

        if options is not None and options.depth_limit is not None and options.depth_limit < 0:
            raise ValueError(f"depth_limit must not be negative, got {options.depth_limit}")

        try:
            root_stats = os.stat(root.folder_pathname)
        except FileNotFoundError:
            log.debug("Folder %s does not exist", root.folder_pathname)
            return
        except OSError as e:
            raise EnumerationFailure(root.folder_pathname) from e

        if not stat.S_ISDIR(root_stats.st_mode):
            raise EnumerationFailure(root.folder_pathname, f"Not a folder: {root.folder_pathname}")

        self._pending.append(root.folder_pathname)
        if self.options.depth_limit is not None:
            self._length_limit = segment_count(root.folder_pathname) + self.options.depth_limit

    def __iter__(self) -> Iterator[PathItem]:
        return self

    def __next__(self) -> PathItem:
        if self._failure is not None:
            failure, self._failure = self._failure, None
            self._finished = True
            raise failure

        if self._finished:
            raise StopIteration

        while self._pending:
            pathname = self._pending.pop()

            try:
                stats = os.stat(pathname)
            except OSError as e:
                self._finished = True
                raise EnumerationFailure(pathname) from e

            if stat.S_ISDIR(stats.st_mode):
                return self._visit_folder(pathname)

            if stat.S_ISREG(stats.st_mode):
                predicate = self.options.item_predicate
                if predicate is None or predicate(pathname, stats):
                    return as_absolute_file(pathname)

        self._finished = True
        raise StopIteration

    def _visit_folder(self, pathname: str) -> FolderItem:
        folder = as_absolute_folder(pathname)

        if self._length_limit is not None and segment_count(pathname) > self._length_limit:
            return folder

        try:
            with os.scandir(pathname) as iterator:
                entries = list(iterator)

            if self.options.filter_predicate is not None:
                entries = [entry for entry in entries if self.options.filter_predicate(entry)]
            if self.options.sort_comparator is not None:
                entries.sort(key=cmp_to_key(self.options.sort_comparator))

            children = []
            for entry in entries:
                child = normalize_pathname(os.path.join(pathname, entry.name))
                # symbolic links are neither folders nor files here
                if entry.is_dir(follow_symlinks=False):
                    children.append(normalize_folder_pathname(child))
                elif entry.is_file(follow_symlinks=False):
                    children.append(child)
        except OSError as e:
            failure = EnumerationFailure(pathname)
            failure.__cause__ = e
            self._failure = failure
            self._pending.clear()
            return folder

        self._pending.extend(children)
        return folder

    def close(self) -> None:
        """Stop the walk; later pulls produce nothing."""
        self._pending.clear()
        self._failure = None
        self._finished = True


def walk_folder(root: FolderItem, options: Optional[WalkerOptions] = None) -> FolderWalker:
    """Walk ``root`` lazily, files before folders, in ascending name order."""
    return FolderWalker(root, options)
