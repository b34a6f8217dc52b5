"""Tests for the lazy folder walker."""

import os
import time

import pytest

from testnow.core import walker as walker_module
from testnow.core.paths import FileItem, FolderItem, as_absolute_folder, normalize_folder_pathname
from testnow.core.walker import (
    FolderWalker,
    WalkerOptions,
    compare_names,
    make_freshness_predicate,
    walk_folder,
)
from testnow.errors import EnumerationFailure


def folder_of(path) -> FolderItem:
    return as_absolute_folder(normalize_folder_pathname(str(path)))


def names(items, root: FolderItem) -> list[str]:
    """Render items relative to root: files as 'a.txt', folders as 'b/'."""
    rendered = []
    for item in items:
        if isinstance(item, FileItem):
            rendered.append(item.folder_pathname[len(root.folder_pathname):] + item.full_file_name)
        else:
            rendered.append(item.folder_pathname[len(root.folder_pathname):])
    return rendered


@pytest.fixture
def tree(tmp_path):
    """A small tree:

    root/
        b.py
        a.txt
        zeta/
            z.py
        alpha/
            inner/
                deep.py
            c.py
    """
    (tmp_path / "b.py").write_text("")
    (tmp_path / "a.txt").write_text("")
    (tmp_path / "zeta").mkdir()
    (tmp_path / "zeta" / "z.py").write_text("")
    (tmp_path / "alpha" / "inner").mkdir(parents=True)
    (tmp_path / "alpha" / "inner" / "deep.py").write_text("")
    (tmp_path / "alpha" / "c.py").write_text("")
    return tmp_path


class TestCompareNames:
    """Tests for the name comparison."""

    def test_ascending(self):
        assert compare_names("a", "b") == -1
        assert compare_names("b", "a") == 1
        assert compare_names("a", "a") == 0

    def test_empty_names_last(self):
        assert compare_names("", "a") == 1
        assert compare_names("a", "") == -1
        assert compare_names("", "") == 0


class TestFolderWalker:
    """Tests for FolderWalker."""

    def test_missing_root_yields_nothing(self, tmp_path):
        walker = walk_folder(folder_of(tmp_path / "missing"))

        assert list(walker) == []

    def test_empty_root_yields_root_only(self, tmp_path):
        root = folder_of(tmp_path)

        assert list(walk_folder(root)) == [root]

    def test_root_first_then_files_then_folders(self, tmp_path):
        (tmp_path / "a.txt").write_text("")
        (tmp_path / "b").mkdir()
        root = folder_of(tmp_path)

        items = list(walk_folder(root))

        assert items[0] == root
        assert names(items, root) == ["", "a.txt", "b/"]
        assert isinstance(items[1], FileItem)
        assert isinstance(items[2], FolderItem)

    def test_depth_first_order(self, tree):
        root = folder_of(tree)

        items = list(walk_folder(root))

        assert names(items, root) == [
            "",
            "a.txt",
            "b.py",
            "alpha/",
            "alpha/c.py",
            "alpha/inner/",
            "alpha/inner/deep.py",
            "zeta/",
            "zeta/z.py",
        ]

    def test_depth_limit_zero_does_not_expand_children(self, tree):
        root = folder_of(tree)

        items = list(walk_folder(root, WalkerOptions(depth_limit=0)))

        assert names(items, root) == ["", "a.txt", "b.py", "alpha/", "zeta/"]

    def test_depth_limit_one(self, tree):
        root = folder_of(tree)

        items = list(walk_folder(root, WalkerOptions(depth_limit=1)))

        assert names(items, root) == [
            "",
            "a.txt",
            "b.py",
            "alpha/",
            "alpha/c.py",
            "alpha/inner/",
            "zeta/",
            "zeta/z.py",
        ]

    def test_negative_depth_limit_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            FolderWalker(folder_of(tmp_path), WalkerOptions(depth_limit=-1))

    def test_filter_predicate(self, tree):
        root = folder_of(tree)
        options = WalkerOptions(filter_predicate=lambda entry: entry.name != "alpha")

        items = list(walk_folder(root, options))

        assert names(items, root) == ["", "a.txt", "b.py", "zeta/", "zeta/z.py"]

    def test_custom_comparator(self, tmp_path):
        for name in ("a.py", "b.py", "c.py"):
            (tmp_path / name).write_text("")
        root = folder_of(tmp_path)
        # ascending on the stack means descending visits
        options = WalkerOptions(sort_comparator=lambda a, b: compare_names(a.name, b.name))

        items = list(walk_folder(root, options))

        assert names(items, root) == ["", "c.py", "b.py", "a.py"]

    def test_item_predicate_skips_files_only(self, tree):
        root = folder_of(tree)
        options = WalkerOptions(item_predicate=lambda pathname, stats: pathname.endswith(".py"))

        items = list(walk_folder(root, options))

        assert "a.txt" not in names(items, root)
        assert "alpha/" in names(items, root)
        assert "b.py" in names(items, root)

    def test_freshness_predicate(self, tmp_path):
        (tmp_path / "old.py").write_text("")
        (tmp_path / "new.py").write_text("")
        now = time.time()
        os.utime(tmp_path / "old.py", (now - 3600, now - 3600))
        root = folder_of(tmp_path)
        options = WalkerOptions(item_predicate=make_freshness_predicate(now, 60))

        items = list(walk_folder(root, options))

        assert names(items, root) == ["", "new.py"]

    def test_lazy_production(self, tmp_path):
        (tmp_path / "a.py").write_text("")
        (tmp_path / "sub").mkdir()
        root = folder_of(tmp_path)
        walker = walk_folder(root)

        assert next(walker) == root
        assert names([next(walker)], root) == ["a.py"]

        # sub/ has not been read yet
        (tmp_path / "sub" / "late.py").write_text("")

        assert names(list(walker), root) == ["sub/", "sub/late.py"]

    def test_unreadable_folder_is_produced_then_fails(self, tmp_path, monkeypatch):
        (tmp_path / "a.py").write_text("")
        (tmp_path / "broken").mkdir()
        (tmp_path / "broken" / "hidden.py").write_text("")
        (tmp_path / "zzz").mkdir()
        root = folder_of(tmp_path)
        real_scandir = os.scandir

        def scandir(path):
            if str(path).rstrip("/").endswith("broken"):
                raise PermissionError(13, "Permission denied", str(path))
            return real_scandir(path)

        monkeypatch.setattr(walker_module.os, "scandir", scandir)
        walker = walk_folder(root)

        assert names([next(walker), next(walker), next(walker)], root) == ["", "a.py", "broken/"]

        with pytest.raises(EnumerationFailure) as exc_info:
            next(walker)
        assert isinstance(exc_info.value.__cause__, PermissionError)
        assert exc_info.value.pathname.endswith("broken/")

        assert list(walker) == []

    def test_symlink_loop_is_not_followed(self, tmp_path):
        (tmp_path / "a").mkdir()
        (tmp_path / "a" / "test_a.py").write_text("")
        (tmp_path / "a" / "loop").symlink_to(tmp_path, target_is_directory=True)
        root = folder_of(tmp_path)

        assert names(list(walk_folder(root)), root) == ["", "a/", "a/test_a.py"]

    def test_symlinked_files_are_skipped(self, tmp_path):
        (tmp_path / "real.py").write_text("")
        (tmp_path / "link.py").symlink_to(tmp_path / "real.py")
        root = folder_of(tmp_path)

        assert names(list(walk_folder(root)), root) == ["", "real.py"]

    def test_root_that_is_a_file_fails(self, tmp_path):
        (tmp_path / "test_a.py").write_text("")

        with pytest.raises(EnumerationFailure):
            list(walk_folder(folder_of(tmp_path / "test_a.py")))

    def test_unreadable_root_fails(self, tmp_path, monkeypatch):
        root = folder_of(tmp_path)
        real_stat = os.stat

        def fake_stat(path, *args, **kwargs):
            if str(path) == root.folder_pathname:
                raise PermissionError(13, "Permission denied", str(path))
            return real_stat(path, *args, **kwargs)

        monkeypatch.setattr(walker_module.os, "stat", fake_stat)

        with pytest.raises(EnumerationFailure) as exc_info:
            walk_folder(root)
        assert isinstance(exc_info.value.__cause__, PermissionError)

    def test_failing_entry_probe_is_an_enumeration_failure(self, tmp_path):
        (tmp_path / "sub").mkdir()
        root = folder_of(tmp_path)

        def probe_fails(entry):
            raise OSError(40, "Too many levels of symbolic links", entry.path)

        walker = walk_folder(root, WalkerOptions(filter_predicate=probe_fails))

        assert next(walker) == root
        with pytest.raises(EnumerationFailure) as exc_info:
            next(walker)
        assert exc_info.value.__cause__.errno == 40

    def test_close_stops_the_walk(self, tree):
        walker = walk_folder(folder_of(tree))
        next(walker)

        walker.close()

        assert list(walker) == []

    def test_walker_is_not_restartable(self, tree):
        walker = walk_folder(folder_of(tree))

        assert len(list(walker)) == 9
        assert list(walker) == []
