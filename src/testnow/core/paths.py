"""Path items: files and folders identified by normalized pathnames.

Every pathname handled here uses ``/`` as separator, whatever the platform.
A folder pathname is either empty (relative current folder) or ends with ``/``.
"""

import os
import re
from dataclasses import dataclass
from typing import Iterable, Union

SEPARATOR = "/"

_NAVIGATION = re.compile(r"(^|[/\\])\.{1,2}([/\\]|$)")


def normalize_pathname(pathname: str) -> str:
    """Replace backslashes with slashes."""
    return pathname.replace("\\", SEPARATOR)


def normalize_folder_pathname(pathname: str) -> str:
    """Normalize the pathname and make sure a non-empty one ends with a slash."""
    normalized = normalize_pathname(pathname)
    if normalized == "" or normalized.endswith(SEPARATOR):
        return normalized
    return normalized + SEPARATOR


def is_folder_pathname(pathname: str) -> bool:
    """Check if the pathname designates a folder (empty, navigation or trailing separator)."""
    if pathname in ("", ".", ".."):
        return True
    return pathname[-1] in ("/", "\\")


def is_resolved_pathname(pathname: str) -> bool:
    """Check that the pathname holds no ``.`` or ``..`` navigation element."""
    return _NAVIGATION.search(pathname) is None


def describe_pathname(pathname: str) -> str:
    """Describe what a pathname is, for error messages."""
    text = "an absolute, " if os.path.isabs(pathname) else "a relative, "
    text += "resolved " if is_resolved_pathname(pathname) else "unresolved "
    text += "folder pathname" if is_folder_pathname(pathname) else "file pathname"
    return text


@dataclass(frozen=True)
class FolderItem:
    """A folder, identified by its pathname."""

    folder_pathname: str
    absolute: bool = True

    @property
    def is_folder(self) -> bool:
        return True


@dataclass(frozen=True)
class FileItem:
    """A file, identified by its folder pathname, name and extension."""

    folder_pathname: str
    file_name: str
    extension: str = ""
    absolute: bool = True

    @property
    def is_folder(self) -> bool:
        return False

    @property
    def full_file_name(self) -> str:
        if self.extension:
            return f"{self.file_name}.{self.extension}"
        return self.file_name


PathItem = Union[FileItem, FolderItem]


def parse_full_file_name(full_file_name: str) -> tuple[str, str]:
    """Split a file name at its last dot into (name, extension)."""
    offset = full_file_name.rfind(".")
    if offset == -1:
        return full_file_name, ""
    return full_file_name[:offset], full_file_name[offset + 1:]


def as_absolute_file(pathname: str) -> FileItem:
    """Build a FileItem from a resolved absolute file pathname.

    Raises:
        ValueError: If the pathname is not a resolved absolute file pathname
    """
    if not (
        os.path.isabs(pathname)
        and is_resolved_pathname(pathname)
        and not is_folder_pathname(pathname)
    ):
        raise ValueError(
            f"Expected a resolved absolute file pathname, got {pathname!r} "
            f"which is {describe_pathname(pathname)}"
        )

    normalized = normalize_pathname(pathname)
    offset = normalized.rfind(SEPARATOR)
    file_name, extension = parse_full_file_name(normalized[offset + 1:])

    return FileItem(
        folder_pathname=normalized[: offset + 1],
        file_name=file_name,
        extension=extension,
    )


def as_absolute_folder(pathname: str) -> FolderItem:
    """Build a FolderItem from a resolved absolute folder pathname.

    Raises:
        ValueError: If the pathname is not a resolved absolute folder pathname
    """
    if not (
        pathname
        and os.path.isabs(pathname)
        and is_resolved_pathname(pathname)
        and is_folder_pathname(pathname)
    ):
        raise ValueError(
            f"Expected a resolved absolute folder pathname, got {pathname!r} "
            f"which is {describe_pathname(pathname)}"
        )

    return FolderItem(folder_pathname=normalize_pathname(pathname))


def as_pathname(item: PathItem) -> str:
    """Render a path item back to its pathname."""
    if isinstance(item, FileItem):
        return item.folder_pathname + item.full_file_name
    return item.folder_pathname


def as_relative_pathname(item: PathItem, reference: FolderItem) -> str:
    """Render a path item relative to a reference folder."""
    relative = os.path.relpath(as_pathname(item), reference.folder_pathname)
    if isinstance(item, FileItem):
        return normalize_pathname(relative)
    return normalize_folder_pathname(relative)


def has_extension(item: PathItem, extensions: Iterable[str]) -> bool:
    """Check that the item is a file with one of the given extensions."""
    return isinstance(item, FileItem) and item.extension in set(extensions)
