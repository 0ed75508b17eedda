"""Directory enumeration that reports names, sizes, times and attribute bits."""

from __future__ import annotations

import fnmatch
import logging
import os
import stat
from collections.abc import Iterator
from dataclasses import dataclass

from dirstat.formatting import FileAttribute

logger = logging.getLogger(__name__)

LONG_PREFIX = "\\\\?\\"
LONG_UNC_PREFIX = "\\\\?\\UNC\\"
UNC_PREFIX = "\\\\"
DOTS = (".", "..")

_HIDDEN_SYSTEM = FileAttribute.HIDDEN | FileAttribute.SYSTEM
_PROTECTED_REPARSE = FileAttribute.HIDDEN | FileAttribute.SYSTEM | FileAttribute.REPARSE_POINT


@dataclass(frozen=True)
class FileEntry:
    """One entry found while enumerating a directory."""

    folder: str
    name: str
    path: str
    attributes: int
    size_physical: int
    size_logical: int
    last_write_time: float

    def is_directory(self) -> bool:
        return bool(self.attributes & FileAttribute.DIRECTORY)

    def is_dots(self) -> bool:
        return self.name in DOTS

    def is_hidden(self) -> bool:
        return bool(self.attributes & FileAttribute.HIDDEN)

    def is_hidden_system(self) -> bool:
        return self.attributes & _HIDDEN_SYSTEM == _HIDDEN_SYSTEM

    def is_protected_reparse_point(self) -> bool:
        return self.attributes & _PROTECTED_REPARSE == _PROTECTED_REPARSE

    def path_long(self) -> str:
        """The entry's path in a form that is not subject to path length limits."""
        return make_long_path_compatible(self.path)


def make_long_path_compatible(path: str) -> str:
    """Prefix drive and UNC paths with the extended-length marker."""
    if path.find(":\\", 1) == 1:
        return LONG_PREFIX + path
    if path.startswith(UNC_PREFIX):
        return LONG_UNC_PREFIX + path[2:]
    return path


def _matches(name: str, pattern: str) -> bool:
    if not pattern:
        return True
    # Brackets are literal characters in directory search masks.
    escaped = pattern.casefold().replace("[", "[[]")
    return fnmatch.fnmatchcase(name.casefold(), escaped)


def _attributes(name: str, st: os.stat_result, is_dir: bool) -> int:
    native = getattr(st, "st_file_attributes", None)
    if native is not None:
        return int(native)
    attr = FileAttribute.NONE
    if is_dir:
        attr |= FileAttribute.DIRECTORY
    if stat.S_ISLNK(st.st_mode):
        attr |= FileAttribute.REPARSE_POINT
    if name.startswith(".") and name not in DOTS:
        attr |= FileAttribute.HIDDEN
    if not st.st_mode & stat.S_IWUSR:
        attr |= FileAttribute.READONLY
    return int(attr)


def _physical_size(st: os.stat_result) -> int:
    blocks = getattr(st, "st_blocks", None)
    if blocks is None:
        return st.st_size
    allocated = blocks * 512
    if allocated == 0 and st.st_size != 0:
        return st.st_size
    return allocated


def _make_entry(folder: str, name: str) -> FileEntry:
    path = os.path.join(folder, name)
    st = os.stat(path) if name in DOTS else os.lstat(path)
    is_dir = os.path.isdir(path)
    attributes = _attributes(name, st, is_dir)
    if attributes & FileAttribute.DIRECTORY:
        logical = physical = 0
    else:
        logical = st.st_size
        physical = _physical_size(st)
    return FileEntry(
        folder=folder,
        name=name,
        path=path,
        attributes=attributes,
        size_physical=physical,
        size_logical=logical,
        last_write_time=st.st_mtime,
    )


def find_files(folder: str | os.PathLike, pattern: str = "") -> Iterator[FileEntry]:
    """Yield the entries of a folder whose names match an optional wildcard mask.

    The '.' and '..' entries come first, as the file system reports them.
    A folder that cannot be opened yields nothing.
    """
    folder = os.fspath(folder)
    try:
        scanner = os.scandir(folder)
    except OSError as exc:
        logger.debug("File access error %s: %s", exc, folder)
        return
    with scanner:
        for name in DOTS:
            if _matches(name, pattern):
                try:
                    yield _make_entry(folder, name)
                except OSError:
                    continue
        for dir_entry in scanner:
            if not _matches(dir_entry.name, pattern):
                continue
            try:
                yield _make_entry(folder, dir_entry.name)
            except OSError as exc:
                logger.debug("Cannot read %s: %s", dir_entry.path, exc)


def does_file_exist(folder: str | os.PathLike, file: str = "") -> bool:
    """Return whether an entry matching the name exists in the folder."""
    return next(find_files(folder, file), None) is not None