"""The tree of files, folders and drives built while scanning."""

from __future__ import annotations

import hashlib
import os
import threading
import time
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import IntEnum, IntFlag
from typing import ClassVar, Protocol

from dirstat.file_find import make_long_path_compatible
from dirstat.formatting import (
    FileAttribute,
    format_attributes,
    format_bytes,
    format_count,
    format_double,
    format_file_time,
    format_milliseconds,
    path_from_volume_name,
)

SEP = os.sep
UNC_PREFIX = "\\\\"
ONE_READ_JOB = "1 Read Job"
READ_JOBS_FORMAT = "{} Read Jobs"
RECYCLER_NAMES = ("$RECYCLE.BIN", "RECYCLER", "RECYCLED")
MAX_HASH_BUFFER = 2 * 1024 * 1024

# Guards the counters that many scanning threads update along a parent chain.
_TREE_LOCK = threading.RLock()


class ItemType(IntFlag):
    """Kind of an item plus state flags in the high byte."""

    NONE = 0
    MYCOMPUTER = 1 << 0
    DRIVE = 1 << 1
    DIRECTORY = 1 << 2
    FILE = 1 << 3
    FREESPACE = 1 << 4
    UNKNOWN = 1 << 5
    ANY = 0x00FF
    DONE = 1 << 8
    ROOTITEM = 1 << 9
    PARTHASH = 1 << 10
    FULLHASH = 1 << 11
    FLAGS = 0xFF00


class ItemColumn(IntEnum):
    """Columns of the file tree."""

    NAME = 0
    SUBTREEPERCENTAGE = 1
    PERCENTAGE = 2
    OPTIONAL_START = 3
    SIZE_PHYSICAL = 4
    SIZE_LOGICAL = 5
    ITEMS = 6
    FILES = 7
    FOLDERS = 8
    LASTCHANGE = 9
    ATTRIBUTES = 10
    OWNER = 11


@dataclass
class ExtensionRecord:
    """Total physical bytes and file count of one extension."""

    bytes: int = 0
    files: int = 0


class SuspendableQueue(Protocol):
    def wait_if_suspended(self) -> None: ...


def _now_seconds() -> int:
    return int(time.monotonic())


def _signum(value: float) -> int:
    return (value > 0) - (value < 0)


def _compare(a, b) -> int:
    return (a > b) - (a < b)


def _check_count(count: int) -> None:
    if count < 0:
        raise ValueError("count must not be negative")


@dataclass
class _FolderInfo:
    children: list[Item] = field(default_factory=list)
    lock: threading.RLock = field(default_factory=threading.RLock)
    tstart: int = 0
    tfinish: int = 0
    files: int = 0
    subdirs: int = 0
    jobs: int = 0


class Item:
    """A file, folder, drive or pseudo entry with sizes accumulated over its subtree."""

    show_time_spent: ClassVar[bool] = False
    use_size_suffixes: ClassVar[bool] = False

    def __init__(
        self,
        item_type: ItemType,
        name: str,
        last_change: float = 0.0,
        size_physical: int = 0,
        size_logical: int = 0,
        attributes: int = 0,
        files: int = 0,
        subdirs: int = 0,
    ) -> None:
        self.raw_type = ItemType(item_type)
        self.name = name
        self.last_change = last_change
        self.size_physical = size_physical
        self.size_logical = size_logical
        self.attributes = attributes
        self.parent: Item | None = None
        self._folder: _FolderInfo | None = None

        if self.is_type(ItemType.FILE):
            dot = name.rfind(".")
            self.extension = name[dot:].lower() if dot != -1 else ""
        else:
            self._folder = _FolderInfo(files=files, subdirs=subdirs)
            self.extension = name

    def __repr__(self) -> str:
        return f"Item({self.type!r}, {self.name!r})"

    # Type handling

    @property
    def type(self) -> ItemType:
        return ItemType(self.raw_type & ~ItemType.FLAGS)

    def is_type(self, item_type: ItemType) -> bool:
        return bool(self.raw_type & item_type)

    def set_type(self, item_type: ItemType, enabled: bool = True) -> None:
        if enabled:
            self.raw_type = ItemType(self.raw_type | item_type)
        else:
            self.raw_type = ItemType(self.raw_type & ~item_type)

    def is_done(self) -> bool:
        return self.is_type(ItemType.DONE)

    def is_root_item(self) -> bool:
        return self.is_type(ItemType.ROOTITEM)

    def is_leaf(self) -> bool:
        return self.is_type(ItemType.FILE | ItemType.FREESPACE | ItemType.UNKNOWN)

    # Tree structure

    def _chain(self) -> Iterator[Item]:
        p: Item | None = self
        while p is not None:
            yield p
            p = p.parent

    def _folder_chain(self) -> Iterator[Item]:
        return (p for p in self._chain() if p._folder is not None)

    @property
    def children(self) -> tuple[Item, ...]:
        if self._folder is None:
            return ()
        with self._folder.lock:
            return tuple(self._folder.children)

    def is_ancestor_of(self, other: Item) -> bool:
        """Whether this item is other or one of its ancestors."""
        return any(p is self for p in other._chain())

    def _require_folder(self) -> _FolderInfo:
        if self._folder is None:
            raise TypeError(f"{self.name!r} cannot hold children")
        return self._folder

    def add_child(self, child: Item, add_only: bool = False) -> None:
        """Attach a child; unless add_only, its sizes and time flow upward."""
        folder = self._require_folder()
        if not add_only:
            self.upward_add_size_physical(child.size_physical)
            self.upward_add_size_logical(child.size_logical)
            self.upward_update_last_change(child.last_change)
        child.parent = self
        with folder.lock:
            folder.children.append(child)

    def remove_child(self, child: Item) -> None:
        folder = self._require_folder()
        with folder.lock:
            folder.children[:] = [c for c in folder.children if c is not child]
        child.parent = None

    def remove_all_children(self) -> None:
        if self._folder is None:
            return
        with self._folder.lock:
            for child in self._folder.children:
                child.parent = None
            self._folder.children.clear()

    # Upward accumulation

    def _adjust_size(self, attr: str, delta: int) -> None:
        with _TREE_LOCK:
            chain = list(self._chain())
            if delta < 0 and any(getattr(p, attr) + delta < 0 for p in chain):
                raise ValueError(f"{attr} would become negative")
            for p in chain:
                setattr(p, attr, getattr(p, attr) + delta)

    def _adjust_counter(self, attr: str, delta: int) -> None:
        with _TREE_LOCK:
            chain = [p._folder for p in self._folder_chain()]
            if delta < 0 and any(getattr(f, attr) + delta < 0 for f in chain):
                raise ValueError(f"{attr} would become negative")
            for f in chain:
                setattr(f, attr, getattr(f, attr) + delta)

    def upward_add_folders(self, count: int) -> None:
        _check_count(count)
        if count:
            self._adjust_counter("subdirs", count)

    def upward_subtract_folders(self, count: int) -> None:
        _check_count(count)
        if count:
            self._adjust_counter("subdirs", -count)

    def upward_add_files(self, count: int) -> None:
        _check_count(count)
        if count:
            self._adjust_counter("files", count)

    def upward_subtract_files(self, count: int) -> None:
        _check_count(count)
        if count:
            self._adjust_counter("files", -count)

    def upward_add_size_physical(self, size: int) -> None:
        _check_count(size)
        if size:
            self._adjust_size("size_physical", size)

    def upward_subtract_size_physical(self, size: int) -> None:
        _check_count(size)
        if size:
            self._adjust_size("size_physical", -size)

    def upward_add_size_logical(self, size: int) -> None:
        _check_count(size)
        if size:
            self._adjust_size("size_logical", size)

    def upward_subtract_size_logical(self, size: int) -> None:
        _check_count(size)
        if size:
            self._adjust_size("size_logical", -size)

    def upward_add_read_jobs(self, count: int) -> None:
        _check_count(count)
        if self._folder is None or count == 0:
            return
        with _TREE_LOCK:
            if self._folder.jobs == 0:
                self._folder.tstart = _now_seconds()
        self._adjust_counter("jobs", count)

    def upward_subtract_read_jobs(self, count: int) -> None:
        """Finish read jobs; every item whose job count reaches zero is done."""
        _check_count(count)
        if count == 0 or self.is_type(ItemType.FILE):
            return
        self._adjust_counter("jobs", -count)
        for p in list(self._folder_chain()):
            if p._folder.jobs == 0:
                p.set_done()

    def upward_update_last_change(self, timestamp: float) -> None:
        with _TREE_LOCK:
            for p in self._chain():
                if timestamp > p.last_change:
                    p.last_change = timestamp

    def upward_set_done(self) -> None:
        for p in list(self._chain()):
            p.set_done()

    def upward_set_undone(self) -> None:
        """Clear the done flag up the chain, zeroing the unknown entry of done drives."""
        for p in list(self._chain()):
            if p.is_type(ItemType.DRIVE) and p.is_done():
                unknown = p.find_unknown_item()
                if unknown is not None:
                    p.upward_subtract_size_physical(unknown.size_physical)
                    unknown.size_physical = 0
            p.set_type(ItemType.DONE, False)

    # Completion and timing

    @property
    def read_jobs(self) -> int:
        return 0 if self._folder is None else self._folder.jobs

    @property
    def files_count(self) -> int:
        return 0 if self._folder is None else self._folder.files

    @property
    def folders_count(self) -> int:
        return 0 if self._folder is None else self._folder.subdirs

    def items_count(self) -> int:
        return self.files_count + self.folders_count

    def set_done(self) -> None:
        """Mark finished: children are sorted and the finish time is recorded."""
        if self.is_done():
            return
        if self._folder is not None:
            self.sort_children_by_size_physical()
            self._folder.tfinish = _now_seconds()
        self.set_type(ItemType.DONE, True)

    def sort_children_by_size_physical(self) -> None:
        if self._folder is None:
            return
        with self._folder.lock:
            self._folder.children.sort(key=lambda c: c.size_physical, reverse=True)

    def reset_scan_start_time(self) -> None:
        if self._folder is not None:
            self._folder.tfinish = 0
            self._folder.tstart = _now_seconds()

    @property
    def ticks_worked(self) -> int:
        """Seconds spent scanning this subtree."""
        if self._folder is None:
            return 0
        if self._folder.tfinish > 0:
            return self._folder.tfinish - self._folder.tstart
        if self._folder.tstart > 0:
            return _now_seconds() - self._folder.tstart
        return 0

    def must_show_read_jobs(self) -> bool:
        if self.parent is not None:
            return not self.parent.is_done()
        return not self.is_done()

    # Paths

    def _path_without_separator(self) -> str:
        path = SEP
        named = False
        for p in self._chain():
            if p.is_type(ItemType.DIRECTORY):
                path = p.name.rstrip(SEP) + SEP + path
                named = True
            elif p.is_type(ItemType.FILE):
                path = p.name
                named = True
            elif p.is_type(ItemType.DRIVE):
                path = path_from_volume_name(p.name) + SEP + path
                named = True
        stripped = path.rstrip(SEP)
        if not stripped and named:
            return SEP
        return stripped

    def path(self) -> str:
        result = self._path_without_separator()
        if self.is_type(ItemType.DRIVE):
            result += SEP
        return result

    def path_long(self) -> str:
        return make_long_path_compatible(self.path())

    def folder_path(self) -> str:
        """The folder of a file, with trailing separator, or the item's own path."""
        result = self.path()
        if self.is_type(ItemType.FILE):
            i = result.rfind(SEP)
            if i == -1:
                raise ValueError(f"file path has no folder: {result!r}")
            result = result[: i + 1]
        return result

    def has_unc_path(self) -> bool:
        return self.path().startswith(UNC_PREFIX)

    def owner(self) -> str:
        """Name of the user owning the item on disk, or an empty string."""
        try:
            import pwd
        except ImportError:
            return ""
        try:
            return pwd.getpwuid(os.stat(self.path()).st_uid).pw_name
        except (OSError, KeyError):
            return ""

    # Display values

    def fraction(self) -> float:
        if self.parent is None or self.parent.size_physical == 0:
            return 1.0
        return self.size_physical / self.parent.size_physical

    def sort_attributes(self) -> int:
        """A value that orders attributes by R, H, S, A, C, E priority."""
        ranking = (
            FileAttribute.READONLY,
            FileAttribute.HIDDEN,
            FileAttribute.SYSTEM,
            FileAttribute.ARCHIVE,
            FileAttribute.COMPRESSED,
            FileAttribute.ENCRYPTED,
        )
        value = 0
        for bit, flag in enumerate(reversed(ranking)):
            if self.attributes & flag:
                value |= 1 << bit
        return value

    def get_text(self, column: ItemColumn) -> str:
        """Text shown for this item in the given column."""
        no_counts = ItemType.FILE | ItemType.FREESPACE | ItemType.UNKNOWN
        if column == ItemColumn.NAME:
            return self.name
        if column == ItemColumn.SIZE_PHYSICAL:
            return format_bytes(self.size_physical, self.use_size_suffixes)
        if column == ItemColumn.SIZE_LOGICAL:
            return format_bytes(self.size_logical, self.use_size_suffixes)
        if column == ItemColumn.OWNER:
            if self.is_type(ItemType.FILE | ItemType.DIRECTORY):
                return self.owner()
            return ""
        if column == ItemColumn.SUBTREEPERCENTAGE:
            if not self.is_done():
                if self.read_jobs == 1:
                    return ONE_READ_JOB
                return READ_JOBS_FORMAT.format(format_count(self.read_jobs))
            return ""
        if column == ItemColumn.PERCENTAGE:
            if (self.show_time_spent and self.must_show_read_jobs()) or self.is_root_item():
                return f"[{format_milliseconds(self.ticks_worked * 1000)}]"
            return format_double(self.fraction() * 100) + "%"
        if column == ItemColumn.ITEMS:
            return "" if self.is_type(no_counts) else format_count(self.items_count())
        if column == ItemColumn.FILES:
            return "" if self.is_type(no_counts) else format_count(self.files_count)
        if column == ItemColumn.FOLDERS:
            return "" if self.is_type(no_counts) else format_count(self.folders_count)
        if column == ItemColumn.LASTCHANGE:
            if self.is_type(ItemType.FREESPACE | ItemType.UNKNOWN):
                return ""
            return format_file_time(self.last_change)
        if column == ItemColumn.ATTRIBUTES:
            if self.is_type(ItemType.FREESPACE | ItemType.UNKNOWN | ItemType.MYCOMPUTER):
                return ""
            return format_attributes(self.attributes)
        raise ValueError(f"no text for column {column!r}")

    def compare_sibling(self, other: Item, column: ItemColumn) -> int:
        """Return -1, 0 or 1 ordering this item against a sibling by a column."""
        if column == ItemColumn.NAME:
            if self.is_type(ItemType.DRIVE):
                return _compare(self.path().lower(), other.path().lower())
            return _compare(self.name.lower(), other.name.lower())
        if column == ItemColumn.SUBTREEPERCENTAGE:
            if self.must_show_read_jobs():
                return _compare(self.read_jobs, other.read_jobs)
            return _signum(self.fraction() - other.fraction())
        if column == ItemColumn.PERCENTAGE:
            return _signum(self.fraction() - other.fraction())
        if column == ItemColumn.SIZE_PHYSICAL:
            return _compare(self.size_physical, other.size_physical)
        if column == ItemColumn.SIZE_LOGICAL:
            return _compare(self.size_logical, other.size_logical)
        if column == ItemColumn.ITEMS:
            return _compare(self.items_count(), other.items_count())
        if column == ItemColumn.FILES:
            return _compare(self.files_count, other.files_count)
        if column == ItemColumn.FOLDERS:
            return _compare(self.folders_count, other.folders_count)
        if column == ItemColumn.LASTCHANGE:
            return _compare(self.last_change, other.last_change)
        if column == ItemColumn.ATTRIBUTES:
            return _signum(self.sort_attributes() - other.sort_attributes())
        if column == ItemColumn.OWNER:
            return _compare(self.owner().lower(), other.owner().lower())
        return 0

    # Searches

    def find_recycler_item(self) -> Item | None:
        """The recycle bin folder of the drive holding this item, if any."""
        for p in self._chain():
            if not p.is_type(ItemType.DRIVE):
                continue
            for possible in RECYCLER_NAMES:
                for child in p.children:
                    if child.is_type(ItemType.DIRECTORY) and child.name.lower() == possible.lower():
                        return child
        return None

    def _find_child_of_type(self, item_type: ItemType) -> Item | None:
        return next((c for c in self.children if c.is_type(item_type)), None)

    def find_free_space_item(self) -> Item | None:
        return self._find_child_of_type(ItemType.FREESPACE)

    def find_unknown_item(self) -> Item | None:
        return self._find_child_of_type(ItemType.UNKNOWN)

    def collect_extension_data(self) -> dict[str, ExtensionRecord]:
        """Total physical size and count of the files beneath, by extension."""
        data: dict[str, ExtensionRecord] = {}
        stack = [self]
        while stack:
            item = stack.pop()
            if item.is_type(ItemType.FILE):
                record = data.setdefault(item.extension, ExtensionRecord())
                record.bytes += item.size_physical
                record.files += 1
            else:
                stack.extend(item.children)
        return data

    def file_hash(self, size_limit: int = 0, queue: SuspendableQueue | None = None) -> str:
        """SHA-512 of the file as lowercase hex, or '' if it cannot be read.

        With a positive size_limit only the first size_limit bytes are hashed.
        """
        buffer_size = size_limit if size_limit > 0 else MAX_HASH_BUFFER
        digest = hashlib.sha512()
        try:
            with open(self.path(), "rb") as handle:
                while chunk := handle.read(buffer_size):
                    digest.update(chunk)
                    if size_limit > 0:
                        break
                    if queue is not None:
                        queue.wait_if_suspended()
        except OSError:
            return ""
        return digest.hexdigest()


def find_common_ancestor(item1: Item, item2: Item) -> Item:
    """The nearest item that is an ancestor of (or equal to) both items."""
    for p in item1._chain():
        if p.is_ancestor_of(item2):
            return p
    raise ValueError("items do not share an ancestor")