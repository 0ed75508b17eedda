"""Formatting helpers for sizes, counts, times, attributes and paths."""

from __future__ import annotations

import math
import os
from datetime import datetime
from enum import IntFlag

BRACKET_OPEN = "("
BRACKET_CLOSE = ")"
COLON = ":"
BACKSLASH = "\\"
BLANK = " "
ALPHA = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"

INVALID_FILE_ATTRIBUTES = 0xFFFFFFFF
INVALID_ATTRIBUTES_TEXT = "??????"

SPEC_BYTES = "Bytes"
SPEC_KB = "KiB"
SPEC_MB = "MiB"
SPEC_GB = "GiB"
SPEC_TB = "TiB"

DEFAULT_THOUSAND_SEPARATOR = ","
DEFAULT_DECIMAL_SEPARATOR = "."
FILE_TIME_FORMAT = "%Y-%m-%d  %H:%M"


class FileAttribute(IntFlag):
    """File attribute bits as reported by the file system."""

    NONE = 0
    READONLY = 0x1
    HIDDEN = 0x2
    SYSTEM = 0x4
    DIRECTORY = 0x10
    ARCHIVE = 0x20
    NORMAL = 0x80
    SPARSE_FILE = 0x200
    REPARSE_POINT = 0x400
    COMPRESSED = 0x800
    OFFLINE = 0x1000
    ENCRYPTED = 0x4000


_ATTRIBUTE_LETTERS = (
    (FileAttribute.READONLY, "R"),
    (FileAttribute.HIDDEN, "H"),
    (FileAttribute.SYSTEM, "S"),
    (FileAttribute.ARCHIVE, "A"),
    (FileAttribute.COMPRESSED, "C"),
    (FileAttribute.ENCRYPTED, "E"),
    (FileAttribute.OFFLINE, "O"),
    (FileAttribute.SPARSE_FILE, "Z"),
)


def format_long_long_normal(n: int, separator: str = DEFAULT_THOUSAND_SEPARATOR) -> str:
    """Format a non-negative integer with thousands separators, e.g. 123,456,789."""
    if n < 0:
        raise ValueError("number must not be negative")
    groups = []
    while True:
        n, rest = divmod(n, 1000)
        groups.append(f"{rest:03}" if n > 0 else str(rest))
        if n == 0:
            break
    return separator.join(reversed(groups))


def format_double(d: float, decimal: str = DEFAULT_DECIMAL_SEPARATOR) -> str:
    """Format a non-negative number with one decimal place, rounded."""
    if d < 0:
        raise ValueError("number must not be negative")
    d += 0.05
    whole = int(math.floor(d))
    tenth = int(10 * math.fmod(d, 1))
    return f"{whole}{decimal}{tenth}"


def format_size_suffixes(n: int, decimal: str = DEFAULT_DECIMAL_SEPARATOR) -> str:
    """Format a byte count with a binary unit suffix, e.g. 12.4 GiB."""
    if n < 0:
        raise ValueError("size must not be negative")
    base = 1024
    half = base // 2

    n, b = divmod(n, base)
    n, kb = divmod(n, base)
    n, mb = divmod(n, base)
    tb, gb = divmod(n, base)

    if tb != 0 or (gb == base - 1 and mb >= half):
        return f"{format_double(tb + gb / base, decimal)} {SPEC_TB}"
    if gb != 0 or (mb == base - 1 and kb >= half):
        return f"{format_double(gb + mb / base, decimal)} {SPEC_GB}"
    if mb != 0 or (kb == base - 1 and b >= half):
        return f"{format_double(mb + kb / base, decimal)} {SPEC_MB}"
    if kb != 0:
        return f"{format_double(kb + b / base, decimal)} {SPEC_KB}"
    if b != 0:
        return f"{b} {SPEC_BYTES}"
    return "0"


def format_bytes(n: int, use_suffixes: bool = False) -> str:
    """Format a byte count either with unit suffixes or as a plain grouped number."""
    if use_suffixes:
        return format_size_suffixes(n)
    return format_long_long_normal(n)


def format_count(n: int) -> str:
    """Format an item count with thousands separators."""
    return format_long_long_normal(n)


def pad_width_blanks(s: str, width: int) -> str:
    """Pad a string on the right with blanks up to the given width."""
    return s.ljust(width, BLANK)


def format_file_time(timestamp: datetime | float) -> str:
    """Format a modification time as local date and time without seconds.

    Returns an empty string when the time cannot be converted.
    """
    try:
        moment = (
            timestamp
            if isinstance(timestamp, datetime)
            else datetime.fromtimestamp(timestamp)
        )
        return moment.strftime(FILE_TIME_FORMAT)
    except (OverflowError, OSError, ValueError):
        return ""


def format_attributes(attr: int) -> str:
    """Render attribute bits as letters in the order RHSACEOZ."""
    if attr == INVALID_FILE_ATTRIBUTES:
        return INVALID_ATTRIBUTES_TEXT
    return "".join(letter for flag, letter in _ATTRIBUTE_LETTERS if attr & flag)


def format_milliseconds(ms: int) -> str:
    """Format a duration as m:ss or h:mm:ss, rounded to the nearest second."""
    seconds_total = (ms + 500) // 1000
    minutes_total, seconds = divmod(seconds_total, 60)
    hours, minutes = divmod(minutes_total, 60)
    if hours <= 0:
        return f"{minutes}:{seconds:02}"
    return f"{hours}:{minutes:02}:{seconds:02}"


def format_volume_name(root_path: str, volume_name: str) -> str:
    """Build a display name like 'BOOT (C:)' from a root path and volume label."""
    return f"{volume_name} ({root_path[:2]})"


def path_from_volume_name(name: str) -> str:
    """Inverse of format_volume_name: 'BOOT (C:)' or 'C:\\' gives 'C:'."""
    close = name.rfind(BRACKET_CLOSE)
    if close == -1:
        if len(name) != 3:
            raise ValueError(f"not a drive root or volume name: {name!r}")
        return name[:2]
    open_ = name.rfind(BRACKET_OPEN)
    if open_ == -1 or open_ >= close:
        raise ValueError(f"malformed volume name: {name!r}")
    path = name[open_ + 1:close]
    if len(path) != 2 or path[1] != COLON:
        raise ValueError(f"malformed volume name: {name!r}")
    return path


def get_folder_name_from_path(path: str) -> str:
    """Return everything before the last backslash, or the path itself."""
    i = path.rfind(BACKSLASH)
    return path if i == -1 else path[:i]


def replace_string(subject: str, search: str, replace: str) -> str:
    """Replace every occurrence of search, never rescanning replaced text."""
    if not search:
        raise ValueError("search string must not be empty")
    return subject.replace(search, replace)


def trim_string(s: str, c: str = BLANK) -> str:
    """Strip a single character from both ends of a string."""
    if len(c) != 1:
        raise ValueError("trim character must be a single character")
    return s.strip(c)


def folder_exists(path: str | os.PathLike) -> bool:
    """Return whether the path names an existing directory."""
    return os.path.isdir(path)


def drive_exists(path: str) -> bool:
    """Return whether a drive root such as 'C:\\' exists and is accessible."""
    if len(path) != 3 or path[1] != COLON or path[2] != BACKSLASH:
        return False
    if path[0].upper() not in ALPHA:
        return False
    return os.path.isdir(path)