"""Drive-level bookkeeping: free space and unknown space entries, and scan progress."""

from __future__ import annotations

import os
import shutil

from dirstat.item import Item, ItemType

FREE_SPACE_NAME = "<Free Space>"
UNKNOWN_NAME = "<Unknown>"


def disk_space(path: str | os.PathLike) -> tuple[int, int]:
    """Return (total, free) bytes of the volume holding path, or (0, 0) if unknown."""
    try:
        usage = shutil.disk_usage(path)
    except OSError:
        return 0, 0
    return usage.total, usage.free


def _require_drive(drive: Item) -> None:
    if not drive.is_type(ItemType.DRIVE):
        raise ValueError(f"{drive.name!r} is not a drive")


def create_free_space_item(drive: Item, name: str = FREE_SPACE_NAME) -> Item:
    """Add an entry for the free space of the drive and return it."""
    _require_drive(drive)
    drive.upward_set_undone()
    _, free = disk_space(drive.path())
    free_space = Item(ItemType.FREESPACE, name)
    free_space.size_physical = free
    free_space.set_done()
    drive.add_child(free_space)
    return free_space


def update_free_space_item(drive: Item) -> None:
    """Refresh the free space entry of the drive from the volume, if it has one."""
    _require_drive(drive)
    free_space = drive.find_free_space_item()
    if free_space is None:
        return
    free_space.upward_subtract_size_physical(free_space.size_physical)
    _, free = disk_space(drive.path())
    free_space.upward_add_size_physical(free)


def remove_free_space_item(drive: Item) -> None:
    """Remove the free space entry of the drive and take its size off the tree."""
    _require_drive(drive)
    free_space = drive.find_free_space_item()
    if free_space is None:
        return
    drive.upward_set_undone()
    drive.upward_subtract_size_physical(free_space.size_physical)
    drive.remove_child(free_space)


def create_unknown_item(drive: Item, name: str = UNKNOWN_NAME) -> Item:
    """Add an entry for used space that the scan could not account for."""
    _require_drive(drive)
    drive.upward_set_undone()
    unknown = Item(ItemType.UNKNOWN, name)
    unknown.set_done()
    drive.add_child(unknown)
    return unknown


def update_unknown_item(drive: Item) -> None:
    """Set the unknown entry to the used space not covered by the scanned items."""
    _require_drive(drive)
    unknown = drive.find_unknown_item()
    if unknown is None:
        return
    unknown.upward_subtract_size_physical(unknown.size_physical)

    free_space = drive.find_free_space_item()
    tallied = drive.size_physical - (free_space.size_physical if free_space else 0)
    total, free = disk_space(drive.path())
    used = total - free
    unknown.upward_add_size_physical(0 if tallied > used else used - tallied)


def remove_unknown_item(drive: Item) -> None:
    """Remove the unknown entry of the drive and take its size off the tree."""
    _require_drive(drive)
    unknown = drive.find_unknown_item()
    if unknown is None:
        return
    drive.upward_set_undone()
    drive.upward_subtract_size_physical(unknown.size_physical)
    drive.remove_child(unknown)


def set_drive_done(drive: Item) -> None:
    """Mark an item done; a drive first refreshes its free and unknown entries."""
    if drive.is_done():
        return
    if drive.is_type(ItemType.DRIVE):
        update_free_space_item(drive)
        update_unknown_item(drive)
    drive.set_done()


def _drive_range(item: Item) -> int:
    total, free = disk_space(item.path())
    return max(total - free, 0)


def progress_range(item: Item) -> int:
    """The number of used bytes a scan of the item is expected to cover."""
    if item.is_type(ItemType.MYCOMPUTER):
        return sum(_drive_range(child) for child in item.children)
    if item.is_type(ItemType.DRIVE):
        return _drive_range(item)
    if item.is_type(ItemType.FILE | ItemType.DIRECTORY):
        return 0
    raise ValueError(f"no progress range for {item!r}")


def progress_pos(item: Item) -> int:
    """The number of bytes a scan of the item has covered so far."""
    if item.is_type(ItemType.MYCOMPUTER):
        return sum(progress_pos(child) for child in item.children)
    if item.is_type(ItemType.DRIVE):
        free_space = item.find_free_space_item()
        return item.size_physical - (free_space.size_physical if free_space else 0)
    return 0