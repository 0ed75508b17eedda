import hashlib
import os

import pytest

from dirstat.formatting import FileAttribute, format_bytes
from dirstat.item import (
    ONE_READ_JOB,
    ExtensionRecord,
    Item,
    ItemColumn,
    ItemType,
    find_common_ancestor,
)


def make_tree(base="base"):
    root = Item(ItemType.DIRECTORY | ItemType.ROOTITEM, base)
    sub = Item(ItemType.DIRECTORY, "sub")
    root.add_child(sub)
    big = Item(ItemType.FILE, "big.txt", size_physical=300, size_logical=280)
    small = Item(ItemType.FILE, "small.bin", size_physical=100, size_logical=90)
    sub.add_child(big)
    root.add_child(small)
    return root, sub, big, small


def test_extension_is_lowercased_with_dot():
    assert Item(ItemType.FILE, "Photo.JPG").extension == ".jpg"


def test_file_without_dot_has_empty_extension():
    assert Item(ItemType.FILE, "Makefile").extension == ""


def test_add_child_propagates_sizes():
    root, sub, big, small = make_tree()
    assert sub.size_physical == big.size_physical
    assert root.size_physical == big.size_physical + small.size_physical
    assert root.size_logical == big.size_logical + small.size_logical


def test_subtract_below_zero_raises_and_leaves_sizes():
    root, sub, big, _ = make_tree()
    before = root.size_physical
    with pytest.raises(ValueError):
        sub.upward_subtract_size_physical(sub.size_physical + 1)
    assert root.size_physical == before


def test_subtract_size_flows_upward():
    root, sub, big, small = make_tree()
    big.upward_subtract_size_physical(big.size_physical)
    assert root.size_physical == small.size_physical
    assert sub.size_physical == 0


def test_file_counts_skip_files():
    root, sub, big, _ = make_tree()
    big.upward_add_files(1)
    assert big.files_count == 0
    assert sub.files_count == 1
    assert root.files_count == 1
    sub.upward_add_folders(2)
    assert root.items_count() == root.files_count + root.folders_count
    root.upward_subtract_files(1)
    assert root.files_count == 0


def test_path_composition(tmp_path):
    base = str(tmp_path)
    root, sub, big, small = make_tree(base)
    assert root.path() == base
    assert big.path() == os.sep.join([base, "sub", "big.txt"])
    assert big.folder_path() == os.sep.join([base, "sub"]) + os.sep
    assert sub.folder_path() == sub.path()


def test_drive_path():
    drive = Item(ItemType.DRIVE, "BOOT (C:)")
    folder = Item(ItemType.DIRECTORY, "Users")
    drive.add_child(folder)
    assert drive.path() == "C:" + os.sep
    assert folder.path() == "C:" + os.sep + "Users"


def test_unc_path_detected():
    root = Item(ItemType.DIRECTORY | ItemType.ROOTITEM, "\\\\server\\share")
    assert root.has_unc_path()
    assert not Item(ItemType.DIRECTORY, "local").has_unc_path()


def test_fractions_of_children_sum_to_one():
    root, sub, _, small = make_tree()
    assert sub.fraction() + small.fraction() == pytest.approx(1.0)
    assert root.fraction() == 1.0


def test_sort_attributes_respects_priority():
    readonly = Item(ItemType.FILE, "a", attributes=FileAttribute.READONLY)
    hidden = Item(ItemType.FILE, "b", attributes=FileAttribute.HIDDEN | FileAttribute.ENCRYPTED)
    encrypted = Item(ItemType.FILE, "c", attributes=FileAttribute.ENCRYPTED)
    assert readonly.sort_attributes() > hidden.sort_attributes() > encrypted.sort_attributes()
    assert readonly.compare_sibling(hidden, ItemColumn.ATTRIBUTES) == 1


def test_read_jobs_finish_marks_done():
    root, sub, _, _ = make_tree()
    sub.upward_add_read_jobs(1)
    assert root.read_jobs == 1
    assert sub.get_text(ItemColumn.SUBTREEPERCENTAGE) == ONE_READ_JOB
    sub.upward_subtract_read_jobs(1)
    assert sub.is_done() and root.is_done()
    assert sub.get_text(ItemColumn.SUBTREEPERCENTAGE) == ""


def test_set_done_sorts_children_biggest_first():
    root = Item(ItemType.DIRECTORY, "r")
    for name, size in [("a", 5), ("b", 50), ("c", 20)]:
        root.add_child(Item(ItemType.FILE, name, size_physical=size))
    root.set_done()
    sizes = [c.size_physical for c in root.children]
    assert sizes == sorted(sizes, reverse=True)
    assert root.is_done()


def test_upward_set_undone_zeroes_unknown_on_done_drive():
    drive = Item(ItemType.DRIVE, "C:\\")
    unknown = Item(ItemType.UNKNOWN, "<Unknown>", size_physical=40)
    data = Item(ItemType.FILE, "x.dat", size_physical=60)
    drive.add_child(unknown)
    drive.add_child(data)
    drive.set_done()
    drive.upward_set_undone()
    assert unknown.size_physical == 0
    assert drive.size_physical == data.size_physical
    assert not drive.is_done()


def test_compare_sibling_by_name_and_size():
    a = Item(ItemType.FILE, "abc", size_physical=1)
    b = Item(ItemType.FILE, "ABC", size_physical=2)
    assert a.compare_sibling(b, ItemColumn.NAME) == 0
    assert a.compare_sibling(b, ItemColumn.SIZE_PHYSICAL) == -1
    assert b.compare_sibling(a, ItemColumn.SIZE_PHYSICAL) == 1


def test_get_text_values():
    root, sub, big, _ = make_tree()
    assert big.get_text(ItemColumn.SIZE_PHYSICAL) == format_bytes(big.size_physical)
    assert big.get_text(ItemColumn.NAME) == "big.txt"
    assert big.get_text(ItemColumn.ITEMS) == ""
    with pytest.raises(ValueError):
        big.get_text(ItemColumn.OPTIONAL_START)


def test_recycler_found_from_deep_item():
    drive = Item(ItemType.DRIVE, "D:\\")
    bin_dir = Item(ItemType.DIRECTORY, "$Recycle.Bin")
    other = Item(ItemType.DIRECTORY, "data")
    leaf = Item(ItemType.FILE, "f.txt")
    drive.add_child(other)
    drive.add_child(bin_dir)
    other.add_child(leaf)
    assert leaf.find_recycler_item() is bin_dir
    assert Item(ItemType.DIRECTORY, "lonely").find_recycler_item() is None


def test_find_special_children():
    drive = Item(ItemType.DRIVE, "E:\\")
    free = Item(ItemType.FREESPACE, "<Free>")
    unknown = Item(ItemType.UNKNOWN, "<Unknown>")
    drive.add_child(free)
    drive.add_child(unknown)
    assert drive.find_free_space_item() is free
    assert drive.find_unknown_item() is unknown
    assert free.is_leaf() and not drive.is_leaf()


def test_collect_extension_data():
    root = Item(ItemType.DIRECTORY, "r")
    sub = Item(ItemType.DIRECTORY, "s")
    root.add_child(sub)
    t1 = Item(ItemType.FILE, "a.TXT", size_physical=10)
    t2 = Item(ItemType.FILE, "b.txt", size_physical=7)
    b1 = Item(ItemType.FILE, "c.bin", size_physical=3)
    sub.add_child(t1)
    root.add_child(t2)
    root.add_child(b1)
    data = root.collect_extension_data()
    assert data[".txt"] == ExtensionRecord(bytes=t1.size_physical + t2.size_physical, files=2)
    assert data[".bin"].files == 1
    assert set(data) == {".txt", ".bin"}


def test_common_ancestor():
    root, sub, big, small = make_tree()
    assert find_common_ancestor(big, small) is root
    assert find_common_ancestor(big, sub) is sub
    assert find_common_ancestor(big, big) is big
    with pytest.raises(ValueError):
        find_common_ancestor(big, Item(ItemType.FILE, "stray"))


class CountingQueue:
    def __init__(self):
        self.waits = 0

    def wait_if_suspended(self):
        self.waits += 1


def test_file_hash_full_and_partial(tmp_path):
    content = b"duplicate content for hashing"
    (tmp_path / "f.bin").write_bytes(content)
    root = Item(ItemType.DIRECTORY | ItemType.ROOTITEM, str(tmp_path))
    item = Item(ItemType.FILE, "f.bin", size_logical=len(content))
    root.add_child(item)
    queue = CountingQueue()
    assert item.file_hash(0, queue) == hashlib.sha512(content).hexdigest()
    assert queue.waits >= 1
    assert item.file_hash(4, queue) == hashlib.sha512(content[:4]).hexdigest()


def test_file_hash_missing_file_is_empty(tmp_path):
    root = Item(ItemType.DIRECTORY | ItemType.ROOTITEM, str(tmp_path))
    item = Item(ItemType.FILE, "missing.bin")
    root.add_child(item)
    assert item.file_hash(0, None) == ""


def test_remove_children():
    root, sub, big, small = make_tree()
    root.remove_child(small)
    assert small not in root.children
    assert small.parent is None
    root.remove_all_children()
    assert root.children == ()
    assert sub.parent is None


def test_add_child_to_file_raises():
    with pytest.raises(TypeError):
        Item(ItemType.FILE, "a").add_child(Item(ItemType.FILE, "b"))


def test_last_change_only_increases():
    root, sub, big, _ = make_tree()
    big.upward_update_last_change(1000.0)
    big.upward_update_last_change(500.0)
    assert root.last_change == 1000.0
    assert sub.last_change == big.last_change


def test_set_type_toggles_flags():
    item = Item(ItemType.FILE, "x")
    item.set_type(ItemType.PARTHASH, True)
    assert item.is_type(ItemType.PARTHASH)
    assert item.type == ItemType.FILE
    item.set_type(ItemType.PARTHASH, False)
    assert not item.is_type(ItemType.PARTHASH)