# dirstat

`dirstat` is a library for directory statistics. It models files, folders
and drives as a tree of items whose physical and logical sizes, file and
folder counts and latest change times add up along each branch. It also
provides directory enumeration, display formatting for sizes, times and
attributes, and simple `name=value` translation tables.

## Installation

```
pip install .
```

To run the test suite:

```
pip install .[test]
pytest
```

## Modules

- `dirstat.item` holds the tree. `Item` carries an `ItemType` (file,
  directory, drive, free space, unknown, plus state flags such as `DONE`),
  sizes, counts and attributes. `add_child` lets a child's sizes and change
  time flow up to every ancestor; the `upward_*` methods adjust sizes,
  file and folder counts and read jobs along the parent chain, refusing to
  let any of them go negative. `path`, `folder_path`, `fraction`,
  `get_text` and `compare_sibling` give display text and ordering for each
  `ItemColumn`. `collect_extension_data` totals files per extension as
  `ExtensionRecord`s, and `file_hash` computes the SHA-512 of a file, or of
  only its first bytes. `find_common_ancestor` returns the nearest shared
  ancestor of two items.
- `dirstat.drive` manages the free-space and unknown-space entries of a
  drive item (`create_free_space_item`, `update_unknown_item`, ...), marks
  drives done with `set_drive_done`, and reports scan progress with
  `progress_range` and `progress_pos`. `disk_space` returns the total and
  free bytes of a volume.
- `dirstat.file_find` enumerates a folder with `find_files`, yielding
  `FileEntry` records (name, path, attribute bits, physical and logical
  size, last write time) that match an optional wildcard mask, `.` and
  `..` first. `does_file_exist` and `make_long_path_compatible` are
  helpers built on it.
- `dirstat.formatting` turns values into display text:
  `format_bytes`, `format_size_suffixes`, `format_count`,
  `format_double`, `format_milliseconds`, `format_file_time`,
  `format_attributes` (with the `FileAttribute` flags), volume name helpers
  such as `format_volume_name` and `path_from_volume_name`, and small
  string and path checks.
- `dirstat.localization` provides `Localization`, a table filled from
  `name=value` text or files (`load_text`, `load_file`) and read with
  `lookup`, `format` and `translate`. `available_languages` lists the
  language codes of `lang_xx.txt` files in a folder.

## Examples

```python
from dirstat.formatting import format_size_suffixes, format_milliseconds

print(format_size_suffixes(5 * 1024 * 1024, "."))   # 5.0 MiB
print(format_milliseconds(61_000))                 # 1:01
```

```python
from dirstat.item import Item, ItemColumn, ItemType

folder = Item(ItemType.DIRECTORY, "root")
report = Item(ItemType.FILE, "report.txt", size_physical=4096, size_logical=100)
folder.add_child(report)
folder.upward_add_files(1)

print(folder.size_physical)                 # 4096
print(folder.get_text(ItemColumn.FILES))    # 1
print(folder.collect_extension_data())      # {'.txt': ExtensionRecord(bytes=4096, files=1)}
```

```python
from dirstat.localization import Localization

strings = Localization()
strings.load_text("IDS_GREETING=Hello {}\n")
print(strings.format("IDS_GREETING", "world"))   # Hello world
```

## What it does not do

The package has no command-line program and no threaded scanner: it does
not walk a folder tree by itself and fill in the items, so building the
tree from `find_files` results is left to the caller. It also has no
duplicate-file detection beyond `Item.file_hash`, and no views or rendering
of the tree.