"""Translation tables loaded from 'key=value' language files."""

from __future__ import annotations

import os
from collections.abc import Mapping

from dirstat.file_find import find_files

LANGUAGE_FILE_MASK = "lang_??.txt"
_KEY_PREFIX = "ID"


class Localization:
    """A table of localized strings keyed by resource name."""

    def __init__(self, strings: Mapping[str, str] | None = None) -> None:
        self.strings: dict[str, str] = dict(strings or {})

    def load_text(self, text: str) -> bool:
        """Merge 'key=value' lines into the table; '#' lines are comments."""
        for line in text.split("\n"):
            if not line or line.startswith("#"):
                continue
            line = line.replace("\r", "").replace("\\n", "\n").replace("\\t", "\t")
            key, sep, value = line.partition("=")
            if sep:
                self.strings[key] = value
        return True

    def load_file(self, path: str | os.PathLike) -> bool:
        """Load a UTF-8 language file; return False if it cannot be read."""
        try:
            with open(path, encoding="utf-8", newline="") as handle:
                text = handle.read()
        except OSError:
            return False
        return self.load_text(text)

    def contains(self, name: str) -> bool:
        return name in self.strings

    def lookup(self, name: str, default: str = "") -> str:
        """Return the translation of name, or the default if there is none."""
        return self.strings.get(name, default)

    def format(self, name: str, *args: object) -> str:
        """Look up a translation and fill its '{}' placeholders."""
        return self.lookup(name).format(*args)

    def translate(self, text: str) -> str:
        """Replace a resource name shown as text by its translation, if known."""
        if text.startswith(_KEY_PREFIX) and self.contains(text):
            return self.strings[text]
        return text


def available_languages(folder: str | os.PathLike) -> list[str]:
    """Return the language codes of the lang_xx.txt files in a folder."""
    codes = {
        entry.name[5:7].lower()
        for entry in find_files(folder, LANGUAGE_FILE_MASK)
        if not entry.is_directory() and entry.name[5:7].isalpha()
    }
    return sorted(codes)