"""The flat in-memory file system image the emulated DOS reads from."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from .errors import exit_or_restart

logger = logging.getLogger(__name__)

NAME_FIELD = 256
ENTRY_HEADER = NAME_FIELD + 4
MAX_FILES = 1024

_ASCII_LOWER = str.maketrans("ABCDEFGHIJKLMNOPQRSTUVWXYZ", "abcdefghijklmnopqrstuvwxyz")


def _ascii_lower(text: str) -> str:
    return text.translate(_ASCII_LOWER)


@dataclass
class FileEntry:
    """One file: its name and its contents."""

    filename: str
    data: bytearray = field(default_factory=bytearray)

    @property
    def size(self) -> int:
        return len(self.data)


class FileSystem:
    """A list of files mounted from an image, searched by name or suffix."""

    def __init__(self, files: Iterable[FileEntry] = ()) -> None:
        self.files: list[FileEntry] = list(files)

    @classmethod
    def from_image(cls, data: bytes) -> FileSystem:
        fs = cls()
        fs.mount(data)
        return fs

    def mount(self, data: bytes) -> None:
        """Replace the files with those held in an image."""
        view = memoryview(bytes(data))
        files: list[FileEntry] = []
        pos = 0
        while pos < len(view):
            if pos + ENTRY_HEADER > len(view):
                raise ValueError(f"truncated file header at offset {pos}")
            raw_name = view[pos:pos + NAME_FIELD].tobytes().split(b"\0", 1)[0]
            size = int.from_bytes(view[pos + NAME_FIELD:pos + ENTRY_HEADER], "little", signed=True)
            start = pos + ENTRY_HEADER
            if size < 0 or start + size > len(view):
                raise ValueError(f"file at offset {pos} runs past the end of the image")
            files.append(FileEntry(raw_name.decode("latin-1"), bytearray(view[start:start + size])))
            pos = start + size
            if len(files) >= MAX_FILES:
                logger.error("Number of files exceed maximum")
                exit_or_restart(1)
        self.files = files
        logger.info("Loaded files: %i", len(files))

    def find(self, pattern: str, start: int = 0) -> tuple[int, FileEntry] | None:
        """Find the first file at or after start matching pattern.

        A leading '*' matches any file whose name ends with the rest of the
        pattern. Returns the index and entry, or None.
        """
        pattern = _ascii_lower(pattern)
        logger.debug("Find file '%s'", pattern)
        for index in range(start, len(self.files)):
            entry = self.files[index]
            if pattern.startswith("*"):
                if entry.filename.endswith(pattern[1:]):
                    return index, entry
            elif entry.filename == pattern:
                return index, entry
        return None

    def create(self, filename: str) -> FileEntry:
        """Add an empty file with the name in lower case."""
        entry = FileEntry(_ascii_lower(filename))
        self.files.append(entry)
        return entry

    def write(self, entry: FileEntry, data: bytes, offset: int) -> None:
        """Write data into a file at offset, growing it when needed."""
        if offset < 0:
            raise ValueError("offset must not be negative")
        end = offset + len(data)
        if entry.size < end:
            entry.data.extend(bytes(end - entry.size))
        entry.data[offset:end] = data


def build_image(files: Mapping[str, bytes] | Iterable[tuple[str, bytes]]) -> bytes:
    """Build a mountable image from file names and contents."""
    items = files.items() if isinstance(files, Mapping) else files
    parts = []
    for name, data in items:
        raw = name.encode("latin-1")
        if len(raw) >= NAME_FIELD:
            raise ValueError(f"file name too long: {name!r}")
        parts.append(raw.ljust(NAME_FIELD, b"\0"))
        parts.append(len(data).to_bytes(4, "little"))
        parts.append(bytes(data))
    return b"".join(parts)