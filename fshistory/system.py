"""The assembled machine: memory, DOS, file system, and the game loaders."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from .alloc import Allocator
from .dos import Dos
from .fs import FileSystem
from .machine import Flags, Machine, Registers
from .mz import load_mz_exe

logger = logging.getLogger(__name__)

_EXECUTABLES = {
    3: ("data/fs3.fs", "fs3.exe"),
    4: ("data/fs4.fs", "fs4.exe"),
    5: ("data/fs5.fs", "fs5.ovl"),
}
_DISK_IMAGES = {1: "fs1.img", 2: "fs2.img"}


class System:
    """Ties the machine, the allocator, the file system and DOS together."""

    def __init__(self, data_root: str | os.PathLike[str] = ".") -> None:
        self.data_root = Path(data_root)
        self.machine = Machine()
        self.allocator = Allocator()
        self.fs = FileSystem()
        self.dos = Dos(self.machine, self.allocator, self.fs)
        self.init()

    def init(self) -> None:
        """Clear memory and registers and restore the initial DOS state."""
        logger.info("Init system")
        self.machine.ram[:] = bytes(len(self.machine.ram))
        self.machine.regs = Registers()
        self.machine.flags = Flags()
        self.machine.halted = False
        self.dos.reset()
        logger.info("Init system finished")

    def mount(self, path: str | os.PathLike[str]) -> None:
        """Mount a file system image from a host file.

        Relative paths are taken from the data root.
        """
        full = self.data_root / path
        with open(full, "rb") as fp:
            data = fp.read()
        logger.info("Load filesystem '%s' with size %i", full, len(data))
        self.fs.mount(data)

    def load_mz(self, filename: str) -> int:
        """Load an MZ executable from the mounted file system.

        Returns the segment the load image was placed at.
        """
        found = self.fs.find(filename)
        if found is None:
            raise FileNotFoundError(f"Cannot open file '{filename}'")
        _, entry = found
        logger.info("open %s", entry.filename)
        return load_mz_exe(self.machine, self.allocator, bytes(entry.data))

    def set_fs_version(self, version: int) -> int:
        """Mount the image of a game version and load its executable.

        Versions 1 and 2 boot from disk images, which are not supported;
        they and unknown versions raise ValueError.
        """
        logger.info("Loading FS version %i", version)
        if version in _DISK_IMAGES:
            raise ValueError(
                f"version {version} boots from disk image {_DISK_IMAGES[version]}, "
                "which is not supported"
            )
        if version not in _EXECUTABLES:
            raise ValueError(f"unknown version: {version!r}")
        image, executable = _EXECUTABLES[version]
        self.mount(image)
        return self.load_mz(executable)