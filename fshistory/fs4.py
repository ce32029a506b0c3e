"""Patches and extraction helpers specific to Flight Simulator 4."""

from __future__ import annotations

import logging
from typing import BinaryIO, TextIO

from .fs import FileEntry
from .machine import Machine
from .mz import MzHeader

logger = logging.getLogger(__name__)

FS4_BASE_CS = 0x01A2
"""Segment fs4.exe is loaded at."""

EGA_DRIVER = "ega1.gra"
EGA_DRIVER_SIZE = 20192

IMAGE_WIDTH = 320
IMAGE_HEIGHT = 457

EXPANDED_BASE = 0x10000
EXPANDED_SIZE = 0x19D00
EXPANDED_HEADER_PARAGRAPHS = 16


def alter_files(machine: Machine, entry: FileEntry, addr: int, size: int) -> bool:
    """Patch the EGA driver right after it was read into memory.

    Disables the mouse driver call and the checksum check. Returns whether
    the patch was applied.
    """
    if entry.filename != EGA_DRIVER or size != EGA_DRIVER_SIZE:
        return False
    logger.info("fs4 alter file '%s' size %i to 0x%08x", entry.filename, size, addr)
    machine.write8(addr + 0x4476, 0xC3)  # disable mouse
    machine.write16_long(FS4_BASE_CS, 0x6DA2, 0xD231)  # disable checksum check
    return True


def extract_image(entry: FileEntry, stream: TextIO) -> None:
    """Write a 320x457 one-bit bitmap file as a plain-text P1 image."""
    row_bytes = IMAGE_WIDTH // 8
    needed = row_bytes * IMAGE_HEIGHT
    if entry.size < needed:
        raise ValueError(f"image needs {needed} bytes, file has {entry.size}")
    stream.write(f"P1\n{IMAGE_WIDTH} {IMAGE_HEIGHT}\n")
    for start in range(0, needed, row_bytes):
        row = entry.data[start:start + row_bytes]
        stream.write("".join(f"{(c >> (7 - bit)) & 1} " for c in row for bit in range(8)))
        stream.write("\n")


def write_expanded_exe(machine: Machine, stream: BinaryIO) -> None:
    """Write the unpacked program image at 1000:0000 as an MZ executable."""
    header_size = EXPANDED_HEADER_PARAGRAPHS * 16
    head = MzHeader(
        cblp=0,
        cp=(EXPANDED_SIZE + header_size) // 512,
        crlc=0,
        cparhdr=EXPANDED_HEADER_PARAGRAPHS,
        minalloc=0,
        maxalloc=0xFFFF,
        ss=0x19CF,
        sp=0x0190,
        csum=0,
        ip=0,
        cs=0,
        lfarlc=30,
        ovno=0,
    )
    header = head.pack()
    stream.write(header + bytes(header_size - len(header)))
    stream.write(bytes(machine.ram[EXPANDED_BASE:EXPANDED_BASE + EXPANDED_SIZE]))
    logger.info("expanded fs4 written")