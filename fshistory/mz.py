"""Loading of MZ executables and COM programs into emulated memory."""

from __future__ import annotations

import logging
import os
import struct
from dataclasses import astuple, dataclass

from .alloc import Allocator
from .machine import Machine, SegReg

logger = logging.getLogger(__name__)

_HEADER = struct.Struct("<14H")
_RELOC = struct.Struct("<HH")

PSP_SIZE = 0x100
ENVIRONMENT_SEG = 0x60


@dataclass
class MzHeader:
    """The fixed part of a DOS .EXE header."""

    magic: int = 0x5A4D
    cblp: int = 0
    cp: int = 0
    crlc: int = 0
    cparhdr: int = 0
    minalloc: int = 0
    maxalloc: int = 0
    ss: int = 0
    sp: int = 0
    csum: int = 0
    ip: int = 0
    cs: int = 0
    lfarlc: int = 0
    ovno: int = 0

    SIZE = _HEADER.size

    @classmethod
    def parse(cls, data: bytes) -> MzHeader:
        """Read a header from the start of data."""
        if len(data) < _HEADER.size:
            raise ValueError(f"MZ header needs {_HEADER.size} bytes, got {len(data)}")
        return cls(*_HEADER.unpack_from(data))

    def pack(self) -> bytes:
        """Encode the header as it is stored in a file."""
        return _HEADER.pack(*(value & 0xFFFF for value in astuple(self)))

    @property
    def image_size(self) -> int:
        """Size of the load image: file size from the header minus the header."""
        size = self.cp * 512 - 512 + self.cblp
        if self.cblp == 0:
            size += 512
        return size - self.cparhdr * 16


def _fill_psp(machine: Machine, base: int, next_free_seg: int) -> None:
    ram = machine.ram
    ram[base + 0x5D:base + 0x5D + 11] = b" " * 11
    ram[base + 0x6D:base + 0x6D + 11] = b" " * 11
    ram[base] = 0xCD  # int 20h
    ram[base + 1] = 0x20
    ram[base + 2] = next_free_seg & 0xFF
    ram[base + 3] = (next_free_seg >> 8) & 0xFF
    ram[base + 0x80] = 0  # empty command line
    ram[base + 0x81] = 0x0D


def load_mz_exe(machine: Machine, allocator: Allocator, data: bytes) -> int:
    """Load an MZ executable, apply relocations and set up the registers.

    Returns the segment the load image was placed at.
    """
    head = MzHeader.parse(data)
    logger.info("MZ:  - file size: %i", len(data))
    logger.info("MZ:  - cs:ip : 0x%04x:0x%04x", head.cs, head.ip)
    logger.info("MZ:  - ss:sp : 0x%04x:0x%04x", head.ss, head.sp)

    size_exe = head.image_size
    allocate_size = (size_exe >> 4) + 1 + head.maxalloc
    allocate_size = min(allocate_size, allocator.available())
    logger.info("MZ:  - allocate paragraphs: 0x%04x", allocate_size)
    relocseg = allocator.allocate(allocate_size)
    logger.info("MZ:  - to seg: 0x%04x", relocseg)

    start = head.cparhdr << 4
    image = data[start:start + max(size_exe, 0)]
    base = relocseg << 4
    machine.ram[base:base + len(image)] = image

    for i in range(head.crlc):
        offset, segment = _RELOC.unpack_from(data, head.lfarlc + 4 * i)
        value = machine.read16_long(relocseg + segment, offset)
        machine.write16_long(relocseg + segment, offset, value + relocseg)

    machine.set_csip(head.cs + relocseg, head.ip)
    machine.set_sssp(head.ss + relocseg, head.sp)
    psp_seg = (relocseg - 0x10) & 0xFFFF
    machine.regs.segs[SegReg.DS] = psp_seg
    machine.regs.segs[SegReg.ES] = psp_seg

    allocator.next_free_seg = (allocator.next_free_seg + 1) & 0xFFFF
    psp = base - PSP_SIZE
    _fill_psp(machine, psp, allocator.next_free_seg)
    machine.ram[psp + 0x2C] = ENVIRONMENT_SEG
    machine.ram[psp + 0x2D] = 0
    logger.info("MZ: Finished Loading Exe")
    return relocseg


def load_com(machine: Machine, allocator: Allocator, data: bytes) -> int:
    """Load a COM program behind its program segment prefix.

    Returns the segment of the program segment prefix.
    """
    size = len(data)
    logger.info("COM: - size: %i", size)
    seg = allocator.allocate((size >> 4) + 1 + 0x10)
    base = seg << 4
    machine.ram[base + PSP_SIZE:base + PSP_SIZE + size] = data
    machine.set_csip(seg, 0x100)
    machine.set_sssp(seg, 0xFFFE)
    machine.regs.segs[SegReg.DS] = (seg - 0x10) & 0xFFFF
    machine.regs.segs[SegReg.ES] = (seg - 0x10) & 0xFFFF
    _fill_psp(machine, base, allocator.next_free_seg)
    logger.info("COM: Finished Loading Com")
    return seg


def load_mz_exe_file(machine: Machine, allocator: Allocator, path: str | os.PathLike[str]) -> int:
    """Load an MZ executable from a host file."""
    logger.info("MZ: Filename: %s", path)
    with open(path, "rb") as fp:
        data = fp.read()
    return load_mz_exe(machine, allocator, data)


def load_com_file(machine: Machine, allocator: Allocator, path: str | os.PathLike[str]) -> int:
    """Load a COM program from a host file."""
    logger.info("COM: Filename: %s", path)
    with open(path, "rb") as fp:
        data = fp.read()
    return load_com(machine, allocator, data)