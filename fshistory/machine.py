"""Registers, flags and linear memory of the emulated real-mode machine."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from enum import IntEnum

logger = logging.getLogger(__name__)

RAM_SIZE = 0x110000
"""Enough for every address reachable with a 16-bit segment and offset."""


class WordReg(IntEnum):
    """16-bit general purpose registers in encoding order."""

    AX = 0
    CX = 1
    DX = 2
    BX = 3
    SP = 4
    BP = 5
    SI = 6
    DI = 7


class ByteReg(IntEnum):
    """8-bit registers in encoding order."""

    AL = 0
    CL = 1
    DL = 2
    BL = 3
    AH = 4
    CH = 5
    DH = 6
    BH = 7


class SegReg(IntEnum):
    """Segment registers in encoding order."""

    ES = 0
    CS = 1
    SS = 2
    DS = 3


_FLAG_BITS = {
    "cf": 0,
    "pf": 2,
    "af": 4,
    "zf": 6,
    "sf": 7,
    "tf": 8,
    "if_": 9,
    "df": 10,
    "of": 11,
}


@dataclass
class Flags:
    """The individual status and control flags of the processor."""

    cf: bool = False
    pf: bool = False
    af: bool = False
    zf: bool = False
    sf: bool = False
    tf: bool = False
    if_: bool = False
    df: bool = False
    of: bool = False

    def compress(self) -> int:
        """Pack the flags into the FLAGS register word."""
        return sum(1 << _FLAG_BITS[f.name] for f in fields(self) if getattr(self, f.name))

    @classmethod
    def expand(cls, value: int) -> Flags:
        """Build flags from a FLAGS register word."""
        return cls(**{name: bool(value & (1 << bit)) for name, bit in _FLAG_BITS.items()})


@dataclass
class Registers:
    """General purpose, segment and instruction pointer registers."""

    words: list[int] = field(default_factory=lambda: [0] * len(WordReg))
    segs: list[int] = field(default_factory=lambda: [0] * len(SegReg))
    ip: int = 0

    def get_word(self, reg: int) -> int:
        return self.words[WordReg(reg)]

    def set_word(self, reg: int, value: int) -> None:
        self.words[WordReg(reg)] = value & 0xFFFF

    def get_byte(self, reg: int) -> int:
        reg = ByteReg(reg)
        word = self.words[reg & 3]
        return (word >> 8) & 0xFF if reg >= ByteReg.AH else word & 0xFF

    def set_byte(self, reg: int, value: int) -> None:
        reg = ByteReg(reg)
        index = reg & 3
        word = self.words[index]
        value &= 0xFF
        if reg >= ByteReg.AH:
            self.words[index] = (word & 0x00FF) | (value << 8)
        else:
            self.words[index] = (word & 0xFF00) | value


def _linear(seg: int, ofs: int) -> int:
    return ((seg & 0xFFFF) << 4) + (ofs & 0xFFFF)


class Machine:
    """Memory and register state shared by the emulated devices and DOS."""

    def __init__(self, size: int = RAM_SIZE) -> None:
        self.ram = bytearray(size)
        self.regs = Registers()
        self.flags = Flags()
        self.halted = False

    def read8(self, addr: int) -> int:
        return self.ram[addr]

    def write8(self, addr: int, value: int) -> None:
        self.ram[addr] = value & 0xFF

    def read16(self, addr: int) -> int:
        return self.ram[addr] | (self.ram[addr + 1] << 8)

    def write16(self, addr: int, value: int) -> None:
        self.ram[addr] = value & 0xFF
        self.ram[addr + 1] = (value >> 8) & 0xFF

    def read8_long(self, seg: int, ofs: int) -> int:
        return self.read8(_linear(seg, ofs))

    def write8_long(self, seg: int, ofs: int, value: int) -> None:
        self.write8(_linear(seg, ofs), value)

    def read16_long(self, seg: int, ofs: int) -> int:
        return self.read16(_linear(seg, ofs))

    def write16_long(self, seg: int, ofs: int, value: int) -> None:
        self.write16(_linear(seg, ofs), value)

    def set_csip(self, cs: int, ip: int) -> None:
        self.regs.segs[SegReg.CS] = cs & 0xFFFF
        self.regs.ip = ip & 0xFFFF

    def set_sssp(self, ss: int, sp: int) -> None:
        self.regs.segs[SegReg.SS] = ss & 0xFFFF
        self.regs.set_word(WordReg.SP, sp)