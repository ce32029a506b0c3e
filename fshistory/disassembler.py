"""8086 disassembler producing listings of emulated memory."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from .disasm_tables import (
    BYTE_REGS,
    CONDITIONS,
    INDEX_REGS,
    NUL_REGS,
    SEG_REGS,
    WORD_REGS,
    Operands,
    lookup,
)

_WORD_PTR = "word ptr "
_BYTE_PTR = "byte ptr "


@dataclass(frozen=True)
class Instruction:
    """One decoded instruction, or one prefix byte, and where it was found."""

    segment: int
    offset: int
    next_offset: int
    raw: bytes
    text: str
    prefix: bool = False

    @property
    def address(self) -> str:
        return f"{self.segment:04X}:{self.offset:04X}"

    def __str__(self) -> str:
        return f"{self.address} {self.raw.hex().upper():<14}{self.text}"


class _Reader:
    """Reads instruction bytes relative to a segment base."""

    def __init__(self, memory: Sequence[int], seg: int, off: int) -> None:
        if off < 0:
            raise ValueError("offset must not be negative")
        self.memory = memory
        self.base = (seg & 0xFFFF) << 4
        self.off = off

    def byte(self) -> int:
        value = self.memory[self.base + self.off]
        self.off += 1
        return value

    def word(self) -> int:
        low = self.byte()
        return low | (self.byte() << 8)

    def peek(self) -> int:
        return self.memory[self.base + (self.off & 0xFFFF)]


def _signed(value: int, bits: int) -> int:
    sign = 1 << (bits - 1)
    return (value & (sign - 1)) - (value & sign)


def _reg_field(modrm: int) -> int:
    return (modrm & 0x38) >> 3


def _mem(modrm: int, r: _Reader, regs: Sequence[str], msg: str) -> str:
    mode = modrm & 0xC0
    rm = modrm & 0x07
    if mode == 0xC0:
        return regs[rm]
    if mode == 0x00:
        if rm != 6:
            return f"{msg}[{INDEX_REGS[rm]}]"
        return f"{msg}[{r.word():04X}]"
    if mode == 0x40:
        disp, width = _signed(r.byte(), 8), 2
    else:
        disp, width = _signed(r.word(), 16), 4
    sign = "-" if disp < 0 else "+"
    return f"{msg}[{INDEX_REGS[rm]}{sign}{abs(disp):0{width}X}]"


def _disp8(r: _Reader) -> int:
    disp = r.byte()
    return (r.off + _signed(disp, 8)) & 0xFFFF


def _disp16(r: _Reader) -> int:
    disp = r.word()
    return (r.off + _signed(disp, 16)) & 0xFFFF


def _br8(r: _Reader, op: int) -> str:
    m = r.byte()
    return f"{_mem(m, r, BYTE_REGS, '')},{BYTE_REGS[_reg_field(m)]}"


def _r8b(r: _Reader, op: int) -> str:
    m = r.byte()
    return f"{BYTE_REGS[_reg_field(m)]},{_mem(m, r, BYTE_REGS, '')}"


def _wr16(r: _Reader, op: int) -> str:
    m = r.byte()
    return f"{_mem(m, r, WORD_REGS, '')},{WORD_REGS[_reg_field(m)]}"


def _r16w(r: _Reader, op: int) -> str:
    m = r.byte()
    return f"{WORD_REGS[_reg_field(m)]},{_mem(m, r, WORD_REGS, '')}"


def _bd8(r: _Reader, op: int) -> str:
    m = r.byte()
    mem = _mem(m, r, BYTE_REGS, _BYTE_PTR)
    return f"{mem},{r.byte():02X}"


def _wd16(r: _Reader, op: int) -> str:
    m = r.byte()
    mem = _mem(m, r, WORD_REGS, _WORD_PTR)
    return f"{mem},{r.word():04X}"


def _wd8(r: _Reader, op: int) -> str:
    m = r.byte()
    mem = _mem(m, r, WORD_REGS, _WORD_PTR)
    return f"{mem},{r.byte():02X}"


def _ws(r: _Reader, op: int) -> str:
    m = r.byte()
    return f"{_mem(m, r, WORD_REGS, '')},{SEG_REGS[_reg_field(m)]}"


def _sw(r: _Reader, op: int) -> str:
    m = r.byte()
    return f"{SEG_REGS[_reg_field(m)]},{_mem(m, r, WORD_REGS, '')}"


def _w(r: _Reader, op: int) -> str:
    return _mem(r.byte(), r, WORD_REGS, _WORD_PTR)


def _b(r: _Reader, op: int) -> str:
    return _mem(r.byte(), r, BYTE_REGS, _BYTE_PTR)


def _far(r: _Reader, op: int) -> str:
    offset = r.word()
    return f"{r.word():04X}:{offset:04X}"


def _rd(r: _Reader, op: int) -> str:
    if (op & 0x0F) > 7:
        return f"{WORD_REGS[op & 7]},{r.word():04X}"
    return f"{BYTE_REGS[op & 7]},{r.byte():02X}"


def _shift(regs: Sequence[str], msg: str, suffix: str) -> Callable[[_Reader, int], str]:
    def decode(r: _Reader, op: int) -> str:
        return f"{_mem(r.byte(), r, regs, msg)},{suffix}"

    return decode


def _escape(r: _Reader, op: int) -> str:
    m = r.byte()
    return f"{op & 7},{_mem(m, r, NUL_REGS, '')}"


def _adjust(r: _Reader, op: int) -> str:
    num = r.byte()
    return "" if num == 10 else f"{num:02X}"


def _far_ind(r: _Reader, op: int) -> str:
    return f"far {_mem(r.byte(), r, WORD_REGS, '')}"


_PORTDX = {0xEC: "al,dx", 0xED: "ax,dx", 0xEE: "dx,al", 0xEF: "dx,ax"}


def _f6(r: _Reader, op: int) -> str:
    return _bd8(r, op) if _reg_field(r.peek()) == 0 else _b(r, op)


def _f7(r: _Reader, op: int) -> str:
    return _wd16(r, op) if _reg_field(r.peek()) == 0 else _w(r, op)


def _ff(r: _Reader, op: int) -> str:
    return _far_ind(r, op) if _reg_field(r.peek()) in (3, 5) else _w(r, op)


def _bioscall(r: _Reader, op: int) -> str:
    if r.peek() != 0xF1:
        return "db     F1"
    r.off = (r.off + 1) & 0xFFFF
    addr = int.from_bytes(bytes(r.byte() for _ in range(4)), "little")
    return f"bios   {addr:08X}"


_DECODERS: dict[Operands, Callable[[_Reader, int], str]] = {
    Operands.BR8: _br8,
    Operands.R8B: _r8b,
    Operands.WR16: _wr16,
    Operands.R16W: _r16w,
    Operands.ALD8: lambda r, op: f"al,{r.byte():02X}",
    Operands.AXD16: lambda r, op: f"ax,{r.word():04X}",
    Operands.PUSHPOPSEG: lambda r, op: SEG_REGS[_reg_field(op)],
    Operands.DATABYTE: lambda r, op: f"{op:02X}",
    Operands.WORDREG: lambda r, op: WORD_REGS[op & 7],
    Operands.COND_JUMP: lambda r, op: f"{CONDITIONS[op & 0x0F]:<5} {_disp8(r):04X}",
    Operands.BD8: _bd8,
    Operands.WD16: _wd16,
    Operands.WD8: _wd8,
    Operands.WS: _ws,
    Operands.SW: _sw,
    Operands.W: _w,
    Operands.B: _b,
    Operands.STRING: lambda r, op: "w" if op & 1 else "b",
    Operands.XCHGAX: lambda r, op: f"ax,{WORD_REGS[op & 7]}",
    Operands.FAR: _far,
    Operands.ALMEM: lambda r, op: f"al,[{r.word():04X}]",
    Operands.AXMEM: lambda r, op: f"ax,[{r.word():04X}]",
    Operands.MEMAL: lambda r, op: f"[{r.word():04X}],al",
    Operands.MEMAX: lambda r, op: f"[{r.word():04X}],ax",
    Operands.RD: _rd,
    Operands.D16: lambda r, op: f"{r.word():04X}",
    Operands.INT3: lambda r, op: "3",
    Operands.D8: lambda r, op: f"{r.byte():02X}",
    Operands.BBIT1: _shift(BYTE_REGS, _BYTE_PTR, "1"),
    Operands.WBIT1: _shift(WORD_REGS, _WORD_PTR, "1"),
    Operands.BBITCL: _shift(BYTE_REGS, _BYTE_PTR, "cl"),
    Operands.WBITCL: _shift(WORD_REGS, _WORD_PTR, "cl"),
    Operands.ESCAPE: _escape,
    Operands.DISP: lambda r, op: f"{_disp8(r):04X}",
    Operands.ADJUST: _adjust,
    Operands.D8AL: lambda r, op: f"{r.byte():02X},al",
    Operands.D8AX: lambda r, op: f"{r.byte():02X},ax",
    Operands.AXD8: lambda r, op: f"ax,{r.byte():02X}",
    Operands.DISP16: lambda r, op: f"{_disp16(r):04X}",
    Operands.FAR_IND: _far_ind,
    Operands.PORTDX: lambda r, op: _PORTDX[op],
    Operands.F6: _f6,
    Operands.F7: _f7,
    Operands.FF: _ff,
    Operands.BIOSCALL: _bioscall,
}


def disassemble_one(memory: Sequence[int], seg: int, off: int) -> Instruction:
    """Decode the instruction or prefix byte at seg:off."""
    r = _Reader(memory, seg, off)
    opcode = r.byte()
    entry = lookup(opcode)
    if entry.group is not None:
        text = f"{entry.group[_reg_field(r.peek())]:<6} "
    elif entry.nospace:
        text = entry.text
    else:
        text = f"{entry.text:<6} "
    if entry.operands is not None:
        text += _DECODERS[entry.operands](r, opcode)
    base = r.base
    raw = bytes(memory[base + (o & 0xFFFF)] for o in range(off, r.off))
    return Instruction(seg, off, r.off, raw, text, entry.prefix)


def disassemble(memory: Sequence[int], seg: int, off: int, count: int) -> list[Instruction]:
    """Decode count instructions; prefix bytes do not count on their own."""
    result: list[Instruction] = []
    for _ in range(count):
        while True:
            inst = disassemble_one(memory, seg, off)
            result.append(inst)
            if inst.next_offset > off:
                off = inst.next_offset
            if not inst.prefix:
                break
    return result


def format_listing(instructions: Iterable[Instruction]) -> str:
    """Render instructions as address, hex bytes and text, one per line."""
    return "".join(f"{inst}\n" for inst in instructions)