"""Opcode table and register names used by the 8086 disassembler."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

BYTE_REGS = ("al", "cl", "dl", "bl", "ah", "ch", "dh", "bh")
WORD_REGS = ("ax", "cx", "dx", "bx", "sp", "bp", "si", "di")
SEG_REGS = ("es", "cs", "ss", "ds") + ("unknown_seg_reg",) * 4
INDEX_REGS = ("bx+si", "bx+di", "bp+si", "bp+di", "si", "di", "bp", "bx")
NUL_REGS = ("??",) * 8
CONDITIONS = (
    "o", "no", "b", "ae", "z", "nz", "be", "a",
    "s", "ns", "p", "np", "l", "ge", "le", "g",
)

ILLEGAL = "???"

GROUP_8X = ("add", "or", "adc", "sbb", "and", "sub", "xor", "cmp")
GROUP_DX = ("rol", "ror", "rcl", "rcr", "shl", "shr", "shl", "sar")
GROUP_F67 = ("test", ILLEGAL, "not", "neg", "mul", "imul", "div", "idiv")
GROUP_FE = ("inc", "dec") + (ILLEGAL,) * 6
GROUP_FF = ("inc", "dec", "call", "call", "jmp", "jmp", "push", ILLEGAL)


class Operands(Enum):
    """How the operands following an opcode byte are decoded."""

    BR8 = auto()
    R8B = auto()
    WR16 = auto()
    R16W = auto()
    ALD8 = auto()
    AXD16 = auto()
    PUSHPOPSEG = auto()
    DATABYTE = auto()
    WORDREG = auto()
    COND_JUMP = auto()
    BD8 = auto()
    WD16 = auto()
    WD8 = auto()
    WS = auto()
    SW = auto()
    W = auto()
    B = auto()
    STRING = auto()
    XCHGAX = auto()
    FAR = auto()
    ALMEM = auto()
    AXMEM = auto()
    MEMAL = auto()
    MEMAX = auto()
    RD = auto()
    D16 = auto()
    INT3 = auto()
    D8 = auto()
    BBIT1 = auto()
    WBIT1 = auto()
    BBITCL = auto()
    WBITCL = auto()
    ESCAPE = auto()
    DISP = auto()
    ADJUST = auto()
    D8AL = auto()
    D8AX = auto()
    AXD8 = auto()
    DISP16 = auto()
    FAR_IND = auto()
    PORTDX = auto()
    F6 = auto()
    F7 = auto()
    FF = auto()
    BIOSCALL = auto()


@dataclass(frozen=True)
class OpcodeEntry:
    """Description of one opcode byte.

    ``group`` holds the mnemonics selected by the reg field of the ModRM
    byte for opcodes whose mnemonic depends on it.
    """

    text: str
    operands: Operands | None = None
    prefix: bool = False
    nospace: bool = False
    group: tuple[str, ...] | None = None


def _build_table() -> tuple[OpcodeEntry, ...]:
    table: dict[int, OpcodeEntry] = {}

    alu_forms = (
        Operands.BR8, Operands.WR16, Operands.R8B,
        Operands.R16W, Operands.ALD8, Operands.AXD16,
    )
    for row, name in enumerate(GROUP_8X):
        for col, form in enumerate(alu_forms):
            table[row * 8 + col] = OpcodeEntry(name, form)

    seg_push_pop = {
        0x06: "push", 0x07: "pop", 0x0E: "push",
        0x16: "push", 0x17: "pop", 0x1E: "push", 0x1F: "pop",
    }
    for opcode, name in seg_push_pop.items():
        table[opcode] = OpcodeEntry(name, Operands.PUSHPOPSEG)
    table[0x0F] = OpcodeEntry("db", Operands.DATABYTE)

    for opcode, name in {0x26: "es:", 0x2E: "cs:", 0x36: "ss:", 0x3E: "ds:"}.items():
        table[opcode] = OpcodeEntry(name, prefix=True)
    for opcode, name in {0x27: "daa", 0x2F: "das", 0x37: "aaa", 0x3F: "aas"}.items():
        table[opcode] = OpcodeEntry(name)

    for base, name in {0x40: "inc", 0x48: "dec", 0x50: "push", 0x58: "pop"}.items():
        for opcode in range(base, base + 8):
            table[opcode] = OpcodeEntry(name, Operands.WORDREG)

    for opcode in range(0x60, 0x70):
        table[opcode] = OpcodeEntry("db", Operands.DATABYTE)
    table[0x66] = OpcodeEntry("32:", prefix=True)

    for opcode in range(0x70, 0x80):
        table[opcode] = OpcodeEntry("j", Operands.COND_JUMP, nospace=True)

    table[0x80] = OpcodeEntry("", Operands.BD8, group=GROUP_8X)
    table[0x81] = OpcodeEntry("", Operands.WD16, group=GROUP_8X)
    table[0x82] = OpcodeEntry("db", Operands.DATABYTE)
    table[0x83] = OpcodeEntry("", Operands.WD8, group=GROUP_8X)

    table.update({
        0x84: OpcodeEntry("test", Operands.BR8),
        0x85: OpcodeEntry("test", Operands.WR16),
        0x86: OpcodeEntry("xchg", Operands.BR8),
        0x87: OpcodeEntry("xchg", Operands.WR16),
        0x88: OpcodeEntry("mov", Operands.BR8),
        0x89: OpcodeEntry("mov", Operands.WR16),
        0x8A: OpcodeEntry("mov", Operands.R8B),
        0x8B: OpcodeEntry("mov", Operands.R16W),
        0x8C: OpcodeEntry("mov", Operands.WS),
        0x8D: OpcodeEntry("lea", Operands.R16W),
        0x8E: OpcodeEntry("mov", Operands.SW),
        0x8F: OpcodeEntry("pop", Operands.W),
        0x90: OpcodeEntry("nop"),
    })
    for opcode in range(0x91, 0x98):
        table[opcode] = OpcodeEntry("xchg", Operands.XCHGAX)

    table.update({
        0x98: OpcodeEntry("cbw"),
        0x99: OpcodeEntry("cwd"),
        0x9A: OpcodeEntry("call", Operands.FAR),
        0x9B: OpcodeEntry("wait"),
        0x9C: OpcodeEntry("pushf"),
        0x9D: OpcodeEntry("popf"),
        0x9E: OpcodeEntry("sahf"),
        0x9F: OpcodeEntry("lahf"),
        0xA0: OpcodeEntry("mov", Operands.ALMEM),
        0xA1: OpcodeEntry("mov", Operands.AXMEM),
        0xA2: OpcodeEntry("mov", Operands.MEMAL),
        0xA3: OpcodeEntry("mov", Operands.MEMAX),
        0xA8: OpcodeEntry("test", Operands.ALD8),
        0xA9: OpcodeEntry("test", Operands.AXD16),
    })
    strings = {0xA4: "movs", 0xA6: "cmps", 0xAA: "stos", 0xAC: "lods", 0xAE: "scas"}
    for opcode, name in strings.items():
        for variant in (opcode, opcode + 1):
            table[variant] = OpcodeEntry(name, Operands.STRING, nospace=True)

    for opcode in range(0xB0, 0xC0):
        table[opcode] = OpcodeEntry("mov", Operands.RD)

    table.update({
        0xC0: OpcodeEntry("db", Operands.DATABYTE),
        0xC1: OpcodeEntry("db", Operands.DATABYTE),
        0xC2: OpcodeEntry("ret", Operands.D16),
        0xC3: OpcodeEntry("ret"),
        0xC4: OpcodeEntry("les", Operands.R16W),
        0xC5: OpcodeEntry("lds", Operands.R16W),
        0xC6: OpcodeEntry("mov", Operands.BD8),
        0xC7: OpcodeEntry("mov", Operands.WD16),
        0xC8: OpcodeEntry("db", Operands.DATABYTE),
        0xC9: OpcodeEntry("db", Operands.DATABYTE),
        0xCA: OpcodeEntry("retf", Operands.D16),
        0xCB: OpcodeEntry("retf"),
        0xCC: OpcodeEntry("int", Operands.INT3),
        0xCD: OpcodeEntry("int", Operands.D8),
        0xCE: OpcodeEntry("into"),
        0xCF: OpcodeEntry("iret"),
        0xD0: OpcodeEntry("", Operands.BBIT1, group=GROUP_DX),
        0xD1: OpcodeEntry("", Operands.WBIT1, group=GROUP_DX),
        0xD2: OpcodeEntry("", Operands.BBITCL, group=GROUP_DX),
        0xD3: OpcodeEntry("", Operands.WBITCL, group=GROUP_DX),
        0xD4: OpcodeEntry("aam", Operands.ADJUST),
        0xD5: OpcodeEntry("aad", Operands.ADJUST),
        0xD6: OpcodeEntry("db", Operands.DATABYTE),
        0xD7: OpcodeEntry("xlat"),
    })
    for opcode in range(0xD8, 0xE0):
        table[opcode] = OpcodeEntry("esc", Operands.ESCAPE)

    table.update({
        0xE0: OpcodeEntry("loopne", Operands.DISP),
        0xE1: OpcodeEntry("loope", Operands.DISP),
        0xE2: OpcodeEntry("loop", Operands.DISP),
        0xE3: OpcodeEntry("jcxz", Operands.DISP),
        0xE4: OpcodeEntry("in", Operands.ALD8),
        0xE5: OpcodeEntry("in", Operands.AXD8),
        0xE6: OpcodeEntry("out", Operands.D8AL),
        0xE7: OpcodeEntry("out", Operands.D8AX),
        0xE8: OpcodeEntry("call", Operands.DISP16),
        0xE9: OpcodeEntry("jmp", Operands.DISP16),
        0xEA: OpcodeEntry("jmp", Operands.FAR),
        0xEB: OpcodeEntry("jmp", Operands.DISP),
        0xEC: OpcodeEntry("in", Operands.PORTDX),
        0xED: OpcodeEntry("in", Operands.PORTDX),
        0xEE: OpcodeEntry("out", Operands.PORTDX),
        0xEF: OpcodeEntry("out", Operands.PORTDX),
        0xF0: OpcodeEntry("lock", prefix=True),
        0xF1: OpcodeEntry("", Operands.BIOSCALL, nospace=True),
        0xF2: OpcodeEntry("repnz", prefix=True),
        0xF3: OpcodeEntry("repz", prefix=True),
        0xF4: OpcodeEntry("hlt"),
        0xF5: OpcodeEntry("cmc"),
        0xF6: OpcodeEntry("", Operands.F6, group=GROUP_F67),
        0xF7: OpcodeEntry("", Operands.F7, group=GROUP_F67),
        0xF8: OpcodeEntry("clc"),
        0xF9: OpcodeEntry("stc"),
        0xFA: OpcodeEntry("cli"),
        0xFB: OpcodeEntry("sti"),
        0xFC: OpcodeEntry("cld"),
        0xFD: OpcodeEntry("std"),
        0xFE: OpcodeEntry("", Operands.B, group=GROUP_FE),
        0xFF: OpcodeEntry("", Operands.FF, group=GROUP_FF),
    })

    return tuple(table[opcode] for opcode in range(256))


OPCODES = _build_table()


def lookup(opcode: int) -> OpcodeEntry:
    """Return the table entry for an opcode byte."""
    if not 0 <= opcode <= 0xFF:
        raise ValueError(f"opcode out of range: {opcode!r}")
    return OPCODES[opcode]


def mnemonic(opcode: int, modrm: int = 0) -> str:
    """Return the mnemonic of an opcode, using the ModRM reg field for groups."""
    entry = lookup(opcode)
    if entry.group is not None:
        return entry.group[(modrm & 0x38) >> 3]
    return entry.text