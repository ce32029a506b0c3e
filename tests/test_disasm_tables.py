import pytest

from fshistory.disasm_tables import (
    CONDITIONS,
    OPCODES,
    WORD_REGS,
    OpcodeEntry,
    Operands,
    lookup,
    mnemonic,
)


def test_table_covers_every_byte():
    assert len(OPCODES) == 256
    assert [lookup(op) for op in range(256)] == list(OPCODES)
    assert lookup(0x90).text == "nop"


@pytest.mark.parametrize("opcode", [-1, 256, 1000])
def test_lookup_rejects_out_of_range(opcode):
    with pytest.raises(ValueError):
        lookup(opcode)


def test_add_forms():
    assert lookup(0x00) == OpcodeEntry("add", Operands.BR8)
    assert lookup(0x05).operands is Operands.AXD16


def test_prefix_bytes():
    prefixes = {op for op in range(256) if lookup(op).prefix}
    assert prefixes == {0x26, 0x2E, 0x36, 0x3E, 0x66, 0xF0, 0xF2, 0xF3}
    assert all(lookup(op).operands is None for op in prefixes)


def test_conditional_jumps_have_no_space():
    for op in range(0x70, 0x80):
        entry = lookup(op)
        assert entry.text == "j"
        assert entry.nospace
        assert entry.operands is Operands.COND_JUMP


def test_group_entries_have_empty_text_and_eight_names():
    grouped = [lookup(op) for op in range(256) if lookup(op).group is not None]
    assert grouped
    for entry in grouped:
        assert entry.text == ""
        assert len(entry.group) == 8


@pytest.mark.parametrize(
    "opcode,modrm,expected",
    [
        (0x80, 0x38, "cmp"),
        (0x81, 0x00, "add"),
        (0xD0, 0x30, "shl"),
        (0xD3, 0x38, "sar"),
        (0xF6, 0x08, "???"),
        (0xF7, 0x30, "div"),
        (0xFF, 0x18, "call"),
        (0xFE, 0x10, "???"),
    ],
)
def test_group_mnemonics(opcode, modrm, expected):
    assert mnemonic(opcode, modrm) == expected


def test_mnemonic_ignores_modrm_for_plain_opcodes():
    for modrm in range(0, 256, 8):
        assert mnemonic(0x88, modrm) == lookup(0x88).text == "mov"


def test_string_opcodes_come_in_pairs():
    for op in (0xA4, 0xA6, 0xAA, 0xAC, 0xAE):
        assert lookup(op) == lookup(op + 1)
        assert lookup(op).operands is Operands.STRING


def test_register_names_with_entries():
    assert lookup(0x54).operands is Operands.WORDREG
    assert mnemonic(0x54) + " " + WORD_REGS[0x54 & 7] == "push sp"
    assert mnemonic(0x74) + CONDITIONS[0x74 & 0xF] == "jz"
    assert len(CONDITIONS) == 16


def test_bios_call_entry():
    entry = lookup(0xF1)
    assert entry.operands is Operands.BIOSCALL
    assert entry.nospace
    assert mnemonic(0xF1) == ""