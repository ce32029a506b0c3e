import io

import pytest

from fshistory.alloc import Allocator
from fshistory.dos import Dos
from fshistory.errors import ProgramExit
from fshistory.fs import FileEntry, FileSystem
from fshistory.machine import ByteReg, Machine, SegReg, WordReg

NAME_SEG = 0x2000
BUF_SEG = 0x3000


def make(files=None):
    machine = Machine()
    fs = FileSystem(FileEntry(n, bytearray(d)) for n, d in (files or {}).items())
    console = io.StringIO()
    dos = Dos(machine, Allocator(), fs, console)
    return dos, machine, fs, console


def put(machine, seg, ofs, data):
    base = (seg << 4) + ofs
    machine.ram[base:base + len(data)] = data


def call(dos, ah, al=0, **regs):
    m = dos.machine
    for name, value in regs.items():
        if name in ("ds", "es"):
            m.regs.segs[SegReg[name.upper()]] = value
        else:
            m.regs.set_word(WordReg[name.upper()], value)
    m.regs.set_byte(ByteReg.AH, ah)
    m.regs.set_byte(ByteReg.AL, al)
    dos.handle_interrupt()


def exit_status(dos, ah, al=0, **regs):
    with pytest.raises(ProgramExit) as info:
        call(dos, ah, al, **regs)
    return info.value.status


def ax(machine):
    return machine.regs.get_word(WordReg.AX)


def open_file(dos, name):
    put(dos.machine, NAME_SEG, 0, name.encode() + b"\0")
    call(dos, 0x3D, 0, ds=NAME_SEG, dx=0)
    return ax(dos.machine)


def test_reset_sets_standard_handles_and_info_block():
    dos, machine, _, _ = make()
    assert [h.filename for h in dos.handles[:3]] == ["stdin", "stdout", "stderr"]
    assert all(h.active and h.device_information == 0x80D3 for h in dos.handles[:3])
    assert not any(h.active for h in dos.handles[3:])
    assert machine.read16((0x80 << 4) + 4) == 1
    assert dos.dta_ofs == 0x80
    assert dos.dta_seg == dos.psp_seg == dos.allocator.next_free_seg - 16


def test_open_and_read_file():
    data = bytes(range(20))
    dos, machine, _, _ = make({"data.bin": data})
    handle = open_file(dos, "DATA.BIN")
    assert handle == 5
    assert machine.flags.cf is False
    call(dos, 0x3F, bx=handle, cx=8, ds=BUF_SEG, dx=0)
    assert ax(machine) == 8
    assert bytes(machine.ram[0x30000:0x30008]) == data[:8]
    call(dos, 0x3F, bx=handle, cx=100, ds=BUF_SEG, dx=0)
    assert ax(machine) == 12
    assert bytes(machine.ram[0x30000:0x3000C]) == data[8:]
    call(dos, 0x3F, bx=handle, cx=100, ds=BUF_SEG, dx=0)
    assert ax(machine) == 0


def test_second_open_gets_next_handle():
    dos, _, _, _ = make({"a.txt": b"x"})
    first = open_file(dos, "a.txt")
    second = open_file(dos, "a.txt")
    assert second == first + 1


def test_open_missing_file_sets_carry():
    dos, machine, _, _ = make()
    open_file(dos, "nothing.dat")
    assert machine.flags.cf is True
    assert ax(machine) == 2


def test_open_ems_device_and_ioctl():
    dos, machine, _, _ = make()
    handle = open_file(dos, "EMMXXXX0")
    assert machine.flags.cf is False
    call(dos, 0x44, 0, bx=handle)
    assert ax(machine) == 0xC080
    assert machine.regs.get_word(WordReg.DX) == 0xC080
    call(dos, 0x44, 7, bx=handle)
    assert machine.regs.get_byte(ByteReg.AL) == 0xFF
    assert machine.flags.cf is False


def test_ioctl_on_inactive_handle():
    dos, machine, _, _ = make()
    call(dos, 0x44, 0, bx=9)
    assert machine.flags.cf is True
    assert ax(machine) == 6


def test_ioctl_unknown_subfunction_exits():
    dos, _, _, _ = make()
    assert exit_status(dos, 0x44, 3, bx=1) == 1


def test_seek_modes():
    data = b"0123456789"
    dos, machine, _, _ = make({"f.dat": data})
    handle = open_file(dos, "f.dat")
    call(dos, 0x42, 2, bx=handle, cx=0, dx=0)
    assert ax(machine) == len(data)
    assert machine.regs.get_word(WordReg.DX) == 0
    call(dos, 0x42, 0, bx=handle, cx=0, dx=4)
    call(dos, 0x42, 1, bx=handle, cx=0, dx=1)
    call(dos, 0x3F, bx=handle, cx=3, ds=BUF_SEG, dx=0)
    assert bytes(machine.ram[0x30000:0x30003]) == data[5:8]


def test_seek_past_end_exits():
    dos, _, _, _ = make({"f.dat": b"abc"})
    handle = open_file(dos, "f.dat")
    assert exit_status(dos, 0x42, 0, bx=handle, cx=0, dx=4) == 1


def test_read_after_close_exits():
    dos, _, _, _ = make({"f.dat": b"abc"})
    handle = open_file(dos, "f.dat")
    call(dos, 0x3E, bx=handle)
    assert dos.handles[handle].active is False
    assert exit_status(dos, 0x3F, bx=handle, cx=1, ds=BUF_SEG, dx=0) == 1


def test_create_and_write_file():
    dos, machine, fs, _ = make()
    put(machine, NAME_SEG, 0, b"OUT.TXT\0")
    call(dos, 0x3C, cx=0, ds=NAME_SEG, dx=0)
    handle = ax(machine)
    assert handle == 5
    put(machine, BUF_SEG, 0, b"abc")
    call(dos, 0x40, bx=handle, cx=3, ds=BUF_SEG, dx=0)
    assert ax(machine) == 3
    call(dos, 0x40, bx=handle, cx=2, ds=BUF_SEG, dx=0)
    found = fs.find("out.txt")
    assert found is not None
    assert bytes(found[1].data) == b"abcab"


def test_write_to_stdout_goes_to_console():
    dos, machine, _, console = make()
    put(machine, BUF_SEG, 0, b"hello")
    call(dos, 0x40, bx=1, cx=5, ds=BUF_SEG, dx=0)
    assert console.getvalue() == "hello"
    assert ax(machine) == 5


def test_string_output_stops_at_dollar():
    dos, machine, _, console = make()
    put(machine, BUF_SEG, 0, b"Hi there$ignored")
    call(dos, 0x09, ds=BUF_SEG, dx=0)
    assert console.getvalue() == "Hi there"


def test_interrupt_vector_round_trip():
    dos, machine, _, _ = make()
    call(dos, 0x25, 0x1C, ds=0x1234, dx=0x5678)
    call(dos, 0x35, 0x1C, ds=0, dx=0)
    assert machine.regs.segs[SegReg.ES] == 0x1234
    assert machine.regs.get_word(WordReg.BX) == 0x5678


def test_dta_round_trip():
    dos, machine, _, _ = make()
    call(dos, 0x1A, ds=0x4000, dx=0x0010)
    call(dos, 0x2F)
    assert machine.regs.segs[SegReg.ES] == 0x4000
    assert machine.regs.get_word(WordReg.BX) == 0x0010


def test_find_first_and_next():
    files = {"a.gra": b"1234", "b.txt": b"", "c.gra": b"xy"}
    dos, machine, _, _ = make(files)
    call(dos, 0x1A, ds=0x4000, dx=0)
    put(machine, NAME_SEG, 0, b"*.GRA\0")
    call(dos, 0x4E, cx=0x20, ds=NAME_SEG, dx=0)
    assert machine.flags.cf is False
    assert bytes(machine.ram[0x4001E:0x4001E + 13]).rstrip(b"\0") == b"A.GRA"
    assert machine.read16(0x4001A) == 4
    assert machine.read8(0x40015) == 0x20
    call(dos, 0x4F, ds=NAME_SEG, dx=0)
    assert machine.flags.cf is False
    assert bytes(machine.ram[0x4001E:0x4001E + 13]).rstrip(b"\0") == b"C.GRA"
    assert machine.read16(0x4001A) == 2
    call(dos, 0x4F, ds=NAME_SEG, dx=0)
    assert machine.flags.cf is True
    assert ax(machine) == 0x12


def test_find_first_missing():
    dos, machine, _, _ = make()
    put(machine, NAME_SEG, 0, b"*.XYZ\0")
    call(dos, 0x4E, cx=0, ds=NAME_SEG, dx=0)
    assert machine.flags.cf is True
    assert ax(machine) == 2


def test_file_attributes():
    dos, machine, _, _ = make({"f.dat": b"1"})
    put(machine, NAME_SEG, 0, b"F.DAT\0")
    call(dos, 0x43, 0, ds=NAME_SEG, dx=0)
    assert machine.flags.cf is False
    assert machine.regs.get_word(WordReg.CX) == 0x20
    assert exit_status(dos, 0x43, 1, ds=NAME_SEG, dx=0) == 1


def test_allocate_and_modify():
    dos, machine, _, _ = make()
    call(dos, 0x48, bx=0x10)
    seg = ax(machine)
    assert seg == dos.allocator.last_alloc_seg
    assert machine.flags.cf is False
    call(dos, 0x4A, es=seg - 0x10, bx=0x20)
    assert machine.flags.cf is False
    assert machine.regs.get_word(WordReg.BX) == 0
    assert ax(machine) == seg - 0x10
    assert dos.allocator.next_free_seg == seg + 0x20


def test_modify_other_block_fails():
    dos, machine, _, _ = make()
    call(dos, 0x4A, es=0x5000, bx=0x10)
    assert machine.flags.cf is True
    assert ax(machine) == 0x5000


def test_process_id_and_invars():
    dos, machine, _, _ = make()
    call(dos, 0x50, bx=0x0777)
    assert machine.read16((0x80 << 4) + 0x330) == 0x0777
    call(dos, 0x51, bx=0)
    assert machine.regs.get_word(WordReg.BX) == 0x0777
    call(dos, 0x52)
    assert machine.regs.segs[SegReg.ES] == 0x80
    assert machine.regs.get_word(WordReg.BX) == 0x26


def test_version_and_date():
    dos, machine, _, _ = make()
    call(dos, 0x30)
    assert ax(machine) == 5
    assert machine.regs.get_word(WordReg.BX) == 0xFF00
    call(dos, 0x2A)
    assert machine.regs.get_word(WordReg.CX) == 2020


def test_exit_with_code():
    dos, _, _, _ = make()
    assert exit_status(dos, 0x4C, 3) == 3


def test_terminate_exits_zero():
    dos, _, _, _ = make()
    assert exit_status(dos, 0x00) == 0


def test_unknown_function_exits():
    dos, _, _, _ = make()
    assert exit_status(dos, 0x99) == 1


def test_reading_ega_driver_applies_patch():
    dos, machine, _, _ = make({"ega1.gra": bytes(20192)})
    handle = open_file(dos, "EGA1.GRA")
    call(dos, 0x3F, bx=handle, cx=20192, ds=BUF_SEG, dx=0)
    assert ax(machine) == 20192
    assert machine.read8(0x30000 + 0x4476) == 0xC3
    assert machine.read16_long(0x01A2, 0x6DA2) == 0xD231