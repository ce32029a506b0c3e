"""The emulated DOS services (int 21h): files, memory, vectors and the DTA."""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass
from typing import TextIO

from .alloc import Allocator
from .errors import exit_or_restart
from .fs import FileEntry, FileSystem
from .fs4 import alter_files
from .machine import ByteReg, Machine, SegReg, WordReg

logger = logging.getLogger(__name__)

MAX_HANDLES = 256
FIRST_USER_HANDLE = 5
LAST_HANDLE = 255
DIB_SEG = 0x80
"""Segment of the DOS info block, right after the BIOS data area."""

STD_DEVICE_INFO = 0x80D3
EMS_DEVICE_INFO = 0xC080
EMS_DEVICE_NAME = "EMMXXXX0"

ERROR_FILE_NOT_FOUND = 0x02
ERROR_INVALID_HANDLE = 0x06
ERROR_NO_MORE_FILES = 0x12

_FILENAME_LIMIT = 30
_PARAMETER_LIMIT = 50
_STRING_LIMIT = 1024

_ASCII_UPPER = str.maketrans("abcdefghijklmnopqrstuvwxyz", "ABCDEFGHIJKLMNOPQRSTUVWXYZ")


@dataclass
class Handle:
    """An open file or character device."""

    active: bool = False
    is_file: bool = False
    file: FileEntry | None = None
    offset: int = 0
    filename: str = ""
    device_information: int = 0


class Dos:
    """DOS function dispatcher working on the machine's registers and memory."""

    def __init__(
        self,
        machine: Machine,
        allocator: Allocator | None = None,
        fs: FileSystem | None = None,
        console: TextIO | None = None,
    ) -> None:
        self.machine = machine
        self.allocator = allocator if allocator is not None else Allocator()
        self.fs = fs if fs is not None else FileSystem()
        self.console = console
        self.handles: list[Handle] = []
        self.dib_seg = DIB_SEG
        self.dta_seg = 0
        self.dta_ofs = 0
        self.psp_seg = 0
        self._functions: dict[int, Callable[[], None]] = {
            0x00: self._terminate,
            0x02: self._char_output,
            0x06: self._direct_console,
            0x09: self._string_output,
            0x19: self._get_drive,
            0x1A: self._set_dta,
            0x25: self._set_vector,
            0x2A: self._get_date,
            0x2B: self._set_date_time,
            0x2C: self._get_time,
            0x2D: self._set_date_time,
            0x2F: self._get_dta,
            0x30: self._version,
            0x33: self._ctrl_break,
            0x35: self._get_vector,
            0x3C: self._create,
            0x3D: self._open,
            0x3E: self._close,
            0x3F: self._read,
            0x40: self._write,
            0x41: self._delete,
            0x42: self._seek,
            0x43: self._attributes,
            0x44: self.ioctl,
            0x48: self._allocate,
            0x49: self._free,
            0x4A: self._modify,
            0x4B: self._exec,
            0x4C: self._exit,
            0x4E: self._find_first,
            0x4F: self._find_next,
            0x50: self._set_psp,
            0x51: self._get_psp,
            0x52: self._get_invars,
            0x58: self._alloc_strategy,
        }
        self.reset()

    # ------------------------------------------------------------------ state

    def reset(self) -> None:
        """Restore the initial DOS state: allocator, handles, DTA, PSP, DIB."""
        self.allocator.reset()
        self.dib_seg = DIB_SEG
        self.dta_seg = (self.allocator.next_free_seg - 16) & 0xFFFF
        self.dta_ofs = 0x80
        self.psp_seg = (self.allocator.next_free_seg - 16) & 0xFFFF

        self.handles = [Handle() for _ in range(MAX_HANDLES)]
        for index, name in enumerate(("stdin", "stdout", "stderr")):
            self.handles[index] = Handle(
                active=True, device_information=STD_DEVICE_INFO, filename=name
            )

        ram = self.machine.ram
        base = self.dib_seg << 4
        ram[base:base + 0x400] = bytes(0x400)
        self.machine.write16(base + 4, 1)
        ram[0x600:0x700] = bytes(0x100)

    # ---------------------------------------------------------------- helpers

    @property
    def _regs(self):
        return self.machine.regs

    def _word(self, reg: WordReg) -> int:
        return self._regs.get_word(reg)

    def _set_word(self, reg: WordReg, value: int) -> None:
        self._regs.set_word(reg, value)

    def _byte(self, reg: ByteReg) -> int:
        return self._regs.get_byte(reg)

    def _set_byte(self, reg: ByteReg, value: int) -> None:
        self._regs.set_byte(reg, value)

    def _seg(self, reg: SegReg) -> int:
        return self._regs.segs[reg]

    def _set_seg(self, reg: SegReg, value: int) -> None:
        self._regs.segs[reg] = value & 0xFFFF

    def _carry(self, value: bool) -> None:
        """Report success (clear) or failure (set) to the caller."""
        self.machine.flags.cf = value

    def _ds_dx(self) -> int:
        return (self._seg(SegReg.DS) << 4) + self._word(WordReg.DX)

    def _handle(self, number: int) -> Handle:
        if 0 <= number < len(self.handles):
            return self.handles[number]
        return Handle()

    def _free_handle(self) -> int:
        return next(
            (i for i in range(FIRST_USER_HANDLE, LAST_HANDLE) if not self.handles[i].active),
            LAST_HANDLE,
        )

    def _read_string(self, seg: int, ofs: int, limit: int) -> str:
        chars = []
        for i in range(limit):
            c = self.machine.read8_long(seg, ofs + i)
            if c == 0:
                break
            chars.append(chr(c))
        return "".join(chars)

    def _read_filename(self) -> str:
        name = self._read_string(self._seg(SegReg.DS), self._word(WordReg.DX), _FILENAME_LIMIT)
        logger.debug("'%s'", name)
        return name

    def _emit(self, text: str) -> None:
        stream = self.console if self.console is not None else sys.stdout
        stream.write(text)

    def _fill_dta(self, index: int, entry: FileEntry, attributes: int | None) -> None:
        m = self.machine
        seg, ofs = self.dta_seg, self.dta_ofs
        m.write16_long(seg, ofs + 0x06, index + 1)  # where the next search resumes
        if attributes is not None:
            m.write8_long(seg, ofs + 0x15, attributes)
        m.write16_long(seg, ofs + 0x16, 0)  # time
        m.write16_long(seg, ofs + 0x18, 0)  # date
        m.write16_long(seg, ofs + 0x1A, entry.size & 0xFFFF)
        m.write16_long(seg, ofs + 0x1C, (entry.size >> 16) & 0xFFFF)
        for i in range(13):
            m.write8_long(seg, ofs + 0x1E + i, 0)
        for i, c in enumerate(entry.filename.translate(_ASCII_UPPER)):
            m.write8_long(seg, ofs + 0x1E + i, ord(c))

    # --------------------------------------------------------------- dispatch

    def handle_interrupt(self) -> None:
        """Carry out the DOS function selected by AH."""
        ah = self._byte(ByteReg.AH)
        al = self._byte(ByteReg.AL)
        logger.debug("DOS: ah: 0x%02x, al: 0x%02x", ah, al)
        function = self._functions.get(ah)
        if function is None:
            logger.error("DOS: Unknown DOS function ah=%02x", ah)
            exit_or_restart(1)
            return
        function()

    def ioctl(self) -> None:
        """Device control (AH=44h) for the subfunction in AL."""
        al = self._byte(ByteReg.AL)
        number = self._word(WordReg.BX)
        logger.debug("DOS: IOCTL handle: 0x%04x", number)
        if al == 0:
            handle = self._handle(number)
            if handle.active:
                self._set_word(WordReg.AX, handle.device_information)
                self._set_word(WordReg.DX, handle.device_information)
                self._carry(False)
            else:
                self._carry(True)
                self._set_word(WordReg.AX, ERROR_INVALID_HANDLE)
                logger.warning("Unknown IOCTL %i", number)
        elif al == 7:
            self._carry(False)
            self._set_byte(ByteReg.AL, 0xFF)  # ready
        else:
            logger.error("DOS: Unknown DOS IOCTL function 0x%02x", al)
            exit_or_restart(1)

    # -------------------------------------------------------------- functions

    def _terminate(self) -> None:
        logger.info("DOS: terminate")
        exit_or_restart(0)

    def _char_output(self) -> None:
        self._emit(chr(self._byte(ByteReg.DL)))

    def _direct_console(self) -> None:
        c = self._byte(ByteReg.DL)
        if c == 0xFF:
            logger.error("DOS: Not supported input request")
            exit_or_restart(1)
            return
        self._emit(chr(c))
        self._carry(False)

    def _string_output(self) -> None:
        base = self._ds_dx()
        chars = []
        for i in range(_STRING_LIMIT):
            c = self.machine.read8(base + i)
            if c == ord("$"):
                break
            chars.append(chr(c))
        self._emit("".join(chars))

    def _get_drive(self) -> None:
        self._set_byte(ByteReg.AL, 0)  # A:

    def _get_date(self) -> None:
        self._set_word(WordReg.AX, 0)
        self._set_word(WordReg.CX, 2020)
        self._set_byte(ByteReg.DH, 6)
        self._set_byte(ByteReg.DL, 0)

    def _get_time(self) -> None:
        self._set_word(WordReg.CX, 0)
        self._set_word(WordReg.DX, 0)

    def _set_date_time(self) -> None:
        self._set_byte(ByteReg.AL, 0)

    def _set_vector(self) -> None:
        intno = self._byte(ByteReg.AL)
        seg, ofs = self._seg(SegReg.DS), self._word(WordReg.DX)
        logger.debug("DOS: set interrupt vector : 0x%02x to 0x%04x:0x%04x", intno, seg, ofs)
        self.machine.write16((intno << 2) + 2, seg)
        self.machine.write16(intno << 2, ofs)

    def _get_vector(self) -> None:
        intno = self._byte(ByteReg.AL)
        self._set_seg(SegReg.ES, self.machine.read16((intno << 2) + 2))
        self._set_word(WordReg.BX, self.machine.read16(intno << 2))

    def _set_dta(self) -> None:
        self.dta_seg = self._seg(SegReg.DS)
        self.dta_ofs = self._word(WordReg.DX)

    def _get_dta(self) -> None:
        self._set_word(WordReg.BX, self.dta_ofs)
        self._set_seg(SegReg.ES, self.dta_seg)

    def _version(self) -> None:
        self._set_word(WordReg.AX, 5)
        self._set_word(WordReg.BX, 0xFF00)
        self._set_word(WordReg.CX, 0)

    def _ctrl_break(self) -> None:
        self._set_byte(ByteReg.DL, 0)  # always off

    def _create(self) -> None:
        number = self._free_handle()
        name = self._read_filename()
        self.handles[number] = Handle(
            active=True, is_file=True, file=self.fs.create(name), offset=0, filename=name
        )
        self._carry(False)
        self._set_word(WordReg.AX, number)

    def _open(self) -> None:
        name = self._read_filename()
        number = self._free_handle()
        if name == EMS_DEVICE_NAME:
            self.handles[number] = Handle(
                active=True, device_information=EMS_DEVICE_INFO, filename=name
            )
            self._carry(False)
            self._set_word(WordReg.AX, number)
            return
        found = self.fs.find(name)
        if found is None:
            logger.warning("DOS: Warn: file not found")
            self._carry(True)
            self._set_word(WordReg.AX, ERROR_FILE_NOT_FOUND)
            return
        _, entry = found
        self.handles[number] = Handle(
            active=True, is_file=True, file=entry, offset=0, filename=entry.filename
        )
        self._carry(False)
        self._set_word(WordReg.AX, number)

    def _close(self) -> None:
        number = self._word(WordReg.BX)
        handle = self._handle(number)
        logger.debug("DOS: close file : 0x%02x '%s'", number, handle.filename)
        self._carry(False)
        handle.active = False
        handle.file = None

    def _read(self) -> None:
        handle = self._handle(self._word(WordReg.BX))
        size = self._word(WordReg.CX)
        if not handle.active:
            logger.error("DOS: Error: handle not used")
            exit_or_restart(1)
            return
        if not handle.is_file or handle.file is None:
            logger.error("DOS: Error: Try to read from none-file")
            exit_or_restart(1)
            return
        entry = handle.file
        if size + handle.offset >= entry.size:
            size = max(entry.size - handle.offset, 0)
        addr = self._ds_dx()
        self.machine.ram[addr:addr + size] = entry.data[handle.offset:handle.offset + size]
        handle.offset += size
        self._set_word(WordReg.AX, size)
        self._carry(False)
        if size:
            alter_files(self.machine, entry, addr, size)

    def _write(self) -> None:
        number = self._word(WordReg.BX)
        handle = self._handle(number)
        size = self._word(WordReg.CX)
        self._set_word(WordReg.AX, size)
        self._carry(False)
        if not handle.active:
            logger.error("DOS: Error: handle not used")
            exit_or_restart(1)
            return
        addr = self._ds_dx()
        data = bytes(self.machine.ram[addr:addr + size])
        if number in (1, 2):
            self._emit(data.decode("latin-1"))
            return
        if handle.is_file and handle.file is not None:
            self.fs.write(handle.file, data, handle.offset)
            handle.offset += size
            return
        logger.error("DOS: Error: Try to write to unknown file")
        exit_or_restart(1)

    def _delete(self) -> None:
        self._read_filename()
        self._carry(False)

    def _seek(self) -> None:
        handle = self._handle(self._word(WordReg.BX))
        mode = self._byte(ByteReg.AL)
        offset = (self._word(WordReg.CX) << 16) | self._word(WordReg.DX)
        if handle.file is None:
            logger.error("DOS: Error: Invalid handle")
            exit_or_restart(1)
            return
        if mode == 0:
            handle.offset = offset
        elif mode == 1:
            handle.offset = (handle.offset + offset) & 0xFFFFFFFF
        elif mode == 2:
            handle.offset = (handle.file.size + offset) & 0xFFFFFFFF
        else:
            logger.error("DOS: Error: Unknown seek mode %i", mode)
            exit_or_restart(1)
            return
        if handle.offset > handle.file.size:
            logger.error("DOS: Error: seek too high")
            exit_or_restart(1)
            return
        self._carry(False)
        self._set_word(WordReg.DX, handle.offset >> 16)
        self._set_word(WordReg.AX, handle.offset & 0xFFFF)

    def _attributes(self) -> None:
        mode = self._byte(ByteReg.AL)
        name = self._read_filename()
        if mode != 0:
            logger.error("Error: set file attribute not supported")
            exit_or_restart(1)
            return
        if self.fs.find(name) is None:
            self._carry(True)
            self._set_word(WordReg.AX, ERROR_FILE_NOT_FOUND)
        else:
            self._set_word(WordReg.CX, 0x20)
            self._set_word(WordReg.AX, 0x20)
            self._carry(False)

    def _allocate(self) -> None:
        self._carry(False)
        self._set_word(WordReg.AX, self.allocator.allocate(self._word(WordReg.BX)))

    def _free(self) -> None:
        self.allocator.free(self._seg(SegReg.ES))
        self._carry(False)

    def _modify(self) -> None:
        es = self._seg(SegReg.ES)
        if self.allocator.modify((es + 0x10) & 0xFFFF, self._word(WordReg.BX)):
            self._carry(False)
            self._set_word(WordReg.BX, 0)
        else:
            self._carry(True)
        self._set_word(WordReg.AX, es)

    def _exec(self) -> None:
        name = self._read_filename()
        parameter = self._read_string(
            self._seg(SegReg.ES), self._word(WordReg.BX), _PARAMETER_LIMIT
        )
        logger.error(
            "DOS: execute program '%s' '%s' mode: %i", name, parameter, self._byte(ByteReg.AL)
        )
        exit_or_restart(1)

    def _exit(self) -> None:
        status = self._byte(ByteReg.AL)
        logger.info("DOS: program exit with code %i", status)
        exit_or_restart(status)

    def _find_first(self) -> None:
        attributes = self._word(WordReg.CX)
        name = self._read_filename()
        found = self.fs.find(name)
        if found is None:
            self._carry(True)
            self._set_word(WordReg.AX, ERROR_FILE_NOT_FOUND)
            return
        self._carry(False)
        self._set_word(WordReg.AX, 0)
        index, entry = found
        self._fill_dta(index, entry, attributes)

    def _find_next(self) -> None:
        name = self._read_filename()
        start = self.machine.read16_long(self.dta_seg, self.dta_ofs + 0x06)
        found = self.fs.find(name, start)
        if found is None:
            self._carry(True)
            self._set_word(WordReg.AX, ERROR_NO_MORE_FILES)
            return
        self._carry(False)
        index, entry = found
        self._fill_dta(index, entry, None)

    def _set_psp(self) -> None:
        self.psp_seg = self._word(WordReg.BX)
        self.machine.write16((self.dib_seg << 4) + 0x330, self.psp_seg)

    def _get_psp(self) -> None:
        self._set_word(WordReg.BX, self.psp_seg)

    def _get_invars(self) -> None:
        self._set_seg(SegReg.ES, self.dib_seg)
        self._set_word(WordReg.BX, 0x0026)

    def _alloc_strategy(self) -> None:
        if self._byte(ByteReg.AL) == 0:
            self._set_word(WordReg.AX, 0)
        self._carry(False)