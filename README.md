# fshistory

The DOS side of an environment for running the early flight simulator
releases: memory and registers, the INT 21h services, loading of MZ and COM
programs, a filesystem held in a single image, and an 8086 disassembler.

## Modules

- `fshistory.machine`: `Machine` holds 0x110000 bytes of RAM (every address
  a 16-bit segment and offset can reach) with `read8`/`write8`,
  `read16`/`write16` by linear address and `read8_long`, `write8_long`,
  `read16_long`, `write16_long` by segment and offset, plus `set_csip` and
  `set_sssp`. `Registers` keeps the word, byte and segment registers
  (`WordReg`, `ByteReg`, `SegReg`); `Flags.compress` and `Flags.expand`
  convert to and from the FLAGS word.
- `fshistory.fs`: `FileSystem` mounts an image in which each entry is a
  256-byte name, a 32-bit little-endian size and the file's bytes.
  `find` matches names case-insensitively (a pattern starting with `*`
  matches by suffix) and returns `(index, FileEntry)` or `None`. `create`
  adds an empty file, `write` writes into one and grows it. `build_image`
  produces an image from names and contents.
- `fshistory.alloc`: `Allocator`, the bump allocator of paragraphs behind the
  DOS memory calls. Only the most recent block can be resized.
- `fshistory.mz`: `MzHeader` and `load_mz_exe` / `load_com` (and their
  `_file` variants), which place the program in memory, apply relocations,
  set CS:IP, SS:SP, DS and ES and fill a program segment prefix.
- `fshistory.dos`: `Dos.handle_interrupt` carries out the INT 21h function
  selected by AH: console output, date and time, interrupt vectors, the
  disk transfer area, file create/open/read/write/seek/close,
  find first/next, memory allocation, process ID and IOCTL. Failures are
  reported through the carry flag and AX, as DOS does.
- `fshistory.multiplex`: `handle_multiplex` for INT 2Fh (installation check
  only).
- `fshistory.fs4`: `alter_files` patches the EGA driver of version 4 when it
  is read; `extract_image` writes a 320x457 bitmap file as a P1 image;
  `write_expanded_exe` writes the unpacked program at 1000:0000 as an MZ file.
- `fshistory.disassembler`: `disassemble_one`, `disassemble` and
  `format_listing` give a `SEG:OFF  bytes  text` listing.
- `fshistory.keyboard`: `convert_scancode` translates USB HID scancodes to
  PC set-1 scancodes (0 when unknown); `write_ppm` writes ABGR pixels as a
  plain-text P3 image.
- `fshistory.system`: `System` wires the machine, allocator, filesystem and
  DOS together. `mount` reads an image relative to its data root, `load_mz`
  loads an executable from the mounted filesystem, and `set_fs_version`
  mounts `data/fs3.fs`, `data/fs4.fs` or `data/fs5.fs` and loads the matching
  program for versions 3, 4 and 5.

A program that ends, or that calls an unsupported service, raises
`fshistory.errors.ProgramExit` carrying the exit status.

## Working with a filesystem image

```python
from fshistory.fs import FileSystem, build_image

image = build_image({"readme.txt": b"hello"})
fs = FileSystem.from_image(image)

index, entry = fs.find("README.TXT")
print(index, entry.filename, entry.size)   # 0 readme.txt 5

new = fs.create("SAVE.DAT")
fs.write(new, b"\x01\x02\x03", 0)
```

## Disassembling memory

```python
from fshistory.disassembler import disassemble, format_listing

memory = bytearray(0x100000)
memory[0x10000:0x10003] = bytes([0xB8, 0x34, 0x12])

print(format_listing(disassemble(memory, 0x1000, 0x0000, 1)), end="")
# 1000:0000 B83412        mov    ax,1234
```

## Loading a program

```python
from fshistory.alloc import Allocator
from fshistory.machine import Machine
from fshistory.mz import load_mz_exe_file

machine = Machine()
allocator = Allocator()
segment = load_mz_exe_file(machine, allocator, "game.exe")
```

## What this package does not do

- It has no processor core: it sets up memory and registers but does not
  execute instructions. DOS calls are served by calling
  `Dos.handle_interrupt` yourself.
- It has no display, video card, timers, BIOS or input devices, and opens no
  window; `write_ppm` only writes pixel data it is given.
- Versions 1 and 2, which boot from disk images, are not supported:
  `System.set_fs_version` raises `ValueError` for them.
- There is no command-line program.

## Installing and testing

Only the Python 3.10+ standard library is needed. The tests use pytest,
available through the `test` extra.