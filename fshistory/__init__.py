"""DOS services, program loading, an image filesystem and an 8086 disassembler."""

__version__ = "0.1.0"