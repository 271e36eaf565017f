"""Decompile disassembled instructions, through a user-supplied backend, into structured C, Zig, Python or expression text."""

__version__ = "0.1.0"