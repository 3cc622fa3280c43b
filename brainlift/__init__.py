"""Brainfuck parser, interpreter, and compiler to x86-64 ELF object files."""

__version__ = "0.1.0"