"""
LC-3 Virtual Machine
====================
An instruction-set emulator for the LC-3, the 16-bit teaching machine:
8 registers, 65536 16-bit words of memory, 16 opcodes, a memory-mapped
keyboard and native TRAP routines for console I/O.

Architecture:
    ┌────────────┐    ┌──────────┐    ┌────────────┐    ┌───────────┐
    │ Image file │───>│  Loader  │───>│   Memory   │<──>│ Keyboard  │
    │ (.obj)     │    │          │    │ (64K x 16) │    │ KBSR/KBDR │
    └────────────┘    └──────────┘    └────────────┘    └───────────┘
                                            ^                 │
                                            │                 v
                      ┌──────────┐    ┌────────────┐    ┌───────────┐
                      │ Decoder  │<───│ LC3Emulator│───>│   Traps   │──> Console
                      └──────────┘    │ fetch/exec │    │ GETC..HALT│
                                      └────────────┘    └───────────┘
"""

__version__ = "0.1.0"

from .errors import LC3Error, ImageLoadError, ConsoleEOF
from .emu import LC3Emulator, StopReason
from .console import BufferedConsole, TerminalConsole
from .loader import load_image, load_image_bytes, parse_image, build_image
