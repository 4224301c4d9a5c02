"""
LC-3 Virtual Machine — Keyboard Device

Register map:
  xFE00  KBSR — Keyboard status (bit 15 = ready)
  xFE02  KBDR — Keyboard data   (low byte = last character)

Programs poll KBSR until bit 15 is set, then read KBDR. Every read of
KBSR polls the console without blocking:
  - input pending → KBSR = x8000, KBDR = the character (consumed)
  - no input      → KBSR = x0000, KBDR unchanged
KBDR itself is plain storage; reading it has no side effect.
"""

import logging

log = logging.getLogger(__name__)

# Keyboard register addresses
KBSR = 0xFE00
KBDR = 0xFE02

# KBSR bits
KB_READY = 0x8000


class KeyboardDevice:
    """Memory-mapped keyboard backed by a console collaborator."""

    def __init__(self, console):
        self.console = console
        self._memory = None

    def register(self, memory):
        """Hook KBSR reads in the memory system."""
        self._memory = memory
        memory.register_io_handler(KBSR, self._read_kbsr)

    def _read_kbsr(self, addr: int) -> int:
        mem = self._memory
        if self.console.key_available():
            ch = self.console.getc() & 0xFF
            mem.poke(KBSR, KB_READY)
            mem.poke(KBDR, ch)
            log.debug("KBSR poll: ready, KBDR=x%02X", ch)
        else:
            mem.poke(KBSR, 0)
        return mem.peek(KBSR)
