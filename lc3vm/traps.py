"""
LC-3 Virtual Machine — TRAP Service Routines

The TRAP instruction saves PC in R7 and then calls into this table
instead of jumping through the trap vector table in low memory; the
service routines are implemented natively.

  x20 GETC   read one char, no echo → R0
  x21 OUT    write R0[7:0]
  x22 PUTS   write the string at R0 (one char per word, x0000 ends it)
  x23 IN     prompt, read one char, echo → R0
  x24 PUTSP  write the packed string at R0 (two chars per word,
             low byte first, x0000 ends it)
  x25 HALT   print HALT and stop the machine

Vectors not in the table are ignored. The routines never touch PC.
"""

import logging
from typing import Callable, Dict

from .cpu.decoder import (
    TRAP_GETC, TRAP_OUT, TRAP_PUTS, TRAP_IN, TRAP_PUTSP, TRAP_HALT, TRAP_NAMES,
)

log = logging.getLogger(__name__)

IN_PROMPT = "Enter a character: "
HALT_MESSAGE = "HALT"


class Halt(Exception):
    """Raised by the HALT routine; the execution engine turns it into HALTED."""


class TrapHandler:
    """Native implementations of the standard LC-3 trap routines."""

    def __init__(self, regs, mem, console):
        self.regs = regs
        self.mem = mem
        self.console = console
        self._dispatch: Dict[int, Callable] = {
            TRAP_GETC:  self._trap_getc,
            TRAP_OUT:   self._trap_out,
            TRAP_PUTS:  self._trap_puts,
            TRAP_IN:    self._trap_in,
            TRAP_PUTSP: self._trap_putsp,
            TRAP_HALT:  self._trap_halt,
        }

    def dispatch(self, vector: int):
        """Run the routine for ``vector``; unknown vectors do nothing."""
        handler = self._dispatch.get(vector & 0xFF)
        if handler is None:
            log.debug("TRAP x%02X: no service routine, ignored", vector & 0xFF)
            return
        log.debug("TRAP x%02X %s", vector, TRAP_NAMES[vector & 0xFF])
        handler()

    # ── Input ──

    def _trap_getc(self):
        self.regs.set_and_update(0, self.console.getc() & 0xFF)

    def _trap_in(self):
        self.console.write(IN_PROMPT)
        self.console.flush()
        ch = self.console.getc() & 0xFF
        self.console.putc(ch)
        self.console.flush()
        self.regs.set_and_update(0, ch)

    # ── Output ──
    # String walks read cells with peek(), so a string running into the
    # device window never polls the keyboard.

    def _trap_out(self):
        self.console.putc(self.regs.get(0) & 0xFF)
        self.console.flush()

    def _trap_puts(self):
        addr = self.regs.get(0)
        word = self.mem.peek(addr)
        while word:
            self.console.putc(word & 0xFF)
            addr = (addr + 1) & 0xFFFF
            word = self.mem.peek(addr)
        self.console.flush()

    def _trap_putsp(self):
        addr = self.regs.get(0)
        word = self.mem.peek(addr)
        while word:
            self.console.putc(word & 0xFF)
            high = (word >> 8) & 0xFF
            if high:
                self.console.putc(high)
            addr = (addr + 1) & 0xFFFF
            word = self.mem.peek(addr)
        self.console.flush()

    # ── Control ──

    def _trap_halt(self):
        self.console.write(HALT_MESSAGE + "\n")
        self.console.flush()
        raise Halt(HALT_MESSAGE)
