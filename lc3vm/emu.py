"""
LC-3 Virtual Machine — Main Emulator Class

Integrates:
  - Register file (cpu/regs.py)
  - Memory + device register routing (mem/memory.py)
  - Instruction decoder (cpu/decoder.py)
  - ALU operations (cpu/alu.py)
  - Keyboard device (periph/keyboard.py)
  - TRAP service routines (traps.py)

Execution model:
  1. Check breakpoints
  2. Fetch the word at PC, advance PC by one
  3. Decode
  4. Execute the handler for the opcode → registers, memory, COND
  5. Stop on HALT, breakpoint, or step limit

Termination reasons:
  - HALT:     TRAP x25 executed (terminal state)
  - BREAK:    breakpoint address reached
  - TIMEOUT:  run() step limit exhausted
"""

import logging
from collections import deque
from enum import Enum
from typing import Optional, Set, Iterable

from .cpu.regs import Registers
from .cpu.decoder import (
    decode, disassemble, Instruction,
    OP_BR, OP_ADD, OP_LD, OP_ST, OP_JSR, OP_AND, OP_NOT, OP_LDR,
    OP_STR, OP_RTI, OP_LDI, OP_STI, OP_JMP, OP_RES, OP_LEA, OP_TRAP,
)
from .cpu import alu
from .mem.memory import Memory
from .periph.keyboard import KeyboardDevice
from .traps import TrapHandler, Halt
from .console import BufferedConsole
from . import loader

log = logging.getLogger(__name__)

# Most recent trace lines kept in memory; older ones only reach the log
TRACE_LIMIT = 10000


class StopReason(Enum):
    HALT = 'HALT'
    BREAK = 'BREAK'
    TIMEOUT = 'TIMEOUT'


class LC3Emulator:
    """LC-3 virtual machine.

    Usage:
        emu = LC3Emulator(console=TerminalConsole())
        emu.load_image('hello.obj')
        reason = emu.run()

    Without a console argument an in-memory BufferedConsole is used,
    so emu.console.text holds everything the program printed.
    """

    def __init__(self, console=None):
        self.console = console if console is not None else BufferedConsole()

        # Core components
        self.regs = Registers()
        self.mem = Memory()

        # Devices
        self.keyboard = KeyboardDevice(self.console)
        self.keyboard.register(self.mem)

        self.traps = TrapHandler(self.regs, self.mem, self.console)

        self._halted = False

        # Breakpoints: set of PC addresses that trigger BREAK
        self._breakpoints: Set[int] = set()
        # Address of the breakpoint we just stopped at (executes on resume)
        self._resume_at: Optional[int] = None

        # Trace output
        self._trace = False
        self._trace_output: deque = deque(maxlen=TRACE_LIMIT)

        # Instruction dispatch table, one handler per opcode
        self._dispatch = self._build_dispatch()

    # ══════════════════════════════════════════════
    # Loading
    # ══════════════════════════════════════════════

    def load_image(self, path) -> int:
        """Load an object image file. Returns its origin."""
        return loader.load_image(self.mem, path)

    def load_bytes(self, data: bytes) -> int:
        """Load an object image already in memory. Returns its origin."""
        return loader.load_image_bytes(self.mem, data)

    def load_words(self, words: Iterable[int], origin: int = 0x3000) -> int:
        """Place raw words at origin (no origin header). Returns origin."""
        self.mem.load_words(words, origin)
        return origin

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    @property
    def halted(self) -> bool:
        return self._halted

    def step(self) -> Optional[StopReason]:
        """Execute one instruction. Returns StopReason if stopped, else None."""
        if self._halted:
            return StopReason.HALT

        pc = self.regs.PC

        if pc in self._breakpoints and self._resume_at != pc:
            self._resume_at = pc
            log.debug("Breakpoint at x%04X", pc)
            return StopReason.BREAK
        self._resume_at = None

        # Fetch, then advance PC before executing
        word = self.mem.read(pc)
        self.regs.PC = (pc + 1) & 0xFFFF
        inst = decode(word)

        if self._trace:
            line = f"x{pc:04X}: {disassemble(word, pc):20s} {self.regs.display()}"
            self._trace_output.append(line)
            log.debug(line)

        try:
            self._dispatch[inst.opcode](inst)
        except Halt:
            self.regs.steps += 1
            self._halted = True
            log.info("Halted at x%04X after %d instructions", pc, self.regs.steps)
            return StopReason.HALT

        self.regs.steps += 1
        return None

    def run(self, max_steps: int = None) -> StopReason:
        """Run until HALT, a breakpoint, or max_steps instructions.

        max_steps=None runs until the program halts.
        """
        executed = 0
        while max_steps is None or executed < max_steps:
            reason = self.step()
            if reason is not None:
                return reason
            executed += 1

        log.info("Step limit reached (%d instructions) at x%04X",
                 max_steps, self.regs.PC)
        return StopReason.TIMEOUT

    # ══════════════════════════════════════════════
    # Instruction handlers
    # ══════════════════════════════════════════════
    # Handler signature: handler(inst: Instruction)
    # PC already points at the next instruction when a handler runs.

    def _build_dispatch(self) -> dict:
        """Build opcode → handler table. Covers all 16 opcodes."""
        return {
            OP_BR:   self._op_br,
            OP_ADD:  self._op_add,
            OP_LD:   self._op_ld,
            OP_ST:   self._op_st,
            OP_JSR:  self._op_jsr,
            OP_AND:  self._op_and,
            OP_NOT:  self._op_not,
            OP_LDR:  self._op_ldr,
            OP_STR:  self._op_str,
            OP_RTI:  self._op_rti,
            OP_LDI:  self._op_ldi,
            OP_STI:  self._op_sti,
            OP_JMP:  self._op_jmp,
            OP_RES:  self._op_res,
            OP_LEA:  self._op_lea,
            OP_TRAP: self._op_trap,
        }

    def _pc_relative(self, offset: int) -> int:
        return (self.regs.PC + offset) & 0xFFFF

    def _base_offset(self, inst: Instruction) -> int:
        return (self.regs.get(inst.sr1) + inst.offset6) & 0xFFFF

    # ── Operate ──

    def _op_add(self, inst: Instruction):
        a = self.regs.get(inst.sr1)
        b = inst.imm5 if inst.imm_mode else self.regs.get(inst.sr2)
        result, cond = alu.add16(a, b)
        self.regs.set(inst.dr, result)
        self.regs.COND = cond

    def _op_and(self, inst: Instruction):
        a = self.regs.get(inst.sr1)
        b = inst.imm5 if inst.imm_mode else self.regs.get(inst.sr2)
        result, cond = alu.and16(a, b)
        self.regs.set(inst.dr, result)
        self.regs.COND = cond

    def _op_not(self, inst: Instruction):
        result, cond = alu.not16(self.regs.get(inst.sr1))
        self.regs.set(inst.dr, result)
        self.regs.COND = cond

    # ── Control transfer ──

    def _op_br(self, inst: Instruction):
        if inst.nzp & self.regs.COND:
            self.regs.PC = self._pc_relative(inst.pc_offset9)

    def _op_jmp(self, inst: Instruction):
        """JMP BaseR; RET is JMP R7."""
        self.regs.PC = self.regs.get(inst.sr1)

    def _op_jsr(self, inst: Instruction):
        """JSR / JSRR. R7 gets the return address before the target is read."""
        self.regs.set(7, self.regs.PC)
        if inst.long_flag:
            self.regs.PC = self._pc_relative(inst.pc_offset11)
        else:
            self.regs.PC = self.regs.get(inst.sr1)

    # ── Loads ──

    def _op_ld(self, inst: Instruction):
        value = self.mem.read(self._pc_relative(inst.pc_offset9))
        self.regs.set_and_update(inst.dr, value)

    def _op_ldi(self, inst: Instruction):
        pointer = self.mem.read(self._pc_relative(inst.pc_offset9))
        self.regs.set_and_update(inst.dr, self.mem.read(pointer))

    def _op_ldr(self, inst: Instruction):
        self.regs.set_and_update(inst.dr, self.mem.read(self._base_offset(inst)))

    def _op_lea(self, inst: Instruction):
        self.regs.set_and_update(inst.dr, self._pc_relative(inst.pc_offset9))

    # ── Stores (never touch COND) ──

    def _op_st(self, inst: Instruction):
        self.mem.write(self._pc_relative(inst.pc_offset9), self.regs.get(inst.dr))

    def _op_sti(self, inst: Instruction):
        pointer = self.mem.read(self._pc_relative(inst.pc_offset9))
        self.mem.write(pointer, self.regs.get(inst.dr))

    def _op_str(self, inst: Instruction):
        self.mem.write(self._base_offset(inst), self.regs.get(inst.dr))

    # ── System ──

    def _op_trap(self, inst: Instruction):
        self.regs.set(7, self.regs.PC)
        self.traps.dispatch(inst.trapvect8)

    def _op_rti(self, inst: Instruction):
        """No supervisor mode: RTI does nothing."""

    def _op_res(self, inst: Instruction):
        """Reserved opcode: does nothing."""

    # ══════════════════════════════════════════════
    # Breakpoint API
    # ══════════════════════════════════════════════

    def add_breakpoint(self, addr: int):
        """Stop before executing the instruction at addr."""
        self._breakpoints.add(addr & 0xFFFF)

    def remove_breakpoint(self, addr: int):
        self._breakpoints.discard(addr & 0xFFFF)

    def clear_breakpoints(self):
        self._breakpoints.clear()

    # ══════════════════════════════════════════════
    # Trace / Debug
    # ══════════════════════════════════════════════

    def enable_trace(self, enable: bool = True):
        """Record one line per executed instruction.

        Only the last TRACE_LIMIT lines are retained for get_trace().
        """
        self._trace = enable

    def get_trace(self) -> str:
        return '\n'.join(self._trace_output)

    def clear_trace(self):
        self._trace_output.clear()

    def reset(self):
        """Registers back to power-on state. Memory is kept."""
        self.regs.reset()
        self._halted = False
        self._resume_at = None
        self._trace_output.clear()
