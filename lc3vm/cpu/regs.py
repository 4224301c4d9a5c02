"""
LC-3 Virtual Machine — Register File + Condition Code Management

Register model for the LC-3:
  R0–R7 — 16-bit general purpose registers
          R6 is the stack pointer by software convention only
          R7 is the link register (written by JSR/JSRR/TRAP)
  PC    — 16-bit program counter (address of the NEXT instruction)
  COND  — condition code register, exactly one of:
            bit 2: N (Negative — bit 15 of result set)
            bit 1: Z (Zero — result is zero)
            bit 0: P (Positive — anything else)

Only instructions that produce a register result touch COND
(ADD, AND, NOT, LD, LDI, LDR, LEA, and the GETC/IN traps).
"""

# COND values (one-hot, never combined)
FL_POS = 1 << 0
FL_ZRO = 1 << 1
FL_NEG = 1 << 2

# Programs are loaded here by convention; execution starts here at reset
PC_START = 0x3000

NUM_GPR = 8


def flags_for(value: int) -> int:
    """Return the COND value describing a 16-bit result."""
    value &= 0xFFFF
    if value == 0:
        return FL_ZRO
    if value & 0x8000:
        return FL_NEG
    return FL_POS


class Registers:
    """LC-3 register file.

    ``R`` is a plain list so handlers can index it with decoded register
    selectors directly.
    """

    __slots__ = ('R', 'PC', 'COND', 'steps')

    def __init__(self):
        self.R: list = [0] * NUM_GPR   # R0–R7
        self.PC: int = PC_START        # Program counter
        self.COND: int = FL_ZRO        # Condition code
        self.steps: int = 0            # Instructions executed

    # --- GPR access (always masked to 16 bits) ---

    def get(self, index: int) -> int:
        return self.R[index & 0x7]

    def set(self, index: int, value: int):
        self.R[index & 0x7] = value & 0xFFFF

    def set_and_update(self, index: int, value: int):
        """Write a result register and refresh COND from it."""
        self.set(index, value)
        self.update_flags(index)

    def update_flags(self, index: int):
        """Set COND from the current value of R[index]."""
        self.COND = flags_for(self.R[index & 0x7])

    # --- COND queries ---

    @property
    def negative(self) -> bool:
        return self.COND == FL_NEG

    @property
    def zero(self) -> bool:
        return self.COND == FL_ZRO

    @property
    def positive(self) -> bool:
        return self.COND == FL_POS

    def cond_str(self) -> str:
        """COND as the usual n/z/p letter."""
        return {FL_NEG: 'n', FL_ZRO: 'z', FL_POS: 'p'}.get(self.COND, '?')

    # --- Display ---

    def display(self) -> str:
        """Format register state for trace/debug output."""
        gprs = ' '.join(f"R{i}={v:04X}" for i, v in enumerate(self.R))
        return f"PC={self.PC:04X} {gprs} CC={self.cond_str()}"

    def reset(self):
        """Reset to power-on state."""
        self.R = [0] * NUM_GPR
        self.PC = PC_START
        self.COND = FL_ZRO
        self.steps = 0
