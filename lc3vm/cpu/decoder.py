"""
LC-3 Virtual Machine — Instruction Decoder / Disassembler

Every LC-3 instruction is one 16-bit word. Bits 15–12 select the opcode;
the remaining 12 bits are opcode-specific fields:

  ADD/AND  | op | DR  | SR1 | 0 | 00 | SR2 |      register mode
           | op | DR  | SR1 | 1 |   imm5     |      immediate mode
  NOT      | op | DR  | SR  |   111111       |
  BR       | op | n z p |    PCoffset9       |
  JMP      | op | 000 | BaseR |  000000      |      RET == JMP R7
  JSR      | op | 1 |       PCoffset11       |
  JSRR     | op | 0 | 00 | BaseR |  000000   |
  LD/LDI/LEA/ST/STI
           | op | DR/SR |    PCoffset9       |
  LDR/STR  | op | DR/SR | BaseR | offset6    |
  TRAP     | op | 0000 |    trapvect8       |
  RTI/RES  | op |   (unused)                 |

decode() never fails: all 16 opcode values are valid and unused bits are
ignored. Offsets are sign-extended to 16 bits at decode time so handlers
can add them to addresses with a plain mask.
"""

from dataclasses import dataclass

from .alu import sign_extend, to_signed


# ──────────────────────────────────────────────
# Opcodes (bits 15–12)
# ──────────────────────────────────────────────

OP_BR   = 0x0
OP_ADD  = 0x1
OP_LD   = 0x2
OP_ST   = 0x3
OP_JSR  = 0x4
OP_AND  = 0x5
OP_NOT  = 0x6
OP_LDR  = 0x7
OP_STR  = 0x8
OP_RTI  = 0x9
OP_LDI  = 0xA
OP_STI  = 0xB
OP_JMP  = 0xC
OP_RES  = 0xD
OP_LEA  = 0xE
OP_TRAP = 0xF

OPCODES = {
    OP_BR:   'BR',
    OP_ADD:  'ADD',
    OP_LD:   'LD',
    OP_ST:   'ST',
    OP_JSR:  'JSR',
    OP_AND:  'AND',
    OP_NOT:  'NOT',
    OP_LDR:  'LDR',
    OP_STR:  'STR',
    OP_RTI:  'RTI',
    OP_LDI:  'LDI',
    OP_STI:  'STI',
    OP_JMP:  'JMP',
    OP_RES:  'RES',
    OP_LEA:  'LEA',
    OP_TRAP: 'TRAP',
}

# ──────────────────────────────────────────────
# Trap vectors
# ──────────────────────────────────────────────

TRAP_GETC  = 0x20
TRAP_OUT   = 0x21
TRAP_PUTS  = 0x22
TRAP_IN    = 0x23
TRAP_PUTSP = 0x24
TRAP_HALT  = 0x25

TRAP_NAMES = {
    TRAP_GETC:  'GETC',
    TRAP_OUT:   'OUT',
    TRAP_PUTS:  'PUTS',
    TRAP_IN:    'IN',
    TRAP_PUTSP: 'PUTSP',
    TRAP_HALT:  'HALT',
}


@dataclass(frozen=True)
class Instruction:
    """One decoded instruction word.

    Not every field is meaningful for every opcode; handlers pick the
    ones their format defines.
    """
    word: int
    opcode: int
    dr: int            # bits 11–9: DR / SR (stores) / nzp (BR)
    sr1: int           # bits 8–6:  SR1 / BaseR
    sr2: int           # bits 2–0
    imm_mode: bool     # bit 5 (ADD/AND)
    long_flag: bool    # bit 11 (JSR vs JSRR)
    imm5: int          # sign-extended
    offset6: int       # sign-extended
    pc_offset9: int    # sign-extended
    pc_offset11: int   # sign-extended
    trapvect8: int     # unsigned

    @property
    def mnemonic(self) -> str:
        return OPCODES[self.opcode]

    @property
    def nzp(self) -> int:
        """BR condition mask; same bits as DR, aligned with COND."""
        return self.dr


def opcode_of(word: int) -> int:
    return (word >> 12) & 0xF


def decode(word: int) -> Instruction:
    """Split a 16-bit instruction word into its fields."""
    word &= 0xFFFF
    return Instruction(
        word=word,
        opcode=opcode_of(word),
        dr=(word >> 9) & 0x7,
        sr1=(word >> 6) & 0x7,
        sr2=word & 0x7,
        imm_mode=bool((word >> 5) & 0x1),
        long_flag=bool((word >> 11) & 0x1),
        imm5=sign_extend(word, 5),
        offset6=sign_extend(word, 6),
        pc_offset9=sign_extend(word, 9),
        pc_offset11=sign_extend(word, 11),
        trapvect8=word & 0xFF,
    )


# ══════════════════════════════════════════════
# Disassembly
# ══════════════════════════════════════════════

def _target(pc: int, offset: int) -> str:
    return f"x{(pc + offset) & 0xFFFF:04X}"


def disassemble(word: int, pc: int) -> str:
    """Render one word as LC-3 assembly.

    ``pc`` is the address the word was fetched from; PC-relative targets
    are resolved against pc + 1, the way the hardware sees them.
    """
    inst = decode(word)
    op = inst.opcode
    next_pc = (pc + 1) & 0xFFFF

    if op == OP_BR:
        if inst.nzp == 0:
            return 'NOP'
        cond = ''.join(c for c, bit in zip('nzp', (4, 2, 1)) if inst.nzp & bit)
        return f"BR{cond} {_target(next_pc, inst.pc_offset9)}"

    if op in (OP_ADD, OP_AND):
        if inst.imm_mode:
            return (f"{inst.mnemonic} R{inst.dr}, R{inst.sr1}, "
                    f"#{to_signed(inst.imm5)}")
        return f"{inst.mnemonic} R{inst.dr}, R{inst.sr1}, R{inst.sr2}"

    if op == OP_NOT:
        return f"NOT R{inst.dr}, R{inst.sr1}"

    if op in (OP_LD, OP_LDI, OP_LEA, OP_ST, OP_STI):
        return f"{inst.mnemonic} R{inst.dr}, {_target(next_pc, inst.pc_offset9)}"

    if op in (OP_LDR, OP_STR):
        return (f"{inst.mnemonic} R{inst.dr}, R{inst.sr1}, "
                f"#{to_signed(inst.offset6)}")

    if op == OP_JMP:
        return 'RET' if inst.sr1 == 7 else f"JMP R{inst.sr1}"

    if op == OP_JSR:
        if inst.long_flag:
            return f"JSR {_target(next_pc, inst.pc_offset11)}"
        return f"JSRR R{inst.sr1}"

    if op == OP_TRAP:
        name = TRAP_NAMES.get(inst.trapvect8)
        return name if name else f"TRAP x{inst.trapvect8:02X}"

    # RTI, RES
    return inst.mnemonic


def disassemble_range(memory, start: int, end: int) -> str:
    """Disassemble memory[start..end] inclusive, one line per word.

    Uses Memory.peek so listing never triggers device side effects.
    """
    lines = []
    for addr in range(start, end + 1):
        addr &= 0xFFFF
        word = memory.peek(addr)
        lines.append(f"x{addr:04X}  {word:04X}  {disassemble(word, addr)}")
    return '\n'.join(lines)
