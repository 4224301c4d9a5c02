"""
LC-3 Virtual Machine — Decoder, Sign Extension and Disassembler Tests

Instruction words are hand-assembled; the assembly is in the comment
next to each one.
"""

import pytest

from lc3vm.cpu.alu import sign_extend, to_signed, add16, and16, not16
from lc3vm.cpu.decoder import (
    decode, disassemble, disassemble_range, OPCODES,
    OP_ADD, OP_BR, OP_JSR, OP_TRAP,
)
from lc3vm.cpu.regs import FL_POS, FL_ZRO, FL_NEG
from lc3vm.mem.memory import Memory


class TestSignExtend:

    def test_five_bit_minus_one(self):
        assert sign_extend(0b11111, 5) == 0xFFFF

    def test_five_bit_plus_one(self):
        assert sign_extend(0b00001, 5) == 0x0001

    def test_five_bit_most_negative(self):
        """10000 → -16"""
        assert sign_extend(0b10000, 5) == 0xFFF0
        assert to_signed(sign_extend(0b10000, 5)) == -16

    def test_nine_bit(self):
        assert sign_extend(0x1FF, 9) == 0xFFFF
        assert sign_extend(0x100, 9) == 0xFF00
        assert sign_extend(0x0FF, 9) == 0x00FF

    def test_eleven_bit(self):
        assert sign_extend(0x400, 11) == 0xFC00
        assert sign_extend(0x3FF, 11) == 0x03FF

    def test_ignores_bits_above_field(self):
        """Only the low bit_count bits take part."""
        assert sign_extend(0x1025, 5) == 0x0005
        assert sign_extend(0x103F, 5) == 0xFFFF

    def test_idempotent(self):
        for raw in range(64):
            once = sign_extend(raw, 6)
            assert sign_extend(once, 6) == once


class TestALU:

    @pytest.mark.parametrize("a, b", [
        (0x0000, 0x0000), (0x0001, 0xFFFF), (0x7FFF, 0x0001),
        (0x8000, 0x8000), (0x1234, 0x4321), (0xFFFF, 0xFFFF),
    ])
    def test_add16_wraps(self, a, b):
        result, cond = add16(a, b)
        assert result == (a + b) % 0x10000
        if result == 0:
            assert cond == FL_ZRO
        elif result & 0x8000:
            assert cond == FL_NEG
        else:
            assert cond == FL_POS

    def test_and16(self):
        assert and16(0xF0F0, 0x0FF0) == (0x00F0, FL_POS)
        assert and16(0xF0F0, 0x0F0F) == (0x0000, FL_ZRO)

    def test_not16(self):
        assert not16(0x0000) == (0xFFFF, FL_NEG)
        assert not16(0xFFFF) == (0x0000, FL_ZRO)


class TestDecode:

    def test_add_register_fields(self):
        inst = decode(0x1401)  # ADD R2, R0, R1
        assert inst.opcode == OP_ADD
        assert inst.dr == 2
        assert inst.sr1 == 0
        assert inst.sr2 == 1
        assert not inst.imm_mode

    def test_add_immediate_fields(self):
        inst = decode(0x103F)  # ADD R0, R0, #-1
        assert inst.imm_mode
        assert inst.imm5 == 0xFFFF

    def test_branch_mask(self):
        inst = decode(0x0402)  # BRz +2
        assert inst.opcode == OP_BR
        assert inst.nzp == 0b010
        assert inst.pc_offset9 == 2

    def test_jsr_long_flag(self):
        assert decode(0x4804).long_flag          # JSR +4
        assert decode(0x4804).pc_offset11 == 4
        assert not decode(0x40C0).long_flag      # JSRR R3
        assert decode(0x40C0).sr1 == 3

    def test_trap_vector_unsigned(self):
        inst = decode(0xF0FF)
        assert inst.opcode == OP_TRAP
        assert inst.trapvect8 == 0xFF

    def test_every_opcode_decodes(self):
        for op in range(16):
            assert decode(op << 12).mnemonic == OPCODES[op]
            assert decode((op << 12) | 0x0FFF).opcode == op

    def test_jsr_opcode_constant(self):
        assert decode(0x4000).opcode == OP_JSR

    @pytest.mark.parametrize("number, mnemonic", [
        (0, 'BR'), (1, 'ADD'), (2, 'LD'), (3, 'ST'),
        (4, 'JSR'), (5, 'AND'), (6, 'NOT'), (7, 'LDR'),
        (8, 'STR'), (9, 'RTI'), (10, 'LDI'), (11, 'STI'),
        (12, 'JMP'), (13, 'RES'), (14, 'LEA'), (15, 'TRAP'),
    ])
    def test_opcode_numbering(self, number, mnemonic):
        inst = decode(number << 12)
        assert inst.opcode == number
        assert inst.mnemonic == mnemonic


class TestDisassemble:

    @pytest.mark.parametrize("word, text", [
        (0x1025, "ADD R0, R0, #5"),
        (0x103F, "ADD R0, R0, #-1"),
        (0x1401, "ADD R2, R0, R1"),
        (0x5020, "AND R0, R0, #0"),
        (0x623F, "NOT R1, R0"),
        (0x0402, "BRz x3003"),
        (0x0FFF, "BRnzp x3000"),
        (0x0000, "NOP"),
        (0xC080, "JMP R2"),
        (0xC1C0, "RET"),
        (0x4804, "JSR x3005"),
        (0x40C0, "JSRR R3"),
        (0x2001, "LD R0, x3002"),
        (0xA201, "LDI R1, x3002"),
        (0x78BF, "LDR R4, R2, #-1"),
        (0xE002, "LEA R0, x3003"),
        (0x3001, "ST R0, x3002"),
        (0xB001, "STI R0, x3002"),
        (0x8042, "STR R0, R1, #2"),
        (0xF022, "PUTS"),
        (0xF025, "HALT"),
        (0xF0FF, "TRAP xFF"),
        (0x9000, "RTI"),
        (0xD000, "RES"),
    ])
    def test_disassemble_at_x3000(self, word, text):
        assert disassemble(word, 0x3000) == text

    def test_target_wraps(self):
        # BRnzp +1 at xFFFF → xFFFF + 1 + 1 = x0001
        assert disassemble(0x0E01, 0xFFFF) == "BRnzp x0001"

    def test_range_listing(self):
        mem = Memory()
        mem.load_words([0xE002, 0xF022], 0x3000)
        listing = disassemble_range(mem, 0x3000, 0x3001).splitlines()
        assert listing == [
            "x3000  E002  LEA R0, x3003",
            "x3001  F022  PUTS",
        ]
