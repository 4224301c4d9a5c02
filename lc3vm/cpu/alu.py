"""
LC-3 Virtual Machine — ALU Operations

All arithmetic is on 16-bit words and wraps silently modulo 2^16.
There is no carry or overflow flag on the LC-3; the only status the
ALU reports is the N/Z/P condition of the result.

Each operation returns a tuple: (result_word, cond_value).
The caller decides whether COND is actually written.
"""

from .regs import flags_for


# ══════════════════════════════════════════════
# Field widening
# ══════════════════════════════════════════════

def sign_extend(value: int, bit_count: int) -> int:
    """Widen a ``bit_count``-bit two's complement field to 16 bits.

    The sign bit (bit ``bit_count - 1``) is replicated into every
    higher bit:
        sign_extend(0b11111, 5) == 0xFFFF   (-1)
        sign_extend(0b00001, 5) == 0x0001   (+1)
    """
    value &= (1 << bit_count) - 1
    if (value >> (bit_count - 1)) & 1:
        value |= (0xFFFF << bit_count) & 0xFFFF
    return value


def to_signed(value: int) -> int:
    """Interpret a 16-bit word as a Python int in -32768..32767."""
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


# ══════════════════════════════════════════════
# 16-bit ALU functions: return (result, cond)
# ══════════════════════════════════════════════

def add16(a: int, b: int) -> tuple:
    """Wrapping 16-bit add."""
    result = (a + b) & 0xFFFF
    return (result, flags_for(result))


def and16(a: int, b: int) -> tuple:
    """Bitwise AND."""
    result = (a & b) & 0xFFFF
    return (result, flags_for(result))


def not16(a: int) -> tuple:
    """Bitwise complement."""
    result = ~a & 0xFFFF
    return (result, flags_for(result))
