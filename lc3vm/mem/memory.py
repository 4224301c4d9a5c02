"""
LC-3 Virtual Machine — 64K-Word Memory with I/O Register Routing

Memory map (LC-3 convention):
  x0000–x00FF  Trap vector table
  x0100–x01FF  Interrupt vector table
  x0200–x2FFF  Operating system / supervisor space
  x3000–xFDFF  User program space
  xFE00–xFFFF  Device registers
                 xFE00 KBSR  keyboard status
                 xFE02 KBDR  keyboard data

Every cell is a 16-bit word and every address is a word address.
The whole space is plain read/write storage; reads of a device register
with a registered handler call the handler first, which may rewrite
cells as a side effect. That interception lives inside read() so it
applies to every read path, including pointer chasing for LDI/STI.
"""

from array import array
from typing import Optional, Callable, Dict, List, Iterable

MEMORY_SIZE = 0x10000

# Device register window
IO_START = 0xFE00
IO_END = 0xFFFF


class Memory:
    """65536 x 16-bit word-addressable memory.

    Device models call register_io_handler() to hook reads of
    their registers; everything else is a flat array.
    """

    def __init__(self):
        self._mem = array('H', bytes(MEMORY_SIZE * 2))

        # Device register read handlers: addr → read_fn(addr) -> int
        self._io_read_handlers: Dict[int, Callable] = {}

        # Watchpoints: addr → callback(addr, old_val, new_val)
        self._watchpoints: Dict[int, List[Callable]] = {}

    # --- Core read/write ---

    def read(self, addr: int) -> int:
        """Read one word.

        If a device handler is registered for the address it runs first
        and its return value is the value read.
        """
        addr &= 0xFFFF
        handler = self._io_read_handlers.get(addr)
        if handler is not None:
            return handler(addr) & 0xFFFF
        return self._mem[addr]

    def write(self, addr: int, value: int):
        """Write one word. Watchpoints fire on every write."""
        addr &= 0xFFFF
        value &= 0xFFFF
        old = self._mem[addr]

        if addr in self._watchpoints:
            for cb in self._watchpoints[addr]:
                cb(addr, old, value)

        self._mem[addr] = value

    # --- Raw access (no device side effects) ---

    def peek(self, addr: int) -> int:
        """Read a cell without running device handlers."""
        return self._mem[addr & 0xFFFF]

    def poke(self, addr: int, value: int):
        """Write a cell without firing watchpoints.

        Device models use this to update their own registers.
        """
        self._mem[addr & 0xFFFF] = value & 0xFFFF

    # --- Bulk load ---

    def load_words(self, words: Iterable[int], base_addr: int) -> int:
        """Place words at consecutive addresses from base_addr.

        Bypasses handlers and watchpoints. Returns the number of words.
        Callers are responsible for range checking.
        """
        count = 0
        for i, word in enumerate(words):
            self._mem[(base_addr + i) & 0xFFFF] = word & 0xFFFF
            count += 1
        return count

    # --- I/O handler registration ---

    def register_io_handler(self, addr: int, read_fn: Callable):
        """Register a read handler for a device register address.

        Args:
            addr: device register address (xFE00–xFFFF)
            read_fn: Callable(addr) -> int (16-bit value)
        """
        if not IO_START <= addr <= IO_END:
            raise ValueError(f"x{addr:04X} is outside the device register window")
        self._io_read_handlers[addr] = read_fn

    # --- Watchpoints ---

    def add_watchpoint(self, addr: int, callback: Callable):
        """Call callback(addr, old_val, new_val) on every write to addr."""
        self._watchpoints.setdefault(addr & 0xFFFF, []).append(callback)

    def remove_watchpoint(self, addr: int, callback: Optional[Callable] = None):
        """Remove a watchpoint. If callback is None, removes all on that addr."""
        addr &= 0xFFFF
        if addr in self._watchpoints:
            if callback is None:
                del self._watchpoints[addr]
            else:
                self._watchpoints[addr] = [
                    cb for cb in self._watchpoints[addr] if cb != callback
                ]

    # --- Hex dump ---

    def hexdump(self, start: int, length: int = 64) -> str:
        """Dump ``length`` words from ``start``, eight per line."""
        lines = []
        for offset in range(0, length, 8):
            addr = (start + offset) & 0xFFFF
            words = [self._mem[(addr + i) & 0xFFFF] for i in range(8)]
            hex_words = ' '.join(f'{w:04X}' for w in words)
            ascii_chars = ''.join(
                chr(w) if 0x20 <= w < 0x7F else '.' for w in words
            )
            lines.append(f'x{addr:04X}  {hex_words}  {ascii_chars}')
        return '\n'.join(lines)
