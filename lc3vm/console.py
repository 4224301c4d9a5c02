"""
LC-3 Virtual Machine — Console Collaborators

The machine talks to the outside world only through an object with
this interface:

  getc()          -> int    blocking single character read (no echo)
  putc(ch)                  write one character (low byte)
  write(text)               write a string
  key_available() -> bool   non-blocking "is input pending" poll
  flush()

TerminalConsole drives a real terminal on POSIX. BufferedConsole keeps
everything in memory: tests push input with inject_input() and inspect
``output``.
"""

import os
import select
import sys
import logging
from collections import deque
from contextlib import contextmanager
from typing import Optional

from .errors import ConsoleEOF

log = logging.getLogger(__name__)


class BufferedConsole:
    """In-memory console.

    Example:
        con = BufferedConsole()
        con.inject_input(b"y")
        emu = LC3Emulator(console=con)
        ...
        assert con.text == "HELLO"
    """

    def __init__(self, input_data: bytes = b''):
        self._rx_queue: deque = deque()
        self.tx_buffer: bytearray = bytearray()
        self.flushes = 0
        self.inject_input(input_data)

    def inject_input(self, data):
        """Queue bytes (or a str) as pending keyboard input."""
        if isinstance(data, str):
            data = data.encode('latin-1')
        for byte in data:
            self._rx_queue.append(byte & 0xFF)

    def getc(self) -> int:
        if not self._rx_queue:
            raise ConsoleEOF("no console input left")
        return self._rx_queue.popleft()

    def putc(self, ch: int):
        self.tx_buffer.append(ch & 0xFF)

    def write(self, text: str):
        self.tx_buffer.extend(text.encode('latin-1', errors='replace'))

    def key_available(self) -> bool:
        return bool(self._rx_queue)

    def flush(self):
        self.flushes += 1

    @property
    def output(self) -> bytes:
        """Everything written since creation."""
        return bytes(self.tx_buffer)

    @property
    def text(self) -> str:
        return self.tx_buffer.decode('latin-1')


class TerminalConsole:
    """stdin/stdout console.

    Reads go straight to the file descriptor with os.read() so that
    select() polling and blocking reads see the same byte stream (no
    Python-level buffering in between).
    """

    def __init__(self, stdin=None, stdout=None):
        self._stdin = stdin if stdin is not None else sys.stdin
        stdout = stdout if stdout is not None else sys.stdout
        # Bytes out when the stream has a binary buffer (chars > 0x7F)
        self._out = getattr(stdout, 'buffer', stdout)
        self._binary = self._out is not stdout
        self._fd = self._stdin.fileno()
        # Byte read by key_available() but not yet handed out by getc()
        self._pending: Optional[int] = None
        self._eof = False

    # --- Terminal mode ---

    @contextmanager
    def raw_mode(self):
        """Disable line buffering and echo for the duration of the block.

        Signals stay enabled (ISIG untouched) so Ctrl-C still interrupts.
        The saved attributes are restored on any exit path. No-op when
        stdin is not a terminal.
        """
        if not os.isatty(self._fd):
            yield self
            return

        import termios
        old_settings = termios.tcgetattr(self._fd)
        new_settings = termios.tcgetattr(self._fd)
        new_settings[3] &= ~(termios.ICANON | termios.ECHO)  # lflags
        termios.tcsetattr(self._fd, termios.TCSANOW, new_settings)
        log.debug("Terminal raw mode enabled on fd %d", self._fd)
        try:
            yield self
        finally:
            termios.tcsetattr(self._fd, termios.TCSADRAIN, old_settings)
            log.debug("Terminal settings restored")

    # --- Console interface ---

    def getc(self) -> int:
        self.flush()
        if self._pending is not None:
            ch, self._pending = self._pending, None
            return ch
        ch = self._read_byte()
        if ch is None:
            raise ConsoleEOF("end of input on stdin")
        return ch

    def putc(self, ch: int):
        if self._binary:
            self._out.write(bytes([ch & 0xFF]))
        else:
            self._out.write(chr(ch & 0xFF))

    def write(self, text: str):
        if self._binary:
            self._out.write(text.encode('latin-1', errors='replace'))
        else:
            self._out.write(text)

    def key_available(self) -> bool:
        """Non-blocking poll. False once stdin has reached end of file.

        At EOF select() still reports the descriptor readable, so a
        readable descriptor is confirmed by reading the byte ahead.
        """
        if self._pending is not None:
            return True
        if self._eof:
            return False
        rlist, _, _ = select.select([self._fd], [], [], 0)
        if not rlist:
            return False
        self._pending = self._read_byte()
        return self._pending is not None

    def flush(self):
        self._out.flush()

    def _read_byte(self) -> Optional[int]:
        if self._eof:
            return None
        data = os.read(self._fd, 1)
        if not data:
            self._eof = True
            log.debug("End of input on fd %d", self._fd)
            return None
        return data[0]
