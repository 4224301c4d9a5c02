"""
LC-3 Virtual Machine — Terminal Console Tests

TerminalConsole is driven through real file descriptors: an os.pipe()
for keyboard input, a file under tmp_path for a redirected stdin, and a
pseudo-terminal for raw mode.
"""

import io
import os

import pytest

from lc3vm.console import TerminalConsole
from lc3vm.emu import LC3Emulator, StopReason
from lc3vm.errors import ConsoleEOF
from lc3vm.periph.keyboard import KBSR, KBDR


_live_streams = []


def _stdout():
    # Keep the wrapper alive: TerminalConsole holds only its .buffer, and a
    # collected TextIOWrapper closes the BytesIO underneath it.
    out = io.TextIOWrapper(io.BytesIO(), encoding='latin-1')
    _live_streams.append(out)
    return out


@pytest.fixture
def pipe():
    """(stdin file, write fd). The write end is closed on teardown."""
    r, w = os.pipe()
    stdin = os.fdopen(r, 'rb', buffering=0)
    state = {'w': w}

    def close_writer():
        if state['w'] is not None:
            os.close(state['w'])
            state['w'] = None

    yield stdin, w, close_writer
    close_writer()
    stdin.close()


class TestInput:

    def test_getc_reads_in_order(self, pipe):
        stdin, w, close_writer = pipe
        os.write(w, b'ab')
        con = TerminalConsole(stdin=stdin, stdout=_stdout())
        assert con.getc() == ord('a')
        assert con.getc() == ord('b')

    def test_getc_at_eof(self, pipe):
        stdin, w, close_writer = pipe
        close_writer()
        con = TerminalConsole(stdin=stdin, stdout=_stdout())
        with pytest.raises(ConsoleEOF):
            con.getc()

    def test_key_available(self, pipe):
        stdin, w, close_writer = pipe
        con = TerminalConsole(stdin=stdin, stdout=_stdout())
        assert not con.key_available()
        os.write(w, b'k')
        assert con.key_available()
        # Polling twice does not lose the character
        assert con.key_available()
        assert con.getc() == ord('k')
        assert not con.key_available()

    def test_key_available_false_at_eof(self, pipe):
        stdin, w, close_writer = pipe
        os.write(w, b'z')
        close_writer()
        con = TerminalConsole(stdin=stdin, stdout=_stdout())
        assert con.key_available()
        assert con.getc() == ord('z')
        assert not con.key_available()
        assert not con.key_available()
        with pytest.raises(ConsoleEOF):
            con.getc()


class TestKeyboardAtEof:

    def test_status_read_reports_not_ready(self, pipe):
        stdin, w, close_writer = pipe
        close_writer()
        emu = LC3Emulator(console=TerminalConsole(stdin=stdin, stdout=_stdout()))
        assert emu.mem.read(KBSR) == 0
        assert emu.mem.read(KBSR) == 0

    def test_polling_program_spins(self, pipe):
        stdin, w, close_writer = pipe
        close_writer()
        emu = LC3Emulator(console=TerminalConsole(stdin=stdin, stdout=_stdout()))
        emu.load_words([
            0xA002,  # x3000: LDI R0, x3003   ; R0 <- KBSR
            0x07FE,  # x3001: BRzp x3000
            0xF025,  # x3002: HALT
            KBSR,    # x3003: .FILL xFE00
        ])
        assert emu.run(max_steps=30) is StopReason.TIMEOUT

    def test_last_key_then_eof(self, pipe):
        stdin, w, close_writer = pipe
        os.write(w, b'q')
        close_writer()
        emu = LC3Emulator(console=TerminalConsole(stdin=stdin, stdout=_stdout()))
        assert emu.mem.read(KBSR) == 0x8000
        assert emu.mem.peek(KBDR) == ord('q')
        assert emu.mem.read(KBSR) == 0


class TestOutput:

    def test_putc_writes_raw_bytes(self, pipe):
        stdin, _, _ = pipe
        out = _stdout()
        con = TerminalConsole(stdin=stdin, stdout=out)
        con.putc(ord('A'))
        con.putc(0xE9)
        con.putc(0x1F0A)  # low byte only
        con.write("ok")
        con.flush()
        assert out.buffer.getvalue() == b'A\xe9\nok'

    def test_text_stream_without_buffer(self, pipe):
        stdin, _, _ = pipe
        out = io.StringIO()
        con = TerminalConsole(stdin=stdin, stdout=out)
        con.putc(ord('H'))
        con.write("i\n")
        assert out.getvalue() == "Hi\n"


class TestRawMode:

    def test_noop_when_not_a_tty(self, tmp_path):
        path = tmp_path / 'input.txt'
        path.write_bytes(b'x')
        with open(path, 'rb') as stdin:
            con = TerminalConsole(stdin=stdin, stdout=_stdout())
            with con.raw_mode() as entered:
                assert entered is con
                assert con.getc() == ord('x')

    def test_restores_attributes(self):
        termios = pytest.importorskip('termios')
        master, slave = os.openpty()
        try:
            with os.fdopen(os.dup(slave), 'rb', buffering=0) as stdin:
                con = TerminalConsole(stdin=stdin, stdout=_stdout())
                before = termios.tcgetattr(slave)
                assert before[3] & termios.ICANON

                with con.raw_mode():
                    inside = termios.tcgetattr(slave)
                    assert not inside[3] & termios.ICANON
                    assert not inside[3] & termios.ECHO
                    assert inside[3] & termios.ISIG

                assert termios.tcgetattr(slave) == before
        finally:
            os.close(slave)
            os.close(master)

    def test_restores_attributes_on_error(self):
        termios = pytest.importorskip('termios')
        master, slave = os.openpty()
        try:
            with os.fdopen(os.dup(slave), 'rb', buffering=0) as stdin:
                con = TerminalConsole(stdin=stdin, stdout=_stdout())
                before = termios.tcgetattr(slave)
                with pytest.raises(KeyboardInterrupt):
                    with con.raw_mode():
                        raise KeyboardInterrupt
                assert termios.tcgetattr(slave) == before
        finally:
            os.close(slave)
            os.close(master)
