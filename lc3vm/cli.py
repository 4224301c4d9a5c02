"""
lc3vm — LC-3 Virtual Machine CLI

Usage:
    lc3vm IMAGE [IMAGE ...] [--max-steps N] [--break ADDR] [--trace]
                            [--dump-regs] [--disasm START-END]
                            [-v] [-q] [--log-file PATH]

Images are loaded in the order given (later images overwrite earlier
ones where they overlap), then execution starts at x3000.

Exit status:
    0    program executed HALT
    1    an image failed to load, or input ran out during GETC/IN
    2    usage error (no images given)
    3    stopped at a breakpoint or the --max-steps limit
    128+N  terminated by signal N (130 for Ctrl-C)

Examples:
    lc3vm prog.obj
    lc3vm os.obj prog.obj --trace --log-file run.log -vv
    lc3vm prog.obj --disasm x3000-x3010
"""

import argparse
import logging
import signal
import sys

from . import __version__
from .console import TerminalConsole
from .cpu.decoder import disassemble_range
from .emu import LC3Emulator, StopReason
from .errors import ImageLoadError, ConsoleEOF
from .log import setup_logging

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_STOPPED = 3


class _Terminated(Exception):
    """Raised from the SIGTERM handler so the terminal gets restored."""

    def __init__(self, signum: int):
        self.signum = signum
        super().__init__(f"signal {signum}")


def _on_signal(signum, frame):
    raise _Terminated(signum)


def parse_int_arg(value: str) -> int:
    """Parse an integer that may be hex (0x..., x...) or decimal."""
    value = value.strip()
    if value[:2].lower() == "0x":
        return int(value, 16)
    if value[:1].lower() == "x":
        return int(value[1:], 16)  # LC-3 assembler convention
    return int(value)


def _address_arg(value: str) -> int:
    try:
        addr = parse_int_arg(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an address: {value!r}")
    if not 0 <= addr <= 0xFFFF:
        raise argparse.ArgumentTypeError(f"address out of range: {value!r}")
    return addr


def _range_arg(value: str) -> tuple:
    start, sep, end = value.partition("-")
    if not sep:
        raise argparse.ArgumentTypeError(f"expected START-END, got {value!r}")
    start, end = _address_arg(start), _address_arg(end)
    if end < start:
        raise argparse.ArgumentTypeError(f"empty range: {value!r}")
    return start, end


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lc3vm",
        description="LC-3 virtual machine — runs assembled LC-3 object images",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("images", nargs="+", metavar="IMAGE",
                        help="Object image file(s) to load")
    parser.add_argument("--max-steps", type=int, default=None,
                        help="Stop after N instructions (default: run until HALT)")
    parser.add_argument("--break", dest="breakpoints", type=_address_arg,
                        action="append", default=[], metavar="ADDR",
                        help="Stop before executing ADDR (repeatable, e.g. x3005)")
    parser.add_argument("--trace", action="store_true",
                        help="Log every executed instruction at DEBUG level")
    parser.add_argument("--dump-regs", action="store_true",
                        help="Print the register file to stderr on exit")
    parser.add_argument("--disasm", type=_range_arg, metavar="START-END",
                        help="Disassemble loaded memory instead of running")
    parser.add_argument("--verbose", "-v", action="count", default=0,
                        help="Increase log verbosity (-v, -vv)")
    parser.add_argument("--quiet", "-q", action="store_true",
                        help="Only log errors")
    parser.add_argument("--log-file", type=str, default=None,
                        help="Also write a DEBUG log to this file")
    parser.add_argument("--version", action="version",
                        version=f"lc3vm {__version__}")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose, args.quiet, args.log_file)

    console = TerminalConsole()
    emu = LC3Emulator(console=console)

    for path in args.images:
        try:
            emu.load_image(path)
        except ImageLoadError as e:
            log.error("Failed to load image: %s", e)
            return EXIT_FAILURE

    if args.disasm:
        start, end = args.disasm
        print(disassemble_range(emu.mem, start, end))
        return EXIT_OK

    for addr in args.breakpoints:
        emu.add_breakpoint(addr)
    emu.enable_trace(args.trace)

    previous_term = signal.signal(signal.SIGTERM, _on_signal)
    try:
        with console.raw_mode():
            status = _run(emu, args.max_steps)
    finally:
        signal.signal(signal.SIGTERM, previous_term)

    if args.dump_regs:
        print(emu.regs.display(), file=sys.stderr)
    return status


def _run(emu: LC3Emulator, max_steps) -> int:
    """Run the machine and map the outcome to an exit status."""
    try:
        reason = emu.run(max_steps=max_steps)
    except KeyboardInterrupt:
        emu.console.write("\n")
        emu.console.flush()
        log.warning("Interrupted at x%04X", emu.regs.PC)
        return 128 + signal.SIGINT
    except _Terminated as t:
        emu.console.flush()
        log.warning("Terminated by signal %d at x%04X", t.signum, emu.regs.PC)
        return 128 + t.signum
    except ConsoleEOF as e:
        emu.console.flush()
        log.error("Console input exhausted at x%04X: %s", emu.regs.PC, e)
        return EXIT_FAILURE

    if reason is StopReason.HALT:
        return EXIT_OK

    log.warning("Stopped (%s) at x%04X: %s", reason.value, emu.regs.PC,
                emu.regs.display())
    return EXIT_STOPPED


if __name__ == "__main__":
    sys.exit(main())
