#!/usr/bin/env python3
"""
soc8kit — SOC8 Toolchain CLI
============================

One CLI for the toolchain:
    soc8kit asm      — Assemble SOC8 source to a raw binary
    soc8kit run      — Execute a binary in the emulator
    soc8kit disasm   — Disassemble a binary

Usage:
    python soc8kit.py <command> [options]
    python soc8kit.py <command> --help

Examples:
    python soc8kit.py asm count.asm count.bin
    python soc8kit.py asm count.asm count.bin --profile resolved --listing
    python soc8kit.py run count.bin --dump-regs
    python soc8kit.py run count.bin --profile resolved --trace
    python soc8kit.py disasm count.bin

Exit status:
    0  success (run: program HALTED)
    1  I/O or assembly error, nothing produced
    3  run: program FAULTED
"""

import argparse
import logging
import os
import sys

# Allow running from project root without installing
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from soc8_asm import __version__, Assembler, AssemblerError, PROFILES, DEFAULT_PROFILE
from soc8_asm.isa import REG_COUNT, RAM_SIZE
from soc8_emulator import SOC8Emulator, StopReason, disassemble

logger = logging.getLogger("soc8kit")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_FAULT = 3


def _positive_int(value: str) -> int:
    try:
        n = int(value, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}") from None
    if n <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value!r}")
    return n


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="soc8kit",
        description="SOC8 toolchain — assemble, run, disassemble",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="profiles:\n" + "\n".join(
            f"  {name:<10} {p.description}" for name, p in PROFILES.items()),
    )
    parser.add_argument("--version", action="version", version=f"soc8kit {__version__}")
    sub = parser.add_subparsers(dest="command", metavar="command")

    # ── asm ──────────────────────────────────────────────────────────────
    p_asm = sub.add_parser("asm", help="Assemble SOC8 source to a raw binary")
    p_asm.add_argument("input", help="Input .asm file")
    p_asm.add_argument("output", help="Output .bin file")
    p_asm.add_argument("--profile", default=DEFAULT_PROFILE, choices=list(PROFILES),
                       help=f"ISA profile (default: {DEFAULT_PROFILE})")
    p_asm.add_argument("--listing", action="store_true", help="Print listing to stdout")
    p_asm.add_argument("-v", "--verbose", action="store_true")

    # ── run ──────────────────────────────────────────────────────────────
    p_run = sub.add_parser("run", help="Execute a binary in the emulator")
    p_run.add_argument("input", help="Input .bin file")
    p_run.add_argument("--profile", default=DEFAULT_PROFILE, choices=list(PROFILES),
                       help=f"ISA profile (default: {DEFAULT_PROFILE})")
    p_run.add_argument("--registers", type=_positive_int, default=REG_COUNT,
                       help=f"Register count (default: {REG_COUNT})")
    p_run.add_argument("--ram-size", type=_positive_int, default=RAM_SIZE,
                       help=f"RAM size in bytes (default: {RAM_SIZE})")
    p_run.add_argument("--dump-regs", action="store_true",
                       help="Print final register values")
    p_run.add_argument("--dump-ram", action="store_true",
                       help="Print a hex dump of RAM after execution")
    p_run.add_argument("--trace", action="store_true",
                       help="Print an instruction trace to stderr")
    p_run.add_argument("-v", "--verbose", action="store_true")

    # ── disasm ───────────────────────────────────────────────────────────
    p_dis = sub.add_parser("disasm", help="Disassemble a binary")
    p_dis.add_argument("input", help="Input .bin file")
    p_dis.add_argument("--profile", default=DEFAULT_PROFILE, choices=list(PROFILES),
                       help=f"ISA profile (default: {DEFAULT_PROFILE})")
    p_dis.add_argument("-v", "--verbose", action="store_true")

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return EXIT_OK

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    handler = COMMANDS[args.command]
    return handler(args)


# ═════════════════════════════════════════════════════════════════════════════
# COMMAND IMPLEMENTATIONS
# ═════════════════════════════════════════════════════════════════════════════

def _read_binary(path: str):
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        print(f"Error: Unable to open binary file {path}: {e.strerror or e}", file=sys.stderr)
        return None


# ── asm ──────────────────────────────────────────────────────────────────
def cmd_asm(args) -> int:
    try:
        with open(args.input, "r", encoding="utf-8") as f:
            source = f.read()
    except OSError as e:
        print(f"Error: Unable to open source file {args.input}: {e.strerror or e}",
              file=sys.stderr)
        return EXIT_ERROR
    except UnicodeDecodeError as e:
        print(f"Error: Unable to open source file {args.input}: {e}", file=sys.stderr)
        return EXIT_ERROR

    asm = Assembler(profile=args.profile)
    try:
        binary = asm.assemble(source)
    except AssemblerError as e:
        print(f"Assembly error: {e}", file=sys.stderr)
        return EXIT_ERROR

    try:
        with open(args.output, "wb") as f:
            f.write(binary)
    except OSError as e:
        print(f"Error: Unable to write output file {args.output}: {e.strerror or e}",
              file=sys.stderr)
        return EXIT_ERROR

    if args.listing:
        print(asm.get_listing())
    logger.info("Profile %s, %d label(s)", args.profile, len(asm.labels))
    print(f"Assembled {len(binary)} bytes -> {args.output}")
    return EXIT_OK


# ── run ──────────────────────────────────────────────────────────────────
def cmd_run(args) -> int:
    data = _read_binary(args.input)
    if data is None:
        return EXIT_ERROR

    emu = SOC8Emulator(profile=args.profile, reg_count=args.registers,
                       ram_size=args.ram_size)
    emu.load_program(data)
    if args.trace:
        emu.enable_trace()

    reason = emu.run()

    if args.trace:
        for line in emu.trace_output:
            print(line, file=sys.stderr)

    if reason == StopReason.HALT:
        print("Program exited.")
    else:
        print(f"Fault: {emu.fault.message}", file=sys.stderr)

    if args.dump_regs:
        print(emu.display())
    if args.dump_ram:
        print('\n'.join(emu.mem.hexdump()))

    return EXIT_OK if reason == StopReason.HALT else EXIT_FAULT


# ── disasm ───────────────────────────────────────────────────────────────
def cmd_disasm(args) -> int:
    data = _read_binary(args.input)
    if data is None:
        return EXIT_ERROR
    for line in disassemble(data, profile=args.profile):
        print(line)
    return EXIT_OK


# ═════════════════════════════════════════════════════════════════════════════
# COMMAND DISPATCH TABLE
# ═════════════════════════════════════════════════════════════════════════════

COMMANDS = {
    "asm": cmd_asm,
    "run": cmd_run,
    "disasm": cmd_disasm,
}


if __name__ == "__main__":
    sys.exit(main())
