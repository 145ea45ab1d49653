"""
SOC8 Two-Pass Assembler.

Assembles SOC8 mnemonic source into a flat byte image.

Input:  Source text, one label declaration or one instruction per line
Output: Raw bytes (no header, no relocation table)

How the two-pass algorithm works:
  Pass 1: Scan all lines with an address counter starting at 0. A line
          "name:" records the label at the current address. Every other
          non-blank line is one instruction and advances the counter by the
          profile's sizing rule (classic: 3 bytes flat, resolved: the
          instruction's encoded length).
  Pass 2: Emit opcode and operand bytes. IF/JMP look up their label, which
          must already be in the table, and record a branch site at the
          address right after the instruction. Under the resolved profile
          the label address is also emitted as a trailing operand byte.

All state for one run lives in an AssemblyContext, so separate runs never
share labels or output buffers.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .errors import AssemblerError, AsmErrorKind
from .isa import (INSTRUCTIONS, MAX_LABELS, MAX_PROGRAM_SIZE, FIXED_INSTRUCTION_SIZE,
                  DEFAULT_PROFILE, Profile, get_profile, instruction_length)
from .operands import (SourceLine, RegisterOperand, ImmediateOperand, LabelOperand,
                       split_source, parse_operands)

__all__ = ['Assembler', 'AssemblerError', 'AssemblyContext', 'Label', 'BranchSite',
           'first_pass', 'second_pass', 'assemble']

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────
# Assembly state
# ──────────────────────────────────────────────

@dataclass
class Label:
    name: str
    address: int
    line_num: int = 0


@dataclass
class BranchSite:
    """Address just past an IF/JMP, where its target label is carried."""
    label: str
    address: int
    line_num: int = 0


@dataclass
class ListingEntry:
    line_num: int
    address: int
    data: bytes
    source: str


@dataclass
class AssemblyContext:
    """Label table and output buffer for one assembly run."""
    profile: Profile
    max_labels: int = MAX_LABELS
    labels: Dict[str, Label] = field(default_factory=dict)
    branch_sites: List[BranchSite] = field(default_factory=list)
    program: bytearray = field(default_factory=bytearray)
    listing: List[ListingEntry] = field(default_factory=list)

    def add_label(self, name: str, address: int, line: SourceLine):
        if name in self.labels:
            raise AssemblerError(
                f"Label '{name}' already defined on line {self.labels[name].line_num}",
                line.line_num, line.raw, AsmErrorKind.DUPLICATE_LABEL)
        if len(self.labels) >= self.max_labels:
            raise AssemblerError(f"Too many labels defined (max {self.max_labels})",
                                 line.line_num, line.raw, AsmErrorKind.TOO_MANY_LABELS)
        self.labels[name] = Label(name, address, line.line_num)

    def find_label(self, name: str, line: SourceLine) -> Label:
        try:
            return self.labels[name]
        except KeyError:
            raise AssemblerError(f"Label not found: {name}", line.line_num, line.raw,
                                 AsmErrorKind.UNRESOLVED_LABEL) from None

    def size_of(self, line: SourceLine) -> int:
        """Pass-1 size of an instruction line under the active profile."""
        if self.profile.fixed_label_sizing or line.mnemonic not in INSTRUCTIONS:
            return FIXED_INSTRUCTION_SIZE
        return instruction_length(line.mnemonic, self.profile)

    def emit(self, data: bytearray):
        self.program.extend(data)


# ──────────────────────────────────────────────
# Passes
# ──────────────────────────────────────────────

def first_pass(ctx: AssemblyContext, lines: List[SourceLine]) -> int:
    """Record every label at its address. Returns the final address count."""
    address = 0
    for line in lines:
        if line.is_label:
            ctx.add_label(line.label, address, line)
        elif line.is_instruction:
            address += ctx.size_of(line)
    logger.debug("Pass 1: %d label(s), %d byte(s) counted", len(ctx.labels), address)
    return address


def second_pass(ctx: AssemblyContext, lines: List[SourceLine]) -> bytearray:
    """Encode every instruction line into ctx.program."""
    address = 0
    for line in lines:
        if line.is_label:
            recorded = ctx.labels[line.label].address
            if recorded != address:
                raise AssemblerError(
                    f"Label '{line.label}' moved between passes "
                    f"(pass 1: {recorded}, pass 2: {address})",
                    line.line_num, line.raw, AsmErrorKind.INTERNAL)
            continue
        if not line.is_instruction:
            continue

        offset = len(ctx.program)
        data = encode_line(ctx, line)
        ctx.emit(data)
        ctx.listing.append(ListingEntry(line.line_num, offset, bytes(data), line.raw))
        address += ctx.size_of(line)

    logger.debug("Pass 2: emitted %d byte(s)", len(ctx.program))
    return ctx.program


def encode_line(ctx: AssemblyContext, line: SourceLine) -> bytearray:
    """Encode one instruction line. IF/JMP also record their branch site."""
    definition = INSTRUCTIONS.get(line.mnemonic)
    if definition is None:
        raise AssemblerError(f"Unknown instruction: {line.mnemonic}", line.line_num,
                             line.raw, AsmErrorKind.UNKNOWN_MNEMONIC)

    operands = parse_operands(definition, line)
    data = bytearray([definition.opcode])
    target: Optional[Label] = None

    for operand in operands:
        if isinstance(operand, (RegisterOperand, ImmediateOperand)):
            data.append(operand.encode())
        elif isinstance(operand, LabelOperand):
            target = ctx.find_label(operand.name, line)
            if ctx.profile.encode_branch_targets:
                if target.address > 0xFF:
                    raise AssemblerError(
                        f"Label '{target.name}' at {target.address} does not fit "
                        f"in a one-byte address", line.line_num, line.raw,
                        AsmErrorKind.ADDRESS_RANGE)
                data.append(target.address)

    if target is not None:
        site = len(ctx.program) + len(data)
        ctx.branch_sites.append(BranchSite(target.name, site, line.line_num))

    return data


# ──────────────────────────────────────────────
# The Assembler
# ──────────────────────────────────────────────

class Assembler:
    """Two-pass SOC8 assembler.

    Usage:
        asm = Assembler(profile='classic')
        binary = asm.assemble(source_text)
        print(asm.get_listing())
    """

    def __init__(self, profile=DEFAULT_PROFILE, max_labels: int = MAX_LABELS,
                 max_program_size: int = MAX_PROGRAM_SIZE):
        self.profile = get_profile(profile)
        self.max_labels = max_labels
        self.max_program_size = max_program_size
        self.context: Optional[AssemblyContext] = None

    def assemble(self, source: str) -> bytes:
        """Assemble source text into the program image.

        Raises AssemblerError on the first fatal condition; nothing is
        produced in that case.
        """
        self.context = None
        ctx = AssemblyContext(profile=self.profile, max_labels=self.max_labels)
        lines = split_source(source)
        first_pass(ctx, lines)
        second_pass(ctx, lines)

        if len(ctx.program) > self.max_program_size:
            logger.warning("Program is %d bytes; only the first %d fit in RAM",
                           len(ctx.program), self.max_program_size)

        self.context = ctx
        return bytes(ctx.program)

    @property
    def binary(self) -> bytes:
        return bytes(self.context.program) if self.context else b''

    @property
    def labels(self) -> Dict[str, int]:
        """Label name -> address from the last run."""
        if self.context is None:
            return {}
        return {name: label.address for name, label in self.context.labels.items()}

    def get_listing(self) -> str:
        """Return a human-readable listing showing address, bytes, and source."""
        if self.context is None:
            return ""
        lines = [f"; profile: {self.profile.name}",
                 f"{'ADDR':>4}  {'BYTES':<12}  SOURCE",
                 "-" * 48]
        for entry in self.context.listing:
            hex_str = ' '.join(f'{b:02X}' for b in entry.data)
            lines.append(f"${entry.address:02X}   {hex_str:<12}  {entry.source.strip()}")
        if self.context.labels:
            lines.append("")
            lines.append("Labels:")
            for label in self.context.labels.values():
                lines.append(f"  {label.name:<20} ${label.address:02X}")
        if self.context.branch_sites:
            lines.append("")
            lines.append("Branch sites:")
            for site in self.context.branch_sites:
                lines.append(f"  ${site.address:02X}  -> {site.label:<20} (line {site.line_num})")
        return '\n'.join(lines)


# ──────────────────────────────────────────────
# Convenience functions
# ──────────────────────────────────────────────

def assemble(source: str, profile=DEFAULT_PROFILE) -> bytes:
    """Assemble source text, return the program image."""
    return Assembler(profile=profile).assemble(source)
