"""
Source line splitter and typed operand grammar for the SOC8 assembler.

Each source line is split once into a SourceLine (label declaration or
mnemonic + operand tokens). Operand tokens are then validated against the
instruction's operand kinds and turned into tagged values:

  RegisterOperand   R<n> / r<n>      n = non-negative decimal, fits one byte
  ImmediateOperand  <n>              decimal 0..255
  LabelOperand      identifier       resolved against the label table later

Operand separators: commas and/or whitespace, so "R1, 5", "R1,5" and
"R1 5" all tokenize the same way. Text after ';' is a comment.
"""

from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from .errors import AssemblerError, AsmErrorKind
from .isa import (InstructionDef, REG, IMM, LABEL, REGISTER_PREFIXES,
                  MAX_LABEL_LENGTH)

__all__ = [
    'RegisterOperand', 'ImmediateOperand', 'LabelOperand', 'Operand',
    'SourceLine', 'split_line', 'split_source',
    'parse_register', 'parse_immediate', 'parse_label_name', 'parse_operands',
]


_IDENT_RE = re.compile(r'^[A-Za-z_.][A-Za-z0-9_.]*$')
_DIGITS_RE = re.compile(r'^[0-9]+$')
_IMMEDIATE_RE = re.compile(r'^[+-]?[0-9]+$')
_OPERAND_SPLIT_RE = re.compile(r'\s*,\s*|\s+')


# ──────────────────────────────────────────────
# Operand variants
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class RegisterOperand:
    index: int
    text: str = ""

    def encode(self) -> int:
        return self.index


@dataclass(frozen=True)
class ImmediateOperand:
    value: int
    text: str = ""

    def encode(self) -> int:
        return self.value


@dataclass(frozen=True)
class LabelOperand:
    name: str
    text: str = ""


Operand = Union[RegisterOperand, ImmediateOperand, LabelOperand]


# ──────────────────────────────────────────────
# Line splitting
# ──────────────────────────────────────────────

@dataclass
class SourceLine:
    """One line of source, split but not yet validated against the ISA."""
    line_num: int
    raw: str
    label: Optional[str] = None
    mnemonic: Optional[str] = None
    tokens: List[str] = field(default_factory=list)
    comment: Optional[str] = None

    @property
    def is_label(self) -> bool:
        return self.label is not None

    @property
    def is_instruction(self) -> bool:
        return self.mnemonic is not None


def split_line(raw: str, line_num: int) -> SourceLine:
    """Split one source line into label or mnemonic + operand tokens."""
    result = SourceLine(line_num=line_num, raw=raw)

    text = raw
    if ';' in text:
        text, comment = text.split(';', 1)
        result.comment = comment.strip()
    text = text.strip()
    if not text:
        return result

    if text.endswith(':'):
        result.label = parse_label_name(text[:-1].strip(), line_num, raw)
        return result

    parts = text.split(None, 1)
    result.mnemonic = parts[0]
    if len(parts) > 1:
        rest = parts[1].strip()
        # A trailing comma after the last operand is tolerated
        if rest.endswith(','):
            rest = rest[:-1].rstrip()
        result.tokens = _OPERAND_SPLIT_RE.split(rest) if rest else []
    return result


def split_source(source: str) -> List[SourceLine]:
    return [split_line(line, i) for i, line in enumerate(source.split('\n'), 1)]


# ──────────────────────────────────────────────
# Operand parsing
# ──────────────────────────────────────────────

def parse_register(token: str, line_num: int = 0, line_text: str = "") -> RegisterOperand:
    """Parse R<n>. The index must fit in one byte; the register-count check
    happens at execution time."""
    if (len(token) < 2 or token[0] not in REGISTER_PREFIXES
            or not _DIGITS_RE.match(token[1:])):
        raise AssemblerError(f"Invalid register: '{token}'", line_num, line_text,
                             AsmErrorKind.INVALID_REGISTER)
    index = int(token[1:])
    if index > 0xFF:
        raise AssemblerError(f"Register index does not fit in one byte: '{token}'",
                             line_num, line_text, AsmErrorKind.INVALID_REGISTER)
    return RegisterOperand(index, token)


def parse_immediate(token: str, line_num: int = 0, line_text: str = "") -> ImmediateOperand:
    """Parse a decimal immediate in [0, 255]."""
    if not _IMMEDIATE_RE.match(token):
        raise AssemblerError(f"Immediate is not a decimal integer: '{token}'",
                             line_num, line_text, AsmErrorKind.INVALID_IMMEDIATE)
    value = int(token)
    if not 0 <= value <= 0xFF:
        raise AssemblerError(f"Immediate out of range 0-255: '{token}'",
                             line_num, line_text, AsmErrorKind.INVALID_IMMEDIATE)
    return ImmediateOperand(value, token)


def parse_label_name(name: str, line_num: int = 0, line_text: str = "") -> str:
    if not _IDENT_RE.match(name):
        raise AssemblerError(f"Invalid label name: '{name}'", line_num, line_text,
                             AsmErrorKind.INVALID_LABEL)
    if len(name) > MAX_LABEL_LENGTH:
        raise AssemblerError(
            f"Label name longer than {MAX_LABEL_LENGTH} characters: '{name}'",
            line_num, line_text, AsmErrorKind.INVALID_LABEL)
    return name


def parse_operands(definition: InstructionDef, line: SourceLine) -> Tuple[Operand, ...]:
    """Validate arity and decode every operand token of an instruction line."""
    tokens = line.tokens
    if len(tokens) != definition.arity:
        raise AssemblerError(
            f"{definition.mnemonic} instruction malformed: expected "
            f"{definition.arity} operand(s), got {len(tokens)}",
            line.line_num, line.raw, AsmErrorKind.OPERAND_COUNT)

    operands: List[Operand] = []
    for kind, token in zip(definition.operands, tokens):
        if kind == REG:
            operands.append(parse_register(token, line.line_num, line.raw))
        elif kind == IMM:
            operands.append(parse_immediate(token, line.line_num, line.raw))
        elif kind == LABEL:
            name = parse_label_name(token, line.line_num, line.raw)
            operands.append(LabelOperand(name, token))
        else:
            raise AssemblerError(f"Unknown operand kind {kind}", line.line_num,
                                 line.raw, AsmErrorKind.INTERNAL)
    return tuple(operands)
