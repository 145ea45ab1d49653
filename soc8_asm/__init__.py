"""
SOC8 Assembler
==============
Two-pass assembler for the SOC8 8-bit register machine.

Architecture:
    ┌──────────┐    ┌──────────────┐    ┌──────────┐    ┌──────────┐    ┌───────────┐
    │ Source   │───>│ operands.py  │───>│  Pass 1  │───>│  Pass 2  │───>│  Image    │
    │ (.asm)   │    │ (split/typed)│    │ (labels) │    │ (encode) │    │  (.bin)   │
    └──────────┘    └──────────────┘    └──────────┘    └──────────┘    └───────────┘

    - isa.py:       Opcode table, instruction lengths, ISA profiles, machine constants
    - operands.py:  Line splitter + RegisterOperand/ImmediateOperand/LabelOperand grammar
    - assembler.py: AssemblyContext, first_pass/second_pass, Assembler, listing
    - errors.py:    AssemblerError + AsmErrorKind
"""

__version__ = "0.2.0"

from .errors import AssemblerError, AsmErrorKind
from .isa import INSTRUCTIONS, PROFILES, DEFAULT_PROFILE, get_profile, instruction_length
from .assembler import Assembler, AssemblyContext, Label, BranchSite, assemble


def assemble_file(path, profile=DEFAULT_PROFILE) -> bytes:
    """Read a source file and assemble it."""
    with open(path, "r", encoding="utf-8") as f:
        return assemble(f.read(), profile=profile)
