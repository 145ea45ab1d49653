"""
SOC8 Instruction Set — opcode table, sizes, and ISA profiles.

Shared by the assembler (encoding) and the emulator's decoder (execution),
so both sides agree on every opcode byte and instruction length.

Encoding:
  One opcode byte followed by a fixed number of one-byte operands, written
  left-to-right as in the source. Registers encode as their index, immediates
  as their literal value (0-255).

  Mnemonic              Opcode  Operands            Length
  EXIT                  $00     -                   1
  STORE reg, imm        $01     reg imm             3
  LOAD  reg, imm        $02     reg imm             3
  ADD   dest, src, imm  $03     dest src imm        4
  SUB   dest, src, imm  $04     dest src imm        4
  IF    reg, imm, label $05     reg imm [addr]      3 (classic) / 4 (resolved)
  JMP   label           $06     [addr]              1 (classic) / 2 (resolved)
  DPR   reg             $07     reg                 2

Profiles:
  classic   Bit-compatible with existing SOC8 binaries. Pass 1 counts every
            instruction as 3 bytes. IF/JMP do not carry their target in the
            instruction stream.
  resolved  Pass 1 sums true encoded lengths. IF/JMP carry the resolved label
            address as a trailing operand byte, and IF branches when equal.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Tuple

__all__ = [
    'REG', 'IMM', 'LABEL',
    'InstructionDef', 'INSTRUCTIONS', 'OPCODE_TO_MNEMONIC',
    'Profile', 'PROFILES', 'DEFAULT_PROFILE', 'get_profile',
    'instruction_length',
    'REG_COUNT', 'RAM_SIZE', 'MAX_PROGRAM_SIZE', 'MAX_LABELS',
    'MAX_LABEL_LENGTH', 'FIXED_INSTRUCTION_SIZE', 'REGISTER_PREFIXES',
]


# ──────────────────────────────────────────────
# Machine constants
# ──────────────────────────────────────────────

REG_COUNT = 20             # Registers R0..R19
RAM_SIZE = 256             # Bytes of RAM, program image loaded at offset 0
MAX_PROGRAM_SIZE = 256     # Largest image that fits in default RAM
MAX_LABELS = 50            # Label table capacity per assembly run
MAX_LABEL_LENGTH = 20      # Longest accepted label name
FIXED_INSTRUCTION_SIZE = 3 # Pass-1 size of every instruction (classic)

REGISTER_PREFIXES = ('R', 'r')


# ──────────────────────────────────────────────
# Operand kinds
# ──────────────────────────────────────────────

REG = 'REG'      # Register index, e.g. R3
IMM = 'IMM'      # 8-bit immediate, e.g. 42
LABEL = 'LABEL'  # Branch target name


# ──────────────────────────────────────────────
# Instruction table
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class InstructionDef:
    """One mnemonic: its opcode and the operand kinds written in source."""
    mnemonic: str
    opcode: int
    operands: Tuple[str, ...]

    @property
    def arity(self) -> int:
        return len(self.operands)

    @property
    def is_branch(self) -> bool:
        return LABEL in self.operands


INSTRUCTIONS: Dict[str, InstructionDef] = {}

def _ins(mnemonic: str, opcode: int, *operands: str):
    """Register an instruction definition."""
    INSTRUCTIONS[mnemonic] = InstructionDef(mnemonic, opcode, tuple(operands))

_ins('EXIT',  0x00)
_ins('STORE', 0x01, REG, IMM)
_ins('LOAD',  0x02, REG, IMM)
_ins('ADD',   0x03, REG, REG, IMM)
_ins('SUB',   0x04, REG, REG, IMM)
_ins('IF',    0x05, REG, IMM, LABEL)
_ins('JMP',   0x06, LABEL)
_ins('DPR',   0x07, REG)

OPCODE_TO_MNEMONIC: Dict[int, str] = {d.opcode: m for m, d in INSTRUCTIONS.items()}


# ──────────────────────────────────────────────
# ISA profiles
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Profile:
    name: str
    description: str
    fixed_label_sizing: bool   # pass 1 counts FIXED_INSTRUCTION_SIZE per line
    encode_branch_targets: bool  # IF/JMP emit the label address as a byte


PROFILES: Dict[str, Profile] = {
    'classic': Profile(
        name='classic',
        description='Original SOC8 encoding: fixed 3-byte label sizing, '
                    'branch targets not encoded',
        fixed_label_sizing=True,
        encode_branch_targets=False,
    ),
    'resolved': Profile(
        name='resolved',
        description='True instruction lengths, IF/JMP carry their target address',
        fixed_label_sizing=False,
        encode_branch_targets=True,
    ),
}

DEFAULT_PROFILE = 'classic'


def get_profile(profile) -> Profile:
    """Accept a Profile or a profile name."""
    if isinstance(profile, Profile):
        return profile
    try:
        return PROFILES[profile]
    except KeyError:
        raise ValueError(
            f"Unknown ISA profile '{profile}' "
            f"(choose from {', '.join(PROFILES)})") from None


def instruction_length(mnemonic: str, profile=DEFAULT_PROFILE) -> int:
    """Encoded byte length of an instruction under a profile.

    Labels are one byte when the profile encodes branch targets, and are
    absent from the stream otherwise.
    """
    definition = INSTRUCTIONS[mnemonic]
    prof = get_profile(profile)
    length = 1
    for kind in definition.operands:
        if kind == LABEL and not prof.encode_branch_targets:
            continue
        length += 1
    return length
