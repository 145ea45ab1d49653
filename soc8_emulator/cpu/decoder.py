"""
SOC8 Emulator — Opcode Decoder

Maps an opcode byte at PC to its mnemonic and operand bytes, using the
shared instruction table in soc8_asm/isa.py so the emulator and the
assembler never disagree on encodings.

Operand bytes read per opcode depend on the ISA profile: under 'classic'
IF carries (reg, imm) and JMP carries nothing; under 'resolved' both also
carry a one-byte target address.
"""

from dataclasses import dataclass
from typing import List, Tuple

from soc8_asm.isa import (INSTRUCTIONS, OPCODE_TO_MNEMONIC, DEFAULT_PROFILE,
                          REG, LABEL, get_profile)
from ..mem.memory import Memory


class IllegalOpcode(Exception):
    """Raised when an undefined opcode is encountered."""
    def __init__(self, opcode: int, pc: int):
        self.opcode = opcode
        self.pc = pc
        super().__init__(f"Unknown instruction ${opcode:02X} at ${pc:02X}")


@dataclass(frozen=True)
class DecodedInstruction:
    address: int
    opcode: int
    mnemonic: str
    kinds: Tuple[str, ...]     # operand kinds actually present in the stream
    operands: Tuple[int, ...]  # raw operand bytes

    @property
    def length(self) -> int:
        return 1 + len(self.operands)

    def format(self) -> str:
        """Assembly-like rendering, e.g. 'ADD R0, R1, 10'."""
        parts = []
        for kind, value in zip(self.kinds, self.operands):
            if kind == REG:
                parts.append(f"R{value}")
            elif kind == LABEL:
                parts.append(f"${value:02X}")
            else:
                parts.append(str(value))
        if not parts:
            return self.mnemonic
        return f"{self.mnemonic} {', '.join(parts)}"


def operand_kinds(mnemonic: str, profile=DEFAULT_PROFILE) -> Tuple[str, ...]:
    """Operand kinds that occupy bytes after the opcode."""
    prof = get_profile(profile)
    kinds = INSTRUCTIONS[mnemonic].operands
    if not prof.encode_branch_targets:
        kinds = tuple(k for k in kinds if k != LABEL)
    return kinds


def decode_instruction(memory: Memory, pc: int, profile=DEFAULT_PROFILE) -> DecodedInstruction:
    """Fetch and decode the instruction at pc.

    Raises IllegalOpcode for unknown opcodes and MemoryBoundsError when the
    opcode or any operand byte lies outside RAM.
    """
    opcode = memory.read8(pc)
    mnemonic = OPCODE_TO_MNEMONIC.get(opcode)
    if mnemonic is None:
        raise IllegalOpcode(opcode, pc)
    kinds = operand_kinds(mnemonic, profile)
    operands = tuple(memory.read8(pc + 1 + i) for i in range(len(kinds)))
    return DecodedInstruction(pc, opcode, mnemonic, kinds, operands)


def disassemble(data: bytes, profile=DEFAULT_PROFILE) -> List[str]:
    """Linear disassembly of a raw image.

    Unknown opcodes and truncated trailing instructions are rendered as
    DB bytes and decoding resumes at the next byte.
    """
    data = bytes(data)
    if not data:
        return []
    mem = Memory(size=len(data))
    mem.load_binary(data)

    lines = []
    pc = 0
    while pc < len(data):
        try:
            insn = decode_instruction(mem, pc, profile)
        except (IllegalOpcode, IndexError):
            raw = f"{data[pc]:02X}"
            lines.append(f"${pc:02X}: {raw:<12}  DB ${data[pc]:02X}")
            pc += 1
            continue
        raw = ' '.join(f'{b:02X}' for b in data[pc:pc + insn.length])
        lines.append(f"${pc:02X}: {raw:<12}  {insn.format()}")
        pc += insn.length
    return lines
