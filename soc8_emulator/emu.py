"""
SOC8 Emulator — Main Emulator Class

Integrates:
  - CPU registers (cpu/regs.py)
  - RAM (mem/memory.py)
  - Opcode decoder (cpu/decoder.py)

Execution model:
  1. Fetch opcode at PC
  2. Decode operand bytes for the active ISA profile
  3. Execute instruction handler -> update registers, set next PC
  4. Check PC against RAM bounds

States:
  IDLE     no program loaded yet
  RUNNING  program loaded, stepping
  HALTED   EXIT executed (terminal)
  FAULTED  unknown opcode, invalid register index, or PC out of bounds
           (terminal)

Faults never raise out of step()/run(): the emulator records a Fault and
returns StopReason.FAULT. Register and RAM writes made before the fault are
kept.
"""

import enum
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from soc8_asm.isa import DEFAULT_PROFILE, REG_COUNT, RAM_SIZE, get_profile
from .cpu.regs import Registers
from .cpu.decoder import DecodedInstruction, IllegalOpcode, decode_instruction
from .mem.memory import Memory, MemoryBoundsError

logger = logging.getLogger(__name__)


class CpuState(enum.Enum):
    IDLE = 'IDLE'
    RUNNING = 'RUNNING'
    HALTED = 'HALTED'
    FAULTED = 'FAULTED'


class StopReason(enum.Enum):
    HALT = 'HALT'
    FAULT = 'FAULT'


class FaultKind(enum.Enum):
    INVALID_REGISTER = 'invalid register'
    UNKNOWN_INSTRUCTION = 'unknown instruction'
    PC_OUT_OF_BOUNDS = 'program counter out of bounds'


@dataclass(frozen=True)
class Fault:
    kind: FaultKind
    message: str
    pc: int  # address of the instruction that faulted


class _HaltException(Exception):
    pass


class _FaultException(Exception):
    def __init__(self, kind: FaultKind, message: str):
        self.kind = kind
        self.message = message
        super().__init__(message)


class SOC8Emulator:
    """SOC8 virtual machine.

    Usage:
        emu = SOC8Emulator()
        emu.load_program(binary)
        reason = emu.run()
        print(emu.regs.read(0), emu.state, emu.fault)
    """

    def __init__(self, profile=DEFAULT_PROFILE, reg_count: int = REG_COUNT,
                 ram_size: int = RAM_SIZE, stdout=None):
        self.profile = get_profile(profile)
        self.regs = Registers(reg_count)
        self.mem = Memory(ram_size)
        self.state = CpuState.IDLE
        self.fault: Optional[Fault] = None

        # DPR observations: (register index, value)
        self.diagnostics: List[Tuple[int, int]] = []
        self.stdout = stdout

        self._trace = False
        self.trace_output: List[str] = []

        self._dispatch = self._build_dispatch()

    # ══════════════════════════════════════════════
    # Loading
    # ══════════════════════════════════════════════

    def reset(self):
        """Zero registers and RAM, forget diagnostics and faults."""
        self.regs.reset()
        self.mem.clear()
        self.state = CpuState.IDLE
        self.fault = None
        self.diagnostics = []
        self.trace_output = []

    def load_program(self, data: bytes) -> int:
        """Reset, load the image at offset 0 and enter RUNNING.

        Images larger than RAM are truncated with a warning. Returns the
        number of bytes loaded.
        """
        self.reset()
        loaded = self.mem.load_binary(data)
        self.regs.PC = 0
        self.state = CpuState.RUNNING
        logger.debug("Loaded %d byte(s), profile %s", loaded, self.profile.name)
        return loaded

    def load_file(self, path) -> int:
        return self.load_program(Path(path).read_bytes())

    def enable_trace(self, enabled: bool = True):
        self._trace = enabled

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    @property
    def stop_reason(self) -> Optional[StopReason]:
        if self.state == CpuState.HALTED:
            return StopReason.HALT
        if self.state == CpuState.FAULTED:
            return StopReason.FAULT
        return None

    def step(self) -> Optional[StopReason]:
        """Execute one instruction. Returns StopReason if stopped, else None."""
        if self.state == CpuState.IDLE:
            raise RuntimeError("No program loaded")
        if self.state != CpuState.RUNNING:
            return self.stop_reason

        pc = self.regs.PC
        try:
            insn = decode_instruction(self.mem, pc, self.profile)
        except IllegalOpcode as e:
            return self._enter_fault(FaultKind.UNKNOWN_INSTRUCTION, str(e), pc)
        except MemoryBoundsError as e:
            return self._enter_fault(
                FaultKind.PC_OUT_OF_BOUNDS,
                f"Instruction at ${pc:02X} runs past end of RAM ({e})", pc)

        if self._trace:
            self.trace_output.append(f"${pc:02X}: {insn.format():<16} {self.regs.display()}")

        try:
            self._dispatch[insn.mnemonic](insn)
        except _HaltException:
            self.regs.steps += 1
            self.state = CpuState.HALTED
            logger.info("Program exited.")
            return StopReason.HALT
        except _FaultException as e:
            return self._enter_fault(e.kind, e.message, pc)
        except MemoryBoundsError as e:
            return self._enter_fault(FaultKind.PC_OUT_OF_BOUNDS, str(e), pc)

        self.regs.steps += 1

        if not self.mem.contains(self.regs.PC):
            return self._enter_fault(
                FaultKind.PC_OUT_OF_BOUNDS,
                f"Program counter out of bounds: {self.regs.PC}", pc)
        return None

    def run(self) -> StopReason:
        """Run until the program halts or faults."""
        while True:
            reason = self.step()
            if reason is not None:
                return reason

    def _enter_fault(self, kind: FaultKind, message: str, pc: int) -> StopReason:
        self.fault = Fault(kind, message, pc)
        self.state = CpuState.FAULTED
        logger.error("Fault at $%02X: %s", pc, message)
        if self._trace:
            self.trace_output.append(f"  FAULT: {message}")
        return StopReason.FAULT

    # ══════════════════════════════════════════════
    # Helpers
    # ══════════════════════════════════════════════

    def _check_register(self, *indices: int):
        for index in indices:
            if not self.regs.valid(index):
                raise _FaultException(
                    FaultKind.INVALID_REGISTER,
                    f"Invalid register index {index} (have {self.regs.count})")

    def _emit(self, line: str):
        print(line, file=self.stdout if self.stdout is not None else sys.stdout)

    def display(self) -> str:
        """All registers, one per line."""
        return '\n'.join(f"R{i}: {v}" for i, v in enumerate(self.regs.snapshot()))

    # ══════════════════════════════════════════════
    # Instruction handlers
    # ══════════════════════════════════════════════
    # Handler signature: handler(insn). Each handler sets the next PC.

    def _build_dispatch(self) -> dict:
        return {
            'EXIT':  self._op_exit,
            'STORE': self._op_store,
            'LOAD':  self._op_load,
            'ADD':   self._op_add,
            'SUB':   self._op_sub,
            'IF':    self._op_if,
            'JMP':   self._op_jmp,
            'DPR':   self._op_dpr,
        }

    def _op_exit(self, insn: DecodedInstruction):
        raise _HaltException()

    def _op_store(self, insn: DecodedInstruction):
        index, value = insn.operands
        self._check_register(index)
        self.regs.write(index, value)
        self.regs.PC = insn.address + 3

    # LOAD is encoded separately from STORE but has the same effect
    _op_load = _op_store

    def _op_add(self, insn: DecodedInstruction):
        dest, src, imm = insn.operands
        self._check_register(dest, src)
        self.regs.write(dest, self.regs.read(dest) + self.regs.read(src) + imm)
        self.regs.PC = insn.address + 4

    def _op_sub(self, insn: DecodedInstruction):
        dest, src, imm = insn.operands
        self._check_register(dest, src)
        self.regs.write(dest, self.regs.read(dest) - self.regs.read(src) - imm)
        self.regs.PC = insn.address + 4

    def _op_if(self, insn: DecodedInstruction):
        index, imm = insn.operands[:2]
        equal = self.regs.valid(index) and self.regs.read(index) == imm
        if self.profile.encode_branch_targets:
            target = insn.operands[2]
            self.regs.PC = target if equal else insn.address + 4
        else:
            # Target not carried in the stream: falls through either way
            self.regs.PC = insn.address + 3

    def _op_jmp(self, insn: DecodedInstruction):
        if insn.operands:
            target = insn.operands[0]
        else:
            target = self.mem.read8(insn.address + 1)
        self.regs.PC = target

    def _op_dpr(self, insn: DecodedInstruction):
        (index,) = insn.operands
        if self.regs.valid(index):
            value = self.regs.read(index)
            self.diagnostics.append((index, value))
            self._emit(f"Register R{index}: {value}")
        else:
            logger.error("Invalid register index %d", index)
        self.regs.PC = insn.address + 2
