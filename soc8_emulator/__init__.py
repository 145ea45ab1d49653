# SOC8 Emulator: fetch/decode/execute interpreter for SOC8 program images
#
# Layout:
#   cpu/regs.py     register file
#   cpu/decoder.py  opcode decoding + disassembly
#   mem/memory.py   fixed-size RAM
#   emu.py          SOC8Emulator state machine and opcode handlers

from .emu import SOC8Emulator, CpuState, StopReason, Fault, FaultKind
from .cpu.decoder import disassemble

__all__ = ['SOC8Emulator', 'CpuState', 'StopReason', 'Fault', 'FaultKind', 'disassemble']
