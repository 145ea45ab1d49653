"""
SOC8 Emulator — Fixed-size RAM

Memory map:
  $00..size-1  Flat RAM. The program image is loaded at offset 0 and the
               program counter fetches from here.

The backing bytearray is allocated once. Out-of-range accesses raise
MemoryBoundsError rather than wrapping; the emulator turns that into a
program-counter fault.
"""

import logging
from typing import List

from soc8_asm.isa import RAM_SIZE

logger = logging.getLogger(__name__)


class MemoryBoundsError(IndexError):
    """Raised on a read or write outside RAM."""
    def __init__(self, addr: int, size: int):
        self.addr = addr
        self.size = size
        super().__init__(f"Address {addr} outside RAM (size {size})")


class Memory:
    """Byte-addressable RAM of a fixed size."""

    def __init__(self, size: int = RAM_SIZE):
        if size <= 0:
            raise ValueError(f"RAM size must be positive, got {size}")
        self._mem = bytearray(size)

    @property
    def size(self) -> int:
        return len(self._mem)

    def contains(self, addr: int) -> bool:
        return 0 <= addr < len(self._mem)

    # --- Core read/write ---

    def read8(self, addr: int) -> int:
        if not self.contains(addr):
            raise MemoryBoundsError(addr, len(self._mem))
        return self._mem[addr]

    def write8(self, addr: int, value: int):
        if not self.contains(addr):
            raise MemoryBoundsError(addr, len(self._mem))
        self._mem[addr] = value & 0xFF

    def clear(self):
        for i in range(len(self._mem)):
            self._mem[i] = 0

    # --- Loading ---

    def load_binary(self, data: bytes) -> int:
        """Clear RAM and copy data in at offset 0.

        Bytes beyond the end of RAM are dropped with a warning. Returns the
        number of bytes loaded.
        """
        self.clear()
        data = bytes(data)
        if len(data) > len(self._mem):
            logger.warning("Program exceeds RAM size: %d bytes, %d dropped",
                           len(data), len(data) - len(self._mem))
            data = data[:len(self._mem)]
        self._mem[:len(data)] = data
        return len(data)

    # --- Inspection ---

    def dump(self, start: int = 0, end: int = None) -> bytes:
        """Copy of RAM[start:end]."""
        return bytes(self._mem[start:end])

    def hexdump(self, width: int = 16) -> List[str]:
        lines = []
        for offset in range(0, len(self._mem), width):
            row = self._mem[offset:offset + width]
            lines.append(f"${offset:02X}: " + ' '.join(f'{b:02X}' for b in row))
        return lines
