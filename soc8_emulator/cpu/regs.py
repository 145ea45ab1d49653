"""
SOC8 Emulator — CPU Register File

Register model:
  R0..Rn-1 — 8-bit general registers (n = REG_COUNT, default 20)
  PC       — program counter, byte offset into RAM

The register array is allocated once and never resized. Every access by
index is validated against the register count by the caller via valid()
before read()/write(); write() masks values to 8 bits.
"""

from soc8_asm.isa import REG_COUNT


class Registers:
    """SOC8 CPU register set."""

    __slots__ = ('_r', 'PC', 'steps')

    def __init__(self, count: int = REG_COUNT):
        if count <= 0:
            raise ValueError(f"Register count must be positive, got {count}")
        self._r = bytearray(count)  # R0..R(count-1), zero at reset
        self.PC: int = 0            # Program counter
        self.steps: int = 0         # Instructions executed

    @property
    def count(self) -> int:
        return len(self._r)

    def valid(self, index: int) -> bool:
        return 0 <= index < len(self._r)

    def read(self, index: int) -> int:
        return self._r[index]

    def write(self, index: int, value: int):
        self._r[index] = value & 0xFF

    def reset(self):
        for i in range(len(self._r)):
            self._r[i] = 0
        self.PC = 0
        self.steps = 0

    def snapshot(self) -> tuple:
        """Register values as an immutable tuple (for comparisons)."""
        return tuple(self._r)

    def display(self) -> str:
        """Compact register dump: PC plus every non-zero register."""
        nonzero = ' '.join(f"R{i}={v}" for i, v in enumerate(self._r) if v)
        return f"PC=${self.PC:02X} {nonzero}".rstrip()

    def __repr__(self):
        return f"Registers({self.display()})"
