"""The console's 2 KiB of work RAM, mirrored across $0000-$1FFF."""

from __future__ import annotations


class Ram:
    """Internal CPU RAM."""

    RAM_SIZE = 0x800
    _WINDOW_END = 0x2000

    def __init__(self) -> None:
        self.data = bytearray(self.RAM_SIZE)

    def reset(self) -> None:
        """Clear every byte back to zero."""
        self.data[:] = bytes(self.RAM_SIZE)

    def read(self, addr: int, allow_side_effects: bool = True) -> int | None:
        """Return the byte at ``addr``, or ``None`` if RAM does not decode it."""
        if 0 <= addr < self._WINDOW_END:
            return self.data[addr & (self.RAM_SIZE - 1)]
        return None

    def write(self, addr: int, value: int) -> bool:
        """Store ``value`` at ``addr``; return whether RAM decoded the address."""
        if 0 <= addr < self._WINDOW_END:
            self.data[addr & (self.RAM_SIZE - 1)] = value & 0xFF
            return True
        return False