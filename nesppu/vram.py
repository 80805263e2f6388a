"""Nametable and palette memory owned by the PPU."""

from __future__ import annotations

import logging

from .mirroring import Mirroring

logger = logging.getLogger(__name__)


class Vram:
    """The PPU's 2 KiB of nametable RAM and 32 bytes of palette RAM.

    Decodes $2000-$3EFF into nametable RAM according to the cartridge's
    mirroring and $3F00-$FFFF into palette RAM. Lower addresses are left
    to whatever else sits on the PPU bus.
    """

    NAMETABLE_SIZE = 0x800
    PALETTE_SIZE = 0x20
    PALETTE_RESET_VALUE = 0x0F

    _NAMETABLE_START = 0x2000
    _NAMETABLE_END = 0x3EFF
    _PALETTE_START = 0x3F00

    def __init__(self) -> None:
        self.nametable = bytearray(self.NAMETABLE_SIZE)
        self.palette = bytearray([self.PALETTE_RESET_VALUE] * self.PALETTE_SIZE)

    def reset(self) -> None:
        """Clear nametable RAM and fill palette RAM with its power-up value."""
        self.nametable[:] = bytes(self.NAMETABLE_SIZE)
        self.palette[:] = bytes([self.PALETTE_RESET_VALUE] * self.PALETTE_SIZE)

    def read(
        self,
        addr: int,
        mirroring: Mirroring | None,
        allow_side_effects: bool = True,
    ) -> int | None:
        """Return the byte at ``addr``, or ``None`` if the address is not decoded.

        ``mirroring`` is the cartridge's arrangement; ``None`` means no
        cartridge is inserted, in which case horizontal mirroring is used.
        """
        addr &= 0xFFFF
        if self._NAMETABLE_START <= addr <= self._NAMETABLE_END:
            if mirroring is None:
                if allow_side_effects:
                    logger.warning("PPU read nametable without cart")
                mirroring = Mirroring.HORIZONTAL
            return self.nametable[self._nametable_index(addr, mirroring)]
        if addr >= self._PALETTE_START:
            index = addr & 0x1F
            if index % 4 == 0:
                index = 0
            return self.palette[index]
        return None

    def write(self, addr: int, value: int, mirroring: Mirroring | None) -> bool:
        """Store ``value`` at ``addr``; return whether the address was decoded."""
        addr &= 0xFFFF
        value &= 0xFF
        if self._NAMETABLE_START <= addr <= self._NAMETABLE_END:
            if mirroring is None:
                logger.warning("PPU write nametable without cart")
                mirroring = Mirroring.HORIZONTAL
            self.nametable[self._nametable_index(addr, mirroring)] = value
            return True
        if addr >= self._PALETTE_START:
            index = addr & 0x1F
            if index % 4 == 0 and index >= 0x10:
                index &= 0xF
            self.palette[index] = value
            return True
        return False

    @staticmethod
    def _nametable_index(addr: int, mirroring: Mirroring | int) -> int:
        if mirroring == Mirroring.HORIZONTAL:
            return (addr & 0x3FF) | (0x400 if addr & 0x800 else 0)
        if mirroring == Mirroring.VERTICAL:
            return addr & 0x7FF
        if mirroring == Mirroring.ONE_SCREEN_LOW:
            return addr & 0x3FF
        if mirroring == Mirroring.ONE_SCREEN_HIGH:
            return (addr & 0x3FF) | 0x400
        logger.warning("Mirroring %d not implemented", int(mirroring))
        return addr & 0x7FF