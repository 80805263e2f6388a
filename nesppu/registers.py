"""PPU register layouts, OAM entries and address helpers."""

from __future__ import annotations

from dataclasses import dataclass


class _BitField:
    """A run of bits inside an integer attribute of the owning object."""

    def __init__(self, shift: int, width: int, target: str = "reg") -> None:
        self.shift = shift
        self.mask = (1 << width) - 1
        self.target = target

    def __set_name__(self, owner, name: str) -> None:
        self.name = name

    def __get__(self, obj, objtype=None):
        if obj is None:
            return self
        return (getattr(obj, self.target) >> self.shift) & self.mask

    def __set__(self, obj, value: int) -> None:
        current = getattr(obj, self.target)
        current &= ~(self.mask << self.shift)
        current |= (int(value) & self.mask) << self.shift
        setattr(obj, self.target, current)


class _Register:
    """A fixed-width register whose bits are exposed as named fields."""

    BITS = 8
    __slots__ = ("_reg",)

    def __init__(self, reg: int = 0) -> None:
        self.reg = reg

    @property
    def reg(self) -> int:
        return self._reg

    @reg.setter
    def reg(self, value: int) -> None:
        self._reg = int(value) & ((1 << self.BITS) - 1)

    def __int__(self) -> int:
        return self._reg

    def __eq__(self, other) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._reg == other._reg

    __hash__ = None

    def __repr__(self) -> str:
        width = self.BITS // 4
        return f"{type(self).__name__}(0x{self._reg:0{width}X})"


class PpuCtrl(_Register):
    """PPUCTRL ($2000)."""

    __slots__ = ()
    base_nametable_addr = _BitField(0, 2)
    vram_addr_increment = _BitField(2, 1)
    sprite8x8_table_addr = _BitField(3, 1)
    bg_pattern_table_addr = _BitField(4, 1)
    sprite_size = _BitField(5, 1)
    ppu_master_slave_select = _BitField(6, 1)
    vblank_nmi_enable = _BitField(7, 1)


class PpuMask(_Register):
    """PPUMASK ($2001)."""

    __slots__ = ()
    greyscale = _BitField(0, 1)
    show_bg_left8 = _BitField(1, 1)
    show_sprite_left8 = _BitField(2, 1)
    enable_bg = _BitField(3, 1)
    enable_sprite = _BitField(4, 1)
    emphasise_red = _BitField(5, 1)
    emphasise_green = _BitField(6, 1)
    emphasise_blue = _BitField(7, 1)


class PpuStatus(_Register):
    """PPUSTATUS ($2002)."""

    __slots__ = ()
    unused = _BitField(0, 5)
    sprite_overflow = _BitField(5, 1)
    sprite_zero_hit = _BitField(6, 1)
    vblank = _BitField(7, 1)


class VramAddress(_Register):
    """The 15-bit internal VRAM address (the v and t registers)."""

    BITS = 16
    __slots__ = ()
    coarse_x_scroll = _BitField(0, 5)
    coarse_y_scroll = _BitField(5, 5)
    nametable_select = _BitField(10, 2)
    fine_y_scroll = _BitField(12, 3)
    unused = _BitField(15, 1)


@dataclass
class OamEntry:
    """One four-byte sprite entry in object attribute memory."""

    y: int = 0
    tile_index: int = 0
    flags: int = 0
    x: int = 0

    SIZE = 4

    attribute = _BitField(0, 2, "flags")
    unused = _BitField(2, 3, "flags")
    priority = _BitField(5, 1, "flags")
    flip_horizontally = _BitField(6, 1, "flags")
    flip_vertically = _BitField(7, 1, "flags")

    @classmethod
    def from_bytes(cls, data) -> OamEntry:
        """Build an entry from exactly four bytes: y, tile, flags, x."""
        raw = bytes(data)
        if len(raw) != cls.SIZE:
            raise ValueError(f"OAM entry needs {cls.SIZE} bytes, got {len(raw)}")
        y, tile_index, flags, x = raw
        return cls(y, tile_index, flags, x)

    def __bytes__(self) -> bytes:
        return bytes(v & 0xFF for v in (self.y, self.tile_index, self.flags, self.x))

    def to_bytes(self) -> bytes:
        """Return the entry in its four-byte memory layout."""
        return bytes(self)


def get_nametable_addr(nametable: int) -> int:
    """Base address of logical nametable 0-3."""
    return 0x2000 + (nametable & 0b11) * 0x400


def get_pattern_table_addr(pattern_table: int) -> int:
    """Base address of pattern table 0 or 1."""
    return (pattern_table & 0b1) * 0x1000


def get_attribute_table_addr(nametable: int) -> int:
    """Address of the attribute table of a nametable."""
    return get_nametable_addr(nametable) + 0x3C0


def get_attribute_addr(nametable: int, coarse_x: int, coarse_y: int) -> int:
    """Address of the attribute byte that covers a tile."""
    return (
        get_attribute_table_addr(nametable)
        + (((coarse_y & 0b11111) >> 2) & 0b111) * 8
        + (((coarse_x & 0b11111) >> 2) & 0b111)
    )


def get_attribute(attribute: int, coarse_x: int, coarse_y: int) -> int:
    """Pick the two palette bits for a tile out of its attribute byte."""
    attribute &= 0xFF
    attribute >>= 4 * (((coarse_y & 0b11111) >> 1) & 1)
    attribute >>= 2 * (((coarse_x & 0b11111) >> 1) & 1)
    return attribute & 0b11


def get_tile_addr(nametable: int, coarse_x: int, coarse_y: int) -> int:
    """Address of a tile's entry in a nametable."""
    return (
        get_nametable_addr(nametable)
        + ((coarse_y & 0b11111) << 5)
        + (coarse_x & 0b11111)
    )


def get_pattern_lo_addr(pattern_table: int, tile_index: int, fine_y: int) -> int:
    """Address of the low bit plane row of a tile."""
    return (
        get_pattern_table_addr(pattern_table)
        + ((tile_index & 0xFF) << 4)
        + (fine_y & 0b111)
    ) & 0xFFFF


def get_pattern_hi_addr(pattern_table: int, tile_index: int, fine_y: int) -> int:
    """Address of the high bit plane row of a tile."""
    return (get_pattern_lo_addr(pattern_table, tile_index, fine_y) + 8) & 0xFFFF


def get_palette_addr(is_fg: int, attribute: int, pattern: int) -> int:
    """Palette RAM address for a background or sprite pixel."""
    return (
        ((int(is_fg) & 0b1) << 4)
        + ((attribute & 0b11) << 2)
        + (pattern & 0b11)
        + 0x3F00
    )


def reverse_bits(value: int) -> int:
    """Mirror the order of the eight bits of a byte."""
    value &= 0xFF
    value = (value & 0xF0) >> 4 | (value & 0x0F) << 4
    value = (value & 0xCC) >> 2 | (value & 0x33) << 2
    return ((value & 0xAA) >> 1 | (value & 0x55) << 1) & 0xFF