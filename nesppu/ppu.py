"""The picture processing unit: registers, sprite evaluation and pixel output."""

from __future__ import annotations

from dataclasses import dataclass, field

from .mirroring import Mirroring
from .registers import (
    OamEntry,
    PpuCtrl,
    PpuMask,
    PpuStatus,
    VramAddress,
    get_attribute,
    get_attribute_addr,
    get_palette_addr,
    get_pattern_hi_addr,
    get_pattern_lo_addr,
    get_tile_addr,
    reverse_bits,
)
from .vram import Vram


@dataclass
class SpriteOutput:
    """A sprite selected for the current scanline, ready to be shifted out."""

    x: int = 0xFF
    pattern_lo: int = 0xFF
    pattern_hi: int = 0xFF
    attribute: int = 0xFF
    priority: int = 0xFF


@dataclass
class PixelTrace:
    """What produced one pixel: the background tile and any sprite over it."""

    bg_tile_index: int = 0
    bg_pattern_table: int = 0
    bg_attribute: int = 0
    bg_pattern: int = 0
    bg_hidden: bool = False
    fg_exists: bool = False
    fg_sprite_index: int = 0
    fg_x: int = 0
    fg_y: int = 0
    fg_tile_index: int = 0
    fg_pattern_table: int = 0
    fg_attribute: int = 0
    fg_pattern: int = 0
    fg_flip_horizontally: bool = False
    fg_flip_vertically: bool = False
    fg_priority: bool = False
    fg_is_8x16: bool = False


@dataclass
class PixelTraceSlots:
    """Two alternating traces per pixel, so the previous frame is kept."""

    slots: list = field(default_factory=lambda: [PixelTrace(), PixelTrace()])
    slot: int = 0


@dataclass
class _DebugSprite:
    oam: OamEntry = field(default_factory=OamEntry)
    sprite_index: int = 0
    pattern_table: int = 0
    is_8x16: bool = False


@dataclass
class _TraceInfo:
    tile_index: int = 0
    pattern_table: int = 0
    attribute: int = 0
    sprite_output: list = field(default_factory=lambda: [_DebugSprite() for _ in range(8)])
    secondary_oam_indices: list = field(default_factory=lambda: [0] * 8)


@dataclass
class PpuDebug:
    """Debugging aids and display toggles that survive a reset."""

    pixel_trace: list = field(default_factory=list)
    trace_info: _TraceInfo = field(default_factory=_TraceInfo)
    sprite_zero_hit_dot: int | None = None
    sprite_zero_hit_scanline: int | None = None
    centre_scroll_x: int = 0
    centre_scroll_y: int = 0
    enable_bg: bool = True
    enable_fg: bool = True
    enable_greyscale: bool = False

    def trace_at(self, index: int) -> PixelTraceSlots:
        """Return the trace slots of a pixel, creating them on first use."""
        entry = self.pixel_trace[index]
        if entry is None:
            entry = self.pixel_trace[index] = PixelTraceSlots()
        return entry


class Ppu:
    """The PPU, driven one dot at a time by ``clock``.

    ``bus`` is the PPU address bus: ``read(addr, allow_side_effects=True)``
    and ``write(addr, value)``; its owner routes $2000-$3FFF to ``ppu_read``
    and ``ppu_write``. ``oam_dma`` has ``copy(page)``. A cartridge exposes
    ``mapper.mirroring`` and ``mapper.on_scanline()``.
    """

    SCREEN_WIDTH = 256
    SCREEN_HEIGHT = 240
    SCREEN_ASPECT = SCREEN_WIDTH / SCREEN_HEIGHT
    SCANLINES = 262
    DOTS_PER_SCANLINE = 341
    FRAME_RATE = 60

    def __init__(self, bus, oam_dma, screen_buffer) -> None:
        self._bus = bus
        self._oam_dma = oam_dma
        self._cart = None
        self.screen_buffer = screen_buffer
        self.debug = PpuDebug(pixel_trace=[None] * (self.SCREEN_WIDTH * self.SCREEN_HEIGHT))
        self._init_state()

    def _init_state(self) -> None:
        self.ppuctrl = PpuCtrl()
        self.ppumask = PpuMask()
        self.ppustatus = PpuStatus()
        self.v_vram_addr = VramAddress()
        self.t_vram_addr = VramAddress()
        self.x_scroll = 0
        self.nmi = False
        self.write_toggle = False
        self.ppudata_read_buffer = 0
        self.nametable_read = 0
        self.attribute_read = 0
        self.attribute_lo_latch = 0
        self.attribute_hi_latch = 0
        self.attribute_lo_read_shift_reg = 0
        self.attribute_hi_read_shift_reg = 0
        self.pattern_lo_read = 0
        self.pattern_hi_read = 0
        self.pattern_lo_read_shift_reg = 0
        self.pattern_hi_read_shift_reg = 0
        self.oam_addr = 0
        self.dot = 0
        self.scanline = 0
        self.is_first_frame = True
        self.vram = Vram()
        self.oam_bytes = bytearray(256)
        self.secondary_oam_bytes = bytearray(32)
        self.secondary_oam_count = 0
        self.sprite_output = [SpriteOutput() for _ in range(8)]
        self.sprite_zero_found = False
        self.sprite_zero_found_next = False
        self.screen_buffer[: self.SCREEN_WIDTH * self.SCREEN_HEIGHT] = bytes(
            [0x0F] * (self.SCREEN_WIDTH * self.SCREEN_HEIGHT)
        )

    def reset(self) -> None:
        """Return to power-up state, keeping the cartridge and debug toggles."""
        self._init_state()
        self.debug.pixel_trace = [None] * len(self.debug.pixel_trace)
        self.debug.trace_info = _TraceInfo()

    def set_cart(self, cart) -> None:
        """Insert (or with ``None`` remove) a cartridge."""
        self._cart = cart

    @property
    def cart(self):
        return self._cart

    def _mirroring(self) -> Mirroring | None:
        return None if self._cart is None else self._cart.mapper.mirroring

    def oam(self, index: int) -> OamEntry:
        """Return a copy of sprite ``index`` from primary OAM."""
        return OamEntry.from_bytes(self.oam_bytes[index * 4 : index * 4 + 4])

    def _increment_v(self) -> None:
        self.v_vram_addr.reg += 32 if self.ppuctrl.vram_addr_increment else 1

    def cpu_read(self, addr: int, allow_side_effects: bool = True) -> int | None:
        """Read a CPU-visible register, or ``None`` if ``addr`` is not one."""
        if 0x2000 <= addr <= 0x3FFF:
            addr &= 0x2007
        if addr == 0x2002:
            value = self.ppustatus.reg
            if allow_side_effects:
                self.ppustatus.vblank = 0
                self.write_toggle = False
            return value
        if addr == 0x2004:
            if 1 <= self.dot <= 64 and self.scanline < self.SCREEN_HEIGHT:
                return 0xFF
            return self.oam_bytes[self.oam_addr]
        if addr == 0x2007:
            value = self.ppudata_read_buffer
            if allow_side_effects:
                self.ppudata_read_buffer = self._bus.read(self.v_vram_addr.reg)
                self._increment_v()
            return value
        return None

    def cpu_write(self, addr: int, value: int) -> bool:
        """Write a CPU-visible register; return whether ``addr`` is one."""
        value &= 0xFF
        if 0x2000 <= addr <= 0x3FFF:
            addr &= 0x2007
        if addr == 0x2000:
            if not self.is_first_frame:
                was_enabled = self.ppuctrl.vblank_nmi_enable
                self.ppuctrl.reg = value
                self.t_vram_addr.nametable_select = value & 0b11
                if self.ppustatus.vblank and not was_enabled and self.ppuctrl.vblank_nmi_enable:
                    self.nmi = True
            return True
        if addr == 0x2001:
            if not self.is_first_frame:
                self.ppumask.reg = value
            return True
        if addr == 0x2003:
            self.oam_addr = value
            return True
        if addr == 0x2004:
            self.oam_bytes[self.oam_addr] = value
            self.oam_addr = (self.oam_addr + 1) & 0xFF
            return True
        if addr == 0x2005:
            if not self.write_toggle:
                self.t_vram_addr.coarse_x_scroll = value >> 3
                self.x_scroll = value & 0b111
            else:
                self.t_vram_addr.coarse_y_scroll = value >> 3
                self.t_vram_addr.fine_y_scroll = value & 0b111
            self.write_toggle = not self.write_toggle
            return True
        if addr == 0x2006:
            t = self.t_vram_addr
            if not self.write_toggle:
                t.reg = (t.reg & 0x00FF) | ((value & 0x3F) << 8)
            else:
                t.reg = (t.reg & 0xFF00) | value
                self.v_vram_addr.reg = t.reg
            self.write_toggle = not self.write_toggle
            return True
        if addr == 0x2007:
            self._bus.write(self.v_vram_addr.reg, value)
            self._increment_v()
            return True
        if addr == 0x4014:
            self._oam_dma.copy(value)
            return True
        return False

    def ppu_read(self, addr: int, allow_side_effects: bool = True) -> int | None:
        """Read nametable or palette memory from the PPU bus."""
        return self.vram.read(addr, self._mirroring(), allow_side_effects)

    def ppu_write(self, addr: int, value: int) -> bool:
        """Write nametable or palette memory from the PPU bus."""
        return self.vram.write(addr, value, self._mirroring())

    def _evaluate_sprites(self) -> None:
        scanline = self.scanline
        self.secondary_oam_count = 0
        self.sprite_zero_found = self.sprite_zero_found_next
        self.sprite_zero_found_next = False
        sprite_size = 16 if self.ppuctrl.sprite_size else 8
        trace_info = self.debug.trace_info
        oam = self.oam_bytes
        secondary = self.secondary_oam_bytes
        n = 0
        while n < 64:
            oam_y = oam[n * 4]
            secondary[self.secondary_oam_count * 4] = oam_y
            if oam_y < 239 and oam_y <= scanline < oam_y + sprite_size:
                base = self.secondary_oam_count * 4
                secondary[base : base + 4] = oam[n * 4 : n * 4 + 4]
                trace_info.secondary_oam_indices[self.secondary_oam_count] = n
                self.secondary_oam_count += 1
                if n == 0:
                    self.sprite_zero_found_next = True
                if self.secondary_oam_count >= 8:
                    m = 0
                    while n < 64:
                        oam_y = oam[n * 4 + m]
                        if oam_y <= scanline < oam_y + sprite_size:
                            self.ppustatus.sprite_overflow = 1
                            n += 1
                        else:
                            m = (m + 1) % 4
                        n += 1
                    break
            n += 1

        tile_mask = 0xFE if sprite_size == 16 else 0xFF
        self.sprite_output = [SpriteOutput() for _ in range(8)]
        for i in range(self.secondary_oam_count):
            entry = OamEntry.from_bytes(secondary[i * 4 : i * 4 + 4])
            output = self.sprite_output[i]
            output.attribute = entry.attribute
            output.priority = entry.priority
            output.x = entry.x
            fine_y = scanline - entry.y
            if entry.flip_vertically:
                fine_y = sprite_size - fine_y - 1
            if sprite_size == 16:
                pattern_table = entry.tile_index & 1
            else:
                pattern_table = self.ppuctrl.sprite8x8_table_addr
            if fine_y < 8:
                tile = entry.tile_index & tile_mask
            else:
                tile = ((entry.tile_index & 0xFE) + 1) & 0xFF
                fine_y -= 8
            output.pattern_lo = self._bus.read(get_pattern_lo_addr(pattern_table, tile, fine_y))
            output.pattern_hi = self._bus.read(get_pattern_hi_addr(pattern_table, tile, fine_y))
            if entry.flip_horizontally:
                output.pattern_lo = reverse_bits(output.pattern_lo)
                output.pattern_hi = reverse_bits(output.pattern_hi)
            debug_sprite = trace_info.sprite_output[i]
            debug_sprite.oam = OamEntry(entry.y, entry.tile_index, entry.flags, entry.x)
            if sprite_size == 16:
                debug_sprite.oam.tile_index &= 0xFE
            debug_sprite.pattern_table = pattern_table
            debug_sprite.is_8x16 = sprite_size == 16
            debug_sprite.sprite_index = trace_info.secondary_oam_indices[i]

    def _output_pixel(self, bg_pattern: int, bg_attribute: int, bg_hidden: bool) -> None:
        dot, scanline = self.dot, self.scanline
        mask = self.ppumask
        debug = self.debug
        fg_pattern = fg_attribute = 0
        back_priority = False
        found_sprite = -1
        sprite_zero_opaque = False
        for i in range(self.secondary_oam_count):
            sprite = self.sprite_output[i]
            if sprite.x <= dot - 1 < sprite.x + 8:
                pattern = ((sprite.pattern_hi >> 7) << 1) | (sprite.pattern_lo >> 7)
                if (
                    found_sprite == -1
                    and mask.enable_sprite
                    and not (mask.show_sprite_left8 == 0 and dot <= 8)
                ):
                    if self.sprite_zero_found and i == 0:
                        sprite_zero_opaque = pattern != 0
                    if pattern != 0:
                        found_sprite = i
                        back_priority = bool(sprite.priority)
                        fg_attribute = sprite.attribute
                        fg_pattern = pattern
                sprite.pattern_hi = (sprite.pattern_hi << 1) & 0xFF
                sprite.pattern_lo = (sprite.pattern_lo << 1) & 0xFF

        if (
            self.ppustatus.sprite_zero_hit == 0
            and sprite_zero_opaque
            and bg_pattern != 0
            and dot - 1 < 255
        ):
            self.ppustatus.sprite_zero_hit = 1
            debug.sprite_zero_hit_dot = dot - 1
            debug.sprite_zero_hit_scanline = scanline

        is_fg = (
            found_sprite != -1
            and ((fg_pattern != 0 and not back_priority) or bg_pattern == 0)
            and debug.enable_fg
        )
        final_pattern = fg_pattern if is_fg else bg_pattern
        final_attribute = fg_attribute if is_fg else bg_attribute
        colour_index = self._bus.read(get_palette_addr(is_fg, final_attribute, final_pattern))
        if not is_fg and not debug.enable_bg:
            colour_index = self._bus.read(get_palette_addr(0, 0, 0), False)
        if mask.greyscale or debug.enable_greyscale:
            colour_index &= 0x30
        index = scanline * self.SCREEN_WIDTH + dot - 1
        self.screen_buffer[index] = colour_index

        trace = debug.trace_at(index)
        trace.slot = 2 if trace.slot == 1 else 1
        slot = trace.slots[trace.slot - 1]
        info = debug.trace_info
        slot.bg_tile_index = info.tile_index & 0xFF
        slot.bg_pattern_table = info.pattern_table & 1
        slot.bg_attribute = info.attribute & 0b11
        slot.bg_pattern = bg_pattern
        slot.bg_hidden = bg_hidden
        slot.fg_exists = found_sprite != -1
        if slot.fg_exists:
            sprite = info.sprite_output[found_sprite]
            slot.fg_sprite_index = sprite.sprite_index
            slot.fg_x = sprite.oam.x
            slot.fg_y = sprite.oam.y
            slot.fg_tile_index = sprite.oam.tile_index
            slot.fg_pattern_table = sprite.pattern_table
            slot.fg_attribute = sprite.oam.attribute
            slot.fg_pattern = fg_pattern
            slot.fg_flip_horizontally = bool(sprite.oam.flip_horizontally)
            slot.fg_flip_vertically = bool(sprite.oam.flip_vertically)
            slot.fg_priority = back_priority
            slot.fg_is_8x16 = sprite.is_8x16

    def _fetch(self) -> None:
        v = self.v_vram_addr
        phase = self.dot % 8
        if phase == 2:
            self.nametable_read = self._bus.read(
                get_tile_addr(v.nametable_select, v.coarse_x_scroll, v.coarse_y_scroll)
            )
        elif phase == 4:
            self.attribute_read = self._bus.read(
                get_attribute_addr(v.nametable_select, v.coarse_x_scroll, v.coarse_y_scroll)
            )
        elif phase == 6:
            table = self.ppuctrl.bg_pattern_table_addr
            self.pattern_lo_read = reverse_bits(
                self._bus.read(get_pattern_lo_addr(table, self.nametable_read, v.fine_y_scroll))
            )
        elif phase == 0:
            table = self.ppuctrl.bg_pattern_table_addr
            self.pattern_hi_read = reverse_bits(
                self._bus.read(get_pattern_hi_addr(table, self.nametable_read, v.fine_y_scroll))
            )
            self.pattern_lo_read_shift_reg &= 0xFF | (self.pattern_lo_read << 8)
            self.pattern_hi_read_shift_reg &= 0xFF | (self.pattern_hi_read << 8)
            attribute = get_attribute(self.attribute_read, v.coarse_x_scroll, v.coarse_y_scroll)
            self.attribute_lo_latch = attribute & 1
            self.attribute_hi_latch = (attribute >> 1) & 1
            info = self.debug.trace_info
            info.tile_index = ((info.tile_index >> 8) | (self.nametable_read << 8)) & 0xFFFF
            info.pattern_table = table
            info.attribute = attribute

    def clock(self) -> None:
        """Advance the PPU by one dot."""
        dot, scanline = self.dot, self.scanline
        prerender = self.SCANLINES - 1
        visible = scanline < self.SCREEN_HEIGHT
        mask = self.ppumask
        v, t = self.v_vram_addr, self.t_vram_addr
        rendering_enabled = bool(mask.enable_bg or mask.enable_sprite) and (
            visible or scanline == prerender
        )

        if dot % 2 == 0 and 1 <= dot <= 64 and visible:
            self.secondary_oam_bytes[dot // 2 - 1] = 0xFF

        if dot == 257 and (visible or scanline == prerender):
            self._evaluate_sprites()

        if dot == 256 and rendering_enabled:
            v.fine_y_scroll += 1
            if v.fine_y_scroll == 0:
                v.coarse_y_scroll += 1
                if v.coarse_y_scroll == 30:
                    v.nametable_select ^= 0b10
                    v.coarse_y_scroll = 0

        if dot == 257 and rendering_enabled:
            v.coarse_x_scroll = t.coarse_x_scroll
            v.nametable_select = (v.nametable_select & 0b10) | (t.nametable_select & 0b01)

        if 280 <= dot <= 304 and rendering_enabled and scanline == prerender:
            v.coarse_y_scroll = t.coarse_y_scroll
            v.nametable_select = (v.nametable_select & 0b01) | (t.nametable_select & 0b10)
            v.fine_y_scroll = t.fine_y_scroll

        if dot == 260 and visible and rendering_enabled and self._cart is not None:
            self._cart.mapper.on_scanline()

        if (1 <= dot <= 256 or 321 <= dot <= 336) and rendering_enabled:
            bg_pattern = bg_attribute = 0
            bg_hidden = not mask.enable_bg or (mask.show_bg_left8 == 0 and dot <= 8)
            if not bg_hidden:
                fx = self.x_scroll
                bg_pattern = ((self.pattern_lo_read_shift_reg >> fx) & 1) | (
                    ((self.pattern_hi_read_shift_reg >> fx) & 1) << 1
                )
                bg_attribute = ((self.attribute_lo_read_shift_reg >> fx) & 1) | (
                    ((self.attribute_hi_read_shift_reg >> fx) & 1) << 1
                )
            self.pattern_lo_read_shift_reg = (self.pattern_lo_read_shift_reg >> 1) | 0x8000
            self.pattern_hi_read_shift_reg = (self.pattern_hi_read_shift_reg >> 1) | 0x8000
            self.attribute_lo_read_shift_reg = (
                (self.attribute_lo_read_shift_reg >> 1) | (self.attribute_lo_latch * 0x80)
            ) & 0xFF
            self.attribute_hi_read_shift_reg = (
                (self.attribute_hi_read_shift_reg >> 1) | (self.attribute_hi_latch * 0x80)
            ) & 0xFF

            if 1 <= dot <= 256 and visible:
                self._output_pixel(bg_pattern, bg_attribute, bg_hidden)
            self._fetch()

        if (8 <= dot <= 256 or dot >= 328) and dot % 8 == 0 and rendering_enabled:
            v.coarse_x_scroll += 1
            if v.coarse_x_scroll == 0:
                v.nametable_select ^= 0b01

        if self.is_first_frame and dot == 0 and scanline == prerender:
            self.is_first_frame = False

        if dot == 1 and scanline == 241:
            self.ppustatus.vblank = 1
            if self.ppuctrl.vblank_nmi_enable:
                self.nmi = True

        if dot == 1 and scanline == prerender:
            self.ppustatus.vblank = 0
            self.ppustatus.sprite_zero_hit = 0
            self.ppustatus.sprite_overflow = 0

        if dot == 128 and scanline == 120:
            self.debug.centre_scroll_x = (
                (256 if t.nametable_select & 1 else 0) + t.coarse_x_scroll * 8 + self.x_scroll
            )
            self.debug.centre_scroll_y = (
                (256 if t.nametable_select & 2 else 0) + t.coarse_y_scroll * 8 + t.fine_y_scroll
            )

        self.dot += 1
        if self.dot >= self.DOTS_PER_SCANLINE:
            self.dot = 0
            self.scanline += 1
            if self.scanline >= self.SCANLINES:
                self.scanline = 0