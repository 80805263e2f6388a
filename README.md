# nesppu

The NES picture processing unit (PPU) and the console's 2 KiB work RAM, as
plain Python objects that plug into a larger emulator. It has no
dependencies outside the standard library.

## Installation

```
pip install .
```

For the test suite:

```
pip install .[test]
pytest
```

## Modules

- `nesppu.mirroring.Mirroring`: an `IntEnum` of the nametable mirroring
  modes `HORIZONTAL`, `VERTICAL`, `ONE_SCREEN_LOW` and `ONE_SCREEN_HIGH`.
- `nesppu.ram.Ram`: the CPU work RAM. It answers addresses `0x0000`–`0x1FFF`,
  and the 0x800 bytes repeat across that range.
  `read(addr, allow_side_effects=True)` returns the byte, or `None` when the
  address is outside that range. `write(addr, value)` returns whether it
  accepted the address. `reset()` sets every byte to zero.
- `nesppu.registers` has bit-field views of the registers. `PpuCtrl`,
  `PpuMask` and `PpuStatus` are 8-bit. `VramAddress` is the 16-bit v/t
  address, with the fields `coarse_x_scroll`, `coarse_y_scroll`,
  `nametable_select` and `fine_y_scroll`. Each register keeps its raw value
  in `reg`, and you read or assign named fields on it. `OamEntry` is a
  dataclass for one sprite: `y`, `tile_index`, `flags`, `x`, plus the
  bit fields `attribute`, `priority`, `flip_horizontally` and
  `flip_vertically`. Build one with `OamEntry.from_bytes`, which raises
  `ValueError` unless it gets exactly four bytes. `to_bytes()` and
  `bytes(entry)` give the four bytes back. The module also has the address
  helpers `get_nametable_addr`, `get_pattern_table_addr`,
  `get_attribute_table_addr`, `get_attribute_addr`, `get_attribute`,
  `get_tile_addr`, `get_pattern_lo_addr`, `get_pattern_hi_addr` and
  `get_palette_addr`, and `reverse_bits`, which reverses the bit order of a
  byte.
- `nesppu.vram.Vram`: 2 KiB of nametable RAM and 32 bytes of palette RAM.
  `read(addr, mirroring, allow_side_effects=True)` and
  `write(addr, value, mirroring)` decode `0x2000`–`0x3EFF` into nametable
  RAM by the given `Mirroring`. With `mirroring=None` (no cartridge) they
  use horizontal mirroring and log a warning. Addresses from `0x3F00` up go
  to palette RAM, and the palette RAM starts filled with `0x0F`. Any other
  address gives `None` from `read` and `False` from `write`.
- `nesppu.ppu.Ppu`: the PPU itself, advanced one dot per `clock()`.
  A scanline is 341 dots and a frame is 262 scanlines.

## The Ppu

```python
Ppu(bus, oam_dma, screen_buffer)
```

- `bus` is the PPU address bus. It needs `read(addr, allow_side_effects=True)`
  and `write(addr, value)`. It must pass nametable and palette addresses on
  to `ppu.ppu_read` / `ppu.ppu_write`, and serve pattern data itself.
- `oam_dma` needs `copy(page)`. The PPU calls it when the CPU writes `0x4014`.
- `screen_buffer` is a `bytearray` of 256 × 240 bytes. The PPU fills it with
  `0x0F` at construction and on `reset()`. When rendering is on, each
  visible dot writes a palette index into it.
- `set_cart(cart)` inserts a cartridge; pass `None` to remove it. The PPU
  reads `cart.mapper.mirroring` and, while rendering, calls
  `cart.mapper.on_scanline()` at dot 260 of each visible scanline.
- `cpu_read(addr, allow_side_effects=True)` and `cpu_write(addr, value)`
  serve `0x2000`–`0x3FFF`, where the eight registers repeat every 8 bytes,
  and `0x4014` for OAM DMA. Any other address gives `None` from `cpu_read`
  and `False` from `cpu_write`. The PPU ignores writes to PPUCTRL and
  PPUMASK until the pre-render scanline of its first frame.
- `nmi` becomes `True` when vblank starts with NMI enabled. It also becomes
  `True` when NMI is enabled during vblank. Clearing it is up to the caller.
- `oam(index)` returns a copy of one primary OAM entry as an `OamEntry`.
  The raw memory is in `oam_bytes`.
- `reset()` returns the PPU to power-up state. It keeps the cartridge and
  the debug switches but clears the traces.
- `debug` is a `PpuDebug`. Its switches are `enable_bg`, `enable_fg` and
  `enable_greyscale`. `sprite_zero_hit_dot` and `sprite_zero_hit_scanline`
  record where the last sprite-zero hit happened. `centre_scroll_x` and
  `centre_scroll_y` hold the scroll position sampled mid-frame.
  `trace_at(index)` returns the `PixelTraceSlots` of one pixel: two
  `PixelTrace` records that alternate between frames. Each record describes
  the background tile and any sprite that made the pixel.

## Example

```python
from nesppu.mirroring import Mirroring
from nesppu.ppu import Ppu
from nesppu.ram import Ram

ram = Ram()
ram.write(0x0801, 0x42)
assert ram.read(0x0001) == 0x42   # the 0x800 bytes repeat
assert ram.read(0x2000) is None   # not a RAM address


class Bus:
    def __init__(self):
        self.chr = bytearray(0x2000)
        self.ppu = None

    def read(self, addr, allow_side_effects=True):
        addr &= 0x3FFF
        if addr < 0x2000:
            return self.chr[addr]
        return self.ppu.ppu_read(addr, allow_side_effects)

    def write(self, addr, value):
        addr &= 0x3FFF
        if addr < 0x2000:
            self.chr[addr] = value
        else:
            self.ppu.ppu_write(addr, value)


class OamDma:
    def copy(self, page):
        pass


class Mapper:
    mirroring = Mirroring.VERTICAL

    def on_scanline(self):
        pass


class Cart:
    mapper = Mapper()


bus = Bus()
screen = bytearray(256 * 240)
ppu = Ppu(bus, OamDma(), screen)
bus.ppu = ppu
ppu.set_cart(Cart())

for _ in range(341 * 262):
    ppu.clock()
```

When a frame ends, `screen` holds NES palette indices (0–63). Map them to
colours with a palette of your choice.

## What it does not do

This package covers only the PPU, its video memory and the work RAM. It has
no CPU, no audio, no cartridge loading or mappers, no bus wiring, no OAM DMA
engine, and no window or display. You provide the bus, DMA unit and
cartridge objects described above, and you turn the screen buffer into an
image yourself.