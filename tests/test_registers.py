import pytest

from nesppu.registers import (
    OamEntry,
    PpuCtrl,
    PpuMask,
    PpuStatus,
    VramAddress,
    get_attribute,
    get_attribute_addr,
    get_attribute_table_addr,
    get_nametable_addr,
    get_palette_addr,
    get_pattern_hi_addr,
    get_pattern_lo_addr,
    get_pattern_table_addr,
    get_tile_addr,
    reverse_bits,
)


def test_ctrl_fields_follow_reg():
    ctrl = PpuCtrl(0x80)
    assert ctrl.vblank_nmi_enable == 1
    assert ctrl.base_nametable_addr == 0
    ctrl.base_nametable_addr = 0b11
    assert ctrl.reg == 0x80 | 0b11
    ctrl.vblank_nmi_enable = 0
    assert ctrl.reg == 0b11


def test_register_is_masked_to_width():
    assert PpuCtrl(0x1FF).reg == 0xFF
    assert VramAddress(0x1FFFF).reg == 0xFFFF


def test_field_write_wraps_to_field_width():
    ctrl = PpuCtrl()
    ctrl.base_nametable_addr = 0b111
    assert ctrl.base_nametable_addr == 0b11
    assert ctrl.vram_addr_increment == 0


def test_mask_fields_independent():
    mask = PpuMask()
    mask.enable_bg = 1
    mask.enable_sprite = 1
    assert mask.enable_bg == 1 and mask.enable_sprite == 1
    assert mask.greyscale == 0
    mask.enable_bg = 0
    assert mask.enable_sprite == 1
    assert mask.enable_bg == 0


def test_status_vblank_is_top_bit():
    status = PpuStatus()
    status.vblank = 1
    assert status.reg == 0x80
    status.sprite_zero_hit = 1
    status.vblank = 0
    assert status.sprite_zero_hit == 1
    assert status.reg & 0x80 == 0


def test_vram_address_fields_round_trip_through_reg():
    addr = VramAddress()
    addr.coarse_x_scroll = 17
    addr.coarse_y_scroll = 29
    addr.nametable_select = 2
    addr.fine_y_scroll = 5
    copy = VramAddress(addr.reg)
    assert copy == addr
    assert copy.coarse_x_scroll == 17
    assert copy.coarse_y_scroll == 29
    assert copy.nametable_select == 2
    assert copy.fine_y_scroll == 5
    assert copy.unused == 0


def test_fine_y_increment_wraps():
    addr = VramAddress()
    addr.fine_y_scroll = 7
    addr.coarse_y_scroll = 3
    addr.fine_y_scroll += 1
    assert addr.fine_y_scroll == 0
    assert addr.coarse_y_scroll == 3


def test_oam_entry_bytes_round_trip():
    raw = bytes([0x10, 0x22, 0xE3, 0x40])
    entry = OamEntry.from_bytes(raw)
    assert entry.y == 0x10
    assert entry.tile_index == 0x22
    assert entry.x == 0x40
    assert entry.to_bytes() == raw
    assert bytes(entry) == raw


def test_oam_entry_flag_fields():
    entry = OamEntry()
    entry.attribute = 3
    entry.priority = 1
    entry.flip_vertically = 1
    assert entry.attribute == 3
    assert entry.priority == 1
    assert entry.flip_horizontally == 0
    assert entry.flip_vertically == 1
    assert OamEntry.from_bytes(entry.to_bytes()) == entry


def test_oam_entry_rejects_wrong_length():
    with pytest.raises(ValueError):
        OamEntry.from_bytes(b"\x00\x01\x02")


def test_nametable_addresses():
    assert get_nametable_addr(0) == 0x2000
    for n in range(3):
        assert get_nametable_addr(n + 1) - get_nametable_addr(n) == 0x400
    assert get_nametable_addr(4) == get_nametable_addr(0)


def test_attribute_table_follows_nametable():
    for n in range(4):
        assert get_attribute_table_addr(n) - get_nametable_addr(n) == 0x3C0


def test_pattern_table_addresses():
    assert get_pattern_table_addr(0) == 0
    assert get_pattern_table_addr(1) == 0x1000
    assert get_pattern_table_addr(2) == 0


def test_tile_addresses_stay_before_attribute_table():
    for n in range(4):
        first = get_tile_addr(n, 0, 0)
        last = get_tile_addr(n, 31, 29)
        assert first == get_nametable_addr(n)
        assert last < get_attribute_table_addr(n)


def test_attribute_addr_within_attribute_table():
    for n in range(4):
        base = get_attribute_table_addr(n)
        assert get_attribute_addr(n, 0, 0) == base
        assert base <= get_attribute_addr(n, 31, 29) < base + 64
        assert get_attribute_addr(n, 0, 0) == get_attribute_addr(n, 3, 3)


def test_attribute_quadrants():
    quadrants = [2, 0, 3, 1]
    attribute = quadrants[0] | quadrants[1] << 2 | quadrants[2] << 4 | quadrants[3] << 6
    assert get_attribute(attribute, 0, 0) == quadrants[0]
    assert get_attribute(attribute, 2, 0) == quadrants[1]
    assert get_attribute(attribute, 0, 2) == quadrants[2]
    assert get_attribute(attribute, 2, 2) == quadrants[3]


def test_pattern_hi_is_eight_bytes_after_lo():
    for table in (0, 1):
        for tile in (0, 0x7F, 0xFF):
            for fine_y in range(8):
                lo = get_pattern_lo_addr(table, tile, fine_y)
                assert get_pattern_hi_addr(table, tile, fine_y) == lo + 8
                assert lo >= get_pattern_table_addr(table)


def test_palette_addresses():
    assert get_palette_addr(0, 0, 0) == 0x3F00
    seen = {get_palette_addr(fg, a, p) for fg in (0, 1) for a in range(4) for p in range(4)}
    assert len(seen) == 32
    assert min(seen) == 0x3F00


@pytest.mark.parametrize("value", range(256))
def test_reverse_bits_is_an_involution(value):
    reversed_value = reverse_bits(value)
    assert 0 <= reversed_value <= 0xFF
    assert reverse_bits(reversed_value) == value
    assert bin(reversed_value).count("1") == bin(value).count("1")


def test_reverse_bits_moves_low_bit_to_top():
    assert reverse_bits(1) == 0x80
    assert reverse_bits(0xFF) == 0xFF