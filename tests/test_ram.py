import pytest

from nesppu.ram import Ram


def test_new_ram_is_zeroed():
    ram = Ram()
    assert len(ram.data) == Ram.RAM_SIZE
    assert all(ram.read(addr) == 0 for addr in range(0, 0x2000, 0x37))


def test_write_then_read_back():
    ram = Ram()
    assert ram.write(0x0123, 0x5A) is True
    assert ram.read(0x0123, True) == 0x5A


@pytest.mark.parametrize("mirror", [0x0800, 0x1000, 0x1800])
def test_mirrors_every_2k(mirror):
    ram = Ram()
    ram.write(0x0042, 0x99)
    assert ram.read(0x0042 + mirror) == 0x99
    ram.write(0x0010 + mirror, 0x11)
    assert ram.read(0x0010) == 0x11


def test_addresses_outside_window_are_not_decoded():
    ram = Ram()
    assert ram.read(0x2000) is None
    assert ram.read(0xFFFF, False) is None
    assert ram.write(0x2000, 0x12) is False
    assert not any(ram.data)


def test_value_is_truncated_to_a_byte():
    ram = Ram()
    ram.write(0x0001, 0x1AB)
    assert ram.read(0x0001) == 0x1AB & 0xFF


def test_reset_clears_contents():
    ram = Ram()
    for addr in range(0, 0x800, 3):
        ram.write(addr, 0x77)
    ram.reset()
    assert not any(ram.data)
    assert len(ram.data) == Ram.RAM_SIZE