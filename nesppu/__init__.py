"""NES picture processing unit, its video memory, and the CPU work RAM."""

__version__ = "0.1.0"
__all__ = ["mirroring", "ram", "registers", "vram", "ppu"]