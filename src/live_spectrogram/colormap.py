"""Blue -> red -> green color lookup tables for magnitude images."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from matplotlib.colors import hsv_to_rgb

logger = logging.getLogger(__name__)

TABLE_LEVELS = 256
LUT_ENTRIES = 32
BASE_HUE = 0.6666


def brg_values(normalized: np.ndarray, dark_mode: bool = True) -> np.ndarray:
    """Return float RGB triples for ``normalized`` values in ``[0, 1]``.

    Hue runs from blue at 0 towards red, brightness is ``sqrt(value)``, and
    the red and green channels are exchanged so the visible ramp is dark
    blue at 0, red at 0.5 and full-brightness green at 1. In a light palette
    pure black is replaced by white.
    """
    v = np.clip(np.asarray(normalized, dtype=np.float64), 0.0, 1.0)
    hsv = np.stack([BASE_HUE - BASE_HUE * v, np.ones_like(v), np.sqrt(v)], axis=-1)
    rgb = hsv_to_rgb(hsv)
    brg = rgb[..., [1, 0, 2]]
    if not dark_mode:
        black = np.all(brg == 0.0, axis=-1)
        brg[black] = 1.0
    return brg


@dataclass(frozen=True)
class Palette:
    """Immutable lookup tables for one display theme."""

    dark_mode: bool
    table: np.ndarray
    lut: np.ndarray

    @classmethod
    def build(cls, dark_mode: bool) -> "Palette":
        levels = np.arange(TABLE_LEVELS) / (TABLE_LEVELS - 1)
        table = (brg_values(levels, dark_mode) * 255).astype(np.uint8)
        entries = np.arange(LUT_ENTRIES) / (LUT_ENTRIES - 1)
        lut = brg_values(entries, dark_mode).astype(np.float32)
        table.flags.writeable = False
        lut.flags.writeable = False
        return cls(dark_mode=dark_mode, table=table, lut=lut)

    @property
    def name(self) -> str:
        return "dark" if self.dark_mode else "light"

    def lookup(self, levels: np.ndarray) -> np.ndarray:
        """Per-channel lookup of 8-bit quantized ``levels``."""
        return self.table[np.asarray(levels, dtype=np.uint8)]

    def interpolate(self, normalized: np.ndarray) -> np.ndarray:
        """Linearly interpolate the 32-entry table at ``normalized`` positions."""
        pos = np.clip(np.asarray(normalized, dtype=np.float32), 0.0, 1.0) * (LUT_ENTRIES - 1)
        lo = np.floor(pos).astype(np.intp)
        hi = np.minimum(lo + 1, LUT_ENTRIES - 1)
        frac = (pos - lo)[..., None]
        return (self.lut[lo] * (1.0 - frac) + self.lut[hi] * frac).astype(np.float32)


class ColorMapper:
    """Holds both palettes and maps magnitudes onto them."""

    def __init__(self, dark: Palette | None = None, light: Palette | None = None) -> None:
        self.dark = dark if dark is not None else Palette.build(True)
        self.light = light if light is not None else Palette.build(False)

    def palette(self, dark_mode: bool) -> Palette:
        return self.dark if dark_mode else self.light

    def apply(self, magnitude, dark_mode: bool = True, interpolate: bool = False):
        """Map a normalized magnitude (scalar or array) to RGB.

        Scalars return a tuple: ints 0-255 from the 256-level table, or
        floats from the interpolated table.
        """
        pal = self.palette(dark_mode)
        values = np.clip(np.asarray(magnitude, dtype=np.float32), 0.0, 1.0)
        if interpolate:
            rgb = pal.interpolate(values)
        else:
            rgb = pal.lookup(np.rint(values * (TABLE_LEVELS - 1)))
        if rgb.ndim == 1:
            caster = float if interpolate else int
            return tuple(caster(c) for c in rgb)
        return rgb


__all__ = [
    "TABLE_LEVELS",
    "LUT_ENTRIES",
    "brg_values",
    "Palette",
    "ColorMapper",
]
