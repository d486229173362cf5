"""Assemble the rolling history into a display-ready pixel buffer."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from live_spectrogram.colormap import Palette

logger = logging.getLogger(__name__)

_LAYOUTS = {
    # layout: (channels, bits per component)
    "ARGB8888": (4, 8),
    "RGBFFF": (3, 32),
    "Gray8": (1, 8),
}


class Orientation(str, enum.Enum):
    """Which screen axis carries time."""

    VERTICAL = "vertical"
    HORIZONTAL = "horizontal"


@dataclass(frozen=True)
class PixelImage:
    """Interleaved pixel buffer handed to a platform image wrapper."""

    width: int
    height: int
    layout: str
    data: np.ndarray

    @property
    def channels(self) -> int:
        return _LAYOUTS[self.layout][0]

    @property
    def bits_per_component(self) -> int:
        return _LAYOUTS[self.layout][1]

    @property
    def bytes_per_row(self) -> int:
        return self.width * self.channels * self.bits_per_component // 8

    @property
    def is_placeholder(self) -> bool:
        return self.width == 1 and self.height == 1 and self.layout == "Gray8"

    def tobytes(self) -> bytes:
        return np.ascontiguousarray(self.data).tobytes()


def placeholder_image() -> PixelImage:
    """A 1x1 black grayscale image meaning "nothing to show yet"."""
    return PixelImage(width=1, height=1, layout="Gray8", data=np.zeros((1, 1, 1), dtype=np.uint8))


class ImageCompositor:
    """Normalize, color and orient a spectrogram snapshot.

    ``variant="table8"`` quantizes to 8 bits and runs the 256-entry
    per-channel tables, producing ARGB8888. ``variant="lut3"`` interpolates
    the 32-entry table and produces three float32 planes (RGBFFF). Both map
    ``value_range`` (default ``(0, 1)``, where gained magnitudes live) onto
    the full palette.
    """

    def __init__(
        self,
        buffer_count: int,
        frame_size: int,
        variant: str = "lut3",
        value_range: Optional[Tuple[float, float]] = None,
    ) -> None:
        if variant not in ("table8", "lut3"):
            raise ValueError(f"unknown compositor variant {variant!r}")
        self.buffer_count = int(buffer_count)
        self.frame_size = int(frame_size)
        self.variant = variant
        lo, hi = (0.0, 1.0) if value_range is None else map(float, value_range)
        self.min_floats = np.array([255.0, lo, lo, lo], dtype=np.float32)
        self.max_floats = np.array([255.0, hi, hi, hi], dtype=np.float32)

    def _planar(self, snapshot) -> np.ndarray:
        values = np.asarray(snapshot, dtype=np.float32)
        expected = self.buffer_count * self.frame_size
        if values.size != expected:
            raise ValueError(f"snapshot has {values.size} values, expected {expected}")
        return values.reshape(self.buffer_count, self.frame_size)

    def _normalized(self, planar: np.ndarray) -> np.ndarray:
        lo, hi = float(self.min_floats[1]), float(self.max_floats[1])
        span = hi - lo if hi > lo else 1.0
        return np.clip((np.nan_to_num(planar) - lo) / span, 0.0, 1.0)

    def _argb8888(self, planar: np.ndarray, palette: Palette) -> np.ndarray:
        levels = np.rint(self._normalized(planar) * 255.0).astype(np.uint8)
        out = np.empty(planar.shape + (4,), dtype=np.uint8)
        out[..., 0] = np.uint8(self.max_floats[0])
        out[..., 1:] = palette.lookup(levels)
        return out

    def _rgbfff(self, planar: np.ndarray, palette: Palette) -> np.ndarray:
        return palette.interpolate(self._normalized(planar))

    def compose(
        self,
        snapshot,
        palette: Palette,
        orientation: Orientation = Orientation.HORIZONTAL,
    ) -> PixelImage:
        try:
            planar = self._planar(snapshot)
            if self.variant == "table8":
                pixels, layout = self._argb8888(planar, palette), "ARGB8888"
            else:
                pixels, layout = self._rgbfff(planar, palette), "RGBFFF"
            if Orientation(orientation) is Orientation.HORIZONTAL:
                pixels = np.ascontiguousarray(np.rot90(pixels, k=1, axes=(0, 1)))
            height, width = pixels.shape[:2]
            return PixelImage(width=int(width), height=int(height), layout=layout, data=pixels)
        except Exception as exc:  # noqa: BLE001 - composition must never reach the producer
            logger.debug("Falling back to placeholder image: %s", exc)
            return placeholder_image()


__all__ = [
    "Orientation",
    "PixelImage",
    "placeholder_image",
    "ImageCompositor",
]
