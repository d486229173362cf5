"""Events published by the engine on its ordered stream."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from live_spectrogram.compositor import PixelImage
from live_spectrogram.errors import SpectrogramError


@dataclass(frozen=True)
class NewAudioData:
    samples: np.ndarray


@dataclass(frozen=True)
class NewSpectralVector:
    index: int
    vector: np.ndarray


@dataclass(frozen=True)
class NewImage:
    image: PixelImage


@dataclass(frozen=True)
class ErrorEvent:
    error: SpectrogramError


__all__ = ["NewAudioData", "NewSpectralVector", "NewImage", "ErrorEvent"]
