"""Turn time-domain frames into scaled spectral vectors."""

from __future__ import annotations

import logging

import numpy as np
from scipy import fft as sp_fft

from live_spectrogram.config import FrameGeometry, Mode, SpectrogramConfig
from live_spectrogram.errors import SpectrogramConfigError
from live_spectrogram.utils import amplitude_to_db, hann_window, power_to_db

logger = logging.getLogger(__name__)


def hz_to_mel(freq):
    return 2595.0 * np.log10(1.0 + np.asarray(freq, dtype=np.float64) / 700.0)


def mel_to_hz(mel):
    return 700.0 * (10.0 ** (np.asarray(mel, dtype=np.float64) / 2595.0) - 1.0)


def mel_filterbank(frame_size: int, mel_bin_count: int, sample_rate: int) -> np.ndarray:
    """Build a ``(mel_bin_count, frame_size)`` matrix of triangular filters.

    DCT bin ``k`` of an ``N``-point transform sits at ``k * sr / (2N)``, so
    the bins already span ``0..nyquist``. Filter centres are evenly spaced
    on the mel scale across the same range and each triangle peaks at 1.
    """
    nyquist = 0.5 * sample_rate
    bin_freqs = np.arange(frame_size, dtype=np.float64) * nyquist / frame_size
    edges = mel_to_hz(np.linspace(hz_to_mel(0.0), hz_to_mel(nyquist), mel_bin_count + 2))

    bank = np.zeros((mel_bin_count, frame_size), dtype=np.float32)
    for m in range(mel_bin_count):
        lo, centre, hi = edges[m], edges[m + 1], edges[m + 2]
        rising = (bin_freqs - lo) / max(centre - lo, 1e-9)
        falling = (hi - bin_freqs) / max(hi - centre, 1e-9)
        bank[m] = np.maximum(0.0, np.minimum(rising, falling))
        if not bank[m].any():
            # Narrow low-frequency filters can fall between bins.
            bank[m, int(np.argmin(np.abs(bin_freqs - centre)))] = 1.0
    return bank


class SpectralAnalyzer:
    """Window, transform and scale one analysis frame at a time.

    The window and mel filterbank depend only on the frame geometry and are
    computed once here; :meth:`analyze` is a pure function of its inputs.
    """

    def __init__(self, geometry: FrameGeometry) -> None:
        self.frame_size = int(geometry.frame_size)
        self.mel_bin_count = int(geometry.mel_bin_count)
        self.sample_rate = int(geometry.sample_rate)
        if self.frame_size < 2:
            raise SpectrogramConfigError(f"invalid transform size {self.frame_size}")

        self.win = hann_window(self.frame_size, sym=True)
        self.mel_bank = mel_filterbank(self.frame_size, self.mel_bin_count, self.sample_rate)
        logger.debug(
            "Analyzer ready: %d-point DCT-II, %d mel bins, %d Hz",
            self.frame_size,
            self.mel_bin_count,
            self.sample_rate,
        )

    def output_size(self, mode: Mode) -> int:
        return self.mel_bin_count if mode is Mode.MEL else self.frame_size

    def _dct_mag(self, frame: np.ndarray) -> np.ndarray:
        fw = frame.astype(np.float32) * self.win
        # scipy's unnormalized DCT-II carries a factor of 2.
        coeffs = 0.5 * sp_fft.dct(fw, type=2)
        return np.abs(coeffs).astype(np.float32)

    def analyze(self, frame, config: SpectrogramConfig) -> np.ndarray:
        frame = np.asarray(frame)
        if frame.size != self.frame_size:
            raise ValueError(f"expected {self.frame_size} samples, got {frame.size}")

        mag = self._dct_mag(frame.ravel())
        if config.mode is Mode.MEL:
            power = self.mel_bank @ (mag.astype(np.float64) ** 2)
            out = power_to_db(power, config.zero_reference)
        else:
            out = amplitude_to_db(mag, config.zero_reference)
        return (out * np.float32(config.gain)).astype(np.float32)


__all__ = ["SpectralAnalyzer", "mel_filterbank", "hz_to_mel", "mel_to_hz"]
