"""Numeric helpers shared by the spectral analysis stages."""

from __future__ import annotations

import numpy as np

EPS = 1e-12
DB_FLOOR = -120.0


def amplitude_to_db(x: np.ndarray, zero_reference: float) -> np.ndarray:
    """Convert linear amplitudes into decibels relative to ``zero_reference``.

    Values whose level falls under :data:`DB_FLOOR` are clamped so the
    result never contains ``-inf`` or ``NaN``.
    """
    ref = max(float(zero_reference), EPS)
    db = 20.0 * np.log10(np.maximum(x, EPS) / ref)
    return np.maximum(db, DB_FLOOR).astype(np.float32)


def power_to_db(x: np.ndarray, zero_reference: float) -> np.ndarray:
    """Convert power values into decibels relative to ``zero_reference``."""
    ref = max(float(zero_reference), EPS)
    db = 10.0 * np.log10(np.maximum(x, EPS) / ref)
    return np.maximum(db, DB_FLOOR).astype(np.float32)


def hann_window(n: int, sym: bool = True) -> np.ndarray:
    """Return a Hann window of length ``n`` as ``float32``.

    The symmetric form is zero at both endpoints; ``sym=False`` gives the
    periodic window used for spectral averaging.
    """
    if n == 1:
        return np.ones(1, dtype=np.float32)
    denom = n - 1 if sym else n
    return (0.5 - 0.5 * np.cos(2.0 * np.pi * np.arange(n) / denom)).astype(np.float32)


__all__ = ["EPS", "DB_FLOOR", "amplitude_to_db", "power_to_db", "hann_window"]
