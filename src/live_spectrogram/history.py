"""Fixed-capacity rolling buffer of spectral vectors."""

from __future__ import annotations

import numpy as np


class SpectrogramHistory:
    """Flat FIFO of ``buffer_count`` rows of ``frame_size`` magnitudes.

    Row 0 is the oldest frame and the last row the newest. The buffer starts
    zero-filled so its length is always ``buffer_count * frame_size``.
    """

    def __init__(self, buffer_count: int, frame_size: int) -> None:
        self.buffer_count = int(buffer_count)
        self.frame_size = int(frame_size)
        self.capacity = self.buffer_count * self.frame_size
        self.reset()

    def reset(self) -> None:
        self.values = np.zeros(self.capacity, dtype=np.float32)
        self.appended = 0

    def __len__(self) -> int:
        return int(self.values.size)

    def _fit(self, vector: np.ndarray) -> np.ndarray:
        if vector.size == self.frame_size:
            return vector.astype(np.float32, copy=False)
        if 0 < vector.size < self.frame_size:
            # Mel vectors are stretched across the full row width.
            src = np.linspace(0.0, 1.0, vector.size)
            dst = np.linspace(0.0, 1.0, self.frame_size)
            return np.interp(dst, src, vector).astype(np.float32)
        raise ValueError(
            f"vector of length {vector.size} does not fit rows of {self.frame_size}"
        )

    def append(self, vector) -> None:
        row = self._fit(np.asarray(vector, dtype=np.float32).ravel())
        if self.values.size > self.capacity - self.frame_size:
            self.values = self.values[self.frame_size :]
        self.values = np.concatenate([self.values, row])
        self.appended += 1

    def snapshot(self) -> np.ndarray:
        snap = self.values.copy()
        snap.flags.writeable = False
        return snap

    def rows(self) -> np.ndarray:
        return self.snapshot().reshape(self.buffer_count, self.frame_size)

    def latest(self) -> np.ndarray:
        return self.values[-self.frame_size :].copy()


__all__ = ["SpectrogramHistory"]
