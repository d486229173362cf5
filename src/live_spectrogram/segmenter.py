"""Accumulate raw sample chunks into overlapping analysis frames."""

from __future__ import annotations

import logging
from typing import Iterator

import numpy as np

logger = logging.getLogger(__name__)


class FrameSegmenter:
    """Overlap-preserving backlog of int16 samples.

    Chunks of any size are appended with :meth:`ingest`; :meth:`drain` then
    yields ``frame_size`` frames, advancing by ``hop_size`` after each one so
    consecutive frames share ``frame_size - hop_size`` samples.
    """

    def __init__(
        self,
        frame_size: int,
        hop_size: int,
        max_backlog: int | None = None,
        policy: str = "drop_newest",
    ) -> None:
        self.frame_size = int(frame_size)
        self.hop_size = int(hop_size)
        self.max_backlog = int(max_backlog) if max_backlog else 2 * self.frame_size
        self.policy = policy
        self.reset()

    def reset(self) -> None:
        self.backlog = np.zeros(0, dtype=np.int16)
        self.received = 0
        self.dropped = 0
        self.consumed = 0

    @property
    def pending(self) -> int:
        return int(self.backlog.size)

    def ingest(self, chunk) -> int:
        """Append ``chunk`` to the backlog and return how many samples entered it.

        Once the backlog holds ``max_backlog`` samples the policy applies:
        ``drop_newest`` rejects the chunk, ``drop_oldest`` keeps it and
        trims the front back down to ``max_backlog``. Either way
        ``consumed + pending + dropped == received``.
        """
        samples = np.asarray(chunk, dtype=np.int16).ravel()
        if samples.size == 0:
            return 0
        self.received += samples.size

        if self.backlog.size >= self.max_backlog:
            if self.policy == "drop_newest":
                self.dropped += samples.size
                logger.debug(
                    "Backlog full (%d samples); dropped %d incoming",
                    self.backlog.size,
                    samples.size,
                )
                return 0
            joined = np.concatenate([self.backlog, samples])
            excess = joined.size - self.max_backlog
            self.backlog = joined[excess:]
            self.dropped += excess
            logger.debug("Backlog full; discarded %d oldest samples", excess)
            return int(min(samples.size, self.max_backlog))

        self.backlog = (
            samples.copy()
            if self.backlog.size == 0
            else np.concatenate([self.backlog, samples])
        )
        return int(samples.size)

    def drain(self) -> Iterator[np.ndarray]:
        while self.backlog.size >= self.frame_size:
            frame = self.backlog[: self.frame_size].copy()
            frame.flags.writeable = False
            self.backlog = self.backlog[self.hop_size :]
            self.consumed += self.hop_size
            yield frame


__all__ = ["FrameSegmenter"]
