"""Single-writer coordinator tying the spectrogram stages together."""

from __future__ import annotations

import dataclasses
import logging
import queue
import threading
from collections import deque
from typing import Callable, List, Optional

import numpy as np

from live_spectrogram.analyzer import SpectralAnalyzer
from live_spectrogram.colormap import ColorMapper
from live_spectrogram.compositor import ImageCompositor, Orientation, PixelImage, placeholder_image
from live_spectrogram.config import FrameGeometry, SpectrogramConfig
from live_spectrogram.errors import SpectrogramError
from live_spectrogram.events import ErrorEvent, NewAudioData, NewImage, NewSpectralVector
from live_spectrogram.history import SpectrogramHistory
from live_spectrogram.segmenter import FrameSegmenter

logger = logging.getLogger(__name__)

Subscriber = Callable[[object], None]

DEFAULT_EVENT_CAPACITY = 1024


class EventQueue(queue.Queue):
    """FIFO of engine events that holds at most one pending image.

    Composed images are large and only the newest one is worth showing, so
    putting a :class:`NewImage` discards any image still waiting in the
    queue. Other events keep their relative order.
    """

    def _put(self, item) -> None:
        if isinstance(item, NewImage):
            self.queue = deque(e for e in self.queue if not isinstance(e, NewImage))
        self.queue.append(item)


class StreamCoordinator:
    """Serialize frame processing against concurrent chunk delivery.

    Audio chunks arrive on a capture thread while images are requested from
    a display thread. Every operation that touches the backlog or the
    history runs under one binary semaphore, so batches never interleave.

    Results are published in arrival order on :attr:`events`, a bounded
    queue that drops its oldest entry when full and keeps only the newest
    pending image. Subscribers registered with :meth:`subscribe` are called
    while the gate is held and must not call back into the coordinator.
    """

    def __init__(
        self,
        geometry: Optional[FrameGeometry] = None,
        config: Optional[SpectrogramConfig] = None,
        *,
        variant: str = "lut3",
        orientation: Orientation = Orientation.HORIZONTAL,
        mapper: Optional[ColorMapper] = None,
        compose_on_deliver: bool = True,
        event_capacity: int = DEFAULT_EVENT_CAPACITY,
    ) -> None:
        self.geometry = geometry if geometry is not None else FrameGeometry()
        self._config = config if config is not None else SpectrogramConfig()
        g = self.geometry

        self.segmenter = FrameSegmenter(
            g.frame_size, g.hop_size, max_backlog=g.max_backlog, policy=g.backpressure
        )
        self.analyzer = SpectralAnalyzer(g)
        self.history = SpectrogramHistory(g.buffer_count, g.frame_size)
        self.mapper = mapper if mapper is not None else ColorMapper()
        self.compositor = ImageCompositor(g.buffer_count, g.frame_size, variant=variant)
        self.orientation = Orientation(orientation)
        self.compose_on_deliver = compose_on_deliver

        self._gate = threading.Semaphore(1)
        self._running = threading.Event()
        self._running.set()
        self.events: EventQueue = EventQueue(maxsize=event_capacity)
        self.dropped_events = 0
        self._subscribers: List[Subscriber] = []

        self.latest_image: PixelImage = placeholder_image()
        self.frequencies: List[np.ndarray] = []
        self._audio_chunks: List[np.ndarray] = []

        logger.info(
            "Spectrogram engine ready: frame=%d hop=%d buffers=%d mode=%s",
            g.frame_size,
            g.hop_size,
            g.buffer_count,
            self._config.mode.value,
        )

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------
    @property
    def config(self) -> SpectrogramConfig:
        return self._config

    @config.setter
    def config(self, value: SpectrogramConfig) -> None:
        previous = self._config
        self._config = value
        if previous.dark_mode != value.dark_mode:
            logger.info("Switched to %s palette", self.mapper.palette(value.dark_mode).name)
        if previous != value:
            logger.info("Configuration updated: %s", value)

    def update_config(self, **changes) -> SpectrogramConfig:
        self.config = dataclasses.replace(self._config, **changes)
        return self._config

    @property
    def nyquist_frequency(self) -> float:
        return self.geometry.nyquist_frequency

    @property
    def running(self) -> bool:
        return self._running.is_set()

    # ------------------------------------------------------------------
    # Event stream
    # ------------------------------------------------------------------
    def subscribe(self, callback: Subscriber) -> None:
        self._subscribers.append(callback)

    def _emit(self, event: object) -> None:
        while True:
            try:
                self.events.put_nowait(event)
                break
            except queue.Full:
                try:
                    self.events.get_nowait()
                    self.dropped_events += 1
                except queue.Empty:
                    pass
        for callback in list(self._subscribers):
            callback(event)

    def drain_events(self) -> list:
        drained = []
        while True:
            try:
                drained.append(self.events.get_nowait())
            except queue.Empty:
                return drained

    def report_error(self, error: SpectrogramError) -> None:
        """Publish a collaborator failure without touching the pipeline."""
        logger.warning("Spectrogram error: %s: %s", type(error).__name__, error)
        with self._gate:
            self._emit(ErrorEvent(error))

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------
    def _process_locked(self, chunk) -> int:
        samples = np.asarray(chunk, dtype=np.int16).ravel()
        kept = self.segmenter.ingest(samples)
        if kept:
            accepted = samples[samples.size - kept :].copy()
            self._audio_chunks.append(accepted)
            self._emit(NewAudioData(accepted))

        count = 0
        for frame in self.segmenter.drain():
            config = self._config
            vector = self.analyzer.analyze(frame, config)
            self.history.append(vector)
            self.frequencies.append(vector)
            self._emit(NewSpectralVector(self.history.appended - 1, vector))
            count += 1
        if count:
            logger.debug("Processed %d frames (%d pending)", count, self.segmenter.pending)
        return count

    def _compose_locked(self) -> PixelImage:
        palette = self.mapper.palette(self._config.dark_mode)
        image = self.compositor.compose(self.history.snapshot(), palette, self.orientation)
        self.latest_image = image
        self._emit(NewImage(image))
        return image

    def deliver(self, chunk) -> int:
        """Feed one chunk of int16 samples; return the number of frames processed."""
        if not self._running.is_set():
            return 0
        with self._gate:
            if not self._running.is_set():
                return 0
            count = self._process_locked(chunk)
            if self.compose_on_deliver:
                self._compose_locked()
            return count

    def compose(self) -> PixelImage:
        with self._gate:
            return self._compose_locked()

    def replay(self, samples) -> int:
        """Process a recorded buffer to exhaustion in one pass."""
        data = np.asarray(samples, dtype=np.int16).ravel()
        self.update_config(requires_microphone=False)
        self.reset()
        self.start()
        logger.info("Replaying %d samples", data.size)
        with self._gate:
            count = self._process_locked(data)
            self._compose_locked()
        return count

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        if not self._running.is_set():
            logger.info("Spectrogram stream started")
        self._running.set()

    def stop(self) -> None:
        """Refuse new chunks now; let an in-flight batch finish, then clear buffers."""
        self._running.clear()
        with self._gate:
            self.segmenter.reset()
            self.history.reset()
        logger.info("Spectrogram stream stopped")

    def reset(self) -> None:
        with self._gate:
            self.segmenter.reset()
            self.history.reset()
            self.frequencies = []
            self._audio_chunks = []
            self.latest_image = placeholder_image()
        logger.info("Spectrogram state reset")

    # ------------------------------------------------------------------
    # Observables
    # ------------------------------------------------------------------
    @property
    def audio_data(self) -> np.ndarray:
        with self._gate:
            chunks = list(self._audio_chunks)
        if not chunks:
            return np.zeros(0, dtype=np.int16)
        return np.concatenate(chunks)

    def history_snapshot(self) -> np.ndarray:
        with self._gate:
            return self.history.snapshot()

    def backlog_size(self) -> int:
        with self._gate:
            return self.segmenter.pending


SpectrogramEngine = StreamCoordinator

__all__ = ["EventQueue", "StreamCoordinator", "SpectrogramEngine"]
