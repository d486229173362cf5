"""Matplotlib window that displays the engine's composed images."""

from __future__ import annotations

import logging
from typing import Optional

import matplotlib.pyplot as plt
import numpy as np

from live_spectrogram.audio_sources import CaptureSession
from live_spectrogram.compositor import PixelImage
from live_spectrogram.config import Mode
from live_spectrogram.engine import StreamCoordinator
from live_spectrogram.events import ErrorEvent, NewImage

logger = logging.getLogger(__name__)


def image_to_rgb(image: PixelImage) -> np.ndarray:
    """Convert a :class:`PixelImage` into an array ``imshow`` understands."""
    if image.layout == "ARGB8888":
        return image.data[..., 1:]
    if image.layout == "RGBFFF":
        return np.clip(image.data, 0.0, 1.0)
    return np.repeat(image.data, 3, axis=-1)


class SpectrogramViewer:
    """Interactive viewer driven by the engine's event stream."""

    def __init__(
        self,
        engine: StreamCoordinator,
        session: Optional[CaptureSession] = None,
        interval_ms: int = 30,
    ) -> None:
        self.engine = engine
        self.session = session
        self.interval_ms = interval_ms
        self.paused = False
        self.last_error: Optional[str] = None

        self.fig, self.ax = plt.subplots(figsize=(12, 7))
        self.fig.canvas.manager.set_window_title("Spectrogram")
        self.im = self.ax.imshow(
            image_to_rgb(engine.latest_image),
            aspect="auto",
            interpolation="nearest",
        )
        self.ax.set_xticks([])
        self.ax.set_yticks([])
        self._set_title()
        self.fig.canvas.mpl_connect("key_press_event", self.on_key)

    def _set_title(self) -> None:
        cfg = self.engine.config
        parts = [
            f"mode={cfg.mode.value}",
            f"gain={cfg.gain:.3f}",
            "dark" if cfg.dark_mode else "light",
            f"nyquist={self.engine.nyquist_frequency:.0f} Hz",
        ]
        if self.paused:
            parts.append("PAUSED")
        if self.last_error:
            parts.append(f"error: {self.last_error}")
        self.ax.set_title("  |  ".join(parts))
        self.fig.set_facecolor("black" if cfg.dark_mode else "white")

    def on_key(self, event) -> None:
        cfg = self.engine.config
        if event.key in ("q", "escape"):
            plt.close(self.fig)
            return
        if event.key == "p":
            self.paused = not self.paused
        elif event.key == "d":
            self.engine.update_config(dark_mode=not cfg.dark_mode)
            self.engine.compose()
        elif event.key == "m":
            mode = Mode.LINEAR if cfg.mode is Mode.MEL else Mode.MEL
            self.engine.update_config(mode=mode)
        elif event.key == "[":
            self.engine.update_config(gain=max(0.001, cfg.gain * 0.85))
        elif event.key == "]":
            self.engine.update_config(gain=min(10.0, cfg.gain / 0.85))
        elif event.key == "r":
            self.engine.reset()
        self._set_titles_and_draw()

    def _set_titles_and_draw(self) -> None:
        self._set_title()
        self.fig.canvas.draw_idle()

    def _on_timer(self, _=None) -> None:
        image = None
        for event in self.engine.drain_events():
            if isinstance(event, NewImage):
                image = event.image
            elif isinstance(event, ErrorEvent):
                self.last_error = type(event.error).__name__
                self._set_title()
        if self.paused or image is None:
            return
        self.im.set_data(image_to_rgb(image))
        self.im.set_extent((-0.5, image.width - 0.5, image.height - 0.5, -0.5))
        self.fig.canvas.draw_idle()

    def run(self) -> None:
        if self.session is not None:
            self.session.start()
        try:
            timer = self.fig.canvas.new_timer(interval=self.interval_ms)
            timer.add_callback(self._on_timer, None)
            timer.start()
            plt.show()
        finally:
            if self.session is not None:
                self.session.stop()


__all__ = ["SpectrogramViewer", "image_to_rgb"]
