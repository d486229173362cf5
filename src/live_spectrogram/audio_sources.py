"""Audio capture collaborators that feed int16 chunks to the engine."""
from __future__ import annotations

import logging
import queue
import threading
from pathlib import Path
from typing import Optional

import numpy as np
from scipy.io import wavfile

from live_spectrogram.errors import (
    CaptureOutputAttachFailed,
    MicrophoneAccessDenied,
    MicrophoneUnavailable,
    SpectrogramError,
)

try:  # Optional dependency
    import sounddevice as sd
except Exception:  # pragma: no cover - optional dependency may be absent in CI
    sd = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)


class AudioSource:
    """Abstract audio stream interface."""

    def start(self) -> None:  # pragma: no cover - interface method
        raise NotImplementedError

    def read(self) -> np.ndarray:  # pragma: no cover - interface method
        raise NotImplementedError

    def stop(self) -> None:  # pragma: no cover - interface method
        raise NotImplementedError


class MicSource(AudioSource):
    """16-bit mono capture from a system microphone."""

    def __init__(self, samplerate: int, blocksize: int, device: Optional[str] = None) -> None:
        if sd is None:
            raise MicrophoneUnavailable("sounddevice is not available. Install it or use --demo.")

        self.samplerate = samplerate
        self.blocksize = blocksize
        self.device = device
        self.q: "queue.Queue[np.ndarray]" = queue.Queue(maxsize=64)
        self.stream = None
        self._stopped = threading.Event()

    def _callback(self, indata, frames, time_info, status):  # pragma: no cover - sounddevice callback
        if status:
            logger.debug("Input stream status: %s", status)
        mono = indata[:, 0].copy() if indata.ndim == 2 else indata.copy()
        try:
            self.q.put_nowait(mono)
        except queue.Full:
            pass

    def start(self) -> None:
        if sd is None:  # pragma: no cover - defensive
            raise MicrophoneUnavailable("sounddevice is not available.")
        self._stopped.clear()
        try:
            sd.check_input_settings(device=self.device, channels=1, dtype="int16",
                                    samplerate=self.samplerate)
        except ValueError as exc:
            raise MicrophoneUnavailable(str(exc)) from exc
        try:
            self.stream = sd.InputStream(
                channels=1,
                samplerate=self.samplerate,
                blocksize=self.blocksize,
                device=self.device,
                callback=self._callback,
                dtype="int16",
            )
        except sd.PortAudioError as exc:
            raise MicrophoneAccessDenied(str(exc)) from exc
        try:
            self.stream.start()
        except sd.PortAudioError as exc:
            raise CaptureOutputAttachFailed(str(exc)) from exc

    def read(self) -> np.ndarray:
        while not self._stopped.is_set():
            try:
                return self.q.get(timeout=0.1)
            except queue.Empty:
                continue
        return np.array([], dtype=np.int16)

    def stop(self) -> None:
        self._stopped.set()
        if self.stream is not None:
            try:  # pragma: no cover - depends on audio backend
                self.stream.stop()
                self.stream.close()
            except sd.PortAudioError:
                logger.debug("Input stream already closed")


class DemoSource(AudioSource):
    """Synthetic int16 source producing unevenly sized chunks."""

    def __init__(self, samplerate: int, blocksize: int, seed: Optional[int] = None) -> None:
        self.samplerate = samplerate
        self.blocksize = blocksize
        self.t = 0
        self.rng = np.random.default_rng(seed)

    def start(self) -> None:
        pass

    def read(self) -> np.ndarray:
        n = int(self.rng.integers(self.blocksize // 2, self.blocksize * 2 + 1))
        sr = self.samplerate
        t = (self.t + np.arange(n)) / sr
        chirp = np.sin(2 * np.pi * (100 + (t * 0.5e3)) * t) * 0.4
        tone1 = 0.25 * np.sin(2 * np.pi * 440 * t)
        tone2 = 0.2 * np.sin(2 * np.pi * 880 * t + 0.3)
        noise = 0.02 * self.rng.standard_normal(n)
        y = np.tanh(1.5 * (chirp + tone1 + tone2 + noise))
        self.t += n
        return (y * 32767).astype(np.int16)

    def stop(self) -> None:
        pass


class ReplaySource(AudioSource):
    """A recorded buffer handed over once, in full."""

    def __init__(self, samples) -> None:
        self.samples = np.asarray(samples, dtype=np.int16).ravel()
        self._delivered = False

    @classmethod
    def from_wav(cls, path: Path) -> "ReplaySource":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(path)
        _, audio = wavfile.read(path)
        if np.issubdtype(audio.dtype, np.floating):
            audio = np.clip(audio, -1.0, 1.0) * 32767
        elif audio.dtype == np.int32:
            audio = audio >> 16
        elif audio.dtype == np.uint8:
            audio = (audio.astype(np.int16) - 128) << 8
        if audio.ndim > 1:
            audio = audio.mean(axis=1)
        return cls(np.asarray(audio).astype(np.int16))

    def start(self) -> None:
        self._delivered = False

    def read(self) -> np.ndarray:
        if self._delivered:
            return np.array([], dtype=np.int16)
        self._delivered = True
        return self.samples

    def stop(self) -> None:
        self._delivered = True


class CaptureSession:
    """Pump a source into an engine on a dedicated delivery thread.

    The session only talks to the engine through ``deliver``, ``stop`` and
    ``report_error``. Source failures become error events; the pump keeps
    running unless the source cannot be started at all. A microphone source
    is refused when the engine config says no microphone is required.
    """

    def __init__(self, source: AudioSource, engine) -> None:
        self.source = source
        self.engine = engine
        self.stop_event = threading.Event()
        self.thread: Optional[threading.Thread] = None

    def start(self) -> bool:
        if isinstance(self.source, MicSource) and not self.engine.config.requires_microphone:
            self.engine.report_error(
                MicrophoneUnavailable("microphone capture is disabled for this stream")
            )
            return False
        try:
            self.source.start()
        except SpectrogramError as exc:
            self.engine.report_error(exc)
            return False
        self.stop_event.clear()
        self.engine.start()
        self.thread = threading.Thread(target=self.run_loop, name="captureQueue", daemon=True)
        self.thread.start()
        logger.info("Capture session started with %s", type(self.source).__name__)
        return True

    def run_loop(self) -> None:
        while not self.stop_event.is_set():
            try:
                chunk = self.source.read()
            except SpectrogramError as exc:
                self.engine.report_error(exc)
                continue
            except Exception:  # noqa: BLE001 - keep the delivery thread alive
                logger.exception("Audio source read failed")
                self.engine.report_error(CaptureOutputAttachFailed("audio source read failed"))
                continue
            if chunk.size == 0:
                if isinstance(self.source, ReplaySource):
                    break
                continue
            self.engine.deliver(chunk)

    def stop(self, timeout: float = 1.0) -> None:
        self.stop_event.set()
        self.source.stop()
        self.engine.stop()
        if self.thread is not None and self.thread is not threading.current_thread():
            self.thread.join(timeout=timeout)
        logger.info("Capture session stopped")


__all__ = [
    "AudioSource",
    "MicSource",
    "DemoSource",
    "ReplaySource",
    "CaptureSession",
    "sd",
]
