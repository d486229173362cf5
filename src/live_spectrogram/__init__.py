"""Streaming spectrogram engine and its capture/display collaborators."""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any

__all__ = [
    "AudioSource",
    "CaptureSession",
    "ColorMapper",
    "DemoSource",
    "FrameGeometry",
    "FrameSegmenter",
    "ImageCompositor",
    "MicSource",
    "Mode",
    "Orientation",
    "Palette",
    "PixelImage",
    "ReplaySource",
    "SpectralAnalyzer",
    "SpectrogramConfig",
    "SpectrogramEngine",
    "SpectrogramHistory",
    "SpectrogramViewer",
    "StreamCoordinator",
    "load_config",
    "main",
]

_EXPORT_MAP = {
    "AudioSource": ("live_spectrogram.audio_sources", "AudioSource"),
    "CaptureSession": ("live_spectrogram.audio_sources", "CaptureSession"),
    "DemoSource": ("live_spectrogram.audio_sources", "DemoSource"),
    "MicSource": ("live_spectrogram.audio_sources", "MicSource"),
    "ReplaySource": ("live_spectrogram.audio_sources", "ReplaySource"),
    "ColorMapper": ("live_spectrogram.colormap", "ColorMapper"),
    "Palette": ("live_spectrogram.colormap", "Palette"),
    "FrameGeometry": ("live_spectrogram.config", "FrameGeometry"),
    "Mode": ("live_spectrogram.config", "Mode"),
    "SpectrogramConfig": ("live_spectrogram.config", "SpectrogramConfig"),
    "load_config": ("live_spectrogram.config", "load_config"),
    "FrameSegmenter": ("live_spectrogram.segmenter", "FrameSegmenter"),
    "SpectralAnalyzer": ("live_spectrogram.analyzer", "SpectralAnalyzer"),
    "SpectrogramHistory": ("live_spectrogram.history", "SpectrogramHistory"),
    "ImageCompositor": ("live_spectrogram.compositor", "ImageCompositor"),
    "Orientation": ("live_spectrogram.compositor", "Orientation"),
    "PixelImage": ("live_spectrogram.compositor", "PixelImage"),
    "StreamCoordinator": ("live_spectrogram.engine", "StreamCoordinator"),
    "SpectrogramEngine": ("live_spectrogram.engine", "SpectrogramEngine"),
    "SpectrogramViewer": ("live_spectrogram.viewer", "SpectrogramViewer"),
    "main": ("live_spectrogram.cli", "main"),
}


if TYPE_CHECKING:  # pragma: no cover - only for type checkers
    from live_spectrogram.analyzer import SpectralAnalyzer
    from live_spectrogram.audio_sources import (
        AudioSource,
        CaptureSession,
        DemoSource,
        MicSource,
        ReplaySource,
    )
    from live_spectrogram.cli import main
    from live_spectrogram.colormap import ColorMapper, Palette
    from live_spectrogram.compositor import ImageCompositor, Orientation, PixelImage
    from live_spectrogram.config import FrameGeometry, Mode, SpectrogramConfig, load_config
    from live_spectrogram.engine import SpectrogramEngine, StreamCoordinator
    from live_spectrogram.history import SpectrogramHistory
    from live_spectrogram.segmenter import FrameSegmenter
    from live_spectrogram.viewer import SpectrogramViewer


def __getattr__(name: str) -> Any:
    """Lazily import heavy submodules on demand."""

    if name in _EXPORT_MAP:
        module_name, attribute = _EXPORT_MAP[name]
        module = import_module(module_name)
        value = getattr(module, attribute)
        globals()[name] = value
        return value
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:
    return sorted(set(__all__))
