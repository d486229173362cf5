"""Configuration dataclasses for the spectrogram engine."""

from __future__ import annotations

import dataclasses
import enum
import json
from pathlib import Path
from typing import Any, Dict, Tuple

from live_spectrogram.errors import SpectrogramConfigError

BACKPRESSURE_POLICIES = ("drop_newest", "drop_oldest")


class Mode(str, enum.Enum):
    LINEAR = "linear"
    MEL = "mel"


def _known(cls, raw: Dict[str, Any]) -> Dict[str, Any]:
    known = {f.name for f in dataclasses.fields(cls)}
    return {k: v for k, v in raw.items() if k in known}


@dataclasses.dataclass(frozen=True)
class SpectrogramConfig:
    """Runtime display options, read once at the start of every frame."""

    gain: float = 0.025
    zero_reference: float = 1000.0
    mode: Mode = Mode.LINEAR
    dark_mode: bool = True
    requires_microphone: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.mode, Mode):
            object.__setattr__(self, "mode", Mode(str(self.mode).lower()))

    @staticmethod
    def from_dict(raw: Dict[str, Any]) -> "SpectrogramConfig":
        filtered = _known(SpectrogramConfig, raw)
        for key in ("gain", "zero_reference"):
            if key in filtered:
                filtered[key] = float(filtered[key])
        return SpectrogramConfig(**filtered)


@dataclasses.dataclass(frozen=True)
class FrameGeometry:
    """Fixed buffer sizes; every downstream allocation depends on these."""

    frame_size: int = 1024
    hop_size: int = 512
    buffer_count: int = 768
    mel_bin_count: int = 40
    sample_rate: int = 44100
    backpressure: str = "drop_newest"

    def __post_init__(self) -> None:
        if self.frame_size < 2:
            raise SpectrogramConfigError(
                f"frame_size must be at least 2, got {self.frame_size}"
            )
        if not 1 <= self.hop_size <= self.frame_size:
            raise SpectrogramConfigError(
                f"hop_size must be in 1..{self.frame_size}, got {self.hop_size}"
            )
        if self.buffer_count < 1:
            raise SpectrogramConfigError(
                f"buffer_count must be positive, got {self.buffer_count}"
            )
        if not 1 <= self.mel_bin_count <= self.frame_size:
            raise SpectrogramConfigError(
                f"mel_bin_count must be in 1..{self.frame_size}, got {self.mel_bin_count}"
            )
        if self.sample_rate <= 0:
            raise SpectrogramConfigError("sample_rate must be positive")
        if self.backpressure not in BACKPRESSURE_POLICIES:
            raise SpectrogramConfigError(
                f"unknown backpressure policy {self.backpressure!r}; "
                f"expected one of {', '.join(BACKPRESSURE_POLICIES)}"
            )

    @property
    def max_backlog(self) -> int:
        return 2 * self.frame_size

    @property
    def capacity(self) -> int:
        return self.buffer_count * self.frame_size

    @property
    def nyquist_frequency(self) -> float:
        """The highest frequency the sampled signal can represent."""
        return 0.5 * self.sample_rate

    @staticmethod
    def from_dict(raw: Dict[str, Any]) -> "FrameGeometry":
        filtered = _known(FrameGeometry, raw)
        for key in ("frame_size", "hop_size", "buffer_count", "mel_bin_count", "sample_rate"):
            if key in filtered:
                filtered[key] = int(filtered[key])
        return FrameGeometry(**filtered)


def config_from_dict(raw: Dict[str, Any]) -> Tuple[FrameGeometry, SpectrogramConfig]:
    """Split a JSON document into geometry and display sections.

    Flat documents are accepted as well; keys are routed to whichever
    dataclass declares them.
    """
    normalized = dict(raw)
    geometry_raw: Dict[str, Any] = dict(normalized.pop("geometry", None) or {})
    display_raw: Dict[str, Any] = dict(normalized.pop("display", None) or {})
    for key, value in normalized.items():
        geometry_raw.setdefault(key, value)
        display_raw.setdefault(key, value)
    return FrameGeometry.from_dict(geometry_raw), SpectrogramConfig.from_dict(display_raw)


def load_config(path: Path) -> Tuple[FrameGeometry, SpectrogramConfig]:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return config_from_dict(data)


__all__ = [
    "BACKPRESSURE_POLICIES",
    "Mode",
    "SpectrogramConfig",
    "FrameGeometry",
    "config_from_dict",
    "load_config",
]
