"""Error types surfaced by the spectrogram engine and its collaborators."""

from __future__ import annotations


class SpectrogramError(Exception):
    """Base class for all spectrogram errors."""


class MicrophoneAccessDenied(SpectrogramError):
    """The capture device refused to open the microphone."""


class MicrophoneUnavailable(SpectrogramError):
    """No usable microphone (or audio backend) was found."""


class CaptureOutputAttachFailed(SpectrogramError):
    """The capture stream could not be attached to the engine."""


class ImageConstructionFailed(SpectrogramError):
    """A rendering collaborator could not turn a pixel buffer into an image."""


class SpectrogramConfigError(SpectrogramError, ValueError):
    """Invalid construction-time geometry; the engine cannot be built."""


__all__ = [
    "SpectrogramError",
    "MicrophoneAccessDenied",
    "MicrophoneUnavailable",
    "CaptureOutputAttachFailed",
    "ImageConstructionFailed",
    "SpectrogramConfigError",
]
