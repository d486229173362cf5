"""Command-line entrypoint for the live spectrogram viewer."""

from __future__ import annotations

import argparse
import dataclasses
import logging
from pathlib import Path
from typing import Tuple

from live_spectrogram.audio_sources import (
    AudioSource,
    CaptureSession,
    DemoSource,
    MicSource,
    ReplaySource,
    sd,
)
from live_spectrogram.config import (
    BACKPRESSURE_POLICIES,
    FrameGeometry,
    Mode,
    SpectrogramConfig,
    load_config,
)
from live_spectrogram.engine import StreamCoordinator
from live_spectrogram.errors import MicrophoneUnavailable

logger = logging.getLogger(__name__)

_CONFIG_NAME = "spectrogram_config.json"


def default_config_path() -> Path:
    return Path(__file__).with_name(_CONFIG_NAME)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Scrolling spectrogram of live or recorded 16-bit audio"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=default_config_path(),
        help="JSON file with 'geometry' and 'display' sections",
    )
    parser.add_argument("--gain", type=float, default=None)
    parser.add_argument("--zero-reference", type=float, default=None)
    parser.add_argument("--mode", choices=[m.value for m in Mode], default=None)
    parser.add_argument("--light", action="store_true", help="Use the light palette")
    parser.add_argument("--samplerate", type=int, default=None)
    parser.add_argument("--backpressure", choices=BACKPRESSURE_POLICIES, default=None)
    parser.add_argument("--device", type=str, default=None)
    parser.add_argument("--demo", action="store_true")
    parser.add_argument(
        "--replay",
        type=Path,
        default=None,
        help="WAV file to process once instead of capturing from a microphone",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO)",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> Tuple[FrameGeometry, SpectrogramConfig]:
    geometry, display = load_config(args.config)

    geometry_changes = {}
    if args.samplerate is not None:
        geometry_changes["sample_rate"] = args.samplerate
    if args.backpressure is not None:
        geometry_changes["backpressure"] = args.backpressure
    if geometry_changes:
        geometry = dataclasses.replace(geometry, **geometry_changes)

    display_changes = {}
    if args.gain is not None:
        display_changes["gain"] = args.gain
    if args.zero_reference is not None:
        display_changes["zero_reference"] = args.zero_reference
    if args.mode is not None:
        display_changes["mode"] = Mode(args.mode)
    if args.light:
        display_changes["dark_mode"] = False
    if args.replay is not None:
        display_changes["requires_microphone"] = False
    if display_changes:
        display = dataclasses.replace(display, **display_changes)
    return geometry, display


def create_source(args: argparse.Namespace, geometry: FrameGeometry) -> AudioSource:
    if args.replay is not None:
        return ReplaySource.from_wav(args.replay)
    if args.demo or sd is None:
        return DemoSource(geometry.sample_rate, geometry.hop_size)
    try:
        return MicSource(geometry.sample_rate, geometry.hop_size, device=args.device)
    except MicrophoneUnavailable as exc:  # pragma: no cover - interactive fallback
        logger.warning("Could not initialize microphone input: %s", exc)
        logger.warning(
            "Falling back to demo mode. Use --device to select input or install sounddevice."
        )
        return DemoSource(geometry.sample_rate, geometry.hop_size)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )
    geometry, display = build_config(args)
    engine = StreamCoordinator(geometry, display)
    source = create_source(args, geometry)

    from live_spectrogram.viewer import SpectrogramViewer

    if isinstance(source, ReplaySource):
        frames = engine.replay(source.samples)
        logger.info("Replay produced %d frames", frames)
        SpectrogramViewer(engine).run()
        return

    session = CaptureSession(source, engine)
    SpectrogramViewer(engine, session=session).run()


__all__ = ["parse_args", "build_config", "create_source", "main"]
