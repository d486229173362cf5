import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from live_spectrogram.cli import build_config, default_config_path, parse_args
from live_spectrogram.config import (
    FrameGeometry,
    Mode,
    SpectrogramConfig,
    config_from_dict,
    load_config,
)
from live_spectrogram.errors import SpectrogramConfigError


def test_defaults_match_documented_values():
    cfg = SpectrogramConfig()
    assert (cfg.gain, cfg.zero_reference, cfg.mode) == (0.025, 1000.0, Mode.LINEAR)
    assert cfg.dark_mode and cfg.requires_microphone
    geo = FrameGeometry()
    assert (geo.frame_size, geo.hop_size, geo.buffer_count) == (1024, 512, 768)
    assert geo.max_backlog == 2048
    assert geo.capacity == 768 * 1024


def test_from_dict_ignores_unknown_keys_and_coerces_mode():
    cfg = SpectrogramConfig.from_dict({"gain": "0.5", "mode": "MEL", "colour": "red"})
    assert cfg.gain == 0.5
    assert cfg.mode is Mode.MEL


def test_flat_documents_are_routed_by_field():
    geometry, display = config_from_dict({"frame_size": 256, "hop_size": 64, "gain": 1.5})
    assert (geometry.frame_size, geometry.hop_size) == (256, 64)
    assert display.gain == 1.5


def test_load_config_reads_sections(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(
        json.dumps(
            {
                "geometry": {"frame_size": 64, "hop_size": 32, "backpressure": "drop_oldest"},
                "display": {"dark_mode": False, "zero_reference": 10},
            }
        )
    )
    geometry, display = load_config(path)
    assert geometry.backpressure == "drop_oldest"
    assert display.dark_mode is False
    assert display.zero_reference == 10.0


def test_invalid_geometry_in_file_is_fatal(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"geometry": {"frame_size": 64, "hop_size": 128}}))
    with pytest.raises(SpectrogramConfigError):
        load_config(path)


def test_bundled_config_loads():
    geometry, display = load_config(default_config_path())
    assert geometry == FrameGeometry()
    assert display == SpectrogramConfig()


def test_cli_flags_override_file_defaults(tmp_path):
    wav = tmp_path / "clip.wav"
    args = parse_args(
        ["--gain", "0.5", "--mode", "mel", "--light", "--replay", str(wav), "--samplerate", "22050"]
    )
    geometry, display = build_config(args)
    assert geometry.sample_rate == 22050
    assert display.gain == 0.5
    assert display.mode is Mode.MEL
    assert display.dark_mode is False
    assert display.requires_microphone is False
