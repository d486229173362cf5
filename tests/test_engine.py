"""Coordinator behaviour: ordering, lifecycle and concurrent access."""

from __future__ import annotations

import sys
import threading
import time
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from live_spectrogram.config import FrameGeometry, Mode, SpectrogramConfig
from live_spectrogram.engine import StreamCoordinator
from live_spectrogram.errors import MicrophoneAccessDenied
from live_spectrogram.events import ErrorEvent, NewAudioData, NewImage, NewSpectralVector

GEOMETRY = FrameGeometry(
    frame_size=8, hop_size=4, buffer_count=4, mel_bin_count=3, sample_rate=8000
)


def _engine(**config) -> StreamCoordinator:
    return StreamCoordinator(GEOMETRY, SpectrogramConfig(**config))


def _samples(n: int, seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.integers(-30000, 30000, size=n, dtype=np.int16)


def test_deliver_emits_events_in_arrival_order():
    engine = _engine()
    assert engine.deliver(_samples(12)) == 2

    events = engine.drain_events()
    kinds = [type(e) for e in events]
    assert kinds == [NewAudioData, NewSpectralVector, NewSpectralVector, NewImage]
    assert [e.index for e in events if isinstance(e, NewSpectralVector)] == [0, 1]
    assert engine.backlog_size() == 4


def test_latest_image_starts_as_placeholder():
    engine = _engine()
    assert engine.latest_image.is_placeholder
    engine.deliver(_samples(8))
    image = engine.latest_image
    assert (image.width, image.height) == (GEOMETRY.buffer_count, GEOMETRY.frame_size)


def test_observables_accumulate():
    engine = _engine()
    first, second = _samples(6, seed=1), _samples(10, seed=2)
    engine.deliver(first)
    engine.deliver(second)
    np.testing.assert_array_equal(engine.audio_data, np.r_[first, second])
    assert len(engine.frequencies) == engine.history.appended == 3


def test_reset_then_identical_input_is_bit_identical():
    engine = _engine()
    data = _samples(200, seed=9)
    chunks = np.array_split(data, [7, 30, 31, 120])

    engine.reset()
    for chunk in chunks:
        engine.deliver(chunk)
    first = engine.history_snapshot().copy()

    engine.reset()
    for chunk in chunks:
        engine.deliver(chunk)
    second = engine.history_snapshot()

    assert first.tobytes() == second.tobytes()


def test_config_change_applies_to_next_frame_only():
    engine = _engine(gain=1.0)
    engine.deliver(_samples(8, seed=4))
    before = engine.history.latest()
    engine.update_config(gain=2.0)
    engine.deliver(_samples(4, seed=5))
    rows = engine.history.rows()
    np.testing.assert_array_equal(rows[-2], before)
    assert engine.config.gain == 2.0


def test_mel_mode_vectors_fill_full_rows():
    engine = _engine(mode=Mode.MEL)
    engine.deliver(_samples(8))
    assert engine.frequencies[-1].shape == (3,)
    assert engine.history.latest().shape == (8,)


def test_stop_makes_delivery_a_no_op():
    engine = _engine()
    engine.deliver(_samples(6))
    engine.stop()
    assert not engine.running
    assert engine.deliver(_samples(20)) == 0
    assert engine.backlog_size() == 0
    assert not engine.history_snapshot().any()

    engine.start()
    assert engine.deliver(_samples(8)) == 1


def test_stop_waits_for_in_flight_batch():
    engine = _engine()
    entered = threading.Event()
    release = threading.Event()

    def slow(event):
        if isinstance(event, NewSpectralVector) and not entered.is_set():
            entered.set()
            release.wait(2.0)

    engine.subscribe(slow)
    results = []
    worker = threading.Thread(target=lambda: results.append(engine.deliver(_samples(16))))
    worker.start()
    assert entered.wait(2.0)

    stopper = threading.Thread(target=engine.stop)
    stopper.start()
    time.sleep(0.05)
    assert stopper.is_alive()
    assert engine.deliver(_samples(8)) == 0

    release.set()
    worker.join(2.0)
    stopper.join(2.0)
    assert results == [3]
    assert engine.backlog_size() == 0


def test_replay_processes_buffer_to_exhaustion():
    engine = _engine()
    frames = engine.replay(_samples(40))
    assert frames == 9
    assert engine.backlog_size() == 4
    assert engine.config.requires_microphone is False
    assert not engine.latest_image.is_placeholder


def test_errors_do_not_halt_processing():
    engine = _engine()
    engine.report_error(MicrophoneAccessDenied("denied"))
    assert engine.deliver(_samples(8)) == 1
    events = engine.drain_events()
    assert isinstance(events[0], ErrorEvent)
    assert isinstance(events[0].error, MicrophoneAccessDenied)


def test_error_waits_for_in_flight_batch():
    engine = _engine()
    entered = threading.Event()
    release = threading.Event()
    seen = []

    def record(event):
        seen.append(type(event))
        if isinstance(event, NewSpectralVector) and not entered.is_set():
            entered.set()
            release.wait(2.0)

    engine.subscribe(record)
    worker = threading.Thread(target=engine.deliver, args=(_samples(8),))
    worker.start()
    assert entered.wait(2.0)

    reporter = threading.Thread(
        target=engine.report_error, args=(MicrophoneAccessDenied("denied"),)
    )
    reporter.start()
    time.sleep(0.05)
    assert reporter.is_alive()

    release.set()
    worker.join(2.0)
    reporter.join(2.0)
    assert not reporter.is_alive()
    assert seen == [NewAudioData, NewSpectralVector, NewImage, ErrorEvent]


def test_undrained_event_queue_stays_bounded():
    engine = StreamCoordinator(GEOMETRY, SpectrogramConfig(), event_capacity=16)
    for seed in range(50):
        engine.deliver(_samples(8, seed=seed))

    assert engine.events.qsize() <= 16
    assert engine.dropped_events > 0
    events = engine.drain_events()
    images = [e for e in events if isinstance(e, NewImage)]
    assert len(images) == 1
    assert events[-1] is images[0]
    assert images[0].image is engine.latest_image


def test_only_newest_image_is_queued():
    engine = _engine()
    for seed in range(5):
        engine.deliver(_samples(4, seed=seed))
    engine.compose()

    events = engine.drain_events()
    assert [type(e) for e in events].count(NewImage) == 1
    assert [type(e) for e in events].count(NewAudioData) == 5
    assert isinstance(events[-1], NewImage)
    assert engine.dropped_events == 0


def test_table8_renders_loud_input_near_top_of_table():
    engine = StreamCoordinator(variant="table8")
    rng = np.random.default_rng(3)
    engine.deliver(rng.integers(-32000, 32000, size=20000, dtype=np.int16))

    image = engine.latest_image
    assert image.layout == "ARGB8888"
    assert image.data[..., 1:].max() >= 224


def test_nyquist_frequency():
    assert _engine().nyquist_frequency == 4000.0


@pytest.mark.parametrize("seed", [0, 1, 2])
def test_concurrent_producers_and_composers_keep_invariants(seed):
    engine = StreamCoordinator(GEOMETRY, SpectrogramConfig(), compose_on_deliver=False)
    rng = np.random.default_rng(seed)
    plans = [
        [int(n) for n in rng.integers(0, 40, size=60)] for _ in range(4)
    ]
    total = sum(sum(plan) for plan in plans)
    errors = []

    def produce(plan, worker_seed):
        local = np.random.default_rng(worker_seed)
        try:
            for size in plan:
                engine.deliver(local.integers(-32768, 32767, size=size, dtype=np.int16))
                assert engine.backlog_size() < GEOMETRY.max_backlog + 40
        except AssertionError as exc:  # pragma: no cover - reported below
            errors.append(exc)

    def consume():
        try:
            for _ in range(25):
                image = engine.compose()
                assert not image.is_placeholder, "placeholder from a valid history"
                assert len(engine.history) == GEOMETRY.capacity
        except AssertionError as exc:  # pragma: no cover - reported below
            errors.append(exc)

    threads = [
        threading.Thread(target=produce, args=(plan, seed * 10 + i))
        for i, plan in enumerate(plans)
    ]
    threads += [threading.Thread(target=consume) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(10.0)
        assert not t.is_alive()

    assert not errors
    seg = engine.segmenter
    assert len(engine.history) == GEOMETRY.capacity
    assert seg.pending < GEOMETRY.frame_size
    assert seg.received == total
    assert seg.consumed + seg.pending + seg.dropped == total
    assert engine.history.appended == len(engine.frequencies)
