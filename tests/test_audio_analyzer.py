"""Tests for spectrum features and the streaming audio analyzer.

Covers:
  - Per-buffer spectrum statistics and bin-to-frequency conversion
  - Noise calibration freezing exactly once
  - Volume normalization against the noise floor
  - Epsilon suppression of volume reports and boolean speaking changes
  - Report decimation (one sample every N ticks)
  - Lifecycle: stopped analyzer, buffer length changes, restart
"""
import numpy as np
import pytest

from interview_coach.infrastructure.audio import (
    AudioSample, NoiseCalibration, AudioStreamAnalyzer, extract_spectrum_features,
)
from interview_coach.infrastructure.audio.processing import bin_to_frequency, raw_volume
from interview_coach.interview.testing import make_spectrum, silence


def _started(**kwargs) -> AudioStreamAnalyzer:
    analyzer = AudioStreamAnalyzer(**kwargs)
    analyzer.start()
    return analyzer


# ---------------------------------------------------------------------------
# Spectrum features
# ---------------------------------------------------------------------------


class TestSpectrumFeatures:
    def test_silence(self) -> None:
        features = extract_spectrum_features(silence())
        assert features.max_value == 0.0
        assert features.active_bin_ratio == 0.0
        assert features.dominant_bin == 0
        assert features.raw_volume == 0.0

    def test_empty_buffer(self) -> None:
        features = extract_spectrum_features(np.array([]))
        assert features.raw_volume == 0.0
        assert features.dominant_bin == 0

    def test_flat_spectrum_volume(self) -> None:
        # (17/255 * 0.7 + 17/255 * 0.3) * 3 + 1.0 * 0.08
        features = extract_spectrum_features(make_spectrum(17.0))
        assert features.raw_volume == pytest.approx(0.28)
        assert features.active_bin_ratio == 1.0

    def test_volume_is_capped_at_one(self) -> None:
        assert extract_spectrum_features(make_spectrum(255.0)).raw_volume == 1.0
        assert raw_volume(255.0, 255.0, 1.0) == 1.0

    def test_dominant_bin(self) -> None:
        features = extract_spectrum_features(make_spectrum(5.0, peak_bin=100, peak_value=200.0))
        assert features.dominant_bin == 100
        assert features.max_value == 200.0

    def test_bin_to_frequency(self) -> None:
        assert bin_to_frequency(100, 48000, 1024) == pytest.approx(2343.75)
        assert bin_to_frequency(0, 48000, 1024) == 0.0
        assert bin_to_frequency(5, 48000, 0) == 0.0


# ---------------------------------------------------------------------------
# NoiseCalibration
# ---------------------------------------------------------------------------


class TestNoiseCalibration:
    def test_freezes_exactly_once(self) -> None:
        calibration = NoiseCalibration(window=5)
        froze = [calibration.add(v) for v in (0.1, 0.2, 0.3, 0.4, 0.5, 0.9, 0.9, 0.9)]
        assert froze.count(True) == 1
        assert froze[4] is True
        assert calibration.noise_floor == pytest.approx(0.3)
        assert calibration.sample_count == 5

    def test_not_calibrated_before_window(self) -> None:
        calibration = NoiseCalibration(window=3)
        calibration.add(0.2)
        assert not calibration.is_calibrated
        assert calibration.noise_floor is None

    def test_reset_clears_floor(self) -> None:
        calibration = NoiseCalibration(window=1)
        calibration.add(0.4)
        calibration.reset()
        assert calibration.noise_floor is None
        assert calibration.sample_count == 0

    def test_rejects_empty_window(self) -> None:
        with pytest.raises(ValueError):
            NoiseCalibration(window=0)


# ---------------------------------------------------------------------------
# Calibration inside the analyzer
# ---------------------------------------------------------------------------


class TestAnalyzerCalibration:
    def test_floor_is_frozen_after_window(self) -> None:
        analyzer = _started(calibration_frames=5)
        for _ in range(5):
            analyzer.process(make_spectrum(8.5))
        assert analyzer.is_calibrated
        floor = analyzer.noise_floor
        assert floor == pytest.approx(0.18)

        for _ in range(100):
            analyzer.process(make_spectrum(200.0))
        assert analyzer.noise_floor == floor

    def test_floor_normalizes_to_zero(self) -> None:
        analyzer = _started(calibration_frames=5)
        for _ in range(5):
            analyzer.process(make_spectrum(8.5))
        assert analyzer.normalize_volume(analyzer.noise_floor) == 0.0
        assert analyzer.normalize_volume(0.0) == 0.0
        assert analyzer.normalize_volume(1.0) == pytest.approx(1.0)

    def test_normalization_is_monotonic(self) -> None:
        analyzer = _started(calibration_frames=5)
        for _ in range(5):
            analyzer.process(make_spectrum(8.5))
        raws = np.linspace(0.0, 1.0, 51)
        normalized = [analyzer.normalize_volume(r) for r in raws]
        assert all(b >= a for a, b in zip(normalized, normalized[1:]))
        assert all(0.0 <= v <= 1.0 for v in normalized)

    def test_uncalibrated_volume_passes_through(self) -> None:
        analyzer = _started(calibration_frames=60)
        assert analyzer.normalize_volume(0.42) == 0.42

    def test_restart_recalibrates(self) -> None:
        analyzer = _started(calibration_frames=2)
        analyzer.process(make_spectrum(8.5))
        analyzer.process(make_spectrum(8.5))
        assert analyzer.is_calibrated
        analyzer.start()
        assert not analyzer.is_calibrated
        assert analyzer.tick_count == 0


# ---------------------------------------------------------------------------
# Speaking detection
# ---------------------------------------------------------------------------


class TestSpeakingDetection:
    def test_threshold_before_calibration(self) -> None:
        analyzer = _started(sensitivity=0.35)
        assert analyzer.speaking_threshold() == pytest.approx(0.175)

    def test_threshold_after_calibration(self) -> None:
        analyzer = _started(sensitivity=0.35, calibration_frames=5)
        for _ in range(5):
            analyzer.process(make_spectrum(8.5))
        assert analyzer.speaking_threshold() == pytest.approx(0.18 + 0.105)

    def test_threshold_is_capped(self) -> None:
        analyzer = _started(sensitivity=1.0, calibration_frames=1)
        analyzer.process(make_spectrum(255.0))
        assert analyzer.speaking_threshold() == 0.8

    def test_speaking_changes_reported_once_per_flip(self) -> None:
        changes = []
        analyzer = _started(calibration_frames=5, on_speaking_change=changes.append)
        for _ in range(5):
            analyzer.process(silence())
        for _ in range(10):
            analyzer.process(make_spectrum(17.0))
        for _ in range(10):
            analyzer.process(silence())
        assert changes == [True, False]
        assert analyzer.reported_speaking is False

    def test_silence_is_not_speech(self) -> None:
        analyzer = _started(calibration_frames=5)
        for _ in range(5):
            analyzer.process(silence())
        analyzer.process(silence())
        assert analyzer.last_analysis.is_speaking is False


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------


class TestReporting:
    def test_volume_changes_below_epsilon_are_suppressed(self) -> None:
        volumes = []
        analyzer = _started(calibration_frames=5, on_volume_change=volumes.append)
        for _ in range(5):
            analyzer.process(silence())

        analyzer.process(make_spectrum(17.0))   # 0.28
        analyzer.process(make_spectrum(17.5))   # ~0.2859, within 0.01
        assert volumes == [pytest.approx(0.28)]
        assert analyzer.reported_volume == pytest.approx(0.28)

        analyzer.process(make_spectrum(20.0))   # ~0.3153
        assert len(volumes) == 2
        assert volumes[1] == pytest.approx(60.0 / 255.0 + 0.08)

    def test_samples_are_decimated(self) -> None:
        samples = []
        analyzer = _started(report_every=10, on_sample=samples.append)
        returned = [analyzer.process(make_spectrum(17.0)) for _ in range(25)]
        assert len(samples) == 2
        assert [i for i, s in enumerate(returned) if s is not None] == [9, 19]
        assert analyzer.tick_count == 25

    def test_sample_carries_dominant_frequency(self) -> None:
        analyzer = _started(report_every=1, sample_rate=48000)
        sample = analyzer.process(make_spectrum(5.0, length=1024, peak_bin=100, peak_value=150.0))
        assert isinstance(sample, AudioSample)
        assert sample.frequency == pytest.approx(2343.75)

    def test_analyze_stream_yields_only_reports(self) -> None:
        analyzer = _started(report_every=3)
        samples = list(analyzer.analyze_stream(make_spectrum(17.0) for _ in range(10)))
        assert len(samples) == 3

    def test_volume_stays_bounded(self) -> None:
        rng = np.random.default_rng(7)
        analyzer = _started(calibration_frames=10, report_every=1)
        for _ in range(200):
            sample = analyzer.process(rng.integers(0, 256, size=512))
            assert 0.0 <= sample.volume <= 1.0


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    def test_stopped_analyzer_ignores_input(self) -> None:
        analyzer = AudioStreamAnalyzer(report_every=1)
        assert analyzer.process(make_spectrum(17.0)) is None
        assert analyzer.tick_count == 0

        analyzer.start()
        analyzer.process(make_spectrum(17.0))
        analyzer.stop()
        assert analyzer.process(make_spectrum(17.0)) is None
        assert analyzer.tick_count == 1

    def test_buffer_length_is_fixed_by_first_buffer(self) -> None:
        analyzer = _started(report_every=1)
        analyzer.process(make_spectrum(17.0, length=1024))
        assert analyzer.buffer_length == 1024
        assert analyzer.process(make_spectrum(17.0, length=512)) is None
        assert analyzer.tick_count == 1

    def test_empty_buffer_does_not_fix_length(self) -> None:
        analyzer = _started(calibration_frames=10, report_every=1)
        assert analyzer.process([]) is None
        assert analyzer.buffer_length is None
        for _ in range(10):
            analyzer.process(silence())
        assert analyzer.tick_count == 10
        assert analyzer.buffer_length == 1024
        assert analyzer.is_calibrated

    def test_configured_buffer_length(self) -> None:
        analyzer = _started(buffer_length=256, report_every=1)
        assert analyzer.process(make_spectrum(17.0, length=1024)) is None
        assert analyzer.process(make_spectrum(17.0, length=256)) is not None

    def test_rejects_zero_report_interval(self) -> None:
        with pytest.raises(ValueError):
            AudioStreamAnalyzer(report_every=0)
