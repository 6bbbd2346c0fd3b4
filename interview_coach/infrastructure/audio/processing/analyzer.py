"""
Streaming microphone spectrum analysis with noise-floor calibration.

The analyzer consumes one frequency-magnitude buffer per tick, at the full
tick rate, and reports (volume, dominant frequency, speaking) outward only
every Nth tick. Volume and speaking-state changes are tracked on a
report-on-change basis: volume moves only when it shifts by more than
VOLUME_EPSILON, speaking only when the boolean flips.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, List, Optional

from .features import as_spectrum, extract_spectrum_features, bin_to_frequency
from ....config import (
    CALIBRATION_FRAMES, MIC_SENSITIVITY, REPORT_EVERY_N_TICKS, VOLUME_EPSILON,
    DEFAULT_SAMPLE_RATE, SPEAKING_THRESHOLD_CAP, CALIBRATED_SENSITIVITY_SCALE,
    UNCALIBRATED_SENSITIVITY_SCALE, TRANSIENT_MARGIN, MAX_MAGNITUDE,
)

logger = logging.getLogger("audio_analyzer")


@dataclass(frozen=True)
class AudioSample:
    """Rate-limited outward report of the microphone state."""
    volume: float
    frequency: float
    is_speaking: bool


@dataclass(frozen=True)
class TickAnalysis:
    """Full-rate result of analysing one buffer."""
    raw_volume: float
    normalized_volume: float
    max_value: float
    frequency: float
    is_speaking: bool
    calibrated: bool


class NoiseCalibration:
    """
    Collects raw volumes for a fixed number of ticks, then freezes their
    mean as the noise floor. Once frozen the floor never changes; only
    reset() (a new analyzer session) clears it.
    """

    def __init__(self, window: int = CALIBRATION_FRAMES):
        if window < 1:
            raise ValueError("Calibration window must be at least one tick")
        self.window = window
        self._samples: List[float] = []
        self._noise_floor: Optional[float] = None

    def reset(self) -> None:
        self._samples = []
        self._noise_floor = None

    @property
    def noise_floor(self) -> Optional[float]:
        return self._noise_floor

    @property
    def is_calibrated(self) -> bool:
        return self._noise_floor is not None

    @property
    def sample_count(self) -> int:
        return len(self._samples)

    def add(self, raw_volume: float) -> bool:
        """
        Record one raw volume sample.

        Returns:
            True on the tick that froze the floor, False otherwise
        """
        if self._noise_floor is not None:
            return False
        self._samples.append(raw_volume)
        if len(self._samples) >= self.window:
            self._noise_floor = sum(self._samples) / len(self._samples)
            logger.info("Noise floor calibrated: %.4f (%d samples)", self._noise_floor, len(self._samples))
            return True
        return False


class AudioStreamAnalyzer:
    """Analyzes a continuous stream of spectrum buffers for one microphone session."""

    def __init__(self,
                 sample_rate: float = DEFAULT_SAMPLE_RATE,
                 sensitivity: float = MIC_SENSITIVITY,
                 buffer_length: Optional[int] = None,
                 calibration_frames: int = CALIBRATION_FRAMES,
                 report_every: int = REPORT_EVERY_N_TICKS,
                 volume_epsilon: float = VOLUME_EPSILON,
                 on_sample: Optional[Callable[[AudioSample], None]] = None,
                 on_volume_change: Optional[Callable[[float], None]] = None,
                 on_speaking_change: Optional[Callable[[bool], None]] = None):
        if report_every < 1:
            raise ValueError("report_every must be at least 1")
        self.sample_rate = float(sample_rate)
        self.sensitivity = float(sensitivity)
        self.report_every = report_every
        self.volume_epsilon = volume_epsilon
        self.on_sample = on_sample
        self.on_volume_change = on_volume_change
        self.on_speaking_change = on_speaking_change

        self._configured_length = buffer_length
        self.calibration = NoiseCalibration(calibration_frames)
        self._running = False
        self._reset_state()

    def _reset_state(self) -> None:
        self.calibration.reset()
        self._buffer_length = self._configured_length
        self._reported_volume = 0.0
        self._reported_speaking = False
        self._update_counter = 0
        self._tick_count = 0
        self._last_analysis: Optional[TickAnalysis] = None

    # -- lifecycle -------------------------------------------------------

    def start(self) -> None:
        """Begin a new microphone session, discarding all previous state."""
        self._reset_state()
        self._running = True
        logger.info("Audio analysis started (sample_rate=%s, sensitivity=%.2f)",
                    self.sample_rate, self.sensitivity)

    def stop(self) -> None:
        self._running = False
        logger.info("Audio analysis stopped after %d ticks", self._tick_count)

    @property
    def is_running(self) -> bool:
        return self._running

    # -- state -----------------------------------------------------------

    @property
    def noise_floor(self) -> Optional[float]:
        return self.calibration.noise_floor

    @property
    def is_calibrated(self) -> bool:
        return self.calibration.is_calibrated

    @property
    def reported_volume(self) -> float:
        return self._reported_volume

    @property
    def reported_speaking(self) -> bool:
        return self._reported_speaking

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def buffer_length(self) -> Optional[int]:
        return self._buffer_length

    @property
    def last_analysis(self) -> Optional[TickAnalysis]:
        return self._last_analysis

    # -- analysis --------------------------------------------------------

    def normalize_volume(self, raw_volume: float) -> float:
        """Remove the noise floor and rescale to [0, 1]. Uncalibrated volumes pass through."""
        floor = self.calibration.noise_floor
        if floor is None:
            return raw_volume
        volume = max(0.0, raw_volume - floor)
        if floor < 1.0:
            volume = volume / (1.0 - floor)
        return max(0.0, min(1.0, volume))

    def speaking_threshold(self) -> float:
        floor = self.calibration.noise_floor
        if floor is None:
            return min(SPEAKING_THRESHOLD_CAP, self.sensitivity * UNCALIBRATED_SENSITIVITY_SCALE)
        return min(SPEAKING_THRESHOLD_CAP, floor + self.sensitivity * CALIBRATED_SENSITIVITY_SCALE)

    def _is_speaking(self, volume: float, max_value: float) -> bool:
        floor = self.calibration.noise_floor
        if volume > self.speaking_threshold():
            return True
        # Sharp transients the volume blend smooths away
        return floor is not None and max_value > floor * MAX_MAGNITUDE + TRANSIENT_MARGIN

    def process(self, buffer) -> Optional[AudioSample]:
        """
        Analyze one tick's spectrum buffer.

        Args:
            buffer: Frequency-bin magnitudes (0-255)

        Returns:
            AudioSample on reporting ticks, None otherwise (including
            ignored empty buffers and buffers of unexpected length)
        """
        if not self._running:
            logger.warning("Audio buffer received while analyzer is stopped; ignoring")
            return None

        spectrum = as_spectrum(buffer)
        if spectrum.size == 0:
            logger.warning("Ignoring empty audio buffer")
            return None
        if self._buffer_length is None:
            self._buffer_length = int(spectrum.size)
        elif spectrum.size != self._buffer_length:
            logger.warning("Ignoring audio buffer of length %d (expected %d)",
                           spectrum.size, self._buffer_length)
            return None

        self._tick_count += 1
        features = extract_spectrum_features(spectrum)

        if not self.calibration.is_calibrated:
            self.calibration.add(features.raw_volume)

        volume = self.normalize_volume(features.raw_volume)
        speaking = self._is_speaking(volume, features.max_value)
        frequency = bin_to_frequency(features.dominant_bin, self.sample_rate, self._buffer_length)

        self._last_analysis = TickAnalysis(
            raw_volume=features.raw_volume,
            normalized_volume=volume,
            max_value=features.max_value,
            frequency=frequency,
            is_speaking=speaking,
            calibrated=self.calibration.is_calibrated,
        )

        if abs(volume - self._reported_volume) > self.volume_epsilon:
            self._reported_volume = volume
            if self.on_volume_change:
                self.on_volume_change(volume)

        if speaking != self._reported_speaking:
            self._reported_speaking = speaking
            if self.on_speaking_change:
                self.on_speaking_change(speaking)

        self._update_counter += 1
        if self._update_counter < self.report_every:
            return None
        self._update_counter = 0

        sample = AudioSample(volume=volume, frequency=frequency, is_speaking=speaking)
        if self.on_sample:
            self.on_sample(sample)
        return sample

    def analyze_stream(self, buffers: Iterable) -> Iterator[AudioSample]:
        """Consume buffers in order, yielding only the rate-limited samples."""
        for buffer in buffers:
            sample = self.process(buffer)
            if sample is not None:
                yield sample
