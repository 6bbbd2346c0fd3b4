"""
Spectrum feature extraction for a single analysis tick.
"""
from dataclasses import dataclass

import numpy as np

from ....config import (
    MAX_MAGNITUDE, VOLUME_MAX_WEIGHT, VOLUME_AVG_WEIGHT, VOLUME_GAIN, ACTIVE_BIN_BONUS,
)


@dataclass(frozen=True)
class SpectrumFeatures:
    """Summary statistics of one frequency-magnitude buffer."""
    max_value: float
    average: float
    active_bin_ratio: float
    dominant_bin: int
    raw_volume: float


def as_spectrum(buffer) -> np.ndarray:
    """Convert an incoming magnitude buffer to a 1-D float array."""
    arr = np.asarray(buffer, dtype=np.float64)
    if arr.ndim != 1:
        arr = arr.reshape(-1)
    return arr


def raw_volume(max_value: float, average: float, active_bin_ratio: float) -> float:
    """Blend peak and mean magnitude (plus a small activity bonus) into a 0-1 volume."""
    max_norm = max_value / MAX_MAGNITUDE
    avg_norm = average / MAX_MAGNITUDE
    volume = (max_norm * VOLUME_MAX_WEIGHT + avg_norm * VOLUME_AVG_WEIGHT) * VOLUME_GAIN \
        + active_bin_ratio * ACTIVE_BIN_BONUS
    return min(1.0, volume)


def extract_spectrum_features(spectrum: np.ndarray) -> SpectrumFeatures:
    """
    Compute peak, mean, active-bin ratio and the loudest bin.

    The loudest bin is the first bin holding the maximum, so an all-zero
    buffer reports bin 0.
    """
    if spectrum.size == 0:
        return SpectrumFeatures(0.0, 0.0, 0.0, 0, 0.0)

    max_value = float(spectrum.max())
    average = float(spectrum.mean())
    active_ratio = float(np.count_nonzero(spectrum > 0)) / spectrum.size
    dominant = int(np.argmax(spectrum))

    return SpectrumFeatures(
        max_value=max_value,
        average=average,
        active_bin_ratio=active_ratio,
        dominant_bin=dominant,
        raw_volume=raw_volume(max_value, average, active_ratio),
    )


def bin_to_frequency(index: int, sample_rate: float, buffer_length: int) -> float:
    """Convert a bin index to Hz: index * sample_rate / (2 * buffer_length)."""
    if buffer_length <= 0:
        return 0.0
    return index * sample_rate / (2.0 * buffer_length)
