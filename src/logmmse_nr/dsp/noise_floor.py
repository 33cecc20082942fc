"""Noise-floor estimation from the noise history.

Two strategies, picked by FFT size:

- Audio regime: the squared mean of the most recent frames, smoothed
  across bins, replaces the floor only when its min+max level drops.
- Wide-IF regime: bins whose magnitude varied least over the history are
  taken as noise-only; the floor is measured there and linearly
  interpolated everywhere else.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np

AUDIO_RECENT_FRAMES = 12
AUDIO_SMOOTHING_BINS = 6
WIDE_BOOTSTRAP_SMOOTHING_BINS = 120
CENTER_MASK_FRACTION = 0.15
PERCENTILE_DIVISOR = 10  # 10th percentile
THRESHOLD_SURPLUS = 1.2
MIN_HISTORY_FOR_UPDATE = 100


def moving_average(values: np.ndarray, window: int) -> np.ndarray:
    """Centered moving mean over ``window + 1`` bins.

    The window is truncated at both ends and the mean taken over the bins
    that remain, so the output has the same length as the input.
    """
    values = np.asarray(values, dtype=np.float64)
    n = len(values)
    if n == 0 or window < 1:
        return values.copy()
    half = window // 2
    csum = np.concatenate(([0.0], np.cumsum(values)))
    idx = np.arange(n)
    lo = np.maximum(idx - half, 0)
    hi = np.minimum(idx + half + 1, n)
    return (csum[hi] - csum[lo]) / (hi - lo)


def bootstrap_floor(noise_mean: np.ndarray, wide: bool) -> np.ndarray:
    """Initial noise power from the mean bootstrap magnitude spectrum."""
    if wide:
        noise_mean = moving_average(noise_mean, WIDE_BOOTSTRAP_SMOOTHING_BINS)
    return noise_mean * noise_mean


def audio_candidate(frames: np.ndarray, smooth: int = AUDIO_SMOOTHING_BINS) -> np.ndarray:
    """Candidate floor: per-bin mean of ``frames`` squared, then smoothed."""
    mean = np.mean(frames, axis=0)
    return moving_average(mean * mean, smooth)


def level_bounds(floor: np.ndarray) -> Tuple[float, float]:
    """Lowest and highest bin level of a floor (linear power, not dB)."""
    return float(np.min(floor)), float(np.max(floor))


def center_mask(nfft: int, fraction: float = CENTER_MASK_FRACTION) -> np.ndarray:
    """Bins around nfft/2, where the two edges of the real band meet."""
    z = np.arange(nfft)
    return np.abs(z - nfft // 2) < fraction * nfft


@dataclass
class WideFloorResult:
    """Wide-IF floor estimate and the bins it was measured on."""

    floor: np.ndarray
    selected: np.ndarray
    threshold: float

    @property
    def accepted(self) -> bool:
        return bool(np.any(self.selected))


def wide_if_floor(
    mean_mag: np.ndarray,
    mean_dev: np.ndarray,
    previous: np.ndarray,
) -> WideFloorResult:
    """Percentile-based per-bin floor for wide IF streams.

    Args:
        mean_mag: Per-bin mean magnitude over the history.
        mean_dev: Per-bin mean squared deviation over the history.
        previous: Current floor, returned unchanged if no bin qualifies.

    Returns:
        WideFloorResult with the new floor (never all zeros), the mask of
        directly measured bins and the deviation threshold used.
    """
    nfft = len(mean_mag)
    dev_sq = mean_dev * mean_dev
    dev_sq[center_mask(nfft)] = np.inf

    k = nfft // PERCENTILE_DIVISOR
    threshold = float(np.partition(dev_sq, k)[k]) * THRESHOLD_SURPLUS

    floor = np.zeros(nfft, dtype=np.float64)
    selected = dev_sq < threshold
    floor[selected] = mean_mag[selected] * mean_mag[selected]
    # A zero measurement cannot anchor the interpolation.
    selected &= floor != 0

    anchors = np.flatnonzero(selected)
    if len(anchors) == 0:
        return WideFloorResult(floor=previous.copy(), selected=selected, threshold=threshold)

    # np.interp holds the first/last anchor value beyond the ends.
    floor = np.interp(np.arange(nfft), anchors, floor[anchors])
    return WideFloorResult(floor=floor, selected=selected, threshold=threshold)


def ensure_positive(floor: np.ndarray, fallback: float = 1e-20) -> np.ndarray:
    """Replace non-positive bins with the smallest positive bin, in place.

    An all-zero floor is filled with ``fallback``.
    """
    bad = ~(floor > 0)
    if np.any(bad):
        positive = floor[~bad]
        floor[bad] = np.min(positive) if len(positive) else fallback
    return floor
