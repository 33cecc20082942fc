"""Smoothed a-posteriori SNR readout for diagnostics."""

import math

import numpy as np


class LowPassFilter:
    """One-pole low-pass: ``y += (x - y) * (1 - exp(-dt * 2*pi * fc))``."""

    def __init__(self, cutoff_hz: float, delta_time: float):
        self.output = 0.0
        self._primed = False
        self.reconfigure(cutoff_hz, delta_time)

    def reconfigure(self, cutoff_hz: float, delta_time: float) -> None:
        self.e_pow = 1.0 - math.exp(-delta_time * 2.0 * math.pi * cutoff_hz)

    def update(self, value: float) -> float:
        if not self._primed:
            # First sample seeds the output instead of ramping from zero.
            self.output = value
            self._primed = True
        else:
            self.output += (value - self.output) * self.e_pow
        return self.output

    def reset(self) -> None:
        self.output = 0.0
        self._primed = False


class SNRMeter:
    """Frame SNR in dB (signal power over noise-floor power), low-pass smoothed."""

    def __init__(self, frame_rate: float, cutoff_hz: float = 2.0):
        self._filter = LowPassFilter(cutoff_hz, 1.0 / frame_rate)

    @property
    def snr_db(self) -> float:
        return self._filter.output

    def update(self, magnitude: np.ndarray, noise_power: np.ndarray) -> float:
        signal = float(np.dot(magnitude, magnitude))
        noise = float(np.sum(noise_power))
        if signal <= 0 or noise <= 0:
            return self._filter.output
        return self._filter.update(10.0 * math.log10(signal / noise))

    def reset(self) -> None:
        self._filter.reset()
