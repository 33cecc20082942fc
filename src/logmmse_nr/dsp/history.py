"""Sliding history of magnitude spectra with running sums for the noise floor."""

import numpy as np


class NoiseHistory:
    """Fixed-capacity ring of magnitude frames and their squared deviations.

    Keeps ``sums`` equal to the elementwise sum of the retained magnitude
    frames and ``devs`` equal to the sum of the retained deviation frames.
    Each deviation is taken against the history mean at the time its frame
    was pushed. Pushes are O(nfft); the running sums are rebuilt from the
    rings every time the write index wraps to cancel rounding drift.
    """

    def __init__(self, nfft: int, capacity: int, dtype: type = np.float64):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.nfft = nfft
        self.capacity = capacity
        self.dtype = dtype
        self._frames = np.zeros((capacity, nfft), dtype=dtype)
        self._devs = np.zeros((capacity, nfft), dtype=dtype)
        self.sums = np.zeros(nfft, dtype=dtype)
        self.devs = np.zeros(nfft, dtype=dtype)
        self._mean = np.zeros(nfft, dtype=dtype)
        self._write_idx = 0
        self._count = 0

    def __len__(self) -> int:
        return self._count

    @property
    def full(self) -> bool:
        return self._count == self.capacity

    def push(self, frame: np.ndarray) -> None:
        """Append one magnitude frame, evicting the oldest when full."""
        if len(frame) != self.nfft:
            raise ValueError(f"frame of {len(frame)} bins, expected {self.nfft}")
        slot = self._write_idx
        evicting = self.full

        self.sums += frame
        if evicting:
            self.sums -= self._frames[slot]
        self._frames[slot] = frame
        count = self._count if evicting else self._count + 1

        mean = self._mean
        np.divide(self.sums, count, out=mean)
        dev = self._devs[slot]
        if evicting:
            self.devs -= dev
        np.subtract(frame, mean, out=dev)
        np.multiply(dev, dev, out=dev)
        self.devs += dev

        self._count = count
        self._write_idx = (slot + 1) % self.capacity
        if self._write_idx == 0:
            self._resync()

    def _resync(self) -> None:
        n = self._count
        np.sum(self._frames[:n], axis=0, out=self.sums)
        np.sum(self._devs[:n], axis=0, out=self.devs)

    def latest(self, n: int) -> np.ndarray:
        """Return the last ``n`` magnitude frames, oldest first, shape (n, nfft)."""
        n = min(n, self._count)
        if n == 0:
            return np.zeros((0, self.nfft), dtype=self.dtype)
        idx = (self._write_idx - n + np.arange(n)) % self.capacity
        return self._frames[idx]

    def mean_magnitude(self) -> np.ndarray:
        """Per-bin mean of the retained magnitude frames."""
        if self._count == 0:
            return np.zeros(self.nfft, dtype=self.dtype)
        return self.sums / self._count

    def mean_deviation(self) -> np.ndarray:
        """Per-bin mean of the retained squared-deviation frames."""
        if self._count == 0:
            return np.zeros(self.nfft, dtype=self.dtype)
        return self.devs / self._count

    def clear(self) -> None:
        """Drop every frame and zero the running sums."""
        self._frames.fill(0)
        self._devs.fill(0)
        self.sums.fill(0)
        self.devs.fill(0)
        self._write_idx = 0
        self._count = 0
