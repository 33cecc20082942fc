"""Frame buffering and overlap-add reconstruction for 50%-overlap streams."""

import numpy as np


def frame_count(n_samples: int, frame_length: int, hop: int) -> int:
    """Number of full analysis frames processed for ``n_samples`` buffered samples."""
    return max(0, n_samples // hop - frame_length // hop)


class FrameBuffer:
    """Concatenates input across calls and hands out overlapping frames.

    Interface:
      n = buffer.feed(chunk)          # frames available for this call
      for i in range(n):
          frame = buffer.frame(i)     # view, frame_length samples
      buffer.consume(n)               # keep the unprocessed tail
    """

    def __init__(self, frame_length: int, hop: int, dtype: type = np.complex128):
        self.frame_length = frame_length
        self.hop = hop
        self.dtype = dtype
        self._residual = np.zeros(0, dtype=dtype)
        self._buf = self._residual

    def __len__(self) -> int:
        """Samples carried over to the next call."""
        return len(self._residual)

    def prime(self, n_samples: int) -> None:
        """Replace the carried samples with ``n_samples`` zeros."""
        self._residual = np.zeros(n_samples, dtype=self.dtype)
        self._buf = self._residual

    def feed(self, samples: np.ndarray) -> int:
        """Append ``samples`` after the carried tail; return the frame count."""
        if len(self._residual) == 0:
            self._buf = np.asarray(samples, dtype=self.dtype)
        else:
            self._buf = np.concatenate([self._residual, np.asarray(samples, dtype=self.dtype)])
        return frame_count(len(self._buf), self.frame_length, self.hop)

    def frame(self, index: int) -> np.ndarray:
        start = index * self.hop
        return self._buf[start : start + self.frame_length]

    def consume(self, n_frames: int) -> None:
        """Drop the samples of ``n_frames`` hops; the rest is carried."""
        self._residual = self._buf[n_frames * self.hop :].copy()
        self._buf = self._residual

    def clear(self) -> None:
        self.prime(0)


class OverlapAdd:
    """Sums consecutive inverse-FFT frames shifted by one hop."""

    def __init__(self, overlap: int, dtype: type = np.complex128):
        self.overlap = overlap
        self.x_old = np.zeros(overlap, dtype=dtype)

    def add(self, y: np.ndarray, out: np.ndarray) -> None:
        """Write one output hop into ``out`` and keep the new tail of ``y``."""
        n = self.overlap
        np.add(self.x_old, y[:n], out=out)
        self.x_old[:] = y[n : 2 * n]

    def clear(self) -> None:
        self.x_old.fill(0)
