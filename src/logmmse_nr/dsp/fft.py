"""Forward/inverse complex FFT of a fixed size with reusable buffers."""

from typing import Optional

import numpy as np
import scipy.fft

from logmmse_nr.errors import BackendError


class FFTEngine:
    """Pair of complex-to-complex transforms of size ``nfft``.

    Input buffers are allocated once; ``forward`` zero-pads shorter frames.
    ``inverse`` is normalized (divides by ``nfft``). An engine belongs to a
    single session and is not shared between threads.
    """

    def __init__(self, nfft: int, workers: Optional[int] = None):
        if nfft < 2:
            raise BackendError(f"FFT size must be >= 2, got {nfft}")
        self.nfft = int(nfft)
        self.workers = workers
        self._forward_in = np.zeros(self.nfft, dtype=np.complex128)
        self._inverse_in = np.zeros(self.nfft, dtype=np.complex128)
        try:
            # Trial transform so a broken backend fails at construction.
            scipy.fft.fft(self._forward_in, workers=self.workers)
            scipy.fft.ifft(self._inverse_in, workers=self.workers)
        except (ValueError, RuntimeError, MemoryError) as exc:
            raise BackendError(f"cannot build FFT of size {self.nfft}: {exc}") from exc

    def forward(self, frame: np.ndarray) -> np.ndarray:
        """Forward FFT of ``frame`` zero-padded to ``nfft``."""
        n = len(frame)
        if n > self.nfft:
            raise ValueError(f"frame of {n} samples exceeds FFT size {self.nfft}")
        buf = self._forward_in
        buf[:n] = frame
        buf[n:] = 0
        return scipy.fft.fft(buf, workers=self.workers)

    def inverse(self, spectrum: np.ndarray) -> np.ndarray:
        """Normalized inverse FFT of a length-``nfft`` spectrum."""
        if len(spectrum) != self.nfft:
            raise ValueError(f"spectrum of {len(spectrum)} bins, expected {self.nfft}")
        buf = self._inverse_in
        buf[:] = spectrum
        return scipy.fft.ifft(buf, norm="backward", workers=self.workers)
