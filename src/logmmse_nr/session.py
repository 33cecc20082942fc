"""Streaming LogMMSE noise-reduction session.

One session = one stream: analysis window -> FFT -> noise history ->
noise floor -> LogMMSE gain -> inverse FFT -> overlap-add. Not thread-safe;
calls on a session must be serialized by the caller. Independent sessions
share nothing.

Interface:
  session = LogMMSESession(sample_rate=48_000, bandwidth=8_000)
  session.sample(noise_segment)       # seed the noise floor
  out = session.process(chunk)        # any length, tail carried over
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from logmmse_nr.dsp.config import NRConfig
from logmmse_nr.dsp.fft import FFTEngine
from logmmse_nr.dsp.framing import FrameBuffer, OverlapAdd, frame_count
from logmmse_nr.dsp.gain import GainWorkspace, logmmse_gain, repair_zero_bins
from logmmse_nr.dsp.history import NoiseHistory
from logmmse_nr.dsp.meter import SNRMeter
from logmmse_nr.dsp.noise_floor import (
    AUDIO_RECENT_FRAMES,
    AUDIO_SMOOTHING_BINS,
    MIN_HISTORY_FOR_UPDATE,
    audio_candidate,
    bootstrap_floor,
    ensure_positive,
    level_bounds,
    moving_average,
    wide_if_floor,
)
from logmmse_nr.dsp.window import analysis_window
from logmmse_nr.errors import ConfigError, NotBootstrapped

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NRStats:
    """Diagnostics snapshot of a session."""

    generation: int
    stable: bool
    nfft: int
    history_len: int
    min_level: float
    max_level: float
    snr_db: float
    bootstrapped: bool
    hold: bool


def _read_only(arr: np.ndarray) -> np.ndarray:
    view = arr.view()
    view.flags.writeable = False
    return view


class LogMMSESession:
    """Online LogMMSE spectral noise reduction for complex or real streams."""

    def __init__(
        self,
        sample_rate: float = 48_000,
        bandwidth: float = 8_000,
        over_subtraction: float = 1.0,
        **options,
    ):
        """
        Args:
            sample_rate: Stream sample rate in Hz.
            bandwidth: Bandwidth of interest in Hz, at most ``sample_rate``.
            over_subtraction: Scale applied to the noise floor in the gain.
            **options: Other ``NRConfig`` fields (smoothing, ksi_min,
                noise_frames, zero_repair, gain_ceiling).
        """
        config = NRConfig(
            sample_rate=sample_rate,
            bandwidth=bandwidth,
            over_subtraction=over_subtraction,
            **options,
        )
        self._hold = False
        self._build(config)

    @classmethod
    def from_config(cls, config: NRConfig) -> "LogMMSESession":
        session = cls.__new__(cls)
        session._hold = False
        session._build(config)
        return session

    def _build(self, config: NRConfig) -> None:
        """Allocate every per-session buffer and transform for ``config``."""
        nfft = config.nfft
        window = analysis_window(config)
        fft = FFTEngine(nfft)

        self.config = config
        self._window = window
        self._fft = fft
        self._history = NoiseHistory(nfft, config.history_capacity)
        self._frames = FrameBuffer(config.frame_length, config.hop)
        self._ola = OverlapAdd(config.overlap)
        self._meter = SNRMeter(frame_rate=config.sample_rate / config.hop)

        self._noise_mu2 = np.zeros(nfft, dtype=np.float64)
        self._xk_prev = np.zeros(nfft, dtype=np.float64)

        # Scratch, reused for every frame.
        self._windowed = np.zeros(config.frame_length, dtype=np.complex128)
        self._magnitude = np.zeros(nfft, dtype=np.float64)
        self._gain = np.zeros(nfft, dtype=np.float64)
        self._gain_work = GainWorkspace(nfft)
        self._hop_out = np.zeros(config.hop, dtype=np.complex128)

        self.generation = 0
        self.stable = False
        self.min_level = 0.0
        self.max_level = 0.0
        self._bootstrapped = False

    # ------------------------------------------------------------------
    # Properties

    @property
    def bootstrapped(self) -> bool:
        return self._bootstrapped

    @property
    def hold(self) -> bool:
        return self._hold

    @property
    def noise_mu2(self) -> np.ndarray:
        """Per-bin noise power estimate (read-only view)."""
        return _read_only(self._noise_mu2)

    @property
    def xk_prev(self) -> np.ndarray:
        """Denoised power spectrum of the last frame (read-only view)."""
        return _read_only(self._xk_prev)

    @property
    def window(self) -> np.ndarray:
        return _read_only(self._window)

    @property
    def history(self) -> NoiseHistory:
        return self._history

    @property
    def pending(self) -> int:
        """Input samples buffered for the next ``process`` call."""
        return len(self._frames)

    # ------------------------------------------------------------------
    # Control

    def set_hold(self, hold: bool) -> None:
        """Freeze (True) or resume (False) noise-floor estimation."""
        self._hold = bool(hold)

    def set_bandwidth(self, bandwidth: float) -> None:
        """Rebuild the session for a new bandwidth.

        Window, FFT, history, floor and memories are all replaced, so the
        session has to be bootstrapped again. An invalid bandwidth raises
        ``ConfigError`` and leaves the session untouched.
        """
        config = self.config.with_bandwidth(bandwidth)
        logger.debug("Rebuilding session for bandwidth %s Hz", bandwidth)
        self._build(config)

    def reset(self) -> None:
        """Clear memories, floor, history and counters; bootstrap is required again."""
        self._history.clear()
        self._frames.clear()
        self._ola.clear()
        self._meter.reset()
        self._noise_mu2.fill(0)
        self._xk_prev.fill(0)
        self.generation = 0
        self.stable = False
        self.min_level = 0.0
        self.max_level = 0.0
        self._bootstrapped = False

    # ------------------------------------------------------------------
    # Bootstrap

    def sample(self, bootstrap_samples: np.ndarray, noise_frames: Optional[int] = None) -> None:
        """Seed the noise floor from a noise-only segment.

        Args:
            bootstrap_samples: At least ``noise_frames * frame_length`` samples.
            noise_frames: Number of non-overlapping frames to average
                (defaults to ``config.noise_frames``).
        """
        n0 = self.config.noise_frames if noise_frames is None else int(noise_frames)
        if n0 < 1:
            raise ConfigError(f"noise_frames must be >= 1, got {n0}")
        slen = self.config.frame_length
        x = np.asarray(bootstrap_samples)
        if len(x) < n0 * slen:
            raise ConfigError(
                f"bootstrap needs {n0 * slen} samples ({n0} frames of {slen}), got {len(x)}"
            )

        self.reset()
        logger.info(
            "Sampling piece... srate=%s Slen=%d nFFT=%d",
            self.config.sample_rate,
            slen,
            self.config.nfft,
        )
        noise_mean = np.zeros(self.config.nfft, dtype=np.float64)
        for j in range(0, n0 * slen, slen):
            np.multiply(x[j : j + slen], self._window, out=self._windowed)
            magnitude = np.abs(self._fft.forward(self._windowed))
            self._history.push(magnitude)
            noise_mean += magnitude

        floor = bootstrap_floor(noise_mean / n0, wide=not self.config.audio_window)
        self._noise_mu2[:] = ensure_positive(floor)
        self._frames.prime(slen)
        self._bootstrapped = True

    # ------------------------------------------------------------------
    # Noise floor

    def update_noise_floor(self) -> bool:
        """Re-estimate the noise floor from the history.

        Runs only with more than 100 frames of history and while not held.

        Returns:
            True if the estimator ran (``generation`` was incremented).
        """
        if len(self._history) <= MIN_HISTORY_FOR_UPDATE or self._hold:
            return False
        if self.config.audio_regime:
            self._update_audio_floor()
        else:
            self._update_wide_floor()
        self.generation += 1
        return True

    def _update_audio_floor(self) -> None:
        if self.generation == 0:
            smoothed = moving_average(self._noise_mu2, AUDIO_SMOOTHING_BINS)
            self.min_level, self.max_level = level_bounds(smoothed)
            logger.info("Initialised noise floor at %.6g", self.min_level)
            return

        candidate = audio_candidate(self._history.latest(AUDIO_RECENT_FRAMES))
        tmin, tmax = level_bounds(candidate)
        if tmin > 0 and tmin + tmax < self.min_level + self.max_level:
            logger.info("Updated noise floor... %.6g", (tmin + tmax) / 2)
            self.min_level, self.max_level = tmin, tmax
            self._noise_mu2[:] = candidate
            self.stable = True

    def _update_wide_floor(self) -> None:
        result = wide_if_floor(
            self._history.mean_magnitude(),
            self._history.mean_deviation(),
            self._noise_mu2,
        )
        if not result.accepted:
            logger.debug("No quiet bins under threshold %.6g; keeping noise floor", result.threshold)
            return
        logger.debug(
            "Wide-IF floor from %d bins (threshold %.6g)",
            int(np.count_nonzero(result.selected)),
            result.threshold,
        )
        self._noise_mu2[:] = result.floor
        self.min_level, self.max_level = level_bounds(result.floor)
        self.stable = True

    # ------------------------------------------------------------------
    # Processing

    def output_length(self, n_samples: int) -> int:
        """Samples the next ``process`` call returns for ``n_samples`` of input."""
        total = len(self._frames) + n_samples
        return frame_count(total, self.config.frame_length, self.config.hop) * self.config.hop

    def process(self, samples: np.ndarray) -> np.ndarray:
        """Denoise a chunk of any length.

        Returns ``frames * hop`` samples; input that does not complete a frame
        is carried over. Real input gives real output, complex gives complex.
        """
        x = np.asarray(samples)
        out = np.empty(self.output_length(len(x)), dtype=np.complex128)
        self.process_into(x, out)
        if not np.iscomplexobj(x):
            return out.real.copy()
        return out

    def process_into(self, samples: np.ndarray, out: np.ndarray) -> int:
        """Denoise ``samples`` into the caller's buffer ``out``.

        Returns:
            Number of samples written.
        """
        if not self._bootstrapped:
            raise NotBootstrapped("call sample() with a noise segment before process()")
        needed = self.output_length(len(samples))
        if len(out) < needed:
            raise ValueError(f"output buffer holds {len(out)} samples, {needed} needed")

        hop = self.config.hop
        n_frames = self._frames.feed(samples)
        direct = out.dtype == np.complex128
        for i in range(n_frames):
            if direct:
                self._process_frame(self._frames.frame(i), out[i * hop : (i + 1) * hop])
            else:
                self._process_frame(self._frames.frame(i), self._hop_out)
                out[i * hop : (i + 1) * hop] = self._hop_out.real
        self._frames.consume(n_frames)
        return n_frames * hop

    def _process_frame(self, frame: np.ndarray, out: np.ndarray) -> None:
        np.multiply(frame, self._window, out=self._windowed)
        spectrum = self._fft.forward(self._windowed)
        magnitude = np.abs(spectrum, out=self._magnitude)
        if self.config.zero_repair:
            repair_zero_bins(magnitude)

        self._history.push(magnitude)
        self.update_noise_floor()
        self._meter.update(magnitude, self._noise_mu2)

        gain = logmmse_gain(
            magnitude,
            self._xk_prev,
            self._noise_mu2,
            smoothing=self.config.smoothing,
            ksi_min=self.config.ksi_min,
            over_subtraction=self.config.over_subtraction,
            gain_ceiling=self.config.gain_ceiling,
            out=self._gain,
            work=self._gain_work,
        )
        np.multiply(gain, magnitude, out=self._xk_prev)
        np.multiply(self._xk_prev, self._xk_prev, out=self._xk_prev)

        spectrum *= gain
        self._ola.add(self._fft.inverse(spectrum), out)

    # ------------------------------------------------------------------
    # Diagnostics

    def stats(self) -> NRStats:
        return NRStats(
            generation=self.generation,
            stable=self.stable,
            nfft=self.config.nfft,
            history_len=len(self._history),
            min_level=self.min_level,
            max_level=self.max_level,
            snr_db=self._meter.snr_db,
            bootstrapped=self._bootstrapped,
            hold=self._hold,
        )
