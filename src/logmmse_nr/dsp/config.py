"""Centralized noise-reduction configuration.

Frame geometry:
- Frame: 20 ms of samples (Slen), rounded up to an even count
- Hop: 50% overlap, len1 = len2 = Slen / 2
- FFT: nFFT = 2 * Slen (zero-padded)
- Regimes: Hann window up to 24 kHz, rectangular above;
  adaptive audio floor below nFFT 1200, percentile wide-IF floor above
"""

from dataclasses import dataclass, replace
import math

from logmmse_nr.errors import ConfigError

AUDIO_WINDOW_MAX_RATE = 24_000
AUDIO_REGIME_MAX_NFFT = 1200
SHORT_HISTORY_MIN_NFFT = 1000
FRAME_SEC = 0.02
OVERLAP_PERCENT = 50


@dataclass(frozen=True)
class NRConfig:
    """LogMMSE noise-reduction configuration."""

    # Stream
    sample_rate: float = 48_000
    # Validated (0 < bandwidth <= sample_rate) and recorded; the frame
    # geometry depends on sample_rate only.
    bandwidth: float = 8_000

    # Gain
    over_subtraction: float = 1.0  # eta
    smoothing: float = 0.98  # aa, decision-directed
    ksi_min: float = 10 ** (-25.0 / 10.0)
    gain_ceiling: float = 1.0

    # Bootstrap
    noise_frames: int = 6

    # Copy the previous bin's magnitude over exact zeros from the FFT
    zero_repair: bool = True

    def __post_init__(self) -> None:
        if not self.sample_rate > 0:
            raise ConfigError(f"sample_rate must be > 0, got {self.sample_rate}")
        if not self.bandwidth > 0:
            raise ConfigError(f"bandwidth must be > 0, got {self.bandwidth}")
        if self.bandwidth > self.sample_rate:
            raise ConfigError(
                f"bandwidth {self.bandwidth} exceeds sample_rate {self.sample_rate}"
            )
        if not self.over_subtraction > 0:
            raise ConfigError(f"over_subtraction must be > 0, got {self.over_subtraction}")
        if not 0 < self.smoothing < 1:
            raise ConfigError(f"smoothing must be in (0, 1), got {self.smoothing}")
        if not self.ksi_min > 0:
            raise ConfigError(f"ksi_min must be > 0, got {self.ksi_min}")
        if not self.gain_ceiling > 0:
            raise ConfigError(f"gain_ceiling must be > 0, got {self.gain_ceiling}")
        if self.noise_frames < 1:
            raise ConfigError(f"noise_frames must be >= 1, got {self.noise_frames}")
        if self.frame_length < 2:
            raise ConfigError(
                f"sample_rate {self.sample_rate} is too low for a {FRAME_SEC}s frame"
            )

    @property
    def frame_length(self) -> int:
        """Analysis frame length in samples (Slen), always even."""
        slen = int(math.floor(FRAME_SEC * self.sample_rate))
        if slen % 2 == 1:
            slen += 1
        return slen

    @property
    def overlap(self) -> int:
        """Overlap tail length in samples (len1)."""
        return self.frame_length * OVERLAP_PERCENT // 100

    @property
    def hop(self) -> int:
        """Hop length in samples (len2)."""
        return self.frame_length - self.overlap

    @property
    def nfft(self) -> int:
        """FFT size, twice the frame length."""
        return 2 * self.frame_length

    @property
    def audio_window(self) -> bool:
        """Hann window for audio-rate streams, rectangular for wide IF."""
        return self.sample_rate <= AUDIO_WINDOW_MAX_RATE

    @property
    def audio_regime(self) -> bool:
        """Adaptive floor tracking (True) or percentile selection (False)."""
        return self.nfft < AUDIO_REGIME_MAX_NFFT

    @property
    def history_capacity(self) -> int:
        """Number of magnitude frames kept in the noise history."""
        return 2000 if self.nfft < SHORT_HISTORY_MIN_NFFT else 200

    @property
    def bootstrap_samples(self) -> int:
        """Samples consumed by ``sample`` to seed the noise floor."""
        return self.noise_frames * self.frame_length

    def with_bandwidth(self, bandwidth: float) -> "NRConfig":
        """Return a validated copy with a new bandwidth."""
        return replace(self, bandwidth=bandwidth)
