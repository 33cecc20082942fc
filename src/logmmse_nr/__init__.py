"""Streaming LogMMSE noise reduction - framing, FFT, noise floor, gain, overlap-add."""

from logmmse_nr.dsp.config import NRConfig
from logmmse_nr.errors import BackendError, ConfigError, NotBootstrapped, NRError
from logmmse_nr.session import LogMMSESession, NRStats

__version__ = "0.1.0"

__all__ = [
    "NRConfig",
    "LogMMSESession",
    "NRStats",
    "NRError",
    "ConfigError",
    "NotBootstrapped",
    "BackendError",
]
