"""Errors surfaced at the noise-reduction core boundary."""


class NRError(Exception):
    """Base class for all noise-reduction errors."""


class ConfigError(NRError, ValueError):
    """Invalid sample rate, bandwidth, over-subtraction or smoothing setting."""


class NotBootstrapped(NRError, RuntimeError):
    """``process`` was called before the noise floor was seeded with ``sample``."""


class BackendError(NRError, RuntimeError):
    """The FFT backend could not build a transform of the requested size."""


__all__ = ["NRError", "ConfigError", "NotBootstrapped", "BackendError"]
