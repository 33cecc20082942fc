"""Ephraim-Malah log-spectral amplitude (LogMMSE) gain."""

from typing import Optional

import numpy as np
from scipy import special

GAMMA_MAX = 40.0
E1_SMALL = 1e-6
E1_LARGE = 200.0
_TINY = np.finfo(np.float64).tiny


class GainWorkspace:
    """Per-bin scratch arrays reused by ``logmmse_gain`` on every frame."""

    def __init__(self, nfft: int):
        self.nfft = nfft
        self.noise = np.empty(nfft, dtype=np.float64)
        self.gamma = np.empty(nfft, dtype=np.float64)
        self.excess = np.empty(nfft, dtype=np.float64)
        self.ksi = np.empty(nfft, dtype=np.float64)
        self.a = np.empty(nfft, dtype=np.float64)
        self.vk = np.empty(nfft, dtype=np.float64)
        self.e1 = np.empty(nfft, dtype=np.float64)
        self.tmp = np.empty(nfft, dtype=np.float64)
        self.mask = np.empty(nfft, dtype=bool)


def _exp1_into(v: np.ndarray, out: np.ndarray, tmp: np.ndarray, mask: np.ndarray) -> np.ndarray:
    np.clip(v, E1_SMALL, E1_LARGE, out=tmp)
    special.exp1(tmp, out=out)
    np.less_equal(v, E1_LARGE, out=mask)
    np.multiply(out, mask, out=out)

    np.maximum(v, _TINY, out=tmp)
    np.log(tmp, out=tmp)
    np.negative(tmp, out=tmp)
    tmp -= np.euler_gamma
    np.less(v, E1_SMALL, out=mask)
    np.copyto(out, tmp, where=mask)
    return out


def exp1(v: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
    """Exponential integral E1 for non-negative real arguments.

    Uses ``scipy.special.exp1`` on [1e-6, 200], returns 0 above 200 and the
    small-argument expansion ``-euler_gamma - ln v`` below 1e-6. Zero is
    floored at the smallest positive double so the result stays finite.
    """
    v = np.asarray(v, dtype=np.float64)
    if out is None:
        out = np.empty_like(v)
    return _exp1_into(v, out, np.empty_like(v), np.empty(v.shape, dtype=bool))


def repair_zero_bins(magnitude: np.ndarray) -> np.ndarray:
    """Replace each exact zero (from bin 1 on) with the magnitude to its left.

    Runs of zeros inherit the last non-zero value before them. Works in place
    and returns ``magnitude``.
    """
    if magnitude.all():
        return magnitude
    idx = np.where(magnitude != 0, np.arange(len(magnitude)), 0)
    np.maximum.accumulate(idx, out=idx)
    magnitude[:] = magnitude[idx]
    return magnitude


def logmmse_gain(
    magnitude: np.ndarray,
    xk_prev: np.ndarray,
    noise_power: np.ndarray,
    smoothing: float = 0.98,
    ksi_min: float = 10 ** -2.5,
    over_subtraction: float = 1.0,
    gain_ceiling: float = 1.0,
    out: Optional[np.ndarray] = None,
    work: Optional[GainWorkspace] = None,
) -> np.ndarray:
    """Spectral gain for one frame.

    Args:
        magnitude: |X[k]| of the current frame.
        xk_prev: Denoised power spectrum of the previous frame; all zeros
            selects the first-frame a-priori SNR rule.
        noise_power: Per-bin noise power, strictly positive.
        smoothing: Decision-directed weight ``aa``.
        ksi_min: Floor of the a-priori SNR.
        over_subtraction: Scale applied to the noise power.
        gain_ceiling: Upper clip for the returned gain.
        out: Optional buffer for the result.
        work: Scratch arrays; pass one to keep the call allocation-free.

    Returns:
        Gain H[k] in [0, gain_ceiling].
    """
    if work is None:
        work = GainWorkspace(len(magnitude))
    if out is None:
        out = np.empty(len(magnitude), dtype=np.float64)

    noise = np.multiply(noise_power, over_subtraction, out=work.noise)
    gamma = np.multiply(magnitude, magnitude, out=work.gamma)
    np.divide(gamma, noise, out=gamma)
    np.minimum(gamma, GAMMA_MAX, out=gamma)

    excess = np.subtract(gamma, 1.0, out=work.excess)
    np.maximum(excess, 0.0, out=excess)
    excess *= 1.0 - smoothing

    ksi = work.ksi
    if not np.any(xk_prev):
        np.add(excess, smoothing, out=ksi)
    else:
        np.divide(xk_prev, noise, out=ksi)
        ksi *= smoothing
        ksi += excess
        np.maximum(ksi, ksi_min, out=ksi)

    a = np.add(ksi, 1.0, out=work.a)
    np.divide(ksi, a, out=a)
    vk = np.multiply(a, gamma, out=work.vk)

    e1 = _exp1_into(vk, work.e1, work.tmp, work.mask)
    e1 *= 0.5
    np.exp(e1, out=e1)
    np.multiply(a, e1, out=out)
    return np.clip(out, 0.0, gain_ceiling, out=out)
