"""Analysis windows."""

import numpy as np
from scipy.signal import windows

from logmmse_nr.dsp.config import NRConfig


def analysis_window(config: NRConfig) -> np.ndarray:
    """Build the fixed analysis window for a configuration.

    Audio-rate streams get a symmetric Hann window scaled so that its sum
    equals the hop length, which gives unit gain after 50% overlap-add.
    Wide IF streams use a rectangular window; overlapping frames then sum
    to twice the input.
    """
    slen = config.frame_length
    if config.audio_window:
        win = windows.hann(slen, sym=True)
        return win * config.hop / np.sum(win)
    return np.ones(slen, dtype=np.float64)
