"""DSP building blocks: config, windows, FFT, history, floor estimation, gain, framing."""

from logmmse_nr.dsp.config import NRConfig
from logmmse_nr.dsp.fft import FFTEngine
from logmmse_nr.dsp.framing import FrameBuffer, OverlapAdd, frame_count
from logmmse_nr.dsp.gain import exp1, logmmse_gain, repair_zero_bins
from logmmse_nr.dsp.history import NoiseHistory
from logmmse_nr.dsp.noise_floor import moving_average, wide_if_floor
from logmmse_nr.dsp.window import analysis_window

__all__ = [
    "NRConfig",
    "FFTEngine",
    "FrameBuffer",
    "OverlapAdd",
    "frame_count",
    "exp1",
    "logmmse_gain",
    "repair_zero_bins",
    "NoiseHistory",
    "moving_average",
    "wide_if_floor",
    "analysis_window",
]
