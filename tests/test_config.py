"""Unit tests for NRConfig frame geometry and validation."""

from __future__ import annotations

import unittest

from logmmse_nr import ConfigError, NRConfig


class TestNRConfig(unittest.TestCase):
    """Tests for NRConfig."""

    def test_wide_if_geometry(self) -> None:
        """48 kHz: 960-sample frames, rectangular window, percentile floor."""
        c = NRConfig(sample_rate=48_000, bandwidth=8_000)
        self.assertEqual(c.frame_length, 960)
        self.assertEqual(c.overlap, 480)
        self.assertEqual(c.hop, 480)
        self.assertEqual(c.nfft, 1920)
        self.assertFalse(c.audio_window)
        self.assertFalse(c.audio_regime)
        self.assertEqual(c.history_capacity, 200)
        self.assertEqual(c.bootstrap_samples, 6 * 960)

    def test_audio_geometry(self) -> None:
        """16 kHz: Hann window, adaptive floor, long history."""
        c = NRConfig(sample_rate=16_000, bandwidth=4_000)
        self.assertEqual(c.frame_length, 320)
        self.assertEqual(c.nfft, 640)
        self.assertTrue(c.audio_window)
        self.assertTrue(c.audio_regime)
        self.assertEqual(c.history_capacity, 2000)

    def test_odd_frame_rounded_up(self) -> None:
        """An odd 20 ms frame is rounded up to even."""
        c = NRConfig(sample_rate=8_050, bandwidth=4_000)
        self.assertEqual(c.frame_length, 162)
        self.assertEqual(c.overlap + c.hop, c.frame_length)

    def test_regime_boundaries(self) -> None:
        """24 kHz keeps Hann; nFFT 960 < 1200 stays in the audio regime."""
        c = NRConfig(sample_rate=24_000, bandwidth=12_000)
        self.assertTrue(c.audio_window)
        self.assertTrue(c.audio_regime)
        self.assertEqual(c.history_capacity, 2000)
        c = NRConfig(sample_rate=32_000, bandwidth=12_000)
        self.assertFalse(c.audio_window)
        self.assertFalse(c.audio_regime)
        self.assertEqual(c.history_capacity, 200)

    def test_defaults(self) -> None:
        c = NRConfig()
        self.assertAlmostEqual(c.smoothing, 0.98)
        self.assertAlmostEqual(c.ksi_min, 10 ** -2.5)
        self.assertEqual(c.noise_frames, 6)
        self.assertEqual(c.over_subtraction, 1.0)

    def test_invalid_values(self) -> None:
        """Each invalid field raises ConfigError (a ValueError)."""
        bad = [
            dict(sample_rate=0),
            dict(sample_rate=-48_000),
            dict(bandwidth=0),
            dict(sample_rate=8_000, bandwidth=9_000),
            dict(over_subtraction=0.0),
            dict(smoothing=1.0),
            dict(smoothing=0.0),
            dict(ksi_min=0.0),
            dict(noise_frames=0),
            dict(gain_ceiling=0.0),
            dict(sample_rate=40, bandwidth=10),
        ]
        for kwargs in bad:
            with self.subTest(**kwargs):
                with self.assertRaises(ConfigError):
                    NRConfig(**kwargs)
        with self.assertRaises(ValueError):
            NRConfig(sample_rate=0)

    def test_with_bandwidth(self) -> None:
        c = NRConfig(sample_rate=48_000, bandwidth=8_000)
        c2 = c.with_bandwidth(12_000)
        self.assertEqual(c2.bandwidth, 12_000)
        self.assertEqual(c.bandwidth, 8_000)
        # Bandwidth is recorded only; the geometry follows the sample rate.
        for name in ("frame_length", "hop", "nfft", "history_capacity", "audio_regime"):
            self.assertEqual(getattr(c2, name), getattr(c, name))
        with self.assertRaises(ConfigError):
            c.with_bandwidth(96_000)


if __name__ == "__main__":
    unittest.main()
