"""Tests for the block chain, the self-bootstrapping LogMMSE block and the CLI."""

from __future__ import annotations

import sys
import tempfile
import unittest
from pathlib import Path
from typing import List
from unittest import mock

import numpy as np
import scipy.io.wavfile as wavfile

from logmmse_nr import LogMMSESession, NRConfig
from logmmse_nr.cli import main, read_signal
from logmmse_nr.pipeline import (
    BlockChain,
    LogMMSEBlock,
    PassthroughBlock,
    StreamingConfig,
    iter_chunks,
)


def _complex_noise(n: int, sigma: float = 0.1, seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return sigma * (rng.standard_normal(n) + 1j * rng.standard_normal(n))


class _Gain:
    """Toy block: scales its input and counts resets."""

    def __init__(self, gain: float) -> None:
        self.gain = gain
        self.resets = 0

    def process(self, samples: np.ndarray) -> np.ndarray:
        return self.gain * np.asarray(samples)

    def reset(self) -> None:
        self.resets += 1


class TestStreamingConfig(unittest.TestCase):
    def test_chunk_samples(self) -> None:
        self.assertEqual(StreamingConfig(chunk_sec=0.1, sample_rate=16_000).chunk_samples, 1600)
        self.assertEqual(StreamingConfig(chunk_sec=0.0, sample_rate=16_000).chunk_samples, 1)

    def test_iter_chunks(self) -> None:
        chunks: List[np.ndarray] = list(iter_chunks(np.arange(10), 4))
        self.assertEqual([len(c) for c in chunks], [4, 4, 2])
        np.testing.assert_array_equal(np.concatenate(chunks), np.arange(10))


class TestLogMMSEBlock(unittest.TestCase):
    """Self-bootstrapping block: collects the noise head, then denoises."""

    def setUp(self) -> None:
        self.config = NRConfig(sample_rate=16_000, bandwidth=4_000)
        self.signal = _complex_noise(10_000, seed=41)

    def test_collects_bootstrap_then_streams(self) -> None:
        block = LogMMSEBlock(self.config)
        needed = self.config.bootstrap_samples
        self.assertEqual(needed, 1920)

        first = block.process(self.signal[:1000])
        self.assertEqual(len(first), 0)
        self.assertTrue(np.iscomplexobj(first))
        self.assertFalse(block.session.bootstrapped)

        outputs = [first]
        for chunk in iter_chunks(self.signal[1000:], 1000):
            outputs.append(block.process(chunk))
        self.assertTrue(block.session.bootstrapped)
        total = sum(len(o) for o in outputs)
        hop = self.config.hop
        self.assertEqual(total, ((len(self.signal) - needed) // hop) * hop)

    def test_matches_explicit_session(self) -> None:
        block = LogMMSEBlock(self.config)
        streamed = np.concatenate([block.process(c) for c in iter_chunks(self.signal, 700)])

        session = LogMMSESession.from_config(self.config)
        needed = self.config.bootstrap_samples
        session.sample(self.signal[:needed])
        direct = session.process(self.signal[needed:])
        np.testing.assert_allclose(streamed, direct, rtol=0, atol=1e-12)

    def test_real_stream_collects_real(self) -> None:
        block = LogMMSEBlock(self.config)
        out = block.process(np.zeros(100))
        self.assertEqual(out.dtype, np.float64)

    def test_reset_and_bandwidth_recollect(self) -> None:
        block = LogMMSEBlock(self.config)
        block.process(self.signal[:3000])
        self.assertTrue(block.stats().bootstrapped)

        block.reset()
        self.assertFalse(block.stats().bootstrapped)
        self.assertEqual(len(block.process(self.signal[:1000])), 0)

        block.set_bandwidth(6_000)
        self.assertEqual(block.config.bandwidth, 6_000)
        self.assertEqual(len(block.process(self.signal[:1900])), 0)
        self.assertFalse(block.stats().bootstrapped)
        block.process(self.signal[1900:2000])
        self.assertTrue(block.stats().bootstrapped)

    def test_hold(self) -> None:
        block = LogMMSEBlock(self.config)
        block.set_hold(True)
        self.assertTrue(block.stats().hold)


class TestBlockChain(unittest.TestCase):
    def test_blocks_run_in_order(self) -> None:
        chain = BlockChain()
        a = chain.add(_Gain(2.0))
        b = chain.add(PassthroughBlock())
        c = chain.add(_Gain(3.0))
        self.assertEqual((a, b, c), (0, 1, 2))
        self.assertEqual(len(chain), 3)
        np.testing.assert_allclose(chain.process(np.ones(4)), 6.0 * np.ones(4))

    def test_disabled_block_is_bypassed_and_reset_on_enable(self) -> None:
        chain = BlockChain()
        idx = chain.add(_Gain(5.0))
        chain.set_state(idx, False)
        self.assertFalse(chain.is_enabled(idx))
        np.testing.assert_allclose(chain.process(np.ones(3)), np.ones(3))

        block = chain.block(idx)
        chain.set_state(idx, True)
        chain.set_state(idx, True)
        self.assertEqual(block.resets, 1)
        np.testing.assert_allclose(chain.process(np.ones(3)), 5.0 * np.ones(3))

    def test_added_disabled(self) -> None:
        chain = BlockChain()
        idx = chain.add(_Gain(5.0), enabled=False)
        self.assertFalse(chain.is_enabled(idx))

    def test_bypassed_logmmse_block(self) -> None:
        chain = BlockChain()
        nr = chain.add(LogMMSEBlock(NRConfig(sample_rate=16_000, bandwidth=4_000)))
        chain.set_state(nr, False)
        x = _complex_noise(500, seed=42)
        np.testing.assert_array_equal(chain.process(x), x)

    def test_run_skips_empty_outputs(self) -> None:
        config = NRConfig(sample_rate=16_000, bandwidth=4_000)
        chain = BlockChain()
        chain.add(LogMMSEBlock(config))
        signal = _complex_noise(8000, seed=43)
        outputs = list(chain.run(iter_chunks(signal, 1000)))
        self.assertTrue(all(len(o) for o in outputs))
        # Chunk 1 is collected; chunk 2 bootstraps and leaves 80 samples, under one frame.
        self.assertEqual(len(outputs), 6)

    def test_reset_resets_every_block(self) -> None:
        chain = BlockChain()
        blocks = [_Gain(1.0), _Gain(1.0)]
        for block in blocks:
            chain.add(block)
        chain.reset()
        self.assertEqual([b.resets for b in blocks], [1, 1])


class TestCli(unittest.TestCase):
    """WAV in, WAV out through the streaming chain."""

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _run(self, *argv: str) -> None:
        with mock.patch.object(sys, "argv", ["logmmse-nr", *argv]):
            main()

    def test_mono_int16_round_trip(self) -> None:
        rng = np.random.default_rng(44)
        data = (rng.standard_normal(16_000) * 1000).astype(np.int16)
        src = self.tmp / "in.wav"
        dst = self.tmp / "out.wav"
        wavfile.write(str(src), 16_000, data)

        self._run(str(src), "-o", str(dst), "--bandwidth", "4000")

        sr, out = wavfile.read(str(dst))
        self.assertEqual(sr, 16_000)
        self.assertEqual(out.dtype, np.int16)
        self.assertEqual(out.ndim, 1)
        # Everything after the 6-frame noise head comes back.
        self.assertEqual(len(out), 16_000 - 1920)

    def test_stereo_is_iq(self) -> None:
        rng = np.random.default_rng(45)
        data = (rng.standard_normal((16_000, 2)) * 0.05).astype(np.float32)
        src = self.tmp / "iq.wav"
        dst = self.tmp / "iq_out.wav"
        wavfile.write(str(src), 16_000, data)

        sr, signal, dtype = read_signal(src)
        self.assertTrue(np.iscomplexobj(signal))
        self.assertEqual(dtype, np.float32)

        self._run(str(src), "-o", str(dst), "--chunk-sec", "0.05", "--hold-after", "0.5")

        _, out = wavfile.read(str(dst))
        self.assertEqual(out.shape, (16_000 - 1920, 2))
        self.assertEqual(out.dtype, np.float32)
        self.assertTrue(np.all(np.isfinite(out)))

    def test_input_too_short(self) -> None:
        src = self.tmp / "short.wav"
        wavfile.write(str(src), 16_000, np.zeros(1000, dtype=np.int16))
        with self.assertRaises(SystemExit) as ctx:
            self._run(str(src), "-o", str(self.tmp / "x.wav"))
        self.assertEqual(ctx.exception.code, 1)

    def test_invalid_bandwidth(self) -> None:
        src = self.tmp / "in.wav"
        wavfile.write(str(src), 16_000, np.zeros(4000, dtype=np.int16))
        with self.assertRaises(SystemExit) as ctx:
            self._run(str(src), "-o", str(self.tmp / "x.wav"), "--bandwidth", "1e6")
        self.assertEqual(ctx.exception.code, 2)


if __name__ == "__main__":
    unittest.main()
