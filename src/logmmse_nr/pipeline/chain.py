"""Block chain: stream -> [blocks...] -> output.

Blocks live in a list owned by the chain and are addressed by index;
each has an enabled flag, and disabled blocks are skipped. The LogMMSE
block wraps a session and bootstraps itself from the head of the stream.

Streaming: fixed-size chunks pulled from any iterator.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Iterable, Iterator, List, Optional, Protocol

import numpy as np

from logmmse_nr.dsp.config import NRConfig
from logmmse_nr.session import LogMMSESession, NRStats

logger = logging.getLogger(__name__)


@dataclass
class StreamingConfig:
    """Chunking parameters for streaming a signal through a chain."""

    chunk_sec: float = 0.1
    sample_rate: float = 48_000

    @property
    def chunk_samples(self) -> int:
        return max(1, int(self.chunk_sec * self.sample_rate))


class Block(Protocol):
    """Anything with ``process(samples) -> samples`` and ``reset()``."""

    def process(self, samples: np.ndarray) -> np.ndarray: ...

    def reset(self) -> None: ...


class PassthroughBlock:
    """Returns its input unchanged."""

    def process(self, samples: np.ndarray) -> np.ndarray:
        return np.asarray(samples)

    def reset(self) -> None:
        pass


class LogMMSEBlock:
    """LogMMSE noise reduction as a chain block.

    The first ``noise_frames * frame_length`` samples of the stream seed the
    noise floor (no output is produced for them); everything after is
    denoised.

    Interface:
      block = LogMMSEBlock(NRConfig(sample_rate=48_000, bandwidth=8_000))
      out = block.process(chunk)
      block.set_bandwidth(10_000)   # re-collects the bootstrap segment
    """

    def __init__(self, config: Optional[NRConfig] = None):
        self.session = LogMMSESession.from_config(config or NRConfig())
        self._collected: List[np.ndarray] = []
        self._collected_len = 0

    @property
    def config(self) -> NRConfig:
        return self.session.config

    def set_bandwidth(self, bandwidth: float) -> None:
        self.session.set_bandwidth(bandwidth)
        self._drop_collected()

    def set_hold(self, hold: bool) -> None:
        self.session.set_hold(hold)

    def stats(self) -> NRStats:
        return self.session.stats()

    def reset(self) -> None:
        self.session.reset()
        self._drop_collected()

    def _drop_collected(self) -> None:
        self._collected = []
        self._collected_len = 0

    def process(self, samples: np.ndarray) -> np.ndarray:
        samples = np.asarray(samples)
        if self.session.bootstrapped:
            return self.session.process(samples)

        self._collected.append(samples)
        self._collected_len += len(samples)
        needed = self.config.bootstrap_samples
        if self._collected_len < needed:
            return np.zeros(0, dtype=np.complex128 if np.iscomplexobj(samples) else np.float64)

        stream = np.concatenate(self._collected)
        self._drop_collected()
        logger.debug("Collected %d samples, bootstrapping", len(stream))
        self.session.sample(stream[:needed])
        return self.session.process(stream[needed:])


class BlockChain:
    """Ordered blocks with per-block enable flags.

    Interface:
      chain = BlockChain()
      nr = chain.add(LogMMSEBlock(config))
      chain.set_state(nr, False)     # bypass without removing
      out = chain.process(chunk)
    """

    def __init__(self) -> None:
        self._blocks: List[Block] = []
        self._enabled: List[bool] = []

    def __len__(self) -> int:
        return len(self._blocks)

    def add(self, block: Block, enabled: bool = True) -> int:
        """Append a block; return its index."""
        self._blocks.append(block)
        self._enabled.append(bool(enabled))
        return len(self._blocks) - 1

    def block(self, index: int) -> Block:
        return self._blocks[index]

    def is_enabled(self, index: int) -> bool:
        return self._enabled[index]

    def set_state(self, index: int, enabled: bool) -> None:
        """Enable or bypass a block; a block is reset when it is re-enabled."""
        if enabled and not self._enabled[index]:
            self._blocks[index].reset()
        self._enabled[index] = bool(enabled)

    def process(self, samples: np.ndarray) -> np.ndarray:
        out = np.asarray(samples)
        for block, enabled in zip(self._blocks, self._enabled):
            if enabled:
                out = block.process(out)
        return out

    def reset(self) -> None:
        for block in self._blocks:
            block.reset()

    def run(self, chunks: Iterable[np.ndarray]) -> Iterator[np.ndarray]:
        """Process chunks in order, yielding each non-empty output."""
        for chunk in chunks:
            out = self.process(chunk)
            if len(out):
                yield out


def iter_chunks(signal: np.ndarray, chunk_samples: int) -> Iterator[np.ndarray]:
    """Split ``signal`` into consecutive chunks of ``chunk_samples``."""
    for start in range(0, len(signal), chunk_samples):
        yield signal[start : start + chunk_samples]
