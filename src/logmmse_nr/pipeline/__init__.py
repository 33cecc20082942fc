"""Block chain wiring around the noise-reduction session."""

from logmmse_nr.pipeline.chain import (
    BlockChain,
    LogMMSEBlock,
    PassthroughBlock,
    StreamingConfig,
    iter_chunks,
)

__all__ = ["BlockChain", "LogMMSEBlock", "PassthroughBlock", "StreamingConfig", "iter_chunks"]
