from .base import Embedding, EmbeddingFailure, EmbeddingsClient, FanOutResult
from .config import EmbedFanOutConfig
from .fanout import embed_records

__all__ = [
    "EmbedFanOutConfig",
    "Embedding",
    "EmbeddingFailure",
    "EmbeddingsClient",
    "FanOutResult",
    "embed_records",
]
