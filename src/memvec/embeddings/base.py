from dataclasses import dataclass, field
from typing import Generic, Protocol, TypeVar

from memvec.observability.base import MetricsHook

RecordT = TypeVar("RecordT")


@dataclass(frozen=True)
class Embedding:
    vector: list[float]


class EmbeddingsClient(Protocol):
    metrics_hook: MetricsHook

    async def embed(self, texts: list[str]) -> list[Embedding]: ...


@dataclass(frozen=True)
class EmbeddingFailure(Generic[RecordT]):
    index: int
    record: RecordT
    error: Exception


@dataclass(frozen=True)
class FanOutResult(Generic[RecordT]):
    """Records that received a vector, and those whose embedding failed."""

    records: list[RecordT] = field(default_factory=list)
    failures: list[EmbeddingFailure[RecordT]] = field(default_factory=list)
