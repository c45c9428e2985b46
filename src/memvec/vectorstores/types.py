from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from .errors import VectorStoreError

RecordT = TypeVar("RecordT")


@dataclass(frozen=True)
class SearchResult(Generic[RecordT]):
    record: RecordT
    score: float


@dataclass(frozen=True)
class UpsertOutcome:
    """Result of writing one record in a batch upsert."""

    index: int
    key: Any | None = None
    error: VectorStoreError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
