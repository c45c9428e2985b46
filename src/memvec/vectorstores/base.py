from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Protocol

from memvec.observability.base import MetricsHook

from .filters import FilterExpression
from .schema import RecordSchema
from .types import SearchResult, UpsertOutcome


class VectorStoreCollection(Protocol):
    name: str
    schema: RecordSchema
    metrics_hook: MetricsHook

    def exists(self) -> bool: ...

    def ensure_exists(self) -> None: ...

    def ensure_deleted(self) -> None: ...

    def upsert(self, record: Any) -> Any: ...

    def upsert_many(self, records: Iterable[Any]) -> list[UpsertOutcome]: ...

    def get(self, key: Any) -> Any | None: ...

    def get_many(self, keys: Iterable[Any]) -> list[Any]: ...

    def delete(self, key: Any) -> bool:
        """
        Delete a record by key.
        Returns whether a record was removed.
        """
        ...

    def delete_many(self, keys: Iterable[Any]) -> int: ...

    def count(self) -> int: ...

    def search(
        self,
        vector: Sequence[float],
        top_k: int,
        *,
        filters: FilterExpression | Mapping[str, Any] | None = None,
        vector_field: str | None = None,
        skip: int = 0,
    ) -> list[SearchResult[Any]]: ...


class VectorStore(Protocol):
    metrics_hook: MetricsHook

    def get_or_create_collection(
        self, name: str, schema: RecordSchema
    ) -> VectorStoreCollection: ...

    def collection_exists(self, name: str) -> bool: ...

    def list_collection_names(self) -> list[str]: ...

    def delete_collection(self, name: str) -> None: ...
