"""In-memory collection with exact brute-force vector search."""

import logging
import threading
from collections.abc import Iterable, Mapping, Sequence
from time import monotonic
from types import MappingProxyType
from typing import Any, Generic, TypeVar

import numpy as np

from memvec.observability import names
from memvec.observability.base import MetricsHook, NoOpMetricsHook

from .base import VectorStoreCollection
from .errors import CollectionNotFoundError, VectorStoreError
from .filters import FilterExpression, from_mapping, validate_filter
from .schema import RecordSchema
from .search import StoredRecord, search_records
from .types import SearchResult, UpsertOutcome

logger = logging.getLogger(__name__)

KeyT = TypeVar("KeyT")
RecordT = TypeVar("RecordT")


class InMemoryCollection(VectorStoreCollection, Generic[KeyT, RecordT]):
    """A named, schema-bound set of records held in process memory.

    Writes are serialized by a per-collection lock. Reads copy a snapshot of
    the stored entries under the lock and do their work outside it; entries
    are immutable and replaced wholesale, so a reader never sees a partially
    written record.

    Example:
        >>> collection = InMemoryCollection("glossary", schema)
        >>> collection.ensure_exists()
        >>> collection.upsert({"key": 1, "category": "Ext", "embedding": [1.0, 0.0]})
        >>> results = collection.search([1.0, 0.0], top_k=1)
    """

    def __init__(
        self,
        name: str,
        schema: RecordSchema,
        metrics_hook: MetricsHook = NoOpMetricsHook(),
    ) -> None:
        self.name = name
        self.schema = schema
        self.metrics_hook = metrics_hook
        self._lock = threading.Lock()
        # None until ensure_exists() is called, and again after a drop.
        self._records: dict[KeyT, StoredRecord] | None = None

    def exists(self) -> bool:
        with self._lock:
            return self._records is not None

    def ensure_exists(self) -> None:
        with self._lock:
            if self._records is not None:
                return
            self._records = {}
        logger.info("Created collection %s", self.name)
        self.metrics_hook.increment(names.VECTORSTORE_COLLECTIONS_CREATED)

    def ensure_deleted(self) -> None:
        with self._lock:
            if self._records is None:
                return
            dropped = len(self._records)
            self._records = None
        logger.info("Dropped collection %s with %d records", self.name, dropped)
        self.metrics_hook.increment(names.VECTORSTORE_COLLECTIONS_DELETED)

    def upsert(self, record: RecordT) -> KeyT:
        """
        Insert or fully replace a record by key.

        Returns:
            The key written.

        Raises:
            DimensionMismatchError: a vector has the wrong length.
            InvalidRecordError: the record does not match the schema.
            CollectionNotFoundError: the collection has not been created.
        """
        start = monotonic()
        try:
            stored = self._to_stored(record)
        except VectorStoreError:
            self._record_error("upsert")
            raise

        with self._lock:
            records = self._require_records()
            records[stored.key] = stored
            size = len(records)

        logger.debug("Upserted key %r into %s", stored.key, self.name)
        self._record_operation("upsert", names.COLLECTION_UPSERT_DURATION, start)
        self.metrics_hook.record_gauge(
            names.COLLECTION_RECORD_COUNT, size, labels={"collection": self.name}
        )
        return stored.key

    def upsert_many(self, records: Iterable[RecordT]) -> list[UpsertOutcome]:
        """
        Insert or replace a batch of records, reporting per-record outcomes.

        Invalid records are reported in their outcome and skipped; every
        valid record is written in a single critical section. When a key
        appears more than once in the batch the last occurrence wins.

        Returns:
            One UpsertOutcome per input record, in input order.
        """
        start = monotonic()
        with self._lock:
            self._require_records()

        outcomes: list[UpsertOutcome] = []
        staged: list[StoredRecord] = []

        for index, record in enumerate(records):
            try:
                stored = self._to_stored(record)
            except VectorStoreError as exc:
                logger.warning(
                    "Skipping record %d in upsert to %s: %s", index, self.name, exc
                )
                self._record_error("upsert")
                outcomes.append(UpsertOutcome(index=index, error=exc))
                continue
            staged.append(stored)
            outcomes.append(UpsertOutcome(index=index, key=stored.key))

        with self._lock:
            target = self._require_records()
            for stored in staged:
                target[stored.key] = stored
            size = len(target)

        logger.info(
            "Upserted %d of %d records into %s", len(staged), len(outcomes), self.name
        )
        self._record_operation("upsert_many", names.COLLECTION_UPSERT_DURATION, start)
        self.metrics_hook.record_gauge(
            names.COLLECTION_RECORD_COUNT, size, labels={"collection": self.name}
        )
        return outcomes

    def get(self, key: KeyT) -> RecordT | None:
        """Return a copy of the record stored under `key`, or None."""
        start = monotonic()
        with self._lock:
            records = self._require_records()
            stored = records.get(key) if self.schema.matches_key(key) else None

        self._record_operation("get", names.COLLECTION_GET_DURATION, start)
        if stored is None:
            return None
        record: RecordT = self.schema.from_payload(stored.payload)
        return record

    def get_many(self, keys: Iterable[KeyT]) -> list[RecordT]:
        """Return copies of the records found, in the order of `keys`."""
        start = monotonic()
        key_list = list(keys)
        with self._lock:
            records = self._require_records()
            found = [
                records[k]
                for k in key_list
                if self.schema.matches_key(k) and k in records
            ]

        self._record_operation("get_many", names.COLLECTION_GET_DURATION, start)
        return [self.schema.from_payload(stored.payload) for stored in found]

    def delete(self, key: KeyT) -> bool:
        start = monotonic()
        with self._lock:
            records = self._require_records()
            removed = (
                self.schema.matches_key(key) and records.pop(key, None) is not None
            )

        if removed:
            logger.debug("Deleted key %r from %s", key, self.name)
        self._record_operation("delete", names.COLLECTION_DELETE_DURATION, start)
        return removed

    def delete_many(self, keys: Iterable[KeyT]) -> int:
        """Delete every present key; returns how many records were removed."""
        start = monotonic()
        key_list = list(keys)
        with self._lock:
            records = self._require_records()
            deleted = sum(
                1
                for k in key_list
                if self.schema.matches_key(k) and records.pop(k, None) is not None
            )

        logger.debug("Deleted %d records from %s", deleted, self.name)
        self._record_operation("delete_many", names.COLLECTION_DELETE_DURATION, start)
        return deleted

    def count(self) -> int:
        with self._lock:
            return len(self._require_records())

    def search(
        self,
        vector: Sequence[float],
        top_k: int,
        *,
        filters: FilterExpression | Mapping[str, Any] | None = None,
        vector_field: str | None = None,
        skip: int = 0,
    ) -> list[SearchResult[RecordT]]:
        """
        Exact nearest-neighbour search.

        Args:
            vector: Query vector; must match the vector field's dimensions.
            top_k: Maximum number of results to return.
            filters: Filter expression, or a `{field: value}` mapping of
                equality conditions.
            vector_field: Vector field to search; required only when the
                schema declares more than one.
            skip: Number of leading results to drop.

        Returns:
            List of SearchResult, best match first.
        """
        start = monotonic()
        if top_k < 1:
            raise ValueError("top_k must be at least 1")
        if skip < 0:
            raise ValueError("skip must be >= 0")

        field = self.schema.get_vector_field(vector_field)
        query = self.schema.check_query_vector(field, vector)

        filter_expr: FilterExpression | None
        if filters is None:
            filter_expr = None
        elif isinstance(filters, Mapping):
            filter_expr = from_mapping(filters)
        else:
            filter_expr = filters
        if filter_expr is not None:
            validate_filter(filter_expr, self.schema)

        with self._lock:
            snapshot = list(self._require_records().values())

        hits, scored = search_records(
            snapshot,
            query=query,
            vector_field=field,
            top_k=top_k,
            skip=skip,
            filter_expr=filter_expr,
        )

        self._record_operation("search", names.COLLECTION_SEARCH_DURATION, start)
        self.metrics_hook.record_gauge(
            names.SEARCH_CANDIDATES_SCORED,
            scored,
            labels={"collection": self.name},
        )
        return [
            SearchResult(record=self.schema.from_payload(stored.payload), score=score)
            for stored, score in hits
        ]

    def _require_records(self) -> dict[KeyT, StoredRecord]:
        # Caller must hold self._lock.
        if self._records is None:
            logger.error("Collection not found: %s", self.name)
            raise CollectionNotFoundError(self.name)
        return self._records

    def _to_stored(self, record: RecordT) -> StoredRecord:
        payload = self.schema.to_payload(record)
        vectors = {}
        for vector_field in self.schema.vectors:
            arr = np.array(payload[vector_field.name], dtype=np.float64)
            arr.setflags(write=False)
            vectors[vector_field.name] = arr
        return StoredRecord(
            key=payload[self.schema.key.name],
            payload=MappingProxyType(payload),
            vectors=MappingProxyType(vectors),
        )

    def _record_operation(self, operation: str, metric: str, start: float) -> None:
        elapsed_ms = 1000 * (monotonic() - start)
        self.metrics_hook.record_latency(
            metric, elapsed_ms, labels={"collection": self.name}
        )
        self.metrics_hook.increment(
            names.COLLECTION_OPERATIONS_TOTAL,
            labels={"collection": self.name, "operation": operation},
        )

    def _record_error(self, operation: str) -> None:
        self.metrics_hook.increment(
            names.COLLECTION_ERRORS_TOTAL,
            labels={"collection": self.name, "operation": operation},
        )
