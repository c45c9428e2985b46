import logging
import threading
from typing import Any

from memvec.observability.base import MetricsHook, NoOpMetricsHook

from .base import VectorStore
from .errors import SchemaMismatchError
from .inmemorycollection import InMemoryCollection
from .schema import RecordSchema

logger = logging.getLogger(__name__)


class InMemoryVectorStore(VectorStore):
    """Registry of named in-memory collections.

    Collection handles are created on first reference and live as long as
    the store. A name stays bound to the schema it was first requested
    with until the collection is deleted.

    Example:
        >>> store = InMemoryVectorStore()
        >>> glossary = store.get_or_create_collection("glossary", schema)
        >>> glossary.ensure_exists()
    """

    def __init__(self, metrics_hook: MetricsHook = NoOpMetricsHook()) -> None:
        self.metrics_hook = metrics_hook
        self._lock = threading.Lock()
        self._collections: dict[str, InMemoryCollection[Any, Any]] = {}

    def get_or_create_collection(
        self, name: str, schema: RecordSchema
    ) -> InMemoryCollection[Any, Any]:
        """
        Return the collection handle for `name`, creating it if needed.

        The returned handle does not create storage; call `ensure_exists()`.

        Raises:
            SchemaMismatchError: `name` is already bound to a different schema.
        """
        if not name:
            raise ValueError("collection name must be non-empty")

        with self._lock:
            existing = self._collections.get(name)
            if existing is not None:
                if existing.schema != schema:
                    logger.error("Schema mismatch for collection: %s", name)
                    raise SchemaMismatchError(name)
                return existing

            collection: InMemoryCollection[Any, Any] = InMemoryCollection(
                name=name, schema=schema, metrics_hook=self.metrics_hook
            )
            self._collections[name] = collection

        logger.debug("Registered collection handle: %s", name)
        return collection

    def collection_exists(self, name: str) -> bool:
        with self._lock:
            collection = self._collections.get(name)
        return collection is not None and collection.exists()

    def list_collection_names(self) -> list[str]:
        with self._lock:
            collections = list(self._collections.values())
        return sorted(c.name for c in collections if c.exists())

    def delete_collection(self, name: str) -> None:
        """Drop a collection and release its name. No-op for unknown names."""
        with self._lock:
            collection = self._collections.pop(name, None)
        if collection is None:
            logger.debug("Delete of unknown collection ignored: %s", name)
            return
        collection.ensure_deleted()
