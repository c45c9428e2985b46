class VectorStoreError(Exception):
    """Base class for all vector store errors."""


class DimensionMismatchError(VectorStoreError, ValueError):
    def __init__(self, *, expected: int, actual: int, field: str | None = None):
        self.expected = expected
        self.actual = actual
        self.field = field
        target = f"vector field '{field}'" if field else "vector"
        super().__init__(
            f"Dimension mismatch for {target}: expected {expected}, got {actual}"
        )


class InvalidFilterFieldError(VectorStoreError, ValueError):
    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid filter field '{field}': {reason}")


class SchemaMismatchError(VectorStoreError, ValueError):
    def __init__(self, collection_name: str):
        self.collection_name = collection_name
        super().__init__(
            f"Collection '{collection_name}' already exists with a different schema"
        )


class InvalidRecordError(VectorStoreError, ValueError):
    """Raised when a record does not conform to its collection's schema."""


class CollectionNotFoundError(VectorStoreError, LookupError):
    def __init__(self, collection_name: str):
        self.collection_name = collection_name
        super().__init__(f"Collection '{collection_name}' does not exist")
