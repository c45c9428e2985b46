# src/memvec/observability/names.py

"""Standard metric names for memvec observability.

Use these constants instead of hardcoded strings for consistency
across the codebase.

Note: All duration metrics are in milliseconds by convention.
Units are handled by the metrics backend (e.g., converted to seconds in Prometheus).
"""

# ============================================================================
# Collection Metrics (in-memory)
# ============================================================================

# Duration
COLLECTION_UPSERT_DURATION = "collection_upsert_duration"
COLLECTION_GET_DURATION = "collection_get_duration"
COLLECTION_DELETE_DURATION = "collection_delete_duration"
COLLECTION_SEARCH_DURATION = "collection_search_duration"

# Counters
COLLECTION_OPERATIONS_TOTAL = "collection_operations_total"
COLLECTION_ERRORS_TOTAL = "collection_errors_total"

# Gauges
COLLECTION_RECORD_COUNT = "collection_record_count"
SEARCH_CANDIDATES_SCORED = "search_candidates_scored"


# ============================================================================
# Vector Store Metrics
# ============================================================================

# Counters
VECTORSTORE_COLLECTIONS_CREATED = "vectorstore_collections_created"
VECTORSTORE_COLLECTIONS_DELETED = "vectorstore_collections_deleted"


# ============================================================================
# Embeddings Fan-out Metrics
# ============================================================================

# Duration
EMBEDDINGS_FANOUT_DURATION = "embeddings_fanout_duration"

# Counters
EMBEDDINGS_REQUESTS_TOTAL = "embeddings_requests_total"
EMBEDDINGS_ERRORS_TOTAL = "embeddings_errors_total"
