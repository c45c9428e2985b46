# tests/unit/vectorstores/test_inmemorycollection.py

from concurrent.futures import ThreadPoolExecutor
from typing import Annotated, Any

import pytest
from pydantic import BaseModel

from memvec.observability import InMemoryMetricsHook, names
from memvec.vectorstores import (
    CollectionNotFoundError,
    DimensionMismatchError,
    EqualTo,
    InMemoryCollection,
    InvalidFilterFieldError,
    InvalidRecordError,
    KeyField,
    RecordSchema,
    SimilarityMetric,
    VectorField,
)

EXTERNAL = "External Definitions"

GlossaryCollection = InMemoryCollection[int, dict[str, Any]]


class Article(BaseModel):
    id: Annotated[str, KeyField()]
    title: str
    title_embedding: Annotated[list[float], VectorField(dimensions=2)]


def _points_schema(metric: SimilarityMetric) -> RecordSchema:
    return RecordSchema(
        key=KeyField("id", int),
        vectors=[VectorField("point", dimensions=2, metric=metric)],
    )


class TestLifecycle:
    def test_ensure_exists_is_idempotent(
        self, glossary_schema: RecordSchema
    ) -> None:
        collection: GlossaryCollection = InMemoryCollection("c", glossary_schema)
        assert not collection.exists()

        collection.ensure_exists()
        collection.upsert({"key": 1, "definition_embedding": [1.0, 0.0, 0.0]})
        collection.ensure_exists()

        assert collection.exists()
        assert collection.count() == 1

    def test_operations_before_creation_raise(
        self, glossary_schema: RecordSchema
    ) -> None:
        collection: GlossaryCollection = InMemoryCollection("c", glossary_schema)

        with pytest.raises(CollectionNotFoundError, match="'c' does not exist"):
            collection.upsert({"key": 1, "definition_embedding": [1.0, 0.0, 0.0]})
        with pytest.raises(CollectionNotFoundError):
            collection.get(1)
        with pytest.raises(CollectionNotFoundError):
            collection.search([1.0, 0.0, 0.0], top_k=1)

    def test_ensure_deleted_drops_records(self, glossary: GlossaryCollection) -> None:
        glossary.ensure_deleted()
        glossary.ensure_deleted()

        assert not glossary.exists()
        with pytest.raises(CollectionNotFoundError):
            glossary.count()

        glossary.ensure_exists()
        assert glossary.count() == 0


class TestUpsertAndGet:
    def test_round_trip(
        self, glossary: GlossaryCollection, glossary_records: list[dict[str, Any]]
    ) -> None:
        for record in glossary_records:
            assert glossary.get(record["key"]) == record

    def test_get_missing_returns_none(self, glossary: GlossaryCollection) -> None:
        assert glossary.get(42) is None

    def test_returned_records_are_copies(self, glossary: GlossaryCollection) -> None:
        record = glossary.get(1)
        assert record is not None
        record["term"] = "changed"
        record["definition_embedding"][0] = 99.0

        assert glossary.get(1)["term"] == "API"  # type: ignore[index]
        assert glossary.get(1)["definition_embedding"] == [1.0, 0.0, 0.0]  # type: ignore[index]

    def test_caller_mutation_after_upsert_is_not_stored(
        self, glossary: GlossaryCollection
    ) -> None:
        record = {"key": 9, "term": "x", "definition_embedding": [0.0, 0.0, 1.0]}
        glossary.upsert(record)
        record["term"] = "y"
        record["definition_embedding"][2] = 5.0

        stored = glossary.get(9)
        assert stored is not None
        assert stored["term"] == "x"
        assert stored["definition_embedding"] == [0.0, 0.0, 1.0]

    def test_upsert_replaces_whole_record(self, glossary: GlossaryCollection) -> None:
        """Upsert is a full replace, not a merge."""
        key = glossary.upsert({"key": 1, "definition_embedding": [0.0, 0.0, 1.0]})

        assert key == 1
        assert glossary.get(1) == {
            "key": 1,
            "category": None,
            "term": None,
            "definition": None,
            "definition_embedding": [0.0, 0.0, 1.0],
        }
        assert glossary.count() == 3

    def test_wrong_dimension_leaves_state_unchanged(
        self, glossary: GlossaryCollection, glossary_records: list[dict[str, Any]]
    ) -> None:
        with pytest.raises(DimensionMismatchError):
            glossary.upsert({"key": 1, "definition_embedding": [1.0, 0.0]})

        assert glossary.get(1) == glossary_records[0]
        assert glossary.count() == 3

    def test_upsert_many_reports_per_record(
        self, glossary: GlossaryCollection
    ) -> None:
        outcomes = glossary.upsert_many(
            [
                {"key": 10, "definition_embedding": [1.0, 1.0, 0.0]},
                {"key": 11, "definition_embedding": [1.0, 1.0]},
                {"key": "12", "definition_embedding": [1.0, 1.0, 1.0]},
                {"key": 13, "definition_embedding": [0.0, 1.0, 1.0]},
            ]
        )

        assert [o.ok for o in outcomes] == [True, False, False, True]
        assert [o.key for o in outcomes] == [10, None, None, 13]
        assert isinstance(outcomes[1].error, DimensionMismatchError)
        assert isinstance(outcomes[2].error, InvalidRecordError)
        assert glossary.count() == 5
        assert glossary.get(11) is None

    def test_upsert_many_last_duplicate_wins(
        self, glossary: GlossaryCollection
    ) -> None:
        glossary.upsert_many(
            [
                {"key": 20, "term": "first", "definition_embedding": [1.0, 0.0, 0.0]},
                {"key": 20, "term": "second", "definition_embedding": [1.0, 0.0, 0.0]},
            ]
        )

        assert glossary.get(20)["term"] == "second"  # type: ignore[index]

    def test_empty_upsert_many(self, glossary: GlossaryCollection) -> None:
        assert glossary.upsert_many([]) == []
        assert glossary.count() == 3

    def test_get_many_keeps_order_and_skips_missing(
        self, glossary: GlossaryCollection
    ) -> None:
        records = glossary.get_many([3, 42, 1])
        assert [r["key"] for r in records] == [3, 1]

    def test_lookup_with_wrong_key_type_finds_nothing(
        self, glossary: GlossaryCollection
    ) -> None:
        """True == 1 in Python, but it is not a valid int key."""
        assert glossary.get(True) is None  # type: ignore[arg-type]
        assert glossary.get("1") is None  # type: ignore[arg-type]
        assert glossary.get_many([True, "3", 3]) == [glossary.get(3)]  # type: ignore[list-item]

    def test_upsert_many_on_missing_collection_validates_nothing(
        self, glossary_schema: RecordSchema
    ) -> None:
        hook = InMemoryMetricsHook()
        collection: GlossaryCollection = InMemoryCollection(
            "c", glossary_schema, metrics_hook=hook
        )

        with pytest.raises(CollectionNotFoundError):
            collection.upsert_many(
                [
                    {"key": 1, "definition_embedding": [1.0]},
                    {"key": 2, "definition_embedding": [1.0, 0.0, 0.0]},
                ]
            )

        assert hook.counters[names.COLLECTION_ERRORS_TOTAL] == 0
        assert not collection.exists()


class TestDelete:
    def test_delete_existing(self, glossary: GlossaryCollection) -> None:
        assert glossary.delete(2) is True
        assert glossary.get(2) is None
        assert glossary.count() == 2

    def test_delete_missing_is_a_noop(
        self, glossary: GlossaryCollection, glossary_records: list[dict[str, Any]]
    ) -> None:
        assert glossary.delete(42) is False
        assert glossary.delete(42) is False
        assert glossary.get_many([1, 2, 3]) == glossary_records

    def test_delete_many(self, glossary: GlossaryCollection) -> None:
        assert glossary.delete_many([1, 3, 42]) == 2
        assert [r["key"] for r in glossary.get_many([1, 2, 3])] == [2]

    def test_delete_with_wrong_key_type_removes_nothing(
        self, glossary: GlossaryCollection
    ) -> None:
        assert glossary.delete(True) is False  # type: ignore[arg-type]
        assert glossary.delete_many([True, "2"]) == 0  # type: ignore[list-item]
        assert glossary.count() == 3
        assert glossary.get(1) is not None


class TestSearch:
    def test_identical_vector_ranks_first(self, glossary: GlossaryCollection) -> None:
        results = glossary.search([1.0, 0.0, 0.0], top_k=1)

        assert len(results) == 1
        assert results[0].record["key"] == 1
        assert results[0].score == pytest.approx(1.0)

    def test_results_are_best_first(self, glossary: GlossaryCollection) -> None:
        results = glossary.search([1.0, 0.0, 0.0], top_k=3)

        assert [r.record["key"] for r in results] == [1, 3, 2]
        scores = [r.score for r in results]
        assert scores == sorted(scores, reverse=True)
        assert scores[2] == pytest.approx(0.0)

    def test_filter_restricts_candidates(self, glossary: GlossaryCollection) -> None:
        results = glossary.search(
            [1.0, 0.0, 0.0], top_k=3, filters=EqualTo("category", EXTERNAL)
        )

        assert [r.record["key"] for r in results] == [1, 3]
        assert all(r.record["category"] == EXTERNAL for r in results)

    def test_mapping_filter(self, glossary: GlossaryCollection) -> None:
        results = glossary.search(
            [0.0, 1.0, 0.0], top_k=10, filters={"category": EXTERNAL}
        )
        assert [r.record["key"] for r in results] == [3, 1]

    def test_filter_on_unindexed_field_raises(
        self, glossary: GlossaryCollection
    ) -> None:
        with pytest.raises(InvalidFilterFieldError):
            glossary.search([1.0, 0.0, 0.0], top_k=3, filters={"term": "API"})

    def test_top_k_bounds_results(self, glossary: GlossaryCollection) -> None:
        assert len(glossary.search([0.0, 0.0, 1.0], top_k=2)) == 2
        assert len(glossary.search([0.0, 0.0, 1.0], top_k=50)) == 3

    def test_top_k_must_be_positive(self, glossary: GlossaryCollection) -> None:
        with pytest.raises(ValueError, match="top_k must be at least 1"):
            glossary.search([1.0, 0.0, 0.0], top_k=0)

    def test_query_dimension_must_match(self, glossary: GlossaryCollection) -> None:
        with pytest.raises(DimensionMismatchError):
            glossary.search([1.0, 0.0], top_k=1)

    @pytest.mark.parametrize(
        "query",
        [
            [float("nan"), 1.0, 0.0],
            [float("inf"), 0.0, 0.0],
            [0.0, float("-inf"), 0.0],
        ],
    )
    def test_non_finite_query_is_rejected(
        self, glossary: GlossaryCollection, query: list[float]
    ) -> None:
        with pytest.raises(ValueError, match="Invalid query vector"):
            glossary.search(query, top_k=3)

    def test_cosine_score_never_exceeds_one(self) -> None:
        collection: InMemoryCollection[int, dict[str, Any]] = InMemoryCollection(
            "points", _points_schema(SimilarityMetric.COSINE_SIMILARITY)
        )
        collection.ensure_exists()
        collection.upsert_many(
            [{"id": 1, "point": [0.1, 0.7]}, {"id": 2, "point": [0.7, 0.1]}]
        )

        results = collection.search([0.1, 0.7], top_k=2)

        assert results[0].record["id"] == 1
        assert all(-1.0 <= r.score <= 1.0 for r in results)
        assert results[0].score == pytest.approx(1.0)

    def test_empty_collection_returns_no_results(
        self, glossary_schema: RecordSchema
    ) -> None:
        collection: GlossaryCollection = InMemoryCollection("empty", glossary_schema)
        collection.ensure_exists()

        assert collection.search([1.0, 0.0, 0.0], top_k=5) == []

    def test_ties_are_ordered_by_key(self) -> None:
        collection: InMemoryCollection[int, dict[str, Any]] = InMemoryCollection(
            "points", _points_schema(SimilarityMetric.COSINE_SIMILARITY)
        )
        collection.ensure_exists()
        collection.upsert_many(
            [{"id": k, "point": [1.0, 1.0]} for k in (5, 3, 9, 1)]
        )

        results = collection.search([1.0, 1.0], top_k=4)
        assert [r.record["id"] for r in results] == [1, 3, 5, 9]

    def test_skip_pages_through_results(self, glossary: GlossaryCollection) -> None:
        results = glossary.search([1.0, 0.0, 0.0], top_k=1, skip=1)
        assert [r.record["key"] for r in results] == [3]

        with pytest.raises(ValueError, match="skip"):
            glossary.search([1.0, 0.0, 0.0], top_k=1, skip=-1)

    def test_distance_metrics_rank_smallest_first(self) -> None:
        collection: InMemoryCollection[int, dict[str, Any]] = InMemoryCollection(
            "points", _points_schema(SimilarityMetric.EUCLIDEAN_DISTANCE)
        )
        collection.ensure_exists()
        collection.upsert_many(
            [
                {"id": 1, "point": [3.0, 4.0]},
                {"id": 2, "point": [1.0, 0.0]},
                {"id": 3, "point": [0.0, 0.0]},
            ]
        )

        results = collection.search([0.0, 0.0], top_k=3)

        assert [r.record["id"] for r in results] == [3, 2, 1]
        assert [r.score for r in results] == pytest.approx([0.0, 1.0, 5.0])

    def test_dot_product_ranks_largest_first(self) -> None:
        collection: InMemoryCollection[int, dict[str, Any]] = InMemoryCollection(
            "points", _points_schema(SimilarityMetric.DOT_PRODUCT)
        )
        collection.ensure_exists()
        collection.upsert_many(
            [{"id": 1, "point": [1.0, 0.0]}, {"id": 2, "point": [2.0, 0.0]}]
        )

        results = collection.search([1.0, 0.0], top_k=2)
        assert [(r.record["id"], r.score) for r in results] == [(2, 2.0), (1, 1.0)]

    def test_multiple_vector_fields_require_a_choice(self) -> None:
        schema = RecordSchema(
            key=KeyField("id", int),
            vectors=[
                VectorField("text", dimensions=2),
                VectorField("image", dimensions=3),
            ],
        )
        collection: InMemoryCollection[int, dict[str, Any]] = InMemoryCollection(
            "multi", schema
        )
        collection.ensure_exists()
        collection.upsert_many(
            [
                {"id": 1, "text": [1.0, 0.0], "image": [0.0, 0.0, 1.0]},
                {"id": 2, "text": [0.0, 1.0], "image": [1.0, 0.0, 0.0]},
            ]
        )

        with pytest.raises(ValueError, match="vector_field"):
            collection.search([1.0, 0.0], top_k=1)

        by_text = collection.search([1.0, 0.0], top_k=1, vector_field="text")
        by_image = collection.search([1.0, 0.0, 0.0], top_k=1, vector_field="image")
        assert by_text[0].record["id"] == 1
        assert by_image[0].record["id"] == 2


class TestModelRecords:
    def test_model_round_trip_and_search(self) -> None:
        collection: InMemoryCollection[str, Article] = InMemoryCollection(
            "articles", RecordSchema.from_model(Article)
        )
        collection.ensure_exists()
        first = Article(id="a", title="First", title_embedding=[1.0, 0.0])
        second = Article(id="b", title="Second", title_embedding=[0.0, 1.0])
        collection.upsert_many([first, second])

        fetched = collection.get("a")
        results = collection.search([0.0, 1.0], top_k=1)

        assert isinstance(fetched, Article)
        assert fetched.model_dump() == first.model_dump()
        assert isinstance(results[0].record, Article)
        assert results[0].record.id == "b"

    def test_rejects_plain_mappings(self) -> None:
        collection: InMemoryCollection[str, Article] = InMemoryCollection(
            "articles", RecordSchema.from_model(Article)
        )
        collection.ensure_exists()

        with pytest.raises(InvalidRecordError):
            collection.upsert({"id": "a", "title": "x", "title_embedding": [1.0, 0.0]})  # type: ignore[arg-type]


class TestConcurrency:
    def test_concurrent_upserts_and_searches(self) -> None:
        collection: InMemoryCollection[int, dict[str, Any]] = InMemoryCollection(
            "points", _points_schema(SimilarityMetric.COSINE_SIMILARITY)
        )
        collection.ensure_exists()

        def write(i: int) -> int:
            return collection.upsert({"id": i, "point": [float(i), 1.0]})

        def read(_: int) -> int:
            results = collection.search([1.0, 1.0], top_k=5)
            for result in results:
                assert len(result.record["point"]) == 2
            return len(results)

        with ThreadPoolExecutor(max_workers=8) as pool:
            written = list(pool.map(write, range(200)))
            read_counts = list(pool.map(read, range(50)))

        assert sorted(written) == list(range(200))
        assert all(count == 5 for count in read_counts)
        assert collection.count() == 200

    def test_same_key_writes_leave_one_record(self) -> None:
        collection: InMemoryCollection[int, dict[str, Any]] = InMemoryCollection(
            "points", _points_schema(SimilarityMetric.COSINE_SIMILARITY)
        )
        collection.ensure_exists()

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(
                pool.map(
                    lambda i: collection.upsert({"id": 1, "point": [float(i), 1.0]}),
                    range(100),
                )
            )

        assert collection.count() == 1
        stored = collection.get(1)
        assert stored is not None
        assert stored["point"][1] == 1.0


class TestMetrics:
    def test_operations_are_recorded(self, glossary_schema: RecordSchema) -> None:
        hook = InMemoryMetricsHook()
        collection: GlossaryCollection = InMemoryCollection(
            "c", glossary_schema, metrics_hook=hook
        )
        collection.ensure_exists()
        collection.upsert({"key": 1, "definition_embedding": [1.0, 0.0, 0.0]})
        with pytest.raises(DimensionMismatchError):
            collection.upsert({"key": 2, "definition_embedding": [1.0]})
        collection.search([1.0, 0.0, 0.0], top_k=1)

        assert hook.counters[names.VECTORSTORE_COLLECTIONS_CREATED] == 1
        assert hook.counters[names.COLLECTION_OPERATIONS_TOTAL] == 2
        assert hook.counters[names.COLLECTION_ERRORS_TOTAL] == 1
        assert len(hook.latencies[names.COLLECTION_SEARCH_DURATION]) == 1
        assert hook.gauges[names.COLLECTION_RECORD_COUNT] == 1

    def test_candidates_scored_counts_filtered_records(
        self, glossary_schema: RecordSchema, glossary_records: list[dict[str, Any]]
    ) -> None:
        hook = InMemoryMetricsHook()
        collection: GlossaryCollection = InMemoryCollection(
            "c", glossary_schema, metrics_hook=hook
        )
        collection.ensure_exists()
        collection.upsert_many(glossary_records)

        collection.search([1.0, 0.0, 0.0], top_k=1, filters={"category": EXTERNAL})
        assert hook.gauges[names.SEARCH_CANDIDATES_SCORED] == 2

        collection.search([1.0, 0.0, 0.0], top_k=1, filters={"category": "none"})
        assert hook.gauges[names.SEARCH_CANDIDATES_SCORED] == 0
