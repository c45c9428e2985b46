from typing import Any

import pytest

from memvec.vectorstores import (
    DataField,
    InMemoryCollection,
    KeyField,
    RecordSchema,
    VectorField,
)

EXTERNAL = "External Definitions"
CORE = "Core Definitions"


@pytest.fixture
def glossary_schema() -> RecordSchema:
    return RecordSchema(
        key=KeyField("key", int),
        data=[
            DataField("category", indexed=True),
            DataField("term"),
            DataField("definition"),
        ],
        vectors=[VectorField("definition_embedding", dimensions=3)],
    )


@pytest.fixture
def glossary_records() -> list[dict[str, Any]]:
    return [
        {
            "key": 1,
            "category": EXTERNAL,
            "term": "API",
            "definition": "Application Programming Interface.",
            "definition_embedding": [1.0, 0.0, 0.0],
        },
        {
            "key": 2,
            "category": CORE,
            "term": "Connectors",
            "definition": "Connectors integrate with AI services.",
            "definition_embedding": [0.0, 1.0, 0.0],
        },
        {
            "key": 3,
            "category": EXTERNAL,
            "term": "RAG",
            "definition": "Retrieval Augmented Generation.",
            "definition_embedding": [0.9, 0.1, 0.0],
        },
    ]


@pytest.fixture
def glossary(
    glossary_schema: RecordSchema, glossary_records: list[dict[str, Any]]
) -> InMemoryCollection[int, dict[str, Any]]:
    collection: InMemoryCollection[int, dict[str, Any]] = InMemoryCollection(
        "skglossary", glossary_schema
    )
    collection.ensure_exists()
    collection.upsert_many(glossary_records)
    return collection
