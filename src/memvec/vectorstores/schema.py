"""Record schemas: which fields are the key, filterable data, and vectors."""

import copy
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

import numpy as np
from pydantic import BaseModel

from .errors import DimensionMismatchError, InvalidRecordError
from .similarity import SimilarityMetric, as_vector

SUPPORTED_KEY_TYPES: tuple[type, ...] = (int, str, uuid.UUID)


@dataclass(frozen=True)
class KeyField:
    name: str = ""
    key_type: type = str


@dataclass(frozen=True)
class DataField:
    name: str = ""
    # Only indexed fields may appear in filters.
    indexed: bool = False


@dataclass(frozen=True)
class VectorField:
    name: str = ""
    dimensions: int = 0
    metric: SimilarityMetric = SimilarityMetric.COSINE_SIMILARITY


@dataclass(frozen=True)
class RecordSchema:
    """Describes the shape of every record in a collection.

    Records are plain mappings unless `record_type` is set, in which case
    they are instances of that pydantic model.

    Example:
        >>> schema = RecordSchema(
        ...     key=KeyField("key", int),
        ...     data=[DataField("category", indexed=True), DataField("term")],
        ...     vectors=[VectorField("embedding", dimensions=3)],
        ... )
    """

    key: KeyField
    vectors: tuple[VectorField, ...]
    data: tuple[DataField, ...] = field(default=())
    record_type: type[BaseModel] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "vectors", tuple(self.vectors))
        object.__setattr__(self, "data", tuple(self.data))
        self._validate()

    def _validate(self) -> None:
        if self.key.key_type not in SUPPORTED_KEY_TYPES:
            raise ValueError(
                f"Unsupported key type {self.key.key_type!r}; "
                f"expected one of {[t.__name__ for t in SUPPORTED_KEY_TYPES]}"
            )
        if not self.vectors:
            raise ValueError("schema requires at least one vector field")

        names = self.field_names
        if any(not name for name in names):
            raise ValueError("schema field names must be non-empty")
        duplicates = {name for name in names if names.count(name) > 1}
        if duplicates:
            raise ValueError(f"Duplicate schema fields: {sorted(duplicates)}")

        for vector in self.vectors:
            if vector.dimensions < 1:
                raise ValueError(
                    f"Vector field '{vector.name}' must have dimensions >= 1"
                )

        if self.record_type is not None:
            model_fields = set(self.record_type.model_fields)
            if model_fields != set(names):
                raise ValueError(
                    f"Model {self.record_type.__name__} fields {sorted(model_fields)} "
                    f"do not match schema fields {sorted(names)}"
                )

    @classmethod
    def from_model(cls, model: type[BaseModel]) -> "RecordSchema":
        """
        Build a schema from a pydantic model annotated with field markers.

        Fields are marked with `typing.Annotated`; unmarked fields become
        non-indexed data fields.

        Example:
            >>> class Glossary(BaseModel):
            ...     key: Annotated[int, KeyField()]
            ...     category: Annotated[str, DataField(indexed=True)]
            ...     embedding: Annotated[list[float], VectorField(dimensions=3)]
            >>> schema = RecordSchema.from_model(Glossary)
        """
        key: KeyField | None = None
        data: list[DataField] = []
        vectors: list[VectorField] = []

        for name, info in model.model_fields.items():
            markers = [
                m
                for m in info.metadata
                if isinstance(m, (KeyField, DataField, VectorField))
            ]
            if len(markers) > 1:
                raise ValueError(f"Field '{name}' has more than one schema marker")
            marker = markers[0] if markers else DataField()

            if isinstance(marker, KeyField):
                if key is not None:
                    raise ValueError(f"Model {model.__name__} declares two key fields")
                key = replace(marker, name=name, key_type=info.annotation)
            elif isinstance(marker, VectorField):
                vectors.append(replace(marker, name=name))
            else:
                data.append(replace(marker, name=name))

        if key is None:
            raise ValueError(f"Model {model.__name__} declares no key field")

        return cls(key=key, data=tuple(data), vectors=tuple(vectors), record_type=model)

    @property
    def field_names(self) -> list[str]:
        return [
            self.key.name,
            *(f.name for f in self.data),
            *(f.name for f in self.vectors),
        ]

    def get_data_field(self, name: str) -> DataField | None:
        for data_field in self.data:
            if data_field.name == name:
                return data_field
        return None

    def get_vector_field(self, name: str | None = None) -> VectorField:
        """Resolve the vector field to search; `name` is optional with one vector."""
        if name is None:
            if len(self.vectors) > 1:
                raise ValueError(
                    "schema has several vector fields; pass vector_field explicitly"
                )
            return self.vectors[0]
        for vector in self.vectors:
            if vector.name == name:
                return vector
        raise ValueError(f"Unknown vector field '{name}'")

    def matches_key(self, key: Any) -> bool:
        # bool is an int subclass but never a valid key
        return not isinstance(key, bool) and isinstance(key, self.key.key_type)

    def check_key(self, key: Any) -> None:
        if not self.matches_key(key):
            raise InvalidRecordError(
                f"Key '{self.key.name}' must be of type "
                f"{self.key.key_type.__name__}, got {type(key).__name__}"
            )

    def to_payload(self, record: Any) -> dict[str, Any]:
        """
        Validate a record and convert it to its stored form.

        Vectors are returned as lists of floats; every other value is a deep
        copy so later mutation by the caller never reaches the store.

        Raises:
            InvalidRecordError: missing key or vector, unknown field, bad key type.
            DimensionMismatchError: a vector has the wrong length.
        """
        if self.record_type is not None:
            if not isinstance(record, self.record_type):
                raise InvalidRecordError(
                    f"Expected {self.record_type.__name__}, got {type(record).__name__}"
                )
            raw: Mapping[str, Any] = record.model_dump()
        elif isinstance(record, Mapping):
            raw = record
        else:
            raise InvalidRecordError(
                f"Expected a mapping record, got {type(record).__name__}"
            )

        unknown = set(raw) - set(self.field_names)
        if unknown:
            raise InvalidRecordError(f"Unknown record fields: {sorted(unknown)}")

        if self.key.name not in raw:
            raise InvalidRecordError(f"Record is missing key field '{self.key.name}'")
        key = raw[self.key.name]
        self.check_key(key)

        payload: dict[str, Any] = {self.key.name: key}
        for data_field in self.data:
            payload[data_field.name] = copy.deepcopy(raw.get(data_field.name))

        for vector_field in self.vectors:
            if raw.get(vector_field.name) is None:
                raise InvalidRecordError(
                    f"Record is missing vector field '{vector_field.name}'"
                )
            vector = self._coerce_vector(vector_field, raw[vector_field.name])
            payload[vector_field.name] = vector.tolist()

        return payload

    def from_payload(self, payload: Mapping[str, Any]) -> Any:
        """Build a fresh record from its stored form."""
        values = copy.deepcopy(dict(payload))
        if self.record_type is not None:
            return self.record_type.model_validate(values)
        return values

    def check_query_vector(
        self, vector_field: VectorField, vector: Any
    ) -> np.ndarray:
        try:
            arr = as_vector(vector)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid query vector: {exc}") from exc
        if not np.all(np.isfinite(arr)):
            raise ValueError("Invalid query vector: contains non-finite values")
        if arr.shape[0] != vector_field.dimensions:
            raise DimensionMismatchError(
                expected=vector_field.dimensions,
                actual=arr.shape[0],
                field=vector_field.name,
            )
        return arr

    @staticmethod
    def _coerce_vector(vector_field: VectorField, value: Any) -> np.ndarray:
        try:
            arr = as_vector(value)
        except (TypeError, ValueError) as exc:
            raise InvalidRecordError(
                f"Vector field '{vector_field.name}' is not a numeric vector: {exc}"
            ) from exc
        if arr.shape[0] != vector_field.dimensions:
            raise DimensionMismatchError(
                expected=vector_field.dimensions,
                actual=arr.shape[0],
                field=vector_field.name,
            )
        if not np.all(np.isfinite(arr)):
            raise InvalidRecordError(
                f"Vector field '{vector_field.name}' contains non-finite values"
            )
        return arr
