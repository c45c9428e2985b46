"""Filter expressions over record data fields.

Filters are small trees of frozen dataclasses rather than callables, so the
fields they reference can be checked against a schema before any record is
scanned.

Example:
    >>> f = EqualTo("category", "External Definitions") & ~EqualTo("term", "RAG")
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any, TypeAlias

from .errors import InvalidFilterFieldError
from .schema import RecordSchema


class _FilterNode:
    def __and__(self, other: "FilterExpression") -> "And":
        return And((self, other))  # type: ignore[arg-type]

    def __or__(self, other: "FilterExpression") -> "Or":
        return Or((self, other))  # type: ignore[arg-type]

    def __invert__(self) -> "Not":
        return Not(self)  # type: ignore[arg-type]


@dataclass(frozen=True)
class EqualTo(_FilterNode):
    field: str
    value: Any


@dataclass(frozen=True)
class And(_FilterNode):
    clauses: tuple["FilterExpression", ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "clauses", tuple(self.clauses))


@dataclass(frozen=True)
class Or(_FilterNode):
    clauses: tuple["FilterExpression", ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "clauses", tuple(self.clauses))


@dataclass(frozen=True)
class Not(_FilterNode):
    clause: "FilterExpression"


FilterExpression: TypeAlias = EqualTo | And | Or | Not


def from_mapping(filters: Mapping[str, Any]) -> FilterExpression:
    """Turn `{"field": value, ...}` into an AND of equality atoms."""
    return And(tuple(EqualTo(k, v) for k, v in filters.items()))


def referenced_fields(expr: FilterExpression) -> Iterator[str]:
    if isinstance(expr, EqualTo):
        yield expr.field
    elif isinstance(expr, (And, Or)):
        for clause in expr.clauses:
            yield from referenced_fields(clause)
    elif isinstance(expr, Not):
        yield from referenced_fields(expr.clause)
    else:
        raise TypeError(f"Unsupported filter expression: {type(expr).__name__}")


def validate_filter(expr: FilterExpression, schema: RecordSchema) -> None:
    """
    Check every field referenced by `expr` against `schema`.

    The key field and indexed data fields are filterable.

    Raises:
        InvalidFilterFieldError: on undeclared, vector, or unindexed fields.
    """
    vector_names = {v.name for v in schema.vectors}
    for name in referenced_fields(expr):
        if name == schema.key.name:
            continue
        if name in vector_names:
            raise InvalidFilterFieldError(name, "vector fields cannot be filtered")
        data_field = schema.get_data_field(name)
        if data_field is None:
            raise InvalidFilterFieldError(name, "field is not declared in the schema")
        if not data_field.indexed:
            raise InvalidFilterFieldError(name, "field is not indexed")


def evaluate(expr: FilterExpression, data: Mapping[str, Any]) -> bool:
    if isinstance(expr, EqualTo):
        return bool(data.get(expr.field) == expr.value)
    if isinstance(expr, And):
        return all(evaluate(clause, data) for clause in expr.clauses)
    if isinstance(expr, Or):
        return any(evaluate(clause, data) for clause in expr.clauses)
    if isinstance(expr, Not):
        return not evaluate(expr.clause, data)
    raise TypeError(f"Unsupported filter expression: {type(expr).__name__}")
