"""
Filter expressions over stored records.

Queries are described as a small tree of field predicates combined with
AND/OR nodes. The tree is evaluated directly against record mappings
with ``matches`` and compiled to SQL by the order store, so the same
expression means the same thing in memory and in the database.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Tuple, Union


@dataclass(frozen=True)
class Eq:
    field: str
    value: Any


@dataclass(frozen=True)
class In:
    field: str
    values: Tuple[Any, ...]


@dataclass(frozen=True)
class Gte:
    field: str
    value: Any


@dataclass(frozen=True)
class And:
    clauses: Tuple["Filter", ...]


@dataclass(frozen=True)
class Or:
    clauses: Tuple["Filter", ...]


Filter = Union[Eq, In, Gte, And, Or]


def eq(field: str, value: Any) -> Eq:
    return Eq(field, value)


def in_(field: str, values: Iterable[Any]) -> In:
    return In(field, tuple(values))


def gte(field: str, value: Any) -> Gte:
    return Gte(field, value)


def and_(*clauses: Filter) -> And:
    return And(tuple(clauses))


def or_(*clauses: Filter) -> Or:
    return Or(tuple(clauses))


def from_field_filters(field_filters: Mapping[str, Any]) -> And:
    """Build an AND of equality predicates from a field -> value mapping."""
    return And(tuple(Eq(name, value) for name, value in sorted(field_filters.items())))


def matches(node: Filter, record: Mapping[str, Any]) -> bool:
    """
    Evaluate a filter against a single record.

    An empty AND matches everything; an empty OR matches nothing.
    """
    if isinstance(node, Eq):
        return record.get(node.field) == node.value
    if isinstance(node, In):
        return record.get(node.field) in node.values
    if isinstance(node, Gte):
        value = record.get(node.field)
        return value is not None and value >= node.value
    if isinstance(node, And):
        return all(matches(clause, record) for clause in node.clauses)
    if isinstance(node, Or):
        return any(matches(clause, record) for clause in node.clauses)
    raise TypeError(f"Unsupported filter node: {node!r}")
