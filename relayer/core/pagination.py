"""
Pagination helpers.

Pages are 1-based. ``paginate`` slices an in-memory collection,
``paginate_serialize`` wraps records that were already sliced by the
store, and ``paginate_db_filters`` turns a page request into the
offset/limit the store understands.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, List, Optional, Sequence, TypeVar

T = TypeVar("T")


@dataclass
class PaginatedCollection(Generic[T]):
    total: int
    page: int
    per_page: int
    records: List[T] = field(default_factory=list)

    def to_dict(self, serialize: Optional[Callable[[T], Any]] = None) -> Dict[str, Any]:
        if serialize is None:
            serialize = lambda record: record.to_dict()  # noqa: E731
        return {
            "total": self.total,
            "page": self.page,
            "perPage": self.per_page,
            "records": [serialize(record) for record in self.records],
        }


@dataclass(frozen=True)
class DBFilters:
    skip: int
    take: int


def paginate(collection: Sequence[T], page: int, per_page: int) -> PaginatedCollection[T]:
    """
    Slice a full collection down to one page.

    Args:
        collection: Every record, already ordered
        page: 1-based page number
        per_page: Page size

    Returns:
        The page, with ``total`` set to the full collection size
    """
    start = (page - 1) * per_page
    return PaginatedCollection(
        total=len(collection),
        page=page,
        per_page=per_page,
        records=list(collection[start:start + per_page]),
    )


def paginate_serialize(collection: Sequence[T], total: int, page: int, per_page: int) -> PaginatedCollection[T]:
    """Annotate records the store already paged with the separately counted total."""
    return PaginatedCollection(total=total, page=page, per_page=per_page, records=list(collection))


def paginate_db_filters(page: int, per_page: int) -> DBFilters:
    return DBFilters(skip=(page - 1) * per_page, take=per_page)
