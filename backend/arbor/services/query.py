"""
Generic list-query planning for tenant-scoped resources.

A list request (page, limit, sort, search, filters) is resolved against a
``QueryResource`` that whitelists which columns may be sorted, filtered and
searched. The resulting ``QueryPlan`` produces two statements:

- a page statement (predicate + ordering + offset/limit)
- a count statement over the same predicate, unaffected by the page window

Invalid sort input never raises; it falls back to the resource's default
ordering (descending id).
"""

import enum
from dataclasses import dataclass, field
from typing import Any, Mapping

from sqlalchemy import Select, func
from sqlmodel import select

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_LIMIT = 100
# OFFSET is bound as a signed 64-bit integer by both PostgreSQL and SQLite
MAX_OFFSET = 2**63 - 1

SORT_DIRECTIONS = ("asc", "desc")


class FilterKind(str, enum.Enum):
    UNSET = "unset"
    IS_NULL = "is_null"
    EQUALS = "equals"


@dataclass(frozen=True)
class FieldFilter:
    """
    Three-state column filter.

    ``UNSET`` adds no constraint, ``IS_NULL`` matches rows where the column is
    NULL and ``EQUALS`` matches rows where it equals ``value``. "Not provided"
    and "provided as null" are kept apart.
    """

    kind: FilterKind = FilterKind.UNSET
    value: Any = None

    @classmethod
    def unset(cls) -> "FieldFilter":
        return cls()

    @classmethod
    def is_null(cls) -> "FieldFilter":
        return cls(FilterKind.IS_NULL)

    @classmethod
    def equals(cls, value: Any) -> "FieldFilter":
        if value is None:
            raise ValueError("use FieldFilter.is_null() to match NULL")
        return cls(FilterKind.EQUALS, value)

    @classmethod
    def optional(cls, value: Any) -> "FieldFilter":
        """Equality when a value is given, no constraint otherwise."""
        return cls.unset() if value is None else cls.equals(value)

    @property
    def is_set(self) -> bool:
        return self.kind is not FilterKind.UNSET

    def clause(self, column):
        if self.kind is FilterKind.IS_NULL:
            return column.is_(None)
        if self.kind is FilterKind.EQUALS:
            return column == self.value
        return None


@dataclass(frozen=True)
class ListParams:
    """Raw list request, before clamping and whitelisting."""

    page: int | None = None
    limit: int | None = None
    sort: str | None = None
    search: str | None = None
    filters: Mapping[str, FieldFilter] = field(default_factory=dict)


@dataclass(frozen=True)
class QueryResource:
    """Describes which columns of a model a list query may touch."""

    model: Any
    id_column: Any
    sortable: Mapping[str, Any]
    filterable: Mapping[str, Any]
    search_column: Any | None = None


@dataclass(frozen=True)
class SortOrder:
    field: str
    descending: bool

    def clause(self, resource: QueryResource):
        column = resource.sortable[self.field]
        return column.desc() if self.descending else column.asc()


@dataclass(frozen=True)
class QueryPlan:
    resource: QueryResource
    where: tuple
    sort: SortOrder | None
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def order_by(self) -> tuple:
        id_column = self.resource.id_column
        if self.sort is None:
            return (id_column.desc(),)
        clauses = [self.sort.clause(self.resource)]
        # Tie-break on id so equal sort keys still page deterministically
        if self.resource.sortable[self.sort.field] is not id_column:
            clauses.append(id_column.desc())
        return tuple(clauses)

    def page_statement(self) -> Select:
        return (
            select(self.resource.model)
            .where(*self.where)
            .order_by(*self.order_by)
            .offset(self.offset)
            .limit(self.limit)
        )

    def count_statement(self) -> Select:
        return select(func.count()).select_from(self.resource.model).where(*self.where)


def clamp_pagination(
    page: int | None,
    limit: int | None,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
) -> tuple[int, int]:
    """
    Apply defaults and bounds: page >= 1, 1 <= limit <= max_limit.

    Pages past the largest representable offset are pulled back to it; they
    are empty either way.
    """
    page = DEFAULT_PAGE if page is None else max(DEFAULT_PAGE, page)
    limit = default_limit if limit is None else min(max(1, limit), max_limit)
    page = min(page, MAX_OFFSET // limit + 1)
    return page, limit


def parse_sort(sort: str | None, sortable: Mapping[str, Any]) -> SortOrder | None:
    """
    Parse ``field:direction``.

    Returns None for anything that is not a whitelisted field followed by
    ``asc`` or ``desc``; the caller then uses the default ordering.
    """
    if not sort:
        return None
    field_name, sep, direction = sort.strip().partition(":")
    if not sep or field_name not in sortable:
        return None
    direction = direction.lower()
    if direction not in SORT_DIRECTIONS:
        return None
    return SortOrder(field=field_name, descending=direction == "desc")


def build_query_plan(
    resource: QueryResource,
    params: ListParams,
    scope: tuple = (),
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
) -> QueryPlan:
    """
    Resolve a list request into a QueryPlan.

    Args:
        resource: Whitelist of sortable/filterable/searchable columns
        params: The raw list request
        scope: Predicates that always apply (e.g. the request tenant)
        default_limit: Page size when none is requested
        max_limit: Upper bound for the page size

    Raises:
        ValueError: If a filter names a column the resource does not expose.
    """
    page, limit = clamp_pagination(params.page, params.limit, default_limit, max_limit)

    where = list(scope)
    for name, field_filter in params.filters.items():
        if name not in resource.filterable:
            raise ValueError(f"Unknown filter '{name}' for {resource.model.__name__}")
        clause = field_filter.clause(resource.filterable[name])
        if clause is not None:
            where.append(clause)

    if params.search and resource.search_column is not None:
        where.append(resource.search_column.icontains(params.search, autoescape=True))

    return QueryPlan(
        resource=resource,
        where=tuple(where),
        sort=parse_sort(params.sort, resource.sortable),
        page=page,
        limit=limit,
    )
