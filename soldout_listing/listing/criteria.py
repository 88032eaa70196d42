"""
Module containing the criteria object model used by the product listing.

A criteria describes one listing request:
- Filters applied to entities, totals and aggregations
- Post filters applied to entities and totals only
- Count aggregations, optionally narrowed by their own filters
- Sorting, limit and offset
"""

import copy
from typing import Any, Dict, List, Optional

from ..exceptions import InvalidCriteriaError

FILTERABLE_FIELDS = {
    "id",
    "product_number",
    "name",
    "description",
    "category",
    "stock",
    "is_closeout",
    "active",
    "price",
}

class Filter:
    """Base class for all listing filters."""

    name: Optional[str] = None

    def assign(self, values: Dict[str, Any]) -> "Filter":
        for key, value in values.items():
            setattr(self, key, value)
        return self

class SingleFieldFilter(Filter):
    def __init__(self, field: str, value: Any):
        if field not in FILTERABLE_FIELDS:
            raise InvalidCriteriaError(f"field '{field}' cannot be filtered")
        self.field = field
        self.value = value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.field!r}, {self.value!r})"

class EqualsFilter(SingleFieldFilter):
    pass

class ContainsFilter(SingleFieldFilter):
    pass

class MultiFilter(Filter):
    CONNECTION_AND = "AND"
    CONNECTION_OR = "OR"

    def __init__(self, connection: str = CONNECTION_AND, queries: Optional[List[Filter]] = None):
        if connection not in (self.CONNECTION_AND, self.CONNECTION_OR):
            raise InvalidCriteriaError(f"unknown filter connection '{connection}'")
        self.connection = connection
        self.queries = list(queries or [])

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.connection!r}, {self.queries!r})"

class NotFilter(MultiFilter):
    """Negation of the whole connected group: NOT (a AND b)."""

class Aggregation:
    def __init__(self, name: str):
        self.name = name

class CountAggregation(Aggregation):
    def __init__(self, name: str, field: str):
        super().__init__(name)
        self.field = field

class FilterAggregation(Aggregation):
    """
    Aggregation evaluated on top of its own filters.

    The result is exposed under the name of the wrapped aggregation.
    """

    def __init__(self, name: str, aggregation: Aggregation, filters: List[Filter]):
        super().__init__(name)
        self.aggregation = aggregation
        self.filters = list(filters)

class FieldSorting:
    ASCENDING = "ASC"
    DESCENDING = "DESC"

    def __init__(self, field: str, direction: str = ASCENDING):
        if direction not in (self.ASCENDING, self.DESCENDING):
            raise InvalidCriteriaError(f"unknown sort direction '{direction}'")
        self.field = field
        self.direction = direction

class Criteria:
    """
    Search criteria for a product listing page.

    Args:
        limit (Optional[int]): Page size, None loads everything
        offset (int): Number of entities to skip
    """

    def __init__(self, limit: Optional[int] = None, offset: int = 0):
        self.limit = limit
        self.offset = offset
        self.filters: List[Filter] = []
        self.post_filters: List[Filter] = []
        self.aggregations: Dict[str, Aggregation] = {}
        self.sortings: List[FieldSorting] = []

    @classmethod
    def create_from(cls, other: "Criteria") -> "Criteria":
        return copy.deepcopy(other)

    @property
    def page(self) -> int:
        if not self.limit:
            return 1
        return self.offset // self.limit + 1

    def set_limit(self, limit: Optional[int]) -> "Criteria":
        if limit is not None and limit < 0:
            raise InvalidCriteriaError("limit must not be negative")
        self.limit = limit
        return self

    def set_offset(self, offset: int) -> "Criteria":
        if offset < 0:
            raise InvalidCriteriaError("offset must not be negative")
        self.offset = offset
        return self

    def add_filter(self, *filters: Filter) -> "Criteria":
        self.filters.extend(filters)
        return self

    def add_post_filter(self, *filters: Filter) -> "Criteria":
        self.post_filters.extend(filters)
        return self

    def add_aggregation(self, *aggregations: Aggregation) -> "Criteria":
        for aggregation in aggregations:
            self.aggregations[aggregation.name] = aggregation
        return self

    def add_sorting(self, *sortings: FieldSorting) -> "Criteria":
        self.sortings.extend(sortings)
        return self

    def get_post_filter(self, name: str) -> Optional[Filter]:
        return next((f for f in self.post_filters if f.name == name), None)

    def reset_post_filters(self) -> "Criteria":
        self.post_filters = []
        return self

    def reset_aggregations(self) -> "Criteria":
        self.aggregations = {}
        return self
