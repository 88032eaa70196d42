"""
Module for loading product listing pages from the database.
"""

from typing import Dict, Iterable, List, Optional
from sqlalchemy import and_, func, not_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query
from structlog import get_logger

from ..models import Product
from ..exceptions import InvalidCriteriaError, ListingError
from ..logging_config import error_log
from .criteria import (
    Aggregation,
    ContainsFilter,
    CountAggregation,
    Criteria,
    EqualsFilter,
    FieldSorting,
    Filter,
    FilterAggregation,
    MultiFilter,
    NotFilter,
)
from .context import ListingContext

logger = get_logger(__name__)

class CountResult:
    def __init__(self, name: str, count: int):
        self.name = name
        self.count = count

    def __repr__(self) -> str:
        return f"CountResult({self.name!r}, {self.count})"

class ProductListingResult:
    """
    One loaded page of products.

    Keeps a copy of the criteria it was loaded with so listeners can derive
    follow-up queries from it.
    """

    def __init__(
        self,
        criteria: Criteria,
        elements: List[Product],
        total: int,
        aggregations: Optional[Dict[str, CountResult]] = None
    ):
        self.criteria = Criteria.create_from(criteria)
        self.elements = list(elements)
        self.total = total
        self.aggregations = aggregations or {}

    @property
    def page(self) -> int:
        return self.criteria.page

    @property
    def limit(self) -> Optional[int]:
        return self.criteria.limit

    def count(self) -> int:
        return len(self.elements)

    def merge(self, elements: Iterable[Product]):
        """Append products that are not on the page yet."""
        known = {product.id for product in self.elements}
        for product in elements:
            if product.id not in known:
                self.elements.append(product)
                known.add(product.id)

    def get_aggregation(self, name: str) -> Optional[CountResult]:
        return self.aggregations.get(name)

def escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")

def build_condition(filter_: Filter):
    """Translate a criteria filter into a SQLAlchemy boolean expression."""
    if isinstance(filter_, NotFilter):
        return not_(_connect(filter_))
    if isinstance(filter_, MultiFilter):
        return _connect(filter_)
    if isinstance(filter_, EqualsFilter):
        column = getattr(Product, filter_.field)
        if filter_.value is None:
            return column.is_(None)
        return column == filter_.value
    if isinstance(filter_, ContainsFilter):
        pattern = escape_like(str(filter_.value))
        return getattr(Product, filter_.field).ilike(f"%{pattern}%", escape="\\")
    raise InvalidCriteriaError(f"unsupported filter {type(filter_).__name__}")

def _connect(filter_: MultiFilter):
    conditions = [build_condition(query) for query in filter_.queries]
    if filter_.connection == MultiFilter.CONNECTION_OR:
        return or_(*conditions)
    return and_(*conditions)

def _order_by(sorting: FieldSorting):
    column = getattr(Product, sorting.field, None)
    if column is None:
        raise InvalidCriteriaError(f"field '{sorting.field}' cannot be sorted")
    return column.desc() if sorting.direction == FieldSorting.DESCENDING else column.asc()

class ProductListingLoader:
    """
    Loads listing pages for a criteria.

    Only active products are listed. Post filters narrow the page and its
    total but are ignored by aggregations.
    """

    def _base_query(self, context: ListingContext, filters: List[Filter]) -> Query:
        query = context.db.query(Product).filter(Product.active.is_(True))
        for filter_ in filters:
            query = query.filter(build_condition(filter_))
        return query

    def _aggregate(self, context: ListingContext, criteria: Criteria) -> Dict[str, CountResult]:
        results = {}
        for aggregation in criteria.aggregations.values():
            result = self._evaluate(context, criteria.filters, aggregation)
            results[result.name] = result
        return results

    def _evaluate(self, context: ListingContext, filters: List[Filter], aggregation: Aggregation) -> CountResult:
        if isinstance(aggregation, FilterAggregation):
            return self._evaluate(context, filters + aggregation.filters, aggregation.aggregation)
        if isinstance(aggregation, CountAggregation):
            column = getattr(Product, aggregation.field)
            count = (
                self._base_query(context, filters)
                .with_entities(func.count(func.distinct(column)))
                .scalar()
            )
            return CountResult(aggregation.name, count or 0)
        raise InvalidCriteriaError(f"unsupported aggregation {type(aggregation).__name__}")

    def load(self, criteria: Criteria, context: ListingContext) -> ProductListingResult:
        """
        Load one page of products.

        Args:
            criteria (Criteria): Filters, sorting and pagination of the page
            context (ListingContext): Database session and request context

        Returns:
            ProductListingResult: Page entities, total and aggregation results

        Raises:
            ListingError: If the database query fails
        """
        try:
            query = self._base_query(context, criteria.filters + criteria.post_filters)
            total = query.count()

            ordered = query.order_by(
                *[_order_by(sorting) for sorting in criteria.sortings],
                Product.id.asc()
            )
            if criteria.offset:
                ordered = ordered.offset(criteria.offset)
            if criteria.limit is not None:
                ordered = ordered.limit(criteria.limit)
            elements = ordered.all()

            aggregations = self._aggregate(context, criteria)
        except SQLAlchemyError as e:
            error_log(e, {
                "context": "product_listing_load",
                "request_id": context.request_id,
                "offset": criteria.offset,
                "limit": criteria.limit
            })
            raise ListingError("failed to load products")

        logger.debug(
            "product_listing_loaded",
            request_id=context.request_id,
            offset=criteria.offset,
            limit=criteria.limit,
            count=len(elements),
            total=total
        )
        return ProductListingResult(criteria, elements, total, aggregations)
