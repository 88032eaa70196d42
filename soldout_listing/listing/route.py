"""
Module that turns listing requests into criteria and runs them through the
listing events.
"""

from typing import Optional
from structlog import get_logger

from ..config import get_settings
from ..exceptions import InvalidCriteriaError
from .context import ListingContext
from .criteria import ContainsFilter, Criteria, EqualsFilter, FieldSorting, MultiFilter
from .events import (
    EventDispatcher,
    ProductListingCriteriaEvent,
    ProductListingResultEvent,
    ProductSearchCriteriaEvent,
    ProductSearchResultEvent,
)
from .loader import ProductListingLoader, ProductListingResult

logger = get_logger(__name__)

SORTINGS = {
    "name-asc": [FieldSorting("name", FieldSorting.ASCENDING)],
    "name-desc": [FieldSorting("name", FieldSorting.DESCENDING)],
    "price-asc": [FieldSorting("price", FieldSorting.ASCENDING)],
    "price-desc": [FieldSorting("price", FieldSorting.DESCENDING)],
    "newest": [FieldSorting("created_at", FieldSorting.DESCENDING)],
}

class ListingRequest:
    def __init__(
        self,
        page: int = 1,
        limit: Optional[int] = None,
        order: Optional[str] = None,
        category: Optional[str] = None,
        term: Optional[str] = None
    ):
        self.page = page
        self.limit = limit
        self.order = order
        self.category = category
        self.term = term

def build_criteria(request: ListingRequest) -> Criteria:
    """
    Build the criteria for a listing request.

    Args:
        request (ListingRequest): Requested page, size, order and narrowing

    Returns:
        Criteria: Paginated, sorted and filtered criteria

    Raises:
        InvalidCriteriaError: If page, limit or order are out of range
    """
    settings = get_settings()

    limit = request.limit if request.limit is not None else settings.LISTING_DEFAULT_LIMIT
    order = request.order or settings.LISTING_DEFAULT_SORT

    if request.page < 1:
        raise InvalidCriteriaError("page must be at least 1")
    if limit < 1 or limit > settings.LISTING_MAX_LIMIT:
        raise InvalidCriteriaError(f"limit must be between 1 and {settings.LISTING_MAX_LIMIT}")
    if order not in SORTINGS or order not in settings.LISTING_SORT_KEYS:
        raise InvalidCriteriaError(f"unknown order '{order}'")

    criteria = Criteria(limit=limit, offset=(request.page - 1) * limit)
    criteria.add_sorting(*SORTINGS[order])

    if request.category:
        criteria.add_filter(EqualsFilter("category", request.category))

    if request.term:
        criteria.add_filter(MultiFilter(MultiFilter.CONNECTION_OR, [
            ContainsFilter("name", request.term),
            ContainsFilter("product_number", request.term),
            ContainsFilter("description", request.term),
        ]))

    return criteria

class ProductListingRoute:
    """
    Loads listing and search pages, giving subscribers a chance to shape the
    criteria before loading and the result after it.
    """

    def __init__(self, dispatcher: EventDispatcher, listing_loader: ProductListingLoader):
        self.dispatcher = dispatcher
        self.listing_loader = listing_loader

    def load(self, request: ListingRequest, context: ListingContext) -> ProductListingResult:
        criteria = build_criteria(request)

        self.dispatcher.dispatch(ProductListingCriteriaEvent(criteria, context))
        result = self.listing_loader.load(criteria, context)
        self.dispatcher.dispatch(ProductListingResultEvent(result, context))

        logger.info(
            "product_listing_served",
            request_id=context.request_id,
            category=request.category,
            page=result.page,
            count=result.count(),
            total=result.total
        )
        return result

    def search(self, request: ListingRequest, context: ListingContext) -> ProductListingResult:
        if not request.term or not request.term.strip():
            raise InvalidCriteriaError("search term must not be empty")

        criteria = build_criteria(request)

        self.dispatcher.dispatch(ProductSearchCriteriaEvent(criteria, context))
        result = self.listing_loader.load(criteria, context)
        self.dispatcher.dispatch(ProductSearchResultEvent(result, context))

        logger.info(
            "product_search_served",
            request_id=context.request_id,
            term=request.term,
            page=result.page,
            count=result.count(),
            total=result.total
        )
        return result
