"""
Module that pushes sold-out products to the end of product listings.

The criteria hook hides sold-out products from the page through a post filter
and counts both groups. The result hook fills the free slots of the last
page of available products with sold-out products and reports the combined
total, so paging continues from the available into the sold-out products.
"""

from typing import Optional
from structlog import get_logger

from ..logging_config import audit_log
from .criteria import Criteria, EqualsFilter, Filter, FilterAggregation, CountAggregation, MultiFilter, NotFilter
from .events import (
    ProductListingCriteriaEvent,
    ProductListingResultEvent,
    ProductSearchCriteriaEvent,
    ProductSearchResultEvent,
)
from .loader import ProductListingLoader

logger = get_logger(__name__)

NOT_OUT_OF_STOCK_FILTER_NAME = "notOutOfStockFilter"
COUNT_PRODUCT_SOLD_OUT_AGGREGATION = "count-product-sold-out"
COUNT_PRODUCT_NOT_SOLD_OUT_AGGREGATION = "count-product-not-sold-out"

class BackfillPlan:
    def __init__(self, limit: int, offset: int, total: int):
        self.limit = limit
        self.offset = offset
        self.total = total

    def __eq__(self, other) -> bool:
        if not isinstance(other, BackfillPlan):
            return NotImplemented
        return (self.limit, self.offset, self.total) == (other.limit, other.offset, other.total)

    def __repr__(self) -> str:
        return f"BackfillPlan(limit={self.limit}, offset={self.offset}, total={self.total})"

def plan_backfill(
    not_sold_out: int,
    sold_out: int,
    page: int,
    limit: int,
    page_count: int
) -> Optional[BackfillPlan]:
    """
    Decide which sold-out products complete the current page.

    Args:
        not_sold_out (int): Number of available products matching the listing
        sold_out (int): Number of sold-out products matching the listing
        page (int): Current page number, starting at 1
        limit (int): Page size
        page_count (int): Number of products already on the page

    Returns:
        Optional[BackfillPlan]: Limit and offset of the sold-out query and the
        combined total, or None when the page stays as it is
    """
    if not_sold_out == 0 or sold_out == 0:
        return None

    # Only the last page of available products and the pages after it
    if not not_sold_out < page * limit:
        return None

    remaining = limit - page_count
    offset = page * limit - not_sold_out - remaining

    return BackfillPlan(limit=remaining, offset=max(offset, 0), total=not_sold_out + sold_out)

def product_sold_out_filter() -> Filter:
    return MultiFilter(MultiFilter.CONNECTION_AND, [
        EqualsFilter("stock", 0),
        EqualsFilter("is_closeout", True),
    ])

def product_not_sold_out_filter() -> Filter:
    return NotFilter(MultiFilter.CONNECTION_AND, [
        EqualsFilter("stock", 0),
        EqualsFilter("is_closeout", True),
    ])

class SoldOutToEndSubscriber:
    """
    Listing subscriber that lists sold-out products after all available ones.

    Args:
        listing_loader (ProductListingLoader): Loader used for the sold-out page
        priority (int): Priority of the criteria handlers, low enough to run
            after subscribers that shape the criteria themselves
    """

    def __init__(self, listing_loader: ProductListingLoader, priority: int = -200):
        self.listing_loader = listing_loader
        self.priority = priority

    def get_subscribed_events(self):
        return {
            ProductSearchCriteriaEvent: ("on_product_listing_criteria_loaded", self.priority),
            ProductListingCriteriaEvent: ("on_product_listing_criteria_loaded", self.priority),
            ProductSearchResultEvent: "on_product_listing_loaded",
            ProductListingResultEvent: "on_product_listing_loaded",
        }

    def on_product_listing_criteria_loaded(self, event: ProductListingCriteriaEvent):
        criteria = event.criteria

        not_out_of_stock_filter = product_not_sold_out_filter()
        not_out_of_stock_filter.assign({"name": NOT_OUT_OF_STOCK_FILTER_NAME})

        criteria.add_aggregation(FilterAggregation(
            "product-sold-out",
            CountAggregation(COUNT_PRODUCT_SOLD_OUT_AGGREGATION, "id"),
            [product_sold_out_filter()]
        ))
        criteria.add_aggregation(FilterAggregation(
            "product-not-sold-out",
            CountAggregation(COUNT_PRODUCT_NOT_SOLD_OUT_AGGREGATION, "id"),
            [product_not_sold_out_filter()]
        ))

        criteria.add_post_filter(not_out_of_stock_filter)

    def on_product_listing_loaded(self, event: ProductListingResultEvent):
        result = event.result
        request_id = event.context.request_id

        count_sold_out = result.get_aggregation(COUNT_PRODUCT_SOLD_OUT_AGGREGATION)
        if count_sold_out is None or count_sold_out.count == 0:
            logger.debug("sold_out_backfill_skipped", reason="no_sold_out_products", request_id=request_id)
            return

        count_not_sold_out = result.get_aggregation(COUNT_PRODUCT_NOT_SOLD_OUT_AGGREGATION)
        if count_not_sold_out is None or count_not_sold_out.count == 0:
            logger.debug("sold_out_backfill_skipped", reason="no_available_products", request_id=request_id)
            return

        if not result.limit:
            logger.debug("sold_out_backfill_skipped", reason="unpaginated_listing", request_id=request_id)
            return

        plan = plan_backfill(
            count_not_sold_out.count,
            count_sold_out.count,
            result.page,
            result.limit,
            result.count()
        )
        if plan is None:
            logger.debug("sold_out_backfill_skipped", reason="not_last_page", request_id=request_id)
            return

        criteria = Criteria.create_from(result.criteria)
        criteria.set_limit(plan.limit)
        criteria.set_offset(plan.offset)
        criteria.reset_post_filters()
        criteria.reset_aggregations()
        criteria.add_filter(product_sold_out_filter())

        out_of_stock = self.listing_loader.load(criteria, event.context)
        if out_of_stock.count() == 0:
            logger.debug("sold_out_backfill_skipped", reason="no_sold_out_on_page", request_id=request_id)
            return

        result.merge(out_of_stock.elements)
        result.total = plan.total

        audit_log(
            action="sold_out_backfill_applied",
            request_id=request_id,
            page=result.page,
            limit=result.limit,
            offset=plan.offset,
            backfilled=out_of_stock.count(),
            total=plan.total
        )
