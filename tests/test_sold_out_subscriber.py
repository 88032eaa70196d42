import pytest
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from soldout_listing.listing.context import ListingContext
from soldout_listing.listing.criteria import Criteria, EqualsFilter, FieldSorting, MultiFilter, NotFilter
from soldout_listing.listing.events import (
    EventDispatcher,
    ProductListingCriteriaEvent,
    ProductListingResultEvent,
    ProductSearchCriteriaEvent,
    ProductSearchResultEvent,
)
from soldout_listing.listing.loader import CountResult, ProductListingLoader, ProductListingResult
from soldout_listing.listing.subscriber import (
    COUNT_PRODUCT_NOT_SOLD_OUT_AGGREGATION,
    COUNT_PRODUCT_SOLD_OUT_AGGREGATION,
    NOT_OUT_OF_STOCK_FILTER_NAME,
    BackfillPlan,
    SoldOutToEndSubscriber,
    plan_backfill,
)

def items(start: int, count: int):
    """Helper function to create lightweight page entities"""
    return [SimpleNamespace(id=i) for i in range(start, start + count)]

def make_result(page: int, limit: int, elements, not_sold_out, sold_out, total=None):
    criteria = Criteria(limit=limit, offset=(page - 1) * limit)
    criteria.add_sorting(FieldSorting("price", FieldSorting.DESCENDING))
    criteria.add_filter(EqualsFilter("category", "sweaters"))
    aggregations = {}
    if not_sold_out is not None:
        aggregations[COUNT_PRODUCT_NOT_SOLD_OUT_AGGREGATION] = CountResult(
            COUNT_PRODUCT_NOT_SOLD_OUT_AGGREGATION, not_sold_out
        )
    if sold_out is not None:
        aggregations[COUNT_PRODUCT_SOLD_OUT_AGGREGATION] = CountResult(
            COUNT_PRODUCT_SOLD_OUT_AGGREGATION, sold_out
        )
    return ProductListingResult(criteria, elements, total if total is not None else not_sold_out or 0, aggregations)

class TestPlanBackfill:
    """Test which sold-out products complete a page"""

    @pytest.mark.parametrize("not_sold_out,sold_out", [(0, 5), (5, 0), (0, 0)])
    def test_nothing_to_stitch(self, not_sold_out, sold_out):
        assert plan_backfill(not_sold_out, sold_out, page=1, limit=10, page_count=not_sold_out) is None

    def test_page_before_last_available_page(self):
        assert plan_backfill(25, 7, page=2, limit=10, page_count=10) is None

    def test_exactly_full_last_page_is_not_stitched(self):
        # A == P * L: the next page starts with sold-out products
        assert plan_backfill(20, 7, page=2, limit=10, page_count=10) is None

    def test_partial_last_available_page(self):
        plan = plan_backfill(25, 7, page=3, limit=10, page_count=5)
        assert plan == BackfillPlan(limit=5, offset=0, total=32)

    def test_first_page_after_available_products(self):
        plan = plan_backfill(25, 7, page=4, limit=10, page_count=0)
        assert plan == BackfillPlan(limit=10, offset=5, total=32)

    def test_page_after_exactly_full_pages(self):
        plan = plan_backfill(20, 7, page=3, limit=10, page_count=0)
        assert plan == BackfillPlan(limit=10, offset=0, total=27)

    def test_offset_never_negative(self):
        # 10 - 9 - 10 would be -9
        plan = plan_backfill(9, 2, page=1, limit=10, page_count=0)
        assert plan == BackfillPlan(limit=10, offset=0, total=11)

class TestCriteriaHook:
    """Test the aggregations and post filter added to listing criteria"""

    @pytest.fixture
    def subscriber(self):
        return SoldOutToEndSubscriber(MagicMock(spec=ProductListingLoader))

    def test_adds_count_aggregations(self, subscriber):
        criteria = Criteria(limit=10)
        subscriber.on_product_listing_criteria_loaded(ProductListingCriteriaEvent(criteria, MagicMock()))

        assert set(criteria.aggregations) == {"product-sold-out", "product-not-sold-out"}
        sold_out = criteria.aggregations["product-sold-out"]
        assert sold_out.aggregation.name == COUNT_PRODUCT_SOLD_OUT_AGGREGATION
        assert sold_out.aggregation.field == "id"
        assert type(sold_out.filters[0]) is MultiFilter

        not_sold_out = criteria.aggregations["product-not-sold-out"]
        assert not_sold_out.aggregation.name == COUNT_PRODUCT_NOT_SOLD_OUT_AGGREGATION
        assert isinstance(not_sold_out.filters[0], NotFilter)

    def test_adds_named_post_filter(self, subscriber):
        criteria = Criteria(limit=10)
        subscriber.on_product_listing_criteria_loaded(ProductListingCriteriaEvent(criteria, MagicMock()))

        post_filter = criteria.get_post_filter(NOT_OUT_OF_STOCK_FILTER_NAME)
        assert isinstance(post_filter, NotFilter)
        assert post_filter.connection == MultiFilter.CONNECTION_AND
        assert [(q.field, q.value) for q in post_filter.queries] == [("stock", 0), ("is_closeout", True)]
        assert criteria.filters == []

    def test_subscribed_events(self, subscriber):
        events = subscriber.get_subscribed_events()

        assert events[ProductListingCriteriaEvent] == ("on_product_listing_criteria_loaded", -200)
        assert events[ProductSearchCriteriaEvent] == ("on_product_listing_criteria_loaded", -200)
        assert events[ProductListingResultEvent] == "on_product_listing_loaded"
        assert events[ProductSearchResultEvent] == "on_product_listing_loaded"

class TestResultHook:
    """Test stitching sold-out products onto the last available page"""

    @pytest.fixture
    def loader(self):
        return MagicMock(spec=ProductListingLoader)

    @pytest.fixture
    def subscriber(self, loader):
        return SoldOutToEndSubscriber(loader)

    @pytest.fixture
    def context(self):
        return ListingContext(MagicMock(), request_id="hook-test")

    def run(self, subscriber, result, context):
        subscriber.on_product_listing_loaded(ProductListingResultEvent(result, context))
        return result

    @pytest.mark.parametrize("not_sold_out,sold_out", [(None, 4), (6, None), (0, 4), (6, 0)])
    def test_missing_or_empty_counts_leave_result(self, subscriber, loader, context, not_sold_out, sold_out):
        result = make_result(2, 4, items(5, 2), not_sold_out, sold_out, total=6)
        self.run(subscriber, result, context)

        loader.load.assert_not_called()
        assert result.count() == 2
        assert result.total == 6

    def test_not_last_page_leaves_result(self, subscriber, loader, context):
        result = make_result(1, 4, items(1, 4), 6, 5)
        self.run(subscriber, result, context)

        loader.load.assert_not_called()
        assert result.total == 6

    def test_backfills_last_available_page(self, subscriber, loader, context):
        loader.load.return_value = ProductListingResult(Criteria(limit=2), items(100, 2), 5)
        result = make_result(2, 4, items(5, 2), 6, 5)
        self.run(subscriber, result, context)

        assert [p.id for p in result.elements] == [5, 6, 100, 101]
        assert result.total == 11

        criteria, passed_context = loader.load.call_args.args
        assert passed_context is context
        assert criteria.limit == 2
        assert criteria.offset == 0
        assert criteria.post_filters == []
        assert criteria.aggregations == {}
        assert [(s.field, s.direction) for s in criteria.sortings] == [("price", "DESC")]
        assert len(criteria.filters) == 2
        assert criteria.filters[0].field == "category"
        sold_out_filter = criteria.filters[1]
        assert type(sold_out_filter) is MultiFilter
        assert [(q.field, q.value) for q in sold_out_filter.queries] == [("stock", 0), ("is_closeout", True)]

    def test_page_past_available_products(self, subscriber, loader, context):
        loader.load.return_value = ProductListingResult(Criteria(limit=4), items(102, 3), 5)
        result = make_result(3, 4, [], 6, 5)
        self.run(subscriber, result, context)

        criteria = loader.load.call_args.args[0]
        assert criteria.limit == 4
        assert criteria.offset == 2
        assert result.count() == 3
        assert result.total == 11

    def test_leaves_original_criteria_untouched(self, subscriber, loader, context):
        loader.load.return_value = ProductListingResult(Criteria(limit=2), items(100, 2), 5)
        result = make_result(2, 4, items(5, 2), 6, 5)
        original_filters = list(result.criteria.filters)
        self.run(subscriber, result, context)

        assert result.criteria.filters == original_filters
        assert result.criteria.offset == 4

    def test_empty_sold_out_page_leaves_total(self, subscriber, loader, context):
        loader.load.return_value = ProductListingResult(Criteria(limit=4), [], 0)
        result = make_result(5, 4, [], 6, 5)
        self.run(subscriber, result, context)

        assert result.count() == 0
        assert result.total == 6

    def test_unpaginated_listing_is_skipped(self, subscriber, loader, context):
        result = make_result(1, 4, items(1, 2), 2, 5)
        result.criteria.set_limit(None)
        self.run(subscriber, result, context)

        loader.load.assert_not_called()
        assert result.count() == 2
        assert result.total == 2

    @patch("soldout_listing.listing.subscriber.audit_log")
    def test_backfill_is_audited(self, mock_audit, subscriber, loader, context):
        loader.load.return_value = ProductListingResult(Criteria(limit=2), items(100, 2), 5)
        result = make_result(2, 4, items(5, 2), 6, 5)
        self.run(subscriber, result, context)

        mock_audit.assert_called_once_with(
            action="sold_out_backfill_applied",
            request_id="hook-test",
            page=2,
            limit=4,
            offset=0,
            backfilled=2,
            total=11
        )

    @patch("soldout_listing.listing.subscriber.audit_log")
    def test_skipped_backfill_is_not_audited(self, mock_audit, subscriber, loader, context):
        result = make_result(1, 4, items(1, 4), 6, 5)
        self.run(subscriber, result, context)

        mock_audit.assert_not_called()

class TestDispatcher:
    """Test listener ordering"""

    def test_priority_order(self):
        dispatcher = EventDispatcher()
        calls = []
        dispatcher.add_listener(ProductListingCriteriaEvent, lambda e: calls.append("low"), -200)
        dispatcher.add_listener(ProductListingCriteriaEvent, lambda e: calls.append("default"))
        dispatcher.add_listener(ProductListingCriteriaEvent, lambda e: calls.append("high"), 100)
        dispatcher.add_listener(ProductListingCriteriaEvent, lambda e: calls.append("default-2"))

        dispatcher.dispatch(ProductListingCriteriaEvent(Criteria(), MagicMock()))

        assert calls == ["high", "default", "default-2", "low"]

    def test_dispatch_matches_exact_event_type(self):
        dispatcher = EventDispatcher()
        listener = MagicMock()
        dispatcher.add_listener(ProductListingCriteriaEvent, listener)

        dispatcher.dispatch(ProductSearchCriteriaEvent(Criteria(), MagicMock()))

        listener.assert_not_called()

    def test_subscriber_registration(self):
        dispatcher = EventDispatcher()
        subscriber = SoldOutToEndSubscriber(MagicMock(spec=ProductListingLoader), priority=-50)
        dispatcher.add_subscriber(subscriber)

        for event_type in (
            ProductListingCriteriaEvent,
            ProductSearchCriteriaEvent,
            ProductListingResultEvent,
            ProductSearchResultEvent,
        ):
            assert len(dispatcher.get_listeners(event_type)) == 1

    def test_registered_subscriber_handles_criteria_and_result(self):
        loader = MagicMock(spec=ProductListingLoader)
        loader.load.return_value = ProductListingResult(Criteria(limit=2), items(100, 2), 5)
        dispatcher = EventDispatcher()
        dispatcher.add_subscriber(SoldOutToEndSubscriber(loader))
        context = ListingContext(MagicMock(), request_id="dispatch-test")

        criteria = Criteria(limit=4, offset=4)
        dispatcher.dispatch(ProductSearchCriteriaEvent(criteria, context))

        assert criteria.get_post_filter(NOT_OUT_OF_STOCK_FILTER_NAME) is not None
        assert set(criteria.aggregations) == {"product-sold-out", "product-not-sold-out"}

        result = ProductListingResult(criteria, items(5, 2), 6, {
            COUNT_PRODUCT_NOT_SOLD_OUT_AGGREGATION: CountResult(COUNT_PRODUCT_NOT_SOLD_OUT_AGGREGATION, 6),
            COUNT_PRODUCT_SOLD_OUT_AGGREGATION: CountResult(COUNT_PRODUCT_SOLD_OUT_AGGREGATION, 5),
        })
        dispatcher.dispatch(ProductSearchResultEvent(result, context))

        assert [p.id for p in result.elements] == [5, 6, 100, 101]
        assert result.total == 11
        assert loader.load.call_count == 1
