"""
Module containing FastAPI router for product listing pages.
"""

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session
from functools import lru_cache
from typing import Optional
from structlog import get_logger

from ..config import get_settings
from ..database import get_db
from ..logging_config import log_endpoint_access
from ..schemas import Product as ProductSchema, ProductListingPage
from .context import ListingContext
from .events import EventDispatcher
from .loader import ProductListingLoader, ProductListingResult
from .route import ListingRequest, ProductListingRoute
from .subscriber import SoldOutToEndSubscriber

logger = get_logger(__name__)

listing_router = APIRouter()

def create_listing_route(sold_out_to_end: bool, priority: int) -> ProductListingRoute:
    """Wire the dispatcher, the loader and the listing subscribers together."""
    dispatcher = EventDispatcher()
    listing_loader = ProductListingLoader()

    if sold_out_to_end:
        dispatcher.add_subscriber(SoldOutToEndSubscriber(listing_loader, priority=priority))

    logger.info("listing_route_created", sold_out_to_end=sold_out_to_end, priority=priority)
    return ProductListingRoute(dispatcher, listing_loader)

@lru_cache()
def get_listing_route() -> ProductListingRoute:
    settings = get_settings()
    return create_listing_route(
        settings.SOLD_OUT_TO_END_ENABLED,
        settings.SOLD_OUT_SUBSCRIBER_PRIORITY
    )

def get_listing_context(request: Request, db: Session = Depends(get_db)) -> ListingContext:
    return ListingContext(db, getattr(request.state, "request_id", None))

def to_page(result: ProductListingResult, response: Response) -> ProductListingPage:
    response.headers["X-Total-Count"] = str(result.total)
    return ProductListingPage(
        elements=[ProductSchema.model_validate(product) for product in result.elements],
        total=result.total,
        page=result.page,
        limit=result.limit
    )

@listing_router.get("/", response_model=ProductListingPage)
@log_endpoint_access
async def get_listing(
    response: Response,
    category: Optional[str] = None,
    page: int = Query(default=1),
    limit: Optional[int] = Query(default=None),
    order: Optional[str] = Query(default=None),
    context: ListingContext = Depends(get_listing_context),
    route: ProductListingRoute = Depends(get_listing_route)
):
    """
    List products page by page.

    Available products come first. Sold-out products follow on the last page
    of available products and on the pages after it.
    """
    result = route.load(
        ListingRequest(page=page, limit=limit, order=order, category=category),
        context
    )
    return to_page(result, response)

@listing_router.get("/search", response_model=ProductListingPage)
@log_endpoint_access
async def search_listing(
    response: Response,
    q: str = Query(..., min_length=1),
    page: int = Query(default=1),
    limit: Optional[int] = Query(default=None),
    order: Optional[str] = Query(default=None),
    context: ListingContext = Depends(get_listing_context),
    route: ProductListingRoute = Depends(get_listing_route)
):
    """Search products by name, product number or description."""
    result = route.search(
        ListingRequest(page=page, limit=limit, order=order, term=q),
        context
    )
    return to_page(result, response)
