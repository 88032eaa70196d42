from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import uvicorn
from datetime import datetime, UTC
import os

from .database import engine, Base
from .products import product_router
from .listing import listing_router, get_listing_route
from .listing.events import ProductListingCriteriaEvent
from .config import get_settings
from .logging_config import app_logger
from .middleware import RequestLoggingMiddleware, ErrorHandlingMiddleware

# Create database tables
Base.metadata.create_all(bind=engine)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Wire listing subscribers once per process
    route = get_listing_route()
    app_logger.info(
        "Listing route ready with %d criteria listeners",
        len(route.dispatcher.get_listeners(ProductListingCriteriaEvent))
    )
    yield
    app_logger.info("Listing service stopped")

app = FastAPI(title="Product Listing API", lifespan=lifespan)

# CORS middleware
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH"],
    allow_headers=["*"],
    expose_headers=["X-Total-Count", "X-Request-ID"],
)

# Include routers
app.include_router(listing_router, prefix="/listing", tags=["Listing"])
app.include_router(product_router, prefix="/products", tags=["Products"])

# Add middlewares
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(ErrorHandlingMiddleware)

@app.get("/")
async def root():
    return {"message": "Welcome to the Product Listing API"}

@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring.
    Returns basic application health metrics.
    """
    settings = get_settings()
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT,
        "sold_out_to_end": settings.SOLD_OUT_TO_END_ENABLED
    }

@app.get("/healthz")
def healthz():
    """
    Health check endpoint.
    Returns a simple status message.
    """
    return {"status": "ok"}

if __name__ == "__main__":
    port = int(os.environ.get("BACKEND_PORT", 8000))  # Get PORT from env, default to 8000
    uvicorn.run("soldout_listing.main:app", host="0.0.0.0", port=port, reload=False)
