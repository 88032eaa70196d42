"""
Listing package for the storefront backend.

This package handles everything a product listing page needs:
- Criteria building, filtering, sorting and pagination
- Listing and search events with their dispatcher
- Sold-out products pushed to the end of the listing
"""

from .router import listing_router, get_listing_route

__all__ = ['listing_router', 'get_listing_route']
