from typing import Optional
import uuid
from sqlalchemy.orm import Session

class ListingContext:
    """Per-request state handed to the loader and to every listing event."""

    def __init__(self, db: Session, request_id: Optional[str] = None):
        self.db = db
        self.request_id = request_id or uuid.uuid4().hex
