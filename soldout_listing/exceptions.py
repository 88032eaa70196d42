from fastapi import HTTPException
from typing import Any, Dict, Optional

class AppBaseException(HTTPException):
    def __init__(
        self,
        status_code: int,
        detail: str,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)

class InvalidCriteriaError(AppBaseException):
    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=f"Invalid criteria: {detail}")

class ListingError(AppBaseException):
    def __init__(self, detail: str):
        super().__init__(status_code=500, detail=f"Listing error: {detail}")

class ResourceNotFoundError(AppBaseException):
    def __init__(self, resource_type: str, resource_id: Any):
        super().__init__(
            status_code=404,
            detail=f"{resource_type} with id {resource_id} not found"
        )
