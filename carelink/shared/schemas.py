from pydantic import BaseModel
from typing import Optional, Any, Dict


class ErrorResponse(BaseModel):
    """Error response model."""

    success: bool = False
    message: str
    detail: Optional[Dict[str, Any]] = None


class StatusResponse(BaseModel):
    """Generic status response."""

    message: str
    success: bool = True
