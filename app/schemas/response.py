from pydantic import BaseModel
from typing import Optional, Any, Dict


class ErrorResponse(BaseModel):
    """
    Standard error response structure.
    """
    error: str
    code: str
    details: Optional[Any] = None


class ActionResponse(BaseModel):
    """
    Acknowledgement for admin actions.
    """
    success: bool = True
    message: str
    data: Optional[Dict[str, Any]] = None
