from typing import Any, Generic, List, Optional, TypeVar
from pydantic import BaseModel

T = TypeVar("T")

class ErrorDetail(BaseModel):
    field: str
    message: str
    value: Any = None

class ApiResponse(BaseModel, Generic[T]):
    """Envelope returned by every successful endpoint"""
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None

class ErrorResponse(BaseModel):
    """Envelope produced by the exception handlers"""
    success: bool = False
    message: str
    errors: Optional[List[ErrorDetail]] = None
