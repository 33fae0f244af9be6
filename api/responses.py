"""
Standardized API response models and utilities.
Provides consistent error formatting across all endpoints.
"""

from typing import Optional, Any
from pydantic import BaseModel, Field
from datetime import datetime


class ErrorDetail(BaseModel):
    """Detailed error information"""

    code: str = Field(..., description="Error code")
    message: str = Field(..., description="Error message")
    details: Optional[Any] = Field(None, description="Additional error details")
    retryable: Optional[bool] = Field(None, description="Whether the request can be retried")


class ErrorResponse(BaseModel):
    """Standardized error response"""

    success: bool = Field(False, description="Always false for errors")
    error: ErrorDetail = Field(..., description="Error details")
    timestamp: datetime = Field(
        default_factory=datetime.utcnow, description="Error timestamp"
    )


class HealthResponse(BaseModel):
    """Health check response"""

    status: str = Field(..., description="Service status")
    service: str = Field(..., description="Service name")
    version: Optional[str] = Field(None, description="Service version")
    knowledge_base_version: Optional[str] = Field(None, description="Bundled knowledge base version")
    online: Optional[bool] = Field(None, description="Connectivity state")
    timestamp: datetime = Field(
        default_factory=datetime.utcnow, description="Check timestamp"
    )


def error_response(
    code: str,
    message: str,
    details: Any = None,
    retryable: Optional[bool] = None,
) -> dict:
    """Create a standardized, JSON-ready error response"""
    error = {"code": code, "message": message}
    if details:
        error["details"] = details
    if retryable is not None:
        error["retryable"] = retryable
    return {
        "success": False,
        "error": error,
        "timestamp": datetime.utcnow().isoformat(),
    }
