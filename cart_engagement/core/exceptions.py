"""
Custom exception classes and error handlers
Provides consistent error responses across the application
"""

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from typing import Any, Dict, Optional

class CartLifecycleException(HTTPException):
    """Base exception class for the cart engagement service"""
    
    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code

    def __str__(self) -> str:
        return self.detail

class NotFoundError(CartLifecycleException):
    """404 Not Found - unknown identifier or token"""
    
    def __init__(self, detail: str = "Not found", error_code: str = "NOT_FOUND"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code=error_code
        )

class ValidationError(CartLifecycleException):
    """422 Unprocessable Entity - malformed input"""
    
    def __init__(self, detail: str, error_code: str = "VALIDATION_ERROR"):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
            error_code=error_code
        )

class AuthorizationError(CartLifecycleException):
    """403 Forbidden - share access denied"""
    
    def __init__(self, detail: str = "Access denied", error_code: str = "ACCESS_DENIED"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code=error_code
        )

# Domain-specific errors
class SavedCartNotFoundError(NotFoundError):
    """Saved cart snapshot does not exist"""
    
    def __init__(self, snapshot_id: str):
        super().__init__(
            detail=f"Saved cart not found: {snapshot_id}",
            error_code="SAVED_CART_NOT_FOUND"
        )

class ShareNotFoundError(NotFoundError):
    """Share token unknown or expired"""
    
    def __init__(self):
        super().__init__(
            detail="Shared cart not found",
            error_code="SHARE_NOT_FOUND"
        )

class InvalidSharePasswordError(AuthorizationError):
    """Password mismatch on a protected share"""
    
    def __init__(self):
        super().__init__(detail="Invalid password", error_code="INVALID_PASSWORD")

async def cart_lifecycle_exception_handler(
    request: Request,
    exc: CartLifecycleException
) -> JSONResponse:
    """Render service errors in the common error envelope"""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": exc.error_code,
                "message": exc.detail,
                "request_id": getattr(request.state, "request_id", None)
            }
        },
        headers=exc.headers
    )
