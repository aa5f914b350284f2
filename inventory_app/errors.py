"""
Error taxonomy for the Inventory service.

Each error is an ``HTTPException`` carrying its status code; the exception
handlers in ``main`` render all of them as ``{"error": detail}``.
"""
from fastapi import HTTPException, status


class BadRequest(HTTPException):
    """Missing or invalid input. The message is shown to the user verbatim."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class Unauthorized(HTTPException):
    """Missing, invalid or expired bearer token."""

    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class NotFound(HTTPException):
    """Mutation target absent from the caller's namespace."""

    def __init__(self, detail: str = "Product not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class InternalError(HTTPException):
    """Storage or unexpected provider failure; detail is always generic."""

    def __init__(self, detail: str = "Internal server error"):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
