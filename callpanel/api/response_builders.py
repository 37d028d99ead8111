"""
Response builders for consistent error responses
"""

from typing import Any, Dict, List, Optional

from fastapi.responses import JSONResponse


class ApiError(Exception):
    """Raised by dependencies/endpoints; rendered as {error, message}"""

    def __init__(self, status_code: int, error: str, message: Optional[str] = None):
        self.status_code = status_code
        self.error = error
        self.message = message
        super().__init__(message or error)


def build_api_error_response(exc: ApiError) -> JSONResponse:
    content: Dict[str, Any] = {"error": exc.error}
    if exc.message:
        content["message"] = exc.message
    return JSONResponse(status_code=exc.status_code, content=content)


def build_validation_error_response(issues: List[Dict[str, Any]], error: str = "Invalid payload") -> JSONResponse:
    """422 with the per-field issue list"""
    return JSONResponse(
        status_code=422,
        content={"success": False, "error": error, "details": issues}
    )


def build_failure_response(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


def build_internal_error_response() -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})
