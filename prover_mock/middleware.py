from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging
import traceback

from prover_mock.errors import ProverMockError

logger = logging.getLogger(__name__)

def add_error_handling_middleware(app: FastAPI):
    """Add error handling middleware to FastAPI app"""

    @app.exception_handler(ProverMockError)
    async def prover_mock_exception_handler(request: Request, exc: ProverMockError):
        """Translate store/registry errors into the error envelope"""
        logger.info(f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "code": exc.status_code,
                "error_code": exc.error_code,
                "message": exc.message,
                "hint": exc.hint,
                "retryable": exc.retryable
            }
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Render request validation failures in the error envelope"""
        problems = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error.get("loc", ()))
            problems.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
        message = "; ".join(problems) or "Invalid request"
        logger.info(f"VALIDATION_ERROR on {request.method} {request.url.path}: {message}")
        return JSONResponse(
            status_code=422,
            content={
                "code": 422,
                "error_code": "VALIDATION_ERROR",
                "message": message,
                "hint": "Check the request body against the API schema",
                "retryable": False
            }
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle HTTP exceptions with proper error format"""
        logger.error(f"HTTP error {exc.status_code}: {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "code": exc.status_code,
                "error_code": "HTTP_ERROR",
                "message": exc.detail,
                "hint": "Check the request parameters and try again",
                "retryable": exc.status_code >= 500
            }
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle general exceptions"""
        logger.error(f"Unhandled exception: {str(exc)}")
        logger.error(f"Traceback: {traceback.format_exc()}")
        return JSONResponse(
            status_code=500,
            content={
                "code": 500,
                "error_code": "INTERNAL_ERROR",
                "message": "Internal server error",
                "hint": "Please try again later or contact support",
                "retryable": True
            }
        )
