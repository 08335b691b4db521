import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from app.utils.response import error_response

logger = logging.getLogger(__name__)

ANALYSIS_FAILURE_MESSAGE = "Failed to analyze image. Please try again."


class AppException(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ConfigurationError(AppException):
    def __init__(self, message: str):
        super().__init__(message, status_code=503)


class ValidationError(AppException):
    """Uploaded file rejected before it becomes the session image."""

    def __init__(self, message: str = "Please upload a valid image file."):
        super().__init__(message, status_code=422)


class FileReadError(AppException):
    def __init__(self, message: str = "Could not read the image file. Please try again."):
        super().__init__(message, status_code=422)


class AnalysisError(AppException):
    """Failure of the single model call. `detail` is for diagnostics only."""

    def __init__(self, detail: str, generation: int | None = None):
        super().__init__(ANALYSIS_FAILURE_MESSAGE, status_code=502)
        self.detail = detail
        self.generation = generation


class NetworkError(AnalysisError):
    pass


class ModelError(AnalysisError):
    pass


class EmptyResponse(AnalysisError):
    pass


class AnalysisInProgressError(AppException):
    def __init__(self, message: str = "An analysis is already running for this image."):
        super().__init__(message, status_code=409)


class NoImageSelectedError(AppException):
    def __init__(self, message: str = "Please upload an image before submitting."):
        super().__init__(message, status_code=400)


class ExportUnavailableError(AppException):
    def __init__(self, message: str = "No analysis result available to export."):
        super().__init__(message, status_code=409)


class SessionNotFoundError(AppException):
    def __init__(self, message: str = "Session not found"):
        super().__init__(message, status_code=404)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(exc.message),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=error_response("Internal server error"),
        )
