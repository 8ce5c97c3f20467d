import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from task_api.api import router
from task_api.errors import ClientInputError, TaskApiError, translate_error
from task_api.repository import init_db
from task_api.validation import format_errors
from task_api.config import setup_logging

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Task API")

app.include_router(router)


def _error_response(request: Request, exc: BaseException) -> JSONResponse:
    translated = translate_error(exc)
    extra = {"path": request.url.path, "method": request.method}
    if translated.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {type(exc).__name__}", extra=extra)
    else:
        logger.warning(
            f"{request.method} {request.url.path} -> {translated.status_code}: {translated.body.get('message')}",
            extra=extra,
        )
    return JSONResponse(status_code=translated.status_code, content=translated.body)


@app.exception_handler(TaskApiError)
async def task_api_exception_handler(request: Request, exc: TaskApiError):
    """Handler for store and application errors."""
    return _error_response(request, exc)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handler for framework HTTP errors (unknown routes, bad methods)."""
    return _error_response(request, exc)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handler for request validation errors."""
    return _error_response(request, ClientInputError(format_errors(exc.errors())))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled exceptions."""
    return _error_response(request, exc)


@app.on_event("startup")
def on_startup():
    """Initialize database on application startup."""
    try:
        logger.info("Starting application...")

        init_db()
        logger.info("Database tables created/verified")
        logger.info("Server started successfully")

    except Exception as e:
        logger.critical(f"Failed to start application: {e}", exc_info=True)
        raise


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}
