"""Contact Form Service - FastAPI server for the website contact form."""

import logging
from pathlib import Path
from typing import Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.shared.contact.config import ContactConfig, load_config
from src.shared.contact.rate_limiter import RateLimitStore
from src.shared.contact.routes import router as contact_router
from src.shared.contact.service import Clock, ContactSubmissionHandler

PROJECT_ROOT = Path(__file__).resolve().parent.parent
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str) -> None:
    """Configure root logging once; later calls only adjust the level."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    root.setLevel(level)


def _cors_headers(request: Request) -> Dict[str, str]:
    """CORS headers for error responses, so browsers can read them."""
    headers = {}
    origin = request.headers.get("origin")
    if origin and origin in request.app.state.config.allowed_origins:
        headers["Access-Control-Allow-Origin"] = origin
        headers["Access-Control-Allow-Credentials"] = "true"
        headers["Access-Control-Allow-Methods"] = "*"
        headers["Access-Control-Allow-Headers"] = "*"
    return headers


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render HTTP exceptions as JSON, passing dict details through as the body."""
    headers = _cors_headers(request)
    if getattr(exc, "headers", None):
        headers.update(exc.headers)

    # Handle both string and dict detail formats
    if isinstance(exc.detail, dict):
        content = exc.detail
    elif isinstance(exc.detail, str):
        content = {"detail": exc.detail}
    else:
        content = {"detail": str(exc.detail)}

    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=headers
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Ensure CORS headers are added to validation errors."""
    return JSONResponse(
        status_code=422,
        content={"detail": exc.errors()},
        headers=_cors_headers(request)
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Log unexpected failures and answer with a generic message."""
    logging.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"message": "Internal server error"},
        headers=_cors_headers(request)
    )


def create_app(
    config: Optional[ContactConfig] = None,
    rate_limiter: Optional[RateLimitStore] = None,
    clock: Optional[Clock] = None
) -> FastAPI:
    """
    Build the application and its shared state.

    Args:
        config: Settings; read from the environment if omitted
        rate_limiter: Rate limit store; a fresh in-memory one if omitted
        clock: Callable returning the current time in milliseconds

    Returns:
        Configured FastAPI application
    """
    config = config or load_config()
    configure_logging(config.log_level)

    rate_limiter = rate_limiter or RateLimitStore(
        max_requests=config.rate_limit_max,
        window_ms=config.rate_limit_window_ms
    )

    app = FastAPI(
        title="Contact Form Service",
        description="Validates, rate-limits and records website contact form submissions",
        version="0.1.0"
    )
    app.state.config = config
    app.state.rate_limiter = rate_limiter
    app.state.contact_handler = ContactSubmissionHandler(config, rate_limiter, clock=clock)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    app.include_router(contact_router)

    # Static frontend last, so API routes take precedence over files
    public_dir = Path(config.public_dir)
    if not public_dir.is_absolute():
        public_dir = PROJECT_ROOT / public_dir
    if public_dir.is_dir():
        app.mount("/", StaticFiles(directory=str(public_dir), html=True), name="public")
    else:
        logging.warning(f"Static directory {str(public_dir)!r} not found; frontend will not be served")

    logging.info(
        f"Contact form limits: {config.rate_limit_max} submissions per "
        f"{config.rate_limit_window_ms} ms, message minimum {config.message_min_length} characters, "
        f"form expiry check {'on' if config.expiry_check_enabled else 'off'}"
    )
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=app.state.config.host, port=app.state.config.port)
