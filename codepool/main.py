"""
Discount Code Pool Service — FastAPI app

Owner-managed pools of discount codes, handed out exactly once per
triggering event with first-N limits and fallback on exhaustion.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from codepool.config import settings
from codepool.core.logging import get_logger, setup_logging
from codepool.db.session import init_db
from codepool.errors import (
    AccessDenied,
    CodePoolError,
    ConstraintViolation,
    InvalidInput,
    NotFound,
    Unavailable,
)
from codepool.routes import assign, pools

logger = get_logger(__name__)

_STATUS_BY_ERROR: list[tuple[type[CodePoolError], int]] = [
    (InvalidInput, 400),
    (AccessDenied, 403),
    (NotFound, 404),
    (ConstraintViolation, 409),
    (Unavailable, 503),
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize logging and DB tables on startup."""
    setup_logging(settings.log_level)
    await init_db()
    logger.info("Code pool service started")
    yield
    logger.info("Code pool service stopped")


app = FastAPI(
    title="Discount Code Pool API",
    description="Atomic discount code assignment for comment-triggered automations.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(pools.router)
app.include_router(assign.router)


@app.exception_handler(CodePoolError)
async def code_pool_error_handler(request: Request, exc: CodePoolError):
    status_code = next((s for cls, s in _STATUS_BY_ERROR if isinstance(exc, cls)), 500)
    if status_code >= 500:
        logger.error(
            "Storage error",
            extra={"extra_data": {"path": request.url.path, "error": exc.message}},
        )
        # Driver messages stay in the log
        message = "Service temporarily unavailable" if status_code == 503 else "Internal server error"
        return JSONResponse(status_code=status_code, content={"success": False, "error": message})

    content = {"success": False, "error": exc.message}
    if isinstance(exc, InvalidInput) and exc.field:
        content["field"] = exc.field
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    # First problem only, in the same shape as InvalidInput
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path", "header")]
    content = {"success": False, "error": first.get("msg", "Invalid request")}
    if loc:
        content["field"] = ".".join(loc)
    return JSONResponse(status_code=400, content=content)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.get("/health", tags=["health"])
async def health():
    """Health check for load balancers and container orchestration."""
    return {"status": "ok"}
