import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

# Load environment variables
load_dotenv()

from pagebuilder.api.routes import ai, auth, diagnostics, files, public
from pagebuilder.api import websocket
from pagebuilder.core.config import settings as app_settings
from pagebuilder.core.errors import PageBuilderError
from pagebuilder.core.rate_limit import limiter
from pagebuilder.db.database import connect_db, disconnect_db
from pagebuilder.services.kv_client import kv_manager

logging.basicConfig(
    level=app_settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Page Builder API",
    version="1.0.0",
    description="Multi-tenant static page builder backend"
)

# Attach limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


async def page_builder_error_handler(request: Request, exc: PageBuilderError):
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc
        )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.client_message})


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


app.add_exception_handler(PageBuilderError, page_builder_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)
app.add_exception_handler(Exception, unhandled_error_handler)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    return {
        "name": "Page Builder API",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health")
async def health():
    return {"status": "healthy"}


# Include routers
app.include_router(files.router, prefix="/api")
app.include_router(ai.router, prefix="/api")
app.include_router(auth.router, prefix="/api")
app.include_router(diagnostics.router, prefix="/api")
app.include_router(auth.session_router)
app.include_router(websocket.router)
# Catch-all page route goes last
app.include_router(public.router)


@app.on_event("startup")
async def startup():
    """Connect to database on startup."""
    await connect_db()


@app.on_event("shutdown")
async def shutdown():
    """Disconnect from database and KV store on shutdown."""
    await disconnect_db()
    await kv_manager.close()
