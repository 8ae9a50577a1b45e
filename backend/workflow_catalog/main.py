# workflow_catalog/main.py
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from .config import settings
from .database import init_db
from .errors import CatalogError
from .logging_config import setup_logging

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
    ## Workflow Catalog

    Catalog of automation workflow definitions with bulk import.

    ### Import flow:
    1. Start an import with a batch of workflow files (duplicates are skipped by content)
    2. Call `/process` repeatedly, one file per call, until it reports `completed`
    3. Poll `/status` for progress; failed files never stop the batch
    4. Cancel at any time; files already processed stay in the catalog

    ### Maintenance:
    * Delete workflows by import tag
    * Delete or rename workflows that share a name
    * Purge finished import sessions
    * Database statistics
    """,
    debug=settings.DEBUG,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {
            "name": "import",
            "description": "Bulk import - Start, step through, monitor and cancel import sessions"
        },
        {
            "name": "workflows",
            "description": "Catalog - Search, read, export and delete analyzed workflows"
        },
        {
            "name": "maintenance",
            "description": "Cleanup - Remove or rename catalog entries"
        },
        {
            "name": "system",
            "description": "System endpoints - Health checks and API information"
        }
    ]
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    """Render pipeline errors as {"error", "code", ...} with the error's HTTP status"""
    logger = logging.getLogger(__name__)
    if exc.http_status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.error_code}): {exc.message}")
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


# Startup event
@app.on_event("startup")
async def startup_event():
    """Initialize logging and database"""
    # Setup logging first (creates log files)
    logger = setup_logging()
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Analyzer mode: {settings.ANALYZER_MODE}")

    init_db()
    logger.info("Database initialized successfully")


# Shutdown event
@app.on_event("shutdown")
async def shutdown_event():
    logging.getLogger(__name__).info(f"Shutting down {settings.APP_NAME}...")


# Health check endpoint
@app.get("/health", tags=["system"])
async def health_check():
    """
    System Health Check

    Returns the current system status and version information.
    """
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION
    }


# Root endpoint
@app.get("/", tags=["system"])
async def root():
    """API root with links to documentation and health check"""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "redoc": "/redoc",
        "health": "/health"
    }


# Include API routers
from .api import imports, workflows, cleanup

app.include_router(imports.router, prefix="/api/import", tags=["import"])
app.include_router(workflows.router, prefix="/api/workflows", tags=["workflows"])
app.include_router(cleanup.router, prefix="/api", tags=["maintenance"])
