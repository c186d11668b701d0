import logging
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from sqlalchemy import text

from pyqbank import __version__, config
from pyqbank.api.v1.routes import api_router
from pyqbank.database import engine, Base
from pyqbank.middleware.error_handler import ErrorHandlerMiddleware, GlobalExceptionHandler
from pyqbank.services.question_service import drain_view_updates

import pyqbank.models  # noqa: F401  (registers tables on Base.metadata)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)

app = FastAPI(title="PYQ Bank API", version=__version__)

# Turn unexpected errors into the error envelope
app.add_middleware(ErrorHandlerMiddleware)

# Setup global exception handlers
GlobalExceptionHandler.setup_exception_handlers(app)


@app.on_event("startup")
async def on_startup():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@app.on_event("shutdown")
async def on_shutdown():
    await drain_view_updates()
    await engine.dispose()


app.include_router(api_router)


# Health check endpoint
@app.get("/health", tags=["System"])
async def health_check():
    """
    Health check endpoint for monitoring and load balancers.

    Returns basic system status and database connectivity.
    """
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))

        return {
            "status": "healthy",
            "timestamp": timestamp,
            "version": __version__,
            "database": "connected",
            "searchStrategy": config.SEARCH_STRATEGY
        }
    except Exception as e:
        logger.error(f"Health check failed: {str(e)}")
        return {
            "status": "unhealthy",
            "timestamp": timestamp,
            "version": __version__,
            "database": "disconnected",
            "error": str(e)
        }


# Add JWT bearer auth to Swagger UI
def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema

    api_description = """
## PYQ Bank API Documentation

Search and management of previous year exam questions.

#### Public endpoints
- `GET /v1/questions/search`: keyword search with year, exam type, subject, topic and difficulty filters
- `GET /v1/questions/filters/options` and `GET /v1/questions/statistics`: facet values and counts
- `GET /v1/questions/{questionId}`: a single question; the view is counted in the background

#### Admin endpoints
Require a JWT bearer token whose `roles` claim contains `admin`.
- Question CRUD, verification, archiving and duplication under `/v1/admin/questions`
- Two-phase bulk import under `/v1/admin/import`: validate, then confirm or cancel

#### Errors
Every error uses the same envelope:
```json
{"success": false, "message": "Validation failed", "errors": {"year": "Year must be between 2000 and 2035"}}
```
    """

    openapi_schema = get_openapi(
        title="PYQ Bank API",
        version=__version__,
        description=api_description,
        routes=app.routes,
    )
    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT"
        }
    }
    for path, operations in openapi_schema["paths"].items():
        for method, operation in operations.items():
            if path.startswith("/v1/admin") or (path == "/v1/subjects/seed" and method == "post"):
                operation.setdefault("security", []).append({"BearerAuth": []})
    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.openapi = custom_openapi
