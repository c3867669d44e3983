import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from country_xchange.api.endpoints import country, status
from country_xchange.config import Config
from country_xchange.core.errors import ArtifactRenderError, SourceUnavailable
from country_xchange.database import DATABASE_URL, get_db, init_db
from country_xchange.logging_config import RequestLoggingMiddleware, init_logging

init_logging()
logger = logging.getLogger("country_xchange")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Database tables ready")
    yield


# FastAPI app
app = FastAPI(title="Country Currency & Exchange API", lifespan=lifespan)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(country.router)
app.include_router(status.router)


@app.exception_handler(SourceUnavailable)
async def source_unavailable_handler(request: Request, exc: SourceUnavailable):
    logger.error("Refresh aborted: %s", exc)
    return JSONResponse(
        status_code=503,
        content={
            "error": "External data source unavailable",
            "details": f"Could not fetch data from {exc.source}",
        },
    )


@app.exception_handler(ArtifactRenderError)
async def artifact_render_handler(request: Request, exc: ArtifactRenderError):
    return JSONResponse(
        status_code=500,
        content={"error": "Summary image generation failed", "details": exc.details},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(
        "Validation failed: %s %s | errors=%s",
        request.method,
        request.url.path,
        exc.errors(),
    )
    return JSONResponse(
        status_code=400,
        content={"error": "Validation failed", "details": jsonable_errors(exc)},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def jsonable_errors(exc: RequestValidationError):
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg")}
        for error in exc.errors()
    ]


@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Health check endpoint to verify database connection"""
    db_type = "PostgreSQL" if "postgresql" in DATABASE_URL else "SQLite"
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("Health check failed: %s", e)
        return {
            "status": "unhealthy",
            "database": {"status": "disconnected", "type": db_type, "error": str(e)},
        }

    return {"status": "healthy", "database": {"status": "connected", "type": db_type}}


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Country Currency & Exchange API",
        "endpoints": {
            "GET /health": "Health check and database status",
            "POST /countries/refresh": "Refresh country data",
            "GET /countries": "Get all countries (supports ?region=, ?currency=, ?sort=gdp_asc|gdp_desc)",
            "GET /countries/{name}": "Get country by name",
            "DELETE /countries/{name}": "Delete country",
            "GET /status": "Get system status",
            "GET /countries/image": "Get summary image",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=Config.port)
