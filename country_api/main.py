import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException

from country_api.config import settings
from country_api.database import engine, init_db
from country_api.logging import RequestLoggingMiddleware, init_logging, setup_query_logging
from country_api.routes import countries, status
from country_api.services.image_generator import PillowSummaryRenderer
from country_api.state import RefreshState

logger = logging.getLogger("country_api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    settings.CACHE_DIR.mkdir(parents=True, exist_ok=True)
    logger.info("Database ready at %s", engine.url.render_as_string(hide_password=True))
    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title="Country Currency & Exchange API",
        version="1.0.0",
        description=(
            "REST API to explore countries, currencies, population, and simple GDP estimates.\n\n"
            "Features:\n"
            "- Refresh from Rest Countries and Open Exchange Rates\n"
            "- Filter by region and currency, sort by estimated GDP\n"
            "- Status and a generated summary image"
        ),
        lifespan=lifespan,
    )
    app.state.refresh_state = RefreshState()
    app.state.summary_renderer = PillowSummaryRenderer()

    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(countries.router, prefix="/countries", tags=["Countries"])
    app.include_router(status.router, prefix="/status", tags=["Status"])
    app.mount("/cache", StaticFiles(directory=settings.CACHE_DIR, check_dir=False), name="cache")

    @app.get("/", include_in_schema=False)
    def root():
        return {"message": "Country Currency & Exchange API running. Visit /docs for API documentation."}

    register_exception_handlers(app)
    return app


# -------------------------------
# Unified error response handlers
# -------------------------------
def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        level = logging.ERROR if exc.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "HTTPException: %s %s -> %s | detail=%s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.detail,
        )
        body = {"error": exc.detail if isinstance(exc.detail, str) else "Error"}
        if isinstance(exc.detail, dict):
            body = {
                "error": exc.detail.get("error") or "Error",
                "details": exc.detail.get("details"),
            }
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(
            "ValidationError: %s %s | errors=%s",
            request.method,
            request.url.path,
            exc.errors(),
        )
        details = {str(err["loc"][-1]) if err.get("loc") else "request": err.get("msg") for err in exc.errors()}
        return JSONResponse(
            status_code=400,
            content={"error": "Validation failed", "details": details},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(
            "Unhandled exception: %s %s",
            request.method,
            request.url.path,
        )
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


init_logging()
setup_query_logging(engine)
app = create_app()
