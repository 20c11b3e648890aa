import logging
from urllib.parse import urlparse

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.docs import get_redoc_html, get_swagger_ui_html
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.v1.api import api_router
from core.config import get_settings
from core.error_handler import (
    ExceptionNormalizationMiddleware,
    global_exception_handler,
    setup_logging,
)
from core.exceptions import DomainError
from core.middleware import CorrelationIdMiddleware
from services.grocery.exceptions import GroceryListError


def validate_cors_origins(origins: list[str]) -> list[str]:
    """Keep absolute http(s) origins; anything else is logged and dropped."""
    accepted: list[str] = []
    for origin in origins:
        parsed = urlparse(origin)
        if parsed.scheme in {"http", "https"} and parsed.netloc:
            accepted.append(origin)
        else:
            logging.warning("Ignoring malformed CORS origin %r", origin)
    return accepted


setup_logging()
settings = get_settings()

app = FastAPI(
    title="MealQueue API",
    description="Weekly meal planning with a self-refreshing grocery list",
    version="0.1.0",
    docs_url=None,
    redoc_url=None,
)

# Added innermost first, so the correlation id is bound before errors are normalized
app.add_middleware(ExceptionNormalizationMiddleware)
app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=validate_cors_origins(list(settings.CORS_ORIGINS)),
    allow_credentials=settings.ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)

for handled in (
    Exception,
    StarletteHTTPException,
    RequestValidationError,
    IntegrityError,
    DomainError,
    GroceryListError,
):
    app.add_exception_handler(handled, global_exception_handler)

app.include_router(api_router, prefix="/api/v1")


@app.get("/api/v1/docs", include_in_schema=False)
def swagger_ui():
    return get_swagger_ui_html(openapi_url=app.openapi_url, title="MealQueue API Docs")


@app.get("/api/v1/redoc", include_in_schema=False)
def redoc_ui():
    return get_redoc_html(openapi_url=app.openapi_url, title="MealQueue API ReDoc")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
