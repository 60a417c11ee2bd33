"""
FastAPI Application - REST API for crafting hosts.

Endpoints:
    GET    /api/v1/health               Service health
    GET    /api/v1/catalog/default      Built-in action catalog (raw form)
    POST   /api/v1/catalog/validate     Validate a raw action catalog
    POST   /api/v1/recommend            Recommend the next action

Every request is self-contained: the host sends the full snapshot, the
engine keeps nothing between calls.

All responses are JSON with explicit Pydantic schemas.
"""

from typing import Any
import logging
import os

from .. import __version__

# Environment configuration
KILN_ENV = os.getenv("KILN_ENV", "development")
KILN_PROFILE = os.getenv("KILN_PROFILE", "balanced")
KILN_LOG_LEVEL = os.getenv("KILN_LOG_LEVEL", "INFO")
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")


def create_app(service=None):
    """
    Create the FastAPI application.

    Args:
        service: Optional AdvisorService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    try:
        from fastapi import FastAPI, Body
        from fastapi.middleware.cors import CORSMiddleware
        from fastapi.responses import JSONResponse
    except ImportError:
        raise ImportError(
            "FastAPI not installed. Install with: pip install fastapi uvicorn"
        )

    from .service import AdvisorService
    from .schemas import (
        CatalogValidationResponse,
        ErrorCode,
        ErrorResponse,
        HealthResponse,
        RecommendRequest,
        RecommendResponse,
    )

    logging.basicConfig(level=KILN_LOG_LEVEL.upper())

    app = FastAPI(
        title="Kiln Craft Advisor API",
        description="""
Crafting puzzle decision engine.

## Recommendation Flow

1. The host posts the current snapshot, targets and condition forecast to
   `POST /recommend`.
2. The engine searches ahead and returns the action to play, alternatives
   with quality ratings, the rotation it expects and the projected end state.
3. If nothing is playable, `status` is `no_legal_action` and `blocked`
   explains each action.

## Error Codes

| Code | Description |
|------|-------------|
| `MALFORMED_CATALOG` | Action catalog failed validation |
| `INVALID_REQUEST` | Unknown condition/buff name or inconsistent snapshot |
| `UNKNOWN_PROFILE` | Search profile does not exist |
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_service = service or AdvisorService(default_profile=KILN_PROFILE)

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(error: ErrorResponse, status_code: int = 400) -> JSONResponse:
        """Wrap an ErrorResponse in a JSON response."""
        return JSONResponse(status_code=status_code, content=error.model_dump(mode="json"))

    # =========================================================================
    # Health
    # =========================================================================

    @app.get(
        "/api/v1/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Service health",
    )
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", service="kiln", version=__version__)

    # =========================================================================
    # Catalog Endpoints
    # =========================================================================

    @app.get(
        "/api/v1/catalog/default",
        tags=["Catalog"],
        summary="Built-in action catalog",
    )
    async def get_default_catalog() -> dict[str, Any]:
        return api_service.default_catalog()

    @app.post(
        "/api/v1/catalog/validate",
        response_model=CatalogValidationResponse,
        tags=["Catalog"],
        summary="Validate a raw action catalog",
    )
    async def validate_catalog(
        raw: dict[str, Any] = Body(..., description="Raw catalog: stats and actions"),
    ) -> CatalogValidationResponse:
        return api_service.validate_catalog(raw)

    # =========================================================================
    # Recommendation Endpoint
    # =========================================================================

    @app.post(
        "/api/v1/recommend",
        response_model=RecommendResponse,
        responses={400: {"model": ErrorResponse}},
        tags=["Advisor"],
        summary="Recommend the next action",
    )
    def recommend(request: RecommendRequest):
        """
        Search ahead from the snapshot and recommend an action.

        Runs synchronously; the search is bounded by the profile budgets.
        """
        response = api_service.recommend(request)
        if isinstance(response, ErrorResponse):
            status_code = 422 if response.error_code == ErrorCode.MALFORMED_CATALOG else 400
            return make_error_response(response, status_code)
        return response

    return app


# For running directly: uvicorn kiln.api.app:app
app = create_app()
