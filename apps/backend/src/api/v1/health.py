"""Liveness probe. It does not touch the database."""

from fastapi import APIRouter

from schemas.api import ApiResponse


router = APIRouter()


@router.get(
    "/health",
    summary="Liveness check",
    response_model=ApiResponse[dict[str, str]],
)
def health_check() -> ApiResponse[dict[str, str]]:
    return ApiResponse(
        data={"status": "healthy", "message": "MealQueue API is running"},
        message="Health check successful",
    )
