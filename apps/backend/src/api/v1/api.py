from fastapi import APIRouter

from .grocery_lists import router as grocery_lists_router
from .health import router as health_router
from .mealplans import router as mealplans_router


api_router = APIRouter()

# Identity is resolved upstream; every route here is reachable as-is
api_router.include_router(health_router, tags=["health"])
api_router.include_router(mealplans_router)
api_router.include_router(grocery_lists_router)
