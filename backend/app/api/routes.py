from fastapi import APIRouter

from app.api.auth import router as auth_router
from app.api.chat import router as chat_router
from app.api.health import router as health_router
from app.api.meal_plans import router as meal_plans_router
from app.api.profile import router as profile_router
from app.api.shopping_lists import router as shopping_lists_router

router = APIRouter()
router.include_router(health_router)
router.include_router(auth_router)
router.include_router(chat_router)
router.include_router(meal_plans_router)
router.include_router(shopping_lists_router)
router.include_router(profile_router)
