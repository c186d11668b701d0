from fastapi import APIRouter

from .questions import router as questions_router
from .admin import router as admin_router
from .imports import router as imports_router
from .subjects import router as subjects_router


api_router = APIRouter()

api_router.include_router(questions_router)
api_router.include_router(admin_router)
api_router.include_router(imports_router)
api_router.include_router(subjects_router)
