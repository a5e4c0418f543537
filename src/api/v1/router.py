"""Version 1 API router."""
from fastapi import APIRouter

from src.api.v1.endpoints import admin, usage


api_router = APIRouter()
api_router.include_router(usage.router)
api_router.include_router(admin.router)
