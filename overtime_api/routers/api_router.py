from fastapi import APIRouter
from overtime_api.routers import admin, auth, requests, settings

# Centralized API router hub; main.py only imports this one.
# The WebSocket router is mounted at the root by main.py.
api_router = APIRouter()

api_router.include_router(auth.router, tags=["Authentication"])
api_router.include_router(requests.router, tags=["Requests"])
api_router.include_router(settings.router, tags=["Settings"])
api_router.include_router(admin.router, tags=["Administration"])
