"""
API router — aggregates all route modules.
"""
from fastapi import APIRouter
from azura_pos.api.loyverse_webhook import router as loyverse_webhook_router
from azura_pos.api.pos_integration import router as pos_integration_router
from azura_pos.api.health import router as health_router

api_router = APIRouter()
api_router.include_router(loyverse_webhook_router)
api_router.include_router(pos_integration_router)
api_router.include_router(health_router)
