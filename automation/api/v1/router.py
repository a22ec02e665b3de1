"""API v1 router aggregation."""

from fastapi import APIRouter

from automation.api.v1.endpoints import automations, health

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(automations.router, prefix="/automations", tags=["automations"])
