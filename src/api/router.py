from fastapi import APIRouter

from src.api.campaigns import router as campaigns_router
from src.api.content import router as content_router
from src.api.invitations import router as invitations_router

api_router = APIRouter()
api_router.include_router(campaigns_router)
api_router.include_router(content_router)
api_router.include_router(invitations_router)
