from fastapi import APIRouter
from datetime import datetime

from app.config import settings

router = APIRouter(prefix="/api/v1/meetups", tags=["health"])


@router.get("/health")
async def health_check():
    """Health check endpoint (no auth required)"""
    return {
        "status": "healthy",
        "service": "meetup-api",
        "version": settings.API_VERSION,
        "timestamp": datetime.now().isoformat()
    }
