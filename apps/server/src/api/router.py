from fastapi import APIRouter

from config import settings
from services.foen import foen_client
from .data_router import router as data_router
from .news_router import router as news_router
from .water_router import router as water_router

router = APIRouter(prefix="/api")
router.include_router(news_router)
router.include_router(water_router)
router.include_router(data_router)


@router.get("/health")
async def health():
    return {"status": "ok", "version": settings.app_version}


@router.get("/info")
async def info():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "debug": settings.debug,
        "cors_origins": settings.cors_origins,
        "news_feeds": [feed.source for feed in settings.news_feeds],
        "foen_enabled": foen_client.enabled,
    }
