from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from services.news import NewsAggregator
from .dependencies import get_news_aggregator

logger = logging.getLogger("waterlab.server.api.news")

router = APIRouter(prefix="/news", tags=["news"])


class WaterNewsArticleModel(BaseModel):
    title: str
    link: str
    date: Optional[str] = None
    summary: str
    source: str
    image: Optional[str] = None


@router.get("", response_model=list[WaterNewsArticleModel])
async def get_news(aggregator: NewsAggregator = Depends(get_news_aggregator)):
    try:
        articles = await aggregator.latest()
    except Exception as exc:
        logger.exception("Failed to fetch news feed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to fetch water news",
        ) from exc
    return [article.to_payload() for article in articles]
