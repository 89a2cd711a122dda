from __future__ import annotations

from fastapi import HTTPException, status

from services.data_items import DataItemStore, data_item_store, parse_item_id
from services.news import NewsAggregator, news_aggregator
from services.stations import StationReconciler, station_reconciler


def get_station_reconciler() -> StationReconciler:
    return station_reconciler


def get_news_aggregator() -> NewsAggregator:
    return news_aggregator


def get_data_item_store() -> DataItemStore:
    return data_item_store


def get_item_id(item_id: str) -> int:
    parsed = parse_item_id(item_id)
    if parsed is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid ID parameter")
    return parsed
