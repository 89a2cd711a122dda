from __future__ import annotations

import logging
import sqlite3
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from services.data_items import DataItemStore, ItemValidationError
from .dependencies import get_data_item_store, get_item_id

logger = logging.getLogger("waterlab.server.api.data")

router = APIRouter(prefix="/data", tags=["data"])


class DataItemModel(BaseModel):
    id: int
    name: str
    description: str
    createdAt: str


class DataItemRequest(BaseModel):
    # Typed loosely so bad input is reported as 400 by the store's validation.
    name: Any = None
    description: Any = None


def _server_error(action: str, exc: Exception) -> HTTPException:
    logger.error("Error %s: %s", action, exc, exc_info=exc)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to {action}")


@router.get("", response_model=list[DataItemModel])
async def list_items(store: DataItemStore = Depends(get_data_item_store)):
    try:
        items = await store.list_items()
    except sqlite3.Error as exc:
        raise _server_error("fetch data", exc) from exc
    return [item.to_payload() for item in items]


@router.get("/{item_id}", response_model=DataItemModel)
async def get_item(
    item_id: int = Depends(get_item_id),
    store: DataItemStore = Depends(get_data_item_store),
):
    try:
        item = await store.get_item(item_id)
    except sqlite3.Error as exc:
        raise _server_error("fetch item", exc) from exc
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")
    return item.to_payload()


@router.post("", response_model=DataItemModel, status_code=status.HTTP_201_CREATED)
async def create_item(payload: DataItemRequest, store: DataItemStore = Depends(get_data_item_store)):
    try:
        item = await store.create_item(payload.name, payload.description)
    except ItemValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except sqlite3.Error as exc:
        raise _server_error("create item", exc) from exc
    return item.to_payload()


@router.put("/{item_id}", response_model=DataItemModel)
async def update_item(
    payload: DataItemRequest,
    item_id: int = Depends(get_item_id),
    store: DataItemStore = Depends(get_data_item_store),
):
    try:
        item = await store.update_item(item_id, payload.name, payload.description)
    except ItemValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except sqlite3.Error as exc:
        raise _server_error("update item", exc) from exc
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")
    return item.to_payload()


@router.delete("/{item_id}")
async def delete_item(
    item_id: int = Depends(get_item_id),
    store: DataItemStore = Depends(get_data_item_store),
):
    try:
        removed = await store.delete_item(item_id)
    except sqlite3.Error as exc:
        raise _server_error("delete item", exc) from exc
    if not removed:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")
    return {"message": "Item deleted successfully"}
