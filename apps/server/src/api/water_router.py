from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from services.stations import StationReconciler
from .dependencies import get_station_reconciler

logger = logging.getLogger("waterlab.server.api.water")

router = APIRouter(prefix="/water", tags=["water"])


class StationSummaryModel(BaseModel):
    id: str
    name: str
    source: str


class StationModel(BaseModel):
    id: str
    name: str
    waterBody: Optional[str] = None
    canton: Optional[str] = None
    coordinates: Optional[list[float]] = None


class MeasurementModel(BaseModel):
    id: str
    label: str
    shortName: str
    unit: str
    value: float
    timestamp: Optional[str] = None


class StationDataResponse(BaseModel):
    station: StationModel
    measurements: list[MeasurementModel]
    raw: dict[str, Any]
    source: str


@router.get("/stations", response_model=list[StationSummaryModel])
async def list_stations(reconciler: StationReconciler = Depends(get_station_reconciler)):
    try:
        stations = reconciler.list_stations()
    except Exception as exc:
        logger.exception("Failed to build station list")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch station list",
        ) from exc
    return [station.to_payload() for station in stations]


@router.get("/stations/{station_id}", response_model=StationDataResponse)
async def get_station(station_id: str, reconciler: StationReconciler = Depends(get_station_reconciler)):
    payload = await reconciler.resolve(station_id)
    if payload is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Station not found in any data source")
    return payload.to_payload()
