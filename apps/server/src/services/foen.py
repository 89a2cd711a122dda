from __future__ import annotations

import logging
from typing import Optional

from config import settings
from services.water_models import StationPayload

logger = logging.getLogger("waterlab.server.foen")


class FoenClient:
    """Placeholder for the FOEN hydrology API.

    The public JSON endpoint now requires credentials, so every lookup
    reports no data and the reconciler moves on to the next source.
    """

    def __init__(self, enabled: bool = False) -> None:
        self._enabled = enabled
        if enabled:
            logger.warning("FOEN integration requested but not available; ignoring")

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def fetch_station_data(self, station_id: str) -> Optional[StationPayload]:
        if self._enabled:
            logger.debug("No FOEN endpoint available for station %s", station_id)
        return None


foen_client = FoenClient(enabled=settings.foen_enabled)

__all__ = ["FoenClient", "foen_client"]
