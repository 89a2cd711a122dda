import asyncio
import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

# Keep the default item database out of the source tree while tests run
os.environ.setdefault("DATABASE_PATH", str(Path(tempfile.mkdtemp(prefix="waterlab-tests-")) / "items.sqlite"))

from fastapi.testclient import TestClient  # noqa: E402

from config import settings  # noqa: E402
from main import create_app  # noqa: E402
from services.data_items import data_item_store  # noqa: E402
from services.local_snapshot import local_snapshot  # noqa: E402
from services.news import news_aggregator  # noqa: E402
from services.socrata import socrata_client  # noqa: E402

SNAPSHOT_HEADER = "station_id,station_name,water_body,canton,temperature_c,discharge_m3s,water_level_cm,timestamp"


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def _reset_water_services() -> None:
    socrata_client.clear()
    local_snapshot.clear()
    news_aggregator.clear()
    asyncio.run(data_item_store.clear())
    yield
    socrata_client.clear()
    local_snapshot.clear()
    news_aggregator.clear()
    asyncio.run(data_item_store.clear())


@pytest.fixture
def settings_override() -> Callable[..., None]:
    original: Dict[str, Any] = {}

    def _apply(**overrides: Any) -> None:
        for key, value in overrides.items():
            if key not in original:
                original[key] = getattr(settings, key)
            setattr(settings, key, value)

    yield _apply

    for key, value in original.items():
        setattr(settings, key, value)


@pytest.fixture
def write_snapshot(tmp_path: Path) -> Callable[..., Path]:
    def _write(*rows: str, header: str = SNAPSHOT_HEADER, name: str = "water_latest.csv") -> Path:
        path = tmp_path / name
        path.write_text("\n".join([header, *rows]) + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def client(app) -> TestClient:
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
