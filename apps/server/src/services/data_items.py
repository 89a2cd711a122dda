from __future__ import annotations

import asyncio
import sqlite3
from contextlib import closing
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from config import settings

MAX_NAME_LENGTH = 255
MAX_DESCRIPTION_LENGTH = 1000


class ItemValidationError(ValueError):
    """Raised when a create/update payload does not meet the item requirements."""


@dataclass(frozen=True, slots=True)
class DataItem:
    id: int
    name: str
    description: str
    created_at: str

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "DataItem":
        return cls(
            id=int(row["id"]),
            name=row["name"],
            description=row["description"],
            created_at=str(row["createdAt"]),
        )


def validate_item_input(name: Any, description: Any) -> tuple[str, str]:
    """Return the trimmed name and description or raise ItemValidationError."""
    if not isinstance(name, str) or not name.strip():
        raise ItemValidationError("Name is required and must be a non-empty string")
    if not isinstance(description, str) or not description.strip():
        raise ItemValidationError("Description is required and must be a non-empty string")
    trimmed_name = name.strip()
    trimmed_description = description.strip()
    if len(trimmed_name) > MAX_NAME_LENGTH:
        raise ItemValidationError(f"Name must be {MAX_NAME_LENGTH} characters or less")
    if len(trimmed_description) > MAX_DESCRIPTION_LENGTH:
        raise ItemValidationError(f"Description must be {MAX_DESCRIPTION_LENGTH} characters or less")
    return trimmed_name, trimmed_description


def parse_item_id(raw: Any) -> Optional[int]:
    text = str(raw).strip()
    if not (text.isascii() and text.isdigit()):
        return None
    value = int(text)
    return value if value > 0 else None


class DataItemStore:
    def __init__(self, *, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._lock = asyncio.Lock()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _initialize(self) -> None:
        with closing(self._connect()) as conn, conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS data_items (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    description TEXT NOT NULL,
                    createdAt DATETIME DEFAULT CURRENT_TIMESTAMP
                );
                """
            )

    async def list_items(self) -> List[DataItem]:
        async with self._lock:
            return await asyncio.to_thread(self._select_all)

    async def get_item(self, item_id: int) -> Optional[DataItem]:
        async with self._lock:
            return await asyncio.to_thread(self._select_one, item_id)

    async def create_item(self, name: Any, description: Any) -> DataItem:
        trimmed_name, trimmed_description = validate_item_input(name, description)
        async with self._lock:
            return await asyncio.to_thread(self._insert, trimmed_name, trimmed_description)

    async def update_item(self, item_id: int, name: Any, description: Any) -> Optional[DataItem]:
        trimmed_name, trimmed_description = validate_item_input(name, description)
        async with self._lock:
            return await asyncio.to_thread(self._update, item_id, trimmed_name, trimmed_description)

    async def delete_item(self, item_id: int) -> bool:
        async with self._lock:
            return await asyncio.to_thread(self._delete, item_id)

    async def clear(self) -> None:
        async with self._lock:
            await asyncio.to_thread(self._delete_all)

    def _select_all(self) -> List[DataItem]:
        with closing(self._connect()) as conn:
            rows = conn.execute("SELECT * FROM data_items ORDER BY createdAt DESC, id DESC").fetchall()
        return [DataItem.from_row(row) for row in rows]

    def _select_one(self, item_id: int) -> Optional[DataItem]:
        with closing(self._connect()) as conn:
            row = conn.execute("SELECT * FROM data_items WHERE id = ?", (item_id,)).fetchone()
        return DataItem.from_row(row) if row is not None else None

    def _insert(self, name: str, description: str) -> DataItem:
        with closing(self._connect()) as conn, conn:
            cursor = conn.execute(
                "INSERT INTO data_items (name, description) VALUES (?, ?)",
                (name, description),
            )
            row = conn.execute("SELECT * FROM data_items WHERE id = ?", (cursor.lastrowid,)).fetchone()
        return DataItem.from_row(row)

    def _update(self, item_id: int, name: str, description: str) -> Optional[DataItem]:
        with closing(self._connect()) as conn, conn:
            cursor = conn.execute(
                "UPDATE data_items SET name = ?, description = ? WHERE id = ?",
                (name, description, item_id),
            )
            if cursor.rowcount == 0:
                return None
            row = conn.execute("SELECT * FROM data_items WHERE id = ?", (item_id,)).fetchone()
        return DataItem.from_row(row)

    def _delete(self, item_id: int) -> bool:
        with closing(self._connect()) as conn, conn:
            cursor = conn.execute("DELETE FROM data_items WHERE id = ?", (item_id,))
            return cursor.rowcount > 0

    def _delete_all(self) -> None:
        with closing(self._connect()) as conn, conn:
            conn.execute("DELETE FROM data_items")


data_item_store = DataItemStore(db_path=Path(settings.database_path))

__all__ = [
    "DataItem",
    "DataItemStore",
    "ItemValidationError",
    "MAX_DESCRIPTION_LENGTH",
    "MAX_NAME_LENGTH",
    "data_item_store",
    "parse_item_id",
    "validate_item_input",
]
