"""Mongo repository for the single bot state document."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

STATE_DOC_ID = 'state'


class StateRepo:
    """Whole-state load/replace on the ``bot_state`` collection."""

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self.col = db['bot_state']

    async def load(self) -> Optional[Dict[str, Any]]:
        """Return the stored document without ``_id`` or None."""
        return await self.col.find_one(
            {'_id': STATE_DOC_ID},
            {'_id': 0, 'saved_at': 0},
        )

    async def replace(self, payload: Dict[str, Any]) -> None:
        doc = dict(payload)
        doc['saved_at'] = datetime.now(timezone.utc)
        await self.col.replace_one({'_id': STATE_DOC_ID}, doc, upsert=True)
