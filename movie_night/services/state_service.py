"""Persistence of the whole BotState through the state repository."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError
from pymongo.errors import PyMongoError

from movie_night.core.config import settings
from movie_night.core.errors import PersistenceError
from movie_night.models.state import BotState
from movie_night.services.repositories.state_repo import StateRepo

logger = logging.getLogger(__name__)


def fresh_state() -> BotState:
    """Empty state seeded with the configured defaults."""
    return BotState(
        prefix=settings.default_prefix,
        movie_limit_per_user=settings.movie_limit_per_user,
        movie_vote_limit=settings.movie_vote_limit,
    )


def dump_state(state: BotState) -> Dict[str, Any]:
    payload = state.model_dump(mode='json')
    # ключи документа Mongo обязаны быть строками
    payload['entries'] = {
        str(entry_id): entry
        for entry_id, entry in payload['entries'].items()
    }
    return payload


class StateService:

    def __init__(self, repo: StateRepo) -> None:
        self.repo = repo

    async def load(self) -> Optional[BotState]:
        """Stored state, or None when nothing was saved yet."""
        try:
            doc = await self.repo.load()
        except PyMongoError as error:
            raise PersistenceError(f'mongo_state_load_error: {error}') from error
        if doc is None:
            return None
        try:
            state = BotState.model_validate(doc)
        except ValidationError as error:
            raise PersistenceError(f'state_document_invalid: {error}') from error
        logger.info('state_loaded', extra={
            'entries': len(state.entries), 'votes': len(state.votes)})
        return state

    async def save(self, state: BotState) -> None:
        try:
            await self.repo.replace(dump_state(state))
        except PyMongoError as error:
            raise PersistenceError(f'mongo_state_save_error: {error}') from error
        logger.info('state_saved', extra={
            'entries': len(state.entries),
            'next_movie_id': state.next_movie_id,
        })
