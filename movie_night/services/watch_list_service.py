"""Watch list / history engine: add, remove, edit, status transitions."""

from __future__ import annotations

import logging
import re
from datetime import datetime, time, timezone
from typing import List, Optional, Tuple

from movie_night.core.errors import (
    AddAlreadyPendingError,
    DuplicateMovieError,
    EntryNotFoundError,
    MovieLimitReachedError,
    MovieNotFoundOnTmdbError,
    UnknownStatusError,
)
from movie_night.models.events import Requester
from movie_night.models.movies import (
    Movie,
    MovieCandidate,
    MovieStatus,
    WatchListEntry,
)
from movie_night.models.pending import ConfirmAdd
from movie_night.models.state import BotState
from movie_night.services.formatting import parse_day_month_year
from movie_night.services.permissions import require_permission
from movie_night.services.tmdb_client import TmdbClient

logger = logging.getLogger(__name__)

_IMDB_LINK_RE = re.compile(r'imdb\.com/(?:[a-z]{2}/)?title/(tt\d+)')
_IMDB_ID_RE = re.compile(r'tt\d+')


def extract_imdb_id(query: str) -> Optional[str]:
    """IMDb id from a bare ``tt…`` token or an IMDb title link."""
    text = query.strip()
    if _IMDB_ID_RE.fullmatch(text):
        return text
    match = _IMDB_LINK_RE.search(text)
    return match.group(1) if match else None


def _normalize(title: str) -> str:
    return ' '.join(title.split()).casefold()


def choose_candidate(
        query: str,
        candidates: List[MovieCandidate]) -> Optional[MovieCandidate]:
    """Exact (normalized) title match first, then the most popular hit."""
    if not candidates:
        return None
    wanted = _normalize(query)
    exact = [
        candidate for candidate in candidates
        if wanted in (_normalize(candidate.title),
                      _normalize(candidate.original_title))
    ]
    pool = exact or candidates
    return max(pool, key=lambda candidate: candidate.popularity)


def _as_timestamp(text: str) -> datetime:
    return datetime.combine(
        parse_day_month_year(text), time(), tzinfo=timezone.utc)


class WatchListService:
    """CRUD and status transitions over ``BotState.entries``.

    Every operation validates (lookup, permission, argument parsing) before
    it touches the state, so a raised error always means nothing changed.
    """

    def __init__(self, state: BotState, metadata: TmdbClient) -> None:
        self.state = state
        self.metadata = metadata

    # ---------- lookup ----------

    def lookup_by_id(self, entry_id: int) -> WatchListEntry:
        entry = self.state.entries.get(entry_id)
        if entry is None:
            raise EntryNotFoundError(entry_id=entry_id)
        return entry

    def lookup_by_title(self, title: str) -> WatchListEntry:
        """Case-insensitive exact match on title or original title.

        Several matches (e.g. a movie watched twice) resolve to the lowest id.
        """
        for entry in self.state.iter_sorted():
            if entry.matches_title(title):
                return entry
        raise EntryNotFoundError(title=title)

    def find_in_watch_list(self, tmdb_id: int) -> Optional[WatchListEntry]:
        for entry in self.state.watch_list_entries():
            if entry.movie.tmdb_id == tmdb_id:
                return entry
        return None

    def count_user_movies(self, user_id: str) -> int:
        return sum(
            1 for entry in self.state.watch_list_entries()
            if entry.user_id == user_id
        )

    # ---------- metadata ----------

    async def resolve_movie(self, query: str) -> Movie:
        imdb_id = extract_imdb_id(query)
        if imdb_id is not None:
            candidates = await self.metadata.search_by_external_reference_id(
                imdb_id)
        else:
            candidates = await self.metadata.search_by_title(query)

        chosen = choose_candidate(query, candidates)
        if chosen is None:
            raise MovieNotFoundOnTmdbError(query)
        return await self.metadata.fetch_by_id(chosen.tmdb_id)

    # ---------- add ----------

    def _check_can_add(self, user_id: str, tmdb_id: int) -> None:
        existing = self.find_in_watch_list(tmdb_id)
        if existing is not None:
            raise DuplicateMovieError(existing)
        count = self.count_user_movies(user_id)
        if count >= self.state.movie_limit_per_user:
            raise MovieLimitReachedError(self.state.movie_limit_per_user, count)

    async def prepare_add(
            self,
            requester: Requester,
            query: str,
            now: datetime) -> WatchListEntry:
        """Resolve the movie and return an uncommitted candidate entry."""
        # одно подтверждение добавления на весь бот
        if any(isinstance(pending, ConfirmAdd)
               for pending in self.state.pending_reactions.values()):
            raise AddAlreadyPendingError(query)

        movie = await self.resolve_movie(query)
        self._check_can_add(requester.user_id, movie.tmdb_id)
        return WatchListEntry(
            movie=movie,
            user_id=requester.user_id,
            user_name=requester.user_name,
            added_timestamp=now,
        )

    def commit_add(self, candidate: WatchListEntry) -> WatchListEntry:
        # пока ждали реакцию, состояние могло измениться
        self._check_can_add(candidate.user_id, candidate.movie.tmdb_id)
        entry = candidate.model_copy(
            update={'id': self.state.allocate_id()}, deep=True)
        self.state.entries[entry.id] = entry
        logger.info('movie_added', extra={
            'entry_id': entry.id,
            'tmdb_id': entry.movie.tmdb_id,
            'user_id': entry.user_id,
        })
        return entry

    # ---------- remove / edit ----------

    def remove(self, requester: Requester, entry_id: int) -> WatchListEntry:
        entry = self.lookup_by_id(entry_id)
        require_permission(requester, entry)
        del self.state.entries[entry_id]
        logger.info('movie_removed', extra={
            'entry_id': entry_id, 'user_id': requester.user_id})
        return entry

    def remove_by_title(
            self,
            requester: Requester,
            title: str) -> WatchListEntry:
        return self.remove(requester, self.lookup_by_title(title).id)

    def edit(
            self,
            requester: Requester,
            entry_id: int,
            title: str) -> Tuple[str, WatchListEntry]:
        """Replace only the title; returns (previous title, entry)."""
        entry = self.lookup_by_id(entry_id)
        require_permission(requester, entry)
        previous = entry.movie.title
        entry.movie.title = title
        logger.info('movie_edited', extra={'entry_id': entry_id})
        return previous, entry

    # ---------- status ----------

    def set_status(
            self,
            requester: Requester,
            entry_id: int,
            status_name: str,
            now: datetime,
            date_text: Optional[str] = None,
    ) -> Tuple[MovieStatus, WatchListEntry]:
        """Apply a status transition; returns (previous status, entry)."""
        status = MovieStatus.from_name(status_name)
        if status is None:
            raise UnknownStatusError(status_name)
        entry = self.lookup_by_id(entry_id)
        require_permission(requester, entry)
        stamp = _as_timestamp(date_text) if date_text else now
        return self._transition(entry, status, stamp)

    def mark_watched(
            self,
            entry_id: int,
            now: datetime) -> Tuple[MovieStatus, WatchListEntry]:
        """Winner of the movie vote confirmed as watched by the closer."""
        entry = self.lookup_by_id(entry_id)
        return self._transition(entry, MovieStatus.watched, now)

    def _transition(
            self,
            entry: WatchListEntry,
            status: MovieStatus,
            stamp: datetime) -> Tuple[MovieStatus, WatchListEntry]:
        previous = entry.status
        entry.status = status
        if status.is_history_status():
            entry.watched_or_removed_timestamp = stamp
        else:
            entry.watched_or_removed_timestamp = None
        logger.info('movie_status_changed', extra={
            'entry_id': entry.id,
            'from_status': previous.value,
            'to_status': status.value,
        })
        return previous, entry
