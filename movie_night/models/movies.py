from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class MovieStatus(str, Enum):
    not_watched = "NotWatched"
    watched = "Watched"
    unavailable = "Unavailable"
    rewatch = "Rewatch"
    removed = "Removed"

    @classmethod
    def from_name(cls, name: str) -> Optional["MovieStatus"]:
        """Case-insensitive match against the five canonical names."""
        wanted = name.strip().lower()
        for status in cls:
            if status.value.lower() == wanted:
                return status
        return None

    def is_watch_list_status(self) -> bool:
        return self in _WATCH_LIST_STATUSES

    def is_history_status(self) -> bool:
        return self in _HISTORY_STATUSES

    @property
    def emoji(self) -> str:
        return _STATUS_EMOJI[self]


_WATCH_LIST_STATUSES = frozenset({
    MovieStatus.not_watched,
    MovieStatus.rewatch,
    MovieStatus.unavailable,
})
_HISTORY_STATUSES = frozenset({MovieStatus.watched, MovieStatus.removed})

_STATUS_EMOJI = {
    MovieStatus.not_watched: "🆕",
    MovieStatus.watched: "✅",
    MovieStatus.unavailable: "🚫",
    MovieStatus.rewatch: "🔁",
    MovieStatus.removed: "🗑️",
}


class Movie(BaseModel):
    title: str
    original_title: str = ""
    original_language: str = ""
    tmdb_id: int
    overview: str = ""
    poster_path: Optional[str] = None
    release_date: Optional[date] = None
    genres: str = ""
    runtime: Optional[int] = None
    budget: str = ""


class MovieCandidate(BaseModel):
    """One ranked search hit from the metadata collaborator."""
    tmdb_id: int
    title: str
    original_title: str = ""
    popularity: float = 0.0
    release_date: Optional[str] = None


class WatchListEntry(BaseModel):
    # None пока запись не подтверждена (кандидат из ConfirmAdd)
    id: Optional[int] = None
    movie: Movie
    user_id: str
    user_name: str
    status: MovieStatus = MovieStatus.not_watched
    added_timestamp: datetime
    watched_or_removed_timestamp: Optional[datetime] = None

    def matches_title(self, title: str) -> bool:
        wanted = title.strip().casefold()
        return wanted in {
            self.movie.title.casefold(),
            self.movie.original_title.casefold(),
        }
