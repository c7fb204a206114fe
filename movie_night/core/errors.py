"""Domain errors of the movie night core.

Every error carries a stable snake_case ``code`` which is also the prefix of
``str(error)``, so the HTTP layer can map them the same way it maps any other
coded ``RuntimeError``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from movie_night.models.movies import WatchListEntry


class MovieNightError(RuntimeError):
    code = 'movie_night_error'

    def __init__(self, detail: str = '') -> None:
        self.detail = detail
        message = f'{self.code}: {detail}' if detail else self.code
        super().__init__(message)


# ---------- not found ----------

class EntryNotFoundError(MovieNightError):
    code = 'movie_not_found'

    def __init__(
            self,
            entry_id: Optional[int] = None,
            title: Optional[str] = None) -> None:
        self.entry_id = entry_id
        self.title = title
        super().__init__(str(entry_id) if entry_id is not None else title or '')


class MovieNotFoundOnTmdbError(MovieNightError):
    code = 'movie_not_found_on_tmdb'


class VoteNotFoundError(MovieNightError):
    code = 'vote_not_found'


class UnknownStatusError(MovieNightError):
    code = 'unknown_status'


# ---------- permissions ----------

class PermissionDeniedError(MovieNightError):
    code = 'insufficient_permissions'


# ---------- conflicts ----------

class AddAlreadyPendingError(MovieNightError):
    code = 'add_already_pending'


class DuplicateMovieError(MovieNightError):
    code = 'movie_already_added'

    def __init__(self, existing: 'WatchListEntry') -> None:
        self.existing = existing
        super().__init__(str(existing.id))


class MovieLimitReachedError(MovieNightError):
    code = 'movie_limit_reached'

    def __init__(self, limit: int, count: int) -> None:
        self.limit = limit
        self.count = count
        super().__init__(f'{count}/{limit}')


class VoteAlreadyOpenError(MovieNightError):
    code = 'vote_already_open'


class TooManyVoteOptionsError(MovieNightError):
    code = 'too_many_vote_options'

    def __init__(self, requested: int, available: int) -> None:
        self.requested = requested
        self.available = available
        super().__init__(f'{requested}>{available}')


# ---------- validation / resolution ----------

class InvalidDateError(MovieNightError):
    code = 'invalid_date'


class InvalidVoteOptionError(MovieNightError):
    code = 'wrong_vote_parameter'


class NoEligibleOptionsError(MovieNightError):
    code = 'no_eligible_options'


class NoMovieCandidatesError(MovieNightError):
    code = 'no_movie_candidates'


# ---------- collaborators ----------

class MetadataLookupError(MovieNightError):
    code = 'metadata_lookup_error'


class PersistenceError(MovieNightError):
    code = 'persistence_error'
