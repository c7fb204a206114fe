"""Owner-or-administrator permission check."""

from __future__ import annotations

from movie_night.core.errors import PermissionDeniedError
from movie_night.models.events import Requester
from movie_night.models.movies import WatchListEntry


def is_allowed(requester_id: str, owner_id: str, is_administrator: bool) -> bool:
    return requester_id == owner_id or is_administrator


def require_permission(requester: Requester, entry: WatchListEntry) -> None:
    """Raise PermissionDeniedError unless requester owns entry or is admin."""
    if not is_allowed(requester.user_id, entry.user_id,
                      requester.is_administrator):
        raise PermissionDeniedError(
            f'{requester.user_id} on movie {entry.id}')


def require_administrator(requester: Requester) -> None:
    if not requester.is_administrator:
        raise PermissionDeniedError(f'{requester.user_id} is not admin')
