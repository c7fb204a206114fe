"""Sorted snapshots of the watch list / history and fixed-size pages."""

from __future__ import annotations

import math
from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from movie_night.models.movies import WatchListEntry
from movie_night.models.pending import (
    FlatMovieList,
    GroupedMovieList,
    ListKind,
    MovieGroup,
    SortedMovieList,
)
from movie_night.models.state import BotState

PAGE_SIZE = 10

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class PageRender(BaseModel):
    """One page of a snapshot; ``found`` is False for out-of-range pages."""
    found: bool
    page: int
    total_pages: int
    count: int
    # только для группировки по пользователю
    user_name: Optional[str] = None
    entries: List[WatchListEntry] = Field(default_factory=list)


def page_count(count: int, page_size: int = PAGE_SIZE) -> int:
    return math.ceil(count / page_size)


def _history_key(entry: WatchListEntry):
    stamp = entry.watched_or_removed_timestamp or _EPOCH
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return stamp, entry.id


def _group_by_user(
        entries: List[WatchListEntry]) -> List[MovieGroup]:
    by_user: Dict[str, List[WatchListEntry]] = defaultdict(list)
    for entry in entries:
        by_user[entry.user_id].append(entry)

    groups = [
        MovieGroup(
            user_id=user_id,
            # показываем последнее известное имя пользователя
            user_name=user_entries[-1].user_name,
            page_count=page_count(len(user_entries)),
            entries=user_entries,
        )
        for user_id, user_entries in by_user.items()
    ]
    groups.sort(key=lambda group: (group.user_name.casefold(), group.user_id))
    return groups


def _copy(entries: List[WatchListEntry]) -> List[WatchListEntry]:
    return [entry.model_copy(deep=True) for entry in entries]


def build_watch_list_snapshot(
        state: BotState,
        order: str = 'id') -> SortedMovieList:
    entries = _copy(state.watch_list_entries())
    if order == 'user':
        groups = _group_by_user(entries)
        return GroupedMovieList(
            list_kind=ListKind.watch_list,
            total_pages=sum(group.page_count for group in groups),
            groups=groups,
        )
    return FlatMovieList(
        list_kind=ListKind.watch_list,
        order='id',
        total_pages=page_count(len(entries)),
        entries=entries,
    )


def build_history_snapshot(
        state: BotState,
        order: str = 'date',
        reverse: bool = False) -> SortedMovieList:
    entries = sorted(
        _copy(state.history_entries()), key=_history_key, reverse=reverse)
    if order == 'user':
        groups = _group_by_user(entries)
        return GroupedMovieList(
            list_kind=ListKind.history,
            reverse=reverse,
            total_pages=sum(group.page_count for group in groups),
            groups=groups,
        )
    return FlatMovieList(
        list_kind=ListKind.history,
        order='date',
        reverse=reverse,
        total_pages=page_count(len(entries)),
        entries=entries,
    )


def rebuild_snapshot(
        state: BotState,
        snapshot: SortedMovieList) -> SortedMovieList:
    """Fresh snapshot of the same list with the same ordering."""
    order = 'user' if isinstance(snapshot, GroupedMovieList) else snapshot.order
    if snapshot.list_kind is ListKind.watch_list:
        return build_watch_list_snapshot(state, order)
    return build_history_snapshot(state, order, snapshot.reverse)


def _not_found(snapshot: SortedMovieList, page: int) -> PageRender:
    return PageRender(
        found=False,
        page=page,
        total_pages=snapshot.total_pages,
        count=snapshot.count,
    )


def render_page(snapshot: SortedMovieList, page: int) -> PageRender:
    """Pure: slice page ``page`` (1-indexed) out of the snapshot."""
    if page < 1 or page > snapshot.total_pages:
        return _not_found(snapshot, page)

    if isinstance(snapshot, FlatMovieList):
        start = (page - 1) * PAGE_SIZE
        return PageRender(
            found=True,
            page=page,
            total_pages=snapshot.total_pages,
            count=snapshot.count,
            entries=snapshot.entries[start:start + PAGE_SIZE],
        )

    # глобальная страница -> (группа, локальная страница)
    accumulated = 0
    for group in snapshot.groups:
        if accumulated + group.page_count >= page:
            start = (page - 1 - accumulated) * PAGE_SIZE
            return PageRender(
                found=True,
                page=page,
                total_pages=snapshot.total_pages,
                count=snapshot.count,
                user_name=group.user_name,
                entries=group.entries[start:start + PAGE_SIZE],
            )
        accumulated += group.page_count
    return _not_found(snapshot, page)
