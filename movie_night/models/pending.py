from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from movie_night.models.movies import WatchListEntry


class ListKind(str, Enum):
    watch_list = "watch_list"
    history = "history"


# ---------- sorted snapshots for pagination ----------

class MovieGroup(BaseModel):
    user_id: str
    user_name: str
    page_count: int
    entries: List[WatchListEntry]


class FlatMovieList(BaseModel):
    layout: Literal["flat"] = "flat"
    list_kind: ListKind
    order: Literal["id", "date"]
    reverse: bool = False
    total_pages: int
    entries: List[WatchListEntry]

    @property
    def count(self) -> int:
        return len(self.entries)


class GroupedMovieList(BaseModel):
    layout: Literal["grouped"] = "grouped"
    list_kind: ListKind
    reverse: bool = False
    total_pages: int
    groups: List[MovieGroup]

    @property
    def count(self) -> int:
        return sum(len(group.entries) for group in self.groups)


SortedMovieList = Annotated[
    Union[FlatMovieList, GroupedMovieList],
    Field(discriminator="layout"),
]


# ---------- pending reactions ----------

class _PendingBase(BaseModel):
    message_id: str
    channel_id: str


class ConfirmAdd(_PendingBase):
    kind: Literal["confirm_add"] = "confirm_add"
    candidate: WatchListEntry
    expires_at: Optional[datetime] = None


class VoteInProgress(_PendingBase):
    kind: Literal["vote"] = "vote"
    vote_key: str


class ListPagination(_PendingBase):
    kind: Literal["pagination"] = "pagination"
    snapshot: SortedMovieList
    page: int = 1


class ConfirmMarkWatched(_PendingBase):
    kind: Literal["confirm_mark_watched"] = "confirm_mark_watched"
    candidate: WatchListEntry
    requester_id: str
    expires_at: Optional[datetime] = None


PendingReaction = Annotated[
    Union[ConfirmAdd, VoteInProgress, ListPagination, ConfirmMarkWatched],
    Field(discriminator="kind"),
]
