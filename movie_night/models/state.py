from __future__ import annotations

from typing import Dict, Iterator, List, Optional

from pydantic import BaseModel, Field

from movie_night.models.movies import WatchListEntry
from movie_night.models.pending import PendingReaction
from movie_night.models.votes import Vote

MAX_ENTRY_ID = 2 ** 32 - 1


class BotState(BaseModel):
    """Everything the core owns; persisted as one document."""

    entries: Dict[int, WatchListEntry] = Field(default_factory=dict)
    next_movie_id: int = 0
    # ключ: id сообщения с голосованием
    votes: Dict[str, Vote] = Field(default_factory=dict)
    # ключ: id сообщения, которое ждёт реакцию
    pending_reactions: Dict[str, PendingReaction] = Field(
        default_factory=dict)
    prefix: str = "!"
    movie_limit_per_user: int = 10
    movie_vote_limit: int = 5

    def allocate_id(self) -> int:
        if self.next_movie_id > MAX_ENTRY_ID:
            raise OverflowError("movie id space exhausted")
        new_id = self.next_movie_id
        self.next_movie_id += 1
        return new_id

    def iter_sorted(self) -> Iterator[WatchListEntry]:
        for entry_id in sorted(self.entries):
            yield self.entries[entry_id]

    def watch_list_entries(self) -> List[WatchListEntry]:
        return [e for e in self.iter_sorted()
                if e.status.is_watch_list_status()]

    def history_entries(self) -> List[WatchListEntry]:
        return [e for e in self.iter_sorted()
                if e.status.is_history_status()]

    def find_vote_by_creator(self, creator_id: str) -> Optional[Vote]:
        for vote in self.votes.values():
            if vote.creator_id == creator_id:
                return vote
        return None
