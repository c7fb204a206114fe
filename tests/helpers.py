from datetime import datetime, timezone
from typing import Optional

from movie_night.models.events import MessageReceived, ReactionAdded
from movie_night.models.movies import Movie, MovieStatus, WatchListEntry
from movie_night.models.state import BotState

ALICE = ("100", "alice")
BOB = ("200", "bob")
ADMIN = ("900", "root")

NOW = datetime(2024, 3, 15, 20, 0, tzinfo=timezone.utc)


def message(text: str, user=ALICE, channel_id: str = "c1",
            timestamp: datetime = NOW) -> MessageReceived:
    return MessageReceived(
        message_id="in-1", author_id=user[0], author_name=user[1],
        channel_id=channel_id, text=text, timestamp=timestamp)


def reaction(message_id: str, emoji: str, user=ALICE,
             channel_id: str = "c1") -> ReactionAdded:
    return ReactionAdded(actor_id=user[0], channel_id=channel_id,
                         message_id=message_id, emoji=emoji)


def add_entry(state: BotState, title: str, user=ALICE,
              tmdb_id: Optional[int] = None,
              status: MovieStatus = MovieStatus.not_watched,
              watched_at: Optional[datetime] = None) -> WatchListEntry:
    """Кладёт запись прямо в состояние, минуя подтверждение."""
    entry_id = state.allocate_id()
    entry = WatchListEntry(
        id=entry_id,
        movie=Movie(tmdb_id=tmdb_id if tmdb_id is not None else 1000 + entry_id,
                    title=title, original_title=title),
        user_id=user[0],
        user_name=user[1],
        status=status,
        added_timestamp=NOW,
        watched_or_removed_timestamp=watched_at,
    )
    state.entries[entry_id] = entry
    return entry
