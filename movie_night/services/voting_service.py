"""Voting engine: emoji assignment, tallying, winner resolution and the
automatic movie vote.

Randomness comes from an injected ``random.Random`` so callers (and tests)
control it.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime
from enum import Enum
from typing import List, Optional, Sequence

from movie_night.core.config import settings
from movie_night.core.errors import (
    InvalidVoteOptionError,
    NoEligibleOptionsError,
    NoMovieCandidatesError,
    TooManyVoteOptionsError,
    VoteAlreadyOpenError,
    VoteNotFoundError,
)
from movie_night.models.movies import WatchListEntry
from movie_night.models.pending import VoteInProgress
from movie_night.models.state import BotState
from movie_night.models.votes import (
    GeneralVoteOption,
    MovieVoteOption,
    Vote,
    VoteOption,
)
from movie_night.services.command_parser import parse_entry_id
from movie_night.services.watch_list_service import WatchListService

logger = logging.getLogger(__name__)

EMOJI_POOL = (
    "🐼", "🌵", "🐨", "🐭", "🌹", "🐅", "🌷", "🐜", "🐤", "🦇",
    "🐻", "🐦", "🌼", "🐡", "🐗", "💐", "🐛", "🦋", "🐪", "🐱",
    "🌸", "🐔", "🐵", "🐮", "🐊", "🐶", "🐬", "🐙", "🐲", "🦆",
    "🦅", "🐘", "🌲", "🐑", "🍂", "🐟", "🍀", "🦊", "🐸", "🐣",
    "🦍", "🐹", "🌿", "🌺", "🐝", "🐴", "🐞", "🦁", "🦎", "🍁",
    "🦉", "🐧", "🐷", "🐩", "🐰", "🦏", "🦂", "🐌", "🐍", "🐚",
    "🐳", "🌻", "🐯", "🐠", "🦃", "🐢", "🐫", "🦄", "🦢", "🐺",
    "🦚", "🦜", "🦗", "🦌", "🦒", "🦓", "🦔", "🦘", "🦝", "🦈",
    "🦕", "🦖", "🦧", "🦥", "🦦", "🦨", "🦩", "🍭", "🍏", "🎂",
    "🥑", "🍳", "🍌", "🍞", "🍒", "🍓", "🍐", "🍕", "🍋", "🥓",
    "🌯", "🥕", "🧀", "🍫", "🍪", "🦀", "🥐", "🥒", "🍩", "🌽",
    "🍟", "🍤", "🍇", "🥗", "🍔", "🌭", "🍨", "🥝", "🍖", "🍄",
    "🥞", "🍑", "🥜", "🍿", "🥔", "🍗", "🍎", "🍙", "🍠", "🍝",
    "🍜", "🍣", "🌮", "🍊", "🍅", "🍉", "🥠", "🍍", "🥥", "🥭",
    "🥙", "🥨", "🥪", "🥦", "🧅", "🧇", "🥬", "🍯", "🍡", "🥖",
)

ID_OPTION_PREFIX = 'id:'
TITLE_OPTION_PREFIX = 't:'

# сколько самых старых фильмов получают шанс попасть в автоголосование
EARLIEST_COUNT = 3
EARLIEST_SWAP_PROBABILITY = 0.4

MOVIE_VOTE_TITLE = 'Which movie do we watch next?'


class TallyOutcome(str, Enum):
    added = 'added'
    removed_previous = 'removed_previous'
    already_voted = 'already_voted'
    not_an_option = 'not_an_option'


def pick_unique_emojis(
        amount: int,
        rng: random.Random,
        pool: Sequence[str] = EMOJI_POOL) -> List[str]:
    """Draw ``amount`` distinct emoji from the pool.

    Rejection sampling: draw uniformly until the set is big enough.
    """
    if amount > len(pool):
        raise TooManyVoteOptionsError(amount, len(pool))
    chosen: List[str] = []
    seen = set()
    while len(chosen) < amount:
        emoji = pool[rng.randrange(len(pool))]
        if emoji not in seen:
            seen.add(emoji)
            chosen.append(emoji)
    return chosen


class VotingService:

    def __init__(
            self,
            state: BotState,
            watch_list: WatchListService,
            rng: Optional[random.Random] = None) -> None:
        self.state = state
        self.watch_list = watch_list
        self.rng = rng or random.Random()

    # ---------- creation ----------

    def build_options(
            self,
            raw_options: Sequence[str],
            emojis: Sequence[str]) -> List[VoteOption]:
        """Classify each raw option; any resolution failure aborts all."""
        options: List[VoteOption] = []
        for raw, emoji in zip(raw_options, emojis):
            if raw.startswith(ID_OPTION_PREFIX):
                id_text = raw[len(ID_OPTION_PREFIX):].strip()
                entry_id = parse_entry_id(id_text)
                if entry_id is None:
                    raise InvalidVoteOptionError(raw)
                entry = self.watch_list.lookup_by_id(entry_id)
                options.append(self._movie_option(entry, emoji))
            elif raw.startswith(TITLE_OPTION_PREFIX):
                title = raw[len(TITLE_OPTION_PREFIX):].strip()
                entry = self.watch_list.lookup_by_title(title)
                options.append(self._movie_option(entry, emoji))
            else:
                options.append(GeneralVoteOption(emoji=emoji, text=raw))
        return options

    @staticmethod
    def _movie_option(entry: WatchListEntry, emoji: str) -> MovieVoteOption:
        return MovieVoteOption(
            emoji=emoji,
            movie=entry.movie.model_copy(deep=True),
            entry_id=entry.id,
        )

    def create_vote(
            self,
            creator_id: str,
            creator_name: str,
            title: str,
            raw_options: Sequence[str],
            now: datetime) -> Vote:
        """Validated, not yet registered vote (needs a message id first)."""
        if self.state.find_vote_by_creator(creator_id) is not None:
            raise VoteAlreadyOpenError(creator_id)
        emojis = pick_unique_emojis(len(raw_options), self.rng)
        options = self.build_options(raw_options, emojis)
        return Vote(
            creator_id=creator_id,
            creator_name=creator_name,
            created_at=now,
            title=title,
            options=options,
        )

    def register_vote(
            self,
            vote: Vote,
            channel_id: str,
            message_id: str) -> Vote:
        vote.channel_id = channel_id
        vote.message_id = message_id
        self.state.votes[message_id] = vote
        self.state.pending_reactions[message_id] = VoteInProgress(
            message_id=message_id,
            channel_id=channel_id,
            vote_key=message_id,
        )
        logger.info('vote_created', extra={
            'message_id': message_id,
            'creator_id': vote.creator_id,
            'options': len(vote.options),
        })
        return vote

    def rekey_vote(
            self,
            vote: Vote,
            channel_id: str,
            new_message_id: str) -> Vote:
        """Move a vote (and its pending entry) to a freshly sent message."""
        if vote.message_id is not None:
            self.state.votes.pop(vote.message_id, None)
            self.state.pending_reactions.pop(vote.message_id, None)
        return self.register_vote(vote, channel_id, new_message_id)

    def get_vote(self, creator_id: str) -> Vote:
        vote = self.state.find_vote_by_creator(creator_id)
        if vote is None:
            raise VoteNotFoundError(creator_id)
        return vote

    # ---------- tallying ----------

    @staticmethod
    def apply_reaction(vote: Vote, voter_id: str, emoji: str) -> TallyOutcome:
        """Register one reaction of ``voter_id``.

        Switching takes two reactions: the first one on another option only
        withdraws the previous choice, the next one registers the new vote.
        """
        target = vote.option_for_emoji(emoji)
        if target is None:
            return TallyOutcome.not_an_option

        current = vote.option_of_voter(voter_id)
        if current is target:
            return TallyOutcome.already_voted
        if current is not None:
            current.voters.remove(voter_id)
            return TallyOutcome.removed_previous

        target.voters.append(voter_id)
        return TallyOutcome.added

    # ---------- closing ----------

    def close_vote(self, vote: Vote) -> Vote:
        if vote.message_id is not None:
            self.state.votes.pop(vote.message_id, None)
            self.state.pending_reactions.pop(vote.message_id, None)
        logger.info('vote_closed', extra={
            'message_id': vote.message_id, 'creator_id': vote.creator_id})
        return vote

    def resolve_winner(self, vote: Vote) -> MovieVoteOption:
        """Movie option with most voters; ties broken uniformly at random."""
        movie_options = [
            option for option in vote.options
            if isinstance(option, MovieVoteOption)
        ]
        if not movie_options:
            raise NoEligibleOptionsError(vote.title)
        best = max(len(option.voters) for option in movie_options)
        tied = [
            option for option in movie_options
            if len(option.voters) == best
        ]
        return self.rng.choice(tied)

    # ---------- automatic movie vote ----------

    def select_movie_vote_candidates(
            self,
            limit: Optional[int] = None) -> List[WatchListEntry]:
        """Uniform sample of the watch list, biased toward the oldest entries.

        Every slot that does not already hold one of the earliest entries is
        swapped, with probability 0.4, for the next unused earliest entry.
        """
        watch_list = self.state.watch_list_entries()
        if not watch_list:
            raise NoMovieCandidatesError()
        wanted = limit if limit is not None else self.state.movie_vote_limit
        candidates = self.rng.sample(watch_list, min(wanted, len(watch_list)))

        earliest = watch_list[:EARLIEST_COUNT]
        earliest_ids = {entry.id for entry in earliest}
        chosen_ids = {entry.id for entry in candidates}
        unused = [entry for entry in earliest if entry.id not in chosen_ids]

        for idx, entry in enumerate(candidates):
            if not unused:
                break
            if entry.id in earliest_ids:
                continue
            if self.rng.random() < EARLIEST_SWAP_PROBABILITY:
                candidates[idx] = unused.pop(0)
        return candidates

    def movie_vote(self) -> Optional[Vote]:
        return self.state.find_vote_by_creator(settings.bot_user_id)

    def create_movie_vote(
            self,
            now: datetime,
            limit: Optional[int] = None) -> Vote:
        """Automatic vote owned by the bot itself (one at a time)."""
        candidates = self.select_movie_vote_candidates(limit)
        emojis = pick_unique_emojis(len(candidates), self.rng)
        return Vote(
            creator_id=settings.bot_user_id,
            creator_name=settings.bot_user_name,
            created_at=now,
            title=MOVIE_VOTE_TITLE,
            options=[
                self._movie_option(entry, emoji)
                for entry, emoji in zip(candidates, emojis)
            ],
        )
