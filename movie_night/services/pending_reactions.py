"""Pending-reaction registry and the correlator that resumes in-flight
operations when a reaction arrives on the message that offered them."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from movie_night.core.config import settings
from movie_night.core.errors import MovieNightError
from movie_night.models.events import ReactionAdded
from movie_night.models.movies import WatchListEntry
from movie_night.models.pending import (
    ConfirmAdd,
    ConfirmMarkWatched,
    ListKind,
    ListPagination,
    PendingReaction,
    SortedMovieList,
    VoteInProgress,
)
from movie_night.models.state import BotState
from movie_night.services import messages
from movie_night.services.chat_gateway import ChatGateway
from movie_night.services.formatting import pad_id
from movie_night.services.pagination import rebuild_snapshot, render_page
from movie_night.services.voting_service import TallyOutcome, VotingService
from movie_night.services.watch_list_service import WatchListService

logger = logging.getLogger(__name__)

CONFIRMATION_EMOJIS = (messages.CONFIRM, messages.REJECT)
PAGINATION_EMOJIS = (messages.PREVIOUS_PAGE, messages.NEXT_PAGE)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PendingReactionRegistry:
    """Keyed by the id of the message that waits for a reaction."""

    def __init__(
            self,
            state: BotState,
            confirmation_timeout_s: Optional[int] = None) -> None:
        self.state = state
        if confirmation_timeout_s is None:
            confirmation_timeout_s = settings.confirmation_timeout_s
        self.confirmation_timeout_s = confirmation_timeout_s

    def get(self, message_id: str) -> Optional[PendingReaction]:
        return self.state.pending_reactions.get(message_id)

    def register(self, pending: PendingReaction) -> PendingReaction:
        self.state.pending_reactions[pending.message_id] = pending
        logger.info('pending_reaction_registered', extra={
            'message_id': pending.message_id, 'kind': pending.kind})
        return pending

    def discard(self, message_id: str) -> Optional[PendingReaction]:
        return self.state.pending_reactions.pop(message_id, None)

    def _expires_at(self, now: datetime) -> Optional[datetime]:
        if self.confirmation_timeout_s <= 0:
            return None
        return now + timedelta(seconds=self.confirmation_timeout_s)

    def register_confirm_add(
            self,
            candidate: WatchListEntry,
            channel_id: str,
            message_id: str,
            now: Optional[datetime] = None) -> ConfirmAdd:
        return self.register(ConfirmAdd(
            message_id=message_id,
            channel_id=channel_id,
            candidate=candidate,
            expires_at=self._expires_at(now or utcnow()),
        ))

    def register_confirm_mark_watched(
            self,
            candidate: WatchListEntry,
            requester_id: str,
            channel_id: str,
            message_id: str,
            now: Optional[datetime] = None) -> ConfirmMarkWatched:
        return self.register(ConfirmMarkWatched(
            message_id=message_id,
            channel_id=channel_id,
            candidate=candidate,
            requester_id=requester_id,
            expires_at=self._expires_at(now or utcnow()),
        ))

    def register_pagination(
            self,
            snapshot: SortedMovieList,
            channel_id: str,
            message_id: str,
            page: int = 1) -> ListPagination:
        return self.register(ListPagination(
            message_id=message_id,
            channel_id=channel_id,
            snapshot=snapshot,
            page=page,
        ))

    def find_pagination(self, kind: ListKind) -> Optional[ListPagination]:
        for pending in self.state.pending_reactions.values():
            if (isinstance(pending, ListPagination)
                    and pending.snapshot.list_kind is kind):
                return pending
        return None

    def expired(self, now: datetime) -> List[PendingReaction]:
        return [
            pending for pending in self.state.pending_reactions.values()
            if isinstance(pending, (ConfirmAdd, ConfirmMarkWatched))
            and pending.expires_at is not None
            and pending.expires_at <= now
        ]


class ReactionCorrelator:
    """Resolves one reaction event against the registry and resumes the
    operation it belongs to."""

    def __init__(
            self,
            state: BotState,
            registry: PendingReactionRegistry,
            gateway: ChatGateway,
            watch_list: WatchListService,
            voting: VotingService) -> None:
        self.state = state
        self.registry = registry
        self.gateway = gateway
        self.watch_list = watch_list
        self.voting = voting

    async def handle(
            self,
            event: ReactionAdded,
            now: Optional[datetime] = None) -> bool:
        """Returns True when the reaction resumed an operation."""
        if event.actor_id == settings.bot_user_id:
            return False
        pending = self.registry.get(event.message_id)
        if pending is None:
            return False

        now = now or utcnow()
        match pending:
            case ConfirmAdd():
                return await self._confirm_add(pending, event)
            case VoteInProgress():
                return await self._vote(pending, event)
            case ListPagination():
                return await self._paginate(pending, event)
            case ConfirmMarkWatched():
                return await self._confirm_mark_watched(pending, event, now)
        return False

    # ---------- helpers ----------

    async def _strip_bot_reactions(self, pending, emojis) -> None:
        for emoji in emojis:
            await self.gateway.remove_reaction(
                pending.channel_id, pending.message_id, emoji)

    async def _notify(self, channel_id: str, message) -> None:
        await self.gateway.send_formatted_message(channel_id, message)

    # ---------- confirm add ----------

    async def _confirm_add(
            self,
            pending: ConfirmAdd,
            event: ReactionAdded) -> bool:
        # подтверждать может только тот, кто добавлял
        if event.actor_id != pending.candidate.user_id:
            return False
        if event.emoji not in CONFIRMATION_EMOJIS:
            return False

        self.registry.discard(pending.message_id)
        await self._strip_bot_reactions(pending, CONFIRMATION_EMOJIS)

        if event.emoji == messages.REJECT:
            logger.info('movie_add_cancelled', extra={
                'tmdb_id': pending.candidate.movie.tmdb_id})
            await self._notify(pending.channel_id, messages.info(
                'Cancelled',
                f"'{pending.candidate.movie.title}' was not added."))
            return True

        try:
            entry = self.watch_list.commit_add(pending.candidate)
        except MovieNightError as err:
            logger.info('movie_add_rejected', extra={'code': err.code})
            await self._notify(
                pending.channel_id,
                messages.domain_error(err, self.state.prefix))
            return True
        await self._notify(pending.channel_id, messages.success(
            'Movie added',
            f'Added {messages.linked_title(entry.movie)} to the watch list '
            f'with the id {pad_id(entry.id)}.'))
        return True

    # ---------- votes ----------

    async def _vote(self, pending: VoteInProgress, event: ReactionAdded) -> bool:
        vote = self.state.votes.get(pending.vote_key)
        if vote is None:
            # голосование уже закрыто или переотправлено
            self.registry.discard(pending.message_id)
            return False

        outcome = self.voting.apply_reaction(vote, event.actor_id, event.emoji)
        logger.info('vote_reaction', extra={
            'message_id': pending.message_id, 'outcome': outcome.value})

        if outcome is TallyOutcome.not_an_option:
            await self._notify(pending.channel_id, messages.info(
                'Emoji is not part of the vote',
                'Thanks for the reaction, but it does not count. React with '
                'one of the option emojis to vote.'))
            return True

        await self.gateway.remove_reaction(
            pending.channel_id, pending.message_id, event.emoji,
            user_id=event.actor_id)

        if outcome is TallyOutcome.already_voted:
            await self._notify(pending.channel_id, messages.info(
                'Already voted', 'You already voted for this option.'))
            return True

        await self.gateway.edit_formatted_message(
            pending.channel_id, pending.message_id,
            messages.vote_message(vote))
        if outcome is TallyOutcome.removed_previous:
            await self._notify(pending.channel_id, messages.info(
                'Previous vote withdrawn',
                'React once more to vote for the new option.'))
        return True

    # ---------- pagination ----------

    async def _paginate(
            self,
            pending: ListPagination,
            event: ReactionAdded) -> bool:
        if event.emoji not in PAGINATION_EMOJIS:
            return False
        step = -1 if event.emoji == messages.PREVIOUS_PAGE else 1
        await self.gateway.remove_reaction(
            pending.channel_id, pending.message_id, event.emoji,
            user_id=event.actor_id)

        snapshot = rebuild_snapshot(self.state, pending.snapshot)
        render = render_page(snapshot, pending.page + step)
        if not render.found:
            return True

        await self.gateway.edit_formatted_message(
            pending.channel_id, pending.message_id,
            messages.list_page(render, snapshot.list_kind))
        self.registry.register_pagination(
            snapshot, pending.channel_id, pending.message_id, render.page)
        return True

    # ---------- confirm mark watched ----------

    async def _confirm_mark_watched(
            self,
            pending: ConfirmMarkWatched,
            event: ReactionAdded,
            now: datetime) -> bool:
        if event.actor_id != pending.requester_id:
            return False
        if event.emoji not in CONFIRMATION_EMOJIS:
            return False

        self.registry.discard(pending.message_id)
        await self._strip_bot_reactions(pending, CONFIRMATION_EMOJIS)
        title = pending.candidate.movie.title

        if event.emoji == messages.REJECT:
            await self._notify(pending.channel_id, messages.info(
                'Status unchanged', f"'{title}' keeps its status."))
            return True

        try:
            self.watch_list.mark_watched(pending.candidate.id, now)
        except MovieNightError as err:
            await self._notify(
                pending.channel_id,
                messages.domain_error(err, self.state.prefix))
            return True
        await self._notify(pending.channel_id, messages.success(
            'Marked as watched', f"'{title}' is now in the history."))
        return True

    # ---------- expiry ----------

    async def sweep_expired(self, now: Optional[datetime] = None) -> int:
        expired = self.registry.expired(now or utcnow())
        for pending in expired:
            self.registry.discard(pending.message_id)
            await self._strip_bot_reactions(pending, CONFIRMATION_EMOJIS)
            await self._notify(pending.channel_id, messages.warning(
                'Confirmation timed out',
                f"Nobody confirmed '{pending.candidate.movie.title}' in time."))
            logger.info('pending_reaction_expired', extra={
                'message_id': pending.message_id, 'kind': pending.kind})
        return len(expired)
