"""Top-level driver: one external event at a time, start to finish."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Callable, Optional

from movie_night.core.config import settings
from movie_night.core.errors import MovieNightError, VoteNotFoundError
from movie_night.models.commands import (
    AddMovie,
    CloseMovieVote,
    CloseVote,
    Command,
    CommandParseError,
    CreateVote,
    EditMovie,
    Help,
    Info,
    MovieLimit,
    MovieVoteLimit,
    ParseErrorKind,
    Quit,
    RandomMovieVote,
    RemoveMovieById,
    RemoveMovieByTitle,
    Save,
    SearchMovie,
    SendVote,
    SetPrefix,
    SetStatus,
    ShowHistory,
    ShowMovieById,
    ShowMovieByTitle,
    ShowWatchList,
)
from movie_night.models.events import (
    FormattedMessage,
    MessageReceived,
    ReactionAdded,
    Requester,
)
from movie_night.models.pending import ListKind, SortedMovieList
from movie_night.models.state import BotState
from movie_night.models.votes import Vote
from movie_night.services import messages
from movie_night.services.chat_gateway import ChatGateway
from movie_night.services.command_parser import parse_command
from movie_night.services.formatting import pad_id
from movie_night.services.pagination import (
    build_history_snapshot,
    build_watch_list_snapshot,
    render_page,
)
from movie_night.services.pending_reactions import (
    CONFIRMATION_EMOJIS,
    PAGINATION_EMOJIS,
    PendingReactionRegistry,
    ReactionCorrelator,
    utcnow,
)
from movie_night.services.permissions import require_administrator
from movie_night.services.state_service import StateService
from movie_night.services.tmdb_client import TmdbClient
from movie_night.services.voting_service import VotingService
from movie_night.services.watch_list_service import WatchListService

logger = logging.getLogger(__name__)


class CommandDispatcher:
    """Owns the BotState and serializes every mutation behind one lock."""

    def __init__(
            self,
            state: BotState,
            gateway: ChatGateway,
            metadata: TmdbClient,
            state_service: Optional[StateService] = None,
            rng: Optional[random.Random] = None,
            on_quit: Optional[Callable[[], None]] = None,
            confirmation_timeout_s: Optional[int] = None,
    ) -> None:
        self.state = state
        self.gateway = gateway
        self.state_service = state_service
        self.on_quit = on_quit
        self._lock = asyncio.Lock()

        self.watch_list = WatchListService(state, metadata)
        self.voting = VotingService(state, self.watch_list, rng)
        self.registry = PendingReactionRegistry(state, confirmation_timeout_s)
        self.correlator = ReactionCorrelator(
            state, self.registry, gateway, self.watch_list, self.voting)

    # ---------- entry points ----------

    async def handle_message(self, event: MessageReceived) -> bool:
        """Returns True when the message was a command for us."""
        async with self._lock:
            if event.author_id == settings.bot_user_id:
                return False
            prefix = self.state.prefix
            if not event.text.lstrip().startswith(prefix):
                return False

            try:
                command = parse_command(event.text, prefix)
            except CommandParseError as err:
                if err.kind is ParseErrorKind.no_command:
                    return False
                logger.info('command_parse_failed', extra={
                    'kind': err.kind.value,
                    'command': err.command.value if err.command else None,
                })
                await self._reply(event, messages.parse_error(err, prefix))
                return True

            logger.info('command_dispatched', extra={
                'command': type(command).__name__,
                'author_id': event.author_id,
            })
            try:
                await self._execute(command, event)
            except MovieNightError as err:
                logger.info('command_failed', extra={
                    'command': type(command).__name__, 'code': err.code})
                await self._reply(event, messages.domain_error(err, prefix))
            return True

    async def handle_reaction(self, event: ReactionAdded) -> bool:
        async with self._lock:
            return await self.correlator.handle(event, utcnow())

    async def sweep_expired(self) -> int:
        async with self._lock:
            return await self.correlator.sweep_expired(utcnow())

    async def save(self) -> None:
        async with self._lock:
            await self._save()

    # ---------- helpers ----------

    async def _save(self) -> None:
        if self.state_service is None:
            logger.warning('state_save_skipped')
            return
        await self.state_service.save(self.state)

    async def _reply(
            self,
            event: MessageReceived,
            message: FormattedMessage) -> Optional[str]:
        return await self.gateway.send_formatted_message(
            event.channel_id, message)

    async def _requester(
            self,
            event: MessageReceived,
            with_roles: bool = True) -> Requester:
        requester = Requester(
            user_id=event.author_id, user_name=event.author_name)
        if with_roles:
            requester.roles = await self.gateway.lookup_roles(event.author_id)
        return requester

    async def _add_reactions(self, channel_id, message_id, emojis) -> None:
        for emoji in emojis:
            await self.gateway.add_reaction(channel_id, message_id, emoji)

    async def _remove_reactions(self, channel_id, message_id, emojis) -> None:
        for emoji in emojis:
            await self.gateway.remove_reaction(channel_id, message_id, emoji)

    # ---------- routing ----------

    async def _execute(self, command: Command, event: MessageReceived) -> None:
        match command:
            case Quit():
                await self._quit(event)
            case Help(topic=topic, topic_text=topic_text):
                await self._reply(event, messages.help_message(
                    self.state.prefix, topic, topic_text))
            case AddMovie(query=query):
                await self._add_movie(event, query)
            case RemoveMovieById(entry_id=entry_id):
                requester = await self._requester(event)
                entry = self.watch_list.remove(requester, entry_id)
                await self._reply(event, self._removed(entry, requester))
            case RemoveMovieByTitle(title=title):
                requester = await self._requester(event)
                entry = self.watch_list.remove_by_title(requester, title)
                await self._reply(event, self._removed(entry, requester))
            case EditMovie(entry_id=entry_id, title=title):
                requester = await self._requester(event)
                previous, entry = self.watch_list.edit(
                    requester, entry_id, title)
                await self._reply(event, messages.success(
                    'Movie edited',
                    f"Changed '{previous}' to '{entry.movie.title}'."))
            case ShowWatchList(order=order):
                await self._show_list(
                    event, build_watch_list_snapshot(self.state, order))
            case ShowHistory(order=order, reverse=reverse):
                await self._show_list(
                    event, build_history_snapshot(self.state, order, reverse))
            case SetStatus(entry_id=entry_id, status=status,
                           date_text=date_text):
                requester = await self._requester(event)
                previous, entry = self.watch_list.set_status(
                    requester, entry_id, status, event.timestamp, date_text)
                await self._reply(event, messages.success(
                    'Status changed',
                    f"'{entry.movie.title}': {previous.emoji} "
                    f'{previous.value} → {entry.status.emoji} '
                    f'{entry.status.value}'))
            case ShowMovieById(entry_id=entry_id):
                entry = self.watch_list.lookup_by_id(entry_id)
                await self._reply(event, messages.entry_card(entry))
            case ShowMovieByTitle(title=title):
                entry = self.watch_list.lookup_by_title(title)
                await self._reply(event, messages.entry_card(entry))
            case SearchMovie(query=query):
                movie = await self.watch_list.resolve_movie(query)
                await self._reply(event, messages.movie_search_card(movie))
            case SetPrefix(prefix=prefix):
                require_administrator(await self._requester(event))
                self.state.prefix = prefix
                logger.info('prefix_changed', extra={'prefix': prefix})
                await self._reply(event, messages.success(
                    'Prefix changed',
                    f'Use {prefix} from now on, the previous prefix no '
                    'longer works.'))
            case MovieLimit(limit=limit):
                await self._movie_limit(event, limit)
            case MovieVoteLimit(limit=limit):
                await self._movie_vote_limit(event, limit)
            case CreateVote(title=title, options=options):
                vote = self.voting.create_vote(
                    event.author_id, event.author_name, title, options,
                    event.timestamp)
                await self._send_vote(event, vote)
            case SendVote(user_id=user_id):
                vote = self.voting.get_vote(user_id or event.author_id)
                await self._send_vote(event, vote)
            case CloseVote():
                vote = self.voting.get_vote(event.author_id)
                await self._close_vote(vote)
                await self._reply(event, messages.vote_results(vote))
            case RandomMovieVote(limit=limit):
                vote = self.voting.movie_vote()
                if vote is None:
                    vote = self.voting.create_movie_vote(
                        event.timestamp, limit)
                await self._send_vote(event, vote)
            case CloseMovieVote():
                await self._close_movie_vote(event)
            case Info():
                await self._reply(event, messages.info_message())
            case Save():
                await self._save()
                await self._reply(event, messages.success(
                    'Saved', 'All data was saved.'))

    # ---------- handlers ----------

    async def _quit(self, event: MessageReceived) -> None:
        require_administrator(await self._requester(event))
        await self._save()
        await self._reply(event, messages.info('Bye', 'Shutting down.'))
        logger.info('quit_requested', extra={'author_id': event.author_id})
        if self.on_quit is not None:
            self.on_quit()

    async def _add_movie(self, event: MessageReceived, query: str) -> None:
        requester = await self._requester(event, with_roles=False)
        candidate = await self.watch_list.prepare_add(
            requester, query, event.timestamp)
        message_id = await self._reply(
            event, messages.candidate_card(candidate))
        if message_id is None:
            logger.warning('confirm_add_not_sent', extra={
                'tmdb_id': candidate.movie.tmdb_id})
            return
        await self._add_reactions(
            event.channel_id, message_id, CONFIRMATION_EMOJIS)
        self.registry.register_confirm_add(
            candidate, event.channel_id, message_id)

    @staticmethod
    def _removed(entry, requester: Requester) -> FormattedMessage:
        text = f"Removed '{entry.movie.title}' ({pad_id(entry.id)})"
        if entry.user_id != requester.user_id:
            text += f' added by {entry.user_name}'
        return messages.success('Movie removed', text + '.')

    async def _show_list(
            self,
            event: MessageReceived,
            snapshot: SortedMovieList) -> None:
        kind: ListKind = snapshot.list_kind
        previous = self.registry.find_pagination(kind)
        if previous is not None:
            self.registry.discard(previous.message_id)
            await self._remove_reactions(
                previous.channel_id, previous.message_id, PAGINATION_EMOJIS)

        if snapshot.count == 0:
            await self._reply(event, messages.empty_list(kind))
            return

        render = render_page(snapshot, 1)
        message_id = await self._reply(event, messages.list_page(render, kind))
        if message_id is None:
            return
        await self._add_reactions(
            event.channel_id, message_id, PAGINATION_EMOJIS)
        self.registry.register_pagination(
            snapshot, event.channel_id, message_id)

    async def _movie_limit(
            self,
            event: MessageReceived,
            limit: Optional[int]) -> None:
        if limit is None:
            count = self.watch_list.count_user_movies(event.author_id)
            await self._reply(event, messages.info(
                'Movie limit',
                f'Every user may have {self.state.movie_limit_per_user} '
                f'movies on the watch list. You have {count}.'))
            return
        require_administrator(await self._requester(event))
        self.state.movie_limit_per_user = limit
        logger.info('movie_limit_changed', extra={'limit': limit})
        await self._reply(event, messages.success(
            'Movie limit changed',
            f'Every user may now have {limit} movies on the watch list.'))

    async def _movie_vote_limit(
            self,
            event: MessageReceived,
            limit: Optional[int]) -> None:
        if limit is None:
            await self._reply(event, messages.info(
                'Movie vote limit',
                f'The random movie vote offers up to '
                f'{self.state.movie_vote_limit} movies.'))
            return
        require_administrator(await self._requester(event))
        self.state.movie_vote_limit = limit
        logger.info('movie_vote_limit_changed', extra={'limit': limit})
        await self._reply(event, messages.success(
            'Movie vote limit changed',
            f'The random movie vote now offers up to {limit} movies.'))

    # ---------- votes ----------

    async def _send_vote(self, event: MessageReceived, vote: Vote) -> None:
        """Send (or re-send) a vote message and key the vote by it."""
        message_id = await self._reply(event, messages.vote_message(vote))
        if message_id is None:
            await self._reply(event, messages.error(
                'Sending failed', 'The vote message could not be sent.'))
            return
        if vote.message_id is not None:
            await self._remove_reactions(
                vote.channel_id, vote.message_id, vote.emojis)
            self.voting.rekey_vote(vote, event.channel_id, message_id)
        else:
            self.voting.register_vote(vote, event.channel_id, message_id)
        await self._add_reactions(event.channel_id, message_id, vote.emojis)

    async def _close_vote(self, vote: Vote) -> None:
        self.voting.close_vote(vote)
        if vote.message_id is not None:
            await self._remove_reactions(
                vote.channel_id, vote.message_id, vote.emojis)

    async def _close_movie_vote(self, event: MessageReceived) -> None:
        vote = self.voting.movie_vote()
        if vote is None:
            raise VoteNotFoundError(settings.bot_user_id)
        await self._close_vote(vote)
        await self._reply(event, messages.vote_results(vote))

        winner = self.voting.resolve_winner(vote)
        entry = self.watch_list.lookup_by_id(winner.entry_id)
        message_id = await self._reply(event, messages.winner_card(entry))
        if message_id is None:
            return
        await self._add_reactions(
            event.channel_id, message_id, CONFIRMATION_EMOJIS)
        self.registry.register_confirm_mark_watched(
            entry.model_copy(deep=True), event.author_id,
            event.channel_id, message_id)
        logger.info('movie_vote_closed', extra={
            'winner_id': entry.id, 'closer_id': event.author_id})
