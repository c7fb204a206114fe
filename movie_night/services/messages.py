"""Renderers: domain objects -> platform-neutral FormattedMessage."""

from __future__ import annotations

from typing import List, Optional

from movie_night.core.config import settings
from movie_night.core.errors import (
    AddAlreadyPendingError,
    DuplicateMovieError,
    EntryNotFoundError,
    InvalidDateError,
    InvalidVoteOptionError,
    MetadataLookupError,
    MovieLimitReachedError,
    MovieNightError,
    MovieNotFoundOnTmdbError,
    NoEligibleOptionsError,
    NoMovieCandidatesError,
    PermissionDeniedError,
    PersistenceError,
    TooManyVoteOptionsError,
    UnknownStatusError,
    VoteAlreadyOpenError,
    VoteNotFoundError,
)
from movie_night.models.commands import CommandName, CommandParseError
from movie_night.models.events import EmbedField, FormattedMessage
from movie_night.models.movies import Movie, WatchListEntry
from movie_night.models.pending import ListKind
from movie_night.models.votes import GeneralVoteOption, Vote, VoteOption
from movie_night.services.formatting import (
    format_date,
    format_timestamp,
    movie_link,
    pad_id,
    plural,
    poster_link,
    watch_link,
)
from movie_night.services.help_texts import command_help, general_help
from movie_night.services.pagination import PageRender

COLOR_ERROR = 0xff0000
COLOR_SUCCESS = 0x7ef542
COLOR_WARNING = 0xf5d442
COLOR_BOT = 0xe91e63
COLOR_INFO = 0x3b88c3

CONFIRM = '✅'
REJECT = '❎'
PREVIOUS_PAGE = '⬅️'
NEXT_PAGE = '➡️'

LIST_TITLES = {
    ListKind.watch_list: 'Watch list',
    ListKind.history: 'History',
}


def error(title: str, description: str = '') -> FormattedMessage:
    return FormattedMessage(
        title=title, description=description, color=COLOR_ERROR)


def success(title: str, description: str = '') -> FormattedMessage:
    return FormattedMessage(
        title=title, description=description, color=COLOR_SUCCESS)


def warning(title: str, description: str = '') -> FormattedMessage:
    return FormattedMessage(
        title=title, description=description, color=COLOR_WARNING)


def info(title: str, description: str = '') -> FormattedMessage:
    return FormattedMessage(
        title=title, description=description, color=COLOR_INFO)


def linked_title(movie: Movie) -> str:
    return f'[{movie.title}]({movie_link(movie.tmdb_id)})'


# ---------- movie cards ----------

def _movie_fields(movie: Movie) -> List[EmbedField]:
    return [
        EmbedField(name='Original title', value=movie.original_title or '-'),
        EmbedField(name='Original language',
                   value=movie.original_language or '-'),
        EmbedField(name='Released', value=format_date(movie.release_date)),
        EmbedField(name='Genres', value=movie.genres or '-'),
        EmbedField(name='Runtime',
                   value=f'{movie.runtime} min' if movie.runtime else '-'),
        EmbedField(name='Budget', value=movie.budget or '-'),
    ]


def movie_search_card(movie: Movie) -> FormattedMessage:
    fields = _movie_fields(movie)
    fields.append(EmbedField(
        name='Watch link', value=watch_link(movie.tmdb_id), inline=False))
    return FormattedMessage(
        title=movie.title,
        url=movie_link(movie.tmdb_id),
        description=movie.overview,
        image_url=poster_link(movie.poster_path),
        color=COLOR_SUCCESS,
        fields=fields,
    )


def candidate_card(candidate: WatchListEntry) -> FormattedMessage:
    card = movie_search_card(candidate.movie)
    card.footer = (
        f'Did you mean this movie? React with {CONFIRM} to add it '
        f'or {REJECT} to cancel.')
    return card


def entry_card(
        entry: WatchListEntry,
        footer: Optional[str] = None) -> FormattedMessage:
    movie = entry.movie
    fields = _movie_fields(movie)
    fields.extend([
        EmbedField(name='Added by', value=f'<@{entry.user_id}>'),
        EmbedField(name='Added on',
                   value=format_timestamp(entry.added_timestamp)),
        EmbedField(name='Status',
                   value=f'{entry.status.emoji} {entry.status.value}'),
    ])
    if entry.watched_or_removed_timestamp is not None:
        fields.append(EmbedField(
            name='Watched / removed on',
            value=format_timestamp(entry.watched_or_removed_timestamp)))
    fields.append(EmbedField(
        name='Watch link', value=watch_link(movie.tmdb_id), inline=False))
    return FormattedMessage(
        title=f'{pad_id(entry.id)} {movie.title}',
        url=movie_link(movie.tmdb_id),
        description=movie.overview,
        image_url=poster_link(movie.poster_path),
        color=COLOR_SUCCESS,
        footer=footer,
        fields=fields,
    )


def winner_card(entry: WatchListEntry) -> FormattedMessage:
    return entry_card(
        entry,
        footer=(f'React with {CONFIRM} to mark it as watched '
                f'or {REJECT} to leave it as it is.'),
    )


# ---------- lists ----------

def _list_line(entry: WatchListEntry, kind: ListKind) -> str:
    line = (f'`{pad_id(entry.id)}` {entry.status.emoji} '
            f'{linked_title(entry.movie)}')
    if kind is ListKind.history:
        line += f' • {format_timestamp(entry.watched_or_removed_timestamp)}'
    else:
        line += f' • <@{entry.user_id}>'
    return line


def list_page(render: PageRender, kind: ListKind) -> FormattedMessage:
    noun = plural(render.count, 'movie', 'movies')
    where = 'on the list' if kind is ListKind.watch_list else 'in the history'
    lines = [f'There {"is" if render.count == 1 else "are"} currently '
             f'**{render.count}** {noun} {where}', '']
    if render.user_name is not None:
        lines.append(f'**Added by {render.user_name}**')
    lines.extend(_list_line(entry, kind) for entry in render.entries)
    return FormattedMessage(
        title=LIST_TITLES[kind],
        description='\n'.join(lines),
        color=COLOR_BOT,
        footer=f'Page {render.page}/{render.total_pages}',
    )


def empty_list(kind: ListKind) -> FormattedMessage:
    where = 'on the list' if kind is ListKind.watch_list else 'in the history'
    return FormattedMessage(
        title=LIST_TITLES[kind],
        description=f'There are currently **0** movies {where}',
        color=COLOR_BOT,
    )


# ---------- votes ----------

def _option_label(option: VoteOption) -> str:
    if isinstance(option, GeneralVoteOption):
        return option.text
    return linked_title(option.movie)


def vote_message(vote: Vote) -> FormattedMessage:
    lines = [
        f'`{len(option.voters)}` {option.emoji} – {_option_label(option)}'
        for option in vote.options
    ]
    return FormattedMessage(
        title=vote.title,
        author_name=vote.creator_name,
        description='\n\n'.join(lines),
        color=COLOR_BOT,
        footer=('React to this message to vote • '
                f'{format_timestamp(vote.created_at)}'),
    )


def vote_results(vote: Vote) -> FormattedMessage:
    ranked = sorted(
        vote.options, key=lambda option: len(option.voters), reverse=True)
    lines = [
        f'`{len(option.voters)}` {option.emoji} – {_option_label(option)}'
        for option in ranked
    ]
    return FormattedMessage(
        title=f'Results: {vote.title}',
        author_name=vote.creator_name,
        description='\n\n'.join(lines),
        color=COLOR_BOT,
    )


# ---------- notices ----------

def domain_error(err: MovieNightError, prefix: str) -> FormattedMessage:
    """User-facing notice for every domain error."""
    match err:
        case EntryNotFoundError(entry_id=entry_id) if entry_id is not None:
            return error('Movie not found',
                         f'There is no movie with the id {entry_id}.')
        case EntryNotFoundError(title=title):
            return error('Movie not found',
                         f"There is no movie with the title '{title}'.")
        case MovieNotFoundOnTmdbError():
            return error('Movie not found on TMDb',
                         f"Nothing was found for '{err.detail}'.")
        case VoteNotFoundError():
            return error('No vote',
                         "It looks like you don't own a vote at the moment.")
        case UnknownStatusError():
            return error('Unknown status',
                         f"'{err.detail}' is not a status. Use NotWatched, "
                         'Watched, Unavailable, Rewatch or Removed.')
        case PermissionDeniedError():
            return error('Insufficient permissions',
                         'Only the user who added the movie or an '
                         'administrator may do this.')
        case AddAlreadyPendingError():
            return warning('Please wait',
                           'Another movie is waiting for confirmation. '
                           'Confirm or cancel it first.')
        case DuplicateMovieError(existing=existing):
            return warning(
                'Already on the list',
                f'{existing.user_name} already added '
                f'{linked_title(existing.movie)} on '
                f'{format_timestamp(existing.added_timestamp)} '
                f'(id {pad_id(existing.id)}).')
        case MovieLimitReachedError(limit=limit):
            return warning(
                'Movie limit reached',
                f'You already have {limit} movies on the watch list. Watch '
                'or remove one of them first.')
        case VoteAlreadyOpenError():
            return error('You already own a vote',
                         f'Close it with {prefix}close_vote before you '
                         'create a new one.')
        case TooManyVoteOptionsError(available=available):
            return error('Too many vote options',
                         f'A vote can have at most {available} options.')
        case InvalidDateError():
            return error('Wrong date',
                         f"'{err.detail}' is not a date in the format "
                         'dd.mm.yyyy.')
        case InvalidVoteOptionError():
            return error('Wrong vote option',
                         f"'{err.detail}' is not a valid id. Use digits only.")
        case NoEligibleOptionsError():
            return warning('No winner',
                           'The vote had no movie options to pick from.')
        case NoMovieCandidatesError():
            return warning('Empty watch list',
                           'There are no movies on the watch list to vote on.')
        case MetadataLookupError():
            return error('TMDb lookup failed', err.detail)
        case PersistenceError():
            return error('Saving failed', err.detail)
        case _:
            return error('Something went wrong', str(err))


def parse_error(err: CommandParseError, prefix: str) -> FormattedMessage:
    if err.command is None:
        return error('Unknown command',
                     f"'{err.token}' is not a command. Use {prefix}help "
                     'for a list of all commands.')
    return error(f'Wrong usage of {err.command.value}',
                 command_help(err.command, prefix))


def help_message(prefix: str,
                 topic: Optional[CommandName] = None,
                 topic_text: str = '') -> FormattedMessage:
    if topic is not None:
        return info(f'ℹ️ Help: {topic.value}', command_help(topic, prefix))
    if topic_text:
        return error('Unknown command',
                     f"There is no command '{topic_text}'. Use {prefix}help "
                     'for a list of all commands.')
    return info('ℹ️ Available commands', general_help(prefix))


def info_message() -> FormattedMessage:
    return info(settings.bot_user_name,
                f'{settings.app_name} version {settings.version}')
