"""Text command parser: one line of chat input -> validated Command.

Pure mapping, no side effects. Every failure is a ``CommandParseError``
carrying the ``ParseErrorKind`` and the command that was attempted, so the
caller can answer with that command's usage help.
"""

from __future__ import annotations

import re
from typing import Callable, Dict, List, Optional

from movie_night.models.commands import (
    AddMovie,
    CloseMovieVote,
    CloseVote,
    Command,
    CommandName,
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
    lookup_command_name,
)
from movie_night.models.state import MAX_ENTRY_ID
from movie_night.services.formatting import is_day_month_year

_ID_RE = re.compile(r'[0-9]+')
_MENTION_RE = re.compile(r'<@!?(\d+)>')
OPTION_SEPARATOR = '|'
_WATCH_LIST_ORDERS = ('id', 'user')
_HISTORY_ORDERS = ('date', 'user')


def parse_entry_id(token: str) -> Optional[int]:
    """Non-negative 32-bit integer or None (leading zeros allowed)."""
    if not _ID_RE.fullmatch(token):
        return None
    value = int(token)
    if value > MAX_ENTRY_ID:
        return None
    return value


def _fail(kind: ParseErrorKind, name: CommandName, token: str = ''):
    raise CommandParseError(kind, name, token)


def _no_arguments(name: CommandName, factory):
    def parse(args: List[str]) -> Command:
        if args:
            _fail(ParseErrorKind.too_many_arguments, name, args[0])
        return factory()
    return parse


def _add_movie(args: List[str]) -> Command:
    query = ' '.join(args)
    if not query:
        _fail(ParseErrorKind.no_arguments_for_add, CommandName.add_movie)
    return AddMovie(query=query)


def _id_or_title(name: CommandName, missing: ParseErrorKind, by_id, by_title):
    def parse(args: List[str]) -> Command:
        argument = ' '.join(args)
        if not argument:
            _fail(missing, name)
        # сначала пробуем id: числовой заголовок по тексту не найти
        entry_id = parse_entry_id(argument)
        if entry_id is not None:
            return by_id(entry_id=entry_id)
        return by_title(title=argument)
    return parse


def _edit_movie(args: List[str]) -> Command:
    if len(args) < 2:
        _fail(ParseErrorKind.not_enough_arguments_for_edit,
              CommandName.edit_movie)
    entry_id = parse_entry_id(args[0])
    if entry_id is None:
        _fail(ParseErrorKind.wrong_argument_for_edit,
              CommandName.edit_movie, args[0])
    return EditMovie(entry_id=entry_id, title=' '.join(args[1:]))


def _watch_list(args: List[str]) -> Command:
    name = CommandName.watch_list
    if len(args) > 1:
        _fail(ParseErrorKind.too_many_arguments, name, args[1])
    order = args[0].lower() if args else 'id'
    if order not in _WATCH_LIST_ORDERS:
        _fail(ParseErrorKind.wrong_argument_for_watch_list, name, args[0])
    return ShowWatchList(order=order)


def _history(args: List[str]) -> Command:
    name = CommandName.history
    if len(args) > 2:
        _fail(ParseErrorKind.too_many_arguments, name, args[2])
    order, reverse = None, False
    for arg in args:
        word = arg.lower()
        if word == 'reverse' and not reverse:
            reverse = True
        elif word in _HISTORY_ORDERS and order is None:
            order = word
        else:
            _fail(ParseErrorKind.wrong_argument_for_history, name, arg)
    return ShowHistory(order=order or 'date', reverse=reverse)


def _set_status(args: List[str]) -> Command:
    name = CommandName.set_status
    if len(args) < 2:
        _fail(ParseErrorKind.not_enough_arguments_for_set_status, name)
    if len(args) > 3:
        _fail(ParseErrorKind.too_many_arguments, name, args[3])
    entry_id = parse_entry_id(args[0])
    if entry_id is None:
        _fail(ParseErrorKind.wrong_argument_for_set_status, name, args[0])
    date_text = args[2] if len(args) == 3 else None
    if date_text is not None and not is_day_month_year(date_text):
        _fail(ParseErrorKind.wrong_date_for_set_status, name, date_text)
    return SetStatus(entry_id=entry_id, status=args[1], date_text=date_text)


def _unavailable(args: List[str]) -> Command:
    name = CommandName.unavailable
    if not args:
        _fail(ParseErrorKind.no_arguments_for_unavailable, name)
    if len(args) > 1:
        _fail(ParseErrorKind.too_many_arguments, name, args[1])
    entry_id = parse_entry_id(args[0])
    if entry_id is None:
        _fail(ParseErrorKind.wrong_argument_for_unavailable, name, args[0])
    return SetStatus(entry_id=entry_id, status='Unavailable')


def _watched(args: List[str]) -> Command:
    name = CommandName.watched
    if not args:
        _fail(ParseErrorKind.no_arguments_for_watched, name)
    if len(args) > 2:
        _fail(ParseErrorKind.too_many_arguments, name, args[2])
    entry_id = parse_entry_id(args[0])
    if entry_id is None:
        _fail(ParseErrorKind.wrong_argument_for_watched, name, args[0])
    date_text = args[1] if len(args) == 2 else None
    if date_text is not None and not is_day_month_year(date_text):
        _fail(ParseErrorKind.wrong_date_for_watched, name, date_text)
    return SetStatus(entry_id=entry_id, status='Watched', date_text=date_text)


def _search_movie(args: List[str]) -> Command:
    query = ' '.join(args)
    if not query:
        _fail(ParseErrorKind.no_arguments_for_search,
              CommandName.search_movie)
    return SearchMovie(query=query)


def _prefix(args: List[str]) -> Command:
    if not args:
        _fail(ParseErrorKind.no_arguments_for_prefix, CommandName.prefix)
    if len(args) > 1 or len(args[0]) != 1:
        _fail(ParseErrorKind.wrong_argument_for_prefix,
              CommandName.prefix, ' '.join(args))
    return SetPrefix(prefix=args[0])


def _optional_limit(name: CommandName, wrong: ParseErrorKind, factory):
    def parse(args: List[str]) -> Command:
        if not args:
            return factory(limit=None)
        limit = parse_entry_id(args[0]) if len(args) == 1 else None
        if not limit:
            _fail(wrong, name, ' '.join(args))
        return factory(limit=limit)
    return parse


def _create_vote(args: List[str]) -> Command:
    name = CommandName.create_vote
    raw = ' '.join(args)
    if not raw:
        _fail(ParseErrorKind.no_arguments_for_create_vote, name)
    title, *rest = [part.strip() for part in raw.split(OPTION_SEPARATOR)]
    if not title:
        _fail(ParseErrorKind.no_arguments_for_create_vote, name)
    options = tuple(option for option in rest if option)
    if not options:
        _fail(ParseErrorKind.not_enough_options_for_create_vote, name)
    return CreateVote(title=title, options=options)


def _send_vote(args: List[str]) -> Command:
    if not args:
        return SendVote()
    match = _MENTION_RE.fullmatch(args[0]) if len(args) == 1 else None
    if match is None:
        _fail(ParseErrorKind.wrong_argument_for_send_vote,
              CommandName.send_vote, ' '.join(args))
    return SendVote(user_id=match.group(1))


_PARSERS: Dict[CommandName, Callable[[List[str]], Command]] = {
    CommandName.quit: _no_arguments(CommandName.quit, Quit),
    CommandName.add_movie: _add_movie,
    CommandName.remove_movie: _id_or_title(
        CommandName.remove_movie,
        ParseErrorKind.no_arguments_for_remove,
        RemoveMovieById, RemoveMovieByTitle),
    CommandName.edit_movie: _edit_movie,
    CommandName.watch_list: _watch_list,
    CommandName.history: _history,
    CommandName.set_status: _set_status,
    CommandName.unavailable: _unavailable,
    CommandName.watched: _watched,
    CommandName.show_movie: _id_or_title(
        CommandName.show_movie,
        ParseErrorKind.no_arguments_for_show_movie,
        ShowMovieById, ShowMovieByTitle),
    CommandName.search_movie: _search_movie,
    CommandName.prefix: _prefix,
    CommandName.movie_limit: _optional_limit(
        CommandName.movie_limit,
        ParseErrorKind.wrong_argument_for_movie_limit, MovieLimit),
    CommandName.movie_vote_limit: _optional_limit(
        CommandName.movie_vote_limit,
        ParseErrorKind.wrong_argument_for_movie_vote_limit, MovieVoteLimit),
    CommandName.create_vote: _create_vote,
    CommandName.send_vote: _send_vote,
    CommandName.close_vote: _no_arguments(CommandName.close_vote, CloseVote),
    CommandName.random_movie_vote: _optional_limit(
        CommandName.random_movie_vote,
        ParseErrorKind.wrong_argument_for_random_movie_vote,
        RandomMovieVote),
    CommandName.close_movie_vote: _no_arguments(
        CommandName.close_movie_vote, CloseMovieVote),
    CommandName.info: _no_arguments(CommandName.info, Info),
    CommandName.save: _no_arguments(CommandName.save, Save),
}


def parse_command(text: str, prefix: str = '!') -> Command:
    """Parse one line of input into a Command or raise CommandParseError."""
    tokens = text.split()
    if not tokens:
        raise CommandParseError(ParseErrorKind.no_command)

    head, args = tokens[0], tokens[1:]
    if prefix and head.startswith(prefix):
        head = head[len(prefix):]
    if not head:
        raise CommandParseError(ParseErrorKind.no_command)

    name = lookup_command_name(head)
    if name is None:
        raise CommandParseError(ParseErrorKind.unknown_command, token=head)

    if name is CommandName.help:
        topic_text = ' '.join(args)
        if prefix and topic_text.startswith(prefix):
            topic_text = topic_text[len(prefix):]
        if not topic_text:
            return Help()
        return Help(topic=lookup_command_name(topic_text),
                    topic_text=topic_text)

    return _PARSERS[name](args)
