from __future__ import annotations

from enum import Enum
from typing import Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict


class CommandName(str, Enum):
    help = "help"
    quit = "quit"
    add_movie = "add_movie"
    remove_movie = "remove_movie"
    edit_movie = "edit_movie"
    watch_list = "watch_list"
    history = "history"
    set_status = "set_status"
    unavailable = "unavailable"
    watched = "watched"
    show_movie = "show_movie"
    search_movie = "search_movie"
    prefix = "prefix"
    movie_limit = "movie_limit"
    movie_vote_limit = "movie_vote_limit"
    create_vote = "create_vote"
    send_vote = "send_vote"
    close_vote = "close_vote"
    random_movie_vote = "random_movie_vote"
    close_movie_vote = "close_movie_vote"
    info = "info"
    save = "save"


ALIASES = {
    "h": CommandName.help,
    "am": CommandName.add_movie,
    "rm": CommandName.remove_movie,
    "em": CommandName.edit_movie,
    "wl": CommandName.watch_list,
    "hs": CommandName.history,
    "st": CommandName.set_status,
    "un": CommandName.unavailable,
    "wa": CommandName.watched,
    "sm": CommandName.show_movie,
    "search": CommandName.search_movie,
    "ml": CommandName.movie_limit,
    "mvl": CommandName.movie_vote_limit,
    "cv": CommandName.create_vote,
    "sv": CommandName.send_vote,
    "xv": CommandName.close_vote,
    "rmv": CommandName.random_movie_vote,
    "cmv": CommandName.close_movie_vote,
}


def lookup_command_name(token: str) -> Optional[CommandName]:
    """Case-sensitive match on canonical name or short alias."""
    if token in ALIASES:
        return ALIASES[token]
    try:
        return CommandName(token)
    except ValueError:
        return None


def aliases_of(name: CommandName) -> Tuple[str, ...]:
    return (name.value,) + tuple(
        alias for alias, target in ALIASES.items() if target is name)


class ParseErrorKind(str, Enum):
    no_command = "no_command"
    unknown_command = "unknown_command"
    too_many_arguments = "too_many_arguments"
    no_arguments_for_add = "no_arguments_for_add"
    no_arguments_for_remove = "no_arguments_for_remove"
    not_enough_arguments_for_edit = "not_enough_arguments_for_edit"
    wrong_argument_for_edit = "wrong_argument_for_edit"
    wrong_argument_for_watch_list = "wrong_argument_for_watch_list"
    wrong_argument_for_history = "wrong_argument_for_history"
    not_enough_arguments_for_set_status = "not_enough_arguments_for_set_status"
    wrong_argument_for_set_status = "wrong_argument_for_set_status"
    wrong_date_for_set_status = "wrong_date_for_set_status"
    no_arguments_for_unavailable = "no_arguments_for_unavailable"
    wrong_argument_for_unavailable = "wrong_argument_for_unavailable"
    no_arguments_for_watched = "no_arguments_for_watched"
    wrong_argument_for_watched = "wrong_argument_for_watched"
    wrong_date_for_watched = "wrong_date_for_watched"
    no_arguments_for_show_movie = "no_arguments_for_show_movie"
    no_arguments_for_search = "no_arguments_for_search"
    no_arguments_for_prefix = "no_arguments_for_prefix"
    wrong_argument_for_prefix = "wrong_argument_for_prefix"
    wrong_argument_for_movie_limit = "wrong_argument_for_movie_limit"
    wrong_argument_for_movie_vote_limit = "wrong_argument_for_movie_vote_limit"
    no_arguments_for_create_vote = "no_arguments_for_create_vote"
    not_enough_options_for_create_vote = "not_enough_options_for_create_vote"
    wrong_argument_for_send_vote = "wrong_argument_for_send_vote"
    wrong_argument_for_random_movie_vote = (
        "wrong_argument_for_random_movie_vote")


class CommandParseError(ValueError):
    def __init__(
            self,
            kind: ParseErrorKind,
            command: Optional[CommandName] = None,
            token: str = '') -> None:
        self.kind = kind
        self.command = command
        self.token = token
        super().__init__(kind.value)


class _Command(BaseModel):
    model_config = ConfigDict(frozen=True)


class Quit(_Command):
    pass


class Help(_Command):
    # None: общая справка; topic_text хранит неизвестное имя как есть
    topic: Optional[CommandName] = None
    topic_text: str = ""


class AddMovie(_Command):
    query: str


class RemoveMovieById(_Command):
    entry_id: int


class RemoveMovieByTitle(_Command):
    title: str


class EditMovie(_Command):
    entry_id: int
    title: str


class ShowWatchList(_Command):
    order: str = "id"


class ShowHistory(_Command):
    order: str = "date"
    reverse: bool = False


class SetStatus(_Command):
    entry_id: int
    status: str
    date_text: Optional[str] = None


class ShowMovieById(_Command):
    entry_id: int


class ShowMovieByTitle(_Command):
    title: str


class SearchMovie(_Command):
    query: str


class SetPrefix(_Command):
    prefix: str


class MovieLimit(_Command):
    limit: Optional[int] = None


class MovieVoteLimit(_Command):
    limit: Optional[int] = None


class CreateVote(_Command):
    title: str
    options: Tuple[str, ...]


class SendVote(_Command):
    user_id: Optional[str] = None


class CloseVote(_Command):
    pass


class RandomMovieVote(_Command):
    limit: Optional[int] = None


class CloseMovieVote(_Command):
    pass


class Info(_Command):
    pass


class Save(_Command):
    pass


Command = Union[
    Quit, Help, AddMovie, RemoveMovieById, RemoveMovieByTitle, EditMovie,
    ShowWatchList, ShowHistory, SetStatus, ShowMovieById, ShowMovieByTitle,
    SearchMovie, SetPrefix, MovieLimit, MovieVoteLimit, CreateVote, SendVote,
    CloseVote, RandomMovieVote, CloseMovieVote, Info, Save,
]
