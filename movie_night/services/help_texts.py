"""Usage help per command, rendered with the current prefix."""

from __future__ import annotations

from typing import Dict, List, NamedTuple, Tuple

from movie_night.models.commands import CommandName, aliases_of


class CommandHelp(NamedTuple):
    description: str
    usage: Tuple[str, ...]
    examples: Tuple[str, ...]


HELP: Dict[CommandName, CommandHelp] = {
    CommandName.help: CommandHelp(
        'Shows the general help and a list of all commands.',
        ('help', 'help <command>'),
        ('help', 'help add_movie'),
    ),
    CommandName.quit: CommandHelp(
        'Saves all data and shuts the bot down. Administrators only.',
        ('quit',),
        ('quit',),
    ),
    CommandName.add_movie: CommandHelp(
        'Looks the movie up on TMDb and adds it to the watch list '
        'once you confirm with ✅.',
        ('add_movie <title>', 'add_movie <IMDb link or id>'),
        ('add_movie Star Wars', 'add_movie tt0076759'),
    ),
    CommandName.remove_movie: CommandHelp(
        'Removes a movie for good. Only the user who added it or an '
        'administrator may do this.',
        ('remove_movie <id>', 'remove_movie <title>'),
        ('remove_movie 12', 'remove_movie Star Wars'),
    ),
    CommandName.edit_movie: CommandHelp(
        'Changes the title of a movie on the list.',
        ('edit_movie <id> <new title>',),
        ('edit_movie 12 Star Wars: A New Hope',),
    ),
    CommandName.watch_list: CommandHelp(
        'Shows the watch list, ordered by id or grouped by user. '
        'Use ⬅️ and ➡️ to turn pages.',
        ('watch_list', 'watch_list user'),
        ('watch_list', 'watch_list user'),
    ),
    CommandName.history: CommandHelp(
        'Shows watched and removed movies ordered by date or grouped '
        'by user.',
        ('history', 'history user', 'history reverse'),
        ('history', 'history user reverse'),
    ),
    CommandName.set_status: CommandHelp(
        'Sets the status of a movie: NotWatched, Watched, Unavailable, '
        'Rewatch or Removed. Watched and Removed accept a date.',
        ('set_status <id> <status>', 'set_status <id> <status> <dd.mm.yyyy>'),
        ('set_status 12 watched', 'set_status 12 watched 24.12.2020'),
    ),
    CommandName.unavailable: CommandHelp(
        'Marks a movie as unavailable.',
        ('unavailable <id>',),
        ('unavailable 12',),
    ),
    CommandName.watched: CommandHelp(
        'Marks a movie as watched, today or on the given date.',
        ('watched <id>', 'watched <id> <dd.mm.yyyy>'),
        ('watched 12', 'watched 12 24.12.2020'),
    ),
    CommandName.show_movie: CommandHelp(
        'Shows all information about a movie on the list.',
        ('show_movie <id>', 'show_movie <title>'),
        ('show_movie 12', 'show_movie Star Wars'),
    ),
    CommandName.search_movie: CommandHelp(
        'Looks a movie up on TMDb without adding it.',
        ('search_movie <title>', 'search_movie <IMDb link or id>'),
        ('search_movie Alien',),
    ),
    CommandName.prefix: CommandHelp(
        'Changes the command prefix. Administrators only.',
        ('prefix <single character>',),
        ('prefix ?',),
    ),
    CommandName.movie_limit: CommandHelp(
        'Shows the movie limit per user and how many movies you have on '
        'the list. Administrators can change it.',
        ('movie_limit', 'movie_limit <positive number>'),
        ('movie_limit', 'movie_limit 15'),
    ),
    CommandName.movie_vote_limit: CommandHelp(
        'Shows how many movies the random movie vote offers. '
        'Administrators can change it.',
        ('movie_vote_limit', 'movie_vote_limit <positive number>'),
        ('movie_vote_limit', 'movie_vote_limit 7'),
    ),
    CommandName.create_vote: CommandHelp(
        'Creates a vote. Options are separated by |. Use id:<id> or '
        't:<title> to offer a movie from the list.',
        ('create_vote <title> | <option> | <option> ...',),
        ('create_vote Snacks? | Popcorn | Nachos',
         'create_vote Tonight | id:12 | t:Alien'),
    ),
    CommandName.send_vote: CommandHelp(
        'Sends your vote (or the vote of the mentioned user) again.',
        ('send_vote', 'send_vote @user'),
        ('send_vote',),
    ),
    CommandName.close_vote: CommandHelp(
        'Closes your vote and shows the results.',
        ('close_vote',),
        ('close_vote',),
    ),
    CommandName.random_movie_vote: CommandHelp(
        'Starts a vote over random movies from the watch list. Sends the '
        'open one again if it already exists.',
        ('random_movie_vote', 'random_movie_vote <positive number>'),
        ('random_movie_vote', 'random_movie_vote 5'),
    ),
    CommandName.close_movie_vote: CommandHelp(
        'Closes the random movie vote and shows the winner.',
        ('close_movie_vote',),
        ('close_movie_vote',),
    ),
    CommandName.info: CommandHelp(
        'Shows the bot name and version.',
        ('info',),
        ('info',),
    ),
    CommandName.save: CommandHelp(
        'Saves all data right now.',
        ('save',),
        ('save',),
    ),
}

GROUPS: Tuple[Tuple[str, Tuple[CommandName, ...]], ...] = (
    ('General', (
        CommandName.help, CommandName.info, CommandName.prefix,
        CommandName.quit, CommandName.save,
    )),
    ('Movies', (
        CommandName.add_movie, CommandName.edit_movie, CommandName.history,
        CommandName.movie_limit, CommandName.remove_movie,
        CommandName.search_movie, CommandName.set_status,
        CommandName.show_movie, CommandName.unavailable, CommandName.watched,
        CommandName.watch_list,
    )),
    ('Votes', (
        CommandName.close_movie_vote, CommandName.close_vote,
        CommandName.create_vote, CommandName.movie_vote_limit,
        CommandName.random_movie_vote, CommandName.send_vote,
    )),
)


def general_help(prefix: str) -> str:
    lines: List[str] = [
        'Some commands have aliases that are shorter than the full name.',
        f'For details on a command use {prefix}help <command>',
        f'**Example**: {prefix}help watch_list',
    ]
    for title, names in GROUPS:
        lines.append('')
        lines.append(f'**{title}**')
        lines.extend(f'`{name.value}`' for name in names)
    return '\n'.join(lines)


def command_help(name: CommandName, prefix: str) -> str:
    entry = HELP[name]
    aliases = ', '.join(f'`{alias}`' for alias in aliases_of(name))
    return '\n'.join([
        entry.description,
        '',
        '**Usage**',
        *(f'{prefix}{line}' for line in entry.usage),
        '',
        '**Examples**',
        *(f'{prefix}{line}' for line in entry.examples),
        '',
        '**Aliases**',
        aliases,
    ])
