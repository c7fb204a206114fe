from datetime import datetime, timezone

from movie_night.models.movies import MovieStatus
from movie_night.models.pending import ConfirmMarkWatched
from movie_night.services import messages
from tests.helpers import ADMIN, ALICE, BOB, add_entry, message, reaction


async def test_plain_chat_is_ignored(dispatcher, gateway):
    assert not await dispatcher.handle_message(message("hello there"))
    assert not await dispatcher.handle_message(message("!"))
    assert gateway.sent == []


async def test_own_messages_are_ignored(dispatcher, gateway):
    assert not await dispatcher.handle_message(
        message("!help", user=("bot", "Movie Night")))
    assert gateway.sent == []


async def test_unknown_command_answers_with_notice(dispatcher, gateway):
    assert await dispatcher.handle_message(message("!dance"))
    assert gateway.last_title == "Unknown command"


async def test_wrong_usage_answers_with_command_help(dispatcher, gateway):
    assert await dispatcher.handle_message(message("!set_status 3"))
    assert gateway.last_title == "Wrong usage of set_status"
    assert "!set_status <id> <status>" in gateway.last["message"].description


async def test_help_and_info(dispatcher, gateway):
    await dispatcher.handle_message(message("!help"))
    assert "`add_movie`" in gateway.last["message"].description
    await dispatcher.handle_message(message("!h wl"))
    assert gateway.last_title == "ℹ️ Help: watch_list"
    await dispatcher.handle_message(message("!info"))
    assert gateway.last_title == "Movie Night"


async def test_add_movie_flow(dispatcher, gateway, metadata, state):
    metadata.add(348, "Alien", popularity=40)
    metadata.add(8077, "Alien Resurrection", popularity=90)

    assert await dispatcher.handle_message(message("!am Alien"))
    card = gateway.last
    assert card["message"].title == "Alien"
    assert gateway.added == [(card["message_id"], messages.CONFIRM),
                             (card["message_id"], messages.REJECT)]

    # второе добавление ждёт, пока первое не подтвердят
    await dispatcher.handle_message(message("!am Heat", user=BOB))
    assert gateway.last_title == "Please wait"

    assert await dispatcher.handle_reaction(
        reaction(card["message_id"], messages.CONFIRM))
    entry = state.entries[0]
    assert (entry.movie.tmdb_id, entry.user_id) == (348, ALICE[0])
    assert entry.status is MovieStatus.not_watched


async def test_set_status_scenario(dispatcher, gateway, state):
    entry = add_entry(state, "Alien")
    then = datetime(2024, 5, 1, 21, 30, tzinfo=timezone.utc)

    await dispatcher.handle_message(
        message(f"!set_status {entry.id} watched", timestamp=then))
    assert gateway.last_title == "Status changed"
    assert entry.status is MovieStatus.watched
    assert entry.watched_or_removed_timestamp == then

    await dispatcher.handle_message(
        message(f"!st {entry.id} notwatched", user=BOB))
    assert gateway.last_title == "Insufficient permissions"
    assert entry.status is MovieStatus.watched


async def test_admin_may_touch_foreign_entries(dispatcher, gateway, state):
    entry = add_entry(state, "Alien", user=ALICE)
    gateway.make_admin(ADMIN[0])
    await dispatcher.handle_message(message(f"!rm {entry.id}", user=ADMIN))
    assert state.entries == {}
    assert "added by alice" in gateway.last["message"].description


async def test_remove_and_show_unknown_entry(dispatcher, gateway):
    await dispatcher.handle_message(message("!rm 42"))
    assert gateway.last_title == "Movie not found"
    await dispatcher.handle_message(message("!sm Nothing"))
    assert gateway.last_title == "Movie not found"


async def test_edit_and_show(dispatcher, gateway, state):
    entry = add_entry(state, "Alien")
    await dispatcher.handle_message(message(f"!em {entry.id} Alien 1979"))
    assert gateway.last["message"].description == (
        "Changed 'Alien' to 'Alien 1979'.")
    await dispatcher.handle_message(message("!show_movie alien 1979"))
    assert gateway.last_title == "0000 Alien 1979"


async def test_prefix_is_admin_only(dispatcher, gateway, state):
    await dispatcher.handle_message(message("!prefix ?"))
    assert gateway.last_title == "Insufficient permissions"
    assert state.prefix == "!"

    gateway.make_admin(ADMIN[0])
    await dispatcher.handle_message(message("!prefix ?", user=ADMIN))
    assert state.prefix == "?"
    assert not await dispatcher.handle_message(message("!help"))
    assert await dispatcher.handle_message(message("?help"))


async def test_movie_limit_shows_own_count(dispatcher, gateway, state):
    add_entry(state, "A")
    add_entry(state, "B", user=BOB)
    await dispatcher.handle_message(message("!ml"))
    assert gateway.last["message"].description == (
        "Every user may have 10 movies on the watch list. You have 1.")

    await dispatcher.handle_message(message("!ml 3"))
    assert gateway.last_title == "Insufficient permissions"
    gateway.make_admin(ADMIN[0])
    await dispatcher.handle_message(message("!ml 3", user=ADMIN))
    assert state.movie_limit_per_user == 3
    await dispatcher.handle_message(message("!mvl 7", user=ADMIN))
    assert state.movie_vote_limit == 7


async def test_watch_list_pagination_is_retired_by_new_list(
        dispatcher, gateway, state):
    for i in range(12):
        add_entry(state, f"Movie {i}")
    await dispatcher.handle_message(message("!wl"))
    first = gateway.last["message_id"]
    assert gateway.last["message"].footer == "Page 1/2"

    await dispatcher.handle_message(message("!watch_list user"))
    second = gateway.last["message_id"]
    assert (first, messages.NEXT_PAGE, None) in gateway.removed
    assert first not in state.pending_reactions
    assert second in state.pending_reactions
    assert gateway.last["message"].description.count("**Added by alice**") == 1


async def test_empty_history(dispatcher, gateway, state):
    add_entry(state, "Alien")
    await dispatcher.handle_message(message("!history"))
    assert gateway.last["message"].description == (
        "There are currently **0** movies in the history")
    assert state.pending_reactions == {}


async def test_create_send_close_vote(dispatcher, gateway, state):
    add_entry(state, "Alien")
    await dispatcher.handle_message(
        message("!create_vote Tonight? | Popcorn | t:alien"))
    vote_msg = gateway.last["message_id"]
    vote = state.votes[vote_msg]
    assert [e for m, e in gateway.added if m == vote_msg] == vote.emojis

    await dispatcher.handle_message(message("!cv Again | a | b"))
    assert gateway.last_title == "You already own a vote"

    await dispatcher.handle_reaction(reaction(vote_msg, vote.emojis[1],
                                              user=BOB))
    await dispatcher.handle_message(message("!sv <@100>", user=BOB))
    resent = gateway.last["message_id"]
    assert list(state.votes) == [resent]
    assert (vote_msg, vote.emojis[0], None) in gateway.removed

    await dispatcher.handle_message(message("!close_vote"))
    assert gateway.last_title == "Results: Tonight?"
    assert state.votes == {}
    await dispatcher.handle_message(message("!xv"))
    assert gateway.last_title == "No vote"


async def test_random_movie_vote_and_mark_watched(dispatcher, gateway, state):
    for title in ("A", "B", "C"):
        add_entry(state, title)

    await dispatcher.handle_message(message("!random_movie_vote"))
    vote_msg = gateway.last["message_id"]
    vote = state.votes[vote_msg]
    assert vote.creator_id == "bot"
    assert len(vote.options) == 3

    # повторная команда пересылает то же голосование
    await dispatcher.handle_message(message("!rmv", user=BOB))
    assert list(state.votes.values()) == [vote]
    vote_msg = vote.message_id

    await dispatcher.handle_reaction(reaction(vote_msg, vote.emojis[2]))
    await dispatcher.handle_reaction(reaction(vote_msg, vote.emojis[2],
                                              user=BOB))
    winner_id = vote.options[2].entry_id

    await dispatcher.handle_message(message("!cmv", user=BOB))
    assert state.votes == {}
    card = gateway.last
    assert card["message"].title.startswith(f"{winner_id:04d} ")
    pending = state.pending_reactions[card["message_id"]]
    assert isinstance(pending, ConfirmMarkWatched)
    assert pending.requester_id == BOB[0]

    await dispatcher.handle_reaction(
        reaction(card["message_id"], messages.CONFIRM, user=BOB))
    assert state.entries[winner_id].status is MovieStatus.watched


async def test_close_movie_vote_without_vote(dispatcher, gateway):
    await dispatcher.handle_message(message("!cmv"))
    assert gateway.last_title == "No vote"


async def test_random_movie_vote_on_empty_list(dispatcher, gateway, state):
    await dispatcher.handle_message(message("!rmv"))
    assert gateway.last_title == "Empty watch list"
    assert state.votes == {}


async def test_save_and_quit(state, gateway, metadata, state_repo):
    from movie_night.services.dispatcher import CommandDispatcher
    from movie_night.services.state_service import StateService

    calls = []
    dispatcher = CommandDispatcher(
        state, gateway, metadata, state_service=StateService(state_repo),
        on_quit=lambda: calls.append("quit"))
    add_entry(state, "Alien")

    await dispatcher.handle_message(message("!save"))
    assert gateway.last_title == "Saved"
    assert state_repo.doc["entries"]["0"]["movie"]["title"] == "Alien"

    await dispatcher.handle_message(message("!quit"))
    assert gateway.last_title == "Insufficient permissions"
    assert calls == []

    gateway.make_admin(ADMIN[0])
    state.prefix = "#"
    await dispatcher.handle_message(message("#quit", user=ADMIN))
    assert calls == ["quit"]
    assert state_repo.doc["prefix"] == "#"


async def test_failed_save_is_reported(dispatcher, gateway, state_repo):
    state_repo.fail = True
    await dispatcher.handle_message(message("!save"))
    assert gateway.last_title == "Saving failed"


async def test_search_movie(dispatcher, gateway, metadata):
    metadata.add(11, "Star Wars", imdb_id="tt0076759")
    await dispatcher.handle_message(message("!search tt0076759"))
    assert gateway.last_title == "Star Wars"
    await dispatcher.handle_message(message("!search Nope"))
    assert gateway.last_title == "Movie not found on TMDb"


async def test_unknown_list_order_answers_with_usage(dispatcher, gateway,
                                                     state):
    add_entry(state, "Alien")
    await dispatcher.handle_message(message("!wl banana"))
    assert gateway.last_title == "Wrong usage of watch_list"
    assert state.pending_reactions == {}
