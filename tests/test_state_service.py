import pytest
from asgi_lifespan import LifespanManager

from movie_night.core.errors import PersistenceError
from movie_night.models.movies import MovieStatus
from movie_night.models.pending import ConfirmAdd, ListPagination
from movie_night.services.pagination import build_watch_list_snapshot
from movie_night.services.pending_reactions import PendingReactionRegistry
from movie_night.services.state_service import StateService, dump_state
from movie_night.services.voting_service import VotingService
from movie_night.services.watch_list_service import WatchListService
from tests.helpers import ALICE, NOW, add_entry


async def test_empty_repo_loads_none(state_repo):
    assert await StateService(state_repo).load() is None


async def test_round_trip_keeps_everything(state, metadata, state_repo):
    kept = add_entry(state, "Alien")
    add_entry(state, "Heat", status=MovieStatus.watched, watched_at=NOW)
    state.prefix = "?"
    state.movie_limit_per_user = 3

    voting = VotingService(state, WatchListService(state, metadata))
    vote = voting.create_vote(ALICE[0], ALICE[1], "Tonight",
                              ["Popcorn", f"id:{kept.id}"], NOW)
    voting.register_vote(vote, "c1", "v1")
    registry = PendingReactionRegistry(state)
    registry.register_confirm_add(kept.model_copy(update={"id": None}),
                                  "c1", "m2", now=NOW)
    registry.register_pagination(build_watch_list_snapshot(state), "c1", "m3")

    service = StateService(state_repo)
    await service.save(state)
    # ключи записей в документе строковые
    assert set(state_repo.doc["entries"]) == {"0", "1"}

    loaded = await service.load()
    assert dump_state(loaded) == dump_state(state)
    assert isinstance(loaded.pending_reactions["m2"], ConfirmAdd)
    assert isinstance(loaded.pending_reactions["m3"], ListPagination)
    assert loaded.votes["v1"].options[1].entry_id == kept.id
    assert loaded.allocate_id() == 2


async def test_mongo_failures_become_persistence_errors(state, state_repo):
    state_repo.fail = True
    service = StateService(state_repo)
    with pytest.raises(PersistenceError):
        await service.save(state)
    with pytest.raises(PersistenceError):
        await service.load()


async def test_broken_document_is_persistence_error(state, state_repo):
    state_repo.doc = dump_state(state)
    state_repo.doc["entries"] = {"0": {"movie": "nope"}}
    with pytest.raises(PersistenceError):
        await StateService(state_repo).load()


async def test_lifespan_loads_state_and_saves_on_shutdown(
        monkeypatch, state_repo):
    from movie_night import main

    stored = main.fresh_state()
    add_entry(stored, "Alien")
    state_repo.doc = dump_state(stored)

    async def fake_state_service():
        return StateService(state_repo)

    async def no_mongo():
        return None

    monkeypatch.setattr(main, "create_state_service", fake_state_service)
    monkeypatch.setattr(main, "close_client", no_mongo)

    async with LifespanManager(main.app):
        dispatcher = main.app.state.dispatcher
        assert dispatcher.state.entries[0].movie.title == "Alien"
        dispatcher.state.prefix = "?"

    assert main.app.state.dispatcher is None
    assert state_repo.doc["prefix"] == "?"


async def test_lifespan_starts_fresh_when_load_fails(monkeypatch, state_repo):
    from movie_night import main

    state_repo.fail = True

    async def fake_state_service():
        return StateService(state_repo)

    async def no_mongo():
        return None

    monkeypatch.setattr(main, "create_state_service", fake_state_service)
    monkeypatch.setattr(main, "close_client", no_mongo)

    async with LifespanManager(main.app):
        assert main.app.state.dispatcher.state.entries == {}
