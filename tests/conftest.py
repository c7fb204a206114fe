import os
import random
from typing import Dict, List, Optional

import pytest
from httpx import AsyncClient, ASGITransport
from pymongo.errors import PyMongoError

from movie_night.core.config import settings
from movie_night.core.errors import MovieNotFoundOnTmdbError
from movie_night.models.events import FormattedMessage, RoleInfo
from movie_night.models.movies import Movie, MovieCandidate
from movie_night.services.dispatcher import CommandDispatcher
from movie_night.services.state_service import StateService, fresh_state

ADMIN_ROLE = "role-admin"


@pytest.fixture(scope="session", autouse=True)
def test_env():
    os.environ["SENTRY_DSN"] = ""  # отключаем Sentry
    settings.sentry_dsn = ""
    settings.bot_user_id = "bot"
    settings.confirmation_timeout_s = 30


class FakeChatGateway:
    """Пишет все исходящие вызовы в списки вместо сети."""

    def __init__(self) -> None:
        self.sent: List[dict] = []
        self.edits: List[dict] = []
        self.added: List[tuple] = []
        self.removed: List[tuple] = []
        self.roles: Dict[str, RoleInfo] = {}
        self.fail_sends = False
        self._next_id = 0

    async def send_message(self, channel_id: str, text: str) -> Optional[str]:
        return await self.send_formatted_message(
            channel_id, FormattedMessage(description=text))

    async def send_formatted_message(
            self, channel_id: str,
            message: FormattedMessage) -> Optional[str]:
        if self.fail_sends:
            return None
        self._next_id += 1
        message_id = f"m{self._next_id}"
        self.sent.append({"channel_id": channel_id,
                          "message_id": message_id,
                          "message": message})
        return message_id

    async def edit_formatted_message(
            self, channel_id: str, message_id: str,
            message: FormattedMessage) -> bool:
        self.edits.append({"channel_id": channel_id,
                           "message_id": message_id,
                           "message": message})
        return True

    async def add_reaction(self, channel_id, message_id, emoji) -> bool:
        self.added.append((message_id, emoji))
        return True

    async def remove_reaction(self, channel_id, message_id, emoji,
                              user_id=None) -> bool:
        self.removed.append((message_id, emoji, user_id))
        return True

    async def lookup_roles(self, user_id: str) -> RoleInfo:
        return self.roles.get(user_id, RoleInfo())

    # удобства для тестов
    def make_admin(self, user_id: str) -> None:
        self.roles[user_id] = RoleInfo(
            role_ids={ADMIN_ROLE}, administrator_role_ids={ADMIN_ROLE})

    @property
    def last(self) -> dict:
        return self.sent[-1]

    @property
    def last_title(self) -> str:
        return self.sent[-1]["message"].title


class FakeMetadata:
    def __init__(self) -> None:
        self.movies: Dict[int, Movie] = {}
        self.imdb: Dict[str, int] = {}
        self.popularity: Dict[int, float] = {}
        self.calls: List[tuple] = []

    def add(self, tmdb_id: int, title: str, original_title: str = "",
            popularity: float = 1.0, imdb_id: Optional[str] = None) -> Movie:
        movie = Movie(tmdb_id=tmdb_id, title=title,
                      original_title=original_title or title)
        self.movies[tmdb_id] = movie
        self.popularity[tmdb_id] = popularity
        if imdb_id:
            self.imdb[imdb_id] = tmdb_id
        return movie

    def _candidate(self, movie: Movie) -> MovieCandidate:
        return MovieCandidate(
            tmdb_id=movie.tmdb_id, title=movie.title,
            original_title=movie.original_title,
            popularity=self.popularity[movie.tmdb_id])

    async def search_by_title(self, title: str) -> List[MovieCandidate]:
        self.calls.append(("search_by_title", title))
        words = title.casefold().split()
        return [self._candidate(movie) for movie in self.movies.values()
                if all(w in movie.title.casefold() for w in words)]

    async def search_by_external_reference_id(
            self, imdb_id: str) -> List[MovieCandidate]:
        self.calls.append(("search_by_external_reference_id", imdb_id))
        tmdb_id = self.imdb.get(imdb_id)
        if tmdb_id is None:
            return []
        return [self._candidate(self.movies[tmdb_id])]

    async def fetch_by_id(self, tmdb_id: int) -> Movie:
        self.calls.append(("fetch_by_id", tmdb_id))
        if tmdb_id not in self.movies:
            raise MovieNotFoundOnTmdbError(str(tmdb_id))
        return self.movies[tmdb_id].model_copy(deep=True)


class FakeStateRepo:
    def __init__(self) -> None:
        self.doc: Optional[dict] = None
        self.fail = False

    async def load(self):
        if self.fail:
            raise PyMongoError("mongo is down")
        return self.doc

    async def replace(self, payload):
        if self.fail:
            raise PyMongoError("mongo is down")
        self.doc = payload


@pytest.fixture
def state():
    return fresh_state()


@pytest.fixture
def gateway():
    return FakeChatGateway()


@pytest.fixture
def metadata():
    return FakeMetadata()


@pytest.fixture
def state_repo():
    return FakeStateRepo()


@pytest.fixture
def dispatcher(state, gateway, metadata, state_repo):
    return CommandDispatcher(
        state, gateway, metadata,
        state_service=StateService(state_repo),
        rng=random.Random(7),
    )


@pytest.fixture
async def client(dispatcher):
    # без lifespan: диспетчер подкладываем напрямую
    from movie_night.main import app
    app.state.dispatcher = dispatcher
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport,
                           base_url="http://test") as ac:
        yield ac
    app.state.dispatcher = None
