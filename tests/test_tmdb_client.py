import httpx
import pytest

from movie_night.core.errors import MetadataLookupError, MovieNotFoundOnTmdbError
from movie_night.services.tmdb_client import TmdbClient

MOVIE = {
    "id": 348,
    "title": "Alien",
    "original_title": "Alien",
    "original_language": "en",
    "overview": "In space no one can hear you scream.",
    "poster_path": "/alien.jpg",
    "release_date": "1979-05-25",
    "genres": [{"id": 27, "name": "Horror"}, {"id": 878, "name": "Sci-Fi"}],
    "runtime": 117,
    "budget": 11000000,
}


def _client(handler):
    transport = httpx.MockTransport(handler)
    return TmdbClient(httpx.AsyncClient(
        transport=transport, base_url="https://tmdb.test/3"))


async def test_search_by_title_sends_query_and_key():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"results": [
            {"id": 348, "title": "Alien", "popularity": 40.5},
            {"id": 8077, "title": "Alien Resurrection"},
        ]})

    found = await _client(handler).search_by_title("Alien")
    assert [c.tmdb_id for c in found] == [348, 8077]
    assert found[0].popularity == 40.5
    assert seen["path"] == "/3/search/movie"
    assert seen["params"]["query"] == "Alien"
    assert "api_key" in seen["params"]


async def test_search_by_imdb_id_uses_find_endpoint():
    def handler(request):
        assert request.url.path == "/3/find/tt0078748"
        assert request.url.params["external_source"] == "imdb_id"
        return httpx.Response(200, json={
            "movie_results": [{"id": 348, "title": "Alien"}],
            "tv_results": [{"id": 1, "name": "not a movie"}],
        })

    found = await _client(handler).search_by_external_reference_id(
        "tt0078748")
    assert [c.tmdb_id for c in found] == [348]


async def test_fetch_by_id_maps_details():
    movie = await _client(
        lambda request: httpx.Response(200, json=MOVIE)).fetch_by_id(348)
    assert movie.title == "Alien"
    assert movie.genres == "Horror, Sci-Fi"
    assert movie.budget == "$11,000,000"
    assert movie.release_date.year == 1979
    assert movie.runtime == 117


async def test_fetch_by_id_tolerates_missing_fields():
    movie = await _client(lambda request: httpx.Response(
        200, json={"id": 1, "title": "Bare", "budget": 0,
                   "release_date": ""})).fetch_by_id(1)
    assert (movie.genres, movie.budget, movie.release_date) == (
        "-", "-", None)


async def test_404_is_movie_not_found():
    client = _client(lambda request: httpx.Response(404, json={}))
    with pytest.raises(MovieNotFoundOnTmdbError):
        await client.fetch_by_id(1)


async def test_server_error_is_lookup_error():
    client = _client(lambda request: httpx.Response(503))
    with pytest.raises(MetadataLookupError):
        await client.search_by_title("Alien")


async def test_network_error_is_lookup_error():
    def handler(request):
        raise httpx.ConnectError("no route", request=request)

    with pytest.raises(MetadataLookupError):
        await _client(handler).search_by_title("Alien")


async def test_non_json_body_is_lookup_error():
    client = _client(lambda request: httpx.Response(
        200, text="<html>maintenance</html>"))
    with pytest.raises(MetadataLookupError):
        await client.search_by_title("Alien")
    with pytest.raises(MetadataLookupError):
        await client.fetch_by_id(348)


async def test_result_without_id_is_lookup_error():
    client = _client(lambda request: httpx.Response(
        200, json={"results": [{"title": "Alien"}]}))
    with pytest.raises(MetadataLookupError):
        await client.search_by_title("Alien")

    details = _client(lambda request: httpx.Response(
        200, json={"title": "Alien"}))
    with pytest.raises(MetadataLookupError):
        await details.fetch_by_id(348)


async def test_unexpected_shapes_are_lookup_errors():
    as_list = _client(lambda request: httpx.Response(200, json=[1, 2]))
    with pytest.raises(MetadataLookupError):
        await as_list.search_by_title("Alien")

    bad_results = _client(lambda request: httpx.Response(
        200, json={"results": "nope"}))
    with pytest.raises(MetadataLookupError):
        await bad_results.search_by_title("Alien")


async def test_broken_answer_reaches_user_as_notice(state, gateway):
    from movie_night.services.dispatcher import CommandDispatcher
    from tests.helpers import message

    dispatcher = CommandDispatcher(
        state, gateway, _client(lambda request: httpx.Response(
            200, text="<html>maintenance</html>")))
    assert await dispatcher.handle_message(message("!search_movie Alien"))
    assert gateway.last_title == "TMDb lookup failed"
    assert "unreadable" in gateway.last["message"].description
