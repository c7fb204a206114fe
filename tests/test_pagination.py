from datetime import timedelta

import pytest

from movie_night.models.movies import MovieStatus
from movie_night.models.pending import FlatMovieList, GroupedMovieList
from movie_night.services.pagination import (
    build_history_snapshot, build_watch_list_snapshot, page_count,
    rebuild_snapshot, render_page,
)
from tests.helpers import ALICE, BOB, NOW, add_entry


def _fill(state, amount, user=ALICE):
    for i in range(amount):
        add_entry(state, f"Movie {i}", user=user)


@pytest.mark.parametrize("count, pages", [(0, 0), (1, 1), (10, 1),
                                          (11, 2), (25, 3)])
def test_page_count(count, pages):
    assert page_count(count) == pages


def test_ten_entries_fit_one_page(state):
    _fill(state, 10)
    snapshot = build_watch_list_snapshot(state)
    assert snapshot.total_pages == 1
    page = render_page(snapshot, 1)
    assert page.found
    assert len(page.entries) == 10


def test_eleventh_entry_spills_to_second_page(state):
    _fill(state, 11)
    snapshot = build_watch_list_snapshot(state)
    assert snapshot.total_pages == 2
    second = render_page(snapshot, 2)
    assert [e.id for e in second.entries] == [10]
    assert (second.page, second.total_pages, second.count) == (2, 2, 11)


@pytest.mark.parametrize("page", [0, 3, -1])
def test_out_of_range_pages_are_not_found(state, page):
    _fill(state, 11)
    render = render_page(build_watch_list_snapshot(state), page)
    assert not render.found
    assert render.entries == []


def test_watch_list_excludes_history(state):
    add_entry(state, "Seen", status=MovieStatus.watched, watched_at=NOW)
    kept = add_entry(state, "Later", status=MovieStatus.unavailable)
    snapshot = build_watch_list_snapshot(state)
    assert [e.id for e in snapshot.entries] == [kept.id]


def test_snapshot_is_detached_from_state(state):
    entry = add_entry(state, "Alien")
    snapshot = build_watch_list_snapshot(state)
    entry.movie.title = "Aliens"
    assert snapshot.entries[0].movie.title == "Alien"
    assert rebuild_snapshot(state, snapshot).entries[0].movie.title == "Aliens"


def test_grouped_pages_walk_users_in_name_order(state):
    _fill(state, 12, user=BOB)
    _fill(state, 3, user=ALICE)
    snapshot = build_watch_list_snapshot(state, "user")
    assert isinstance(snapshot, GroupedMovieList)
    # alice: 1 страница, bob: 2 страницы
    assert snapshot.total_pages == 3
    assert [g.user_name for g in snapshot.groups] == ["alice", "bob"]

    first, second, third = (render_page(snapshot, p) for p in (1, 2, 3))
    assert (first.user_name, len(first.entries)) == ("alice", 3)
    assert (second.user_name, len(second.entries)) == ("bob", 10)
    assert (third.user_name, len(third.entries)) == ("bob", 2)
    assert not render_page(snapshot, 4).found


def test_history_ordered_by_date_then_id(state):
    late = add_entry(state, "Late", status=MovieStatus.watched,
                     watched_at=NOW)
    early = add_entry(state, "Early", status=MovieStatus.removed,
                      watched_at=NOW - timedelta(days=3))
    same = add_entry(state, "Same day", status=MovieStatus.watched,
                     watched_at=NOW)
    add_entry(state, "Still to watch")

    snapshot = build_history_snapshot(state)
    assert isinstance(snapshot, FlatMovieList)
    assert [e.id for e in snapshot.entries] == [early.id, late.id, same.id]

    reversed_ = build_history_snapshot(state, reverse=True)
    assert [e.id for e in reversed_.entries] == [same.id, late.id, early.id]
    assert rebuild_snapshot(state, reversed_).reverse
