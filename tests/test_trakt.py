import json
from datetime import datetime, timezone

import pytest
import responses

from itsync.api.trakt import (
    MutationResult,
    RequestExecutor,
    TraktAccountLimitError,
    TraktApi,
    TraktApiError,
    TraktListNotFoundError,
    TraktRateLimitError,
    TraktSession,
)
from itsync.fetch import ResourceNotFound
from itsync.models import ItemKind

from .conftest import movie, rated_on, show

API = "https://api.trakt.test"
LISTS = f"{API}/users/cinephile/lists"


@pytest.fixture
def trakt(retry_policy):
    return TraktApi(
        client_id="client-123",
        session=TraktSession(access_token="token-abc", username="cinephile"),
        retry_policy=retry_policy,
        base_url=API,
    )


def _body(call):
    return json.loads(call.request.body)


# ---------------------------------------------------------------- executor --
@responses.activate
def test_rate_limit_gives_up_after_max_attempts(retry_policy, sleeps):
    url = f"{API}/sync/watchlist"
    responses.add(responses.GET, url, status=429, headers={"Retry-After": "0"})

    with pytest.raises(TraktRateLimitError, match=r"max retries \(5\)"):
        RequestExecutor(retry_policy=retry_policy).send("GET", url)

    assert len(responses.calls) == 5
    assert sleeps.calls == [0, 0, 0, 0]


@responses.activate
def test_rate_limit_waits_for_retry_after(retry_policy, sleeps):
    url = f"{API}/sync/ratings"
    responses.add(responses.GET, url, status=429, headers={"Retry-After": "7"})
    responses.add(responses.GET, url, status=200, json=[])

    response = RequestExecutor(retry_policy=retry_policy).send("GET", url)

    assert response.status_code == 200
    assert sleeps.calls == [7]


@responses.activate
def test_rate_limit_without_header_uses_default_wait(retry_policy, sleeps):
    url = f"{API}/sync/ratings"
    responses.add(responses.GET, url, status=429)
    responses.add(responses.GET, url, status=200, json=[])

    RequestExecutor(retry_policy=retry_policy).send("GET", url)

    assert sleeps.calls == [1.0]


@responses.activate
def test_invalid_retry_after_is_fatal(retry_policy, sleeps):
    url = f"{API}/sync/ratings"
    responses.add(responses.GET, url, status=429, headers={"Retry-After": "soon"})

    with pytest.raises(TraktApiError, match="Retry-After"):
        RequestExecutor(retry_policy=retry_policy).send("GET", url)
    assert len(responses.calls) == 1
    assert sleeps.calls == []


@responses.activate
def test_account_limit_is_not_retried(retry_policy):
    url = f"{LISTS}"
    responses.add(responses.POST, url, status=420)

    with pytest.raises(TraktAccountLimitError, match="account limit") as excinfo:
        RequestExecutor(retry_policy=retry_policy).send("POST", url, json={})

    assert excinfo.value.status == 420
    assert len(responses.calls) == 1


@responses.activate
def test_unexpected_status_is_an_api_error(retry_policy):
    url = f"{API}/sync/history"
    responses.add(responses.GET, url, status=500)

    with pytest.raises(TraktApiError) as excinfo:
        RequestExecutor(retry_policy=retry_policy).send("GET", url)

    assert excinfo.value.status == 500
    assert excinfo.value.method == "GET"
    assert len(responses.calls) == 1


@responses.activate
def test_not_found_is_passed_through(retry_policy):
    url = f"{API}/sync/history/movies/tt0000001"
    responses.add(responses.GET, url, status=404)

    assert RequestExecutor(retry_policy=retry_policy).send("GET", url).status_code == 404


# ------------------------------------------------------------------ client --
@responses.activate
def test_requests_carry_api_headers(trakt):
    responses.add(responses.GET, f"{API}/sync/watchlist", json=[])

    trakt.watchlist_get()

    headers = responses.calls[0].request.headers
    assert headers["trakt-api-key"] == "client-123"
    assert headers["trakt-api-version"] == "2"
    assert headers["Authorization"] == "Bearer token-abc"


@responses.activate
def test_watchlist_get_parses_items_and_skips_unmatched(trakt):
    responses.add(
        responses.GET,
        f"{API}/sync/watchlist",
        json=[
            {"type": "movie", "movie": {"ids": {"imdb": "tt0111161"}}},
            {"type": "show", "show": {"ids": {"imdb": "tt0903747"}}},
            {"type": "movie", "movie": {"ids": {"trakt": 99}}},
        ],
    )

    watchlist = trakt.watchlist_get()

    assert watchlist.is_watchlist
    assert [(item.id, item.kind) for item in watchlist.items] == [
        ("tt0111161", ItemKind.MOVIE),
        ("tt0903747", ItemKind.SHOW),
    ]


@responses.activate
def test_list_get_missing_list(trakt):
    responses.add(responses.GET, f"{LISTS}/horror/items", status=404)

    with pytest.raises(TraktListNotFoundError) as excinfo:
        trakt.list_get("horror")

    assert isinstance(excinfo.value, ResourceNotFound)
    assert excinfo.value.resource_id == "horror"
    assert "horror" in str(excinfo.value)


@responses.activate
def test_lists_get_reports_missing_slugs(trakt):
    responses.add(
        responses.GET,
        f"{LISTS}/horror/items",
        json=[{"type": "movie", "movie": {"ids": {"imdb": "tt0081505"}}}],
    )
    responses.add(responses.GET, f"{LISTS}/comedy/items", status=404)

    result = trakt.lists_get(["horror", "comedy"])

    assert [item_list.list_id for item_list in result.results] == ["horror"]
    assert result.missing_ids == ["comedy"]


@responses.activate
def test_list_create_is_private_and_uses_returned_slug(trakt):
    responses.add(responses.POST, LISTS, status=201, json={"name": "Horror!", "ids": {"slug": "horror"}})

    created = trakt.list_create("Horror!")

    body = _body(responses.calls[0])
    assert created.list_id == "horror"
    assert body["name"] == "Horror!"
    assert body["privacy"] == "private"
    assert body["description"].startswith("list auto imported from imdb by itsync on ")


@responses.activate
def test_list_delete(trakt):
    responses.add(responses.DELETE, f"{LISTS}/old-list", status=204)
    trakt.list_delete("old-list")
    assert len(responses.calls) == 1


@responses.activate
def test_list_add_to_missing_list(trakt):
    responses.add(responses.POST, f"{LISTS}/gone/items", status=404)

    with pytest.raises(TraktListNotFoundError):
        trakt.list_add("gone", [movie("tt0000001")])


@responses.activate
def test_list_add_groups_items_by_kind(trakt):
    responses.add(
        responses.POST,
        f"{LISTS}/mixed/items",
        status=201,
        json={"added": {"movies": 1, "shows": 1}, "existing": {}, "not_found": {"movies": []}},
    )

    result = trakt.list_add("mixed", [movie("tt0000001"), show("tt0000002")])

    assert result.total_added == 2
    body = _body(responses.calls[0])
    assert body == {
        "movies": [{"ids": {"imdb": "tt0000001"}}],
        "shows": [{"ids": {"imdb": "tt0000002"}}],
    }


def test_mutations_with_nothing_to_send_skip_the_request(trakt):
    with responses.RequestsMock() as rsps:
        assert trakt.ratings_add([]).total_added == 0
        assert trakt.list_remove("horror", []).total_deleted == 0
        assert len(rsps.calls) == 0


@responses.activate
def test_ratings_add_sends_rating_and_time(trakt):
    responses.add(responses.POST, f"{API}/sync/ratings", status=201, json={"added": {"movies": 1}})

    trakt.ratings_add([movie("tt0000001", rating=8, rated_at=rated_on(3))])

    assert _body(responses.calls[0]) == {
        "movies": [
            {"ids": {"imdb": "tt0000001"}, "rating": 8, "rated_at": "2024-01-03T00:00:00.000Z"}
        ]
    }


@responses.activate
def test_history_add_marks_watched_at_rating_time(trakt):
    responses.add(responses.POST, f"{API}/sync/history", status=201, json={"added": {"movies": 1}})

    trakt.history_add([movie("tt0000001", rating=8, rated_at=rated_on(3))])

    spec = _body(responses.calls[0])["movies"][0]
    assert spec["watched_at"] == "2024-01-03T00:00:00.000Z"


@responses.activate
def test_history_get(trakt):
    responses.add(
        responses.GET,
        f"{API}/sync/history/movies/tt0000001",
        json=[{"type": "movie", "watched_at": "2024-01-01T20:00:00.000Z", "movie": {"ids": {"imdb": "tt0000001"}}}],
    )
    responses.add(responses.GET, f"{API}/sync/history/shows/tt0000002", status=404)

    assert [item.id for item in trakt.history_get(ItemKind.MOVIE, "tt0000001")] == ["tt0000001"]
    assert trakt.history_get(ItemKind.SHOW, "tt0000002") == []
    assert "limit=1000" in responses.calls[0].request.url


@responses.activate
def test_lists_get_all_keys_by_slug(trakt):
    responses.add(
        responses.GET,
        LISTS,
        json=[
            {"name": "Horror Picks", "ids": {"slug": "horror-picks"}},
            {"name": "No Slug Here", "ids": {}},
        ],
    )

    assert [item_list.list_id for item_list in trakt.lists_get_all()] == ["horror-picks", "no-slug-here"]


def test_empty_slug_is_rejected_before_any_request(trakt):
    with responses.RequestsMock() as rsps:
        with pytest.raises(TraktApiError, match="empty"):
            trakt.list_get("")
        with pytest.raises(TraktApiError, match="empty"):
            trakt.list_delete("")
        assert len(rsps.calls) == 0


def test_mutation_result_totals():
    result = MutationResult.from_response(
        {
            "added": {"movies": 2, "shows": 1},
            "deleted": {"movies": 0},
            "existing": {"movies": 1},
            "not_found": {"movies": [{"ids": {"imdb": "tt0000009"}}], "shows": []},
        }
    )

    assert result.describe() == "added=3 deleted=0 existing=1 not_found=1"


@responses.activate
def test_expired_session_is_refreshed_before_the_request(retry_policy):
    expired = TraktSession(
        access_token="token-old",
        username="cinephile",
        refresh_token="refresh",
        expires_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    refreshed = []

    def refresh(session):
        refreshed.append(session.refresh_token)
        return TraktSession(access_token="token-new", username=session.username, refresh_token="refresh-2")

    trakt = TraktApi(
        client_id="client-123",
        session=expired,
        retry_policy=retry_policy,
        base_url=API,
        refresh=refresh,
    )
    responses.add(responses.GET, f"{API}/sync/watchlist", json=[])

    trakt.watchlist_get()
    trakt.watchlist_get()

    assert refreshed == ["refresh"]
    assert responses.calls[0].request.headers["Authorization"] == "Bearer token-new"
