import pytest

from itsync.api.imdb import ImdbApiError, ImdbExports, ImdbExportTimeoutError
from itsync.api.trakt import TraktApiError, TraktListNotFoundError, TraktRateLimitError
from itsync.cli.logic.sync_manager import SyncManager
from itsync.fetch import FetchResult
from itsync.models import Item, ItemKind, ItemList, SyncMode, slugify_list_name

from .conftest import movie, show


class FakeImdb:
    def __init__(self, lists, watchlist=None, ratings=None, authenticated=True, all_names=None):
        self.lists = lists
        self.watchlist = watchlist
        self.ratings = ratings or []
        self.is_authenticated = authenticated
        self.all_names = all_names
        self.inventory_complete = True
        self.hydrated = False
        self.export_calls = []

    def hydrate(self):
        self.hydrated = True

    def export_all(self, list_ids=None, watchlist=False, ratings=False):
        self.export_calls.append((watchlist, ratings))
        return ImdbExports(
            lists=FetchResult(results=list(self.lists)),
            watchlist=self.watchlist if watchlist else None,
            ratings=list(self.ratings) if ratings else [],
        )

    def all_list_names(self):
        if self.all_names is not None:
            return list(self.all_names)
        return [item_list.name for item_list in self.lists]


class FakeTrakt:
    """In-memory Trakt account that records every write."""

    def __init__(self, lists=None, watchlist=None, ratings=None, history=None):
        self.lists = {item_list.list_id: item_list for item_list in lists or []}
        self.watchlist = list(watchlist or [])
        self.ratings = list(ratings or [])
        self.history = set(history or [])
        self.writes = []

    def lists_get(self, slugs):
        result = FetchResult()
        for slug in slugs:
            if slug in self.lists:
                result.results.append(self.lists[slug])
            else:
                result.not_found.append(TraktListNotFoundError(slug))
        return result

    def lists_get_all(self):
        return [ItemList(list_id=slug, name=item_list.name) for slug, item_list in self.lists.items()]

    def list_create(self, name):
        item_list = ItemList(list_id=slugify_list_name(name), name=name)
        self.lists[item_list.list_id] = item_list
        self.writes.append(("list_create", item_list.list_id))
        return item_list

    def list_delete(self, slug):
        del self.lists[slug]
        self.writes.append(("list_delete", slug))

    def list_add(self, slug, items):
        self.writes.append(("list_add", slug, sorted(item.id for item in items)))

    def list_remove(self, slug, items):
        self.writes.append(("list_remove", slug, sorted(item.id for item in items)))

    def watchlist_get(self):
        return ItemList(list_id="watchlist", name="watchlist", items=self.watchlist, is_watchlist=True)

    def watchlist_add(self, items):
        self.writes.append(("watchlist_add", sorted(item.id for item in items)))

    def watchlist_remove(self, items):
        self.writes.append(("watchlist_remove", sorted(item.id for item in items)))

    def ratings_get(self):
        return list(self.ratings)

    def ratings_add(self, items):
        self.writes.append(("ratings_add", sorted(item.id for item in items)))

    def ratings_remove(self, items):
        self.writes.append(("ratings_remove", sorted(item.id for item in items)))

    def history_get(self, kind, item_id):
        return [movie(item_id)] if item_id in self.history else []

    def history_add(self, items):
        self.writes.append(("history_add", sorted(item.id for item in items)))

    def history_remove(self, items):
        self.writes.append(("history_remove", sorted(item.id for item in items)))


def _scenario():
    imdb = FakeImdb(
        lists=[
            ItemList("ls000000001", "Horror Picks", [movie("tt0000001"), movie("tt0000002")]),
            ItemList("ls000000002", "New List", [show("tt0000010")]),
        ],
        watchlist=ItemList("ls000000099", "watchlist", [movie("tt0000020")], is_watchlist=True),
        ratings=[movie("tt0000030", rating=8), movie("tt0000031", rating=6)],
    )
    trakt = FakeTrakt(
        lists=[
            ItemList("horror-picks", "Horror Picks", [movie("tt0000002"), movie("tt0000003")]),
            ItemList("stale-list", "Stale List", [movie("tt0000040")]),
        ],
        watchlist=[movie("tt0000021")],
        ratings=[movie("tt0000030", rating=4), movie("tt0000032", rating=9)],
        history={"tt0000031", "tt0000032"},
    )
    return imdb, trakt


def test_full_sync_converges_every_list():
    imdb, trakt = _scenario()

    summary = SyncManager(imdb, trakt, mode=SyncMode.FULL, sync_history=True).sync()

    assert imdb.hydrated
    assert imdb.export_calls == [(True, True)]
    assert trakt.writes == [
        ("list_add", "horror-picks", ["tt0000001"]),
        ("list_remove", "horror-picks", ["tt0000003"]),
        ("list_create", "new-list"),
        ("list_add", "new-list", ["tt0000010"]),
        ("watchlist_add", ["tt0000020"]),
        ("watchlist_remove", ["tt0000021"]),
        ("list_delete", "stale-list"),
        ("ratings_add", ["tt0000030", "tt0000031"]),
        ("ratings_remove", ["tt0000032"]),
        ("history_add", ["tt0000030"]),
        ("history_remove", ["tt0000032"]),
    ]
    assert summary.items_added == 3
    assert summary.items_removed == 2
    assert (summary.ratings_added, summary.ratings_removed) == (2, 1)
    assert (summary.history_added, summary.history_removed) == (1, 1)
    assert [result.name for result in summary.lists if result.created] == ["New List"]
    assert [result.slug for result in summary.lists if result.deleted] == ["stale-list"]


def test_add_only_never_removes():
    imdb, trakt = _scenario()

    summary = SyncManager(imdb, trakt, mode=SyncMode.ADD_ONLY, sync_history=True).sync()

    kinds = {write[0] for write in trakt.writes}
    assert not kinds & {"list_remove", "watchlist_remove", "ratings_remove", "history_remove", "list_delete"}
    assert ("list_create", "new-list") in trakt.writes
    assert ("history_add", ["tt0000030"]) in trakt.writes
    assert summary.items_removed == 0
    assert summary.ratings_removed == 0
    assert "stale-list" in trakt.lists


def test_dry_run_writes_nothing_but_reports_the_diff():
    imdb, trakt = _scenario()

    summary = SyncManager(imdb, trakt, mode=SyncMode.DRY_RUN, sync_history=True).sync()

    assert trakt.writes == []
    assert summary.items_added == 3
    assert summary.items_removed == 2
    assert (summary.ratings_added, summary.ratings_removed) == (2, 1)
    assert any(result.created for result in summary.lists)
    assert any(result.deleted for result in summary.lists)


def test_second_run_is_a_no_op():
    imdb = FakeImdb(
        lists=[ItemList("ls000000001", "Horror Picks", [movie("tt0000001")])],
        watchlist=ItemList("ls000000099", "watchlist", [movie("tt0000020")], is_watchlist=True),
        ratings=[movie("tt0000030", rating=8)],
    )
    trakt = FakeTrakt(
        lists=[ItemList("horror-picks", "Horror Picks", [movie("tt0000001")])],
        watchlist=[movie("tt0000020")],
        ratings=[movie("tt0000030", rating=8)],
    )

    summary = SyncManager(imdb, trakt, mode=SyncMode.FULL).sync()

    assert trakt.writes == []
    assert summary.items_added == summary.items_removed == 0


def test_lists_on_the_profile_but_not_selected_are_kept():
    imdb, trakt = _scenario()
    imdb.all_names = ["Horror Picks", "New List", "Stale List"]

    SyncManager(imdb, trakt, mode=SyncMode.FULL).sync()

    assert ("list_delete", "stale-list") not in trakt.writes


def test_without_imdb_auth_only_lists_are_synced():
    imdb, trakt = _scenario()
    imdb.is_authenticated = False

    summary = SyncManager(imdb, trakt, mode=SyncMode.FULL, sync_history=True).sync()

    kinds = {write[0] for write in trakt.writes}
    assert kinds == {"list_add", "list_remove", "list_create"}
    assert summary.ratings_added == 0
    assert all(not result.is_watchlist for result in summary.lists)


@pytest.mark.parametrize("watchlist, ratings", [(False, True), (True, False), (False, False)])
def test_watchlist_and_ratings_toggles(watchlist, ratings):
    imdb, trakt = _scenario()

    SyncManager(imdb, trakt, mode=SyncMode.FULL, sync_watchlist=watchlist, sync_ratings=ratings).sync()

    kinds = {write[0] for write in trakt.writes}
    assert ("watchlist_add" in kinds) is watchlist
    assert ("ratings_add" in kinds) is ratings
    assert "history_add" not in kinds


def test_history_skips_kinds_without_history():
    imdb = FakeImdb(lists=[], ratings=[movie("tt0000001", rating=7), Item("nm0000151", ItemKind.PERSON, rating=9)])
    trakt = FakeTrakt()

    SyncManager(imdb, trakt, mode=SyncMode.FULL, sync_watchlist=False, sync_history=True).sync()

    assert ("history_add", ["tt0000001"]) in trakt.writes


def test_incomplete_list_inventory_keeps_trakt_lists():
    imdb, trakt = _scenario()
    imdb.inventory_complete = False

    summary = SyncManager(imdb, trakt, mode=SyncMode.FULL).sync()

    assert ("list_delete", "stale-list") not in trakt.writes
    assert "stale-list" in trakt.lists
    assert not any(result.deleted for result in summary.lists)
    assert ("list_create", "new-list") in trakt.writes


def test_lists_without_a_usable_slug_are_skipped():
    imdb = FakeImdb(
        lists=[
            ItemList("ls000000001", "Horror Picks", [movie("tt0000001")]),
            ItemList("ls000000003", "ホラー映画", [movie("tt0000005")]),
        ],
    )
    trakt = FakeTrakt(lists=[ItemList("horror-picks", "Horror Picks", [movie("tt0000001")])])

    summary = SyncManager(imdb, trakt, mode=SyncMode.FULL, sync_watchlist=False, sync_ratings=False).sync()

    assert trakt.writes == []
    assert [result.name for result in summary.lists] == ["Horror Picks"]


@pytest.mark.parametrize(
    "side, method, error",
    [
        ("imdb", "export_all", ImdbExportTimeoutError("Reached max attempts (30) waiting for exports")),
        ("imdb", "all_list_names", ImdbApiError("Expected 3 IMDb lists, but found 2")),
        ("trakt", "lists_get", TraktApiError("Unexpected status 500 for GET /users/me/lists/horror-picks/items")),
        ("trakt", "watchlist_get", TraktApiError("Unexpected status 502 for GET /sync/watchlist")),
        ("trakt", "ratings_get", TraktRateLimitError("Reached max retries (5) for GET /sync/ratings")),
        ("trakt", "lists_get_all", TraktApiError("Unexpected status 500 for GET /users/me/lists")),
    ],
)
def test_failed_read_aborts_before_any_write(side, method, error):
    imdb, trakt = _scenario()

    def fail(*args, **kwargs):
        raise error

    setattr(imdb if side == "imdb" else trakt, method, fail)

    with pytest.raises(type(error)):
        SyncManager(imdb, trakt, mode=SyncMode.FULL, sync_history=True).sync()

    assert trakt.writes == []
