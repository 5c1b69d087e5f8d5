"""Sync orchestration from IMDb lists, watchlist and ratings to Trakt."""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from ...api.imdb import ImdbApi
from ...api.trakt import TraktApi
from ...models import (
    Diff,
    Item,
    ItemKind,
    ItemList,
    ListResult,
    Snapshot,
    SyncMode,
    SyncSummary,
    slugify_list_name,
)
from ...reconcile import reconcile_snapshot

logger = logging.getLogger(__name__)

# Trakt keeps watch history for these kinds only
HISTORY_KINDS = (ItemKind.MOVIE, ItemKind.SHOW, ItemKind.EPISODE)


def _diff(name: str, source: Iterable[Item], destination: Iterable[Item]) -> Diff:
    return reconcile_snapshot(Snapshot(name=name, source=tuple(source), destination=tuple(destination)))


@dataclass
class Hydration:
    """Everything read from both services before any write happens."""
    source_lists: list[ItemList] = field(default_factory=list)
    destination_lists: dict[str, ItemList] = field(default_factory=dict)
    source_watchlist: Optional[ItemList] = None
    destination_watchlist: Optional[ItemList] = None
    source_ratings: list[Item] = field(default_factory=list)
    destination_ratings: list[Item] = field(default_factory=list)
    orphan_lists: list[ItemList] = field(default_factory=list)


class SyncManager:
    """Manages synchronization from IMDb to Trakt."""

    def __init__(
        self,
        imdb: ImdbApi,
        trakt: TraktApi,
        mode: SyncMode = SyncMode.FULL,
        sync_watchlist: bool = True,
        sync_ratings: bool = True,
        sync_history: bool = False,
    ):
        """Initialize sync manager.

        Args:
            imdb: Authenticated IMDb client
            trakt: Authenticated Trakt client
            mode: Which writes are allowed
            sync_watchlist: Sync the watchlist
            sync_ratings: Sync ratings
            sync_history: Backfill watch history from ratings
        """
        self.imdb = imdb
        self.trakt = trakt
        self.mode = mode
        self.sync_watchlist = sync_watchlist
        self.sync_ratings = sync_ratings
        self.sync_history = sync_history
        self.hydration = Hydration()

    def sync(self) -> SyncSummary:
        """Run a full sync: read both sides, then apply the differences.

        Nothing is written to Trakt unless every read succeeded.

        Returns:
            SyncSummary with per-list results and ratings/history counts
        """
        summary = SyncSummary(mode=self.mode)
        if self.mode is SyncMode.DRY_RUN:
            logger.info("Dry run: no changes will be written to Trakt")

        self.hydrate()
        self.sync_lists(summary)
        self.sync_ratings_and_history(summary)

        changes = (
            summary.items_added
            + summary.items_removed
            + summary.ratings_added
            + summary.ratings_removed
            + summary.history_added
            + summary.history_removed
        )
        log_level = logger.info if changes > 0 else logger.debug
        log_level(
            f"Sync complete: {summary.items_added} list items added, "
            f"{summary.items_removed} removed, {summary.ratings_added} ratings added, "
            f"{summary.ratings_removed} removed, {summary.history_added} history entries added, "
            f"{summary.history_removed} removed"
        )
        return summary

    # ------------------------------------------------------------ hydrate --
    def hydrate(self) -> Hydration:
        """Read everything needed from IMDb and Trakt.

        IMDb exports for lists, watchlist and ratings are requested together
        and waited on once.
        """
        hydration = Hydration()
        self.imdb.hydrate()
        authenticated = self.imdb.is_authenticated

        exports = self.imdb.export_all(
            watchlist=authenticated and self.sync_watchlist,
            ratings=authenticated and self.sync_ratings,
        )
        for missing in exports.lists.not_found:
            logger.warning(f"IMDb list {missing.resource_id} was not found, skipping it")
        hydration.source_lists = self._syncable_lists(exports.lists.results)

        slugs = [item_list.slug for item_list in hydration.source_lists]
        destination = self.trakt.lists_get(slugs)
        hydration.destination_lists = {item_list.list_id: item_list for item_list in destination.results}
        for slug in destination.missing_ids:
            logger.info(f"Trakt list {slug} does not exist yet and will be created")

        if authenticated:
            if self.sync_watchlist:
                hydration.source_watchlist = exports.watchlist
                hydration.destination_watchlist = self.trakt.watchlist_get()
            if self.sync_ratings:
                hydration.source_ratings = exports.ratings
                hydration.destination_ratings = self.trakt.ratings_get()
            if self.mode is not SyncMode.ADD_ONLY:
                hydration.orphan_lists = self._find_orphan_lists(hydration.source_lists)
        else:
            logger.info("IMDb auth is disabled: skipping watchlist, ratings, history and list cleanup")

        self.hydration = hydration
        return hydration

    def _syncable_lists(self, source_lists: list[ItemList]) -> list[ItemList]:
        syncable = []
        for item_list in sorted(source_lists, key=lambda item_list: item_list.list_id):
            if not item_list.slug:
                logger.warning(
                    f"Skipping IMDb list {item_list.list_id} ({item_list.name}): "
                    f"its name has no letters or digits to build a Trakt slug from"
                )
                continue
            syncable.append(item_list)
        return syncable

    def _find_orphan_lists(self, source_lists: list[ItemList]) -> list[ItemList]:
        names = self.imdb.all_list_names()
        if not self.imdb.inventory_complete:
            logger.warning("The IMDb list inventory may be incomplete, skipping Trakt list cleanup")
            return []

        known_slugs = {slugify_list_name(name) for name in names}
        known_slugs.update(item_list.slug for item_list in source_lists)
        return [
            item_list
            for item_list in self.trakt.lists_get_all()
            if item_list.list_id not in known_slugs
        ]

    # -------------------------------------------------------------- lists --
    def sync_lists(self, summary: SyncSummary) -> None:
        """Apply list, watchlist and orphan list changes, one list at a time."""
        hydration = self.hydration

        for source in hydration.source_lists:
            summary.lists.append(self._sync_list(source, hydration.destination_lists.get(source.slug)))

        if hydration.source_watchlist is not None:
            summary.lists.append(
                self._sync_watchlist(hydration.source_watchlist, hydration.destination_watchlist)
            )

        for orphan in hydration.orphan_lists:
            summary.lists.append(self._delete_list(orphan))

    def _sync_list(self, source: ItemList, destination: Optional[ItemList]) -> ListResult:
        slug = source.slug
        result = ListResult(name=source.name, slug=slug)

        if destination is None:
            result.created = True
            if self.mode is SyncMode.DRY_RUN:
                logger.info(f"Would create Trakt list {slug} ({source.name})")
            else:
                slug = self.trakt.list_create(source.name).list_id
                result.slug = slug
            destination_items = []
        else:
            destination_items = destination.items

        diff = _diff(source.name, source.items, destination_items)
        self._apply(
            diff,
            result,
            label=f"list {slug}",
            add=lambda items: self.trakt.list_add(slug, items),
            remove=lambda items: self.trakt.list_remove(slug, items),
        )
        return result

    def _sync_watchlist(self, source: ItemList, destination: Optional[ItemList]) -> ListResult:
        result = ListResult(name=source.name, slug=None, is_watchlist=True)
        destination_items = destination.items if destination is not None else []
        diff = _diff("watchlist", source.items, destination_items)
        self._apply(
            diff,
            result,
            label="watchlist",
            add=self.trakt.watchlist_add,
            remove=self.trakt.watchlist_remove,
        )
        return result

    def _delete_list(self, orphan: ItemList) -> ListResult:
        result = ListResult(name=orphan.name, slug=orphan.list_id, deleted=True)
        if self.mode.allows_remove:
            self.trakt.list_delete(orphan.list_id)
        else:
            logger.info(f"Would delete Trakt list {orphan.list_id}, it has no IMDb counterpart")
        return result

    def _apply(self, diff: Diff, result: ListResult, label: str, add, remove) -> None:
        if not diff:
            logger.debug(f"Trakt {label} is up to date")
            return

        if diff.add:
            result.added = len(diff.add)
            if self.mode.allows_add:
                add(diff.add)
            else:
                logger.info(f"Would add {len(diff.add)} items to Trakt {label}")

        if diff.remove:
            if self.mode.allows_remove:
                result.removed = len(diff.remove)
                remove(diff.remove)
            elif self.mode is SyncMode.DRY_RUN:
                result.removed = len(diff.remove)
                logger.info(f"Would remove {len(diff.remove)} items from Trakt {label}")
            else:
                logger.info(f"Add-only mode: keeping {len(diff.remove)} extra items in Trakt {label}")

    # ------------------------------------------------------------ ratings --
    def sync_ratings_and_history(self, summary: SyncSummary) -> None:
        """Apply ratings changes, then backfill or prune watch history."""
        if not self.imdb.is_authenticated or not self.sync_ratings:
            return

        diff = _diff("ratings", self.hydration.source_ratings, self.hydration.destination_ratings)
        result = ListResult(name="ratings", slug=None)
        self._apply(
            diff,
            result,
            label="ratings",
            add=self.trakt.ratings_add,
            remove=self.trakt.ratings_remove,
        )
        summary.ratings_added = result.added
        summary.ratings_removed = result.removed

        if self.sync_history:
            self._sync_history(diff, summary)

    def _sync_history(self, diff: Diff, summary: SyncSummary) -> None:
        to_add = [
            item
            for item in diff.add
            if item.kind in HISTORY_KINDS and not self.trakt.history_get(item.kind, item.id)
        ]

        to_remove = []
        if self.mode is not SyncMode.ADD_ONLY:
            to_remove = [
                item
                for item in diff.remove
                if item.kind in HISTORY_KINDS and self.trakt.history_get(item.kind, item.id)
            ]

        history = Diff(add=to_add, remove=to_remove)
        result = ListResult(name="history", slug=None)
        self._apply(
            history,
            result,
            label="history",
            add=self.trakt.history_add,
            remove=self.trakt.history_remove,
        )
        summary.history_added = result.added
        summary.history_removed = result.removed
