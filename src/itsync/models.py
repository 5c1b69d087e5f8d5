"""Data models shared by the IMDb and Trakt clients."""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Optional


class ItemKind(Enum):
    """Kind of trackable item."""
    MOVIE = "movie"
    SHOW = "show"
    EPISODE = "episode"
    SEASON = "season"
    PERSON = "person"

    @property
    def group(self) -> str:
        """Key of this kind in a grouped Trakt request body."""
        return _KIND_GROUPS[self]


_KIND_GROUPS = {
    ItemKind.MOVIE: "movies",
    ItemKind.SHOW: "shows",
    ItemKind.EPISODE: "episodes",
    ItemKind.SEASON: "seasons",
    ItemKind.PERSON: "people",
}

# IMDb "Title Type" column values; anything else is treated as a movie
IMDB_TITLE_TYPES = {
    "Movie": ItemKind.MOVIE,
    "TV Movie": ItemKind.MOVIE,
    "TV Special": ItemKind.MOVIE,
    "Short": ItemKind.MOVIE,
    "Video": ItemKind.MOVIE,
    "TV Series": ItemKind.SHOW,
    "TV Mini Series": ItemKind.SHOW,
    "TV Episode": ItemKind.EPISODE,
    "Person": ItemKind.PERSON,
}


class SyncMode(Enum):
    """How much of the computed diff may be written to Trakt."""
    FULL = "full"
    ADD_ONLY = "add-only"
    DRY_RUN = "dry-run"

    @property
    def allows_add(self) -> bool:
        return self is not SyncMode.DRY_RUN

    @property
    def allows_remove(self) -> bool:
        return self is SyncMode.FULL


class ExportStatus(Enum):
    """Lifecycle of an IMDb export job."""
    REQUESTED = "requested"
    PROCESSING = "processing"
    READY = "ready"
    FAILED = "failed"


def kind_from_imdb(title_type: str) -> ItemKind:
    """Map an IMDb title type to an item kind."""
    return IMDB_TITLE_TYPES.get((title_type or "").strip(), ItemKind.MOVIE)


def format_timestamp(value: datetime) -> str:
    """Render a timestamp the way the Trakt API expects it."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.000Z")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a Trakt timestamp, returning None for empty values."""
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def slugify_list_name(name: str) -> str:
    """Derive the Trakt slug Trakt itself assigns to a list called ``name``.

    Whitespace runs become hyphens, anything outside ``[-_a-z0-9]`` is
    dropped and adjacent hyphens collapse into one.
    """
    slug = "-".join(name.lower().split())
    slug = re.sub(r"[^-_a-z0-9]+", "", slug)
    return re.sub(r"-{2,}", "-", slug)


@dataclass(frozen=True)
class Item:
    """A trackable item, identified by its IMDb id and tagged with its kind.

    On the Trakt wire the kind selects which sub-object (``movie``, ``show``,
    ``episode``...) carries the ids, so conversion always dispatches on
    ``kind`` rather than carrying one optional field per kind.
    """
    id: str
    kind: ItemKind
    rating: Optional[int] = None
    rated_at: Optional[datetime] = None
    watched_at: Optional[datetime] = None

    def to_spec(self, watched: bool = False) -> dict:
        """Build the per-kind Trakt object for this item.

        Args:
            watched: Include ``watched_at``, falling back to the rating time

        Returns:
            Dictionary suitable for a grouped request body
        """
        spec = {"ids": {"imdb": self.id}}
        if self.rating is not None:
            spec["rating"] = self.rating
            if self.rated_at is not None:
                spec["rated_at"] = format_timestamp(self.rated_at)
        if watched:
            stamp = self.watched_at or self.rated_at
            if stamp is not None:
                spec["watched_at"] = format_timestamp(stamp)
        return spec

    @classmethod
    def from_trakt(cls, payload: dict) -> Optional["Item"]:
        """Build an item from a Trakt list, ratings or history entry.

        Args:
            payload: Wire item with a ``type`` tag and a matching sub-object

        Returns:
            Item, or None when the entry has no IMDb id to match on

        Raises:
            ValueError: If the type tag is not a known kind
        """
        type_tag = payload.get("type")
        try:
            kind = ItemKind(type_tag)
        except ValueError:
            raise ValueError(f"Unknown Trakt item type: {type_tag!r}")

        detail = payload.get(kind.value) or {}
        imdb_id = (detail.get("ids") or {}).get("imdb")
        if not imdb_id:
            return None

        return cls(
            id=imdb_id,
            kind=kind,
            rating=payload.get("rating"),
            rated_at=parse_timestamp(payload.get("rated_at")),
            watched_at=parse_timestamp(payload.get("watched_at")),
        )


def group_by_kind(items: Iterable[Item], watched: bool = False) -> dict:
    """Group items into the ``{movies: [...], shows: [...]}`` request shape."""
    body: dict[str, list[dict]] = {}
    for item in items:
        body.setdefault(item.kind.group, []).append(item.to_spec(watched=watched))
    return body


@dataclass
class ItemList:
    """A named list of items.

    On the IMDb side ``list_id`` is the ``ls...`` id; on the Trakt side it is
    the list slug. The watchlist is a singleton that has no slug of its own.
    """
    list_id: str
    name: str
    items: list[Item] = field(default_factory=list)
    is_watchlist: bool = False

    @property
    def slug(self) -> Optional[str]:
        if self.is_watchlist:
            return None
        return slugify_list_name(self.name)


@dataclass(frozen=True)
class Snapshot:
    """Source and destination contents of one logical list, read in one run."""
    name: str
    source: tuple[Item, ...]
    destination: tuple[Item, ...]


@dataclass
class Diff:
    """Trakt-side changes needed to converge onto the IMDb side."""
    add: list[Item] = field(default_factory=list)
    remove: list[Item] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.add or self.remove)


@dataclass
class ExportJob:
    """An IMDb export row found on the exports page."""
    resource_id: str
    status: ExportStatus
    name: Optional[str] = None
    download_url: Optional[str] = None


@dataclass
class ListResult:
    """Outcome of syncing one list."""
    name: str
    slug: Optional[str]
    is_watchlist: bool = False
    added: int = 0
    removed: int = 0
    created: bool = False
    deleted: bool = False


@dataclass
class SyncSummary:
    """Summary of an entire sync run."""
    mode: SyncMode = SyncMode.FULL
    lists: list[ListResult] = field(default_factory=list)
    ratings_added: int = 0
    ratings_removed: int = 0
    history_added: int = 0
    history_removed: int = 0

    @property
    def items_added(self) -> int:
        return sum(result.added for result in self.lists)

    @property
    def items_removed(self) -> int:
        return sum(result.removed for result in self.lists)
