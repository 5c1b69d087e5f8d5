"""Diff computation between an IMDb snapshot and a Trakt snapshot."""

import logging
from typing import Iterable

from .models import Diff, Item, Snapshot

logger = logging.getLogger(__name__)


def _index(items: Iterable[Item]) -> dict[str, Item]:
    return {item.id: item for item in items if item.id}


def reconcile(source: Iterable[Item], destination: Iterable[Item]) -> Diff:
    """Compute the Trakt-side changes that make ``destination`` match ``source``.

    Items are matched on IMDb id only. A source item whose rating differs from
    its Trakt counterpart is re-added, since Trakt treats adding an already
    present rated item as an update.

    Args:
        source: Items as they are on IMDb
        destination: Items as they are on Trakt

    Returns:
        Diff with the items to add and to remove
    """
    source = list(source)
    destination = list(destination)

    diff = Diff()

    destination_index = _index(destination)
    for item in source:
        current = destination_index.get(item.id)
        if current is None or current.rating != item.rating:
            diff.add.append(item)

    source_index = _index(source)
    for item in destination:
        if not item.id:
            continue
        if item.id not in source_index:
            diff.remove.append(item)

    return diff


def reconcile_snapshot(snapshot: Snapshot) -> Diff:
    """Reconcile both halves of a snapshot."""
    diff = reconcile(snapshot.source, snapshot.destination)
    logger.debug(f"Reconciled {snapshot.name}: {len(diff.add)} to add, {len(diff.remove)} to remove")
    return diff
