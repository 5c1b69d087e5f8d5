"""Concurrent fan-out of independent read operations."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Generic, Iterable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ResourceNotFound(Exception):
    """Marker base for errors meaning a single resource does not exist.

    The fan-out treats these as a normal per-resource outcome rather than a
    failure of the whole fetch.
    """

    def __init__(self, resource_id: str, message: str = None):
        self.resource_id = resource_id
        super().__init__(message or f"Resource not found: {resource_id}")


@dataclass
class FetchResult(Generic[T]):
    """Results of a fan-out, split into successes and missing resources."""
    results: list[T] = field(default_factory=list)
    not_found: list[ResourceNotFound] = field(default_factory=list)

    @property
    def missing_ids(self) -> list[str]:
        return [error.resource_id for error in self.not_found]


def fetch_all(ids: Iterable[str], fetch: Callable[[str], T]) -> FetchResult[T]:
    """Run ``fetch`` for every id concurrently.

    One worker is started per id; there is no explicit concurrency cap.
    Every future is allowed to settle before returning, even once a fatal
    error has been seen.

    Args:
        ids: Resource identifiers to fetch
        fetch: Blocking function fetching a single resource

    Returns:
        FetchResult holding the successful results in completion order

    Raises:
        Exception: The first fatal error raised by any fetch
    """
    ids = list(dict.fromkeys(ids))
    outcome: FetchResult[T] = FetchResult()
    if not ids:
        return outcome

    first_error = None
    with ThreadPoolExecutor(max_workers=len(ids)) as executor:
        futures = {executor.submit(fetch, resource_id): resource_id for resource_id in ids}
        for future in as_completed(futures):
            resource_id = futures[future]
            try:
                outcome.results.append(future.result())
            except ResourceNotFound as e:
                logger.warning(f"Skipping {resource_id}: {e}")
                outcome.not_found.append(e)
            except Exception as e:
                logger.error(f"Failed to fetch {resource_id}: {e}")
                if first_error is None:
                    first_error = e

    if first_error is not None:
        raise first_error

    return outcome
