"""Shared fixtures for itsync tests."""

from datetime import datetime, timezone

import pytest

from itsync.api.retry import PollPolicy, RetryPolicy
from itsync.models import Item, ItemKind


class SleepRecorder:
    """Stand-in for time.sleep that remembers every requested delay."""

    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def sleeps():
    return SleepRecorder()


@pytest.fixture
def retry_policy(sleeps):
    return RetryPolicy(max_attempts=5, default_wait=1.0, sleep=sleeps)


@pytest.fixture
def poll_policy(sleeps):
    return PollPolicy(max_attempts=3, interval=0.0, sleep=sleeps)


def movie(imdb_id, rating=None, rated_at=None):
    return Item(id=imdb_id, kind=ItemKind.MOVIE, rating=rating, rated_at=rated_at)


def show(imdb_id, rating=None, rated_at=None):
    return Item(id=imdb_id, kind=ItemKind.SHOW, rating=rating, rated_at=rated_at)


def rated_on(day):
    return datetime(2024, 1, day, tzinfo=timezone.utc)
