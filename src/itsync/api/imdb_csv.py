"""Parsing of IMDb export CSV files."""

import csv
import io
import logging
from datetime import datetime, timezone
from typing import Union

from ..models import Item, ItemKind, kind_from_imdb
from .imdb_errors import ImdbParseError

logger = logging.getLogger(__name__)

TITLES_HEADER = [
    "Position",
    "Const",
    "Created",
    "Modified",
    "Description",
    "Title",
    "Original Title",
    "URL",
    "Title Type",
    "IMDb Rating",
    "Runtime (mins)",
    "Year",
    "Genres",
    "Num Votes",
    "Release Date",
    "Directors",
    "Your Rating",
    "Date Rated",
]

RATINGS_HEADER = [
    "Const",
    "Your Rating",
    "Date Rated",
    "Title",
    "Original Title",
    "URL",
    "Title Type",
    "IMDb Rating",
    "Runtime (mins)",
    "Year",
    "Genres",
    "Num Votes",
    "Release Date",
    "Directors",
]

PEOPLE_HEADER = [
    "Position",
    "Const",
    "Created",
    "Modified",
    "Description",
    "Name",
    "Known For",
    "Birth Date",
]


def _parse_date(value: str, line: int) -> datetime:
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").replace(tzinfo=timezone.utc)
    except ValueError as e:
        raise ImdbParseError(f"Invalid date {value!r} on line {line}") from e


def _field(record: list, index: int, line: int) -> str:
    if index >= len(record):
        raise ImdbParseError(f"Line {line} has {len(record)} columns, expected at least {index + 1}")
    return record[index]


def _parse_titles(records) -> list[Item]:
    items = []
    for line, record in records:
        _parse_date(_field(record, 2, line), line)
        items.append(Item(id=_field(record, 1, line), kind=kind_from_imdb(_field(record, 8, line))))
    return items


def _parse_ratings(records) -> list[Item]:
    items = []
    for line, record in records:
        raw_rating = _field(record, 1, line)
        try:
            rating = int(raw_rating)
        except ValueError as e:
            raise ImdbParseError(f"Invalid rating {raw_rating!r} on line {line}") from e
        items.append(
            Item(
                id=_field(record, 0, line),
                kind=kind_from_imdb(_field(record, 6, line)),
                rating=rating,
                rated_at=_parse_date(_field(record, 2, line), line),
            )
        )
    return items


def _parse_people(records) -> list[Item]:
    items = []
    for line, record in records:
        _parse_date(_field(record, 2, line), line)
        items.append(Item(id=_field(record, 1, line), kind=ItemKind.PERSON))
    return items


def parse_export(data: Union[bytes, str]) -> list[Item]:
    """Parse an IMDb export into items.

    The header row decides the file shape: a title list (watchlist or user
    list), a ratings export, or a people list.

    Args:
        data: Raw CSV content

    Returns:
        Items in file order

    Raises:
        ImdbParseError: If the header is unknown or a row is malformed
    """
    if isinstance(data, bytes):
        data = data.decode("utf-8-sig")
    elif data.startswith("\ufeff"):
        data = data[1:]

    try:
        rows = list(csv.reader(io.StringIO(data)))
    except csv.Error as e:
        raise ImdbParseError(f"Failed to read CSV: {e}") from e

    if not rows:
        raise ImdbParseError("Export is empty, expected at least a header row")

    header = [column.strip() for column in rows[0]]
    records = [(line, row) for line, row in enumerate(rows[1:], start=2) if any(row)]

    if header == TITLES_HEADER:
        items = _parse_titles(records)
    elif header == RATINGS_HEADER:
        items = _parse_ratings(records)
    elif header == PEOPLE_HEADER:
        items = _parse_people(records)
    else:
        raise ImdbParseError(f"Unrecognized export with header {header}")

    logger.debug(f"Parsed {len(items)} items from export")
    return items
