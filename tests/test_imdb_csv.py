from datetime import datetime, timezone

import pytest

from itsync.api.imdb_csv import PEOPLE_HEADER, RATINGS_HEADER, TITLES_HEADER, parse_export
from itsync.api.imdb_errors import ImdbParseError
from itsync.models import ItemKind


def _csv(header, *rows):
    lines = [",".join(header)] + [",".join(row) for row in rows]
    return "\n".join(lines) + "\n"


def _title_row(const, title_type, created="2024-01-02"):
    row = [""] * len(TITLES_HEADER)
    row[0] = "1"
    row[1] = const
    row[2] = created
    row[5] = "Some Title"
    row[8] = title_type
    return row


def _rating_row(const, rating, rated, title_type="Movie"):
    row = [""] * len(RATINGS_HEADER)
    row[0] = const
    row[1] = rating
    row[2] = rated
    row[6] = title_type
    return row


def test_titles_export():
    data = _csv(
        TITLES_HEADER,
        _title_row("tt0111161", "Movie"),
        _title_row("tt0903747", "TV Series"),
        _title_row("tt0959621", "TV Episode"),
    )

    items = parse_export(data)

    assert [(item.id, item.kind) for item in items] == [
        ("tt0111161", ItemKind.MOVIE),
        ("tt0903747", ItemKind.SHOW),
        ("tt0959621", ItemKind.EPISODE),
    ]
    assert all(item.rating is None for item in items)


def test_ratings_export():
    items = parse_export(_csv(RATINGS_HEADER, _rating_row("tt0111161", "9", "2023-12-24")))

    assert len(items) == 1
    assert items[0].rating == 9
    assert items[0].rated_at == datetime(2023, 12, 24, tzinfo=timezone.utc)


def test_people_export():
    row = ["1", "nm0000151", "2024-01-02", "2024-01-02", "", "Morgan Freeman", "", ""]
    items = parse_export(_csv(PEOPLE_HEADER, row))
    assert [(item.id, item.kind) for item in items] == [("nm0000151", ItemKind.PERSON)]


def test_byte_order_mark_and_blank_lines_are_ignored():
    data = "\ufeff" + _csv(TITLES_HEADER, _title_row("tt0111161", "Movie")) + "\n\n"

    assert [item.id for item in parse_export(data.encode("utf-8"))] == ["tt0111161"]
    assert [item.id for item in parse_export(data)] == ["tt0111161"]


def test_quoted_fields_with_commas():
    row = _title_row("tt0111161", "Movie")
    row[12] = '"Drama, Crime"'
    assert [item.id for item in parse_export(_csv(TITLES_HEADER, row))] == ["tt0111161"]


def test_header_only_export_is_empty():
    assert parse_export(_csv(TITLES_HEADER)) == []


@pytest.mark.parametrize(
    "data, message",
    [
        ("", "empty"),
        ("Foo,Bar\n1,2\n", "Unrecognized"),
        (_csv(RATINGS_HEADER, _rating_row("tt0111161", "nine", "2023-12-24")), "Invalid rating"),
        (_csv(RATINGS_HEADER, _rating_row("tt0111161", "9", "24/12/2023")), "Invalid date"),
        (_csv(TITLES_HEADER, ["1", "tt0111161"]), "columns"),
    ],
)
def test_malformed_exports(data, message):
    with pytest.raises(ImdbParseError, match=message):
        parse_export(data)
