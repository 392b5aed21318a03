from datetime import date

import pytest

from bookkeeper.book import (
    BookEntry,
    BookState,
    InvalidDateFormatError,
    InvalidInputError,
    InvalidStateError,
    parse_date_input,
    validate_state,
)

TODAY = date(2024, 3, 15)


def test_validate_state_accepts_every_member():
    for state in ("reading", "finished", "dropped", "suspended", "re-reading"):
        assert validate_state(state).value == state


@pytest.mark.parametrize("raw", ["rdng", "Reading", "READING", " reading", ""])
def test_validate_state_rejects_unknown_or_wrong_case(raw):
    with pytest.raises(InvalidStateError, match="is not a valid book state"):
        validate_state(raw)


def test_invalid_state_is_recoverable_input_error():
    assert issubclass(InvalidStateError, InvalidInputError)
    assert issubclass(InvalidInputError, ValueError)


def test_sentinel_means_unspecified():
    assert parse_date_input("???") is None
    assert parse_date_input("???x") is None
    assert parse_date_input("??? 12-12-2012") is None


def test_empty_input_means_today():
    assert parse_date_input("", today=TODAY) == TODAY
    assert parse_date_input("") == date.today()


def test_strict_day_month_year():
    assert parse_date_input("05-11-2021") == date(2021, 11, 5)
    assert parse_date_input("29-02-2020") == date(2020, 2, 29)


@pytest.mark.parametrize("raw", ["31-02-2020", "2020-02-01", "1-2-2020", "01-13-2020", "yesterday", "??", "01-01-20"])
def test_bad_dates_are_reported(raw):
    with pytest.raises(InvalidDateFormatError, match="Couldn't parse the date"):
        parse_date_input(raw, today=TODAY)


def test_custom_format_and_token():
    assert parse_date_input("2021/11/05", date_format="%Y/%m/%d") == date(2021, 11, 5)
    assert parse_date_input("-", unset_token="-") is None


def test_entry_strips_text_and_coerces_state():
    book = BookEntry(title="  Dune ", author=" Herbert", state="finished")
    assert book.title == "Dune"
    assert book.author == "Herbert"
    assert book.state is BookState.FINISHED


def test_entry_rejects_invalid_state():
    with pytest.raises(InvalidStateError):
        BookEntry(title="Dune", author="Herbert", state="rdng")


def test_json_round_trip_keeps_unset_dates():
    book = BookEntry("Dune", "Herbert", date(2020, 1, 31), None, BookState.READING, id=7)
    data = book.to_dict()
    assert data == {
        "id": 7,
        "title": "Dune",
        "author": "Herbert",
        "date_start": "2020-01-31",
        "date_end": None,
        "state": "reading",
    }
    assert BookEntry.from_json(book.to_json()) == book


@pytest.mark.parametrize("raw", [b"not json", b"[]", b'{"title": "x"}', b'{"id": 1, "title": "x", "author": "y", "state": "nope"}'])
def test_from_json_rejects_malformed_payloads(raw):
    with pytest.raises((ValueError, KeyError)):
        BookEntry.from_json(raw)
