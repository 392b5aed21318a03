from datetime import date

import pytest

from bookkeeper.book import BookState, InvalidInputError
from bookkeeper.validators import TextValidator, date_parser, parse_index, parse_state, parse_update_field


@pytest.mark.parametrize("raw, expected", [("1", 1), (" 12 ", 12), ("0", 0), ("-3", -3), ("007", 7)])
def test_parse_index_accepts_plain_integers(raw, expected):
    assert parse_index(raw) == expected


@pytest.mark.parametrize("raw", ["", "abc", "+2", "1_0", "1.0", "1e2", "٣", "- 1"])
def test_parse_index_rejects_everything_else(raw):
    with pytest.raises(InvalidInputError, match="is not a valid book number"):
        parse_index(raw)


def test_text_fields_are_stripped_and_required():
    assert TextValidator.parse_title("  Dune ") == "Dune"
    with pytest.raises(InvalidInputError, match="Author cannot be empty"):
        TextValidator.parse_author("   ")


def test_text_fields_reject_surrogates():
    with pytest.raises(InvalidInputError, match="not valid text"):
        TextValidator.parse_title("Caf\udce9")


def test_update_field_by_number_or_name():
    assert parse_update_field("3") == "date_start"
    assert parse_update_field("End Date") == "date_end"
    assert parse_update_field("state") == "state"
    with pytest.raises(InvalidInputError):
        parse_update_field("6")


def test_state_parser_strips_but_keeps_case():
    assert parse_state(" finished ") is BookState.FINISHED
    with pytest.raises(InvalidInputError):
        parse_state("Finished")


def test_date_parser_without_empty_answers():
    parse = date_parser("%d-%m-%Y", "???", allow_empty=False, today=date(2024, 1, 1))
    with pytest.raises(InvalidInputError, match="Please enter a date"):
        parse("")
    assert parse("???") is None
    assert parse(" 02-03-2024 ") == date(2024, 3, 2)
