import pytest

from ids import SHARD_KEY_SEPARATOR, make_composite_id, split_composite_id


def test_separator_is_exclamation_mark():
    assert SHARD_KEY_SEPARATOR == "!"


def test_make_composite_id():
    assert make_composite_id("PersonEU", "7") == "PersonEU!7"


def test_split_on_first_separator():
    assert split_composite_id("Person!42") == ("Person", "42")
    assert split_composite_id("Person!a!b") == ("Person", "a!b")


def test_split_without_separator():
    with pytest.raises(ValueError):
        split_composite_id("Person42")
