import pytest

from composite_id import CompositeKeyBuilder, build, display_value, load_builder, parse_options
from errors import InvalidFieldValueError


def make_config(**options):
    base = {"compositeIdField": "compositeId", "prefixFields": "entityType", "postfixField": "id"}
    base.update(options)
    return parse_options(base)


def test_single_prefix_key():
    result = build({"entityType": "Person", "id": "42"}, make_config())
    assert result.key == "Person!42"
    assert result.composite_id_field == "compositeId"
    assert result.is_passthrough is False


def test_prefix_fields_concatenated_in_sorted_order():
    config = make_config(prefixFields="region,entityType")
    assert config.prefix_fields == ("entityType", "region")

    result = build({"entityType": "Person", "region": "EU", "id": "7"}, config)
    assert result.key == "PersonEU!7"


def test_input_order_of_prefix_fields_does_not_matter():
    doc = {"a": "1", "b": "2", "c": "3", "id": "x"}
    k1 = build(doc, make_config(prefixFields="c,a,b")).key
    k2 = build(doc, make_config(prefixFields="b, c ,a")).key
    assert k1 == k2 == "123!x"


def test_prefix_values_are_not_trimmed_or_delimited():
    result = build({"entityType": " Person ", "id": "42"}, make_config())
    assert result.key == " Person !42"


def test_build_is_idempotent():
    config = make_config(prefixFields="region,entityType")
    doc = {"entityType": "Person", "region": "EU", "id": "7"}
    assert build(doc, config) == build(doc, config)


def test_build_does_not_mutate_document():
    doc = {"entityType": "Person", "id": "42"}
    build(doc, make_config())
    assert doc == {"entityType": "Person", "id": "42"}


@pytest.mark.parametrize("overwrite", [True, False])
def test_overwrite_follows_config(overwrite):
    result = build({"entityType": "Person", "id": "1"}, make_config(overwriteDupes=overwrite))
    assert result.overwrite is overwrite


@pytest.mark.parametrize("value", ["", "   ", None, "null", []])
def test_invalid_prefix_value_names_field(value):
    config = make_config(prefixFields="region,entityType")
    doc = {"entityType": "Person", "region": value, "id": "7"}
    with pytest.raises(InvalidFieldValueError) as excinfo:
        build(doc, config)
    assert excinfo.value.field_names == ("region",)
    assert "region" in str(excinfo.value)


def test_missing_prefix_field_rejected():
    with pytest.raises(InvalidFieldValueError) as excinfo:
        build({"id": "7"}, make_config())
    assert excinfo.value.field_names == ("entityType",)


@pytest.mark.parametrize("value", ["", " ", None, "null"])
def test_invalid_postfix_value_rejected(value):
    with pytest.raises(InvalidFieldValueError) as excinfo:
        build({"entityType": "Person", "id": value}, make_config())
    assert excinfo.value.field_names == ("id",)


def test_empty_prefix_list_names_both_fields():
    config = make_config(prefixFields=" , ")
    with pytest.raises(InvalidFieldValueError) as excinfo:
        build({"id": "7"}, config)
    assert excinfo.value.field_names == ("id",)
    assert "prefixFields" in str(excinfo.value)


def test_disabled_builder_passes_through_without_validation():
    config = make_config(enabled=False)
    result = build({"entityType": "", "id": None}, config)
    assert result.is_passthrough
    assert result.key is None
    assert result.overwrite is False


def test_scalar_values_use_display_strings():
    config = make_config(prefixFields="entityType,region")
    doc = {"entityType": True, "region": 12, "id": 3.5}
    assert build(doc, config).key == "true12!3.5"


def test_multi_valued_field_uses_first_value():
    result = build({"entityType": ["Person", "Agent"], "id": "1"}, make_config())
    assert result.key == "Person!1"


def test_display_value():
    assert display_value(None) == "null"
    assert display_value(False) == "false"
    assert display_value(("a", "b")) == "a"
    assert display_value(()) == "null"
    assert display_value(0) == "0"


def test_separator_in_values_is_not_escaped():
    result = build({"entityType": "a!b", "id": "c!d"}, make_config())
    assert result.key == "a!b!c!d"


def test_builder_wraps_config(simple_catalog):
    builder = load_builder(
        {"compositeIdField": "compositeId", "prefixFields": "region,entityType", "postfixField": "id"},
        simple_catalog,
    )
    assert isinstance(builder, CompositeKeyBuilder)
    assert builder.enabled is True
    assert builder.build({"entityType": "Person", "region": "EU", "id": "7"}).key == "PersonEU!7"
    assert "prefixFields=['entityType', 'region']" in repr(builder)
