import json

import pytest

from fgstore.services.request_items import (
    NO_ITEMS_MESSAGE,
    compute_total_quantity,
    normalize_request_items,
    to_quantity,
)


def test_string_quantity_is_counted():
    canonical = normalize_request_items(items={"p1": {"name": "Tea", "qty": "10"}})

    assert canonical.items == {"p1": {"name": "Tea", "qty": 10}}
    assert canonical.total_quantity == 10
    assert canonical.source == "items"


def test_equivalent_shapes_normalize_to_same_mapping():
    as_object = normalize_request_items(items={"Tea": {"name": "Tea", "qty": 5}})
    as_json = normalize_request_items(items=json.dumps({"Tea": {"name": "Tea", "qty": 5}}))
    as_quantity_key = normalize_request_items(items={"Tea": {"name": "Tea", "quantity": 5}})
    as_legacy_pair = normalize_request_items(product="Tea", quantity="5")
    as_products = normalize_request_items(products=json.dumps({"Tea": {"name": "Tea", "qty": 5}}))

    for canonical in (as_json, as_quantity_key, as_legacy_pair, as_products):
        assert canonical.items == as_object.items
        assert canonical.total_quantity == as_object.total_quantity == 5

    assert as_json.source == "items_json"
    assert as_legacy_pair.source == "product_quantity"
    assert as_products.source == "products"


def test_bare_number_items_use_id_as_name():
    canonical = normalize_request_items(items={"Honey": 3, "Jam": 2.5})

    assert canonical.items["Honey"] == {"name": "Honey", "qty": 3}
    assert canonical.total_quantity == 5.5


def test_unparseable_items_fall_back_to_products():
    canonical = normalize_request_items(items="{not json", products={"Tea": {"name": "Tea", "qty": 1}})

    assert canonical.items == {"Tea": {"name": "Tea", "qty": 1}}


def test_legacy_pair_needs_both_fields():
    with pytest.raises(ValueError, match=NO_ITEMS_MESSAGE):
        normalize_request_items(product="Tea", quantity=None)


@pytest.mark.parametrize(
    "kwargs",
    [
        {},
        {"items": {}},
        {"items": "{broken"},
        {"products": "not json at all"},
        {"products": 42},
    ],
)
def test_no_items_raise_descriptive_error(kwargs):
    with pytest.raises(ValueError) as exc_info:
        normalize_request_items(**kwargs)

    assert str(exc_info.value) == "Cannot approve request: No items found in request"


def test_non_numeric_and_non_finite_quantities_count_as_zero():
    assert to_quantity("abc") == 0
    assert to_quantity(float("nan")) == 0
    assert to_quantity("inf") == 0
    assert compute_total_quantity({"a": {"qty": "x"}, "b": {"qty": 4}, "c": {"name": "no qty"}}) == 4.0
    assert compute_total_quantity(None) == 0.0
