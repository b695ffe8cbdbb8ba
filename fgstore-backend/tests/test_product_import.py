from decimal import Decimal

from conftest import auth_headers, seed_user
from fgstore.services.product_import_service import IMPORT_CHANGE_REASON, validate_row

LOCATIONS = ["FG-A1", "FG-A2", "FG-B1", "FG-B2"]


def _bulk_row(**overrides):
    row = {
        "Product Type": "bulk",
        "Product Name": "Honey Syrup",
        "Product ID": "HONEY001",
        "Batch Number": "B1",
        "Quantity": "100",
        "Unit": "L",
        "Expiry Date (YYYY-MM-DD)": "2027-12-31",
        "Location": "FG-A2",
        "Price": "500",
    }
    row.update(overrides)
    return row


def _units_row(**overrides):
    row = {
        "productType": "units",
        "productName": "Herbal Tea",
        "productId": "TEA001",
        "batchNumber": "T1",
        "variantName": "500g",
        "variantSize": "500",
        "variantUnit": "g",
        "unitsInStock": 24,
        "price": 250,
        "currency": "gbp",
    }
    row.update(overrides)
    return row


def test_valid_bulk_row_has_no_errors():
    result = validate_row(_bulk_row(), 2, LOCATIONS)

    assert result.is_valid
    assert result.warnings == []
    assert result.values["quantity"] == 100.0
    assert result.values["location"] == "FG-A2"
    assert result.values["quality_grade"] == "A"
    assert result.values["currency"] == "LKR"
    assert result.values["price_type"] == "retail"


def test_camel_case_keys_are_accepted_and_nonstandard_values_warn():
    result = validate_row(_units_row(priceType="bogus", location="FG-Z9"), 3, LOCATIONS)

    assert result.is_valid
    assert result.values["units_in_stock"] == 24
    assert result.values["currency"] == "LKR"
    assert result.values["price_type"] == "retail"
    assert result.values["location"] == "FG-A1"
    assert 'Currency "GBP" not standard. Using LKR' in result.warnings
    assert 'Price Type "bogus" not standard. Using retail' in result.warnings
    assert 'Location "FG-Z9" not found. Using default: FG-A1' in result.warnings


def test_row_errors_are_collected_together():
    result = validate_row(
        {"Product Type": "pallet", "Product ID": "X1", "Quality Grade": "Z", "Expiry Date (YYYY-MM-DD)": "31/12/2027"},
        4,
        LOCATIONS,
    )

    assert not result.is_valid
    assert result.errors == [
        'Product Type must be "bulk" or "units"',
        "Product Name is required",
        "Batch Number is required",
        "Quality Grade must be A, B, C, or D",
        "Expiry Date must be in YYYY-MM-DD format",
        "Price must be a positive number",
    ]


def test_type_specific_checks():
    bulk = validate_row(_bulk_row(Quantity="abc", **{"Variant Name": "500g"}), 2, LOCATIONS)
    assert "Quantity must be greater than 0 for bulk products" in bulk.errors
    assert "Variant Name should be empty for bulk products" in bulk.warnings

    units = validate_row(_units_row(variantName="", unitsInStock="0", quantity="5"), 2, LOCATIONS)
    assert "Variant Name is required for packaged products" in units.errors
    assert "Units in Stock must be greater than 0 for packaged products" in units.errors
    assert "Quantity should be empty for packaged products" in units.warnings

    bad_date = validate_row(_bulk_row(**{"Expiry Date (YYYY-MM-DD)": "2027-02-30"}), 2, LOCATIONS)
    assert bad_date.errors == ["Expiry Date is not a valid date"]


def test_validate_endpoint_numbers_rows_from_two(test_context):
    client, session_local = test_context
    store = seed_user(session_local, email="store@example.com", role="FinishedGoodsStoreManager")

    res = client.post(
        "/imports/products/validate",
        json={"rows": [_bulk_row(), {"Product Type": "bulk"}, _units_row()]},
        headers=auth_headers(store),
    )
    assert res.status_code == 200, res.text
    body = res.json()
    assert [row["row_number"] for row in body["rows"]] == [2, 3, 4]
    assert body["total_rows"] == 3
    assert body["valid_rows"] == 2
    assert body["invalid_rows"] == 1

    # Validation never writes.
    assert client.get("/inventory/bulk", headers=auth_headers(store)).json()["items"] == []


def test_import_writes_inventory_and_prices_and_reports_failed_rows(test_context):
    client, session_local = test_context
    store = seed_user(session_local, email="store@example.com", role="FinishedGoodsStoreManager")

    res = client.post(
        "/imports/products",
        json={
            "rows": [
                _bulk_row(),
                _units_row(),
                {"Product Type": "pallet"},
                _bulk_row(**{"Product ID": "HONEY002", "Batch Number": "B2", "Quantity": "0.0001"}),
            ]
        },
        headers=auth_headers(store),
    )
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["success_count"] == 2
    assert body["error_count"] == 1
    assert body["errors"] == ["Row 5: Quantity must be greater than 0 for bulk products"]
    assert body["validation"]["invalid_rows"] == 1

    bulk = client.get("/inventory/bulk", headers=auth_headers(store)).json()["items"]
    assert [(item["product_id"], item["location"]) for item in bulk] == [("HONEY001", "FG-A2")]
    assert Decimal(bulk[0]["quantity"]) == Decimal("100")

    packaged = client.get("/inventory/packaged", headers=auth_headers(store)).json()["items"]
    assert [(item["variant_name"], item["units_in_stock"]) for item in packaged] == [("500g", 24)]

    bulk_price = client.get("/pricing/HONEY001", headers=auth_headers(store)).json()
    assert bulk_price["price"] == "500.00"
    assert bulk_price["change_reason"] == IMPORT_CHANGE_REASON

    variant_price = client.get("/pricing/TEA001_500g", headers=auth_headers(store)).json()
    assert variant_price["price"] == "250.00"
    assert variant_price["currency"] == "LKR"
    assert variant_price["product_name"] == "Herbal Tea"

    assert client.get("/pricing/HONEY002", headers=auth_headers(store)).status_code == 404


def test_import_requires_import_permission(test_context):
    client, session_local = test_context
    head = seed_user(session_local, email="head@example.com", role="HeadOfOperations")

    res = client.post("/imports/products", json={"rows": [_bulk_row()]}, headers=auth_headers(head))
    assert res.status_code == 403
