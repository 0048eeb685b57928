from rfm_insights.customer_segmentation import ColumnMap, ColumnMapper, ColumnMappingFailed
from rfm_insights.customer_segmentation.column_mapping import (
    MAPPING_FAILED_MESSAGE,
    normalize_header,
)


def test_detects_all_roles_including_location():
    result = ColumnMapper().detect(["Order Date", "Customer ID", "Total Amount", "Region"])

    assert isinstance(result, ColumnMap)
    assert result.date == "Order Date"
    assert result.customer_id == "Customer ID"
    assert result.amount == "Total Amount"
    assert result.location.name == "Region"
    assert result.location.type == "region"
    assert result.to_dict() == {
        "customerId": "Customer ID",
        "date": "Order Date",
        "amount": "Total Amount",
        "location": {"name": "Region", "type": "region"},
    }


def test_location_is_optional():
    result = ColumnMapper().detect(["customer_id", "date", "amount"])

    assert isinstance(result, ColumnMap)
    assert result.location is None
    assert "location" not in result.to_dict()


def test_first_variant_in_declaration_order_wins():
    mapper = ColumnMapper()

    # 'sales' is declared before 'total' and 'revenue' before 'price'
    assert mapper.detect(["Customer", "Date", "Total", "Sales"]).amount == "Sales"
    assert mapper.detect(["Customer", "Date", "Price", "Revenue"]).amount == "Revenue"
    # 'order date' is declared before 'date'
    assert mapper.detect(["Date", "Order Date", "Customer", "Sales"]).date == "Order Date"
    # 'customer id' is declared before 'customer'
    assert mapper.detect(["Customer", "Customer ID", "Date", "Sales"]).customer_id == "Customer ID"


def test_headers_are_matched_case_and_whitespace_insensitively():
    result = ColumnMapper().detect(["  CUSTOMER ID ", "InvoiceDate", "AMOUNT"])

    assert result.customer_id == "  CUSTOMER ID "
    assert result.date == "InvoiceDate"
    assert result.amount == "AMOUNT"


def test_leading_byte_order_mark_is_ignored_for_matching():
    result = ColumnMapper().detect(["\ufeffCustomer ID", "Date", "Sales"])

    assert isinstance(result, ColumnMap)
    assert result.customer_id == "\ufeffCustomer ID"


def test_location_label_is_capitalised_type():
    result = ColumnMapper().detect(["Customer ID", "Date", "Sales", "store name"])

    assert result.location.type == "store name"
    assert result.location.label == "Store name"


def test_missing_required_column_returns_structured_failure():
    result = ColumnMapper().detect(["Customer ID", "Order Date", "Region"])

    assert isinstance(result, ColumnMappingFailed)
    assert result.reason == MAPPING_FAILED_MESSAGE
    assert result.missing == ("amount",)


def test_no_headers_fails_for_every_required_role():
    result = ColumnMapper().detect([])

    assert isinstance(result, ColumnMappingFailed)
    assert result.missing == ("customer_id", "date", "amount")


def test_normalize_header():
    assert normalize_header("\ufeff Total Amount ") == "total amount"
