import base64
import binascii
from datetime import date, datetime

import pytest

from finance_manager.exceptions import ValidationError
from finance_manager.models import (
    EXPENSE_CATEGORIES,
    MAX_RECEIPT_BYTES,
    decode_receipt,
    parse_amount,
    validate_amount,
    validate_category,
    validate_date,
    validate_expense_date,
    validate_receipt,
    validate_renewal_day,
    validate_salary,
)


@pytest.mark.parametrize("raw, expected", [("12.50", 12.5), (" 1,000 ", 1000.0), (7, 7.0), (0.01, 0.01)])
def test_validate_amount_accepts(raw, expected):
    assert validate_amount(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "abc", 0, -5, "nan", "inf", True])
def test_validate_amount_rejects(raw):
    with pytest.raises(ValidationError) as excinfo:
        validate_amount(raw)
    assert excinfo.value.field == "amount"


def test_validation_error_is_a_value_error():
    with pytest.raises(ValueError):
        parse_amount("twelve")


def test_salary_may_be_zero():
    assert validate_salary("0") == 0.0
    with pytest.raises(ValidationError):
        validate_salary(-1)


@pytest.mark.parametrize("raw, expected", [(1, 1), ("31", 31), (15.0, 15)])
def test_renewal_day_accepts(raw, expected):
    assert validate_renewal_day(raw) == expected


@pytest.mark.parametrize("raw", [0, 32, "x", 1.5, None, False])
def test_renewal_day_rejects(raw):
    with pytest.raises(ValidationError):
        validate_renewal_day(raw)


def test_categories():
    assert len(EXPENSE_CATEGORIES) == 9
    assert validate_category("Healthcare") == "Healthcare"
    with pytest.raises(ValidationError):
        validate_category("all")


def test_validate_date():
    assert validate_date("2024-02-29") == date(2024, 2, 29)
    assert validate_date(datetime(2024, 2, 29, 18, 0)) == date(2024, 2, 29)
    with pytest.raises(ValidationError):
        validate_date("2023-02-29")


def test_past_months_are_locked():
    today = date(2024, 3, 1)
    assert validate_expense_date("2024-03-01", today) == date(2024, 3, 1)
    assert validate_expense_date("2024-04-15", today) == date(2024, 4, 15)
    with pytest.raises(ValidationError, match="locked"):
        validate_expense_date("2024-02-29", today)
    with pytest.raises(ValidationError):
        validate_expense_date("2023-12-31", date(2024, 1, 2))


def test_receipt_size_limit():
    assert validate_receipt(None) is None
    small = base64.b64encode(b"x" * 100).decode()
    assert validate_receipt(small) == small
    exact = "data:image/jpeg;base64," + base64.b64encode(b"x" * MAX_RECEIPT_BYTES).decode()
    assert validate_receipt(exact) == exact
    with pytest.raises(ValidationError):
        validate_receipt("data:image/png;base64,not base64!")


def test_decode_receipt():
    encoded = base64.b64encode(b"%PDF-1.4").decode()
    assert decode_receipt("data:application/pdf;base64," + encoded) == ("application/pdf", b"%PDF-1.4")
    assert decode_receipt(encoded) == ("", b"%PDF-1.4")
    with pytest.raises(binascii.Error):
        decode_receipt("data:image/png;base64,@@@@")
