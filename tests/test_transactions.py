"""Tests for deterministic statement row parsing."""

from __future__ import annotations

import pytest

from statement_grid.transactions import (
    coerce_transaction,
    detect_currency,
    find_dates,
    normalize_number,
    parse_date,
    parse_row,
    parse_transaction,
    route_amount,
    split_segments,
    transaction_key,
)


@pytest.mark.smoke
class TestDates:
    @pytest.mark.parametrize("text", ["Feb 17, 2025", "17/02/2025", "2025-02-17", "17.02.25"])
    def test_formats_normalize(self, text):
        match = parse_date(text)
        assert match is not None
        assert match.iso == "2025-02-17"

    def test_no_date(self):
        assert parse_date("Opening balance") is None

    def test_invalid_calendar_date_skipped(self):
        assert parse_date("31/02/2025") is None

    def test_month_names_before_numeric(self):
        match = parse_date("paid 01/03/2025 for invoice of March 5, 2025")
        assert match is not None
        assert match.iso == "2025-03-05"

    def test_find_dates_left_to_right(self):
        dates = find_dates("2025-01-02 x 03/01/2025 y Jan 4 2025")
        assert [d.iso for d in dates] == ["2025-01-02", "2025-01-03", "2025-01-04"]


@pytest.mark.smoke
class TestNumbers:
    @pytest.mark.parametrize(
        "token, value",
        [
            ("1 234,56", 1234.56),
            ("(50.00)", -50.0),
            ("$1,200", 1200.0),
            ("1.234,56", 1234.56),
            ("1,234.56", 1234.56),
            ("-12.50", -12.5),
            ("12,5", 125.0),
            ("1.234.567", 1234567.0),
        ],
    )
    def test_normalize(self, token, value):
        assert normalize_number(token) == pytest.approx(value)

    def test_not_a_number(self):
        assert normalize_number("") is None
        assert normalize_number("abc") is None

    def test_amount_routing(self):
        assert route_amount(-50.0) == (None, 50.0)
        assert route_amount(200.0) == (200.0, None)
        assert route_amount(None) == (None, None)

    @pytest.mark.parametrize(
        "text, code",
        [("100 PLN", "PLN"), ("€ 5", "EUR"), ("$5", "USD"), ("5 zł", "PLN"), ("usd", "USD"), ("5", None)],
    )
    def test_currency(self, text, code):
        assert detect_currency(text) == code


@pytest.mark.smoke
class TestParseTransaction:
    def test_full_row(self):
        tx = parse_transaction("Feb 17, 2025 Coffee shop -12.50 987.50 PLN")
        assert tx.date == "2025-02-17"
        assert tx.source_date == "Feb 17, 2025"
        assert tx.description == "Coffee shop"
        assert tx.amount == pytest.approx(-12.5)
        assert tx.debit == pytest.approx(12.5)
        assert tx.credit is None
        assert tx.balance == pytest.approx(987.5)
        assert tx.currency == "PLN"

    def test_space_grouped_amounts(self):
        tx = parse_transaction("17.02.2025 Salary 2 500,00 3 700,00")
        assert tx.amount == pytest.approx(2500.0)
        assert tx.credit == pytest.approx(2500.0)
        assert tx.balance == pytest.approx(3700.0)
        assert tx.description == "Salary"

    def test_value_date_is_not_an_amount(self):
        tx = parse_transaction("02.01.2025 03.01.2025 Card payment -45.00 955.00")
        assert tx.date == "2025-01-02"
        assert tx.description == "Card payment"
        assert tx.debit == pytest.approx(45.0)
        assert tx.balance == pytest.approx(955.0)

    def test_description_cut_at_last_number(self):
        text = "17/02/2025 Coffee -12.50 987.50"
        assert parse_transaction(text).description == "Coffee"
        tx = parse_transaction(text, cut_at_last_number=True)
        assert tx.description == "Coffee -12.50"
        assert tx.debit == pytest.approx(12.5)

    def test_partial_row_never_raises(self):
        tx = parse_transaction("just words")
        assert tx.date is None
        assert tx.amount is None
        assert tx.balance is None
        assert tx.description == "just words"

    def test_single_number_is_balance(self):
        tx = parse_transaction("Opening balance 1000.00")
        assert tx.balance == pytest.approx(1000.0)
        assert tx.amount is None


@pytest.mark.smoke
class TestParseRow:
    def test_two_dates_split_into_two_transactions(self):
        txs = parse_row("01/03/2025 Rent -800.00 05/03/2025 Salary 3000.00")
        assert len(txs) == 2
        rent, salary = txs
        assert (rent.date, rent.description, rent.debit) == ("2025-03-01", "Rent", 800.0)
        assert (salary.date, salary.description, salary.credit) == ("2025-03-05", "Salary", 3000.0)

    def test_every_date_starts_a_transaction(self):
        txs = parse_row("17/02/2025 18/02/2025 Coffee -5.00 100.00")
        assert len(txs) == 2
        value_date, coffee = txs
        assert value_date.date == "2025-02-17"
        assert value_date.amount is None
        assert coffee.date == "2025-02-18"
        assert coffee.description == "Coffee"
        assert coffee.debit == pytest.approx(5.0)
        assert coffee.balance == pytest.approx(100.0)

    def test_merge_value_dates_keeps_one_transaction(self):
        text = "02.01.2025 03.01.2025 Card -45.00 955.00"
        assert len(split_segments(text)) == 2
        assert len(split_segments(text, merge_value_dates=True)) == 1
        [tx] = parse_row(text, merge_value_dates=True)
        assert tx.date == "2025-01-02"
        assert tx.debit == pytest.approx(45.0)

    def test_pair_layout(self):
        txs = parse_row(
            "02/01/2025 Card payment 45.00 03/01/2025 Transfer in TRX123456 1500.00"
        )
        assert len(txs) == 2
        first, second = txs
        assert first.date == "2025-01-02"
        assert first.description == "Card payment"
        assert first.amount == pytest.approx(45.0)
        assert first.reference_number is None
        assert second.date == "2025-01-03"
        assert second.description == "Transfer in"
        assert second.reference_number == "TRX123456"
        assert second.amount == pytest.approx(1500.0)

    def test_single_transaction_row(self):
        txs = parse_row("  17/02/2025   Coffee   -12.50   987.50 ")
        assert len(txs) == 1
        assert txs[0].description == "Coffee"

    def test_empty_row(self):
        assert parse_row("   ") == []


@pytest.mark.smoke
class TestRecords:
    def test_transaction_key(self):
        a = parse_transaction("17/02/2025 Coffee  Shop -12.50 987.50")
        b = parse_transaction("17/02/2025 coffee shop -12.50 990.00")
        assert transaction_key(a) == transaction_key(b)

    def test_coerce_export_names(self):
        tx = coerce_transaction(
            {
                "Date": "17/02/2025",
                "Description": "  Coffee ",
                "Amount": "-12,50",
                "Currency": "zł",
                "Source Statement Page": "3",
                "Unknown": "ignored",
            }
        )
        assert tx.date == "2025-02-17"
        assert tx.description == "Coffee"
        assert tx.debit == pytest.approx(12.5)
        assert tx.currency == "PLN"
        assert tx.source_page == 3

    def test_coerce_bad_values(self):
        tx = coerce_transaction({"date": "someday", "balance": "n/a", "debit": -5})
        assert tx.date is None
        assert tx.source_date == "someday"
        assert tx.balance is None
        assert tx.debit == 5.0

    def test_as_record_uses_export_names(self):
        record = parse_transaction("17/02/2025 Coffee -12.50 987.50").as_record()
        assert record["Date"] == "2025-02-17"
        assert record["Debit"] == pytest.approx(12.5)
        assert "Sender/Receiver Name" in record
