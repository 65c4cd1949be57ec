from dataclasses import replace
from datetime import datetime

import pytest

from justsell.errors import NotFoundError
from justsell.services import customer_service
from justsell.services.inventory_service import CartItem
from justsell.services.receipt_service import (
    FOOTER_LINES,
    LoyaltySummary,
    Receipt,
    ReceiptLine,
    build_receipt,
    format_receipt_html,
    format_receipt_text,
    print_receipt,
)
from justsell.services.transaction_service import CheckoutRequest, create_transaction


@pytest.fixture
def receipt():
    return Receipt(
        transaction_id=1,
        receipt_number="R202406011200000001000001",
        store_name="Smoke Shop",
        store_address="123 Main St, Albany, NY 12207",
        store_phone="(518) 555-0100",
        store_tax_id="12-3456789",
        transaction_date=datetime(2024, 6, 1, 12, 0, 0),
        employee="Casey Tester",
        customer=None,
        line_items=[
            ReceiptLine("Vape Pod Mint", "VPE-001", 2, 1999, 3998),
            ReceiptLine("Refillable Lighter", "ACC-001", 1, 1299, 1299),
        ],
        subtotal_cents=5297,
        tax_cents=424,
        total_cents=5721,
        payment_method="CASH",
        cash_tendered_cents=6000,
        change_given_cents=279,
        loyalty=None,
    )


class TestFormatReceiptText:
    def test_layout(self, receipt):
        text = format_receipt_text(receipt)
        lines = text.split("\n")

        assert all(len(line) <= 40 for line in lines)
        assert lines[0] == "=" * 40
        assert lines[1].strip() == "SMOKE SHOP"
        assert "Receipt: R202406011200000001000001" in lines
        assert "Date: 2024-06-01 12:00:00" in lines
        assert "Cashier: Casey Tester" in lines
        assert "  2 " + "Vape Pod Mint".ljust(20) + "  $19.99  $39.98" in lines
        assert "Subtotal:" + "$52.97".rjust(31) in lines
        assert "TOTAL:" + "$57.21".rjust(34) in lines
        assert "Payment: CASH" in lines
        assert "Cash Tendered: $60.00" in lines
        assert "Change: $2.79" in lines

    def test_footer(self, receipt):
        lines = format_receipt_text(receipt).split("\n")
        assert lines[-1] == "=" * 40
        assert tuple(lines[-1 - len(FOOTER_LINES):-1]) == FOOTER_LINES

    def test_long_name_truncated_with_sku_line(self, receipt):
        long_item = ReceiptLine("Premium Menthol Cigarettes Carton", "CIG-100", 1, 8999, 8999)
        lines = format_receipt_text(replace(receipt, line_items=[long_item])).split("\n")

        row = next(line for line in lines if "..." in line)
        assert "Premium Menthol C..." in row
        assert lines[lines.index(row) + 1] == "     SKU: CIG-100"
        assert all(len(line) <= 40 for line in lines)

    def test_name_of_exactly_twenty_is_not_truncated(self, receipt):
        item = ReceiptLine("A" * 20, "X-1", 1, 100, 100)
        text = format_receipt_text(replace(receipt, line_items=[item]))
        assert "A" * 20 in text
        assert "SKU:" not in text

    def test_thousand_dollar_amounts_keep_rows_forty_wide(self, receipt):
        humidor = ReceiptLine("Cigar Humidor Cabinet", "HUM-900", 2, 150000, 300000)
        lines = format_receipt_text(replace(
            receipt,
            line_items=[humidor, receipt.line_items[1]],
            subtotal_cents=301299,
            tax_cents=24104,
            total_cents=325403,
            cash_tendered_cents=330000,
            change_given_cents=4597,
        )).split("\n")

        assert all(len(line) <= 40 for line in lines)
        row = "  2 " + "Cigar Humidor C..." + " $1500.00 $3000.00"
        assert row in lines
        assert lines[lines.index(row) + 1] == "     SKU: HUM-900"
        assert "  1 " + "Refillable Lighter".ljust(20) + "  $12.99  $12.99" in lines

    def test_card_has_no_cash_lines(self, receipt):
        text = format_receipt_text(replace(
            receipt, payment_method="CARD", cash_tendered_cents=None, change_given_cents=None
        ))
        assert "Payment: CARD" in text
        assert "Cash Tendered" not in text
        assert "Change:" not in text

    def test_customer_and_loyalty(self, receipt):
        text = format_receipt_text(replace(
            receipt,
            customer="Jane Doe",
            loyalty=LoyaltySummary(earned=57, redeemed=0, balance=157),
        ))
        assert "Customer: Jane Doe" in text
        assert "LOYALTY PROGRAM" in text
        assert "Points Earned: 57" in text
        assert "Points Redeemed" not in text
        assert "Current Balance: 157" in text

    def test_no_customer_no_loyalty_block(self, receipt):
        text = format_receipt_text(receipt)
        assert "Customer:" not in text
        assert "LOYALTY PROGRAM" not in text


class TestFormatReceiptHtml:
    def test_escapes_text(self, receipt):
        html = format_receipt_html(replace(
            receipt,
            store_name="<b>Smoke & Vape</b>",
            line_items=[ReceiptLine("<script>alert(1)</script>", "X-1", 1, 100, 100)],
        ))
        assert "<script>" not in html
        assert "&lt;script&gt;" in html
        assert "&lt;b&gt;Smoke &amp; Vape&lt;/b&gt;" in html

    def test_sections(self, receipt):
        html = format_receipt_html(receipt)
        assert html.startswith("<!DOCTYPE html>")
        assert "TOTAL: $57.21" in html
        assert "Cash Tendered: $60.00" in html
        assert 'class="loyalty"' not in html

    def test_long_names_printed_in_full_with_sku(self, receipt):
        long_item = ReceiptLine("Premium Menthol Cigarettes Carton", "CIG-100", 1, 8999, 8999)
        html = format_receipt_html(replace(receipt, line_items=[long_item]))
        assert "<td>Premium Menthol Cigarettes Carton<br><small>SKU: CIG-100</small></td>" in html
        assert "..." not in html


class TestBuildReceipt:
    def test_from_committed_transaction(self, db_session, store, cashier, vape, lighter, customer):
        txn = create_transaction(
            CheckoutRequest(
                items=[CartItem(vape.id, 2), CartItem(lighter.id, 1)],
                payment_method="CASH",
                cash_tendered_cents=6000,
                customer_id=customer.id,
                age_verification_completed=True,
            ),
            cashier,
        )

        receipt = build_receipt(txn)

        assert receipt.receipt_number == txn.receipt_number
        assert receipt.store_tax_id == "12-3456789"
        assert receipt.store_address == "123 Main St, Albany, NY 12207"
        assert receipt.employee == "Casey Tester"
        assert receipt.customer == "Jane Doe"
        assert [line.sku for line in receipt.line_items] == ["VPE-001", "ACC-001"]
        assert receipt.loyalty == LoyaltySummary(earned=57, redeemed=0, balance=57)
        assert receipt.to_dict()["transaction_date"].endswith("Z")

    def test_reprint_shows_balance_at_time_of_sale(self, db_session, cashier, lighter, customer):
        txn = create_transaction(
            CheckoutRequest(
                items=[CartItem(lighter.id, 1)], payment_method="CARD", customer_id=customer.id
            ),
            cashier,
        )
        assert txn.loyalty_balance_after == 14

        customer_service.adjust_loyalty_points(customer.id, "earn", 100)

        assert build_receipt(txn).loyalty.balance == 14
        assert "Current Balance: 14" in format_receipt_text(build_receipt(txn))

    def test_balance_falls_back_to_live_points_without_snapshot(self, db_session, cashier, lighter, customer):
        txn = create_transaction(
            CheckoutRequest(
                items=[CartItem(lighter.id, 1)], payment_method="CARD", customer_id=customer.id
            ),
            cashier,
        )
        customer_service.adjust_loyalty_points(customer.id, "earn", 100)
        txn.loyalty_balance_after = None

        assert build_receipt(txn).loyalty.balance == 114

    def test_card_receipt_omits_cash(self, db_session, cashier, lighter):
        txn = create_transaction(
            CheckoutRequest(items=[CartItem(lighter.id, 1)], payment_method="CARD"), cashier
        )
        receipt = build_receipt(txn)
        assert receipt.cash_tendered_cents is None
        assert receipt.change_given_cents is None
        assert receipt.loyalty is None


class TestPrintReceipt:
    def test_sends_text_to_printer(self, app, db_session, cashier, lighter, monkeypatch):
        txn = create_transaction(
            CheckoutRequest(items=[CartItem(lighter.id, 1)], payment_method="CARD"), cashier
        )
        printed = []
        monkeypatch.setitem(app.config, "RECEIPT_PRINTER", printed.append)

        printed_at = print_receipt(txn.id)

        assert isinstance(printed_at, datetime)
        assert len(printed) == 1
        assert txn.receipt_number in printed[0]

    def test_unknown_transaction(self, db_session):
        with pytest.raises(NotFoundError):
            print_receipt(999)
