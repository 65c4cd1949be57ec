# Overview: Service-layer operations for receipts; builds and renders text/HTML receipts.

"""
Receipt formatter.

build_receipt() gathers everything a receipt shows from a committed
transaction. The formatters only read the Receipt, so the same data renders
to the 40-column thermal layout and to HTML.

Display rules:
- item names longer than 20 characters print as 17 chars + "..." followed
  by a SKU line; amounts of $1000.00 and up narrow the name column so
  rows stay 40 wide
- HTML prints full item names, each with its SKU
- cash tendered / change only for CASH payments
- customer line and loyalty block only when a customer is attached
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime

from flask import current_app
from markupsafe import escape

from ..money import format_money
from ..repositories import StoreRepository
from .transaction_service import get_transaction
from justsell.time_utils import to_utc_z, utcnow

NAME_WIDTH = 20
PRICE_WIDTH = 7
TOTAL_WIDTH = 8
FOOTER_LINES = (
    "Thank you for your business!",
    "Please come again!",
    "",
    "No returns without receipt",
    "All sales final on tobacco products",
)


@dataclass(frozen=True)
class ReceiptLine:
    name: str
    sku: str
    quantity: int
    unit_price_cents: int
    line_total_cents: int


@dataclass(frozen=True)
class LoyaltySummary:
    earned: int
    redeemed: int
    balance: int


@dataclass(frozen=True)
class Receipt:
    transaction_id: int
    receipt_number: str
    store_name: str
    store_address: str
    store_phone: str
    store_tax_id: str
    transaction_date: datetime
    employee: str
    customer: str | None
    line_items: list[ReceiptLine]
    subtotal_cents: int
    tax_cents: int
    total_cents: int
    payment_method: str
    cash_tendered_cents: int | None
    change_given_cents: int | None
    loyalty: LoyaltySummary | None

    @property
    def is_cash(self) -> bool:
        return self.payment_method == "CASH"

    def to_dict(self) -> dict:
        data = asdict(self)
        data["transaction_date"] = to_utc_z(self.transaction_date)
        return data


def build_receipt(transaction, store=None, employee=None, customer=None) -> Receipt:
    store = store or transaction.store
    employee = employee or transaction.employee
    if customer is None and transaction.customer_id is not None:
        customer = transaction.customer

    loyalty = None
    if customer is not None:
        loyalty = LoyaltySummary(
            earned=transaction.loyalty_points_earned,
            redeemed=transaction.loyalty_points_redeemed,
            balance=(
                transaction.loyalty_balance_after
                if transaction.loyalty_balance_after is not None
                else customer.loyalty_points
            ),
        )

    cash = transaction.payment_method == "CASH"
    return Receipt(
        transaction_id=transaction.id,
        receipt_number=transaction.receipt_number,
        store_name=store.name,
        store_address=store.address(),
        store_phone=store.phone or "",
        store_tax_id=StoreRepository().reveal(store, "tax_id") or "",
        transaction_date=transaction.transaction_date,
        employee=employee.display_name,
        customer=customer.full_name if customer is not None else None,
        line_items=[
            ReceiptLine(
                name=line.product_name,
                sku=line.product_sku,
                quantity=line.quantity,
                unit_price_cents=line.unit_price_cents,
                line_total_cents=line.line_total_cents,
            )
            for line in transaction.line_items
        ],
        subtotal_cents=transaction.subtotal_cents,
        tax_cents=transaction.tax_cents,
        total_cents=transaction.total_cents,
        payment_method=transaction.payment_method,
        cash_tendered_cents=transaction.cash_tendered_cents if cash else None,
        change_given_cents=transaction.change_given_cents if cash else None,
        loyalty=loyalty,
    )


def _display_name(name: str, width: int = NAME_WIDTH) -> str:
    if len(name) > width:
        return name[:width - 3] + "..."
    return name


def _item_widths(price: str, total: str) -> tuple[int, int, int]:
    """(name, price, total) column widths; wide amounts take room from the name."""
    price_width = max(PRICE_WIDTH, len(price))
    total_width = max(TOTAL_WIDTH, len(total) + 1)
    name_width = NAME_WIDTH - (price_width - PRICE_WIDTH) - (total_width - TOTAL_WIDTH)
    return name_width, price_width, total_width


def _format_date(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%d %H:%M:%S")


def format_receipt_text(receipt: Receipt, width: int = 40) -> str:
    rule = "=" * width
    thin = "-" * width

    def amount_line(label: str, cents: int) -> str:
        return f"{label}{format_money(cents):>{width - len(label)}}"

    def item_row(qty, name, price, total) -> str:
        # 3 + 1 + name + 1 + price + total columns, 40 in all
        name_width, price_width, total_width = _item_widths(price, total)
        return (
            f"{qty:>3} {_display_name(name, name_width):<{name_width}} "
            f"{price:>{price_width}}{total:>{total_width}}"
        )

    lines = [rule, receipt.store_name.upper().center(width).rstrip()]
    if receipt.store_address:
        lines.append(receipt.store_address.center(width).rstrip())
    if receipt.store_phone:
        lines.append(receipt.store_phone.center(width).rstrip())
    lines += [rule, ""]

    lines.append(f"Receipt: {receipt.receipt_number}")
    lines.append(f"Date: {_format_date(receipt.transaction_date)}")
    lines.append(f"Cashier: {receipt.employee}")
    if receipt.customer:
        lines.append(f"Customer: {receipt.customer}")
    lines += ["", thin, item_row("QTY", "ITEM", "PRICE", "TOTAL"), thin]

    for item in receipt.line_items:
        price = format_money(item.unit_price_cents)
        total = format_money(item.line_total_cents)
        lines.append(item_row(item.quantity, item.name, price, total))
        if len(item.name) > _item_widths(price, total)[0]:
            lines.append(f"     SKU: {item.sku}")

    lines.append(thin)
    lines.append(amount_line("Subtotal:", receipt.subtotal_cents))
    lines.append(amount_line("Tax:", receipt.tax_cents))
    lines.append(amount_line("TOTAL:", receipt.total_cents))
    lines.append("")

    lines.append(f"Payment: {receipt.payment_method}")
    if receipt.is_cash and receipt.cash_tendered_cents is not None:
        lines.append(f"Cash Tendered: {format_money(receipt.cash_tendered_cents)}")
        lines.append(f"Change: {format_money(receipt.change_given_cents)}")
    lines.append("")

    if receipt.loyalty is not None:
        lines += ["LOYALTY PROGRAM", thin]
        if receipt.loyalty.earned > 0:
            lines.append(f"Points Earned: {receipt.loyalty.earned}")
        if receipt.loyalty.redeemed > 0:
            lines.append(f"Points Redeemed: {receipt.loyalty.redeemed}")
        lines.append(f"Current Balance: {receipt.loyalty.balance}")
        lines.append("")

    lines.append(rule)
    lines += FOOTER_LINES
    lines.append(rule)
    return "\n".join(lines)


def format_receipt_html(receipt: Receipt) -> str:
    """Standalone HTML page for email / browser display. All text is escaped."""
    e = escape
    parts = [
        "<!DOCTYPE html>",
        "<html>",
        "<head>",
        '<meta charset="utf-8">',
        f"<title>Receipt {e(receipt.receipt_number)}</title>",
        "<style>",
        "body { font-family: 'Courier New', monospace; max-width: 400px; margin: 0 auto; padding: 20px; }",
        ".header, .footer { text-align: center; }",
        ".store-name { font-size: 18px; font-weight: bold; }",
        ".line-items table { width: 100%; border-collapse: collapse; }",
        ".totals .total { font-weight: bold; }",
        ".loyalty { background: #f0f8ff; padding: 10px; border: 1px solid #0066cc; }",
        "</style>",
        "</head>",
        "<body>",
        '<div class="header">',
        f'<div class="store-name">{e(receipt.store_name)}</div>',
        f"<div>{e(receipt.store_address)}</div>",
    ]
    if receipt.store_phone:
        parts.append(f"<div>{e(receipt.store_phone)}</div>")
    parts.append("</div>")

    parts.append('<div class="transaction-info">')
    parts.append(f"<div><strong>Receipt:</strong> {e(receipt.receipt_number)}</div>")
    parts.append(f"<div><strong>Date:</strong> {e(_format_date(receipt.transaction_date))}</div>")
    parts.append(f"<div><strong>Cashier:</strong> {e(receipt.employee)}</div>")
    if receipt.customer:
        parts.append(f"<div><strong>Customer:</strong> {e(receipt.customer)}</div>")
    parts.append("</div>")

    parts += [
        '<div class="line-items">',
        "<table>",
        "<thead><tr><th>QTY</th><th>ITEM</th><th>PRICE</th><th>TOTAL</th></tr></thead>",
        "<tbody>",
    ]
    for item in receipt.line_items:
        parts.append(
            f"<tr><td>{item.quantity}</td>"
            f"<td>{e(item.name)}<br><small>SKU: {e(item.sku)}</small></td>"
            f"<td>{format_money(item.unit_price_cents)}</td>"
            f"<td>{format_money(item.line_total_cents)}</td></tr>"
        )
    parts += ["</tbody>", "</table>", "</div>"]

    parts += [
        '<div class="totals">',
        f"<div>Subtotal: {format_money(receipt.subtotal_cents)}</div>",
        f"<div>Tax: {format_money(receipt.tax_cents)}</div>",
        f'<div class="total">TOTAL: {format_money(receipt.total_cents)}</div>',
        "</div>",
    ]

    parts.append('<div class="transaction-info">')
    parts.append(f"<div><strong>Payment:</strong> {e(receipt.payment_method)}</div>")
    if receipt.is_cash and receipt.cash_tendered_cents is not None:
        parts.append(f"<div>Cash Tendered: {format_money(receipt.cash_tendered_cents)}</div>")
        parts.append(f"<div>Change: {format_money(receipt.change_given_cents)}</div>")
    parts.append("</div>")

    if receipt.loyalty is not None:
        parts.append('<div class="loyalty">')
        parts.append("<strong>LOYALTY PROGRAM</strong><br>")
        if receipt.loyalty.earned > 0:
            parts.append(f"Points Earned: {receipt.loyalty.earned}<br>")
        if receipt.loyalty.redeemed > 0:
            parts.append(f"Points Redeemed: {receipt.loyalty.redeemed}<br>")
        parts.append(f"Current Balance: {receipt.loyalty.balance}")
        parts.append("</div>")

    parts.append('<div class="footer">')
    parts += [f"<div>{line}</div>" if line else "<br>" for line in FOOTER_LINES]
    parts += ["</div>", "</body>", "</html>"]
    return "\n".join(parts)


def print_receipt(transaction_id: int) -> datetime:
    """
    Send the text receipt to the configured printer.

    RECEIPT_PRINTER may be set to a callable taking the rendered text; the
    default writes it to the application log. Nothing is persisted.
    """
    transaction = get_transaction(transaction_id)
    text = format_receipt_text(
        build_receipt(transaction),
        width=current_app.config.get("RECEIPT_WIDTH", 40),
    )

    printer = current_app.config.get("RECEIPT_PRINTER")
    if printer is not None:
        printer(text)
    else:
        current_app.logger.info("Receipt %s\n%s", transaction.receipt_number, text)

    printed_at = utcnow()
    current_app.logger.info("Receipt printed: receipt=%s", transaction.receipt_number)
    return printed_at
