from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal


@dataclass(frozen=True)
class InvoiceLine:
    """A priced line. ``amount`` overrides ``quantity * unit_price`` when set (e.g. discounts)."""

    quantity: Decimal
    unit_price: int
    amount: int | None = None
    type: str = "SERVICE"
    name: str = ""


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: int
    tax: int
    total: int
    amounts: list[int] = field(default_factory=list)


def round_minor_units(value):
    """Round a Decimal amount of minor currency units half away from zero."""
    return int(Decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def line_amount(line):
    if line.amount is not None:
        return int(line.amount)
    return round_minor_units(Decimal(str(line.quantity)) * Decimal(line.unit_price))


def calculate_invoice_totals(lines, tax=0):
    """
    Compute subtotal, tax and total in minor units from invoice lines.

    ``tax`` is a flat amount, not a rate. Discounts are applied by callers
    on the returned total.
    """
    amounts = [line_amount(line) for line in lines]
    subtotal = sum(amounts)
    return InvoiceTotals(
        subtotal=subtotal,
        tax=int(tax),
        total=subtotal + int(tax),
        amounts=amounts,
    )
