from decimal import Decimal

from django.test import SimpleTestCase

from laundry.domain.invoice_totals import InvoiceLine, calculate_invoice_totals, round_minor_units


class InvoiceTotalsTest(SimpleTestCase):

    def test_totals_from_lines(self):
        totals = calculate_invoice_totals(
            [
                InvoiceLine(quantity=Decimal("2"), unit_price=150),
                InvoiceLine(quantity=Decimal("1.5"), unit_price=100),
            ],
            tax=30,
        )

        self.assertEqual(totals.amounts, [300, 150])
        self.assertEqual(totals.subtotal, 450)
        self.assertEqual(totals.tax, 30)
        self.assertEqual(totals.total, 480)

    def test_total_is_subtotal_plus_tax(self):
        lines = [InvoiceLine(quantity=Decimal("3.333"), unit_price=99)]
        totals = calculate_invoice_totals(lines, tax=17)

        self.assertEqual(totals.total, totals.subtotal + totals.tax)

    def test_rounding_half_away_from_zero(self):
        self.assertEqual(round_minor_units(Decimal("2.5")), 3)
        self.assertEqual(round_minor_units(Decimal("-2.5")), -3)
        self.assertEqual(round_minor_units(Decimal("2.4999")), 2)

    def test_fractional_quantity_rounds(self):
        # 0.125 kg x 100 = 12.5 -> 13
        totals = calculate_invoice_totals([InvoiceLine(quantity=Decimal("0.125"), unit_price=100)])

        self.assertEqual(totals.subtotal, 13)

    def test_explicit_amount_overrides_quantity_price(self):
        totals = calculate_invoice_totals([
            InvoiceLine(quantity=Decimal("1"), unit_price=500),
            InvoiceLine(quantity=Decimal("1"), unit_price=0, amount=-100, type="DISCOUNT"),
        ])

        self.assertEqual(totals.subtotal, 400)

    def test_no_lines(self):
        totals = calculate_invoice_totals([])

        self.assertEqual((totals.subtotal, totals.tax, totals.total), (0, 0, 0))

    def test_amounts_sum_back_to_subtotal(self):
        lines = [
            InvoiceLine(quantity=Decimal(f"{n}.{n * 37 % 1000:03d}"), unit_price=n * 13 + 7)
            for n in range(1, 60)
        ]
        totals = calculate_invoice_totals(lines, tax=11)

        self.assertEqual(len(totals.amounts), len(lines))
        self.assertEqual(sum(totals.amounts), totals.subtotal)
        self.assertEqual(totals.total, totals.subtotal + 11)
