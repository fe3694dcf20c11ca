import unittest

import pos_receipts as pr


def _transaction(method="cash"):
    return {
        "receipt_number": "TRX-1700000000000-42",
        "items": [
            {"product_id": "1", "product_name": "Kopi Bubuk", "quantity": 2, "unit_price": 10000, "subtotal": 20000},
            {"product_id": "2", "product_name": "Teh Celup", "quantity": 1, "unit_price": 5000, "subtotal": 5000},
        ],
        "subtotal": 25000,
        "tax": 0,
        "total": 25000,
        "payment_method": method,
        "cash_received": 30000 if method == "cash" else 25000,
        "change": 5000 if method == "cash" else 0,
        "created_at": "2024-01-05T14:03:09",
    }


class FormattingTest(unittest.TestCase):
    def test_format_rupiah(self):
        self.assertEqual(pr.format_rupiah(25000), "Rp 25.000")
        self.assertEqual(pr.format_rupiah(0), "Rp 0")
        self.assertEqual(pr.format_rupiah(1234567), "Rp 1.234.567")
        self.assertEqual(pr.format_rupiah(-5000), "-Rp 5.000")
        self.assertEqual(pr.format_rupiah(None), "Rp 0")

    def test_parse_rupiah(self):
        self.assertEqual(pr.parse_rupiah("Rp 25.000"), 25000)
        self.assertEqual(pr.parse_rupiah("Rp 1.500,00"), 1500)
        self.assertEqual(pr.parse_rupiah(""), 0)
        self.assertEqual(pr.parse_rupiah("10000.50"), 10001)
        self.assertEqual(pr.parse_rupiah("1,250,000"), 1250000)
        self.assertEqual(pr.parse_rupiah("12,5"), 13)

    def test_format_timestamp(self):
        self.assertEqual(pr.format_timestamp("2024-01-05T14:03:09"), "05/01/2024 14:03:09")
        self.assertEqual(pr.format_timestamp("2024-01-05T14:03:09Z"), "05/01/2024 14:03:09")
        self.assertEqual(pr.format_timestamp("yesterday"), "yesterday")
        self.assertEqual(pr.format_timestamp(None), "")


class BuildReceiptTest(unittest.TestCase):
    def test_build_is_idempotent(self):
        txn = _transaction()
        self.assertEqual(pr.build_receipt(txn), pr.build_receipt(txn))

    def test_cash_receipt_fields(self):
        receipt = pr.build_receipt(_transaction(), "TOKO MAJU")
        self.assertEqual(receipt["system_name"], "TOKO MAJU")
        self.assertEqual(receipt["timestamp"], "05/01/2024 14:03:09")
        self.assertEqual(receipt["rows"][0]["line_total_display"], "Rp 20.000")
        self.assertEqual(receipt["total_display"], "Rp 25.000")
        self.assertEqual(receipt["payment_method_display"], "CASH")
        self.assertEqual(
            [(l["label"], l["display"]) for l in receipt["payment_lines"]],
            [("Cash Received", "Rp 30.000"), ("Change", "Rp 5.000")],
        )

    def test_card_receipt_has_no_cash_lines(self):
        receipt = pr.build_receipt(_transaction("card"))
        self.assertEqual(receipt["payment_lines"], [])
        text = pr.render_text(receipt)
        self.assertIn("Payment: CARD", text)
        self.assertNotIn("Cash:", text)
        self.assertNotIn("Change:", text)
        self.assertEqual(pr.receipt_summary(receipt)["cashReceived"], 25000)
        self.assertEqual(pr.receipt_summary(receipt)["change"], 0)

    def test_default_system_name(self):
        self.assertEqual(pr.build_receipt(_transaction())["system_name"], "INVENTORY SYSTEM")


class RenderTest(unittest.TestCase):
    def setUp(self):
        self.receipt = pr.build_receipt(_transaction())

    def test_render_text(self):
        text = pr.render_text(self.receipt)
        self.assertTrue(text.startswith("INVENTORY SYSTEM\nReceipt #: TRX-1700000000000-42\n"))
        self.assertIn("  2 x Rp 10.000 = Rp 20.000", text)
        self.assertIn("TOTAL: Rp 25.000", text)
        self.assertIn("Cash: Rp 30.000", text)
        self.assertIn("Change: Rp 5.000", text)
        self.assertIn("Thank you for your purchase!", text)

    def test_render_printable(self):
        html = pr.render_printable(self.receipt)
        self.assertIn("Receipt #: TRX-1700000000000-42", html)
        self.assertIn("window.print()", html)
        self.assertIn("<td>Kopi Bubuk</td>", html)
        self.assertIn("<span>Rp 5.000</span>", html)

    def test_printable_escapes_product_names(self):
        txn = _transaction()
        txn["items"][0]["product_name"] = "<b>Kopi</b>"
        html = pr.render_printable(pr.build_receipt(txn))
        self.assertIn("&lt;b&gt;Kopi&lt;/b&gt;", html)
        self.assertNotIn("<b>Kopi</b>", html)

    def test_renderers_agree_on_totals(self):
        for rendered in (pr.render_text(self.receipt), pr.render_printable(self.receipt), pr.render_escpos_text(self.receipt)):
            self.assertIn("Rp 25.000", rendered)

    def test_escpos_width(self):
        text = pr.render_escpos_text(self.receipt, width=32)
        for line in text.splitlines():
            self.assertLessEqual(len(line), 32, line)
        self.assertIn("Change", text)

    def test_receipt_filename(self):
        self.assertEqual(pr.receipt_filename(self.receipt), "receipt-TRX-1700000000000-42.txt")


if __name__ == "__main__":
    unittest.main()
