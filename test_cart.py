import unittest

from pos_cart import CartEngine, to_amount


def _product(pid, name, price, stock):
    return {"id": pid, "name": name, "price": price, "stock": stock}


class CartEngineTest(unittest.TestCase):
    def setUp(self):
        self.kopi = _product(1, "Kopi Bubuk", 10000, 5)
        self.teh = _product(2, "Teh Celup", 5000, 5)
        self.cart = CartEngine([self.kopi, self.teh])

    def test_totals_and_change(self):
        self.assertTrue(self.cart.add_item(self.kopi))
        self.assertTrue(self.cart.add_item(self.kopi))
        self.assertTrue(self.cart.add_item(self.teh))
        self.cart.set_cash_tendered(30000)
        self.assertEqual(self.cart.subtotal, 25000)
        self.assertEqual(self.cart.grand_total, 25000)
        self.assertEqual(self.cart.change_due, 5000)
        self.assertEqual([l.product_id for l in self.cart.lines], ["1", "2"])
        self.assertEqual(self.cart.get_line(1).quantity, 2)

    def test_change_never_negative(self):
        self.cart.add_item(self.kopi)
        self.cart.set_cash_tendered(2000)
        self.assertEqual(self.cart.change_due, 0)

    def test_out_of_stock_product_is_refused_with_warning(self):
        gula = _product(3, "Gula Pasir", 16000, 0)
        with self.assertLogs("pos_cart", level="WARNING"):
            self.assertFalse(self.cart.add_item(gula))
        self.assertTrue(self.cart.is_empty())
        self.assertEqual(self.cart.drain_warnings(), ["Gula Pasir is out of stock"])
        self.assertEqual(self.cart.warnings, [])

    def test_stock_ceiling_on_add(self):
        sabun = _product(4, "Sabun Mandi", 4500, 2)
        self.assertTrue(self.cart.add_item(sabun))
        self.assertTrue(self.cart.add_item(sabun))
        self.assertFalse(self.cart.add_item(sabun))
        self.assertEqual(self.cart.get_line(4).quantity, 2)
        self.assertEqual(self.cart.subtotal, 9000)
        self.assertIn("Maximum available stock reached for Sabun Mandi", self.cart.warnings)

    def test_add_uses_latest_product_record(self):
        self.cart.add_item(self.kopi)
        self.assertFalse(self.cart.add_item(_product(1, "Kopi Bubuk", 10000, 1)))
        self.assertEqual(self.cart.current_stock(1), 1)

    def test_set_quantity_rules(self):
        self.cart.add_item(self.kopi)
        self.assertFalse(self.cart.set_quantity(1, 0))
        self.assertFalse(self.cart.set_quantity(99, 2))
        self.assertEqual(self.cart.get_line(1).quantity, 1)

        self.assertFalse(self.cart.set_quantity(1, 6))
        self.assertEqual(self.cart.get_line(1).quantity, 1)
        self.assertEqual(len(self.cart.warnings), 1)

        self.assertTrue(self.cart.set_quantity("1", 5))
        self.assertEqual(self.cart.subtotal, 50000)

    def test_refresh_products_changes_ceiling(self):
        self.cart.add_item(self.kopi)
        self.cart.refresh_products([_product(1, "Kopi Bubuk", 10000, 3)])
        self.assertFalse(self.cart.set_quantity(1, 4))
        self.assertTrue(self.cart.set_quantity(1, 3))

    def test_refresh_clamps_lines_above_new_stock(self):
        self.assertTrue(self.cart.add_item(self.kopi))
        self.assertTrue(self.cart.set_quantity(1, 5))
        self.cart.add_item(self.teh)
        with self.assertLogs("pos_cart", level="WARNING"):
            self.cart.refresh_products([_product(1, "Kopi Bubuk", 10000, 1), _product(2, "Teh Celup", 5000, 0)])
        self.assertEqual(self.cart.get_line(1).quantity, 1)
        self.assertIsNone(self.cart.get_line(2))
        self.assertEqual(self.cart.subtotal, 10000)
        self.assertEqual(self.cart.drain_warnings(), [
            "Only 1 Kopi Bubuk left in stock; quantity reduced",
            "Teh Celup is out of stock and was removed from the cart",
        ])

    def test_add_item_with_lower_stock_clamps_line(self):
        self.cart.add_item(self.kopi)
        self.cart.set_quantity(1, 4)
        self.assertFalse(self.cart.add_item(_product(1, "Kopi Bubuk", 10000, 2)))
        self.assertEqual(self.cart.get_line(1).quantity, 2)
        self.assertEqual(self.cart.subtotal, 20000)

    def test_set_quantity_without_snapshot_is_refused(self):
        self.cart.add_item(self.kopi)
        self.cart.refresh_products([])
        self.assertFalse(self.cart.set_quantity(1, 500))
        self.assertEqual(self.cart.get_line(1).quantity, 1)
        self.assertEqual(self.cart.drain_warnings(), ["No stock information for Kopi Bubuk; reload products first"])

    def test_locked_cart_keeps_lines_on_refresh(self):
        self.cart.add_item(self.kopi)
        self.cart.lock()
        self.cart.refresh_products([_product(1, "Kopi Bubuk", 10000, 0)])
        self.assertEqual(self.cart.get_line(1).quantity, 1)

    def test_remove_item(self):
        self.cart.add_item(self.kopi)
        self.cart.add_item(self.teh)
        self.assertTrue(self.cart.remove_item(1))
        self.assertFalse(self.cart.remove_item(1))
        self.assertEqual(self.cart.subtotal, 5000)
        self.assertEqual(len(self.cart), 1)

    def test_cash_tendered_accepts_formatted_text(self):
        self.cart.set_cash_tendered("Rp 30.000")
        self.assertEqual(self.cart.cash_tendered, 30000)
        self.cart.set_cash_tendered("abc")
        self.assertEqual(self.cart.cash_tendered, 0)
        self.cart.set_cash_tendered(-500)
        self.assertEqual(self.cart.cash_tendered, 0)

    def test_card_payment_has_no_change(self):
        self.cart.add_item(self.kopi)
        self.cart.set_cash_tendered(50000)
        self.assertTrue(self.cart.set_payment_method("card"))
        self.assertEqual(self.cart.change_due, 0)
        self.assertEqual(self.cart.payment_state()["cash_tendered"], 10000)

    def test_unknown_payment_method_is_ignored(self):
        self.assertFalse(self.cart.set_payment_method("bitcoin"))
        self.assertEqual(self.cart.payment_method, "cash")

    def test_clear_keeps_payment_method(self):
        self.cart.add_item(self.kopi)
        self.cart.set_payment_method("card")
        self.cart.set_cash_tendered(10000)
        self.cart.clear()
        self.assertTrue(self.cart.is_empty())
        self.assertEqual(self.cart.subtotal, 0)
        self.assertEqual(self.cart.cash_tendered, 0)
        self.assertEqual(self.cart.payment_method, "card")

    def test_locked_cart_refuses_mutations(self):
        self.cart.add_item(self.kopi)
        self.cart.lock()
        self.assertFalse(self.cart.add_item(self.teh))
        self.assertFalse(self.cart.remove_item(1))
        self.assertFalse(self.cart.set_quantity(1, 2))
        self.assertFalse(self.cart.set_payment_method("card"))
        self.assertFalse(self.cart.set_cash_tendered(10000))
        self.assertEqual(self.cart.to_dict()["subtotal"], 10000)
        self.cart.unlock()
        self.assertTrue(self.cart.add_item(self.teh))

    def test_to_dict(self):
        self.cart.add_item(self.kopi)
        data = self.cart.to_dict()
        self.assertEqual(data["lines"][0]["line_total"], 10000)
        self.assertEqual(data["payment"], {"method": "cash", "cash_tendered": 0, "change_due": 0})
        self.assertFalse(data["locked"])

    def test_to_amount(self):
        self.assertEqual(to_amount("25.000"), 25000)
        self.assertEqual(to_amount(12500.4), 12500)
        self.assertEqual(to_amount("10000.50"), 10001)
        self.assertEqual(to_amount("Rp 1.500,00"), 1500)
        self.assertEqual(to_amount("1,500"), 1500)
        self.assertEqual(to_amount(2500.5), 2501)
        self.assertEqual(to_amount(None), 0)
        self.assertEqual(to_amount(""), 0)


if __name__ == "__main__":
    unittest.main()
