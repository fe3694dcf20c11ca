import json
import os
import sqlite3
import tempfile
import unittest

import pos_service as ps


def _txn(receipt_number, items, method="cash", cash=None, created_at="2024-03-01T09:00:00"):
    subtotal = sum(i["quantity"] * i["unit_price"] for i in items)
    return {
        "receipt_number": receipt_number,
        "items": [dict(i, subtotal=i["quantity"] * i["unit_price"]) for i in items],
        "subtotal": subtotal,
        "tax": 0,
        "total": subtotal,
        "payment_method": method,
        "cash_received": cash if cash is not None else subtotal,
        "change": (cash - subtotal) if cash is not None else 0,
        "created_at": created_at,
    }


class PosServiceTest(unittest.TestCase):
    def setUp(self):
        self.conn = ps.connect(":memory:")
        ps.init_db(self.conn, ps.SCHEMA_PATH)
        self.minuman = ps.add_category(self.conn, "Minuman", "Drinks")

    def tearDown(self):
        self.conn.close()

    def _add(self, name, price=10000, stock=5, category_id=None):
        product = {"name": name, "price": price, "stock": stock}
        if category_id is not None:
            product["category_id"] = category_id
        return ps.add_product(self.conn, product)

    # ---------- catalog ----------
    def test_init_creates_default_category(self):
        names = [c["name"] for c in ps.list_categories(self.conn)]
        self.assertIn("Uncategorized", names)
        self.assertFalse(ps.ensure_schema(self.conn, ps.SCHEMA_PATH))

    def test_duplicate_category_rejected(self):
        with self.assertRaises(sqlite3.IntegrityError):
            ps.add_category(self.conn, "Minuman")
        with self.assertRaises(ValueError):
            ps.add_category(self.conn, "  ")

    def test_sku_generation(self):
        kopi = self._add("Kopi Bubuk", category_id=self.minuman["id"])
        teh = self._add("Teh Celup", category_id=self.minuman["id"])
        loose = self._add("Gula")
        self.assertEqual(kopi["sku"], "MIN-KOP-001")
        self.assertEqual(teh["sku"], "MIN-TEH-002")
        self.assertEqual(loose["sku"], "PRD-GUL-001")
        self.assertEqual(kopi["category_name"], "Minuman")

    def test_sku_skips_taken_values(self):
        kopi = self._add("Kopi", category_id=self.minuman["id"])
        self._add("Kopi Susu", category_id=self.minuman["id"])
        ps.delete_product(self.conn, kopi["id"])
        again = self._add("Kopi Hitam", category_id=self.minuman["id"])
        self.assertEqual(again["sku"], "MIN-KOP-003")

    def test_price_is_normalized_to_integer(self):
        product = ps.add_product(self.conn, {"name": "Roti", "price": "Rp 12.500", "stock": 3})
        self.assertEqual(product["price"], 12500)

    def test_decimal_price_string_keeps_its_value(self):
        product = ps.add_product(self.conn, {"name": "Kopi", "price": "10000.50", "stock": 3})
        self.assertEqual(product["price"], 10001)

    def test_update_product(self):
        kopi = self._add("Kopi", stock=5)
        updated = ps.update_product(self.conn, kopi["id"], {"stock": 2, "sku": "HACKED", "rack_location": "A9"})
        self.assertEqual(updated["stock"], 2)
        self.assertEqual(updated["rack_location"], "A9")
        self.assertEqual(updated["sku"], kopi["sku"])

    def test_update_product_rejects_negative_stock_and_unknown_id(self):
        kopi = self._add("Kopi", stock=5)
        with self.assertRaises(ValueError):
            ps.update_product(self.conn, kopi["id"], {"stock": -1})
        with self.assertRaises(LookupError):
            ps.update_product(self.conn, 999, {"stock": 1})
        self.assertEqual(ps.get_product(self.conn, kopi["id"])["stock"], 5)

    def test_search_products(self):
        self._add("Kopi Bubuk", category_id=self.minuman["id"])
        self._add("Sabun Mandi")
        self.assertEqual([p["name"] for p in ps.search_products(self.conn, "kopi")], ["Kopi Bubuk"])
        self.assertEqual([p["name"] for p in ps.search_products(self.conn, "min-kop")], ["Kopi Bubuk"])
        self.assertEqual(len(ps.search_products(self.conn, None, self.minuman["id"])), 1)
        self.assertEqual(len(ps.search_products(self.conn, "", "all")), 2)

    def test_suppliers(self):
        supplier = ps.add_supplier(self.conn, {"name": "PT Sumber", "phone": "021"})
        ps.update_supplier(self.conn, supplier["id"], {"email": "a@b.example"})
        self.assertEqual(ps.list_suppliers(self.conn)[0]["email"], "a@b.example")
        self.assertTrue(ps.delete_supplier(self.conn, supplier["id"]))
        with self.assertRaises(ValueError):
            ps.add_supplier(self.conn, {"phone": "021"})

    def test_deleting_category_detaches_products(self):
        kopi = self._add("Kopi", category_id=self.minuman["id"])
        ps.delete_category(self.conn, self.minuman["id"])
        self.assertIsNone(ps.get_product(self.conn, kopi["id"])["category_id"])

    # ---------- transactions ----------
    def test_append_and_read_transaction(self):
        stored = ps.append_transaction(self.conn, _txn("TRX-1", [
            {"product_id": "1", "product_name": "Kopi", "quantity": 2, "unit_price": 10000},
            {"product_id": "2", "product_name": "Teh", "quantity": 1, "unit_price": 5000},
        ], cash=30000))
        self.assertIsInstance(stored["id"], int)
        self.assertEqual(stored["total"], 25000)
        self.assertEqual(stored["change"], 5000)
        self.assertEqual([i["product_name"] for i in stored["items"]], ["Kopi", "Teh"])
        self.assertEqual(ps.get_transaction_by_receipt(self.conn, "TRX-1")["id"], stored["id"])

        payload = self.conn.execute("SELECT payload_json FROM transactions WHERE id=?", (stored["id"],)).fetchone()[0]
        self.assertEqual(json.loads(payload)["receipt_number"], "TRX-1")

    def test_duplicate_receipt_rejected(self):
        items = [{"product_id": "1", "product_name": "Kopi", "quantity": 1, "unit_price": 10000}]
        ps.append_transaction(self.conn, _txn("TRX-2", items))
        with self.assertRaises(ValueError):
            ps.append_transaction(self.conn, _txn("TRX-2", items))
        self.assertEqual(len(ps.list_transactions(self.conn)), 1)
        # connection is usable after the rejected insert
        ps.append_transaction(self.conn, _txn("TRX-3", items))

    def test_transaction_requires_items(self):
        with self.assertRaises(ValueError):
            ps.append_transaction(self.conn, _txn("TRX-4", []))

    def test_card_transaction_reads_back_total_as_received(self):
        items = [{"product_id": "1", "product_name": "Kopi", "quantity": 1, "unit_price": 10000}]
        stored = ps.append_transaction(self.conn, _txn("TRX-5", items, method="card"))
        self.assertEqual(stored["cash_received"], 10000)
        self.assertEqual(stored["change"], 0)

    def test_list_transactions_by_day(self):
        items = [{"product_id": "1", "product_name": "Kopi", "quantity": 1, "unit_price": 10000}]
        ps.append_transaction(self.conn, _txn("TRX-A", items, created_at="2024-03-01T09:00:00"))
        ps.append_transaction(self.conn, _txn("TRX-B", items, created_at="2024-03-01T18:00:00"))
        ps.append_transaction(self.conn, _txn("TRX-C", items, created_at="2024-03-02T09:00:00"))
        day = ps.list_transactions(self.conn, day="2024-03-01")
        self.assertEqual([t["receipt_number"] for t in day], ["TRX-B", "TRX-A"])
        self.assertEqual(len(ps.list_transactions(self.conn, limit=1)), 1)

    # ---------- reports ----------
    def test_stock_summary_and_low_stock(self):
        self._add("Kopi", price=10000, stock=12)
        self._add("Beras", price=75000, stock=3)
        self._add("Gula", price=16000, stock=0)
        summary = ps.stock_summary(self.conn, low_threshold=5)
        self.assertEqual(summary["total_products"], 3)
        self.assertEqual(summary["total_stock"], 15)
        self.assertEqual(summary["total_value"], 10000 * 12 + 75000 * 3)
        self.assertEqual((summary["out_of_stock"], summary["low_stock"], summary["healthy_stock"]), (1, 1, 1))
        self.assertEqual([p["name"] for p in ps.low_stock_products(self.conn, 3)], ["Beras"])

    def test_sales_summary(self):
        ps.append_transaction(self.conn, _txn("TRX-S1", [
            {"product_id": "1", "product_name": "Kopi", "quantity": 2, "unit_price": 10000},
        ], created_at="2024-03-01T09:00:00"))
        ps.append_transaction(self.conn, _txn("TRX-S2", [
            {"product_id": "1", "product_name": "Kopi", "quantity": 1, "unit_price": 10000},
            {"product_id": "2", "product_name": "Teh", "quantity": 1, "unit_price": 5000},
        ], method="card", created_at="2024-03-01T10:00:00"))
        report = ps.sales_summary(self.conn, "2024-03-01")
        self.assertEqual(report["transactions"], 2)
        self.assertEqual(report["revenue"], 35000)
        self.assertEqual(report["items_sold"], 4)
        self.assertEqual(report["by_payment_method"], {"cash": 20000, "card": 15000})
        self.assertEqual(report["top_products"][0]["product_name"], "Kopi")
        self.assertEqual(ps.sales_summary(self.conn, "2024-03-02")["transactions"], 0)

    # ---------- stores ----------
    def test_store_adapters(self):
        kopi = self._add("Kopi", stock=4)
        catalog = ps.CatalogStore(self.conn)
        catalog.update_product(str(kopi["id"]), {"stock": 1})
        self.assertEqual(catalog.get_product(str(kopi["id"]))["stock"], 1)

        store = ps.TransactionStore(self.conn)
        stored = store.append(_txn("TRX-ST", [{"product_id": str(kopi["id"]), "product_name": "Kopi", "quantity": 1, "unit_price": 10000}]))
        self.assertEqual(store.get(stored["id"])["receipt_number"], "TRX-ST")
        self.assertEqual(store.get_by_receipt("TRX-ST")["id"], stored["id"])
        self.assertEqual(len(store.list("2024-03-01")), 1)

    # ---------- export / import ----------
    def test_export_ndjson(self):
        self._add("Kopi")
        ps.append_transaction(self.conn, _txn("TRX-E", [
            {"product_id": "1", "product_name": "Kopi", "quantity": 1, "unit_price": 10000},
        ]))
        with tempfile.TemporaryDirectory() as tmp:
            paths = ps.export_ndjson(self.conn, tmp, "2024-03-01")
            with open(paths["products"], encoding="utf-8") as f:
                products = [json.loads(line) for line in f]
            with open(paths["transactions"], encoding="utf-8") as f:
                txns = [json.loads(line) for line in f]
        self.assertTrue(paths["products"].endswith("products_2024-03-01.ndjson"))
        self.assertEqual(products[0]["name"], "Kopi")
        self.assertEqual(txns[0]["receipt_number"], "TRX-E")

    def test_import_products_upserts_by_sku(self):
        kopi = self._add("Kopi", stock=1)
        lines = [
            json.dumps({"sku": kopi["sku"], "name": "Kopi", "stock": 9}),
            json.dumps({"name": "Sirup Marjan", "price": 30000, "stock": 4, "category_name": "Minuman"}),
            json.dumps({"name": "Es Batu", "category_name": "Frozen"}),
            "not json",
            json.dumps({"price": 100}),
        ]
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "products.ndjson")
            with open(path, "w", encoding="utf-8") as f:
                f.write("\n".join(lines) + "\n")
            counts = ps.import_products_ndjson(self.conn, path)
        self.assertEqual(counts, {"created": 2, "updated": 1, "skipped": 2})
        self.assertEqual(ps.get_product(self.conn, kopi["id"])["stock"], 9)
        sirup = ps.search_products(self.conn, "sirup")[0]
        self.assertEqual(sirup["category_name"], "Minuman")
        self.assertIn("Frozen", [c["name"] for c in ps.list_categories(self.conn)])

    def test_demo_seed_is_repeatable(self):
        ps.demo_seed(self.conn)
        ps.demo_seed(self.conn)
        self.assertEqual(len(ps.list_products(self.conn)), 8)
        self.assertEqual(len(ps.list_suppliers(self.conn)), 1)


if __name__ == "__main__":
    unittest.main()
