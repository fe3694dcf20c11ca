#!/usr/bin/env python3
# Inventory POS store: SQLite catalog + transactions, reports, NDJSON export/import
import os, sys, json, sqlite3, argparse, datetime as dt
from pathlib import Path
from typing import List, Dict, Any, Optional, Iterable

from pos_cart import to_amount

DB_PATH = os.environ.get("POS_DB_PATH", "pos.db")
SCHEMA_PATH = os.environ.get("POS_SCHEMA_PATH", os.path.join(os.path.dirname(os.path.abspath(__file__)), "schema.sql"))
EXPORT_DIR = os.environ.get("POS_EXPORT_DIR", "pos_export")
DEFAULT_CATEGORY = "Uncategorized"

PRODUCT_FIELDS = ("name", "description", "price", "stock", "category_id", "rack_location")
CATEGORY_FIELDS = ("name", "description")
SUPPLIER_FIELDS = ("name", "email", "phone", "address")
_ENTITY_LABELS = {"products": "Product", "categories": "Category", "suppliers": "Supplier"}


def iso_now() -> str:
    return dt.datetime.utcnow().replace(microsecond=0).isoformat() + "Z"


def connect(db_path: str = DB_PATH) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path, timeout=30, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    if db_path != ":memory:":
        conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    conn.execute("PRAGMA foreign_keys=ON;")
    return conn


def init_db(conn: sqlite3.Connection, schema_path: str = SCHEMA_PATH):
    with open(schema_path, "r", encoding="utf-8") as f:
        conn.executescript(f.read())
    _ensure_default_category(conn)
    conn.commit()


def ensure_schema(conn: sqlite3.Connection, schema_path: str = SCHEMA_PATH) -> bool:
    """Create tables when the products table is missing. Returns True if the schema was applied."""
    row = conn.execute("SELECT name FROM sqlite_master WHERE type='table' AND name='products'").fetchone()
    if row:
        return False
    init_db(conn, schema_path)
    return True


def _ensure_default_category(conn: sqlite3.Connection):
    now = iso_now()
    conn.execute(
        "INSERT OR IGNORE INTO categories (name, description, created_utc, updated_utc) VALUES (?,?,?,?)",
        (DEFAULT_CATEGORY, "Default category for products", now, now)
    )


def _row_dict(row: Optional[sqlite3.Row]) -> Optional[Dict[str, Any]]:
    return dict(row) if row is not None else None


def _pick(fields: Dict[str, Any], allowed: Iterable[str]) -> Dict[str, Any]:
    return {k: v for k, v in (fields or {}).items() if k in allowed}


def _update_row(conn: sqlite3.Connection, table: str, row_id: Any, values: Dict[str, Any]):
    if not values:
        return
    values = dict(values, updated_utc=iso_now())
    assignments = ", ".join(f"{k}=?" for k in values)
    cur = conn.execute(f"UPDATE {table} SET {assignments} WHERE id=?", (*values.values(), row_id))
    if cur.rowcount == 0:
        conn.rollback()
        raise LookupError(f"{_ENTITY_LABELS.get(table, table)} {row_id} not found")


# ---------- CATEGORIES ----------
def add_category(conn: sqlite3.Connection, name: str, description: str = "") -> Dict[str, Any]:
    name = (name or "").strip()
    if not name:
        raise ValueError("Category name is required")
    now = iso_now()
    try:
        cur = conn.execute(
            "INSERT INTO categories (name, description, created_utc, updated_utc) VALUES (?,?,?,?)",
            (name, description or "", now, now)
        )
    except sqlite3.IntegrityError:
        conn.rollback()
        raise
    conn.commit()
    return get_category(conn, cur.lastrowid)


def get_category(conn: sqlite3.Connection, category_id: Any) -> Optional[Dict[str, Any]]:
    return _row_dict(conn.execute("SELECT * FROM categories WHERE id=?", (category_id,)).fetchone())


def list_categories(conn: sqlite3.Connection) -> List[Dict[str, Any]]:
    return [dict(r) for r in conn.execute("SELECT * FROM categories ORDER BY name")]


def update_category(conn: sqlite3.Connection, category_id: Any, fields: Dict[str, Any]) -> Dict[str, Any]:
    _update_row(conn, "categories", category_id, _pick(fields, CATEGORY_FIELDS))
    conn.commit()
    return get_category(conn, category_id)


def delete_category(conn: sqlite3.Connection, category_id: Any) -> bool:
    cur = conn.execute("DELETE FROM categories WHERE id=?", (category_id,))
    conn.commit()
    return cur.rowcount > 0


# ---------- SUPPLIERS ----------
def add_supplier(conn: sqlite3.Connection, supplier: Dict[str, Any]) -> Dict[str, Any]:
    values = _pick(supplier, SUPPLIER_FIELDS)
    if not (values.get("name") or "").strip():
        raise ValueError("Supplier name is required")
    now = iso_now()
    cur = conn.execute(
        "INSERT INTO suppliers (name, email, phone, address, created_utc, updated_utc) VALUES (?,?,?,?,?,?)",
        (values["name"].strip(), values.get("email") or "", values.get("phone") or "", values.get("address") or "", now, now)
    )
    conn.commit()
    return _row_dict(conn.execute("SELECT * FROM suppliers WHERE id=?", (cur.lastrowid,)).fetchone())


def list_suppliers(conn: sqlite3.Connection) -> List[Dict[str, Any]]:
    return [dict(r) for r in conn.execute("SELECT * FROM suppliers ORDER BY name")]


def update_supplier(conn: sqlite3.Connection, supplier_id: Any, fields: Dict[str, Any]) -> Dict[str, Any]:
    _update_row(conn, "suppliers", supplier_id, _pick(fields, SUPPLIER_FIELDS))
    conn.commit()
    return _row_dict(conn.execute("SELECT * FROM suppliers WHERE id=?", (supplier_id,)).fetchone())


def delete_supplier(conn: sqlite3.Connection, supplier_id: Any) -> bool:
    cur = conn.execute("DELETE FROM suppliers WHERE id=?", (supplier_id,))
    conn.commit()
    return cur.rowcount > 0


# ---------- PRODUCTS ----------
_PRODUCT_SELECT = """
    SELECT p.*, c.name AS category_name
    FROM products p LEFT JOIN categories c ON c.id = p.category_id
"""


def generate_sku(conn: sqlite3.Connection, name: str, category_id: Any = None) -> str:
    """CAT-PRD-NNN: category prefix (or PRD), product prefix, running count within the category."""
    category = get_category(conn, category_id) if category_id is not None else None
    cat_prefix = (category["name"][:3].upper() if category else "PRD")
    prod_prefix = (name or "").strip()[:3].upper() or "XXX"
    if category_id is None:
        row = conn.execute("SELECT COUNT(*) AS c FROM products WHERE category_id IS NULL").fetchone()
    else:
        row = conn.execute("SELECT COUNT(*) AS c FROM products WHERE category_id=?", (category_id,)).fetchone()
    count = int(row["c"]) + 1
    sku = f"{cat_prefix}-{prod_prefix}-{count:03d}"
    # Deleted products can leave gaps; bump until the SKU is free.
    while conn.execute("SELECT 1 FROM products WHERE sku=?", (sku,)).fetchone():
        count += 1
        sku = f"{cat_prefix}-{prod_prefix}-{count:03d}"
    return sku


def _normalize_product_values(values: Dict[str, Any]) -> Dict[str, Any]:
    if "price" in values:
        values["price"] = max(0, to_amount(values["price"]))
    if "stock" in values:
        try:
            values["stock"] = int(values["stock"])
        except (TypeError, ValueError):
            raise ValueError(f"Invalid stock value: {values['stock']!r}")
        if values["stock"] < 0:
            raise ValueError("Stock cannot be negative")
    if "name" in values:
        values["name"] = (values["name"] or "").strip()
        if not values["name"]:
            raise ValueError("Product name is required")
    if values.get("category_id") in ("", None):
        values.pop("category_id", None)
    return values


def add_product(conn: sqlite3.Connection, product: Dict[str, Any]) -> Dict[str, Any]:
    """
    product = {'name': 'Kopi Bubuk', 'price': 15000, 'stock': 10, 'category_id': 2,
               'description': '', 'rack_location': 'A1'}
    """
    values = _normalize_product_values(_pick(product, PRODUCT_FIELDS))
    if "name" not in values:
        raise ValueError("Product name is required")
    now = iso_now()
    sku = (product.get("sku") or "").strip() or generate_sku(conn, values["name"], values.get("category_id"))
    try:
        cur = conn.execute("""
            INSERT INTO products (sku, name, description, price, stock, category_id, rack_location, created_utc, updated_utc)
            VALUES (?,?,?,?,?,?,?,?,?)
        """, (sku, values["name"], values.get("description") or "", values.get("price", 0), values.get("stock", 0),
              values.get("category_id"), values.get("rack_location") or "", now, now))
    except sqlite3.IntegrityError:
        conn.rollback()
        raise
    conn.commit()
    return get_product(conn, cur.lastrowid)


def get_product(conn: sqlite3.Connection, product_id: Any) -> Optional[Dict[str, Any]]:
    return _row_dict(conn.execute(_PRODUCT_SELECT + " WHERE p.id=?", (product_id,)).fetchone())


def get_product_by_sku(conn: sqlite3.Connection, sku: str) -> Optional[Dict[str, Any]]:
    return _row_dict(conn.execute(_PRODUCT_SELECT + " WHERE p.sku=?", (sku,)).fetchone())


def list_products(conn: sqlite3.Connection) -> List[Dict[str, Any]]:
    return [dict(r) for r in conn.execute(_PRODUCT_SELECT + " ORDER BY p.name")]


def search_products(conn: sqlite3.Connection, query: Optional[str] = None, category_id: Any = None) -> List[Dict[str, Any]]:
    """Case-insensitive match on name, description, SKU or id; optionally within one category."""
    clauses, params = [], []
    if category_id not in (None, "", "all"):
        clauses.append("p.category_id=?")
        params.append(category_id)
    q = (query or "").strip().lower()
    if q:
        like = f"%{q}%"
        clauses.append("(lower(p.name) LIKE ? OR lower(p.description) LIKE ? OR lower(p.sku) LIKE ? OR CAST(p.id AS TEXT)=?)")
        params += [like, like, like, q]
    where = (" WHERE " + " AND ".join(clauses)) if clauses else ""
    return [dict(r) for r in conn.execute(_PRODUCT_SELECT + where + " ORDER BY p.name", params)]


def update_product(conn: sqlite3.Connection, product_id: Any, fields: Dict[str, Any]) -> Dict[str, Any]:
    """Partial update. SKU is never rewritten; stock must stay >= 0."""
    values = _normalize_product_values(_pick(fields, PRODUCT_FIELDS))
    if "category_id" in fields and fields.get("category_id") in ("", None):
        values["category_id"] = None
    if values:
        _update_row(conn, "products", product_id, values)
        conn.commit()
    product = get_product(conn, product_id)
    if product is None:
        raise LookupError(f"Product {product_id} not found")
    return product


def delete_product(conn: sqlite3.Connection, product_id: Any) -> bool:
    cur = conn.execute("DELETE FROM products WHERE id=?", (product_id,))
    conn.commit()
    return cur.rowcount > 0


# ---------- TRANSACTIONS ----------
def append_transaction(conn: sqlite3.Connection, txn: Dict[str, Any]) -> Dict[str, Any]:
    """
    txn = {
      'receipt_number': 'TRX-1700000000000-42',
      'items': [ {'product_id': '1', 'product_name': 'Kopi', 'quantity': 2, 'unit_price': 10000, 'subtotal': 20000} ],
      'subtotal': 20000, 'tax': 0, 'total': 20000,
      'payment_method': 'cash', 'cash_received': 50000, 'change': 30000,
      'created_at': '2026-01-01T10:00:00'
    }
    Returns the stored record with its own integer `id`.
    """
    receipt_number = (txn.get("receipt_number") or "").strip()
    if not receipt_number:
        raise ValueError("receipt_number is required")
    items = txn.get("items") or []
    if not items:
        raise ValueError("Transaction has no items")
    created = txn.get("created_at") or iso_now()
    is_cash = (txn.get("payment_method") or "").lower() == "cash"
    record = {
        "receipt_number": receipt_number,
        "items": items,
        "subtotal": int(txn.get("subtotal") or 0),
        "tax": int(txn.get("tax") or 0),
        "total": int(txn.get("total") or 0),
        "payment_method": txn.get("payment_method") or "cash",
        "cash_received": int(txn.get("cash_received") or 0),
        "change": int(txn.get("change") or 0),
        "created_at": created,
    }
    try:
        conn.execute("BEGIN IMMEDIATE")
        cur = conn.execute("""
            INSERT INTO transactions (receipt_number, subtotal, tax, total, payment_method, cash_received, change, created_utc, payload_json)
            VALUES (?,?,?,?,?,?,?,?,?)
        """, (receipt_number, record["subtotal"], record["tax"], record["total"], record["payment_method"],
              record["cash_received"] if is_cash else None, record["change"] if is_cash else None,
              created, json.dumps(record, separators=(",", ":"))))
        txn_id = cur.lastrowid
        for idx, it in enumerate(items, start=1):
            conn.execute("""
                INSERT INTO transaction_items (transaction_id, line_no, product_id, product_name, quantity, unit_price, subtotal)
                VALUES (?,?,?,?,?,?,?)
            """, (txn_id, idx, str(it["product_id"]), it.get("product_name") or "", int(it["quantity"]),
                  int(it["unit_price"]), int(it.get("subtotal") or int(it["quantity"]) * int(it["unit_price"]))))
        conn.commit()
    except sqlite3.IntegrityError as e:
        conn.rollback()
        raise ValueError(f"Transaction {receipt_number} rejected: {e}") from e
    except Exception:
        conn.rollback()
        raise
    return get_transaction(conn, txn_id)


def _transaction_from_row(conn: sqlite3.Connection, row: sqlite3.Row) -> Dict[str, Any]:
    items = [
        {
            "product_id": r["product_id"],
            "product_name": r["product_name"],
            "quantity": r["quantity"],
            "unit_price": r["unit_price"],
            "subtotal": r["subtotal"],
        }
        for r in conn.execute("SELECT * FROM transaction_items WHERE transaction_id=? ORDER BY line_no", (row["id"],))
    ]
    is_cash = (row["payment_method"] or "").lower() == "cash"
    return {
        "id": row["id"],
        "receipt_number": row["receipt_number"],
        "items": items,
        "subtotal": row["subtotal"],
        "tax": row["tax"],
        "total": row["total"],
        "payment_method": row["payment_method"],
        "cash_received": row["cash_received"] if is_cash else row["total"],
        "change": row["change"] if is_cash else 0,
        "created_at": row["created_utc"],
    }


def get_transaction(conn: sqlite3.Connection, txn_id: Any) -> Optional[Dict[str, Any]]:
    row = conn.execute("SELECT * FROM transactions WHERE id=?", (txn_id,)).fetchone()
    return _transaction_from_row(conn, row) if row else None


def get_transaction_by_receipt(conn: sqlite3.Connection, receipt_number: str) -> Optional[Dict[str, Any]]:
    row = conn.execute("SELECT * FROM transactions WHERE receipt_number=?", (receipt_number,)).fetchone()
    return _transaction_from_row(conn, row) if row else None


def list_transactions(conn: sqlite3.Connection, day: Optional[str] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """Newest first. day filters on the 'YYYY-MM-DD' prefix of created_utc."""
    sql = "SELECT * FROM transactions"
    params: List[Any] = []
    if day:
        sql += " WHERE substr(created_utc,1,10)=?"
        params.append(day)
    sql += " ORDER BY created_utc DESC, id DESC"
    if limit:
        sql += " LIMIT ?"
        params.append(int(limit))
    return [_transaction_from_row(conn, r) for r in conn.execute(sql, params).fetchall()]


# ---------- REPORTS ----------
def stock_summary(conn: sqlite3.Connection, low_threshold: int = 5) -> Dict[str, Any]:
    products = list_products(conn)
    out_of_stock = [p for p in products if p["stock"] == 0]
    low = [p for p in products if 0 < p["stock"] <= low_threshold]
    return {
        "total_products": len(products),
        "total_categories": conn.execute("SELECT COUNT(*) AS c FROM categories").fetchone()["c"],
        "total_suppliers": conn.execute("SELECT COUNT(*) AS c FROM suppliers").fetchone()["c"],
        "total_stock": sum(p["stock"] for p in products),
        "total_value": sum(p["price"] * p["stock"] for p in products),
        "out_of_stock": len(out_of_stock),
        "low_stock": len(low),
        "healthy_stock": len(products) - len(out_of_stock) - len(low),
        "low_threshold": low_threshold,
    }


def low_stock_products(conn: sqlite3.Connection, max_stock: int = 3) -> List[Dict[str, Any]]:
    return [dict(r) for r in conn.execute(
        _PRODUCT_SELECT + " WHERE p.stock > 0 AND p.stock <= ? ORDER BY p.stock, p.name", (max_stock,)
    )]


def sales_summary(conn: sqlite3.Connection, day: Optional[str] = None) -> Dict[str, Any]:
    if day is None:
        day = dt.date.today().isoformat()
    txns = list_transactions(conn, day=day)
    by_method: Dict[str, int] = {}
    qty_by_product: Dict[str, Dict[str, Any]] = {}
    for t in txns:
        by_method[t["payment_method"]] = by_method.get(t["payment_method"], 0) + t["total"]
        for it in t["items"]:
            entry = qty_by_product.setdefault(it["product_id"], {"product_id": it["product_id"], "product_name": it["product_name"], "quantity": 0, "revenue": 0})
            entry["quantity"] += it["quantity"]
            entry["revenue"] += it["subtotal"]
    top = sorted(qty_by_product.values(), key=lambda e: (-e["quantity"], e["product_name"]))
    return {
        "date": day,
        "transactions": len(txns),
        "revenue": sum(t["total"] for t in txns),
        "items_sold": sum(e["quantity"] for e in top),
        "by_payment_method": by_method,
        "top_products": top[:10],
    }


# ---------- STORE ADAPTERS ----------
class CatalogStore:
    """Catalog collaborator for the checkout orchestrator, backed by SQLite."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def list_products(self) -> List[Dict[str, Any]]:
        return list_products(self.conn)

    def get_product(self, product_id: Any) -> Optional[Dict[str, Any]]:
        return get_product(self.conn, product_id)

    def update_product(self, product_id: Any, fields: Dict[str, Any]) -> Dict[str, Any]:
        return update_product(self.conn, product_id, fields)


class TransactionStore:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def append(self, transaction: Dict[str, Any]) -> Dict[str, Any]:
        return append_transaction(self.conn, transaction)

    def list(self, day: Optional[str] = None) -> List[Dict[str, Any]]:
        return list_transactions(self.conn, day=day)

    def get(self, txn_id: Any) -> Optional[Dict[str, Any]]:
        return get_transaction(self.conn, txn_id)

    def get_by_receipt(self, receipt_number: str) -> Optional[Dict[str, Any]]:
        return get_transaction_by_receipt(self.conn, receipt_number)


# ---------- EXPORT / IMPORT ----------
def ensure_dir(p: str):
    Path(p).mkdir(parents=True, exist_ok=True)


def export_ndjson(conn: sqlite3.Connection, out_dir: str = EXPORT_DIR, day: Optional[str] = None) -> Dict[str, str]:
    """
    day: 'YYYY-MM-DD'. Defaults to today.
    Writes the full product list and that day's transactions as NDJSON.
    """
    if day is None:
        day = dt.date.today().isoformat()
    ensure_dir(out_dir)
    products_path = Path(out_dir) / f"products_{day}.ndjson"
    txn_path = Path(out_dir) / f"transactions_{day}.ndjson"

    with open(products_path, "w", encoding="utf-8") as f:
        for p in list_products(conn):
            f.write(json.dumps(p, separators=(",", ":"), ensure_ascii=False) + "\n")

    with open(txn_path, "w", encoding="utf-8") as f:
        for t in reversed(list_transactions(conn, day=day)):
            f.write(json.dumps(t, separators=(",", ":"), ensure_ascii=False) + "\n")

    return {"products": str(products_path), "transactions": str(txn_path)}


def import_products_ndjson(conn: sqlite3.Connection, path: str) -> Dict[str, int]:
    """Upsert products by SKU from an NDJSON file. Category names are created on demand."""
    counts = {"created": 0, "updated": 0, "skipped": 0}
    categories = {c["name"].lower(): c["id"] for c in list_categories(conn)}
    with open(path, "r", encoding="utf-8") as f:
        for raw in f:
            raw = raw.strip()
            if not raw:
                continue
            try:
                rec = json.loads(raw)
            except ValueError:
                counts["skipped"] += 1
                continue
            cat_name = (rec.get("category_name") or "").strip()
            if cat_name and rec.get("category_id") is None:
                if cat_name.lower() not in categories:
                    categories[cat_name.lower()] = add_category(conn, cat_name)["id"]
                rec["category_id"] = categories[cat_name.lower()]
            try:
                existing = get_product_by_sku(conn, rec.get("sku") or "") if rec.get("sku") else None
                if existing:
                    update_product(conn, existing["id"], rec)
                    counts["updated"] += 1
                else:
                    add_product(conn, rec)
                    counts["created"] += 1
            except (ValueError, LookupError, sqlite3.IntegrityError) as e:
                print(f"Skipping product record {rec.get('sku') or rec.get('name')}: {e}", file=sys.stderr)
                counts["skipped"] += 1
    return counts


# ---------- DEMO & CLI ----------
def demo_seed(conn: sqlite3.Connection):
    """Seed a small grocery catalog across three categories."""
    ensure_schema(conn)
    cats = {}
    for name, desc in [("Minuman", "Drinks"), ("Makanan", "Food"), ("Kebersihan", "Household")]:
        existing = conn.execute("SELECT id FROM categories WHERE name=?", (name,)).fetchone()
        cats[name] = existing["id"] if existing else add_category(conn, name, desc)["id"]
    catalog = [
        ("Kopi Bubuk 200g", 25000, 12, "Minuman", "A1"),
        ("Teh Celup 25s", 10000, 20, "Minuman", "A2"),
        ("Air Mineral 600ml", 5000, 48, "Minuman", "A3"),
        ("Mie Instan Goreng", 3500, 60, "Makanan", "B1"),
        ("Beras Premium 5kg", 75000, 3, "Makanan", "B2"),
        ("Gula Pasir 1kg", 16000, 0, "Makanan", "B3"),
        ("Sabun Mandi", 4500, 2, "Kebersihan", "C1"),
        ("Deterjen 800g", 22000, 9, "Kebersihan", "C2"),
    ]
    for name, price, stock, cat, rack in catalog:
        if conn.execute("SELECT 1 FROM products WHERE name=?", (name,)).fetchone():
            continue
        add_product(conn, {"name": name, "price": price, "stock": stock, "category_id": cats[cat], "rack_location": rack})
    if not list_suppliers(conn):
        add_supplier(conn, {"name": "PT Sumber Makmur", "email": "order@sumbermakmur.example", "phone": "021-555-0101", "address": "Jakarta"})
    print("Demo seed inserted: drinks, food and household products.")


def main():
    ap = argparse.ArgumentParser(description="Inventory POS store")
    ap.add_argument("--init", action="store_true", help="Initialize database schema")
    ap.add_argument("--schema", default=SCHEMA_PATH, help="Path to schema.sql")
    ap.add_argument("--seed", action="store_true", help="Insert demo catalog")
    ap.add_argument("--export", action="store_true", help="Write NDJSON export for --day (default today)")
    ap.add_argument("--day", default=None, help="Day for --export / --report (YYYY-MM-DD)")
    ap.add_argument("--out", default=EXPORT_DIR, help="Export directory")
    ap.add_argument("--import-products", default=None, metavar="NDJSON", help="Upsert products from an NDJSON file")
    ap.add_argument("--report", action="store_true", help="Print stock and sales summary")
    ap.add_argument("--db", default=DB_PATH, help="Path to SQLite DB")
    args = ap.parse_args()

    conn = connect(args.db)

    if args.init:
        init_db(conn, args.schema)
        print("Initialized schema from", args.schema)

    if args.seed:
        demo_seed(conn)

    if args.import_products:
        print("Imported products:", import_products_ndjson(conn, args.import_products))

    if args.export:
        paths = export_ndjson(conn, args.out, args.day)
        print(f"Exported to {paths['products']} and {paths['transactions']}")

    if args.report:
        print(json.dumps({"stock": stock_summary(conn), "sales": sales_summary(conn, args.day)}, indent=2))


if __name__ == "__main__":
    main()
