"""
In-memory cart for a single cashier session.

Stock ceilings are checked against the last product snapshot handed to the
cart (via add_item or refresh_products), not against a live catalog read.
Aggregates are recomputed synchronously at the end of every mutation.
"""
import logging
import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional

from pos_receipts import parse_rupiah

logger = logging.getLogger(__name__)

PAYMENT_CASH = 'cash'
PAYMENT_CARD = 'card'
PAYMENT_METHODS = (PAYMENT_CASH, PAYMENT_CARD)


def to_amount(value: Any) -> int:
    """Normalize a price/amount to whole Rupiah, rounding half up.

    Floats and plain numeric strings keep their value ("10000.50" -> 10001);
    formatted Rupiah text is read with its separators ("Rp 30.000" -> 30000).
    """
    if value in (None, '', False):
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            return 0
        return int(Decimal(repr(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    return parse_rupiah(value)


def _product_key(product_id: Any) -> str:
    return str(product_id).strip() if product_id is not None else ''


def _product_stock(product: Dict[str, Any]) -> int:
    try:
        return int(product.get('stock') or 0)
    except (TypeError, ValueError):
        return 0


class CartLine:
    def __init__(self, product_id: str, name: str, unit_price: int, quantity: int = 1):
        self.product_id = product_id
        self.name = name
        self.unit_price = unit_price
        self.quantity = quantity

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            'product_id': self.product_id,
            'name': self.name,
            'unit_price': self.unit_price,
            'quantity': self.quantity,
            'line_total': self.line_total,
        }

    def __repr__(self):
        return f"CartLine({self.product_id!r}, qty={self.quantity}, total={self.line_total})"


class CartEngine:
    """Cart lines keyed by product id, in insertion order, plus the payment state."""

    def __init__(self, products: Optional[Iterable[Dict[str, Any]]] = None):
        self._lines: Dict[str, CartLine] = {}
        self._products: Dict[str, Dict[str, Any]] = {}
        self.payment_method = PAYMENT_CASH
        self.cash_tendered = 0
        self.subtotal = 0
        self.grand_total = 0
        self.change_due = 0
        self.locked = False
        self.warnings: List[str] = []
        if products:
            self.refresh_products(products)

    # ---------- snapshot ----------
    def refresh_products(self, products: Iterable[Dict[str, Any]]) -> None:
        """Replace the product snapshot used for stock ceiling checks.

        Lines above the new stock are clamped to it, or dropped when the product
        is out of stock. A locked cart keeps its lines.
        """
        self._products = {}
        for product in products or []:
            key = _product_key(product.get('id'))
            if key:
                self._products[key] = dict(product)
        if self.locked:
            return
        changed = False
        for key in list(self._lines):
            stock = self.current_stock(key)
            if stock is not None:
                changed = self._fit_to_stock(key, stock) or changed
        if changed:
            self.recompute()

    def _fit_to_stock(self, key: str, stock: int) -> bool:
        line = self._lines.get(key)
        if line is None or line.quantity <= stock:
            return False
        if stock <= 0:
            del self._lines[key]
            self._warn(f'{line.name} is out of stock and was removed from the cart')
        else:
            line.quantity = stock
            self._warn(f'Only {stock} {line.name} left in stock; quantity reduced')
        return True

    def product_snapshot(self, product_id: Any) -> Optional[Dict[str, Any]]:
        return self._products.get(_product_key(product_id))

    def current_stock(self, product_id: Any) -> Optional[int]:
        product = self.product_snapshot(product_id)
        if product is None:
            return None
        return _product_stock(product)

    # ---------- read side ----------
    @property
    def lines(self) -> List[CartLine]:
        return list(self._lines.values())

    def get_line(self, product_id: Any) -> Optional[CartLine]:
        return self._lines.get(_product_key(product_id))

    def is_empty(self) -> bool:
        return not self._lines

    def __len__(self):
        return len(self._lines)

    def effective_tendered(self) -> int:
        if self.payment_method == PAYMENT_CARD:
            return self.grand_total
        return self.cash_tendered

    def payment_state(self) -> Dict[str, Any]:
        return {
            'method': self.payment_method,
            'cash_tendered': self.effective_tendered(),
            'change_due': self.change_due,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            'lines': [line.to_dict() for line in self._lines.values()],
            'subtotal': self.subtotal,
            'grand_total': self.grand_total,
            'payment': self.payment_state(),
            'locked': self.locked,
        }

    def drain_warnings(self) -> List[str]:
        out, self.warnings = self.warnings, []
        return out

    # ---------- mutations ----------
    def _warn(self, message: str) -> bool:
        logger.warning(message)
        self.warnings.append(message)
        return False

    def _refuse_if_locked(self) -> bool:
        if self.locked:
            self._warn('Cart is locked while a sale is being completed')
            return True
        return False

    def add_item(self, product: Dict[str, Any]) -> bool:
        if self._refuse_if_locked():
            return False
        key = _product_key(product.get('id'))
        if not key:
            return self._warn('Product has no id')
        self._products[key] = dict(product)
        name = product.get('name') or key
        stock = _product_stock(product)
        if self._fit_to_stock(key, stock):
            self.recompute()
            return False
        if stock <= 0:
            return self._warn(f'{name} is out of stock')

        line = self._lines.get(key)
        if line is not None:
            if line.quantity + 1 > stock:
                return self._warn(f'Maximum available stock reached for {name}')
            line.quantity += 1
        else:
            self._lines[key] = CartLine(key, name, to_amount(product.get('price')), 1)
        self.recompute()
        return True

    def remove_item(self, product_id: Any) -> bool:
        if self._refuse_if_locked():
            return False
        removed = self._lines.pop(_product_key(product_id), None)
        self.recompute()
        return removed is not None

    def set_quantity(self, product_id: Any, new_quantity: Any) -> bool:
        if self._refuse_if_locked():
            return False
        try:
            new_quantity = int(new_quantity)
        except (TypeError, ValueError):
            return False
        if new_quantity < 1:
            return False
        line = self.get_line(product_id)
        if line is None:
            return False
        stock = self.current_stock(product_id)
        if stock is None:
            return self._warn(f'No stock information for {line.name}; reload products first')
        if new_quantity > stock:
            return self._warn(f'Maximum available stock reached for {line.name}')
        line.quantity = new_quantity
        self.recompute()
        return True

    def set_payment_method(self, method: str) -> bool:
        if self._refuse_if_locked():
            return False
        method = (method or '').strip().lower()
        if method not in PAYMENT_METHODS:
            return self._warn(f'Unsupported payment method: {method or "(empty)"}')
        self.payment_method = method
        self.recompute()
        return True

    def set_cash_tendered(self, amount: Any) -> bool:
        if self._refuse_if_locked():
            return False
        self.cash_tendered = max(0, to_amount(amount))
        self.recompute()
        return True

    def clear(self) -> None:
        """Empty the cart and zero the payment state. The lock is left as is."""
        self._lines = {}
        self.cash_tendered = 0
        self.recompute()

    def lock(self) -> None:
        self.locked = True

    def unlock(self) -> None:
        self.locked = False

    def recompute(self) -> None:
        self.subtotal = sum(line.line_total for line in self._lines.values())
        self.grand_total = self.subtotal
        if self.payment_method == PAYMENT_CARD:
            self.change_due = 0
        else:
            self.change_due = max(0, self.cash_tendered - self.grand_total)
