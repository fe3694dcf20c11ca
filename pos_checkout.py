"""
Checkout orchestration for a single cashier session.

One checkout attempt walks IDLE -> VALIDATING -> RECONCILING_STOCK ->
PERSISTING -> NOTIFYING -> COMPLETE, or stops in FAILED. Stock is
decremented line by line in cart order; a failure part-way leaves the
already-decremented prefix as is (no automatic rollback) and nothing is
persisted.
"""
import json
import logging
import random
import threading
import time
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import pos_receipts
from pos_cart import CartEngine, PAYMENT_CASH

logger = logging.getLogger(__name__)

DEFAULT_RECEIPT_PREFIX = 'TRX'


class CheckoutState(Enum):
    IDLE = 'idle'
    VALIDATING = 'validating'
    RECONCILING_STOCK = 'reconciling_stock'
    PERSISTING = 'persisting'
    NOTIFYING = 'notifying'
    COMPLETE = 'complete'
    FAILED = 'failed'


class CheckoutError(Exception):
    """Base for checkout failures; user_message is what the cashier sees."""
    user_message = 'Transaction failed. Please try again.'

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.user_message)


class EmptyCartError(CheckoutError):
    user_message = 'Cart is empty'


class InsufficientPaymentError(CheckoutError):
    user_message = 'Insufficient payment amount'

    def __init__(self, tendered: int, due: int):
        self.tendered = tendered
        self.due = due
        super().__init__(f'Cash tendered {tendered} is below total {due}')


class StockReconciliationError(CheckoutError):
    user_message = 'Transaction failed. Stock could not be updated.'

    def __init__(self, failed_product_id: str, applied: List[str], cause: Optional[BaseException] = None):
        self.failed_product_id = failed_product_id
        self.applied = list(applied)
        self.cause = cause
        super().__init__(
            f'Stock update failed for product {failed_product_id} '
            f'after {len(self.applied)} line(s) were decremented: {cause}'
        )


class PersistenceError(CheckoutError):
    user_message = 'Stock was updated but the sale may not have been recorded. Please check the transaction history.'

    def __init__(self, receipt_number: str, cause: Optional[BaseException] = None):
        self.receipt_number = receipt_number
        self.cause = cause
        super().__init__(f'Failed to persist transaction {receipt_number}: {cause}')


class NotificationError(CheckoutError):
    """Only ever logged; a failed notification never fails the sale."""
    user_message = 'Sale notification could not be delivered'


class CheckoutInProgressError(CheckoutError):
    user_message = 'A checkout is already in progress'


def generate_receipt_number(prefix: str = DEFAULT_RECEIPT_PREFIX, now: Optional[float] = None, rng: Optional[random.Random] = None) -> str:
    """PREFIX-<epoch millis>-<random 0..999>"""
    millis = int((time.time() if now is None else now) * 1000)
    pick = (rng or random).randint(0, 999)
    return f"{prefix or DEFAULT_RECEIPT_PREFIX}-{millis}-{pick}"


def _iso_now() -> str:
    return datetime.now().replace(microsecond=0).isoformat()


def build_transaction(cart: CartEngine, receipt_number: str, created_at: Optional[str] = None) -> Dict[str, Any]:
    """Transaction record for the current cart state (not yet persisted)."""
    is_cash = cart.payment_method == PAYMENT_CASH
    return {
        'receipt_number': receipt_number,
        'items': [
            {
                'product_id': line.product_id,
                'product_name': line.name,
                'quantity': line.quantity,
                'unit_price': line.unit_price,
                'subtotal': line.line_total,
            }
            for line in cart.lines
        ],
        'subtotal': cart.subtotal,
        'tax': 0,
        'total': cart.grand_total,
        'payment_method': cart.payment_method,
        'cash_received': cart.cash_tendered if is_cash else cart.grand_total,
        'change': cart.change_due if is_cash else 0,
        'created_at': created_at or _iso_now(),
    }


class CheckoutOrchestrator:
    """
    Runs one checkout attempt against explicit collaborators.

    catalog       needs update_product(id, fields); get_product(id) is used when present
    transactions  needs append(txn) returning the stored record (with its own id)
    notifier      optional, needs send(text) -> bool
    """

    def __init__(
        self,
        catalog: Any,
        transactions: Any,
        notifier: Any = None,
        system_name: str = pos_receipts.DEFAULT_SYSTEM_NAME,
        notify_async: bool = True,
        on_state: Optional[Callable[[CheckoutState], None]] = None,
    ):
        self.catalog = catalog
        self.transactions = transactions
        self.notifier = notifier
        self.system_name = system_name
        self.notify_async = notify_async
        self.on_state = on_state
        self.state = CheckoutState.IDLE
        self.history: List[CheckoutState] = [CheckoutState.IDLE]
        self.error: Optional[Exception] = None
        self.applied: List[str] = []
        self.transaction: Optional[Dict[str, Any]] = None
        self.receipt: Optional[Dict[str, Any]] = None
        self.notification_thread: Optional[threading.Thread] = None

    def _enter(self, state: CheckoutState) -> None:
        self.state = state
        self.history.append(state)
        logger.debug('Checkout state -> %s', state.value)
        if self.on_state:
            self.on_state(state)

    def _fail(self, exc: CheckoutError) -> CheckoutError:
        self.error = exc
        self._enter(CheckoutState.FAILED)
        return exc

    def abort(self, exc: Exception) -> None:
        """Move a run that died on an unexpected error to FAILED."""
        if self.state in (CheckoutState.COMPLETE, CheckoutState.FAILED):
            return
        self.error = exc
        self._enter(CheckoutState.FAILED)

    def run(self, cart: CartEngine, receipt_number: str) -> Dict[str, Any]:
        """Complete the sale for `cart`. Returns the persisted transaction or raises a CheckoutError."""
        if self.state is not CheckoutState.IDLE:
            raise CheckoutInProgressError(f'Checkout already used (state={self.state.value})')

        self._enter(CheckoutState.VALIDATING)
        try:
            self._validate(cart)
        except CheckoutError as exc:
            raise self._fail(exc)

        self._enter(CheckoutState.RECONCILING_STOCK)
        try:
            self._reconcile_stock(cart)
        except StockReconciliationError as exc:
            logger.error('Stock reconciliation failed for %s: %s', receipt_number, exc)
            raise self._fail(exc)

        self._enter(CheckoutState.PERSISTING)
        record = build_transaction(cart, receipt_number)
        try:
            stored = self.transactions.append(record)
        except Exception as exc:
            logger.error('Persisting transaction %s failed after stock moved: %s', receipt_number, exc)
            raise self._fail(PersistenceError(receipt_number, exc))
        if not stored:
            raise self._fail(PersistenceError(receipt_number, RuntimeError('store returned no record')))
        self.transaction = dict(record, **stored) if isinstance(stored, dict) else record

        self._enter(CheckoutState.NOTIFYING)
        self.receipt = pos_receipts.build_receipt(self.transaction, self.system_name)
        try:
            self._notify(self.receipt)
        except Exception as exc:
            logger.warning('%s', NotificationError(f'Notification for {receipt_number} could not start: {exc}'))

        self._enter(CheckoutState.COMPLETE)
        logger.info('Sale %s complete: total=%s items=%d', receipt_number, self.transaction.get('total'), len(record['items']))
        return self.transaction

    def _validate(self, cart: CartEngine) -> None:
        if cart.is_empty():
            raise EmptyCartError()
        cart.recompute()
        if cart.payment_method == PAYMENT_CASH and cart.cash_tendered < cart.grand_total:
            raise InsufficientPaymentError(cart.cash_tendered, cart.grand_total)

    def _current_stock(self, cart: CartEngine, product_id: str) -> int:
        getter = getattr(self.catalog, 'get_product', None)
        if callable(getter):
            product = getter(product_id)
            if product is None:
                raise LookupError(f'Product {product_id} not found')
            return int(product.get('stock') or 0)
        stock = cart.current_stock(product_id)
        if stock is None:
            raise LookupError(f'No stock snapshot for product {product_id}')
        return stock

    def _reconcile_stock(self, cart: CartEngine) -> None:
        for line in cart.lines:
            try:
                new_stock = self._current_stock(cart, line.product_id) - line.quantity
                if new_stock < 0:
                    raise ValueError(f'only {new_stock + line.quantity} left, {line.quantity} requested')
                self.catalog.update_product(line.product_id, {'stock': new_stock})
            except Exception as exc:
                raise StockReconciliationError(line.product_id, self.applied, exc) from exc
            self.applied.append(line.product_id)

    def _notify(self, receipt: Dict[str, Any]) -> None:
        if self.notifier is None:
            return
        text = json.dumps(pos_receipts.receipt_summary(receipt), ensure_ascii=False)
        if self.notify_async:
            self.notification_thread = threading.Thread(
                target=_send_notification, args=(self.notifier, text, receipt.get('receipt_number')),
                daemon=True, name='sale-notify',
            )
            self.notification_thread.start()
        else:
            _send_notification(self.notifier, text, receipt.get('receipt_number'))


def _send_notification(notifier: Any, text: str, receipt_number: Optional[str]) -> bool:
    try:
        delivered = bool(notifier.send(text))
    except Exception as exc:
        logger.warning('%s', NotificationError(f'Notification for {receipt_number} raised: {exc}'))
        return False
    if delivered:
        logger.info('Sale notification sent for %s', receipt_number)
    else:
        logger.warning('%s', NotificationError(f'Notification for {receipt_number} was not delivered'))
    return delivered


class PosSession:
    """The single active cashier session: cart, current receipt number, last completed sale."""

    def __init__(
        self,
        catalog: Any,
        transactions: Any,
        notifier: Any = None,
        receipt_prefix: str = DEFAULT_RECEIPT_PREFIX,
        system_name: str = pos_receipts.DEFAULT_SYSTEM_NAME,
        notify_async: bool = True,
    ):
        self.catalog = catalog
        self.transactions = transactions
        self.notifier = notifier
        self.receipt_prefix = receipt_prefix
        self.system_name = system_name
        self.notify_async = notify_async
        self.cart = CartEngine()
        self.receipt_number = generate_receipt_number(receipt_prefix)
        self.last_checkout: Optional[CheckoutOrchestrator] = None
        self.completed: Optional[Dict[str, Any]] = None
        self._busy = threading.Lock()

    def refresh_catalog(self) -> List[Dict[str, Any]]:
        products = self.catalog.list_products()
        self.cart.refresh_products(products)
        return products

    @property
    def in_progress(self) -> bool:
        return self._busy.locked()

    def complete_sale(self) -> Dict[str, Any]:
        if self.completed is not None:
            raise CheckoutInProgressError('Sale already completed; start a new sale first')
        if not self._busy.acquire(blocking=False):
            raise CheckoutInProgressError()
        orchestrator = CheckoutOrchestrator(
            self.catalog, self.transactions, self.notifier,
            system_name=self.system_name, notify_async=self.notify_async,
        )
        self.last_checkout = orchestrator
        self.cart.lock()
        try:
            transaction = orchestrator.run(self.cart, self.receipt_number)
        except CheckoutError:
            self.cart.unlock()
            raise
        except Exception as exc:
            logger.exception('Checkout %s aborted in state %s', self.receipt_number, orchestrator.state.value)
            orchestrator.abort(exc)
            self.cart.unlock()
            raise
        finally:
            self._busy.release()
        self.completed = {'transaction': transaction, 'receipt': orchestrator.receipt}
        return transaction

    def new_sale(self) -> str:
        if self.in_progress:
            raise CheckoutInProgressError()
        self.receipt_number = generate_receipt_number(self.receipt_prefix)
        self.completed = None
        self.cart.clear()
        self.cart.unlock()
        return self.receipt_number

    def to_dict(self) -> Dict[str, Any]:
        payload = self.cart.to_dict()
        payload['receipt_number'] = self.receipt_number
        payload['checkout_state'] = self.last_checkout.state.value if self.last_checkout else CheckoutState.IDLE.value
        payload['completed'] = self.completed is not None
        return payload
