from flask import Flask, Response, request, jsonify
from dotenv import load_dotenv
import requests
import os
import sqlite3
import threading
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from serial.tools import list_ports

import pos_receipts
import pos_service as ps
from pos_checkout import (
    CheckoutError,
    CheckoutInProgressError,
    EmptyCartError,
    InsufficientPaymentError,
    PersistenceError,
    PosSession,
    StockReconciliationError,
)
from pos_notify import LogNotifier, TelegramNotifier, low_stock_message
from pos_remote import PostgrestClient, RemoteCatalogStore, RemoteStoreError, RemoteTransactionStore

# Load environment variables
load_dotenv()

def _env_string(name: str, default: Optional[str] = None) -> Optional[str]:
    """Return trimmed string-valued env vars, normalizing empty strings to None."""
    raw = os.getenv(name, default)
    if raw is None:
        return default
    if isinstance(raw, str):
        clean = raw.strip()
        return clean if clean else default
    return raw


def _env_int(name: str, default: int) -> int:
    try:
        return int(_env_string(name, str(default)))
    except (TypeError, ValueError):
        return default


app = Flask(__name__)

_LOG_LEVEL_NAME = (os.getenv('POS_LOG_LEVEL') or 'INFO').strip().upper()
app.logger.setLevel(getattr(logging, _LOG_LEVEL_NAME, logging.INFO))
logging.getLogger('werkzeug').setLevel(getattr(logging, _LOG_LEVEL_NAME, logging.INFO))

POS_DB_PATH = _env_string('POS_DB_PATH', 'pos.db')
SCHEMA_PATH = _env_string('POS_SCHEMA_PATH', ps.SCHEMA_PATH)
EXPORT_DIR = _env_string('POS_EXPORT_DIR', ps.EXPORT_DIR)
SYSTEM_NAME = _env_string('POS_SYSTEM_NAME', pos_receipts.DEFAULT_SYSTEM_NAME)
RECEIPT_PREFIX = _env_string('POS_RECEIPT_PREFIX', 'TRX')
LOW_STOCK_THRESHOLD = _env_int('POS_LOW_STOCK_THRESHOLD', 5)
ALERT_STOCK_MAX = _env_int('POS_ALERT_STOCK_MAX', 3)
NOTIFY_ASYNC = _env_string('POS_NOTIFY_ASYNC', '1') == '1'

# Hosted catalog / transaction backend (PostgREST). Local SQLite is used when unset.
SUPABASE_URL = _env_string('SUPABASE_URL')
SUPABASE_KEY = _env_string('SUPABASE_KEY')

# Local receipt helper configuration
RECEIPT_DEFAULT_PORT = os.getenv('RECEIPT_SERIAL_PORT', 'COM3')
RECEIPT_AGENT_HOST = os.getenv('RECEIPT_AGENT_HOST')
RECEIPT_AGENT_PORT = os.getenv('RECEIPT_AGENT_PORT')
RECEIPT_AGENT_PATH = os.getenv('RECEIPT_AGENT_PATH', '/print')
RECEIPT_AGENT_USE_HTTPS = os.getenv('RECEIPT_AGENT_USE_HTTPS', '0') == '1'
RECEIPT_AGENT_URL = os.getenv('RECEIPT_AGENT_URL')
if not RECEIPT_AGENT_URL and RECEIPT_AGENT_HOST and RECEIPT_AGENT_PORT:
    scheme = 'https' if RECEIPT_AGENT_USE_HTTPS else 'http'
    path = RECEIPT_AGENT_PATH if RECEIPT_AGENT_PATH.startswith('/') else f'/{RECEIPT_AGENT_PATH}'
    RECEIPT_AGENT_URL = f"{scheme}://{RECEIPT_AGENT_HOST}:{RECEIPT_AGENT_PORT}{path}"
RECEIPT_AGENT_TIMEOUT = 10

_STATE_LOCK = threading.Lock()
_CONN: Optional[sqlite3.Connection] = None
_SESSION: Optional[PosSession] = None


def _db_connect() -> sqlite3.Connection:
    global _CONN
    with _STATE_LOCK:
        if _CONN is None:
            _CONN = ps.connect(POS_DB_PATH)
            if ps.ensure_schema(_CONN, SCHEMA_PATH):
                app.logger.info('Initialized schema in %s', POS_DB_PATH)
        return _CONN


def _remote_configured() -> bool:
    return bool(SUPABASE_URL and SUPABASE_KEY)


def _default_notifier():
    notifier = TelegramNotifier.from_env()
    if notifier.configured:
        return notifier
    return LogNotifier()


def configure_session(conn: Optional[sqlite3.Connection] = None, catalog: Any = None, transactions: Any = None,
                      notifier: Any = None, notify_async: Optional[bool] = None,
                      remote: Optional[bool] = None) -> PosSession:
    """(Re)build the cashier session. Collaborators not passed in are derived from the environment."""
    global _CONN, _SESSION
    if conn is not None:
        _CONN = conn
    use_remote = _remote_configured() if remote is None else remote
    if catalog is None or transactions is None:
        if use_remote:
            client = PostgrestClient(SUPABASE_URL, SUPABASE_KEY)
            catalog = catalog or RemoteCatalogStore(client)
            transactions = transactions or RemoteTransactionStore(client)
        else:
            local = _db_connect()
            catalog = catalog or ps.CatalogStore(local)
            transactions = transactions or ps.TransactionStore(local)
    session = PosSession(
        catalog,
        transactions,
        notifier if notifier is not None else _default_notifier(),
        receipt_prefix=RECEIPT_PREFIX,
        system_name=SYSTEM_NAME,
        notify_async=NOTIFY_ASYNC if notify_async is None else notify_async,
    )
    _SESSION = session
    app.logger.info('POS session ready (%s store), receipt %s',
                    'remote' if use_remote else 'local', session.receipt_number)
    return session


def _session() -> PosSession:
    return _SESSION or configure_session()


def _error(message: str, code: int, **extra):
    payload = {'status': 'error', 'message': message}
    payload.update(extra)
    return jsonify(payload), code


def _cart_response(changed: bool = True, code: int = 200):
    session = _session()
    return jsonify({
        'status': 'success',
        'changed': changed,
        'cart': session.to_dict(),
        'warnings': session.cart.drain_warnings(),
    }), code


def _json_body() -> Dict[str, Any]:
    return request.get_json(silent=True) or {}


def _filter_products(products: List[Dict[str, Any]], query: str, category: Optional[str]) -> List[Dict[str, Any]]:
    q = query.lower()
    out = []
    for p in products:
        if category and category != 'all' and str(p.get('category_id')) != str(category):
            continue
        if q and q not in (p.get('name') or '').lower() and q not in (p.get('sku') or '').lower():
            continue
        out.append(p)
    return out


# Disable caching for all responses to avoid stale cart / stock views
@app.after_request
def add_no_cache_headers(response):
    response.headers['Cache-Control'] = 'no-store, no-cache, must-revalidate, max-age=0'
    response.headers['Pragma'] = 'no-cache'
    if 'Expires' in response.headers:
        del response.headers['Expires']
    response.headers['X-Content-Type-Options'] = 'nosniff'
    return response


@app.route('/')
def index():
    """Session overview for the POS front end"""
    session = _session()
    return jsonify({
        'status': 'success',
        'system_name': SYSTEM_NAME,
        'receipt_number': session.receipt_number,
        'store': 'remote' if isinstance(session.catalog, RemoteCatalogStore) else 'local',
        'receipt_agent_url': RECEIPT_AGENT_URL or '',
        'receipt_default_port': RECEIPT_DEFAULT_PORT,
    })


@app.route('/api/serial-ports')
def api_serial_ports():
    """Return available serial/COM ports for the receipt printer."""
    ports = []
    try:
        for port in list_ports.comports():
            ports.append({
                'device': port.device or '',
                'description': port.description or '',
                'hwid': port.hwid or ''
            })
    except Exception as exc:
        return _error(str(exc), 500)
    return jsonify({'status': 'success', 'ports': ports})


# ---- Catalog ----

@app.route('/api/products')
def api_products():
    query = (request.args.get('q') or '').strip()
    category = (request.args.get('category') or '').strip() or None
    session = _session()
    try:
        if isinstance(session.catalog, ps.CatalogStore):
            products = ps.search_products(_db_connect(), query, category)
        else:
            products = _filter_products(session.catalog.list_products(), query, category)
    except RemoteStoreError as e:
        return _error(str(e), 502)
    return jsonify({'status': 'success', 'products': products})


@app.route('/api/products', methods=['POST'])
def api_add_product():
    data = _json_body()
    try:
        product = ps.add_product(_db_connect(), data)
    except ValueError as e:
        return _error(str(e), 400)
    except sqlite3.IntegrityError as e:
        return _error(f'Product rejected: {e}', 409)
    app.logger.info('Added product %s (%s)', product['name'], product['sku'])
    return jsonify({'status': 'success', 'product': product}), 201


@app.route('/api/products/<product_id>', methods=['PUT'])
def api_update_product(product_id: str):
    data = _json_body()
    try:
        product = _session().catalog.update_product(product_id, data)
    except LookupError as e:
        return _error(str(e), 404)
    except ValueError as e:
        return _error(str(e), 400)
    except RemoteStoreError as e:
        return _error(str(e), 502)
    return jsonify({'status': 'success', 'product': product})


@app.route('/api/categories')
def api_categories():
    return jsonify({'status': 'success', 'categories': ps.list_categories(_db_connect())})


@app.route('/api/categories', methods=['POST'])
def api_add_category():
    data = _json_body()
    name = (data.get('name') or '').strip()
    if not name:
        return _error('Category name is required', 400)
    try:
        category = ps.add_category(_db_connect(), name, data.get('description') or '')
    except sqlite3.IntegrityError:
        return _error(f'Category {name} already exists', 409)
    return jsonify({'status': 'success', 'category': category}), 201


@app.route('/api/suppliers')
def api_suppliers():
    return jsonify({'status': 'success', 'suppliers': ps.list_suppliers(_db_connect())})


@app.route('/api/suppliers', methods=['POST'])
def api_add_supplier():
    try:
        supplier = ps.add_supplier(_db_connect(), _json_body())
    except ValueError as e:
        return _error(str(e), 400)
    return jsonify({'status': 'success', 'supplier': supplier}), 201


# ---- Cart ----

@app.route('/api/cart')
def api_cart():
    return _cart_response(changed=False)


@app.route('/api/cart/items', methods=['POST'])
def api_cart_add():
    product_id = _json_body().get('product_id')
    if product_id in (None, ''):
        return _error('product_id is required', 400)
    session = _session()
    try:
        product = session.catalog.get_product(product_id)
    except RemoteStoreError as e:
        return _error(str(e), 502)
    if not product:
        return _error('Product not found', 404)
    return _cart_response(session.cart.add_item(product))


@app.route('/api/cart/items/<product_id>', methods=['PUT'])
def api_cart_set_quantity(product_id: str):
    quantity = _json_body().get('quantity')
    try:
        quantity = int(quantity)
    except (TypeError, ValueError):
        return _error('quantity must be an integer', 400)
    session = _session()
    try:
        session.refresh_catalog()
    except RemoteStoreError as e:
        app.logger.warning('Catalog refresh failed, using last snapshot: %s', e)
    return _cart_response(session.cart.set_quantity(product_id, quantity))


@app.route('/api/cart/items/<product_id>', methods=['DELETE'])
def api_cart_remove(product_id: str):
    return _cart_response(_session().cart.remove_item(product_id))


@app.route('/api/cart/clear', methods=['POST'])
def api_cart_clear():
    cart = _session().cart
    if cart.locked:
        cart.warnings.append('Cart is locked while a sale is being completed')
        return _cart_response(changed=False)
    cart.clear()
    return _cart_response()


@app.route('/api/cart/payment', methods=['POST'])
def api_cart_payment():
    data = _json_body()
    cart = _session().cart
    changed = True
    if data.get('method') is not None:
        changed = cart.set_payment_method(str(data['method']).strip().lower()) and changed
    if data.get('cash_tendered') is not None:
        changed = cart.set_cash_tendered(data['cash_tendered']) and changed
    return _cart_response(changed)


# ---- Checkout ----

@app.route('/api/checkout', methods=['POST'])
def api_checkout():
    session = _session()
    try:
        transaction = session.complete_sale()
    except (EmptyCartError, InsufficientPaymentError) as e:
        return _error(e.user_message, 400, cart=session.to_dict())
    except CheckoutInProgressError as e:
        return _error(e.user_message, 409)
    except StockReconciliationError as e:
        app.logger.error('Checkout %s failed during stock update; decremented so far: %s',
                         session.receipt_number, e.applied)
        return _error(e.user_message, 502, failed_product_id=e.failed_product_id, applied=e.applied)
    except PersistenceError as e:
        app.logger.error('Checkout %s: %s', session.receipt_number, e)
        return _error(e.user_message, 502, receipt_number=e.receipt_number)
    except CheckoutError as e:
        app.logger.exception('Checkout %s failed', session.receipt_number)
        return _error(e.user_message, 500)
    return jsonify({
        'status': 'success',
        'message': 'Transaction completed successfully',
        'transaction': transaction,
        'receipt': session.completed['receipt'],
    })


@app.route('/api/sale/new', methods=['POST'])
def api_new_sale():
    session = _session()
    try:
        receipt_number = session.new_sale()
    except CheckoutInProgressError as e:
        return _error(e.user_message, 409)
    try:
        session.refresh_catalog()
    except RemoteStoreError as e:
        app.logger.warning('Catalog refresh failed: %s', e)
    return jsonify({'status': 'success', 'receipt_number': receipt_number, 'cart': session.to_dict()})


# ---- Receipts ----

def _find_receipt(receipt_number: str) -> Optional[Dict[str, Any]]:
    session = _session()
    completed = session.completed
    if completed and completed['receipt'].get('receipt_number') == receipt_number:
        return completed['receipt']
    getter = getattr(session.transactions, 'get_by_receipt', None)
    if not callable(getter):
        return None
    transaction = getter(receipt_number)
    if not transaction:
        return None
    return pos_receipts.build_receipt(transaction, SYSTEM_NAME)


def _receipt_or_404(receipt_number: str):
    try:
        receipt = _find_receipt((receipt_number or '').strip())
    except RemoteStoreError as e:
        return None, _error(str(e), 502)
    if not receipt:
        return None, _error('Receipt not found', 404)
    return receipt, None


@app.route('/api/receipts/<receipt_number>')
def api_receipt(receipt_number: str):
    receipt, err = _receipt_or_404(receipt_number)
    if err:
        return err
    return jsonify({'status': 'success', 'receipt': receipt})


@app.route('/api/receipts/<receipt_number>/print')
def api_receipt_print(receipt_number: str):
    receipt, err = _receipt_or_404(receipt_number)
    if err:
        return err
    return Response(pos_receipts.render_printable(receipt), mimetype='text/html')


@app.route('/api/receipts/<receipt_number>/download')
def api_receipt_download(receipt_number: str):
    receipt, err = _receipt_or_404(receipt_number)
    if err:
        return err
    return Response(
        pos_receipts.render_text(receipt),
        mimetype='text/plain',
        headers={'Content-Disposition': f'attachment; filename={pos_receipts.receipt_filename(receipt)}'},
    )


@app.route('/api/receipts/<receipt_number>/send-to-printer', methods=['POST'])
def api_receipt_send_to_printer(receipt_number: str):
    if not RECEIPT_AGENT_URL:
        return _error('Receipt agent is not configured', 400)
    receipt, err = _receipt_or_404(receipt_number)
    if err:
        return err
    data = _json_body()
    payload = {
        'text': pos_receipts.render_escpos_text(receipt),
        'barcode': receipt['receipt_number'],
        'port': data.get('port') or RECEIPT_DEFAULT_PORT,
    }
    try:
        resp = requests.post(RECEIPT_AGENT_URL, json=payload, timeout=RECEIPT_AGENT_TIMEOUT)
    except requests.RequestException as e:
        app.logger.warning('Receipt agent unreachable at %s: %s', RECEIPT_AGENT_URL, e)
        return _error(f'Receipt agent unreachable: {e}', 502)
    if not resp.ok:
        return _error(f'Receipt agent returned HTTP {resp.status_code}', 502)
    return jsonify({'status': 'success', 'message': 'Receipt sent to printer'})


# ---- Transactions ----

@app.route('/api/transactions')
def api_transactions():
    day = (request.args.get('date') or '').strip() or None
    try:
        rows = _session().transactions.list(day)
    except RemoteStoreError as e:
        return _error(str(e), 502)
    return jsonify({'status': 'success', 'date': day, 'transactions': rows})


@app.route('/api/transactions/<txn_id>')
def api_transaction_detail(txn_id: str):
    try:
        txn = _session().transactions.get(txn_id)
    except RemoteStoreError as e:
        return _error(str(e), 502)
    if not txn:
        return _error('Transaction not found', 404)
    return jsonify({'status': 'success', 'transaction': txn})


# ---- Reports ----

@app.route('/api/reports/stock')
def api_report_stock():
    conn = _db_connect()
    return jsonify({
        'status': 'success',
        'summary': ps.stock_summary(conn, LOW_STOCK_THRESHOLD),
        'low_stock': ps.low_stock_products(conn, ALERT_STOCK_MAX),
    })


@app.route('/api/reports/sales')
def api_report_sales():
    day = (request.args.get('date') or '').strip() or datetime.now().strftime('%Y-%m-%d')
    try:
        datetime.strptime(day, '%Y-%m-%d')
    except ValueError:
        return _error('date must be YYYY-MM-DD', 400)
    return jsonify({'status': 'success', 'report': ps.sales_summary(_db_connect(), day)})


@app.route('/api/reports/low-stock/notify', methods=['POST'])
def api_report_low_stock_notify():
    session = _session()
    try:
        products = session.catalog.list_products()
    except RemoteStoreError as e:
        return _error(str(e), 502)
    message = low_stock_message(products, max_stock=ALERT_STOCK_MAX)
    if message is None:
        return jsonify({'status': 'success', 'sent': False, 'message': 'No low-stock products'})
    if session.notifier is None or not session.notifier.send(message):
        return _error('Low-stock report could not be delivered', 502)
    return jsonify({'status': 'success', 'sent': True, 'message': 'Low-stock report sent'})


# ---- Database admin ----

@app.route('/api/db/init', methods=['POST'])
def api_db_init():
    try:
        ps.init_db(_db_connect(), SCHEMA_PATH)
        return jsonify({'status':'success','message':'Database initialized','path': POS_DB_PATH})
    except Exception as e:
        app.logger.exception('Database init failed')
        return jsonify({'status':'error','message': str(e)}), 500


@app.route('/api/db/seed-demo', methods=['POST'])
def api_db_seed_demo():
    try:
        ps.demo_seed(_db_connect())
        _session().refresh_catalog()
        return jsonify({'status':'success','message':'Demo data seeded'})
    except Exception as e:
        app.logger.exception('Demo seed failed')
        return jsonify({'status':'error','message': str(e)}), 500


@app.route('/api/db/status')
def api_db_status():
    try:
        conn = _db_connect()
        counts = {}
        for name in ('categories', 'suppliers', 'products', 'transactions', 'transaction_items'):
            row = conn.execute(f'SELECT COUNT(*) AS c FROM {name}').fetchone()
            counts[name] = int(row['c']) if row else 0
        return jsonify({'status':'success','present': True, 'counts': counts, 'db_path': POS_DB_PATH,
                        'remote': _remote_configured()})
    except Exception as e:
        return jsonify({'status':'error','message': str(e)}), 500


@app.route('/api/db/export', methods=['POST'])
def api_db_export():
    day = (_json_body().get('day') or '').strip() or None
    try:
        paths = ps.export_ndjson(_db_connect(), EXPORT_DIR, day)
    except OSError as e:
        return _error(f'Export failed: {e}', 500)
    return jsonify({'status': 'success', 'files': paths})


if __name__ == '__main__':
    debug = os.getenv('FLASK_DEBUG', '0') == '1'
    port = int(os.getenv('PORT', '5000'))
    host = os.getenv('HOST', '0.0.0.0')
    app.run(host=host, port=port, debug=debug)
