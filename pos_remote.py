"""
Catalog and transaction stores backed by a hosted Postgres exposed through
PostgREST (Supabase). Row columns use the backend's lowercase names
(categoryid, racklocation, receiptnumber, ...); records are converted to the
same dict shape the SQLite store returns.

Environment:
  SUPABASE_URL   Project URL, e.g. https://xyz.supabase.co
  SUPABASE_KEY   anon/service key (sent as apikey + bearer token)
"""
import logging
import os
from typing import Any, Dict, List, Optional

import requests

from pos_cart import to_amount
from pos_service import iso_now

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 15


class RemoteStoreError(Exception):
    pass


def _error_message_from_response(resp: requests.Response) -> str:
    try:
        j = resp.json()
        return j.get('message') or j.get('hint') or resp.text
    except ValueError:
        return resp.text


class PostgrestClient:
    def __init__(self, base_url: str, api_key: str, timeout: float = REQUEST_TIMEOUT,
                 session: Optional[requests.Session] = None):
        if not base_url or not api_key:
            raise RemoteStoreError('SUPABASE_URL and SUPABASE_KEY are required for the remote store')
        self.base_url = base_url.rstrip('/') + '/rest/v1'
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_env(cls) -> 'PostgrestClient':
        return cls(os.getenv('SUPABASE_URL') or '', os.getenv('SUPABASE_KEY') or '')

    def _headers(self, prefer_return: bool = False) -> Dict[str, str]:
        headers = {
            'apikey': self.api_key,
            'Authorization': f'Bearer {self.api_key}',
            'Accept': 'application/json',
            'Content-Type': 'application/json',
        }
        if prefer_return:
            headers['Prefer'] = 'return=representation'
        return headers

    def request(self, method: str, table: str, params: Optional[Dict[str, str]] = None,
                json: Any = None) -> Any:
        url = f"{self.base_url}/{table}"
        try:
            resp = self.session.request(
                method, url, params=params, json=json,
                headers=self._headers(prefer_return=method in ('POST', 'PATCH')),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise RemoteStoreError(f'{method} {table} failed: {exc}') from exc
        if not resp.ok:
            raise RemoteStoreError(f'{method} {table} -> HTTP {resp.status_code}: {_error_message_from_response(resp)}')
        if not resp.content:
            return None
        return resp.json()


def _product_from_row(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'id': row.get('id'),
        'sku': row.get('sku') or '',
        'name': row.get('name') or '',
        'description': row.get('description') or '',
        'price': to_amount(row.get('price')),
        'stock': int(row.get('stock') or 0),
        'category_id': row.get('categoryid'),
        'category_name': row.get('categoryname'),
        'rack_location': row.get('racklocation') or '',
        'created_utc': row.get('createdat'),
        'updated_utc': row.get('updatedat'),
    }


_PRODUCT_COLUMNS = {
    'name': 'name',
    'description': 'description',
    'price': 'price',
    'stock': 'stock',
    'category_id': 'categoryid',
    'rack_location': 'racklocation',
}


class RemoteCatalogStore:
    def __init__(self, client: PostgrestClient):
        self.client = client

    def list_products(self) -> List[Dict[str, Any]]:
        rows = self.client.request('GET', 'products', params={'select': '*', 'order': 'name.asc'}) or []
        return [_product_from_row(r) for r in rows]

    def get_product(self, product_id: Any) -> Optional[Dict[str, Any]]:
        rows = self.client.request('GET', 'products', params={'select': '*', 'id': f'eq.{product_id}'}) or []
        return _product_from_row(rows[0]) if rows else None

    def update_product(self, product_id: Any, fields: Dict[str, Any]) -> Dict[str, Any]:
        body = {_PRODUCT_COLUMNS[k]: v for k, v in (fields or {}).items() if k in _PRODUCT_COLUMNS}
        if 'stock' in body and int(body['stock']) < 0:
            raise ValueError('Stock cannot be negative')
        body['updatedat'] = iso_now()
        rows = self.client.request('PATCH', 'products', params={'id': f'eq.{product_id}'}, json=body) or []
        if not rows:
            raise LookupError(f'Product {product_id} not found')
        return _product_from_row(rows[0])


class RemoteTransactionStore:
    def __init__(self, client: PostgrestClient):
        self.client = client

    def append(self, transaction: Dict[str, Any]) -> Dict[str, Any]:
        """Write the header, then its items. A header whose items fail is deleted again."""
        receipt_number = transaction['receipt_number']
        is_cash = (transaction.get('payment_method') or '').lower() == 'cash'
        header = {
            'receiptnumber': receipt_number,
            'subtotal': transaction.get('subtotal') or 0,
            'tax': transaction.get('tax') or 0,
            'total': transaction.get('total') or 0,
            'paymentmethod': transaction.get('payment_method'),
            'cashreceived': transaction.get('cash_received') if is_cash else None,
            'change': transaction.get('change') if is_cash else None,
        }
        rows = self.client.request('POST', 'transactions', json=header) or []
        if not rows:
            raise RemoteStoreError(f"Backend returned no row for {receipt_number}")
        stored = rows[0]
        items = [
            {
                'transaction_id': stored['id'],
                'product_id': str(it['product_id']),
                'product_name': it.get('product_name') or '',
                'quantity': it['quantity'],
                'unit_price': it['unit_price'],
                'subtotal': it['subtotal'],
            }
            for it in transaction.get('items') or []
        ]
        if items:
            try:
                self.client.request('POST', 'transaction_items', json=items)
            except RemoteStoreError:
                self._discard_header(stored['id'], receipt_number)
                raise
        logger.info('Stored transaction %s remotely as %s', receipt_number, stored['id'])
        return dict(transaction, id=stored['id'], created_at=stored.get('createdat') or transaction.get('created_at'))

    def _discard_header(self, txn_id: Any, receipt_number: str) -> None:
        try:
            self.client.request('DELETE', 'transactions', params={'id': f'eq.{txn_id}'})
        except RemoteStoreError as exc:
            logger.error('Transaction %s (%s) has no items and could not be removed: %s', txn_id, receipt_number, exc)
            return
        logger.warning('Removed transaction %s (%s) after its items failed to store', txn_id, receipt_number)

    def _fetch(self, params: Dict[str, str]) -> List[Dict[str, Any]]:
        headers = self.client.request('GET', 'transactions', params=params) or []
        if not headers:
            return []
        ids = ','.join(str(h.get('id')) for h in headers)
        items = self.client.request('GET', 'transaction_items',
                                    params={'select': '*', 'transaction_id': f'in.({ids})'}) or []
        by_txn: Dict[str, List[Dict[str, Any]]] = {}
        for it in items:
            by_txn.setdefault(str(it.get('transaction_id')), []).append({
                'product_id': it.get('product_id'),
                'product_name': it.get('product_name'),
                'quantity': int(it.get('quantity') or 0),
                'unit_price': to_amount(it.get('unit_price')),
                'subtotal': to_amount(it.get('subtotal')),
            })
        out = []
        for h in headers:
            is_cash = (h.get('paymentmethod') or '').lower() == 'cash'
            total = to_amount(h.get('total'))
            out.append({
                'id': h.get('id'),
                'receipt_number': h.get('receiptnumber'),
                'items': by_txn.get(str(h.get('id')), []),
                'subtotal': to_amount(h.get('subtotal')),
                'tax': to_amount(h.get('tax')),
                'total': total,
                'payment_method': h.get('paymentmethod'),
                'cash_received': to_amount(h.get('cashreceived')) if is_cash else total,
                'change': to_amount(h.get('change')) if is_cash else 0,
                'created_at': h.get('createdat'),
            })
        return out

    def list(self, day: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {'select': '*', 'order': 'createdat.desc'}
        if day:
            params['and'] = f'(createdat.gte.{day}T00:00:00,createdat.lte.{day}T23:59:59)'
        return self._fetch(params)

    def get(self, txn_id: Any) -> Optional[Dict[str, Any]]:
        rows = self._fetch({'select': '*', 'id': f'eq.{txn_id}'})
        return rows[0] if rows else None

    def get_by_receipt(self, receipt_number: str) -> Optional[Dict[str, Any]]:
        rows = self._fetch({'select': '*', 'receiptnumber': f'eq.{receipt_number}'})
        return rows[0] if rows else None
