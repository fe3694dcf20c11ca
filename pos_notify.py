"""
Outbound sale / stock notifications.

Environment:
  TELEGRAM_BOT_TOKEN   Bot token (notifications disabled when unset)
  TELEGRAM_CHAT_ID     Chat receiving the messages
  TELEGRAM_TIMEOUT     Request timeout in seconds (default: 10)
"""
import logging
import os
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import requests

from pos_receipts import format_rupiah

logger = logging.getLogger(__name__)

TELEGRAM_API = 'https://api.telegram.org'
ALERT_STOCK_MAX = 3


class TelegramNotifier:
    """send(text) -> bool; never raises."""

    def __init__(self, token: Optional[str], chat_id: Optional[str], timeout: float = 10.0,
                 parse_mode: Optional[str] = 'Markdown', session: Optional[requests.Session] = None):
        self.token = (token or '').strip() or None
        self.chat_id = (str(chat_id).strip() if chat_id is not None else '') or None
        self.timeout = timeout
        self.parse_mode = parse_mode
        self.session = session or requests.Session()

    @classmethod
    def from_env(cls) -> 'TelegramNotifier':
        try:
            timeout = float(os.getenv('TELEGRAM_TIMEOUT', '10'))
        except ValueError:
            timeout = 10.0
        return cls(os.getenv('TELEGRAM_BOT_TOKEN'), os.getenv('TELEGRAM_CHAT_ID'), timeout=timeout)

    @property
    def configured(self) -> bool:
        return bool(self.token and self.chat_id)

    def send(self, text: str) -> bool:
        if not self.configured:
            logger.info('Telegram not configured; dropping message (%d chars)', len(text or ''))
            return False
        payload: Dict[str, Any] = {'chat_id': self.chat_id, 'text': text}
        if self.parse_mode:
            payload['parse_mode'] = self.parse_mode
        logger.debug('Sending to Telegram chat %s: %s...', self.chat_id, (text or '')[:50])
        try:
            resp = self.session.post(f"{TELEGRAM_API}/bot{self.token}/sendMessage", json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning('Error sending message to Telegram: %s', exc)
            return False
        if resp.ok:
            logger.info('Message sent to Telegram')
            return True
        logger.warning('Failed to send message to Telegram: HTTP %s %s', resp.status_code, (resp.text or '')[:200])
        return False


class LogNotifier:
    """Notifier for setups without an outbound channel: the message only goes to the log."""

    def send(self, text: str) -> bool:
        logger.info('Sale notification: %s', text)
        return True


def low_stock_message(products: Iterable[Dict[str, Any]], now: Optional[datetime] = None,
                      max_stock: int = ALERT_STOCK_MAX) -> Optional[str]:
    """Markdown report of products with 1..max_stock units left, grouped by category. None if nothing is low."""
    low = [p for p in products if 0 < int(p.get('stock') or 0) <= max_stock]
    if not low:
        return None
    now = now or datetime.now()
    grouped: Dict[str, List[Dict[str, Any]]] = {}
    for p in low:
        grouped.setdefault(p.get('category_name') or 'Uncategorized', []).append(p)

    out = ["⚠️ *LOW STOCK REPORT*", f"📅 {now.strftime('%A, %d %B %Y')}", '']
    for idx, (category, items) in enumerate(grouped.items()):
        out.append(f"📦 *{category}*")
        for i, p in enumerate(items, start=1):
            out.append(f"{i}. {p.get('name')} (SKU: {p.get('sku') or '-'})")
            out.append(f"   💰 Price: {format_rupiah(p.get('price'))}")
            out.append(f"   📍 Location: {p.get('rack_location') or 'N/A'}")
            out.append(f"   📊 Stock left: {p.get('stock')}")
        if idx < len(grouped) - 1:
            out.append('')
    out.append('')
    out.append(f"🔢 *Total low-stock products: {len(low)}*")
    out.append('💬 Please plan restocking for these items.')
    return '\n'.join(out)
