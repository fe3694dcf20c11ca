"""
Receipt rendering.

build_receipt() computes every displayed field once; render_printable(),
render_text() and render_escpos_text() only lay those fields out, so the
printed and downloaded totals cannot disagree. Nothing here has side effects.
"""
import re
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, List

from jinja2 import Environment, select_autoescape

DEFAULT_SYSTEM_NAME = 'INVENTORY SYSTEM'
CURRENCY_SYMBOL = 'Rp'
THANK_YOU = 'Thank you for your purchase!'


def format_amount(amount: Any) -> str:
    """Zero-decimal Indonesian grouping: 1234567 -> '1.234.567'."""
    try:
        value = int(round(float(amount or 0)))
    except (TypeError, ValueError):
        value = 0
    return f"{value:,}".replace(',', '.')


def format_rupiah(amount: Any) -> str:
    text = format_amount(amount)
    if text.startswith('-'):
        return f"-{CURRENCY_SYMBOL} {text[1:]}"
    return f"{CURRENCY_SYMBOL} {text}"


_ID_GROUPED = re.compile(r'-?\d{1,3}(\.\d{3})+(,\d*)?')
_EN_GROUPED = re.compile(r'-?\d{1,3}(,\d{3})+(\.\d*)?')
_COMMA_DECIMAL = re.compile(r'-?\d+,\d+')


def parse_rupiah(text: Any) -> int:
    """Parse an amount to whole Rupiah, rounding half up.

    'Rp 25.000' -> 25000, 'Rp 1.500,00' -> 1500, '10000.50' -> 10001.
    A dot followed by groups of three digits is a thousands separator.
    """
    raw = re.sub(r'(?i)rp|\s', '', str(text if text is not None else ''))
    if not raw:
        return 0
    if _EN_GROUPED.fullmatch(raw):
        raw = raw.replace(',', '')
    elif _ID_GROUPED.fullmatch(raw) or _COMMA_DECIMAL.fullmatch(raw):
        raw = raw.replace('.', '').replace(',', '.')
    try:
        value = Decimal(raw)
    except InvalidOperation:
        digits = re.sub(r'\D', '', raw)
        return int(digits) if digits else 0
    if not value.is_finite():
        return 0
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def format_timestamp(value: Any) -> str:
    if not value:
        return ''
    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        return str(value)
    return parsed.strftime('%d/%m/%Y %H:%M:%S')


def build_receipt(transaction: Dict[str, Any], system_name: str = DEFAULT_SYSTEM_NAME) -> Dict[str, Any]:
    """Structured receipt for a completed transaction."""
    method = (transaction.get('payment_method') or '').lower()
    rows = []
    for item in transaction.get('items') or []:
        quantity = int(item.get('quantity') or 0)
        unit_price = int(item.get('unit_price') or 0)
        subtotal = int(item.get('subtotal') if item.get('subtotal') is not None else unit_price * quantity)
        rows.append({
            'name': item.get('product_name') or item.get('name') or str(item.get('product_id') or ''),
            'quantity': quantity,
            'unit_price': unit_price,
            'line_total': subtotal,
            'unit_price_display': format_rupiah(unit_price),
            'line_total_display': format_rupiah(subtotal),
        })

    subtotal = int(transaction.get('subtotal') or 0)
    total = int(transaction.get('total') or 0)
    payment_lines = []
    if method == 'cash':
        payment_lines = [
            {'label': 'Cash Received', 'amount': int(transaction.get('cash_received') or 0)},
            {'label': 'Change', 'amount': int(transaction.get('change') or 0)},
        ]
        for line in payment_lines:
            line['display'] = format_rupiah(line['amount'])

    return {
        'system_name': system_name,
        'receipt_number': transaction.get('receipt_number') or '',
        'created_at': transaction.get('created_at') or '',
        'timestamp': format_timestamp(transaction.get('created_at')),
        'rows': rows,
        'subtotal': subtotal,
        'total': total,
        'subtotal_display': format_rupiah(subtotal),
        'total_display': format_rupiah(total),
        'payment_method': method,
        'payment_method_display': method.upper(),
        'payment_lines': payment_lines,
    }


def receipt_summary(receipt: Dict[str, Any]) -> Dict[str, Any]:
    """Compact payload used for the sale notification."""
    cash = {line['label']: line['amount'] for line in receipt.get('payment_lines') or []}
    return {
        'receiptNumber': receipt.get('receipt_number'),
        'date': receipt.get('created_at'),
        'items': [
            {'name': r['name'], 'quantity': r['quantity'], 'price': r['unit_price'], 'subtotal': r['line_total']}
            for r in receipt.get('rows') or []
        ],
        'subtotal': receipt.get('subtotal'),
        'total': receipt.get('total'),
        'paymentMethod': receipt.get('payment_method'),
        'cashReceived': cash.get('Cash Received', receipt.get('total')),
        'change': cash.get('Change', 0),
    }


def receipt_filename(receipt: Dict[str, Any]) -> str:
    return f"receipt-{receipt.get('receipt_number') or 'unknown'}.txt"


_env = Environment(autoescape=select_autoescape(default=True, default_for_string=True))

_PRINTABLE_TEMPLATE = _env.from_string("""<html>
  <head>
    <title>Receipt {{ r.receipt_number }}</title>
    <style>
      body { font-family: sans-serif; font-size: 12px; }
      .receipt { width: 300px; margin: 0 auto; }
      .header { text-align: center; margin-bottom: 10px; }
      .items { width: 100%; border-collapse: collapse; }
      .items th, .items td { text-align: left; padding: 3px 0; }
      .total-line { display: flex; justify-content: space-between; margin: 5px 0; }
      .divider { border-top: 1px dashed #000; margin: 10px 0; }
    </style>
  </head>
  <body onload="window.print()">
    <div class="receipt">
      <div class="header">
        <h2>{{ r.system_name }}</h2>
        <p>Receipt #: {{ r.receipt_number }}</p>
        <p>Date: {{ r.timestamp }}</p>
        <div class="divider"></div>
      </div>
      <table class="items">
        <thead>
          <tr><th>Item</th><th>Qty</th><th>Price</th><th>Total</th></tr>
        </thead>
        <tbody>
        {%- for row in r.rows %}
          <tr>
            <td>{{ row.name }}</td>
            <td>{{ row.quantity }}</td>
            <td>{{ row.unit_price_display }}</td>
            <td>{{ row.line_total_display }}</td>
          </tr>
        {%- endfor %}
        </tbody>
      </table>
      <div class="divider"></div>
      <div class="total-line"><span>Subtotal:</span><span>{{ r.subtotal_display }}</span></div>
      <div class="total-line" style="font-weight: bold;"><span>TOTAL:</span><span>{{ r.total_display }}</span></div>
      <div class="divider"></div>
      <div class="total-line"><span>Payment Method:</span><span>{{ r.payment_method_display }}</span></div>
      {%- for line in r.payment_lines %}
      <div class="total-line"><span>{{ line.label }}:</span><span>{{ line.display }}</span></div>
      {%- endfor %}
      <div class="divider"></div>
      <div class="header"><p>{{ thank_you }}</p></div>
    </div>
  </body>
</html>
""")


def render_printable(receipt: Dict[str, Any]) -> str:
    return _PRINTABLE_TEMPLATE.render(r=receipt, thank_you=THANK_YOU)


def render_text(receipt: Dict[str, Any]) -> str:
    lines: List[str] = [
        receipt['system_name'],
        f"Receipt #: {receipt['receipt_number']}",
        f"Date: {receipt['timestamp']}",
        '-' * 30,
        '',
        'ITEMS:',
    ]
    for idx, row in enumerate(receipt['rows']):
        if idx:
            lines.append('')
        lines.append(row['name'])
        lines.append(f"  {row['quantity']} x {row['unit_price_display']} = {row['line_total_display']}")
    lines += [
        '',
        '-' * 30,
        f"Subtotal: {receipt['subtotal_display']}",
        f"TOTAL: {receipt['total_display']}",
        '',
        f"Payment: {receipt['payment_method_display']}",
    ]
    for line in receipt['payment_lines']:
        label = 'Cash' if line['label'] == 'Cash Received' else line['label']
        lines.append(f"{label}: {line['display']}")
    lines += ['', THANK_YOU, '']
    return '\n'.join(lines)


def _pair(left: str, right: str, width: int) -> str:
    gap = width - len(left) - len(right)
    if gap < 1:
        return f"{left}\n{right.rjust(width)}"
    return f"{left}{' ' * gap}{right}"


def render_escpos_text(receipt: Dict[str, Any], width: int = 32) -> str:
    """Fixed-width plain text for a thermal printer (no control codes)."""
    rule = '-' * width
    out = [
        receipt['system_name'].center(width).rstrip(),
        receipt['receipt_number'],
        receipt['timestamp'],
        rule,
    ]
    for row in receipt['rows']:
        out.append(row['name'][:width])
        out.append(_pair(f"  {row['quantity']} x {format_amount(row['unit_price'])}", format_amount(row['line_total']), width))
    out += [
        rule,
        _pair('Subtotal', receipt['subtotal_display'], width),
        _pair('TOTAL', receipt['total_display'], width),
        _pair('Payment', receipt['payment_method_display'], width),
    ]
    for line in receipt['payment_lines']:
        out.append(_pair(line['label'], line['display'], width))
    out += [rule, THANK_YOU.center(width).rstrip(), '']
    return '\n'.join(out)
