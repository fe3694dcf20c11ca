"""
Flask-based ESC/POS print agent that writes plain-text receipts to a serial/USB printer.

Install with: pip install flask pyserial

Usage:
  RECEIPT_SERIAL_PORT=COM3 \
  RECEIPT_SERIAL_BAUD=9600 \
  python receipt_agent.py

Then POST JSON to /print with `text` (as produced by
pos_receipts.render_escpos_text), an optional `barcode` value printed as
Code 39 under the text, and optional raw `hex` sequences.
"""

import logging
import os
from typing import Iterable, List, Sequence

from flask import Flask, jsonify, request
from serial import Serial, SerialException

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

app = Flask(__name__)

SERIAL_PORT = os.environ.get("RECEIPT_SERIAL_PORT", "COM3")
BAUD_RATE = int(os.environ.get("RECEIPT_SERIAL_BAUD", "9600"))
LINE_FEEDS = int(os.environ.get("RECEIPT_LINE_FEEDS", "2"))
CUT_AFTER_PRINT = os.environ.get("RECEIPT_CUT_AFTER_PRINT", "True").lower() in ("1", "true", "yes")
HOST = os.environ.get("RECEIPT_AGENT_HOST", "127.0.0.1")
PORT = int(os.environ.get("RECEIPT_AGENT_PORT", "5001"))


def code39_sanitize(value: str) -> str:
    """
    Code 39 allowed chars: 0-9 A-Z space $ % * + - . /
    Uppercase and strip anything else.
    """
    allowed = set("0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ $%*+-./")
    v = (value or "").upper()
    return "".join(c for c in v if c in allowed)


def escpos_barcode_code39_hex(value: str, height: int = 80, width: int = 2, hri: int = 2) -> List[str]:
    """
    Hex command chunks for printing a Code 39 barcode of a receipt number.
    - height: 1..255
    - width: 2..6 typically
    - hri: 0=none, 1=above, 2=below, 3=both
    """
    data = code39_sanitize(value).encode("ascii", errors="ignore")
    if not data:
        return []
    return [
        f"1d 68 {height:02x}",  # GS h n
        f"1d 77 {width:02x}",   # GS w n
        f"1d 48 {hri:02x}",     # GS H n
        # GS k m d1..dk NUL (m=4)
        ("1d 6b 04 " + data.hex(" ") + " 00").strip(),
    ]


def sequence_to_bytes(sequence: Sequence[str]) -> Iterable[bytes]:
    """
    Convert a sequence of hexadecimal strings into bytes for ESC/POS commands.
    """
    for chunk in sequence:
        cleaned = chunk.strip().replace(" ", "")
        if not cleaned:
            continue
        try:
            yield bytes.fromhex(cleaned)
        except ValueError as exc:
            raise ValueError(f"Invalid hex chunk {chunk!r}: {exc}") from exc


@app.after_request
def allow_cors(response):
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type"
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
    return response


def _write_text(ser: Serial, text: str) -> None:
    if not text:
        return
    if not text.endswith("\n"):
        text += "\n"
    ser.write(text.encode("ascii", errors="replace"))


def _write_cut(ser: Serial) -> None:
    # ESC/POS full cut: GS V 0
    ser.write(b"\x1D\x56\x00")


def _open_serial(port: str) -> Serial:
    return Serial(port, BAUD_RATE, timeout=1)


@app.route("/print", methods=["POST", "OPTIONS"])
def print_receipt():
    if request.method == "OPTIONS":
        return jsonify(ok=True)

    payload = request.get_json(silent=True) or {}
    text = payload.get("text") or ""
    if not isinstance(text, str) or not text.strip():
        return jsonify(ok=False, error="text is required"), 400
    hex_commands = payload.get("hex") or []
    if isinstance(hex_commands, str):
        hex_commands = [hex_commands]
    barcode = escpos_barcode_code39_hex(payload.get("barcode") or "")
    try:
        extra_line_feeds = int(payload.get("line_feeds", LINE_FEEDS))
    except (TypeError, ValueError):
        return jsonify(ok=False, error="line_feeds must be an integer"), 400
    cut = payload.get("cut", CUT_AFTER_PRINT)
    port = (payload.get("port") or SERIAL_PORT).strip()

    try:
        # Decode hex before the port is opened.
        chunks = list(sequence_to_bytes(list(hex_commands) + barcode))
    except ValueError as exc:
        logging.warning("Bad hex payload: %s", exc)
        return jsonify(ok=False, error=str(exc)), 400

    logging.info("Printing receipt on %s: text len=%d barcode=%s", port, len(text), bool(barcode))
    try:
        with _open_serial(port) as ser:
            ser.write(b"\x1b\x40")  # ESC @ initialize
            _write_text(ser, text)
            for data in chunks:
                ser.write(data)
            if extra_line_feeds > 0:
                ser.write(b"\n" * extra_line_feeds)
            if cut:
                _write_cut(ser)
    except SerialException as exc:
        logging.exception("Serial error on %s", port)
        return jsonify(ok=False, error=str(exc)), 500

    return jsonify(ok=True)


@app.get("/health")
def health():
    return jsonify(ok=True, port=SERIAL_PORT, baud=BAUD_RATE)


if __name__ == "__main__":
    logging.info(
        "Starting receipt agent on http://%s:%d printing to %s@%d",
        HOST,
        PORT,
        SERIAL_PORT,
        BAUD_RATE,
    )
    # No reloader: the serial port must stay exclusive to one process
    app.run(host=HOST, port=PORT, debug=False, use_reloader=False)
