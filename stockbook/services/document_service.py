# Overview: Service-layer helpers for document numbers; no shared counters.

from __future__ import annotations

import secrets

from flask import current_app

from stockbook.time_utils import utcnow, epoch_millis

_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def next_order_number(prefix: str | None = None) -> str:
    """
    Generate an invoice number: PREFIX-YY-<time token>-<random suffix>.

    Example: INV-26-MGU3K1ZQ-7F3C

    Numbers are not sequential. Concurrent terminals never contend on a
    counter row; uniqueness comes from the millisecond token plus 16 random
    bits and is backed by the unique constraint on orders.order_number.
    """
    if prefix is None:
        prefix = current_app.config.get("ORDER_NUMBER_PREFIX", "INV")
    now = utcnow()
    year = now.strftime("%y")
    token = _base36(epoch_millis(now))
    suffix = secrets.token_hex(2).upper()
    return f"{prefix}-{year}-{token}-{suffix}"


def next_purchase_number(prefix: str | None = None) -> str:
    """Generate a purchase number: PREFIX-<epoch ms>-<4 random digits>."""
    if prefix is None:
        prefix = current_app.config.get("PURCHASE_NUMBER_PREFIX", "PO")
    return f"{prefix}-{epoch_millis()}-{secrets.randbelow(10_000):04d}"
