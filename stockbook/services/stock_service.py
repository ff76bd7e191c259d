# Overview: Service-layer operations for the stock ledger; encapsulates business logic and database work.

# stockbook/services/stock_service.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from flask import current_app

from ..extensions import db
from ..errors import DuplicateSkuError, InsufficientStockError, ProductNotFoundError, ValidationError
from ..models import Product, StockMovement
from ..models.inventory import (
    MOVEMENT_ADJUST,
    MOVEMENT_IN,
    MOVEMENT_OUT,
    MOVEMENT_TYPES,
    PRODUCT_TYPE_PRODUCT,
    PRODUCT_TYPES,
)
from stockbook.time_utils import utcnow
from ..validation import MAX_QUANTITY, clean_text, require_amount, require_choice, require_int
from . import payables_service
from .concurrency import lock_for_update, run_in_transaction
"""
Stock Ledger Invariants (authoritative)

- Product.stock_quantity is never negative.
- Every change to stock_quantity appends exactly one StockMovement in the
  same DB transaction; StockMovement rows are append-only.
- IN:     new = previous + quantity
- OUT:    new = previous - quantity; rejected (InsufficientStockError) when
          the result would be negative, unless the caller asks to clamp at 0
- ADJUST: quantity is the desired absolute stock; the movement records
          |desired - previous| and keeps type ADJUST. desired == previous is a
          no-op and writes nothing.
- A new PRODUCT with opening stock gets one IN movement (0 -> stock).
- SERVICE products have no stock; every operation skips them.
"""

INITIAL_STOCK_REASON = "Initial stock on product creation"


@dataclass(frozen=True)
class StockChange:
    product_id: int
    previous_stock: int
    new_stock: int
    movement: StockMovement | None = None

    @property
    def changed(self) -> bool:
        return self.movement is not None

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "previous_stock": self.previous_stock,
            "new_stock": self.new_stock,
            "movement": self.movement.to_dict() if self.movement else None,
        }


def _validate_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("quantity must be an integer")
    if quantity < 0:
        raise ValidationError("quantity must be zero or positive")
    return quantity


def get_product(owner_id: str, product_id: int, *, lock: bool = False) -> Product:
    query = db.session.query(Product).filter_by(id=product_id, owner_id=owner_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise ProductNotFoundError(product_id)
    return product


def lock_products(owner_id: str, product_ids: Iterable[int]) -> dict[int, Product]:
    """
    Lock every referenced product, in ascending id order.

    A fixed lock order keeps two operations touching the same products from
    deadlocking each other. Raises ProductNotFoundError for the first
    missing id.
    """
    wanted = sorted({pid for pid in product_ids if pid is not None})
    if not wanted:
        return {}

    rows = lock_for_update(
        db.session.query(Product)
        .filter(Product.owner_id == owner_id, Product.id.in_(wanted))
        .order_by(Product.id)
    ).all()
    found = {p.id: p for p in rows}
    for pid in wanted:
        if pid not in found:
            raise ProductNotFoundError(pid)
    return found


def create_product(
    *,
    owner_id: str,
    sku,
    name,
    price_cents,
    purchase_price_cents=0,
    stock_quantity=0,
    low_stock_threshold=5,
    product_type: str = PRODUCT_TYPE_PRODUCT,
    description=None,
    category=None,
    supplier_id=None,
) -> Product:
    """
    Create a product and open its stock history.

    A PRODUCT with stock above zero starts at 0 and receives one IN movement
    for the opening quantity, so the ledger explains every unit from day
    one. SERVICE items carry no stock.

    Raises ValidationError, DuplicateSkuError, NotFoundError (supplier) or
    LedgerConflictError.
    """
    sku = clean_text(sku, max_length=64)
    if not sku:
        raise ValidationError("sku is required")
    name = clean_text(name)
    if not name:
        raise ValidationError("name is required")
    kind = require_choice(product_type, "product_type", PRODUCT_TYPES, default=PRODUCT_TYPE_PRODUCT)
    price = require_amount(price_cents, "price_cents")
    cost = require_amount(purchase_price_cents, "purchase_price_cents", default=0)
    opening = require_int(stock_quantity, "stock_quantity", minimum=0, maximum=MAX_QUANTITY, default=0)
    threshold = require_int(low_stock_threshold, "low_stock_threshold", minimum=0, maximum=MAX_QUANTITY, default=5)

    def _op() -> Product:
        existing = db.session.query(Product.id).filter_by(owner_id=owner_id, sku=sku).first()
        if existing is not None:
            raise DuplicateSkuError()

        supplier = None
        if supplier_id is not None:
            supplier = payables_service.get_supplier(owner_id, supplier_id)

        product = Product(
            owner_id=owner_id,
            sku=sku,
            name=name,
            description=clean_text(description, max_length=2000),
            product_type=kind,
            category=clean_text(category, max_length=128),
            price_cents=price,
            purchase_price_cents=cost,
            stock_quantity=0,
            low_stock_threshold=threshold,
            supplier_id=supplier.id if supplier is not None else None,
        )
        db.session.add(product)
        db.session.flush()

        if opening > 0:
            apply_movement_to_product(product, MOVEMENT_IN, opening, reason=INITIAL_STOCK_REASON)
        return product

    product = run_in_transaction(_op, operation="product creation")
    current_app.logger.info(
        "Product %s (%s) created for %s with opening stock %s",
        product.id, product.sku, owner_id, product.stock_quantity,
    )
    return product


def apply_movement_to_product(
    product: Product,
    movement_type: str,
    quantity: int,
    *,
    reason: str | None = None,
    reference: str | None = None,
    clamp: bool = False,
) -> StockChange:
    """
    Apply one stock movement to an already-loaded (and locked) product.

    Runs inside the caller's transaction; nothing is committed here.
    clamp=True floors an OUT at zero instead of failing (purchase reversals
    only). The recorded quantity is then the amount actually removed.
    """
    if movement_type not in MOVEMENT_TYPES:
        raise ValidationError(f"Invalid movement type: {movement_type}")
    quantity = _validate_quantity(quantity)

    previous = product.stock_quantity or 0

    if not product.is_stock_tracked:
        return StockChange(product.id, previous, previous)

    if movement_type == MOVEMENT_IN:
        new = previous + quantity
    elif movement_type == MOVEMENT_OUT:
        new = previous - quantity
        if new < 0:
            if not clamp:
                raise InsufficientStockError(product.id, product.name, quantity, previous)
            new = 0
    else:
        new = quantity

    if new == previous:
        return StockChange(product.id, previous, previous)

    product.stock_quantity = new
    movement = StockMovement(
        owner_id=product.owner_id,
        product_id=product.id,
        movement_type=movement_type,
        quantity=abs(new - previous),
        previous_stock=previous,
        new_stock=new,
        reason=reason,
        reference=reference,
        created_at=utcnow(),
    )
    db.session.add(movement)
    return StockChange(product.id, previous, new, movement)


def apply_movement(
    *,
    owner_id: str,
    product_id: int,
    movement_type: str,
    quantity: int,
    reason: str | None = None,
    reference: str | None = None,
    clamp: bool = False,
) -> StockChange:
    """Lock the product and apply a movement inside the caller's transaction."""
    product = get_product(owner_id, product_id, lock=True)
    return apply_movement_to_product(
        product,
        movement_type,
        quantity,
        reason=reason,
        reference=reference,
        clamp=clamp,
    )


def adjust_stock(
    *,
    owner_id: str,
    product_id: int,
    movement_type: str,
    quantity: int,
    reason: str | None = None,
    reference: str | None = None,
) -> StockChange:
    """
    Manual stock adjustment (stock adjust dialog).

    Top-level operation: commits on success, rolls back on failure.
    IN/OUT with quantity 0 and ADJUST to the current level are no-ops.
    """
    def _op() -> StockChange:
        return apply_movement(
            owner_id=owner_id,
            product_id=product_id,
            movement_type=movement_type,
            quantity=quantity,
            reason=reason,
            reference=reference,
        )

    return run_in_transaction(_op, operation="stock adjustment")


def set_product_stock(*, owner_id: str, product_id: int, quantity: int) -> StockChange:
    """Record a stock level typed into the product edit form as an ADJUST movement."""
    return adjust_stock(
        owner_id=owner_id,
        product_id=product_id,
        movement_type=MOVEMENT_ADJUST,
        quantity=quantity,
        reason="Direct adjustment from product edit",
    )


def get_stock_movements(
    owner_id: str,
    product_id: int,
    movement_type: str | None = None,
) -> list[StockMovement]:
    """Stock history for one product, newest first."""
    get_product(owner_id, product_id)

    query = db.session.query(StockMovement).filter_by(owner_id=owner_id, product_id=product_id)
    if movement_type:
        if movement_type not in MOVEMENT_TYPES:
            raise ValidationError(f"Invalid movement type: {movement_type}")
        query = query.filter_by(movement_type=movement_type)
    return query.order_by(StockMovement.created_at.desc(), StockMovement.id.desc()).all()


def get_low_stock_products(owner_id: str) -> list[Product]:
    return (
        db.session.query(Product)
        .filter(
            Product.owner_id == owner_id,
            Product.product_type == PRODUCT_TYPE_PRODUCT,
            Product.stock_quantity <= Product.low_stock_threshold,
        )
        .order_by(Product.stock_quantity.asc(), Product.name.asc())
        .all()
    )
