"""
Purchase engine tests.

Covers:
- COMPLETED purchases add stock and supplier due, PENDING ones do nothing
- Edits reverse the old effects then apply the new ones
- Deletes reverse with clamping at zero stock
- A missing product aborts the whole purchase
"""

import re

import pytest

from stockbook.errors import NotFoundError, ProductNotFoundError, ValidationError
from stockbook.models import Purchase, PurchaseLine, StockMovement
from stockbook.services import order_service, purchase_service

from conftest import OTHER_OWNER, OWNER


def _line(product, quantity, price_cents=700):
    return {"product_id": product.id, "quantity": quantity, "purchase_price_cents": price_cents}


def _purchase_movements(db_session):
    """Movements written by purchases (opening stock carries no reference)."""
    return db_session.query(StockMovement).filter(StockMovement.reference.isnot(None))


def _movement_trail(db_session, product):
    rows = _purchase_movements(db_session).filter_by(product_id=product.id).order_by(StockMovement.id).all()
    return [(m.movement_type, m.quantity, m.new_stock) for m in rows]


class TestCreatePurchase:
    """create_purchase."""

    def test_completed_purchase_restocks_and_adds_due(self, db_session, make_product, make_supplier):
        product = make_product(stock=10, purchase_price_cents=600)
        supplier = make_supplier()

        purchase = purchase_service.create_purchase(
            owner_id=OWNER, supplier_id=supplier.id, items=[_line(product, 5, 700)], paid_cents=1000
        )

        assert purchase.total_cents == 3500
        assert purchase.paid_cents == 1000
        assert purchase.due_cents == 2500
        assert purchase.payment_status == "PARTIAL"
        assert purchase.status == "COMPLETED"
        assert supplier.due_cents == 2500
        assert product.stock_quantity == 15
        assert product.purchase_price_cents == 700
        assert product.supplier_id == supplier.id

        movement = _purchase_movements(db_session).one()
        assert movement.movement_type == "IN"
        assert movement.reason == f"Purchase Restock [{purchase.purchase_number}]"
        assert movement.reference == purchase.purchase_number

    def test_purchase_number_generated(self, db_session, make_product, make_supplier):
        purchase = purchase_service.create_purchase(
            owner_id=OWNER, supplier_id=make_supplier().id, items=[_line(make_product(), 1)]
        )

        assert re.match(r"^PO-\d+-\d{4}$", purchase.purchase_number)

    def test_explicit_number_and_total(self, db_session, make_product, make_supplier):
        supplier = make_supplier()

        purchase = purchase_service.create_purchase(
            owner_id=OWNER,
            supplier_id=supplier.id,
            items=[_line(make_product(), 2, 700)],
            total_cents=1200,
            paid_cents=1200,
            purchase_number="PO-MANUAL-1",
        )

        assert purchase.purchase_number == "PO-MANUAL-1"
        assert purchase.total_cents == 1200
        assert purchase.payment_status == "PAID"
        assert supplier.due_cents == 0

    def test_unpaid_status(self, db_session, make_product, make_supplier):
        purchase = purchase_service.create_purchase(
            owner_id=OWNER, supplier_id=make_supplier().id, items=[_line(make_product(), 1)]
        )

        assert purchase.payment_status == "UNPAID"
        assert purchase.due_cents == 700

    def test_pending_purchase_has_no_effects(self, db_session, make_product, make_supplier):
        product = make_product(stock=10)
        supplier = make_supplier()

        purchase = purchase_service.create_purchase(
            owner_id=OWNER, supplier_id=supplier.id, items=[_line(product, 5)], status="pending"
        )

        assert purchase.status == "PENDING"
        assert product.stock_quantity == 10
        assert supplier.due_cents == 0
        assert _purchase_movements(db_session).count() == 0

    def test_missing_product_aborts_everything(self, db_session, make_product, make_supplier):
        product = make_product(stock=10)
        supplier = make_supplier()

        with pytest.raises(ProductNotFoundError):
            purchase_service.create_purchase(
                owner_id=OWNER,
                supplier_id=supplier.id,
                items=[_line(product, 5), {"product_id": 99999, "quantity": 1, "purchase_price_cents": 100}],
            )

        assert db_session.query(Purchase).count() == 0
        assert db_session.query(PurchaseLine).count() == 0
        assert _purchase_movements(db_session).count() == 0
        assert supplier.due_cents == 0
        assert product.stock_quantity == 10

    def test_missing_supplier(self, db_session, make_product):
        with pytest.raises(NotFoundError):
            purchase_service.create_purchase(owner_id=OWNER, supplier_id=99999, items=[_line(make_product(), 1)])

    @pytest.mark.parametrize("items", [
        [],
        [{"product_id": 1, "quantity": 0, "purchase_price_cents": 100}],
        [{"product_id": 1, "quantity": 1, "purchase_price_cents": -1}],
        [{"quantity": 1, "purchase_price_cents": 100}],
    ])
    def test_invalid_items(self, db_session, make_supplier, items):
        with pytest.raises(ValidationError):
            purchase_service.create_purchase(owner_id=OWNER, supplier_id=make_supplier().id, items=items)


class TestUpdatePurchase:
    """update_purchase."""

    def test_quantity_edit_nets_new_quantity(self, db_session, make_product, make_supplier):
        product = make_product(stock=10)
        supplier = make_supplier()
        purchase = purchase_service.create_purchase(
            owner_id=OWNER, supplier_id=supplier.id, items=[_line(product, 5, 700)]
        )

        purchase_service.update_purchase(owner_id=OWNER, purchase_id=purchase.id, items=[_line(product, 8, 700)])

        assert product.stock_quantity == 18
        assert _movement_trail(db_session, product) == [("IN", 5, 15), ("OUT", 5, 10), ("IN", 8, 18)]
        assert purchase.total_cents == 5600
        assert purchase.due_cents == 5600
        assert supplier.due_cents == 5600
        assert [line.quantity for line in purchase.lines] == [8]

        reasons = [m.reason for m in _purchase_movements(db_session).order_by(StockMovement.id)]
        assert reasons[1] == f"Purchase Edit Reversal [{purchase.purchase_number}]"
        assert reasons[2] == f"Purchase Edit Restock [{purchase.purchase_number}]"

    def test_payment_only_edit_keeps_lines(self, db_session, make_product, make_supplier):
        product = make_product(stock=10)
        supplier = make_supplier()
        purchase = purchase_service.create_purchase(
            owner_id=OWNER, supplier_id=supplier.id, items=[_line(product, 5, 700)]
        )

        purchase_service.update_purchase(owner_id=OWNER, purchase_id=purchase.id, paid_cents=3500)

        assert purchase.payment_status == "PAID"
        assert purchase.due_cents == 0
        assert supplier.due_cents == 0
        assert product.stock_quantity == 15

    def test_supplier_change_moves_due(self, db_session, make_product, make_supplier):
        product = make_product(stock=10)
        old_supplier = make_supplier(name="Old")
        new_supplier = make_supplier(name="New")
        purchase = purchase_service.create_purchase(
            owner_id=OWNER, supplier_id=old_supplier.id, items=[_line(product, 2, 1000)]
        )

        purchase_service.update_purchase(owner_id=OWNER, purchase_id=purchase.id, supplier_id=new_supplier.id)

        assert old_supplier.due_cents == 0
        assert new_supplier.due_cents == 2000
        assert purchase.supplier_id == new_supplier.id
        assert product.supplier_id == new_supplier.id

    def test_cancel_reverses_completed_purchase(self, db_session, make_product, make_supplier):
        product = make_product(stock=10)
        supplier = make_supplier()
        purchase = purchase_service.create_purchase(
            owner_id=OWNER, supplier_id=supplier.id, items=[_line(product, 5)]
        )

        purchase_service.update_purchase(owner_id=OWNER, purchase_id=purchase.id, status="CANCELLED")

        assert purchase.status == "CANCELLED"
        assert product.stock_quantity == 10
        assert supplier.due_cents == 0

    def test_completing_pending_purchase_applies_effects(self, db_session, make_product, make_supplier):
        product = make_product(stock=10)
        supplier = make_supplier()
        purchase = purchase_service.create_purchase(
            owner_id=OWNER, supplier_id=supplier.id, items=[_line(product, 4, 500)], status="PENDING"
        )

        purchase_service.update_purchase(owner_id=OWNER, purchase_id=purchase.id, status="COMPLETED")

        assert product.stock_quantity == 14
        assert supplier.due_cents == 2000
        assert _movement_trail(db_session, product) == [("IN", 4, 14)]

    def test_missing_product_on_edit_rolls_back(self, db_session, make_product, make_supplier):
        product = make_product(stock=10)
        supplier = make_supplier()
        purchase = purchase_service.create_purchase(
            owner_id=OWNER, supplier_id=supplier.id, items=[_line(product, 5)]
        )

        with pytest.raises(ProductNotFoundError):
            purchase_service.update_purchase(
                owner_id=OWNER,
                purchase_id=purchase.id,
                items=[{"product_id": 99999, "quantity": 1, "purchase_price_cents": 100}],
            )

        assert product.stock_quantity == 15
        assert supplier.due_cents == 3500
        assert _purchase_movements(db_session).count() == 1
        assert [line.quantity for line in purchase.lines] == [5]


class TestDeletePurchase:
    """delete_purchase."""

    def test_delete_reverses_effects(self, db_session, make_product, make_supplier):
        product = make_product(stock=10)
        supplier = make_supplier()
        purchase = purchase_service.create_purchase(
            owner_id=OWNER, supplier_id=supplier.id, items=[_line(product, 5)]
        )

        purchase_service.delete_purchase(owner_id=OWNER, purchase_id=purchase.id)

        assert product.stock_quantity == 10
        assert supplier.due_cents == 0
        assert db_session.query(Purchase).count() == 0
        last = _purchase_movements(db_session).order_by(StockMovement.id.desc()).first()
        assert last.movement_type == "OUT"
        assert last.reason.startswith("Purchase Deleted [")

    def test_delete_clamps_at_zero(self, db_session, make_product, make_supplier):
        product = make_product(stock=0)
        supplier = make_supplier()
        purchase = purchase_service.create_purchase(
            owner_id=OWNER, supplier_id=supplier.id, items=[_line(product, 5)]
        )
        order_service.create_order(owner_id=OWNER, items=[{"product_id": product.id, "quantity": 3}])

        purchase_service.delete_purchase(owner_id=OWNER, purchase_id=purchase.id)

        assert product.stock_quantity == 0
        assert _movement_trail(db_session, product)[-1] == ("OUT", 2, 0)

    def test_delete_pending_has_no_stock_effect(self, db_session, make_product, make_supplier):
        product = make_product(stock=10)
        purchase = purchase_service.create_purchase(
            owner_id=OWNER, supplier_id=make_supplier().id, items=[_line(product, 5)], status="PENDING"
        )

        purchase_service.delete_purchase(owner_id=OWNER, purchase_id=purchase.id)

        assert product.stock_quantity == 10
        assert _purchase_movements(db_session).count() == 0


class TestPurchaseQueries:
    """Lookup and listing."""

    def test_list_and_get_scoped(self, db_session, make_product, make_supplier):
        supplier_a = make_supplier(name="A")
        supplier_b = make_supplier(name="B")
        product = make_product()
        first = purchase_service.create_purchase(owner_id=OWNER, supplier_id=supplier_a.id, items=[_line(product, 1)])
        second = purchase_service.create_purchase(owner_id=OWNER, supplier_id=supplier_b.id, items=[_line(product, 1)])

        assert [p.id for p in purchase_service.list_purchases(OWNER)] == [second.id, first.id]
        assert [p.id for p in purchase_service.list_purchases(OWNER, supplier_id=supplier_a.id)] == [first.id]
        assert purchase_service.get_purchase(OWNER, first.id).id == first.id
        with pytest.raises(NotFoundError):
            purchase_service.get_purchase(OTHER_OWNER, first.id)
