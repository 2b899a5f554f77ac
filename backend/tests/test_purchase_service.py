# Overview: Pytest coverage for the purchase draft/post/cancel lifecycle.

"""
Purchase Lifecycle Tests

DRAFT -> POSTED and DRAFT -> CANCELED are the only transitions; posting
creates one lot and one IN movement per line in a single transaction.
"""

import pytest
from lotledger.extensions import db
from lotledger.models import InventoryLot, InventoryMovement, Product, Purchase, PurchaseItem
from lotledger.services import purchase_service
from lotledger.services.errors import InvalidStateError, NotFoundError, ValidationError
from lotledger.services.purchase_service import (
    PurchaseLine,
    build_posting,
    resolve_cost_price_updates,
    validate_purchase_items,
)


def _lots_for(purchase_id):
    return db.session.query(InventoryLot).filter_by(purchase_id=purchase_id).all()


def _movements_for(purchase_id):
    return db.session.query(InventoryMovement).filter_by(
        source_type="PURCHASE", source_id=str(purchase_id)
    ).all()


class TestValidatePurchaseItems:
    """The shared pure validation used by create and update."""

    def test_empty_items_rejected(self):
        with pytest.raises(ValidationError):
            validate_purchase_items([])
        with pytest.raises(ValidationError):
            validate_purchase_items(None)

    @pytest.mark.parametrize("qty", [0, -3])
    def test_non_positive_qty_rejected(self, qty):
        with pytest.raises(ValidationError, match="Quantity must be positive"):
            validate_purchase_items([{"product_id": 1, "qty": qty, "unit_cost_cents": 100}])

    def test_negative_cost_rejected(self):
        with pytest.raises(ValidationError, match="Unit cost cannot be negative"):
            validate_purchase_items([{"product_id": 1, "qty": 1, "unit_cost_cents": -1}])

    def test_float_qty_rejected(self):
        with pytest.raises(ValidationError):
            validate_purchase_items([{"product_id": 1, "qty": 1.5, "unit_cost_cents": 100}])

    def test_zero_cost_allowed(self):
        lines = validate_purchase_items([{"product_id": 1, "qty": 2, "unit_cost_cents": 0}])
        assert lines == [PurchaseLine(product_id=1, qty=2, unit_cost_cents=0)]


class TestCreateDraft:

    def test_creates_draft_with_items(self, db_session, product):
        purchase = purchase_service.create_draft(
            [{"product_id": product.id, "qty": 10, "unit_cost_cents": 100}],
            supplier="Acme",
            comment="first delivery",
        )

        assert purchase.status == "DRAFT"
        assert purchase.posted_at is None
        assert purchase.supplier == "Acme"
        assert len(purchase.items) == 1
        assert purchase.items[0].qty == 10
        assert purchase.total_cost_cents == 1000

    def test_blank_supplier_stored_as_null(self, db_session, product):
        purchase = purchase_service.create_draft(
            [{"product_id": product.id, "qty": 1, "unit_cost_cents": 100}],
            supplier="   ",
        )
        assert purchase.supplier is None

    def test_unknown_product_rejected(self, db_session, product):
        with pytest.raises(ValidationError, match="products not found"):
            purchase_service.create_draft([
                {"product_id": product.id, "qty": 1, "unit_cost_cents": 100},
                {"product_id": 99999, "qty": 1, "unit_cost_cents": 100},
            ])
        assert db_session.query(Purchase).count() == 0

    def test_duplicate_product_lines_allowed(self, db_session, product):
        purchase = purchase_service.create_draft([
            {"product_id": product.id, "qty": 1, "unit_cost_cents": 100},
            {"product_id": product.id, "qty": 2, "unit_cost_cents": 120},
        ])
        assert len(purchase.items) == 2


class TestUpdateDraft:

    def test_replaces_whole_item_set(self, db_session, make_product):
        a = make_product(title="A")
        b = make_product(title="B")
        purchase = purchase_service.create_draft([
            {"product_id": a.id, "qty": 1, "unit_cost_cents": 100},
            {"product_id": a.id, "qty": 2, "unit_cost_cents": 100},
        ])

        updated = purchase_service.update_draft(
            purchase.id,
            items=[{"product_id": b.id, "qty": 5, "unit_cost_cents": 300}],
        )

        assert [(i.product_id, i.qty, i.unit_cost_cents) for i in updated.items] == [(b.id, 5, 300)]
        assert db_session.query(PurchaseItem).filter_by(purchase_id=purchase.id).count() == 1

    def test_invalid_items_leave_existing_set(self, db_session, product):
        purchase = purchase_service.create_draft(
            [{"product_id": product.id, "qty": 3, "unit_cost_cents": 100}]
        )

        with pytest.raises(ValidationError):
            purchase_service.update_draft(
                purchase.id,
                items=[{"product_id": product.id, "qty": 0, "unit_cost_cents": 100}],
            )

        items = db_session.query(PurchaseItem).filter_by(purchase_id=purchase.id).all()
        assert [(i.qty, i.unit_cost_cents) for i in items] == [(3, 100)]

    def test_patches_supplier_and_comment_only(self, db_session, product):
        purchase = purchase_service.create_draft(
            [{"product_id": product.id, "qty": 3, "unit_cost_cents": 100}],
            supplier="Old",
            comment="keep",
        )

        updated = purchase_service.update_draft(purchase.id, supplier="New")

        assert updated.supplier == "New"
        assert updated.comment == "keep"
        assert len(updated.items) == 1

    def test_missing_purchase(self, db_session):
        with pytest.raises(NotFoundError):
            purchase_service.update_draft(12345, supplier="x")

    @pytest.mark.parametrize("terminal", ["post", "cancel"])
    def test_terminal_purchase_not_editable(self, db_session, product, terminal):
        purchase = purchase_service.create_draft(
            [{"product_id": product.id, "qty": 3, "unit_cost_cents": 100}]
        )
        if terminal == "post":
            purchase_service.post_purchase(purchase.id)
        else:
            purchase_service.cancel_purchase(purchase.id)

        with pytest.raises(InvalidStateError):
            purchase_service.update_draft(
                purchase.id,
                items=[{"product_id": product.id, "qty": 9, "unit_cost_cents": 1}],
            )


class TestPostPurchase:

    def test_single_item_scenario(self, db_session, product):
        purchase = purchase_service.create_draft(
            [{"product_id": product.id, "qty": 10, "unit_cost_cents": 100}]
        )

        result = purchase_service.post_purchase(purchase.id)

        assert result["lots_created"] == 1
        assert result["movements_created"] == 1
        assert result["purchase"].status == "POSTED"
        assert result["purchase"].posted_at is not None

        lots = _lots_for(purchase.id)
        assert len(lots) == 1
        assert lots[0].qty_received == 10
        assert lots[0].qty_remaining == 10
        assert lots[0].unit_cost_cents == 100
        assert lots[0].received_at == result["posted_at"]

        movements = _movements_for(purchase.id)
        assert len(movements) == 1
        assert movements[0].type == "IN"
        assert movements[0].quantity == 10

    def test_lot_quantities_match_items(self, db_session, make_product):
        a = make_product()
        b = make_product()
        purchase = purchase_service.create_draft([
            {"product_id": a.id, "qty": 4, "unit_cost_cents": 100},
            {"product_id": b.id, "qty": 7, "unit_cost_cents": 250},
            {"product_id": a.id, "qty": 2, "unit_cost_cents": 110},
        ])

        purchase_service.post_purchase(purchase.id)

        lots = _lots_for(purchase.id)
        assert len(lots) == 3
        assert sum(l.qty_received for l in lots) == sum(i.qty for i in purchase.items) == 13

    def test_second_post_fails_without_new_lots(self, db_session, product):
        purchase = purchase_service.create_draft(
            [{"product_id": product.id, "qty": 5, "unit_cost_cents": 100}]
        )

        purchase_service.post_purchase(purchase.id)
        with pytest.raises(InvalidStateError):
            purchase_service.post_purchase(purchase.id)

        assert len(_lots_for(purchase.id)) == 1
        assert len(_movements_for(purchase.id)) == 1

    def test_post_missing_purchase(self, db_session):
        with pytest.raises(NotFoundError):
            purchase_service.post_purchase(4242)

    def test_post_canceled_purchase(self, db_session, product):
        purchase = purchase_service.create_draft(
            [{"product_id": product.id, "qty": 5, "unit_cost_cents": 100}]
        )
        purchase_service.cancel_purchase(purchase.id)

        with pytest.raises(InvalidStateError):
            purchase_service.post_purchase(purchase.id)

    def test_post_empty_draft(self, db_session, product):
        purchase = Purchase(status="DRAFT")
        db_session.add(purchase)
        db_session.commit()

        with pytest.raises(InvalidStateError, match="items"):
            purchase_service.post_purchase(purchase.id)

    def test_update_cost_price_last_line_wins(self, db_session, make_product):
        a = make_product(cost_price_cents=1)
        b = make_product(cost_price_cents=2)
        untouched = make_product(cost_price_cents=3)
        purchase = purchase_service.create_draft([
            {"product_id": a.id, "qty": 1, "unit_cost_cents": 100},
            {"product_id": b.id, "qty": 1, "unit_cost_cents": 200},
            {"product_id": a.id, "qty": 1, "unit_cost_cents": 150},
        ])

        purchase_service.post_purchase(purchase.id, update_cost_price=True)

        assert db_session.get(Product, a.id).cost_price_cents == 150
        assert db_session.get(Product, b.id).cost_price_cents == 200
        assert db_session.get(Product, untouched.id).cost_price_cents == 3

    def test_cost_price_untouched_by_default(self, db_session, make_product):
        p = make_product(cost_price_cents=999)
        purchase = purchase_service.create_draft([{"product_id": p.id, "qty": 1, "unit_cost_cents": 100}])

        purchase_service.post_purchase(purchase.id)

        assert db_session.get(Product, p.id).cost_price_cents == 999

    def test_failure_midway_rolls_back_everything(self, db_session, product, monkeypatch):
        purchase = purchase_service.create_draft(
            [{"product_id": product.id, "qty": 5, "unit_cost_cents": 100}]
        )

        def _boom(product_id, unit_cost_cents):
            raise RuntimeError("catalog unavailable")

        monkeypatch.setattr(purchase_service, "set_reference_cost", _boom)

        with pytest.raises(RuntimeError):
            purchase_service.post_purchase(purchase.id, update_cost_price=True)

        assert db_session.query(InventoryLot).count() == 0
        assert db_session.query(InventoryMovement).count() == 0
        assert db_session.get(Purchase, purchase.id).status == "DRAFT"
        assert db_session.get(Purchase, purchase.id).posted_at is None


class TestPostingResult:

    def test_resolve_cost_price_updates_is_ordered_fold(self):
        lines = [
            PurchaseLine(product_id=1, qty=1, unit_cost_cents=10),
            PurchaseLine(product_id=2, qty=1, unit_cost_cents=20),
            PurchaseLine(product_id=1, qty=1, unit_cost_cents=30),
        ]
        assert resolve_cost_price_updates(lines) == ((1, 30), (2, 20))

    def test_build_posting_has_no_side_effects(self, db_session, product):
        purchase = purchase_service.create_draft(
            [{"product_id": product.id, "qty": 5, "unit_cost_cents": 100}]
        )

        posting = build_posting(purchase, posted_at=purchase.created_at, update_cost_price=True)

        assert len(posting.lots) == 1
        assert posting.lots[0].qty == 5
        assert posting.movements[0].quantity == 5
        assert posting.cost_price_updates == ((product.id, 100),)
        assert db_session.query(InventoryLot).count() == 0
        assert purchase.status == "DRAFT"


class TestCancelPurchase:

    def test_cancel_draft_has_no_stock_effect(self, db_session, product):
        purchase = purchase_service.create_draft(
            [{"product_id": product.id, "qty": 5, "unit_cost_cents": 100}]
        )

        canceled = purchase_service.cancel_purchase(purchase.id)

        assert canceled.status == "CANCELED"
        assert _lots_for(purchase.id) == []
        assert _movements_for(purchase.id) == []

    def test_cancel_posted_rejected(self, db_session, product):
        purchase = purchase_service.create_draft(
            [{"product_id": product.id, "qty": 5, "unit_cost_cents": 100}]
        )
        purchase_service.post_purchase(purchase.id)

        with pytest.raises(InvalidStateError, match="POSTED"):
            purchase_service.cancel_purchase(purchase.id)

    def test_cancel_twice_rejected(self, db_session, product):
        purchase = purchase_service.create_draft(
            [{"product_id": product.id, "qty": 5, "unit_cost_cents": 100}]
        )
        purchase_service.cancel_purchase(purchase.id)

        with pytest.raises(InvalidStateError, match="already canceled"):
            purchase_service.cancel_purchase(purchase.id)

    def test_cancel_missing(self, db_session):
        with pytest.raises(NotFoundError):
            purchase_service.cancel_purchase(777)


class TestListPurchases:

    def test_filters_and_search(self, db_session, product):
        items = [{"product_id": product.id, "qty": 1, "unit_cost_cents": 100}]
        p1 = purchase_service.create_draft(items, supplier="Green Farms")
        p2 = purchase_service.create_draft(items, supplier="Blue Co", comment="green tea batch")
        p3 = purchase_service.create_draft(items, supplier="Red Ltd")
        purchase_service.post_purchase(p3.id)

        drafts = purchase_service.list_purchases(status="DRAFT")
        assert {p.id for p in drafts["items"]} == {p1.id, p2.id}
        assert drafts["total"] == 2

        found = purchase_service.list_purchases(search="GREEN")
        assert {p.id for p in found["items"]} == {p1.id, p2.id}

    def test_pagination_clamped(self, db_session, product):
        items = [{"product_id": product.id, "qty": 1, "unit_cost_cents": 100}]
        for _ in range(3):
            purchase_service.create_draft(items)

        page = purchase_service.list_purchases(page=2, page_size=2)
        assert page["total"] == 3
        assert len(page["items"]) == 1

        clamped = purchase_service.list_purchases(page=0, page_size=1000)
        assert clamped["page"] == 1
        assert clamped["page_size"] == 100

    def test_invalid_status(self, db_session):
        with pytest.raises(ValidationError):
            purchase_service.list_purchases(status="OPEN")
