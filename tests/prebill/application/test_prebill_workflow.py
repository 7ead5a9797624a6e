"""Application tests for the pre-bill workflow: cart, shop groups and packing together."""

from decimal import Decimal

import pytest
from prebill.catalog.models import Product
from prebill.errors import CatalogUnavailable, InvalidOperation, NotFound, OperationBlocked
from prebill.packing.packing import PackingStatus


def _requested(service, shop_ref="shop-1"):
    service.request_packing(shop_ref)
    return service


def _snapshot(cart):
    return [(line.product_ref, line.quantity, line.unit_price) for line in cart.lines]


def _red_rice():
    return Product(id="prod-x", shop_ref="shop-1", name="Red Rice", price=Decimal("100"), unit="kg")


class TestAddAndGroup:
    def test_add_single_product(self, service):
        service.add_to_cart("prod-x", 2)

        assert service.grand_total() == Decimal("200")
        groups = service.groups()
        assert len(groups) == 1
        assert groups[0].shop_ref == "shop-1"
        assert groups[0].line_count == 1
        assert groups[0].total == Decimal("200")

    def test_add_same_product_twice_merges(self, service):
        service.add_to_cart("prod-x", 2)
        service.add_to_cart("prod-x", 3)

        assert len(service.cart.lines) == 1
        assert service.cart.lines[0].quantity == 5

    def test_add_unknown_product_fails(self, service):
        with pytest.raises(NotFound) as exc:
            service.add_to_cart("prod-404", 1)
        assert "product_ref" in exc.value.messages
        assert service.cart.is_empty

    def test_add_zero_quantity_is_ignored(self, service, reload):
        assert service.add_to_cart("prod-x", 0) is None
        assert reload().cart.is_empty

    def test_price_snapshot_survives_catalog_change(self, service, catalog):
        service.add_to_cart("prod-x", 1)
        catalog.set_price("prod-x", 130)
        service.add_to_cart("prod-x", 1)

        assert service.cart.lines[0].unit_price == Decimal("100")
        assert service.grand_total() == Decimal("200")

    def test_groups_span_shops(self, service):
        service.add_to_cart("prod-x", 2)
        service.add_to_cart("prod-z", 1)
        service.add_to_cart("prod-y", 2)

        groups = service.groups()
        assert [g.shop_ref for g in groups] == ["shop-1", "shop-2"]
        assert groups[0].total == Decimal("291.00")
        assert groups[1].total == Decimal("250")
        assert sum((g.total for g in groups), Decimal("0")) == service.grand_total()

    def test_groups_carry_packing_status(self, service):
        service.add_to_cart("prod-x", 1)
        service.add_to_cart("prod-z", 1)
        service.request_packing("shop-2")

        statuses = {g.shop_ref: g.status for g in service.groups()}
        assert statuses == {"shop-1": PackingStatus.ABSENT, "shop-2": PackingStatus.PENDING}


class TestQuantityChanges:
    def test_set_quantity(self, service):
        service.add_to_cart("prod-x", 1)
        line = service.set_quantity("prod-x", 4)
        assert line.quantity == 4
        assert service.grand_total() == Decimal("400")

    @pytest.mark.parametrize("quantity", [0, -5])
    def test_set_quantity_at_or_below_zero_removes_line(self, service, quantity):
        service.add_to_cart("prod-x", 3)
        assert service.set_quantity("prod-x", quantity) is None
        assert service.cart.line_for("prod-x") is None
        assert service.groups() == []

    def test_set_quantity_unknown_product_is_noop(self, service):
        service.add_to_cart("prod-x", 1)
        assert service.set_quantity("prod-404", 3) is None
        assert service.cart.item_count == 1

    def test_remove(self, service):
        service.add_to_cart("prod-x", 1)
        assert service.remove("prod-x") is True
        assert service.remove("prod-x") is False
        assert service.cart.is_empty


class TestPackingWorkflow:
    def test_request_packing_marks_group_pending(self, service):
        service.add_to_cart("prod-x", 2)
        assert service.request_packing("shop-1") == PackingStatus.PENDING
        assert service.packing_status("shop-1") == PackingStatus.PENDING

    def test_delete_is_blocked_while_pending(self, service):
        service.add_to_cart("prod-x", 2)
        _requested(service)

        with pytest.raises(OperationBlocked):
            service.delete_shop_group("shop-1")
        assert len(service.cart.lines) == 1

    def test_delete_succeeds_after_cancel(self, service):
        service.add_to_cart("prod-x", 2)
        _requested(service)

        assert service.cancel_packing("shop-1") == PackingStatus.ABSENT
        assert service.delete_shop_group("shop-1") == 1
        assert service.lines_for_shop("shop-1") == []

    def test_request_for_shop_without_lines_fails(self, service):
        service.add_to_cart("prod-x", 1)

        with pytest.raises(InvalidOperation):
            service.request_packing("shop-2")
        assert service.packing_status("shop-2") == PackingStatus.ABSENT

    def test_cancel_twice_is_idempotent(self, service):
        service.add_to_cart("prod-x", 1)
        _requested(service)

        service.cancel_packing("shop-1")
        assert service.cancel_packing("shop-1") == PackingStatus.ABSENT

    def test_cancel_without_request_is_noop(self, service):
        assert service.cancel_packing("shop-1") == PackingStatus.ABSENT

    @pytest.mark.parametrize(
        "targets",
        [
            [PackingStatus.PROCESSING],
            [],
        ],
    )
    def test_delete_is_blocked_while_in_flight(self, service, targets):
        service.add_to_cart("prod-x", 1)
        service.add_to_cart("prod-y", 1)
        _requested(service)
        for target in targets:
            service.advance_packing("shop-1", target)

        before = _snapshot(service.cart)
        with pytest.raises(OperationBlocked):
            service.delete_shop_group("shop-1")
        assert _snapshot(service.cart) == before

    def test_shop_advances_request_to_completed(self, service):
        service.add_to_cart("prod-x", 1)
        _requested(service)

        assert service.advance_packing("shop-1", PackingStatus.PROCESSING) == PackingStatus.PROCESSING
        assert service.advance_packing("shop-1", PackingStatus.COMPLETED) == PackingStatus.COMPLETED
        assert service.packing_status("shop-1") == PackingStatus.COMPLETED

    @pytest.mark.parametrize(
        "targets",
        [
            [PackingStatus.PROCESSING],
            [PackingStatus.PROCESSING, PackingStatus.COMPLETED],
        ],
    )
    def test_cancel_once_shop_has_started_is_noop(self, service, reload, targets):
        service.add_to_cart("prod-x", 1)
        _requested(service)
        for target in targets:
            service.advance_packing("shop-1", target)

        assert service.cancel_packing("shop-1") == targets[-1]
        assert reload().packing_status("shop-1") == targets[-1]

    def test_request_again_after_completion(self, service, reload):
        service.add_to_cart("prod-x", 1)
        _requested(service)
        service.advance_packing("shop-1", PackingStatus.PROCESSING)
        service.advance_packing("shop-1", PackingStatus.COMPLETED)
        service.delete_shop_group("shop-1")

        service.add_to_cart("prod-y", 2)
        assert service.request_packing("shop-1") == PackingStatus.PENDING
        assert reload().packing_status("shop-1") == PackingStatus.PENDING

    def test_request_again_while_pending_fails(self, service):
        service.add_to_cart("prod-x", 1)
        _requested(service)

        with pytest.raises(InvalidOperation):
            service.request_packing("shop-1")
        assert service.packing_status("shop-1") == PackingStatus.PENDING

    def test_completed_group_can_be_deleted_and_record_survives(self, service):
        service.add_to_cart("prod-x", 1)
        _requested(service)
        service.advance_packing("shop-1", PackingStatus.PROCESSING)
        service.advance_packing("shop-1", PackingStatus.COMPLETED)

        assert service.delete_shop_group("shop-1") == 1
        assert service.packing_status("shop-1") == PackingStatus.COMPLETED

        assert service.clear_completed_packing("shop-1") is True
        assert service.packing_status("shop-1") == PackingStatus.ABSENT

    def test_clear_completed_refuses_in_flight_request(self, service):
        service.add_to_cart("prod-x", 1)
        _requested(service)

        with pytest.raises(OperationBlocked):
            service.clear_completed_packing("shop-1")

    def test_delete_only_touches_one_shop(self, service):
        service.add_to_cart("prod-x", 1)
        service.add_to_cart("prod-z", 1)
        _requested(service, "shop-2")

        assert service.delete_shop_group("shop-1") == 1
        assert [g.shop_ref for g in service.groups()] == ["shop-2"]
        assert service.packing_status("shop-2") == PackingStatus.PENDING

    def test_delete_unknown_group_removes_nothing(self, service):
        assert service.delete_shop_group("shop-1") == 0


class TestClearCart:
    def test_clear(self, service):
        service.add_to_cart("prod-x", 1)
        service.add_to_cart("prod-z", 1)
        service.clear()
        assert service.cart.is_empty
        assert service.grand_total() == Decimal("0")

    def test_clear_is_blocked_while_a_shop_is_packing(self, service):
        service.add_to_cart("prod-x", 1)
        service.add_to_cart("prod-z", 1)
        _requested(service, "shop-2")

        with pytest.raises(OperationBlocked) as exc:
            service.clear()
        assert "shop_ref" in exc.value.messages
        assert len(service.cart.lines) == 2


class TestShopDetail:
    def test_open_shop_detail(self, service):
        service.add_to_cart("prod-x", 2)
        service.add_to_cart("prod-z", 1)
        service.add_to_cart("prod-y", 1)

        detail = service.open_shop_detail("shop-1")
        assert detail.shop.name == "Green Grocer"
        assert detail.shop.address == "12 Temple Rd"
        assert [line.product_ref for line in detail.lines] == ["prod-x", "prod-y"]
        assert detail.group.total == Decimal("245.50")
        assert detail.status == PackingStatus.ABSENT

    def test_open_shop_detail_without_lines_fails(self, service):
        with pytest.raises(NotFound):
            service.open_shop_detail("shop-2")

    def test_shop_missing_from_catalog_uses_placeholder(self, service, catalog):
        service.add_to_cart("prod-z", 1)
        del catalog.shops["shop-2"]

        detail = service.open_shop_detail("shop-2")
        assert detail.shop.name == "Shop #shop-2"
        assert detail.shop.address == "Unknown Address"

    def test_bill(self, service, monkeypatch):
        monkeypatch.setenv("PREBILL_PACKING_FEE", "0")
        service.add_to_cart("prod-x", 2)
        service.add_to_cart("prod-y", 2)
        _requested(service)

        bill = service.bill("shop-1", discount=Decimal("11"))
        assert bill.shop.name == "Green Grocer"
        assert bill.status == PackingStatus.PENDING
        assert bill.subtotal == Decimal("291.00")
        assert bill.grand_total == Decimal("280.00")
        assert bill.invoice_id.startswith("INV-")

    def test_bill_without_lines_fails(self, service):
        with pytest.raises(NotFound):
            service.bill("shop-1")


class TestPersistence:
    def test_cart_and_packing_survive_reload(self, service, reload):
        service.add_to_cart("prod-x", 2)
        service.add_to_cart("prod-z", 1)
        _requested(service)

        restored = reload()
        assert _snapshot(restored.cart) == _snapshot(service.cart)
        assert restored.packing_status("shop-1") == PackingStatus.PENDING
        assert restored.packing_status("shop-2") == PackingStatus.ABSENT

    def test_delete_guard_holds_after_reload(self, service, reload):
        service.add_to_cart("prod-x", 1)
        _requested(service)

        with pytest.raises(OperationBlocked):
            reload().delete_shop_group("shop-1")

    def test_cancel_is_persisted(self, service, reload):
        service.add_to_cart("prod-x", 1)
        _requested(service)
        service.cancel_packing("shop-1")

        assert reload().packing_status("shop-1") == PackingStatus.ABSENT

    def test_sessions_are_isolated(self, service, reload):
        service.add_to_cart("prod-x", 1)
        assert reload("sess-002").cart.is_empty


class TestCatalogOutage:
    @pytest.fixture()
    def catalog_down(self, catalog, monkeypatch):
        def unavailable(_ref):
            raise CatalogUnavailable({"catalog": ["Catalog request failed: 503"]})

        monkeypatch.setattr(catalog, "get_shop", unavailable)
        monkeypatch.setattr(catalog, "get_product", unavailable)
        return catalog

    def test_shop_detail_falls_back_to_placeholder(self, service, catalog_down):
        service.add(_red_rice(), 2)

        detail = service.open_shop_detail("shop-1")
        assert detail.shop.name == "Shop #shop-1"
        assert detail.group.total == Decimal("200")

    def test_bill_falls_back_to_placeholder(self, service, catalog_down):
        service.add(_red_rice(), 1)

        bill = service.bill("shop-1")
        assert bill.shop.name == "Shop #shop-1"
        assert bill.subtotal == Decimal("100")

    def test_add_to_cart_fails_and_leaves_cart_untouched(self, service, reload, catalog_down):
        with pytest.raises(CatalogUnavailable):
            service.add_to_cart("prod-x", 1)
        assert service.cart.is_empty
        assert reload().cart.is_empty
