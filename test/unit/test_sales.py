"""
Unit tests for POS checkout helpers.
"""
from datetime import datetime, timezone

import pytest

from backend.app.services.exceptions import EntityNotFoundError, InsufficientStockError
from backend.app.services.sales import (
    build_transaction,
    generate_transaction_number,
    quantities_by_item,
    release_stock,
    reserve_stock,
    stock_movements,
)

pytestmark = pytest.mark.unit

SOLD_AT = datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)


class TestTransactionNumber:
    def test_format(self):
        number = generate_transaction_number(SOLD_AT)

        assert number.startswith("POS260314")
        assert len(number) == len("POS260314") + 6
        assert number[3:].isdigit()


class TestReserveStock:
    @pytest.mark.asyncio
    async def test_takes_quantities_off(self, make_controller, sample_items, mock_remote):
        items = make_controller(sample_items)

        before = reserve_stock(items, [{"item_id": "i2", "quantity": 3}, {"item_id": "i2", "quantity": 2},
                                       {"item_id": "i3", "quantity": 10}])

        assert before["i2"]["current_quantity"] == 30
        assert items.get("i2")["current_quantity"] == 25
        assert items.get("i3")["current_quantity"] == 0
        await items.settle()
        mock_remote.update.assert_any_await("i2", {"current_quantity": 25})

    @pytest.mark.asyncio
    async def test_short_line_leaves_all_stock_untouched(self, make_controller, sample_items, mock_remote):
        items = make_controller(sample_items)

        with pytest.raises(InsufficientStockError, match="Insufficient stock for Espresso Beans. Available: 4"):
            reserve_stock(items, [{"item_id": "i2", "quantity": 1}, {"item_id": "i1", "quantity": 5}])

        assert items.get("i2")["current_quantity"] == 30
        mock_remote.update.assert_not_called()

    def test_unknown_item(self, make_controller, sample_items):
        items = make_controller(sample_items)

        with pytest.raises(EntityNotFoundError):
            reserve_stock(items, [{"item_id": "ghost", "quantity": 1}])

    @pytest.mark.asyncio
    async def test_release_puts_stock_back(self, make_controller, sample_items):
        items = make_controller(sample_items)
        lines = [{"item_id": "i4", "quantity": 5}]

        reserve_stock(items, lines)
        release_stock(items, lines)

        assert items.get("i4")["current_quantity"] == 25
        await items.settle()

    def test_quantities_are_summed_per_item(self):
        lines = [{"item_id": "a", "quantity": 1}, {"item_id": "b", "quantity": 2}, {"item_id": "a", "quantity": 3}]

        assert quantities_by_item(lines) == {"a": 4, "b": 2}


class TestBuildTransaction:
    ITEMS = {
        "i1": {"id": "i1", "name": "Espresso Beans", "unit_price": 12.0, "purchase_rate": 7.5, "barcode": "4006381333931"},
        "i2": {"id": "i2", "name": "Oat Milk", "sale_rate": 3.2},
    }

    def test_prices_lines_and_totals(self):
        data = {"items": [{"item_id": "i1", "quantity": 2}, {"item_id": "i2", "quantity": 1, "unit_price": 3.0}],
                "payment_method": "card", "cashier_id": "u7"}

        transaction = build_transaction(data, self.ITEMS, now=SOLD_AT)

        first, second = transaction["items"]
        assert first == {"item_id": "i1", "item_name": "Espresso Beans", "barcode": "4006381333931",
                         "unit_price": 12.0, "quantity": 2, "line_total": 24.0, "purchase_rate": 7.5}
        assert second["unit_price"] == 3.0
        assert "purchase_rate" not in second
        assert transaction["subtotal"] == 27.0
        assert transaction["total"] == 27.0
        assert transaction["status"] == "completed"
        assert transaction["sold_at"] == SOLD_AT.isoformat()
        assert transaction["payment_method"] == "card"

    def test_explicit_total_wins(self):
        data = {"items": [{"item_id": "i2", "quantity": 2}], "total": 6.0}

        transaction = build_transaction(data, self.ITEMS, now=SOLD_AT)

        assert transaction["subtotal"] == 6.4
        assert transaction["total"] == 6.0

    def test_stock_movements(self):
        transaction = build_transaction({"items": [{"item_id": "i1", "quantity": 2}], "cashier_id": "u7",
                                         "customer_name": "Dana"}, self.ITEMS, now=SOLD_AT)

        [movement] = stock_movements(transaction, "tx-1")

        number = transaction["transaction_number"]
        assert movement == {
            "item_id": "i1",
            "type": "stock_out",
            "quantity": 2,
            "unit_price": 12.0,
            "total_value": 24.0,
            "transaction_date": SOLD_AT.isoformat(),
            "supplier_customer": "Dana",
            "reference_number": number,
            "notes": f"POS Sale - Transaction #{number}",
            "created_by": "u7",
            "pos_transaction_id": "tx-1",
        }
