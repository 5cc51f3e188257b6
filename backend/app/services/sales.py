"""
POS checkout helpers.

Stock is checked against the local items collection and taken off through the
items controller, so the shelf count drops optimistically and is reconciled like
any other item update. The sale itself is written as one transaction document
plus one `stock_out` movement per cart line.
"""
from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from backend.app.services.exceptions import EntityNotFoundError, InsufficientStockError
from backend.app.services.local_collection import Entity
from backend.app.services.optimistic import OptimisticController

logger = logging.getLogger(__name__)

WALK_IN_CUSTOMER = "Walk-in Customer"

def generate_transaction_number(now: Optional[datetime] = None) -> str:
    """POS<yymmdd><last six digits of the epoch millis>."""
    now = now or datetime.now(timezone.utc)
    millis = str(int(now.timestamp() * 1000))[-6:]
    return f"POS{now:%y%m%d}{millis}"

def _on_hand(item: Entity) -> int:
    return max(0, int(item.get("current_quantity") or 0))

def quantities_by_item(lines: List[Dict[str, Any]]) -> Dict[str, int]:
    wanted: Dict[str, int] = {}
    for line in lines:
        wanted[line["item_id"]] = wanted.get(line["item_id"], 0) + int(line["quantity"])
    return wanted

def reserve_stock(items: OptimisticController, lines: List[Dict[str, Any]]) -> Dict[str, Entity]:
    """
    Check every cart line against stock on hand, then take the quantities off.
    All lines are checked before any is taken, so a short line leaves stock untouched.
    Returns the items as they were before the sale, keyed by cart item id.
    """
    wanted = quantities_by_item(lines)
    found: Dict[str, Entity] = {}
    for item_id, quantity in wanted.items():
        item = items.get(item_id)
        if item is None:
            raise EntityNotFoundError(item_id, items.name)
        if _on_hand(item) < quantity:
            raise InsufficientStockError(item.get("name", item_id), _on_hand(item))
        found[item_id] = item
    for item_id, quantity in wanted.items():
        items.apply_update(item_id, {"current_quantity": _on_hand(found[item_id]) - quantity})
    return found

def release_stock(items: OptimisticController, lines: List[Dict[str, Any]]) -> None:
    for item_id, quantity in quantities_by_item(lines).items():
        item = items.get(item_id)
        if item is None:
            logger.warning(f"Cannot return {quantity} x {item_id} to stock: item is gone")
            continue
        items.apply_update(item_id, {"current_quantity": _on_hand(item) + quantity})

def build_transaction(data: Dict[str, Any], items: Dict[str, Entity], now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    lines = []
    for line in data["items"]:
        item = items.get(line["item_id"], {})
        unit_price = line.get("unit_price")
        if unit_price is None:
            unit_price = item.get("sale_rate") or item.get("unit_price") or 0.0
        entry = {
            "item_id": line["item_id"],
            "item_name": item.get("name", line["item_id"]),
            "barcode": item.get("barcode"),
            "unit_price": unit_price,
            "quantity": line["quantity"],
            "line_total": round(unit_price * line["quantity"], 2),
        }
        # Cost at sale time, for margin reporting
        if item.get("purchase_rate") is not None:
            entry["purchase_rate"] = item["purchase_rate"]
        lines.append(entry)

    subtotal = round(sum(entry["line_total"] for entry in lines), 2)
    transaction = {k: v for k, v in data.items() if k != "items"}
    transaction.update({
        "transaction_number": generate_transaction_number(now),
        "items": lines,
        "subtotal": subtotal,
        "total": subtotal if data.get("total") is None else data["total"],
        "status": "completed",
        "sold_at": now.isoformat(),
    })
    return transaction

def stock_movements(transaction: Dict[str, Any], transaction_id: str) -> List[Dict[str, Any]]:
    number = transaction["transaction_number"]
    return [
        {
            "item_id": line["item_id"],
            "type": "stock_out",
            "quantity": line["quantity"],
            "unit_price": line["unit_price"],
            "total_value": line["line_total"],
            "transaction_date": transaction.get("sold_at"),
            "supplier_customer": transaction.get("customer_name") or WALK_IN_CUSTOMER,
            "reference_number": number,
            "notes": f"POS Sale - Transaction #{number}",
            "created_by": transaction.get("cashier_id"),
            "pos_transaction_id": transaction_id,
        }
        for line in transaction["items"]
    ]
