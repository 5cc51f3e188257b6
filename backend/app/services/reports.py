"""
Sales reporting over POS transaction documents.

Both reports work on plain lists of documents as returned by the transaction
remote's `list()`, so they can be fed straight from the store or from fixtures.
"""
from __future__ import annotations
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from shared.config import settings

def sold_at(transaction: Dict[str, Any]) -> Optional[datetime]:
    """When the sale happened; offline sales carry their own time, not the sync time."""
    raw = transaction.get("sold_at") or transaction.get("created_at")
    if isinstance(raw, datetime):
        stamp = raw
    elif isinstance(raw, str):
        try:
            stamp = datetime.fromisoformat(raw)
        except ValueError:
            return None
    else:
        return None
    return stamp if stamp.tzinfo else stamp.replace(tzinfo=timezone.utc)

def _completed(transactions: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [t for t in transactions if t.get("status", "completed") == "completed"]

def daily_sales_report(transactions: List[Dict[str, Any]], day: date, top: int = 10) -> Dict[str, Any]:
    total_sales = 0.0
    count = 0
    item_sales: Dict[str, Dict[str, float]] = {}
    payment_methods: Dict[str, Dict[str, float]] = {}

    for transaction in _completed(transactions):
        stamp = sold_at(transaction)
        if stamp is None or stamp.date() != day:
            continue
        amount = float(transaction.get("total") or 0)
        total_sales += amount
        count += 1

        method = payment_methods.setdefault(transaction.get("payment_method", "cash"), {"count": 0, "amount": 0.0})
        method["count"] += 1
        method["amount"] += amount

        for line in transaction.get("items", []):
            stats = item_sales.setdefault(line.get("item_name") or line.get("item_id"), {"quantity": 0, "revenue": 0.0})
            stats["quantity"] += line.get("quantity", 0)
            stats["revenue"] += line.get("line_total", 0.0)

    top_selling = sorted(
        (
            {"item_name": name, "quantity_sold": stats["quantity"], "revenue": round(stats["revenue"], 2)}
            for name, stats in item_sales.items()
        ),
        key=lambda row: row["revenue"],
        reverse=True,
    )[:top]

    return {
        "date": day.isoformat(),
        "total_sales": round(total_sales, 2),
        "total_transactions": count,
        "average_transaction": round(total_sales / count, 2) if count else 0,
        "top_selling_items": top_selling,
        "payment_methods": [
            {"method": method, "count": stats["count"], "amount": round(stats["amount"], 2)}
            for method, stats in payment_methods.items()
        ],
    }

def product_performance(
    transactions: List[Dict[str, Any]],
    days: Optional[int] = None,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """
    Rank products sold in the last `days` days by profit.

    Cost uses the purchase rate recorded on the sale line; lines without one are
    costed at `unit_price * COST_ESTIMATE_RATIO`. Margin is profit as a
    percentage of revenue, and 0 when there was no revenue.
    """
    days = settings.performance_window_days if days is None else days
    now = now or datetime.now(timezone.utc)
    since = now - timedelta(days=days)
    totals: Dict[str, Dict[str, float]] = {}

    for transaction in _completed(transactions):
        stamp = sold_at(transaction)
        if stamp is None or stamp < since:
            continue
        for line in transaction.get("items", []):
            quantity = line.get("quantity", 0)
            unit_price = line.get("unit_price") or 0.0
            cost_rate = line.get("purchase_rate") or unit_price * settings.cost_estimate_ratio
            stats = totals.setdefault(line.get("item_name") or line.get("item_id"), {"qty": 0, "revenue": 0.0, "cost": 0.0})
            stats["qty"] += quantity
            stats["revenue"] += line.get("line_total", unit_price * quantity)
            stats["cost"] += quantity * cost_rate

    rankings = []
    for name, stats in totals.items():
        profit = stats["revenue"] - stats["cost"]
        rankings.append({
            "name": name,
            "quantity": stats["qty"],
            "revenue": round(stats["revenue"], 2),
            "profit": round(profit, 2),
            "margin": round(profit / stats["revenue"] * 100, 2) if stats["revenue"] > 0 else 0,
        })
    rankings.sort(key=lambda row: row["profit"], reverse=True)
    return rankings
