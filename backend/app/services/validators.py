"""
Business validation for catalog payloads.

Runs before a mutation intent is built, so nothing that fails here ever reaches
the optimistic controller or the document store.
"""
from __future__ import annotations
import re
from typing import Any, Dict, Optional, Tuple

_SKU_RE = re.compile(r"^[A-Z0-9_-]+$", re.IGNORECASE)


def _check_required(value: Optional[str], field: str) -> Optional[Dict]:
    if value is None or not str(value).strip():
        return {"reason": "required", "field": field}
    return None


def _check_number(value: Any, field: str, minimum: Optional[float] = None, maximum: Optional[float] = None) -> Optional[Dict]:
    if value is None:
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return {"reason": "not_a_number", "field": field}
    if num != num:  # NaN
        return {"reason": "not_a_number", "field": field}
    if minimum is not None and num < minimum:
        return {"reason": "below_minimum", "field": field, "minimum": minimum}
    if maximum is not None and num > maximum:
        return {"reason": "above_maximum", "field": field, "maximum": maximum}
    return None


class CategoryValidator:
    """Category name is required and bounded; description is free text."""
    @staticmethod
    def validate(payload: Dict[str, Any], partial: bool = False) -> Tuple[bool, Dict]:
        if not partial or "name" in payload:
            problem = _check_required(payload.get("name"), "name")
            if problem:
                return False, problem
            if len(payload["name"]) > 100:
                return False, {"reason": "too_long", "field": "name"}
        return True, {}


class ItemValidator:
    """
    Validator for inventory items.

    Name and category are required on create. Prices, thresholds and
    quantities must be non-negative numbers; SKUs are letters, digits,
    hyphens and underscores, at most 50 characters.

    Returns:
        Tuple of (is_valid, details) where details names the failing field.
    """
    @staticmethod
    def validate(payload: Dict[str, Any], partial: bool = False) -> Tuple[bool, Dict]:
        for field in ("name", "category_id"):
            if not partial or field in payload:
                problem = _check_required(payload.get(field), field)
                if problem:
                    return False, problem

        for field in ("unit_price", "purchase_rate", "sale_rate", "low_stock_threshold", "current_quantity"):
            if field in payload:
                problem = _check_number(payload[field], field, minimum=0)
                if problem:
                    return False, problem

        sku = payload.get("sku")
        if sku:
            if not _SKU_RE.match(sku):
                return False, {"reason": "invalid_sku", "field": "sku"}
            if len(sku) > 50:
                return False, {"reason": "too_long", "field": "sku"}
        return True, {}


class TransactionValidator:
    """POS checkout needs at least one line with positive quantity and a non-negative price."""
    @staticmethod
    def validate(payload: Dict[str, Any]) -> Tuple[bool, Dict]:
        lines = payload.get("items") or []
        if not lines:
            return False, {"reason": "empty_cart"}
        for pos, line in enumerate(lines):
            if not line.get("item_id"):
                return False, {"reason": "required", "field": f"items[{pos}].item_id"}
            problem = _check_number(line.get("quantity"), f"items[{pos}].quantity", minimum=1)
            if problem:
                return False, problem
            problem = _check_number(line.get("unit_price"), f"items[{pos}].unit_price", minimum=0)
            if problem:
                return False, problem
        return True, {}
