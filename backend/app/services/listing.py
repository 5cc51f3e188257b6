import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from shared.config import settings

_SEARCH_FIELDS = ("name", "description", "sku", "barcode")

@dataclass
class Page:
    current_page: int
    total_pages: int
    items_per_page: int
    items: List[Dict[str, Any]] = field(default_factory=list)
    start_index: int = 0
    end_index: int = 0
    total_items: int = 0

    @property
    def has_next_page(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_prev_page(self) -> bool:
        return self.current_page > 1

    def as_dict(self) -> Dict[str, Any]:
        return {
            "current_page": self.current_page,
            "total_pages": self.total_pages,
            "items_per_page": self.items_per_page,
            "items": self.items,
            "start_index": self.start_index,
            "end_index": self.end_index,
            "total_items": self.total_items,
            "has_next_page": self.has_next_page,
            "has_prev_page": self.has_prev_page,
        }

def is_low_stock(item: Dict[str, Any], threshold: Optional[int] = None) -> bool:
    limit = item.get("low_stock_threshold") or threshold or settings.low_stock_threshold
    return (item.get("current_quantity") or 0) <= limit

def filter_items(
    items: List[Dict[str, Any]],
    search: str = "",
    category_id: str = "",
    low_stock_only: bool = False,
    threshold: Optional[int] = None,
) -> List[Dict[str, Any]]:
    filtered = items
    if search:
        needle = search.lower()
        filtered = [
            i for i in filtered
            if any(needle in str(i.get(f) or "").lower() for f in _SEARCH_FIELDS)
        ]
    if category_id:
        filtered = [i for i in filtered if i.get("category_id") == category_id]
    if low_stock_only:
        filtered = [i for i in filtered if is_low_stock(i, threshold)]
    return filtered

def paginate(data: List[Dict[str, Any]], page: int = 1, per_page: Optional[int] = None) -> Page:
    """
    Slice `data` into a page. The page number is clamped into [1, total_pages];
    start_index is 1-based for display, end_index is inclusive.
    """
    per_page = per_page or settings.default_page_size
    if per_page < 1:
        raise ValueError("per_page must be positive")
    total = len(data)
    total_pages = math.ceil(total / per_page)
    current = max(1, min(page, total_pages)) if total_pages else 1
    start = (current - 1) * per_page
    end = min(start + per_page, total)
    return Page(
        current_page=current,
        total_pages=total_pages,
        items_per_page=per_page,
        items=data[start:end],
        start_index=start + 1 if total else 0,
        end_index=end,
        total_items=total,
    )
