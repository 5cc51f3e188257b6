from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

class CategoryCreate(BaseModel):
    name: str
    description: str = ""
    color: Optional[str] = None
    created_by: Optional[str] = None

class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None

class ItemCreate(BaseModel):
    name: str
    category_id: str
    description: str = ""
    sku: Optional[str] = None
    barcode: Optional[str] = None
    unit: Optional[str] = None
    unit_price: Optional[float] = None
    purchase_rate: Optional[float] = None
    sale_rate: Optional[float] = None
    location: Optional[str] = None
    low_stock_threshold: Optional[int] = None
    current_quantity: int = 0
    created_by: Optional[str] = None

class ItemUpdate(BaseModel):
    name: Optional[str] = None
    category_id: Optional[str] = None
    description: Optional[str] = None
    sku: Optional[str] = None
    barcode: Optional[str] = None
    unit: Optional[str] = None
    unit_price: Optional[float] = None
    purchase_rate: Optional[float] = None
    sale_rate: Optional[float] = None
    location: Optional[str] = None
    low_stock_threshold: Optional[int] = None
    current_quantity: Optional[int] = None

class CartLine(BaseModel):
    item_id: str
    quantity: int
    unit_price: Optional[float] = None

class POSTransactionCreate(BaseModel):
    items: List[CartLine]
    payment_method: str = "cash"
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    cashier_id: Optional[str] = None
    total: Optional[float] = None
    notes: Optional[str] = None

class MutationResponse(BaseModel):
    entity: Dict[str, Any]
    pending: bool = True

class UndoResponse(BaseModel):
    restored: bool

class ItemPage(BaseModel):
    items: List[Dict[str, Any]]
    current_page: int
    total_pages: int
    items_per_page: int
    start_index: int
    end_index: int
    total_items: int
    has_next_page: bool
    has_prev_page: bool

class SyncResult(BaseModel):
    synced: int
    failed: int
    remaining: int = Field(default=0)

class TopSellingItem(BaseModel):
    item_name: Optional[str] = None
    quantity_sold: int
    revenue: float

class PaymentMethodTotal(BaseModel):
    method: str
    count: int
    amount: float

class DailySalesReport(BaseModel):
    date: str
    total_sales: float
    total_transactions: int
    average_transaction: float
    top_selling_items: List[TopSellingItem]
    payment_methods: List[PaymentMethodTotal]

class ProductRanking(BaseModel):
    name: Optional[str] = None
    quantity: int
    revenue: float
    profit: float
    margin: float
