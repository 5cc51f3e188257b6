import logging
from datetime import date, datetime, timezone
from typing import List, Optional
from fastapi import APIRouter, HTTPException, Query
from backend.app.models.schemas import DailySalesReport, POSTransactionCreate, ProductRanking, SyncResult
from backend.app.services.controller_registry import controller_registry
from backend.app.services.exceptions import (
    EntityNotFoundError,
    InsufficientStockError,
    OfflineQueueError,
    RemoteError,
    RemoteUnavailableError,
)
from backend.app.services.reports import daily_sales_report, product_performance
from backend.app.services.sales import build_transaction, release_stock, reserve_stock
from backend.app.services.validators import TransactionValidator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pos")

@router.post("/transactions", status_code=201)
async def create_transaction(payload: POSTransactionCreate):
    data = payload.model_dump(exclude_none=True)
    ok, info = TransactionValidator.validate(data)
    if not ok:
        raise HTTPException(400, info)

    items = controller_registry.items
    try:
        reserved = reserve_stock(items, data["items"])
    except EntityNotFoundError as e:
        raise HTTPException(404, str(e))
    except InsufficientStockError as e:
        raise HTTPException(409, str(e))

    transaction = build_transaction(data, reserved)
    try:
        created = await controller_registry.transaction_remote.create(transaction)
    except RemoteUnavailableError as e:
        logger.warning(f"POS transaction {transaction['transaction_number']} queued offline: {e}")
        return {"transaction": controller_registry.offline.add(transaction), "offline": True}
    except RemoteError as e:
        logger.error(f"POS transaction {transaction['transaction_number']} rejected: {e}")
        release_stock(items, data["items"])
        raise HTTPException(502, f"Failed to record sale: {e}")

    await controller_registry.record_stock_movements(transaction, created)
    return {"transaction": {**transaction, **created}, "offline": False}

@router.get("/offline")
async def list_offline():
    return {"queue": controller_registry.offline.items()}

@router.post("/offline/sync")
async def sync_offline() -> SyncResult:
    try:
        synced, failed = await controller_registry.offline.sync()
    except OfflineQueueError as e:
        raise HTTPException(409, str(e))
    return SyncResult(synced=synced, failed=failed, remaining=len(controller_registry.offline))

@router.get("/reports/daily")
async def daily_report(day: Optional[date] = Query(default=None, alias="date")) -> DailySalesReport:
    day = day or datetime.now(timezone.utc).date()
    try:
        transactions = await controller_registry.transaction_remote.list()
    except RemoteError as e:
        raise HTTPException(503, f"Failed to load sales: {e}")
    return DailySalesReport(**daily_sales_report(transactions, day))

@router.get("/reports/performance")
async def performance_report(days: Optional[int] = Query(default=None, ge=1, le=366)) -> List[ProductRanking]:
    try:
        transactions = await controller_registry.transaction_remote.list()
    except RemoteError as e:
        raise HTTPException(503, f"Failed to load sales: {e}")
    return [ProductRanking(**row) for row in product_performance(transactions, days)]
