import logging
from fastapi import FastAPI
from backend.app.routes import categories, items, pos, notifications
from backend.app.services.controller_registry import controller_registry
from shared.config import settings

logging.basicConfig(level=settings.log_level.upper())

app = FastAPI(title="StockSuite Inventory Sync")

@app.on_event("startup")
async def _startup():
    # Seed screens from the local cache, then reload from the document store
    await controller_registry.init()

@app.on_event("shutdown")
async def _shutdown():
    # Flushes any delete still waiting in its undo window
    await controller_registry.close()

app.include_router(categories.router)
app.include_router(items.router)
app.include_router(pos.router)
app.include_router(notifications.router)
