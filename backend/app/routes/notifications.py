from fastapi import APIRouter
from backend.app.services.notifications import notifier

router = APIRouter()

@router.get("/notifications")
async def recent_notifications(limit: int = 20):
    return {"notifications": notifier.recent(limit)}
