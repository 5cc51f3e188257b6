from fastapi import APIRouter, HTTPException, Query
from backend.app.models.schemas import ItemCreate, ItemPage, ItemUpdate, MutationResponse, UndoResponse
from backend.app.services.controller_registry import controller_registry
from backend.app.services.exceptions import EntityNotFoundError
from backend.app.services.listing import filter_items, paginate
from backend.app.services.validators import ItemValidator

router = APIRouter(prefix="/items")

@router.get("")
async def list_items(
    search: str = "",
    category_id: str = "",
    low_stock: bool = False,
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=0, ge=0, le=500),
) -> ItemPage:
    if category_id:
        category_id = controller_registry.categories.resolve_id(category_id)
    filtered = filter_items(controller_registry.items.items(), search, category_id, low_stock)
    return ItemPage(**paginate(filtered, page, per_page or None).as_dict())

@router.post("", status_code=202)
async def create_item(payload: ItemCreate) -> MutationResponse:
    data = payload.model_dump(exclude_none=True)
    ok, info = ItemValidator.validate(data)
    if not ok:
        raise HTTPException(400, info)
    data["category_id"] = controller_registry.categories.resolve_id(data["category_id"])
    return MutationResponse(entity=controller_registry.items.apply_create(data))

@router.patch("/{item_id}", status_code=202)
async def update_item(item_id: str, payload: ItemUpdate) -> MutationResponse:
    data = payload.model_dump(exclude_unset=True)
    ok, info = ItemValidator.validate(data, partial=True)
    if not ok:
        raise HTTPException(400, info)
    if data.get("category_id"):
        data["category_id"] = controller_registry.categories.resolve_id(data["category_id"])
    try:
        entity = controller_registry.items.apply_update(item_id, data)
    except EntityNotFoundError:
        raise HTTPException(404, "Item not found")
    return MutationResponse(entity=entity)

@router.delete("/{item_id}", status_code=202)
async def delete_item(item_id: str) -> MutationResponse:
    try:
        entity = controller_registry.items.apply_delete(item_id)
    except EntityNotFoundError:
        raise HTTPException(404, "Item not found")
    return MutationResponse(entity=entity)

@router.post("/undo")
async def undo_delete_item() -> UndoResponse:
    return UndoResponse(restored=controller_registry.items.undo_delete())
