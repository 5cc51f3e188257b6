from fastapi import APIRouter, HTTPException
from backend.app.models.schemas import CategoryCreate, CategoryUpdate, MutationResponse, UndoResponse
from backend.app.services.controller_registry import controller_registry
from backend.app.services.exceptions import EntityNotFoundError
from backend.app.services.validators import CategoryValidator

router = APIRouter(prefix="/categories")

@router.get("")
async def list_categories():
    return {"categories": controller_registry.categories.items()}

@router.post("", status_code=202)
async def create_category(payload: CategoryCreate) -> MutationResponse:
    data = payload.model_dump(exclude_none=True)
    ok, info = CategoryValidator.validate(data)
    if not ok:
        raise HTTPException(400, info)
    return MutationResponse(entity=controller_registry.categories.apply_create(data))

@router.patch("/{category_id}", status_code=202)
async def update_category(category_id: str, payload: CategoryUpdate) -> MutationResponse:
    data = payload.model_dump(exclude_unset=True)
    ok, info = CategoryValidator.validate(data, partial=True)
    if not ok:
        raise HTTPException(400, info)
    try:
        entity = controller_registry.categories.apply_update(category_id, data)
    except EntityNotFoundError:
        raise HTTPException(404, "Category not found")
    return MutationResponse(entity=entity)

@router.delete("/{category_id}", status_code=202)
async def delete_category(category_id: str) -> MutationResponse:
    try:
        entity = controller_registry.categories.apply_delete(category_id)
    except EntityNotFoundError:
        raise HTTPException(404, "Category not found")
    return MutationResponse(entity=entity)

@router.post("/undo")
async def undo_delete_category() -> UndoResponse:
    return UndoResponse(restored=controller_registry.categories.undo_delete())
