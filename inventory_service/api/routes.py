from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from inventory_service.application.errors import InternalError
from inventory_service.application.schemas import MessageResponse, ProductRead
from inventory_service.application.service import ImageUpload, InventoryService
from inventory_service.infrastructure.db import get_db
from inventory_service.infrastructure.storage import ImageStorage

router = APIRouter(prefix="/products", tags=["products"])

# Body keys of a product, in validation order
PRODUCT_FIELDS = ("name", "value", "quantity", "minQuantity")


def get_storage(request: Request) -> ImageStorage:
    return request.app.state.storage


def get_service(db: Session = Depends(get_db), storage: ImageStorage = Depends(get_storage)) -> InventoryService:
    return InventoryService(db, storage)


def _as_upload(image: Optional[UploadFile]) -> Optional[ImageUpload]:
    # Browsers send an empty part with no filename when no file was picked
    if image is None or not getattr(image, "filename", None):
        return None
    return image.filename, image.file


async def _json_fields(request: Request) -> Optional[dict]:
    """Product fields sent as a JSON object; None when the body is not JSON."""
    if not request.headers.get("content-type", "").startswith("application/json"):
        return None
    try:
        payload = await request.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


async def _movement_quantity(request: Request):
    """Read ``quantity`` from a JSON or form body; absent or unreadable bodies yield None."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
        form = await request.form()
        return form.get("quantity")
    body = await request.body()
    if not body:
        return None
    try:
        payload = await request.json()
    except ValueError:
        return None
    return payload.get("quantity") if isinstance(payload, dict) else None


@router.get("", response_model=list[ProductRead])
def list_products(service: InventoryService = Depends(get_service)):
    return service.list()


@router.post("", status_code=201, response_class=PlainTextResponse)
def create_product(
    name: Optional[str] = Form(None),
    value: Optional[str] = Form(None),
    quantity: Optional[str] = Form(None),
    minQuantity: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    json_fields: Optional[dict] = Depends(_json_fields),
    service: InventoryService = Depends(get_service),
):
    if json_fields is not None:
        name, value, quantity, minQuantity = (json_fields.get(key) for key in PRODUCT_FIELDS)
    try:
        service.create(name, value, quantity, minQuantity, _as_upload(image))
    except InternalError as e:
        return PlainTextResponse(e.message, status_code=500)
    return PlainTextResponse("Product added successfully!", status_code=201)


@router.put("/{product_id}", response_model=MessageResponse)
def update_product(
    product_id: int,
    name: Optional[str] = Form(None),
    value: Optional[str] = Form(None),
    quantity: Optional[str] = Form(None),
    minQuantity: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    json_fields: Optional[dict] = Depends(_json_fields),
    service: InventoryService = Depends(get_service),
):
    if json_fields is not None:
        name, value, quantity, minQuantity = (json_fields.get(key) for key in PRODUCT_FIELDS)
    service.update(product_id, name, value, quantity, minQuantity, _as_upload(image))
    return {"message": "Product updated successfully"}


@router.delete("/{product_id}", response_model=MessageResponse)
def delete_product(product_id: int, service: InventoryService = Depends(get_service)):
    service.delete(product_id)
    return {"message": "Product deleted successfully!"}


@router.post("/{product_id}/entrada", response_model=MessageResponse)
def register_stock_entry(
    product_id: int,
    quantity=Depends(_movement_quantity),
    service: InventoryService = Depends(get_service),
):
    service.stock_in(product_id, quantity)
    return {"message": "Stock entry registered successfully!"}


@router.post("/{product_id}/saida", response_model=MessageResponse)
def register_stock_exit(
    product_id: int,
    quantity=Depends(_movement_quantity),
    service: InventoryService = Depends(get_service),
):
    service.stock_out(product_id, quantity)
    return {"message": "Stock exit registered successfully!"}
