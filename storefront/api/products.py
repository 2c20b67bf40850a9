"""
Product catalog API endpoints.

Anyone may browse the catalog; creating, editing and deleting products
and uploading their images requires an admin token. Paths and field names
keep the catalog's original Spanish wire names for client compatibility.
"""

import math
import uuid
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import undefer

from ..auth.dependencies import get_current_admin
from ..database import get_async_session
from ..error_types import ErrorMessages
from ..exceptions import DatabaseError, LoggedHTTPException
from ..models.product import Product
from ..models.user import User
from ..structured_logging.enhanced_logging_config import get_logger
from ..utils.error_logging import create_context_from_request, log_and_raise

logger = get_logger(__name__)

product_router = APIRouter(tags=["products"])

ALLOWED_IMAGE_TYPES = frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"})
MAX_IMAGE_BYTES = 5 * 1024 * 1024


def _iso(value: datetime) -> str:
    return value.isoformat(timespec="milliseconds") + "Z"


class ProductRead(BaseModel):
    """Product as returned to clients."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id")
    nombre: str
    precio: float
    descripcion: str
    image_url: str | None = Field(None, alias="imageUrl")
    created_at: str = Field(..., alias="createdAt")
    updated_at: str = Field(..., alias="updatedAt")

    @classmethod
    def from_product(cls, product: Product) -> "ProductRead":
        return cls(
            id=str(product.id),
            nombre=product.name,
            precio=product.price,
            descripcion=product.description,
            image_url=product.image_url,
            created_at=_iso(product.created_at),
            updated_at=_iso(product.updated_at),
        )


class ProductUpdate(BaseModel):
    """Partial update; unknown fields are ignored."""

    model_config = ConfigDict(extra="ignore")

    nombre: str | None = Field(None, min_length=1, max_length=255)
    descripcion: str | None = Field(None, min_length=1)
    precio: float | None = Field(None, ge=0, allow_inf_nan=False)


class ProductDeleted(BaseModel):
    mensaje: str = "Producto eliminado"


class ProductImageUploaded(BaseModel):
    mensaje: str = "Imagen subida"
    producto: ProductRead


def _bad_request(request: Request, detail: str, **metadata: Any) -> LoggedHTTPException:
    context = create_context_from_request(request)
    context.metadata.update(metadata)
    return LoggedHTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail, context=context)


def _not_found(request: Request, product_id: str, detail: str = ErrorMessages.PRODUCT_NOT_FOUND):
    context = create_context_from_request(request)
    context.metadata["product_id"] = product_id
    return LoggedHTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail, context=context)


def _parse_price(request: Request, raw: str | None) -> float | None:
    if raw is None or not str(raw).strip():
        return None
    try:
        price = float(raw)
    except ValueError:
        raise _bad_request(request, "precio must be a number", field="precio") from None
    if math.isnan(price) or math.isinf(price) or price < 0:
        raise _bad_request(request, "precio must be a non-negative number", field="precio")
    return price


async def _read_image(request: Request, foto: UploadFile | None) -> tuple[bytes, str] | None:
    """Read an uploaded image, enforcing the allowed types and size limit."""
    if foto is None or not foto.filename:
        return None
    if foto.content_type not in ALLOWED_IMAGE_TYPES:
        raise _bad_request(request, "Unsupported image type", content_type=foto.content_type)
    data = await foto.read(MAX_IMAGE_BYTES + 1)
    if len(data) > MAX_IMAGE_BYTES:
        raise _bad_request(request, "Image exceeds the 5 MB limit", size=len(data))
    if not data:
        raise _bad_request(request, "Uploaded image is empty")
    return data, foto.content_type


async def _get_product(session: AsyncSession, request: Request, product_id: str, *, with_image: bool = False):
    try:
        parsed = uuid.UUID(product_id)
    except ValueError:
        raise _not_found(request, product_id) from None
    stmt = select(Product).where(Product.id == parsed)
    if with_image:
        stmt = stmt.options(undefer(Product.image_data))
    product = (await session.execute(stmt)).scalar_one_or_none()
    if product is None:
        raise _not_found(request, product_id)
    return product


async def _commit(session: AsyncSession, operation: str) -> None:
    try:
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        log_and_raise(
            DatabaseError,
            f"Product {operation} failed: {e}",
            details={"error_type": type(e).__name__},
            user_friendly="The catalog could not be updated",
            operation=operation,
            table=Product.__tablename__,
        )


@product_router.get("/productos", response_model=list[ProductRead])
async def list_products(session: AsyncSession = Depends(get_async_session)) -> list[ProductRead]:
    """All products, newest first."""
    result = await session.execute(select(Product).order_by(Product.created_at.desc()))
    return [ProductRead.from_product(p) for p in result.scalars().all()]


@product_router.post("/productos", response_model=ProductRead, status_code=status.HTTP_201_CREATED)
async def create_product(
    request: Request,
    nombre: str | None = Form(None),
    descripcion: str | None = Form(None),
    precio: str | None = Form(None),
    foto: UploadFile | None = File(None),
    admin: User = Depends(get_current_admin),
    session: AsyncSession = Depends(get_async_session),
) -> ProductRead:
    """Create a product from a multipart form, optionally with an image."""
    name = (nombre or "").strip()
    description = (descripcion or "").strip()
    price = _parse_price(request, precio)
    if not name or not description or price is None:
        raise _bad_request(request, "Required fields: nombre, descripcion, precio")

    image = await _read_image(request, foto)
    product = Product(id=uuid.uuid4(), name=name, description=description, price=price)
    if image is not None:
        product.image_data, product.image_content_type = image
        product.image_url = f"/productos/{product.id}/foto"

    session.add(product)
    await _commit(session, "create")
    logger.info("Product created", product_id=str(product.id), admin_id=str(admin.id), has_image=image is not None)
    return ProductRead.from_product(product)


@product_router.put("/productos/{product_id}", response_model=ProductRead)
async def update_product(
    product_id: str,
    update: ProductUpdate,
    request: Request,
    admin: User = Depends(get_current_admin),
    session: AsyncSession = Depends(get_async_session),
) -> ProductRead:
    """Apply a partial update to a product."""
    product = await _get_product(session, request, product_id)
    changes = update.model_dump(exclude_unset=True, exclude_none=True)
    if "nombre" in changes:
        product.name = changes["nombre"].strip()
    if "descripcion" in changes:
        product.description = changes["descripcion"].strip()
    if "precio" in changes:
        product.price = changes["precio"]

    await _commit(session, "update")
    await session.refresh(product)
    logger.info("Product updated", product_id=product_id, admin_id=str(admin.id), fields=sorted(changes))
    return ProductRead.from_product(product)


@product_router.delete("/productos/{product_id}", response_model=ProductDeleted)
async def delete_product(
    product_id: str,
    request: Request,
    admin: User = Depends(get_current_admin),
    session: AsyncSession = Depends(get_async_session),
) -> ProductDeleted:
    product = await _get_product(session, request, product_id)
    await session.delete(product)
    await _commit(session, "delete")
    logger.info("Product deleted", product_id=product_id, admin_id=str(admin.id))
    return ProductDeleted()


@product_router.post("/productos/{product_id}/foto", response_model=ProductImageUploaded)
async def upload_product_image(
    product_id: str,
    request: Request,
    foto: UploadFile | None = File(None),
    admin: User = Depends(get_current_admin),
    session: AsyncSession = Depends(get_async_session),
) -> ProductImageUploaded:
    """Replace a product's image."""
    product = await _get_product(session, request, product_id)
    image = await _read_image(request, foto)
    if image is None:
        raise _bad_request(request, "No image file received", product_id=product_id)

    product.image_data, product.image_content_type = image
    product.image_url = f"/productos/{product.id}/foto"
    await _commit(session, "upload_image")
    await session.refresh(product)
    logger.info("Product image uploaded", product_id=product_id, admin_id=str(admin.id), size=len(image[0]))
    return ProductImageUploaded(producto=ProductRead.from_product(product))


@product_router.get("/productos/{product_id}/foto")
async def get_product_image(
    product_id: str,
    request: Request,
    session: AsyncSession = Depends(get_async_session),
) -> Response:
    """Serve a product's stored image."""
    product = await _get_product(session, request, product_id, with_image=True)
    if not product.image_data:
        raise _not_found(request, product_id, detail=ErrorMessages.IMAGE_NOT_FOUND)
    return Response(content=product.image_data, media_type=product.image_content_type or "image/jpeg")
