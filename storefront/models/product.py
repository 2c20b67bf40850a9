"""
Catalog product model.

Uploaded images are stored inline with the product row; image_url points
at the endpoint that serves them.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, LargeBinary, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utc_now


class Product(Base):
    """A product in the catalog."""

    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(length=255), nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[str | None] = mapped_column(String(length=512), nullable=True)
    image_data: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True, deferred=True)
    image_content_type: Mapped[str | None] = mapped_column(String(length=64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(), default=utc_now, nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(), default=utc_now, onupdate=utc_now, nullable=False)

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name={self.name!r}, price={self.price})>"
