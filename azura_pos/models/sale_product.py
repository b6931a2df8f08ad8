"""
Sale products - items sold at the counter - and their recipe components.
Components point at a stock item, a finished production, or another sale product.
"""
import uuid
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import String, Text, Float, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from azura_pos.database import Base

COMPONENT_TYPES = ("finished_production", "stock_item", "sale_product")


class SaleProduct(Base):
    __tablename__ = "sale_products"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    sale_price: Mapped[Optional[float]] = mapped_column(Float)
    image_url: Mapped[Optional[str]] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    ready_quantity: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    components: Mapped[list["SaleProductComponent"]] = relationship(
        back_populates="sale_product",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_sale_products_user_id", "user_id"),
        Index("ix_sale_products_is_active", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<SaleProduct {self.name}>"


class SaleProductComponent(Base):
    __tablename__ = "sale_product_components"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    sale_product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("sale_products.id", ondelete="CASCADE"), nullable=False
    )
    component_type: Mapped[str] = mapped_column(
        String(30), nullable=False
    )  # finished_production, stock_item, sale_product
    component_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default="unidade")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    sale_product: Mapped["SaleProduct"] = relationship(back_populates="components")

    __table_args__ = (
        Index("ix_sale_product_components_product", "sale_product_id"),
    )
