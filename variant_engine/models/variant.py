from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid

from variant_engine.db.base import Base


class ProductVariant(Base):
    __tablename__ = "product_variants"
    __table_args__ = (
        UniqueConstraint("sku", name="uq_product_variants_sku"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    sku = Column(String(100), nullable=False)
    name = Column(String(200), nullable=True)
    price = Column(Float, nullable=False)
    discount_price = Column(Float, nullable=True)
    quantity = Column(Integer, nullable=False, default=0)
    images = Column(ARRAY(String), nullable=False, default=list)
    weight = Column(Float, nullable=True)
    dimensions = Column(JSONB, nullable=True)  # {"length", "width", "height", "unit"}
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    # Exactly one default per product is maintained by the variant store, not by a constraint
    is_default = Column(Boolean, nullable=False, default=False)
    sort_order = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    product = relationship("Product", back_populates="variants")
    attributes = relationship(
        "ProductVariantAttribute",
        back_populates="variant",
        cascade="all, delete-orphan",
        order_by="ProductVariantAttribute.position",
    )


class ProductVariantAttribute(Base):
    __tablename__ = "product_variant_attributes"
    __table_args__ = (
        UniqueConstraint("variant_id", "key", name="uq_product_variant_attributes_variant_key"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    variant_id = Column(UUID(as_uuid=True), ForeignKey("product_variants.id", ondelete="CASCADE"), nullable=False, index=True)
    key = Column(String(100), nullable=False)
    name = Column(String(100), nullable=False)
    value = Column(Text, nullable=False)
    # Keeps the generator's dimension order when the variant is read back
    position = Column(Integer, nullable=False, default=0)

    variant = relationship("ProductVariant", back_populates="attributes")
