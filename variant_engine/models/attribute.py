from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import ARRAY, UUID
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
import uuid

from variant_engine.db.base import Base


class AttributeType(str, enum.Enum):
    TEXT = "TEXT"
    NUMBER = "NUMBER"
    SELECT = "SELECT"
    MULTI_SELECT = "MULTI_SELECT"
    BOOLEAN = "BOOLEAN"
    DATE = "DATE"
    URL = "URL"
    EMAIL = "EMAIL"


OPTION_TYPES = frozenset({AttributeType.SELECT, AttributeType.MULTI_SELECT})

attribute_type_enum = Enum(AttributeType, name="attribute_type")


class CategoryAttributeTemplate(Base):
    __tablename__ = "category_attribute_templates"
    __table_args__ = (
        UniqueConstraint("category_id", "key", name="uq_category_attribute_templates_category_key"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    category_id = Column(UUID(as_uuid=True), ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True)
    key = Column(String(100), nullable=False)
    name = Column(String(100), nullable=False)
    type = Column(attribute_type_enum, nullable=False)
    is_required = Column(Boolean, nullable=False, default=False)
    is_variant = Column(Boolean, nullable=False, default=False, index=True)
    options = Column(ARRAY(String), nullable=False, default=list)
    unit = Column(String(10), nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    category = relationship("Category", back_populates="attribute_templates")


class CustomAttributeTemplate(Base):
    __tablename__ = "custom_attribute_templates"
    __table_args__ = (
        UniqueConstraint("seller_id", "key", name="uq_custom_attribute_templates_seller_key"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    seller_id = Column(String(64), nullable=False, index=True)
    key = Column(String(100), nullable=False)
    name = Column(String(100), nullable=False)
    type = Column(attribute_type_enum, nullable=False)
    is_required = Column(Boolean, nullable=False, default=False)
    options = Column(ARRAY(String), nullable=False, default=list)
    unit = Column(String(10), nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class ProductAttribute(Base):
    """Snapshot of one attribute value; name/type/unit are copied from the template."""

    __tablename__ = "product_attributes"
    __table_args__ = (
        UniqueConstraint("product_id", "key", "value", name="uq_product_attributes_product_key_value"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    key = Column(String(100), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    value = Column(Text, nullable=False)
    type = Column(attribute_type_enum, nullable=False)
    unit = Column(String(10), nullable=True)
    # Submission order; variant generation walks values in this order
    position = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    product = relationship("Product", back_populates="attributes")
